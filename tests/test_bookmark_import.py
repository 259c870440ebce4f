import json

import pytest

from linkshelf.errors import ValidationError
from linkshelf.services.bookmark_export import export_html, export_json
from linkshelf.services.bookmark_import import parse_bookmark_html, parse_json_import


def test_parse_bookmark_html_handles_nested_netscape_structure():
    html = """
<!DOCTYPE NETSCAPE-Bookmark-file-1>
<DL><p>
  <DT><H3>Root Folder</H3>
  <DL><p>
    <DT><A HREF="https://example.com/a">A</A>
    <DT><H3>Inner Folder</H3>
    <DL><p>
      <DT><A HREF="https://example.com/b">B</A>
      <DT><A HREF="https://example.com/c#frag">C</A>
    </DL><p>
  </DL><p>
  <DT><A HREF="https://example.com/root">Root Link</A>
</DL><p>
"""

    data = parse_bookmark_html(html)
    rows = data.bookmarks
    assert [row.url for row in rows] == [
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c#frag",
        "https://example.com/root",
    ]

    assert rows[0].folder_name == "Root Folder"
    assert rows[1].folder_path == ["Root Folder", "Inner Folder"]
    assert rows[1].folder_name == "Inner Folder"
    assert rows[3].folder_name is None
    assert data.folders == ["Root Folder", "Inner Folder"]


def test_parse_bookmark_html_uses_url_when_anchor_has_no_text():
    html = """
<!DOCTYPE NETSCAPE-Bookmark-file-1>
<DL><p>
  <DT><A HREF="https://example.com/no-title"></A>
</DL><p>
"""

    rows = parse_bookmark_html(html).bookmarks
    assert len(rows) == 1
    assert rows[0].title == "https://example.com/no-title"


def test_parse_bookmark_html_skips_non_http_links():
    html = """
<DL><p>
  <DT><A HREF="javascript:alert(1)">Bookmarklet</A>
  <DT><A HREF="place:sort=8">Recent</A>
  <DT><A HREF="http://example.com">Kept</A>
</DL><p>
"""

    rows = parse_bookmark_html(html).bookmarks
    assert [row.title for row in rows] == ["Kept"]


def test_parse_bookmark_html_without_links_is_rejected():
    with pytest.raises(ValidationError):
        parse_bookmark_html("<html><body><p>nothing here</p></body></html>")


def test_parse_json_import():
    text = json.dumps(
        {
            "bookmarks": [
                {
                    "url": "https://a.example",
                    "title": "A",
                    "folderName": "Work",
                    "tags": [{"name": "docs"}, "Docs", "news"],
                    "isFavorite": True,
                    "favicon": "https://a.example/icon.png",
                },
                {"url": "https://b.example"},
                {"title": "no url"},
            ],
            "folders": [{"name": "Work"}, {"name": "Empty"}],
        }
    )

    data = parse_json_import(text)

    assert [b.url for b in data.bookmarks] == ["https://a.example", "https://b.example"]
    first = data.bookmarks[0]
    assert (first.folder_name, first.tags, first.is_favorite) == ("Work", ["docs", "news"], True)
    assert data.bookmarks[1].title == "https://b.example"
    assert data.folder_names() == ["Work", "Empty"]
    assert first.to_input("f1").folder_id == "f1"
    assert first.to_input().favicon == "https://a.example/icon.png"
    assert data.bookmarks[1].favicon is None


@pytest.mark.parametrize("text", ["not json", "[]", '{"bookmarks": "nope"}', "{}"])
def test_parse_json_import_rejects_bad_input(text):
    with pytest.raises(ValidationError):
        parse_json_import(text)


def test_export_html_nests_folders_and_escapes():
    data = {
        "bookmarks": [
            {
                "url": "https://a.example/?q=1&x=2",
                "title": "Fish & <Chips>",
                "folderId": "f2",
                "tags": [{"name": "food"}],
                "createdAt": "2024-01-01T00:00:00+00:00",
                "sortOrder": 0,
            },
            {"url": "https://b.example", "title": "Loose", "folderId": None, "sortOrder": 1},
        ],
        "folders": [
            {"id": "f1", "name": "Parent", "parentFolderId": None, "sortOrder": 0},
            {"id": "f2", "name": "Child", "parentFolderId": "f1", "sortOrder": 1},
        ],
        "tags": [],
    }

    html = export_html(data)

    assert html.startswith("<!DOCTYPE NETSCAPE-Bookmark-file-1>")
    assert "Fish &amp; &lt;Chips&gt;" in html
    assert 'HREF="https://a.example/?q=1&amp;x=2"' in html
    assert 'ADD_DATE="1704067200"' in html
    assert 'TAGS="food"' in html
    assert html.index("<H3>Parent</H3>") < html.index("<H3>Child</H3>") < html.index("Fish")
    assert html.index("Fish") < html.index("Loose")


def test_exported_html_imports_back_into_the_same_folders():
    data = {
        "bookmarks": [
            {"url": "https://a.example", "title": "A", "folderId": "f1", "sortOrder": 0},
        ],
        "folders": [{"id": "f1", "name": "Reading", "parentFolderId": None}],
    }

    parsed = parse_bookmark_html(export_html(data))

    assert [(b.url, b.folder_name) for b in parsed.bookmarks] == [("https://a.example", "Reading")]


def test_export_json_is_plain_json():
    assert json.loads(export_json({"bookmarks": [], "exportedAt": "x"})) == {
        "bookmarks": [],
        "exportedAt": "x",
    }
