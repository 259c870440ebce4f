import json

from linkshelf import create_workspace
from linkshelf.auth import static_token
from linkshelf.models import BookmarkInput, FolderInput, TagInput


async def test_signed_out_workspace_uses_local_store(workspace, remote, config):
    await workspace.start()

    bookmark = await workspace.add_bookmark(BookmarkInput(url="example.com", title="Example"))

    assert bookmark.url == "https://example.com"
    assert bookmark.favicon == "https://www.google.com/s2/favicons?domain=example.com&sz=32"
    assert remote.requests == []
    assert (config.LOCAL_STORE_DIR / "bookmark_manager_data.json").exists()


async def test_sync_prompt_only_after_first_local_bookmark(workspace):
    await workspace.start()

    await workspace.add_bookmark(BookmarkInput(url="https://a.example", title="A"))
    assert workspace.show_sync_prompt is True

    workspace.dismiss_sync_prompt()
    await workspace.add_bookmark(BookmarkInput(url="https://b.example", title="B"))
    assert workspace.show_sync_prompt is False


async def test_signing_in_switches_to_remote(workspace, remote):
    remote.seed_bookmark("https://remote.example", "Remote")
    await workspace.start()
    assert workspace.bookmarks == ()

    await workspace.sign_in(static_token("secret"))
    assert [b.title for b in workspace.bookmarks] == ["Remote"]

    await workspace.add_bookmark(BookmarkInput(url="https://new.example", title="New"))
    assert workspace.show_sync_prompt is False
    assert len(remote.bookmarks) == 2

    await workspace.sign_out()
    assert workspace.bookmarks == ()


async def test_configured_token_signs_in(config, remote):
    signed_in = type("TokenConfig", (config,), {"API_TOKEN": "secret"})
    workspace = create_workspace(signed_in, transport=remote.transport())

    await workspace.start()

    assert workspace.session.is_signed_in
    assert sorted(remote.paths("GET")) == ["/bookmarks", "/folders", "/tags"]


async def test_view_title_and_filtering(workspace):
    await workspace.start()
    folder = await workspace.coordinator.create_folder(FolderInput(name="Reading"))
    await workspace.add_bookmark(
        BookmarkInput(url="https://a.example", title="Alpha", folder_id=folder.id)
    )
    await workspace.add_bookmark(BookmarkInput(url="https://b.example", title="Beta"))

    workspace.view.select_folder(folder.id)
    assert workspace.page_title() == "Reading"
    assert workspace.page_subtitle() == "1 bookmark in Reading"
    assert [b.title for b in workspace.filtered_bookmarks()] == ["Alpha"]

    await workspace.delete_folder(folder.id)
    assert workspace.page_title() == "All Bookmarks"
    assert len(workspace.filtered_bookmarks()) == 2


async def test_search_returns_scored_rows(workspace):
    await workspace.start()
    await workspace.add_bookmark(BookmarkInput(url="https://a.example", title="Python docs"))

    rows = workspace.search("python")

    assert [row["bookmark"].title for row in rows] == ["Python docs"]
    assert rows[0]["reasons"] == ["title_match"]


async def test_import_and_export_text(workspace):
    await workspace.start()
    html = """
<DL><p>
  <DT><H3>Work</H3>
  <DL><p>
    <DT><A HREF="https://a.example">A</A>
  </DL><p>
</DL><p>
"""

    imported = await workspace.import_text(html, "html")

    assert [b.folder_name for b in imported] == ["Work"]
    exported = json.loads(await workspace.export_text("json"))
    assert [b["url"] for b in exported["bookmarks"]] == ["https://a.example"]
    assert [f["name"] for f in exported["folders"]] == ["Work"]
    assert "<H3>Work</H3>" in await workspace.export_text("html")


async def test_find_folder_and_tag_by_name(workspace):
    await workspace.start()
    reading = await workspace.coordinator.create_folder(FolderInput(name="Reading list"))
    work = await workspace.coordinator.create_folder(FolderInput(name="Work"))
    python = await workspace.coordinator.create_tag(TagInput(name="python"))

    assert workspace.find_folder("WORK") is work
    assert workspace.find_folder("readng list") is reading
    assert workspace.find_folder("zzzz") is None
    assert workspace.find_tag("pythn") is python
    assert workspace.find_tag("") is None


async def test_filtered_bookmarks_can_be_sorted(workspace):
    await workspace.start()
    first = await workspace.add_bookmark(BookmarkInput(url="https://a.example", title="A"))
    second = await workspace.add_bookmark(BookmarkInput(url="https://b.example", title="B"))
    await workspace.coordinator.track_click(second.id)

    assert [b.id for b in workspace.filtered_bookmarks()] == [first.id, second.id]
    assert [b.id for b in workspace.filtered_bookmarks("clicks")] == [second.id, first.id]
