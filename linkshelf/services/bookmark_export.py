from __future__ import annotations

import json
from html import escape

from dateutil import parser as date_parser


NETSCAPE_HEADER = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>Bookmarks</TITLE>
<H1>Bookmarks</H1>
"""


def export_json(data: dict) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _add_date(value) -> str:
    if not value:
        return ""
    try:
        stamp = int(date_parser.isoparse(value).timestamp())
    except (TypeError, ValueError):
        return ""
    return f' ADD_DATE="{stamp}"'


def _bookmark_line(row: dict, indent: str) -> str:
    url = escape(row.get("url") or "", quote=True)
    title = escape(row.get("title") or row.get("url") or "")
    tags = [t.get("name") for t in row.get("tags") or [] if t.get("name")]
    extra = _add_date(row.get("createdAt"))
    if tags:
        extra += f' TAGS="{escape(",".join(tags), quote=True)}"'
    line = f'{indent}<DT><A HREF="{url}"{extra}>{title}</A>\n'
    if row.get("description"):
        line += f"{indent}<DD>{escape(row['description'])}\n"
    return line


def export_html(data: dict) -> str:
    """Render an export document as a Netscape bookmark file.

    Each folder becomes an ``<H3>`` section, nested under its parent folder;
    bookmarks without a folder follow at the top level.
    """
    bookmarks = sorted(data.get("bookmarks") or [], key=lambda r: r.get("sortOrder") or 0)
    folders = sorted(data.get("folders") or [], key=lambda r: r.get("sortOrder") or 0)
    known = {f["id"] for f in folders}

    def render_folder(folder: dict, depth: int) -> str:
        indent = "    " * depth
        out = f"{indent}<DT><H3>{escape(folder.get('name') or '')}</H3>\n"
        out += f"{indent}<DL><p>\n"
        for child in folders:
            if child.get("parentFolderId") == folder["id"]:
                out += render_folder(child, depth + 1)
        for row in bookmarks:
            if row.get("folderId") == folder["id"]:
                out += _bookmark_line(row, indent + "    ")
        out += f"{indent}</DL><p>\n"
        return out

    body = "<DL><p>\n"
    for folder in folders:
        if folder.get("parentFolderId") not in known:
            body += render_folder(folder, 1)
    for row in bookmarks:
        if row.get("folderId") not in known:
            body += _bookmark_line(row, "    ")
    body += "</DL><p>\n"
    return NETSCAPE_HEADER + body
