import argparse
import asyncio
import logging
import sys
from pathlib import Path

from linkshelf import create_workspace
from linkshelf.errors import LinkshelfError
from linkshelf.models import BookmarkInput
from linkshelf.services.common import parse_tags, root_folders, sub_folders
from linkshelf.services.filters import SORTERS


log = logging.getLogger("linkshelf")


def _print_folders(folders, parent_id=None, depth=0) -> None:
    level = sub_folders(folders, parent_id) if parent_id else root_folders(folders)
    for folder in sorted(level, key=lambda f: f.sort_order):
        print(f"{'  ' * depth}{folder.name} ({folder.bookmark_count})")
        _print_folders(folders, folder.id, depth + 1)


def _print_bookmarks(bookmarks) -> None:
    for b in bookmarks:
        star = "*" if b.is_favorite else " "
        folder = f" [{b.folder_name}]" if b.folder_name else ""
        tags = f" #{' #'.join(b.tag_names)}" if b.tags else ""
        print(f"{star} {b.title} <{b.url}>{folder}{tags}")


async def _run(args) -> int:
    workspace = create_workspace()
    offer = await workspace.start()
    if workspace.coordinator.error:
        print(f"Could not load bookmarks: {workspace.coordinator.error}", file=sys.stderr)
        return 1

    if args.command == "list":
        if args.favorites:
            workspace.view.show_favorites()
        elif args.folder:
            folder = workspace.find_folder(args.folder)
            if folder is None:
                print(f"No folder named {args.folder!r}", file=sys.stderr)
                return 1
            workspace.view.select_folder(folder.id)
        elif args.tag:
            tag = workspace.find_tag(args.tag)
            if tag is None:
                print(f"No tag named {args.tag!r}", file=sys.stderr)
                return 1
            workspace.view.select_tag(tag.id)
        print(f"{workspace.page_title()}: {workspace.page_subtitle()}")
        _print_bookmarks(workspace.filtered_bookmarks(args.sort))

    elif args.command == "folders":
        _print_folders(workspace.folders)

    elif args.command == "add":
        bookmark = await workspace.add_bookmark(
            BookmarkInput(
                url=args.url,
                title=args.title or args.url,
                description=args.description,
                tags=parse_tags(args.tags or ""),
                is_favorite=args.favorite,
            )
        )
        print(f"Added {bookmark.title}")
        if workspace.show_sync_prompt:
            print("Tip: set LINKSHELF_TOKEN to keep your bookmarks in your account.")

    elif args.command == "search":
        for row in workspace.search(args.query):
            b = row["bookmark"]
            print(f"{row['score']:6.2f}  {b.title} <{b.url}>")

    elif args.command == "import":
        text = Path(args.path).read_text(encoding="utf-8")
        fmt = args.format or ("html" if args.path.lower().endswith((".html", ".htm")) else "json")
        imported = await workspace.import_text(text, fmt)
        print(f"Imported {len(imported)} bookmark(s)")

    elif args.command == "export":
        output = await workspace.export_text(args.format)
        if args.output:
            Path(args.output).write_text(output, encoding="utf-8")
        else:
            print(output)

    elif args.command == "migrate":
        if offer is None:
            print("Nothing to migrate")
        elif args.skip:
            workspace.skip_migration()
            print("Discarded local bookmarks")
        else:
            result = await workspace.accept_migration()
            print(
                f"Migrated {result.imported} of {result.offered} bookmark(s), "
                f"{result.skipped} already in your account"
            )
    return 0


def main() -> None:
    p = argparse.ArgumentParser(prog="linkshelf")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="command", required=True)

    ls = sub.add_parser("list")
    ls.add_argument("--favorites", action="store_true")
    ls.add_argument("--folder")
    ls.add_argument("--tag")
    ls.add_argument("--sort", choices=sorted(SORTERS))

    sub.add_parser("folders")

    add = sub.add_parser("add")
    add.add_argument("url")
    add.add_argument("--title")
    add.add_argument("--description")
    add.add_argument("--tags", help="comma separated tag names")
    add.add_argument("--favorite", action="store_true")

    search = sub.add_parser("search")
    search.add_argument("query")

    imp = sub.add_parser("import")
    imp.add_argument("path")
    imp.add_argument("--format", choices=["json", "html"])

    exp = sub.add_parser("export")
    exp.add_argument("--format", choices=["json", "html"], default="json")
    exp.add_argument("-o", "--output")

    mig = sub.add_parser("migrate")
    mig.add_argument("--skip", action="store_true")

    args = p.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        code = asyncio.run(_run(args))
    except LinkshelfError as exc:
        log.debug("command failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
