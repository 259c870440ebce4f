import pytest

from linkshelf.auth import static_token
from linkshelf.errors import RemoteServiceError
from linkshelf.models import BookmarkInput, FolderInput


async def _local_data(local_store):
    work = await local_store.folders.create(FolderInput(name="Work"))
    await local_store.bookmarks.create(
        BookmarkInput(
            url="https://a.example",
            title="A",
            folder_id=work.id,
            tags=["docs"],
            is_favorite=True,
        )
    )
    await local_store.bookmarks.create(BookmarkInput(url="https://b.example", title="B"))


async def test_no_offer_while_signed_out(workspace):
    await _local_data(workspace.resolver.local)

    assert await workspace.start() is None
    assert workspace.migration.checked is False


async def test_no_offer_when_local_store_is_empty(workspace):
    offer = await workspace.sign_in(static_token("secret"))

    assert offer is None
    assert workspace.migration.checked is True


async def test_migration_merges_and_deduplicates(workspace, remote):
    await _local_data(workspace.resolver.local)
    remote.seed_folder("work")
    remote.seed_bookmark("https://b.example", "B already online")

    offer = await workspace.sign_in(static_token("secret"))
    assert (offer.bookmark_count, offer.folder_count) == (2, 1)

    result = await workspace.accept_migration()

    assert (result.offered, result.imported, result.skipped) == (2, 1, 1)
    assert [f["name"] for f in remote.folders] == ["work"]
    migrated = next(b for b in remote.bookmarks if b["url"] == "https://a.example")
    assert migrated["folderId"] == remote.folders[0]["id"]
    assert migrated["isFavorite"] is True
    assert [t["name"] for t in migrated["tags"]] == ["docs"]

    assert not workspace.resolver.local.has_data()
    assert workspace.migration_offer is None
    assert sorted(b.url for b in workspace.bookmarks) == [
        "https://a.example",
        "https://b.example",
    ]


async def test_check_runs_only_once(workspace):
    await _local_data(workspace.resolver.local)

    first = await workspace.sign_in(static_token("secret"))
    second = workspace.migration.check(workspace.session)

    assert first is not None
    assert second is None
    assert workspace.migration_offer is first


async def test_failed_migration_keeps_local_data_and_offer(workspace, remote):
    await _local_data(workspace.resolver.local)
    await workspace.sign_in(static_token("secret"))
    remote.fail("POST", "/bookmarks/import", status=502)

    with pytest.raises(RemoteServiceError):
        await workspace.accept_migration()

    assert workspace.resolver.local.has_data()
    assert workspace.migration_offer is not None


async def test_skip_discards_local_data(workspace, remote):
    await _local_data(workspace.resolver.local)
    await workspace.sign_in(static_token("secret"))

    workspace.skip_migration()

    assert not workspace.resolver.local.has_data()
    assert workspace.migration_offer is None
    assert remote.bookmarks == []


async def test_migration_keeps_favicons(workspace, remote):
    await workspace.resolver.local.bookmarks.create(
        BookmarkInput(
            url="https://a.example",
            title="A",
            favicon="https://a.example/icon.png",
        )
    )

    await workspace.sign_in(static_token("secret"))
    await workspace.accept_migration()

    assert [b["favicon"] for b in remote.bookmarks] == ["https://a.example/icon.png"]
    assert workspace.bookmarks[0].favicon == "https://a.example/icon.png"
