"""Reconciliation tests.

Scenarios:
- Consistent storage reports nothing
- Orphaned files (on disk, not indexed) are deleted; young ones are skipped
- Dangling references (indexed, missing on disk) are dropped and the
  record's primary file and image_count recomputed
- Dry run changes nothing
- CLI exit codes
"""

import os
import time

import pytest

from conftest import make_file
from pinwall.cli.reconcile import async_main
from pinwall.services.reconciliation import Reconciler


async def create_record(uow_factory, upload_keys, moderation, identity, count=2):
    async with await uow_factory() as uow:
        token = await upload_keys.request_key(uow, identity)
    async with await uow_factory() as uow:
        return await moderation.submit_upload(
            uow, token, identity, [make_file(f"{i}.png") for i in range(count)]
        )


def write_orphan(storage, name="orphan.png", age_seconds=7200):
    path = storage.path_for(name)
    path.write_bytes(b"leftover")
    past = time.time() - age_seconds
    os.utime(path, (past, past))
    return name


@pytest.mark.asyncio
async def test_consistent_storage_reports_nothing(
    uow_factory, upload_keys, moderation, storage, identity
):
    await create_record(uow_factory, upload_keys, moderation, identity)

    async with await uow_factory() as uow:
        result = await Reconciler(storage).run(uow)

    assert result.is_consistent
    assert result.deleted_files == 0
    assert result.dropped_references == 0


@pytest.mark.asyncio
async def test_orphaned_files_deleted(uow_factory, upload_keys, moderation, storage, identity):
    hydrated = await create_record(uow_factory, upload_keys, moderation, identity)
    orphan = write_orphan(storage)

    async with await uow_factory() as uow:
        result = await Reconciler(storage).run(uow)

    assert result.orphaned_files == [orphan]
    assert result.deleted_files == 1
    assert not storage.exists(orphan)
    assert all(storage.exists(name) for name in hydrated.attached_files)


@pytest.mark.asyncio
async def test_recent_unreferenced_files_are_skipped(uow_factory, storage):
    """A file younger than the threshold may belong to an in-flight upload."""
    fresh = write_orphan(storage, "fresh.png", age_seconds=0)

    async with await uow_factory() as uow:
        result = await Reconciler(storage, min_orphan_age_seconds=3600).run(uow)

    assert result.orphaned_files == []
    assert storage.exists(fresh)


@pytest.mark.asyncio
async def test_dangling_references_dropped_and_record_rehydrated(
    uow_factory, upload_keys, moderation, storage, identity
):
    hydrated = await create_record(uow_factory, upload_keys, moderation, identity, count=3)
    primary, second, third = hydrated.attached_files
    storage.path_for(primary).unlink()

    async with await uow_factory() as uow:
        result = await Reconciler(storage).run(uow)

    assert result.dangling_references == [primary]
    assert result.affected_records == [hydrated.record.id]
    assert result.dropped_references == 1

    async with await uow_factory() as uow:
        stored = await uow.records.get_hydrated(hydrated.record.id)

    assert stored.attached_files == [second, third]
    assert stored.record.primary_filename == second
    assert stored.record.image_count == 2
    assert stored.primary_file.filename == second


@pytest.mark.asyncio
async def test_dry_run_changes_nothing(uow_factory, upload_keys, moderation, storage, identity):
    hydrated = await create_record(uow_factory, upload_keys, moderation, identity)
    missing = hydrated.attached_files[1]
    storage.path_for(missing).unlink()
    orphan = write_orphan(storage)

    async with await uow_factory() as uow:
        result = await Reconciler(storage).run(uow, dry_run=True)

    assert result.orphaned_files == [orphan]
    assert result.dangling_references == [missing]
    assert result.deleted_files == 0
    assert result.dropped_references == 0
    assert storage.exists(orphan)

    async with await uow_factory() as uow:
        stored = await uow.records.get_hydrated(hydrated.record.id)
        assert missing in stored.attached_files
        assert stored.record.image_count == 2


@pytest.mark.asyncio
async def test_cli_dry_run_exit_codes(
    uow_factory, storage, settings, session_factory, monkeypatch, capsys
):
    monkeypatch.setenv("DATABASE_URL", settings.database_url)
    monkeypatch.setenv("UPLOAD_DIR", settings.upload_dir)
    # Keep the test session's logging configuration
    monkeypatch.setattr("pinwall.cli.reconcile.configure_logging", lambda settings: None)

    assert await async_main(["--dry-run"]) == 0

    orphan = write_orphan(storage)
    assert await async_main(["--dry-run"]) == 2
    assert storage.exists(orphan)
    assert "Orphaned files: 1" in capsys.readouterr().out

    assert await async_main([]) == 0
    assert not storage.exists(orphan)
