"""Administrator credential tests."""

import asyncio

import pytest

from pinwall.services.admin_auth import AdminAuthService


@pytest.fixture
def admin_auth() -> AdminAuthService:
    # Minimum bcrypt cost keeps the suite fast
    return AdminAuthService(rounds=4)


@pytest.mark.asyncio
async def test_stored_hash_is_salted_bcrypt(uow_factory, admin_auth):
    async with await uow_factory() as uow:
        await admin_auth.set_password(uow, "hunter2")
    async with await uow_factory() as uow:
        first = (await uow.admin_credentials.get()).password_hash
        await admin_auth.set_password(uow, "hunter2")
        second = (await uow.admin_credentials.get()).password_hash

    assert first.startswith("$2b$04$")
    assert first != second


@pytest.mark.asyncio
async def test_hashing_and_verification_run_off_the_event_loop(
    uow_factory, admin_auth, monkeypatch
):
    offloaded = []
    to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await to_thread(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

    async with await uow_factory() as uow:
        await admin_auth.set_password(uow, "hunter2")
        assert await admin_auth.verify(uow, "hunter2") is True

    assert offloaded == ["hash", "verify"]


@pytest.mark.asyncio
async def test_verify_without_credential_fails(uow_factory, admin_auth):
    async with await uow_factory() as uow:
        assert await admin_auth.verify(uow, "anything") is False


@pytest.mark.asyncio
async def test_set_and_verify_password(uow_factory, admin_auth):
    async with await uow_factory() as uow:
        await admin_auth.set_password(uow, "hunter2")

    async with await uow_factory() as uow:
        credential = await uow.admin_credentials.get()
        assert credential.password_hash != "hunter2"
        assert await admin_auth.verify(uow, "hunter2") is True
        assert await admin_auth.verify(uow, "hunter3") is False
        assert await admin_auth.verify(uow, "") is False
        assert await admin_auth.verify(uow, None) is False


@pytest.mark.asyncio
async def test_set_password_replaces_previous(uow_factory, admin_auth):
    async with await uow_factory() as uow:
        await admin_auth.set_password(uow, "old")
    async with await uow_factory() as uow:
        await admin_auth.set_password(uow, "new")

    async with await uow_factory() as uow:
        assert await admin_auth.verify(uow, "old") is False
        assert await admin_auth.verify(uow, "new") is True


@pytest.mark.asyncio
async def test_ensure_password_only_bootstraps_once(uow_factory, admin_auth):
    async with await uow_factory() as uow:
        assert await admin_auth.ensure_password(uow, "first") is True
    async with await uow_factory() as uow:
        assert await admin_auth.ensure_password(uow, "second") is False

    async with await uow_factory() as uow:
        assert await admin_auth.verify(uow, "first") is True
        assert await admin_auth.verify(uow, "second") is False


@pytest.mark.asyncio
async def test_ensure_password_skips_empty(uow_factory, admin_auth):
    async with await uow_factory() as uow:
        assert await admin_auth.ensure_password(uow, "") is False
        assert await uow.admin_credentials.get() is None


@pytest.mark.asyncio
async def test_empty_password_refused(uow_factory, admin_auth):
    with pytest.raises(ValueError):
        async with await uow_factory() as uow:
            await admin_auth.set_password(uow, "")
