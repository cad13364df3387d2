"""API endpoint tests.

Covers the full flow (key -> upload -> review -> random -> comment) and the
status codes of every error class.
"""

import pytest

from conftest import ADMIN_PASSWORD, PNG_BYTES
from pinwall.api.routes import uploads as uploads_routes

ADMIN = {"X-Admin-Password": ADMIN_PASSWORD}
OTHER_CLIENT = {"User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)"}


def image(name: str = "photo.png", content: bytes = PNG_BYTES):
    return ("image", (name, content, "image/png"))


async def upload(client, text="hello", files=None, headers=None, **fields):
    """Request a key and upload with it; returns the upload response."""
    key_response = await client.post("/api/keys", headers=headers)
    assert key_response.status_code == 200
    data = {"key": key_response.json()["token"], "text": text, **fields}
    return await client.post(
        "/api/upload", data=data, files=files or [image()], headers=headers
    )


async def review(client, record_id, decision):
    return await client.post(
        f"/api/admin/records/{record_id}/review", json={"status": decision}, headers=ADMIN
    )


@pytest.mark.asyncio
async def test_health(test_client):
    response = await test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_full_flow(test_client):
    """Key, upload, approve, random, comment."""
    response = await upload(test_client, text="hello")
    assert response.status_code == 201
    record = response.json()
    assert record["status"] == "pending"
    assert record["caption"] == "hello"
    assert record["image_count"] == 1
    assert record["files"][0]["is_main"] is True

    # Pending records are invisible to the public
    assert (await test_client.get("/api/records")).json() == []
    assert (await test_client.get(f"/api/records/{record['id']}")).status_code == 404
    assert (await test_client.get("/api/records/random")).status_code == 404

    pending = await test_client.get("/api/admin/records/pending", headers=ADMIN)
    assert pending.status_code == 200
    assert [r["id"] for r in pending.json()] == [record["id"]]
    assert len(pending.json()[0]["uploader_identity"]) == 64

    response = await review(test_client, record["id"], "approved")
    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    random_record = await test_client.get("/api/records/random")
    assert random_record.status_code == 200
    assert random_record.json()["id"] == record["id"]
    assert random_record.json()["caption"] == "hello"

    listed = await test_client.get("/api/records")
    assert [r["id"] for r in listed.json()] == [record["id"]]

    response = await test_client.post(
        f"/api/records/{record['id']}/comments", json={"content": "nice"}
    )
    assert response.status_code == 201
    assert response.json()["content"] == "nice"

    comments = await test_client.get(f"/api/records/{record['id']}/comments")
    assert comments.status_code == 200
    assert [c["content"] for c in comments.json()] == ["nice"]


@pytest.mark.asyncio
async def test_uploaded_file_is_served(test_client):
    response = await upload(test_client)
    url = response.json()["files"][0]["url"]

    served = await test_client.get(url)
    assert served.status_code == 200
    assert served.content == PNG_BYTES


@pytest.mark.asyncio
async def test_upload_logs_received_files(test_client, monkeypatch):
    events = []

    class RecordingLogger:
        def info(self, event, **fields):
            events.append((event, fields))

    monkeypatch.setattr(uploads_routes, "logger", RecordingLogger())

    response = await upload(test_client, files=[image("a.png"), image("b.png")])
    assert response.status_code == 201

    assert [event for event, _ in events] == ["upload.received"]
    fields = events[0][1]
    assert fields["file_count"] == 2
    assert fields["total_bytes"] == 2 * len(PNG_BYTES)
    assert len(fields["client"]) == 12


@pytest.mark.asyncio
async def test_multi_file_upload_primary_first(test_client):
    files = [image("a.png"), image("b.gif"), image("c.jpg")]
    response = await upload(test_client, files=files)

    assert response.status_code == 201
    record = response.json()
    assert record["image_count"] == 3
    assert [f["original_filename"] for f in record["files"]] == ["a.png", "b.gif", "c.jpg"]
    assert record["filename"] == record["files"][0]["filename"]


@pytest.mark.asyncio
async def test_second_key_same_day_rate_limited(test_client):
    assert (await upload(test_client)).status_code == 201

    response = await test_client.post("/api/keys")
    assert response.status_code == 400
    assert "already uploaded" in response.json()["detail"]


@pytest.mark.asyncio
async def test_same_day_key_requests_return_same_token(test_client):
    first = await test_client.post("/api/keys")
    second = await test_client.post("/api/keys")
    assert first.json()["token"] == second.json()["token"]

    other = await test_client.post("/api/keys", headers=OTHER_CLIENT)
    assert other.json()["token"] != first.json()["token"]


@pytest.mark.asyncio
async def test_key_reuse_refused(test_client):
    token = (await test_client.post("/api/keys")).json()["token"]
    first = await test_client.post(
        "/api/upload", data={"key": token, "text": "one"}, files=[image()]
    )
    assert first.status_code == 201

    second = await test_client.post(
        "/api/upload", data={"key": token, "text": "two"}, files=[image()]
    )
    assert second.status_code == 400


@pytest.mark.asyncio
async def test_key_bound_to_identity(test_client):
    token = (await test_client.post("/api/keys")).json()["token"]

    response = await test_client.post(
        "/api/upload", data={"key": token, "text": "x"}, files=[image()], headers=OTHER_CLIENT
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_missing_key(test_client):
    response = await test_client.post("/api/upload", data={"text": "x"}, files=[image()])
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_without_image(test_client):
    token = (await test_client.post("/api/keys")).json()["token"]
    response = await test_client.post("/api/upload", data={"key": token, "text": "x"})
    assert response.status_code == 400
    assert response.json()["detail"] == "No file uploaded."


@pytest.mark.asyncio
async def test_upload_unsupported_type(test_client):
    response = await upload(test_client, files=[("image", ("run.sh", b"#!/bin/sh", "text/x-sh"))])
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_requires_password(test_client):
    assert (await test_client.get("/api/admin/records")).status_code == 401
    wrong = await test_client.get(
        "/api/admin/records", headers={"X-Admin-Password": "not the password"}
    )
    assert wrong.status_code == 401
    assert (await test_client.get("/api/admin/records", headers=ADMIN)).status_code == 200


@pytest.mark.asyncio
async def test_admin_list_filtered_by_status(test_client):
    first = (await upload(test_client)).json()
    second = (await upload(test_client, headers=OTHER_CLIENT)).json()
    await review(test_client, second["id"], "rejected")

    rejected = await test_client.get("/api/admin/records?status=rejected", headers=ADMIN)
    assert [r["id"] for r in rejected.json()] == [second["id"]]

    everything = await test_client.get("/api/admin/records", headers=ADMIN)
    assert {r["id"] for r in everything.json()} == {first["id"], second["id"]}

    invalid = await test_client.get("/api/admin/records?status=deleted", headers=ADMIN)
    assert invalid.status_code == 400


@pytest.mark.asyncio
async def test_review_invalid_status(test_client):
    record = (await upload(test_client)).json()

    response = await review(test_client, record["id"], "published")
    assert response.status_code == 400
    assert "approved" in response.json()["detail"]


@pytest.mark.asyncio
async def test_review_unknown_record(test_client):
    response = await review(test_client, "0" * 32, "approved")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_rejection_removes_served_file(test_client):
    record = (await upload(test_client)).json()
    url = record["files"][0]["url"]

    response = await review(test_client, record["id"], "rejected")
    assert response.status_code == 200
    assert response.json()["files"] == []
    assert response.json()["image_count"] == 0

    assert (await test_client.get(url)).status_code == 404


@pytest.mark.asyncio
async def test_comment_on_pending_record_not_found(test_client):
    record = (await upload(test_client)).json()

    response = await test_client.post(
        f"/api/records/{record['id']}/comments", json={"content": "nice"}
    )
    assert response.status_code == 404
    assert (await test_client.get(f"/api/records/{record['id']}/comments")).status_code == 404


@pytest.mark.asyncio
async def test_blank_comment_refused(test_client):
    record = (await upload(test_client)).json()
    await review(test_client, record["id"], "approved")

    response = await test_client.post(
        f"/api/records/{record['id']}/comments", json={"content": "   "}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_edit_editable_record(test_client, storage):
    record = (await upload(test_client, editable="true")).json()
    old_file = record["files"][0]["filename"]
    await review(test_client, record["id"], "approved")

    response = await test_client.patch(f"/api/records/{record['id']}", data={"text": "edited"})
    assert response.status_code == 200
    assert response.json()["caption"] == "edited"
    assert response.json()["files"][0]["filename"] == old_file

    response = await test_client.put(
        f"/api/records/{record['id']}",
        data={"image_count": "2"},
        files=[image("new1.png"), image("new2.png")],
    )
    assert response.status_code == 200
    edited = response.json()
    assert edited["image_count"] == 2
    assert [f["original_filename"] for f in edited["files"]] == ["new1.png", "new2.png"]
    assert not storage.exists(old_file)

    fetched = await test_client.get(f"/api/records/{record['id']}")
    assert fetched.json()["caption"] == "edited"
    assert fetched.json()["image_count"] == 2


@pytest.mark.asyncio
async def test_edit_locked_record_forbidden(test_client):
    record = (await upload(test_client)).json()
    await review(test_client, record["id"], "approved")

    response = await test_client.patch(f"/api/records/{record['id']}", data={"text": "x"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_edit_by_another_client_forbidden(test_client):
    record = (await upload(test_client, editable="true")).json()
    await review(test_client, record["id"], "approved")

    response = await test_client.patch(
        f"/api/records/{record['id']}", data={"text": "x"}, headers=OTHER_CLIENT
    )
    assert response.status_code == 403
    assert "uploader" in response.json()["detail"]


@pytest.mark.asyncio
async def test_edit_pending_record_forbidden(test_client):
    record = (await upload(test_client, editable="true")).json()

    response = await test_client.patch(f"/api/records/{record['id']}", data={"text": "x"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_edit_unknown_record(test_client):
    response = await test_client.patch(f"/api/records/{'0' * 32}", data={"text": "x"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_edit_image_count_mismatch(test_client):
    record = (await upload(test_client, editable="true")).json()
    await review(test_client, record["id"], "approved")

    response = await test_client.patch(
        f"/api/records/{record['id']}", data={"image_count": "4"}
    )
    assert response.status_code == 400
