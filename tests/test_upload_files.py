"""Tests for the chunked multi-part file upload orchestrator.

The repository API is served by ``httpx.MockTransport``; files are real
files under ``tmp_path``.
"""

from __future__ import annotations

import hashlib
import json
from unittest.mock import patch

import httpx
import pytest

from figbatch.filesystem import RootDirectory
from figbatch.models import UploadFileStatus
from figbatch.upload.client import RepositoryClient, UploadManifest
from figbatch.upload.files import (
    FileAccessUnsupportedError,
    NoRootDirError,
    compute_md5,
    upload_files,
)

API = "https://api.example.org/v2"
UPLOADS = "https://uploads.example.org/token"


class FakeRepository:
    """Serves initiation, manifest, part and completion calls for record 7."""

    def __init__(self, parts_for=None, fail_names=(), parts_at="location"):
        self.calls: list[tuple[str, str]] = []
        self.parts: dict[str, bytes] = {}
        self._names: dict[int, str] = {}
        self._sizes: dict[int, int] = {}
        self._parts_for = parts_for
        self._fail_names = set(fail_names)
        self._parts_at = parts_at

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, str(request.url)))

        if request.method == "POST" and path == "/v2/account/articles/7/files":
            body = json.loads(request.content)
            if body["name"] in self._fail_names:
                return httpx.Response(500, text="storage unavailable")
            file_id = 100 + len(self._names)
            self._names[file_id] = body["name"]
            self._sizes[file_id] = body["size"]
            return httpx.Response(
                201, json={"location": f"{API}/account/articles/7/files/{file_id}"}
            )

        if path.startswith("/v2/account/articles/7/files/"):
            file_id = int(path.rsplit("/", 1)[-1])
            if request.method == "POST":
                return httpx.Response(202)
            size = self._sizes[file_id]
            parts = (
                self._parts_for(size)
                if self._parts_for
                else [{"partNo": 1, "startOffset": 0, "endOffset": size - 1}]
            )
            manifest = {
                "id": file_id,
                "status": "PENDING",
                "upload_url": f"{UPLOADS}/{file_id}",
            }
            if self._parts_at == "location":
                manifest["parts"] = parts
            return httpx.Response(200, json=manifest)

        if request.method == "GET" and request.url.host == "uploads.example.org":
            file_id = int(path.rsplit("/", 1)[-1])
            size = self._sizes[file_id]
            upload = {"token": "token", "status": "PENDING", "size": size}
            if self._parts_at == "upload_url":
                upload["parts"] = [{"partNo": 1, "startOffset": 0, "endOffset": size - 1}]
            return httpx.Response(200, json=upload)

        if request.method == "PUT" and request.url.host == "uploads.example.org":
            self.parts[path] = request.content
            return httpx.Response(200)

        return httpx.Response(404)


@pytest.fixture
def files_dir(tmp_path):
    (tmp_path / "a.bin").write_bytes(b"0123456789")
    (tmp_path / "b.bin").write_bytes(b"abc")
    (tmp_path / "empty.bin").write_bytes(b"")
    return RootDirectory(tmp_path)


def _client(fake: FakeRepository) -> RepositoryClient:
    return RepositoryClient("secret", api_base=API, transport=httpx.MockTransport(fake))


# ======================================================================
# Happy path
# ======================================================================


class TestUploadFiles:
    """Protocol order and progress snapshots."""

    async def test_single_part_file_takes_four_calls(self, files_dir):
        fake = FakeRepository()
        snapshots: list[UploadFileStatus] = []
        async with _client(fake) as client:
            results = await upload_files(["a.bin"], files_dir, 7, client, snapshots.append)

        assert [method for method, _ in fake.calls] == ["POST", "GET", "PUT", "POST"]
        [result] = results
        assert result.remote_status == "completed"
        assert result.content_hash == hashlib.md5(b"0123456789").hexdigest()
        assert result.error is None
        assert snapshots[-1] == result
        assert fake.parts["/token/100/1"] == b"0123456789"

    async def test_parts_are_put_in_ascending_order(self, files_dir):
        def two_parts(size):
            return [
                {"partNo": 2, "startOffset": 5, "endOffset": 9},
                {"partNo": 1, "startOffset": 0, "endOffset": 4},
            ]

        fake = FakeRepository(parts_for=two_parts)
        async with _client(fake) as client:
            [result] = await upload_files(["a.bin"], files_dir, 7, client)

        puts = [url for method, url in fake.calls if method == "PUT"]
        assert puts == [f"{UPLOADS}/100/1", f"{UPLOADS}/100/2"]
        assert fake.parts["/token/100/1"] == b"01234"
        assert fake.parts["/token/100/2"] == b"56789"
        assert result.part_count == 2
        assert result.part_number == 2

    async def test_files_go_one_at_a_time_in_order(self, files_dir):
        fake = FakeRepository()
        snapshots: list[UploadFileStatus] = []
        async with _client(fake) as client:
            results = await upload_files(
                ["a.bin", "b.bin"], files_dir, 7, client, snapshots.append
            )

        assert [r.name for r in results] == ["a.bin", "b.bin"]
        indexes = [s.file_index for s in snapshots]
        assert indexes == sorted(indexes)
        assert all(s.total_files == 2 for s in snapshots)

    async def test_sends_token_header(self, files_dir):
        seen = []

        def handler(request):
            seen.append(request.headers["Authorization"])
            return httpx.Response(500)

        async with RepositoryClient(
            "secret", api_base=API, transport=httpx.MockTransport(handler)
        ) as client:
            await upload_files(["a.bin"], files_dir, 7, client)
        assert seen == ["token secret"]


# ======================================================================
# Cancellation and failures
# ======================================================================


class TestCancellationAndFailures:
    """Advisory cancellation, per-file errors and hard preconditions."""

    async def test_cancel_on_first_snapshot_makes_no_calls(self, files_dir):
        fake = FakeRepository()
        async with _client(fake) as client:
            results = await upload_files(["a.bin"], files_dir, 7, client, lambda s: True)
        assert fake.calls == []
        assert results == []

    async def test_cancel_after_manifest_stops_before_parts(self, files_dir):
        fake = FakeRepository()

        def stop_when_manifest_known(snapshot):
            return snapshot.part_count > 0

        async with _client(fake) as client:
            await upload_files(["a.bin"], files_dir, 7, client, stop_when_manifest_known)
        assert [method for method, _ in fake.calls] == ["POST", "GET"]

    async def test_failed_file_does_not_stop_the_next(self, files_dir):
        fake = FakeRepository(fail_names={"a.bin"})
        async with _client(fake) as client:
            first, second = await upload_files(["a.bin", "b.bin"], files_dir, 7, client)

        assert "500" in first.error
        assert first.remote_status is None
        assert second.error is None
        assert second.remote_status == "completed"

    async def test_parts_read_from_upload_url(self, files_dir):
        fake = FakeRepository(parts_at="upload_url")
        async with _client(fake) as client:
            [result] = await upload_files(["a.bin"], files_dir, 7, client)

        assert [method for method, _ in fake.calls] == ["POST", "GET", "GET", "PUT", "POST"]
        assert fake.calls[2][1] == f"{UPLOADS}/100"
        assert fake.calls[-1][1] == f"{API}/account/articles/7/files/100"
        assert fake.parts["/token/100/1"] == b"0123456789"
        assert result.part_count == 1
        assert result.remote_status == "completed"

    async def test_manifest_without_parts_is_not_completed(self, files_dir):
        fake = FakeRepository(parts_at=None)
        async with _client(fake) as client:
            [result] = await upload_files(["a.bin"], files_dir, 7, client)

        assert [method for method, _ in fake.calls] == ["POST", "GET", "GET"]
        assert fake.parts == {}
        assert result.remote_status == "initiated"
        assert "lists no parts for 10 bytes" in result.error

    async def test_empty_file_completes_without_parts(self, files_dir):
        fake = FakeRepository(parts_at=None)
        async with _client(fake) as client:
            [result] = await upload_files(["empty.bin"], files_dir, 7, client)

        assert [method for method, _ in fake.calls] == ["POST", "GET", "GET", "POST"]
        assert result.error is None
        assert result.remote_status == "completed"

    async def test_missing_file_is_reported_on_snapshot(self, files_dir):
        fake = FakeRepository()
        async with _client(fake) as client:
            [result] = await upload_files(["nope.bin"], files_dir, 7, client)
        assert result.error
        assert fake.calls == []

    async def test_host_without_file_access(self, files_dir):
        fake = FakeRepository()
        async with _client(fake) as client:
            with patch("figbatch.upload.files.file_access_supported", return_value=False):
                with pytest.raises(FileAccessUnsupportedError):
                    await upload_files(["a.bin"], files_dir, 7, client)

    async def test_no_root_dir(self):
        fake = FakeRepository()
        async with _client(fake) as client:
            with pytest.raises(NoRootDirError):
                await upload_files(["a.bin"], None, 7, client)


# ======================================================================
# Helpers
# ======================================================================


class TestHelpers:
    async def test_md5_streams_in_chunks(self, tmp_path):
        content = b"figbatch" * 1000
        (tmp_path / "big.bin").write_bytes(content)
        handle = await RootDirectory(tmp_path).get_file_handle("big.bin")
        assert await compute_md5(handle, chunk_size=7) == hashlib.md5(content).hexdigest()

    def test_manifest_falls_back_to_location(self):
        location = f"{API}/account/articles/7/files/55"
        manifest = UploadManifest.from_response(
            location, {"status": "PENDING", "parts": [{"partNo": 1, "startOffset": 0, "endOffset": 9}]}
        )
        assert manifest.file_id == "55"
        assert manifest.part_url(manifest.parts[0]) == f"{location}/1"
        assert manifest.parts[0].length == 10
