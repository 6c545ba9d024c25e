"""Tests for save_upload outside the HTTP layer."""

import asyncio
import io
from pathlib import Path

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from streamcast.api import uploads
from streamcast.api.uploads import UploadPolicy, save_upload


def make_upload(content: bytes, content_type: str = "video/mp4") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename="clip.mp4",
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def policy(tmp_path: Path) -> UploadPolicy:
    return UploadPolicy(upload_dir=tmp_path / "uploads", max_bytes=8 * uploads.CHUNK_SIZE)


class TestSaveUpload:
    async def test_chunks_written_off_the_event_loop(self, policy, monkeypatch):
        offloaded = []
        real_to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            offloaded.append(func)
            return await real_to_thread(func, *args, **kwargs)

        monkeypatch.setattr(uploads.asyncio, "to_thread", recording_to_thread)
        content = b"x" * (2 * uploads.CHUNK_SIZE + 10)

        path = await save_upload(make_upload(content), policy)

        assert path.read_bytes() == content
        assert len(offloaded) == 3
        assert all(getattr(func, "__name__", "") == "write" for func in offloaded)

    async def test_oversize_removes_partial_file(self, tmp_path):
        small = UploadPolicy(upload_dir=tmp_path / "uploads", max_bytes=16)

        with pytest.raises(uploads.AppError) as exc_info:
            await save_upload(make_upload(b"x" * 64), small)

        assert exc_info.value.status_code == 413
        assert list(small.upload_dir.iterdir()) == []
