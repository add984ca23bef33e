"""
Hypertube API — Upload Staging Unit Tests
==========================================

What:  Tests for UploadStager: allow-list, size limit, sniffing, naming,
       write failures, discard and promote.
How:   Real UploadFile objects over in-memory bytes and a tmp_path staging
       directory. Content sniffing is patched where exercised, so libmagic
       is not needed.
"""

import io
from pathlib import Path
from unittest.mock import patch

import pytest
from starlette.datastructures import Headers, UploadFile

from hypertube.exceptions import FileStorageError
from hypertube.services.upload_service import (
    Accepted,
    Rejected,
    UploadStager,
)


def make_upload(content: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def staged_files(directory: Path):
    if not directory.exists():
        return []
    return list(directory.iterdir())


class TestStage:

    @pytest.fixture(autouse=True)
    def _stager(self, tmp_path):
        self.staging = tmp_path / "staging"
        self.stager = UploadStager(str(self.staging), max_file_size=1024, sniff_content=False)

    @pytest.mark.asyncio
    async def test_jpeg_accepted_and_written(self, sample_jpeg_bytes):
        result = await self.stager.stage(make_upload(sample_jpeg_bytes, "Photo.JPG", "image/jpeg"))

        assert isinstance(result, Accepted)
        descriptor = result.descriptor
        assert descriptor.mime_type == "image/jpeg"
        assert descriptor.original_extension == ".jpg"
        assert descriptor.size == len(sample_jpeg_bytes)
        assert descriptor.temp_path.endswith(".jpg")
        assert Path(descriptor.temp_path).read_bytes() == sample_jpeg_bytes

    @pytest.mark.asyncio
    async def test_png_accepted(self, sample_png_bytes):
        result = await self.stager.stage(make_upload(sample_png_bytes, "avatar.png", "image/png"))
        assert isinstance(result, Accepted)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", "text/plain", ""])
    async def test_other_types_rejected_and_nothing_written(self, content_type):
        result = await self.stager.stage(make_upload(b"GIF89a....", "anim.gif", content_type))

        assert result == Rejected("unsupported_type")
        assert staged_files(self.staging) == []

    @pytest.mark.asyncio
    async def test_missing_field(self):
        assert await self.stager.stage(None) == Rejected("missing")

    @pytest.mark.asyncio
    async def test_plain_form_value(self):
        assert await self.stager.stage("not a file") == Rejected("not_a_file")

    @pytest.mark.asyncio
    async def test_too_large(self):
        result = await self.stager.stage(make_upload(b"\xff" * 1025, "big.jpg", "image/jpeg"))

        assert result == Rejected("too_large")
        assert staged_files(self.staging) == []

    @pytest.mark.asyncio
    async def test_content_mismatch_when_sniffing(self, sample_jpeg_bytes):
        self.stager.sniff_content = True
        with patch.object(UploadStager, "_sniff", return_value="image/png"):
            result = await self.stager.stage(make_upload(sample_jpeg_bytes, "a.jpg", "image/jpeg"))

        assert result == Rejected("content_mismatch")

    @pytest.mark.asyncio
    async def test_content_match_when_sniffing(self, sample_jpeg_bytes):
        self.stager.sniff_content = True
        with patch.object(UploadStager, "_sniff", return_value="image/jpeg"):
            result = await self.stager.stage(make_upload(sample_jpeg_bytes, "a.jpg", "image/jpeg"))

        assert isinstance(result, Accepted)

    @pytest.mark.asyncio
    async def test_sequential_uploads_get_distinct_names(self, sample_jpeg_bytes):
        names = set()
        for _ in range(5):
            result = await self.stager.stage(make_upload(sample_jpeg_bytes, "x.jpeg", "image/jpeg"))
            names.add(result.descriptor.filename)

        assert len(names) == 5
        assert len(staged_files(self.staging)) == 5

    @pytest.mark.asyncio
    async def test_write_failure_raises_file_storage_error(self, sample_jpeg_bytes):
        with patch("hypertube.services.upload_service.aiofiles.open", side_effect=OSError("disk full")):
            with pytest.raises(FileStorageError):
                await self.stager.stage(make_upload(sample_jpeg_bytes, "a.jpg", "image/jpeg"))


class TestNaming:

    def test_token_is_monotonic_within_one_millisecond(self, tmp_path):
        stager = UploadStager(str(tmp_path), max_file_size=1024)
        with patch("hypertube.services.upload_service.time.time", return_value=1000.5):
            first = stager.next_filename(".PNG")
            second = stager.next_filename(".png")

        assert first == "1000500.png"
        assert second == "1000501.png"

    def test_token_never_goes_backwards(self, tmp_path):
        stager = UploadStager(str(tmp_path), max_file_size=1024)
        with patch("hypertube.services.upload_service.time.time", return_value=2000.0):
            stager.next_filename(".jpg")
        with patch("hypertube.services.upload_service.time.time", return_value=1999.0):
            assert stager.next_filename(".jpg") == "2000001.jpg"


class TestDiscardAndPromote:

    @pytest.mark.asyncio
    async def test_discard_removes_staged_file(self, tmp_path, sample_jpeg_bytes):
        stager = UploadStager(str(tmp_path / "staging"), max_file_size=1024, sniff_content=False)
        result = await stager.stage(make_upload(sample_jpeg_bytes, "a.jpg", "image/jpeg"))

        stager.discard(result.descriptor)
        assert not Path(result.descriptor.temp_path).exists()

        # Second discard of the same file is a no-op
        stager.discard(result.descriptor)

    @pytest.mark.asyncio
    async def test_promote_moves_file(self, tmp_path, sample_jpeg_bytes):
        stager = UploadStager(str(tmp_path / "staging"), max_file_size=1024, sniff_content=False)
        result = await stager.stage(make_upload(sample_jpeg_bytes, "a.jpg", "image/jpeg"))

        target = stager.promote(result.descriptor, str(tmp_path / "uploads"))

        assert target.parent == tmp_path / "uploads"
        assert target.name == result.descriptor.filename
        assert target.read_bytes() == sample_jpeg_bytes
        assert not Path(result.descriptor.temp_path).exists()
