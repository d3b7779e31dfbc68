"""Tests for the filesystem-backed capture access service."""

import base64
from urllib.parse import quote

import pytest

from capture_gallery.core.errors import FileAccessError
from capture_gallery.gallery import GalleryStore
from capture_gallery.ingest.access import CaptureAccessService, LocalCaptureAccess


class TestLocalCaptureAccess:
    """Tests for LocalCaptureAccess."""

    def test_satisfies_protocol(self):
        assert isinstance(LocalCaptureAccess(), CaptureAccessService)

    async def test_reads_path_as_base64(self, tmp_path):
        capture = tmp_path / "IMG_0001.jpg"
        capture.write_bytes(b"Hello")

        payload = await LocalCaptureAccess().get_base64_from_file_path(str(capture))

        assert payload == base64.b64encode(b"Hello").decode("ascii")

    async def test_reads_file_uri(self, tmp_path):
        capture = tmp_path / "IMG 0001.jpg"
        capture.write_bytes(b"Hello")

        payload = await LocalCaptureAccess().get_base64_from_file_path(capture.as_uri())

        assert payload == "SGVsbG8="

    async def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileAccessError, match="Cannot read capture file"):
            await LocalCaptureAccess().get_base64_from_file_path(str(tmp_path / "nope.jpg"))

    async def test_content_uri_is_unsupported(self):
        with pytest.raises(FileAccessError, match="Unsupported capture URI scheme: content"):
            await LocalCaptureAccess().get_base64_from_file_path("content://media/1")

    async def test_delete_file(self, tmp_path):
        capture = tmp_path / "IMG_0001.jpg"
        capture.write_bytes(b"Hello")

        await LocalCaptureAccess().delete_file(str(capture))

        assert not capture.exists()

    async def test_delete_missing_file_raises(self, tmp_path):
        with pytest.raises(FileAccessError):
            await LocalCaptureAccess().delete_file(str(tmp_path / "nope.jpg"))

    def test_convert_to_file_uri(self, tmp_path):
        capture = tmp_path / "VID_0001.mp4"
        assert LocalCaptureAccess().convert_file_src(str(capture)) == capture.as_uri()

    def test_convert_with_file_server_base(self):
        access = LocalCaptureAccess(file_server_base="http://localhost/_capacitor_file_/")

        url = access.convert_file_src("file:///data/user/0/app/cache/VID 1.mp4")

        assert url == "http://localhost/_capacitor_file_/data/user/0/app/cache/VID%201.mp4"

    def test_from_settings_uses_file_server_base(self, settings):
        settings = settings.model_copy(update={"file_server_base": "http://localhost:8080/files/"})

        access = LocalCaptureAccess.from_settings(settings)

        assert access.file_server_base == "http://localhost:8080/files"
        assert access.convert_file_src("/data/VID_1.mp4") == "http://localhost:8080/files/data/VID_1.mp4"

    def test_from_settings_without_base_uses_file_uris(self, settings, tmp_path):
        access = LocalCaptureAccess.from_settings(settings)
        assert access.convert_file_src(str(tmp_path / "a.mp4")) == (tmp_path / "a.mp4").as_uri()

    @pytest.mark.parametrize("path", ["content://media/external/video/1", "relative/clip.mp4"])
    def test_convert_unsupported_returns_none(self, path):
        assert LocalCaptureAccess().convert_file_src(path) is None


class TestLocalGallery:
    """End-to-end ingestion against real files."""

    async def test_photo_file_deleted_video_file_kept(self, tmp_path, settings, jpeg_with_exif):
        photo = tmp_path / "IMG_0001.jpg"
        photo.write_bytes(jpeg_with_exif)
        video = tmp_path / "VID_0001.mp4"
        video.write_bytes(b"\x00\x00\x00\x18ftypmp42")
        settings = settings.model_copy(update={"file_prefixes": (str(tmp_path),)})
        gallery = GalleryStore(LocalCaptureAccess(), settings=settings)

        photo_item = await gallery.add_photo(str(photo))
        video_item = await gallery.add_video(str(video))
        await gallery.wait_for_cleanups()

        assert photo_item.src.startswith("data:image/jpeg;base64,")
        assert photo_item.parsed_metadata["Make"] == "Canon"
        assert not photo.exists()
        assert video_item.src == video.as_uri()
        assert video.exists()

    async def test_default_access_uses_configured_file_server(self, tmp_path, settings):
        video = tmp_path / "VID_0001.mp4"
        video.write_bytes(b"\x00\x00\x00\x18ftypmp42")
        settings = settings.model_copy(
            update={
                "file_prefixes": (str(tmp_path),),
                "file_server_base": "http://localhost/_capacitor_file_",
            }
        )
        gallery = GalleryStore(settings=settings)

        item = await gallery.add_video(str(video))

        assert item.src == f"http://localhost/_capacitor_file_{quote(video.as_posix())}"
