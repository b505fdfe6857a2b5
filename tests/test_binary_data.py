"""Tests for reading input binaries and downloading results."""

from unittest.mock import MagicMock

import pytest
import requests

from conftest import make_response
from deapi_bridge.binary_data import (
    CHUNK_SIZE,
    download_and_prepare_binary_data,
    get_binary_data_file,
)
from deapi_bridge.host import ExecutionHost, LocalWebhookHost
from deapi_bridge.models import BinaryData


class TestGetBinaryDataFile:
    def test_streams_external_binary_in_chunks(self):
        host = MagicMock(spec=ExecutionHost)
        host.assert_binary_data.return_value = BinaryData(id="bin-1", file_name="clip.mp4", mime_type="video/mp4")
        host.get_binary_stream.return_value = iter([b"ab", "cd", bytearray(b"ef"), memoryview(b"gh")])

        attachment = get_binary_data_file(host, 0, "data")

        assert CHUNK_SIZE == 256 * 1024
        host.get_binary_stream.assert_called_once_with("bin-1", CHUNK_SIZE)
        host.get_binary_data_buffer.assert_not_called()
        assert attachment.content == b"abcdefgh"
        assert attachment.filename == "clip.mp4"
        assert attachment.content_type == "video/mp4"

    def test_reads_in_memory_binary_as_one_buffer(self):
        host = MagicMock(spec=ExecutionHost)
        host.assert_binary_data.return_value = BinaryData(file_name="a.wav", mime_type="audio/wav", data=b"RIFF")
        host.get_binary_data_buffer.return_value = b"RIFF"

        attachment = get_binary_data_file(host, 2, "audio")

        host.assert_binary_data.assert_called_once_with(2, "audio")
        host.get_binary_data_buffer.assert_called_once_with(2, "audio")
        host.get_binary_stream.assert_not_called()
        assert attachment.content == b"RIFF"

    def test_fallback_filename_and_content_type(self):
        host = MagicMock(spec=ExecutionHost)
        host.assert_binary_data.return_value = BinaryData(data=b"x")
        host.get_binary_data_buffer.return_value = b"x"

        attachment = get_binary_data_file(host, 0, "data", default_filename="image")

        assert attachment.filename == "image"
        assert attachment.content_type == "application/octet-stream"

    def test_stream_errors_propagate(self):
        host = MagicMock(spec=ExecutionHost)
        host.assert_binary_data.return_value = BinaryData(id="gone")
        host.get_binary_stream.side_effect = FileNotFoundError("gone")

        with pytest.raises(FileNotFoundError):
            get_binary_data_file(host, 0, "data")


class TestDownloadAndPrepareBinaryData:
    @pytest.mark.parametrize(
        "url, filename",
        [
            ("https://cdn.test/results/out.png?signature=abc", "out.png"),
            ("https://cdn.test/results/", "output"),
            ("https://cdn.test", "output"),
        ],
    )
    def test_filename_from_url_path(self, url, filename):
        host = MagicMock()
        host.http_request.return_value = make_response(content=b"img", headers={"content-type": "image/png"})

        download_and_prepare_binary_data(host, url)

        host.http_request.assert_called_once_with("GET", url)
        host.prepare_binary_data.assert_called_once_with(b"img", filename, "image/png")

    def test_content_type_passed_through(self):
        host = MagicMock()
        host.http_request.return_value = make_response(
            content=b"{}", headers={"Content-Type": "application/json; charset=utf-8"}
        )

        download_and_prepare_binary_data(host, "https://cdn.test/result.json")

        host.prepare_binary_data.assert_called_once_with(b"{}", "result.json", "application/json; charset=utf-8")

    def test_missing_content_type_is_none(self):
        host = MagicMock()
        host.http_request.return_value = make_response(content=b"data")

        download_and_prepare_binary_data(host, "https://cdn.test/blob")

        host.prepare_binary_data.assert_called_once_with(b"data", "blob", None)

    def test_returns_prepared_binary_unchanged(self):
        host = MagicMock()
        host.http_request.return_value = make_response(content=b"data")
        prepared = BinaryData(file_name="blob", id="stored")
        host.prepare_binary_data.return_value = prepared

        assert download_and_prepare_binary_data(host, "https://cdn.test/blob") is prepared


class TestLocalWebhookHost:
    def test_image_dimensions_are_recorded(self, png_bytes):
        host = LocalWebhookHost(session=MagicMock())

        binary = host.prepare_binary_data(png_bytes, "out.png", "image/png")

        assert (binary.width, binary.height) == (4, 3)
        assert binary.data == png_bytes
        assert binary.file_size == len(png_bytes)
        assert binary.id is None

    def test_mime_type_guessed_from_filename(self):
        host = LocalWebhookHost(session=MagicMock())

        binary = host.prepare_binary_data(b"hello", "transcript.txt", None)

        assert binary.mime_type == "text/plain"

    def test_unreadable_image_keeps_no_dimensions(self):
        host = LocalWebhookHost(session=MagicMock())

        binary = host.prepare_binary_data(b"not an image", "broken.png", "image/png")

        assert binary.width is None
        assert binary.data == b"not an image"

    def test_large_content_goes_to_the_store(self, binary_store):
        host = LocalWebhookHost(session=MagicMock(), binary_store=binary_store, inline_binary_limit=4)

        binary = host.prepare_binary_data(b"0123456789", "video.mp4", "video/mp4")

        assert binary.data is None
        assert binary.id
        assert binary_store.read(binary.id) == b"0123456789"

    def test_http_request_raises_for_status(self):
        session = MagicMock()
        session.request.return_value = make_response(status_code=404)
        host = LocalWebhookHost(session=session, timeout=5)

        with pytest.raises(requests.HTTPError) as excinfo:
            host.http_request("GET", "https://cdn.test/missing")

        assert excinfo.value.response.status_code == 404
        session.request.assert_called_once_with("GET", "https://cdn.test/missing", timeout=5)


class TestFileBinaryStore:
    def test_stream_in_chunks(self, binary_store):
        binary_id = binary_store.put(b"abcdefg")

        assert list(binary_store.stream(binary_id, 3)) == [b"abc", b"def", b"g"]
        assert binary_store.exists(binary_id)

    def test_ids_cannot_escape_the_root(self, binary_store, tmp_path):
        (tmp_path / "secret.bin").write_bytes(b"secret")

        assert not binary_store.exists("../secret")
