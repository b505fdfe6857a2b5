from urllib.parse import urlparse

from deapi_bridge.models import BinaryData, FileAttachment

CHUNK_SIZE = 256 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_OUTPUT_FILENAME = "output"


def _chunk_bytes(chunk) -> bytes:
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


def get_binary_data_file(host, item_index: int, property_name: str, default_filename: str = "file") -> FileAttachment:
    """Read the binary property ``property_name`` of an input item as a FileAttachment.

    Content held in external storage is streamed in CHUNK_SIZE pieces and
    joined; in-memory content is read as one buffer.
    """
    binary = host.assert_binary_data(item_index, property_name)

    if binary.id:
        chunks = [_chunk_bytes(chunk) for chunk in host.get_binary_stream(binary.id, CHUNK_SIZE)]
        content = b"".join(chunks)
    else:
        content = host.get_binary_data_buffer(item_index, property_name)

    return FileAttachment(
        filename=binary.file_name or default_filename,
        content_type=binary.mime_type or DEFAULT_CONTENT_TYPE,
        content=content,
    )


def download_and_prepare_binary_data(host, result_url: str) -> BinaryData:
    response = host.http_request("GET", result_url)

    filename = urlparse(result_url).path.split("/")[-1] or DEFAULT_OUTPUT_FILENAME
    mime_type = response.headers.get("content-type")

    return host.prepare_binary_data(response.content, filename, mime_type)
