import time
from typing import Mapping

from deapi_bridge.models import FileAttachment

FormdataValue = str | int | float | bool | FileAttachment | None


def new_boundary() -> str:
    return f"----DeapiFormBoundary{int(time.time() * 1000)}"


def _text_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def generate_formdata_body(boundary: str, fields: Mapping[str, FormdataValue]) -> bytes:
    """Build a multipart/form-data body from ``fields``, keeping their order.

    Text values (and None, sent as an empty string) become plain fields,
    FileAttachment values become file fields carrying the raw bytes. Names,
    values and filenames are written as is.
    """
    parts: list[bytes] = []

    for name, value in fields.items():
        if isinstance(value, FileAttachment):
            parts.append(
                (
                    f"--{boundary}\r\n"
                    f'Content-Disposition: form-data; name="{name}"; filename="{value.filename}"\r\n'
                    f"Content-Type: {value.content_type}\r\n\r\n"
                ).encode("utf-8")
            )
            parts.append(value.content)
            parts.append(b"\r\n")
        else:
            parts.append(
                (
                    f"--{boundary}\r\n"
                    f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
                    f"{_text_value(value)}\r\n"
                ).encode("utf-8")
            )

    parts.append(f"--{boundary}--\r\n".encode("utf-8"))
    return b"".join(parts)
