# converter_service/core/files.py
from __future__ import annotations

import os
from dataclasses import dataclass

from starlette.datastructures import UploadFile
from starlette.types import Message, Receive

OCTET_STREAM = "application/octet-stream"
CHUNK = 1024 * 1024
# multipart boundaries and part headers around the file bytes
MULTIPART_OVERHEAD = 64 * 1024


class UploadTooLarge(ValueError):
    pass


@dataclass(frozen=True)
class DocumentFormat:
    name: str
    extension: str
    mime_types: frozenset[str]

    @property
    def label(self) -> str:
        return self.name.upper()


# Some browsers send application/octet-stream for Office files
FORMATS: dict[str, DocumentFormat] = {
    "docx": DocumentFormat(
        "docx",
        ".docx",
        frozenset({
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            OCTET_STREAM,
        }),
    ),
    "pptx": DocumentFormat(
        "pptx",
        ".pptx",
        frozenset({
            "application/vnd.openxmlformats-officedocument.presentationml.presentation",
            OCTET_STREAM,
        }),
    ),
    "ppt": DocumentFormat(
        "ppt",
        ".ppt",
        frozenset({"application/vnd.ms-powerpoint", OCTET_STREAM}),
    ),
}


def validate_upload(fmt: DocumentFormat, filename: str | None, content_type: str | None) -> str | None:
    """Return an error message, or None when the upload matches ``fmt``."""
    _, ext = os.path.splitext((filename or "").lower())
    if ext != fmt.extension:
        return f"File must have {fmt.extension} extension"

    ct = (content_type or "").split(";", 1)[0].strip().lower()
    if ct not in fmt.mime_types:
        return f"Invalid file type. Only {fmt.label} files are allowed"
    return None


async def read_upload(upload: UploadFile, max_bytes: int) -> bytes:
    buf = bytearray()
    while True:
        chunk = await upload.read(CHUNK)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise UploadTooLarge(too_large_message(max_bytes))
    return bytes(buf)


def too_large_message(max_bytes: int) -> str:
    return f"upload exceeds {max_bytes // (1024 * 1024)} MB"


def declared_too_large(content_length: str | None, max_bytes: int) -> bool:
    """True when the request's Content-Length already exceeds the cap."""
    try:
        return int(content_length) > max_bytes + MULTIPART_OVERHEAD
    except (TypeError, ValueError):
        return False


def limit_body(receive: Receive, max_bytes: int) -> Receive:
    """Wrap an ASGI ``receive`` so reading stops once the body passes the cap.

    Covers chunked uploads that carry no Content-Length: the multipart parser
    never gets more than ``max_bytes`` plus framing to spool.
    """
    limit = max_bytes + MULTIPART_OVERHEAD
    seen = 0

    async def limited() -> Message:
        nonlocal seen
        message = await receive()
        if message["type"] == "http.request":
            seen += len(message.get("body", b""))
            if seen > limit:
                raise UploadTooLarge(too_large_message(max_bytes))
        return message

    return limited
