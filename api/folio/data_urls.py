"""Decoding of embedded ``data:<mime>;base64,<payload>`` images."""

from __future__ import annotations

import base64
import binascii
import math
import re
from dataclasses import dataclass

from .errors import InvalidDataUrlError

BYTES_PER_MB = 1024 * 1024

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]*);base64,(?P<payload>.*)$", re.DOTALL)


@dataclass(frozen=True)
class DecodedImage:
    content: bytes
    mime_type: str

    @property
    def size_mb(self) -> int:
        """Size in whole megabytes, rounded up."""
        return math.ceil(len(self.content) / BYTES_PER_MB)

    @property
    def extension(self) -> str:
        return extension_from_mime(self.mime_type)


def parse_data_url(data_url: str) -> DecodedImage:
    match = _DATA_URL_RE.match(data_url or "")
    if not match:
        raise InvalidDataUrlError("Invalid data URL")
    try:
        content = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidDataUrlError(f"Invalid base64 payload: {e}") from e
    return DecodedImage(content=content, mime_type=match.group("mime"))


def extension_from_mime(mime: str) -> str:
    """``image/png`` -> ``png``, ``image/svg+xml`` -> ``svg``, no subtype -> ``bin``."""
    subtype = mime.split("/", 1)[1] if "/" in mime else ""
    if not subtype:
        return "bin"
    return subtype.split("+", 1)[0]
