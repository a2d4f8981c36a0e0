"""Turn picked image files into base64 payloads for the inference call."""

from __future__ import annotations

import base64
import binascii
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024


class ImageAcquisitionError(ValueError):
    """Raised when the supplied file cannot be used as a scan image."""


@dataclass(frozen=True, slots=True)
class AcquiredImage:
    """Base64 payload (no data-URI prefix) plus a preview for the result card."""

    payload: str
    mime_type: str
    preview_uri: str


class ImageAcquisition:
    """Validate and encode a single image picked by the user.

    Every ``from_*`` method returns ``None`` when nothing was picked, so the
    caller can treat an empty picker as a no-op.
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> None:
        self._max_bytes = max_bytes

    def from_bytes(self, data: bytes | None, *, mime_type: str | None) -> Optional[AcquiredImage]:
        if not data:
            return None
        mime = _require_image_mime(mime_type)
        self._check_size(len(data))
        return _build(base64.b64encode(data).decode("ascii"), mime)

    def from_base64(self, value: str | None, *, mime_type: str | None = None) -> Optional[AcquiredImage]:
        """Accept a bare base64 string or a ``data:image/...;base64,`` URI."""
        if value is None or not value.strip():
            return None

        value = value.strip()
        if value.startswith("data:"):
            header, sep, value = value.partition(",")
            if not sep or not header.endswith(";base64"):
                raise ImageAcquisitionError("Only base64 data URIs are supported.")
            mime_type = header[len("data:") : -len(";base64")] or mime_type

        mime = _require_image_mime(mime_type)
        try:
            raw = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ImageAcquisitionError("Image data is not valid base64.") from exc
        if not raw:
            return None
        self._check_size(len(raw))
        # Re-encode so the payload never carries whitespace or odd padding.
        return _build(base64.b64encode(raw).decode("ascii"), mime)

    def from_path(self, path: str | Path) -> AcquiredImage:
        file_path = Path(path)
        if not file_path.is_file():
            raise ImageAcquisitionError(f"Image file {file_path} does not exist.")
        mime_type, _ = mimetypes.guess_type(file_path.name)
        image = self.from_bytes(file_path.read_bytes(), mime_type=mime_type)
        if image is None:
            raise ImageAcquisitionError(f"Image file {file_path} is empty.")
        return image

    def _check_size(self, size: int) -> None:
        if size > self._max_bytes:
            raise ImageAcquisitionError(
                f"Image is {size} bytes; the limit is {self._max_bytes} bytes."
            )


def _require_image_mime(mime_type: str | None) -> str:
    mime = (mime_type or "").strip().lower()
    if not mime.startswith("image/"):
        raise ImageAcquisitionError(
            f"Expected an image file, got '{mime_type or 'unknown'}'."
        )
    return mime


def _build(payload: str, mime_type: str) -> AcquiredImage:
    return AcquiredImage(
        payload=payload,
        mime_type=mime_type,
        preview_uri=f"data:{mime_type};base64,{payload}",
    )


__all__ = ["AcquiredImage", "ImageAcquisition", "ImageAcquisitionError"]
