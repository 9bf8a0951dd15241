from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Dict, List, Sequence, Tuple, Union

from .logging import get_logger

logger = get_logger(__name__)

_FALLBACK_IMAGE_MIME = "image/jpeg"


def guess_mime(path: Union[str, Path], default: str = "application/octet-stream") -> str:
    mime, _ = mimetypes.guess_type(str(path))
    return mime or default


def read_upload(path: Union[str, Path]) -> Tuple[str, bytes, str]:
    """Return ``(filename, content, mime)`` ready for a multipart upload."""

    p = Path(path)
    with p.open("rb") as f:
        content = f.read()
    return p.name, content, guess_mime(p)


def encode_image(path: Union[str, Path]) -> str:
    """Return the image at ``path`` as a ``data:`` URL."""

    p = Path(path)
    with p.open("rb") as f:
        b64 = base64.b64encode(f.read()).decode("utf-8")
    return f"data:{guess_mime(p, _FALLBACK_IMAGE_MIME)};base64,{b64}"


def image_content_parts(text: str, paths: Sequence[Union[str, Path]]) -> List[Dict[str, object]]:
    """Build chat ``content`` parts: the text followed by inline images."""

    parts: List[Dict[str, object]] = []
    if text:
        parts.append({"type": "text", "text": text})
    for path in paths:
        parts.append({"type": "image_url", "image_url": {"url": encode_image(path)}})
    return parts


def save_b64(data: str, path: Union[str, Path]) -> int:
    """Decode ``data`` into ``path`` and return the number of bytes written."""

    raw = base64.b64decode(data)
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(raw)
    logger.debug("Wrote %d bytes to %s", len(raw), p)
    return len(raw)
