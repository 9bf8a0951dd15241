from __future__ import annotations

from typing import Any, Dict, List, Optional

from ._base import Resource, list_data
from ..utils.logging import get_logger
from ..utils.media_utils import guess_mime, read_upload
from ..utils.validation import IMAGE_EXTENSIONS, PathLike, check_choice, check_file

logger = get_logger(__name__)

FILE_PURPOSES = ["assistants", "vision", "batch", "fine-tune", "user_data", "evals"]


class FilesResource(Resource):
    """``files``: pass-through upload, listing, download and deletion."""

    async def upload(self, path: PathLike, *, purpose: str = "assistants") -> Dict[str, Any]:
        check_choice("purpose", purpose, FILE_PURPOSES)
        resolved = check_file(path, IMAGE_EXTENSIONS if purpose == "vision" else None)
        uploaded = await self._executor.request(
            "POST",
            "files",
            form_fields={"purpose": purpose},
            files=[("file", read_upload(resolved))],
        )
        logger.debug("[upload] %s -> %s (%s)", resolved.name, uploaded.get("id"), purpose)
        return uploaded

    async def upload_bytes(
        self, filename: str, content: bytes, *, purpose: str = "batch"
    ) -> Dict[str, Any]:
        check_choice("purpose", purpose, FILE_PURPOSES)
        return await self._executor.request(
            "POST",
            "files",
            form_fields={"purpose": purpose},
            files=[("file", (filename, content, guess_mime(filename)))],
        )

    async def list(self, *, purpose: Optional[str] = None) -> List[Dict[str, Any]]:
        return list_data(await self._get("files", params={"purpose": purpose}))

    async def retrieve(self, file_id: str) -> Dict[str, Any]:
        return await self._get(f"files/{file_id}")

    async def delete(self, file_id: str) -> Dict[str, Any]:
        return await self._delete(f"files/{file_id}")

    async def content(self, file_id: str) -> bytes:
        return await self._get(f"files/{file_id}/content", expect="bytes")
