from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ._base import Resource, drop_none
from ..core.errors import ValidationFailed
from ..utils.logging import get_logger
from ..utils.media_utils import save_b64
from ..utils.pricing import lookup_image_price
from ..utils.validation import check_choice, check_range

logger = get_logger(__name__)

IMAGE_SIZES: Dict[str, List[str]] = {
    "dall-e-2": ["256x256", "512x512", "1024x1024"],
    "dall-e-3": ["1024x1024", "1792x1024", "1024x1792"],
    "gpt-image-1": ["1024x1024", "1536x1024", "1024x1536", "auto"],
}
IMAGE_QUALITIES: Dict[str, List[str]] = {
    "dall-e-2": ["standard"],
    "dall-e-3": ["standard", "hd"],
    "gpt-image-1": ["low", "medium", "high", "auto"],
}
IMAGE_STYLES = ["vivid", "natural"]
RESPONSE_FORMATS = ["url", "b64_json"]
MAX_PROMPT_CHARS = {"dall-e-2": 1000, "dall-e-3": 4000, "gpt-image-1": 32000}


@dataclass
class ImageResult:
    prompt: str
    revised_prompt: Optional[str] = None
    url: Optional[str] = None
    b64_json: Optional[str] = field(default=None, repr=False)
    saved_path: Optional[str] = None
    size: Optional[str] = None
    quality: Optional[str] = None
    model: Optional[str] = None
    estimated_cost: Optional[float] = None
    created: Optional[int] = None


class ImagesResource(Resource):
    """``images/generations``."""

    async def generate(
        self,
        prompt: str,
        *,
        model: str = "dall-e-3",
        size: str = "1024x1024",
        quality: Optional[str] = None,
        style: Optional[str] = None,
        n: int = 1,
        response_format: str = "url",
        output_dir: Optional[Union[str, Path]] = None,
        user: Optional[str] = None,
    ) -> List[ImageResult]:
        """Generate images for ``prompt``.

        When ``output_dir`` is given the images are requested as base64 and
        written there as PNG files; ``saved_path`` records each location.
        """

        if not prompt or not prompt.strip():
            raise ValidationFailed("An image prompt is required.")
        family = model.lower()
        limit = MAX_PROMPT_CHARS.get(family)
        if limit is not None and len(prompt) > limit:
            raise ValidationFailed(f"Prompt exceeds {limit} characters for {model}.")
        if family in IMAGE_SIZES:
            check_choice("size", size, IMAGE_SIZES[family])
            check_choice("quality", quality, IMAGE_QUALITIES[family])
        check_range("n", n, 1, 10)
        if family == "dall-e-3" and n != 1:
            raise ValidationFailed("dall-e-3 only supports n=1.")
        if style is not None:
            if family != "dall-e-3":
                raise ValidationFailed("style is only supported by dall-e-3.")
            check_choice("style", style, IMAGE_STYLES)
        check_choice("response_format", response_format, RESPONSE_FORMATS)

        if output_dir is not None:
            response_format = "b64_json"
        payload: Dict[str, Any] = {"model": model, "prompt": prompt, "n": n, "size": size}
        payload.update(drop_none({"quality": quality, "style": style, "user": user}))
        if family != "gpt-image-1":
            payload["response_format"] = response_format

        raw = await self._post("images/generations", payload)
        created = raw.get("created") or int(time.time())
        unit_price = lookup_image_price(model, size, quality)
        results: List[ImageResult] = []
        for i, item in enumerate(raw.get("data") or []):
            result = ImageResult(
                prompt=prompt,
                revised_prompt=item.get("revised_prompt"),
                url=item.get("url"),
                b64_json=item.get("b64_json"),
                size=size,
                quality=quality or "standard",
                model=model,
                estimated_cost=unit_price,
                created=created,
            )
            if output_dir is not None and result.b64_json:
                target = Path(output_dir).expanduser() / f"image_{created}_{i + 1}.png"
                save_b64(result.b64_json, target)
                result.saved_path = str(target)
            results.append(result)
        logger.info("[generate] %d image(s) generated with %s", len(results), model)
        return results
