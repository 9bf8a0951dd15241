from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from ._base import Resource
from ..core.errors import ApiError
from ..utils.analytics import requires_review, risk_level, top_category
from ..utils.batching import DEFAULT_CHUNK_PAUSE, DEFAULT_CHUNK_SIZE, run_chunked
from ..utils.validation import check_range

DEFAULT_MODERATION_MODEL = "omni-moderation-latest"


@dataclass
class ModerationResult:
    input: str
    flagged: bool = False
    flagged_categories: List[str] = field(default_factory=list)
    category_scores: Dict[str, float] = field(default_factory=dict, repr=False)
    max_score: float = 0.0
    top_category: Optional[str] = None
    risk_level: Optional[str] = None
    requires_review: bool = False
    model: Optional[str] = None
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[str] = None
    index: int = 0
    batch_index: int = 0
    position_in_batch: int = 0


def decorate_moderation(text: str, result: Dict[str, Any], model: Optional[str] = None) -> ModerationResult:
    """Turn one entry of ``results`` into a :class:`ModerationResult`."""

    flagged = bool(result.get("flagged"))
    categories = result.get("categories") or {}
    scores = {k: float(v or 0.0) for k, v in (result.get("category_scores") or {}).items()}
    top_name, top_score = top_category(scores)
    level = risk_level(top_score, flagged)
    return ModerationResult(
        input=text,
        flagged=flagged,
        flagged_categories=sorted(name for name, hit in categories.items() if hit),
        category_scores=scores,
        max_score=top_score,
        top_category=top_name,
        risk_level=level,
        requires_review=requires_review(level, flagged),
        model=model,
    )


class ModerationResource(Resource):
    """``moderations``."""

    async def classify(
        self,
        texts: Union[str, Sequence[str]],
        *,
        model: str = DEFAULT_MODERATION_MODEL,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        pause: float = DEFAULT_CHUNK_PAUSE,
        verbose: bool = False,
    ) -> List[ModerationResult]:
        """Moderate ``texts`` chunk by chunk and bucket each into a risk level.

        Risk levels: ``Critical`` above 0.9, ``High`` above 0.7, ``Medium``
        above 0.5, otherwise ``Low`` when flagged and ``Safe`` when not.
        """

        items = [texts] if isinstance(texts, str) else list(texts)
        check_range("chunk_size", chunk_size, 1)

        async def _call(chunk: List[str]) -> Dict[str, Any]:
            return await self._post("moderations", {"model": model, "input": chunk})

        def _record(text: str, position: int, response: Dict[str, Any]) -> ModerationResult:
            return decorate_moderation(
                text, response["results"][position], response.get("model") or model
            )

        def _error(text: str, err: ApiError) -> ModerationResult:
            return ModerationResult(
                input=text,
                model=model,
                success=False,
                error=err.message,
                error_kind=err.kind.value,
            )

        return await run_chunked(
            items,
            _call,
            _record,
            _error,
            chunk_size=chunk_size,
            pause=pause,
            verbose=verbose,
            desc="Moderation",
        )
