from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ._base import Resource, drop_none
from ..core.errors import ApiError, ValidationFailed
from ..utils.analytics import count_tokens, estimate_cost
from ..utils.batching import DEFAULT_CHUNK_PAUSE, DEFAULT_CHUNK_SIZE, run_chunked
from ..utils.validation import check_range

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


@dataclass
class EmbeddingResult:
    input: str
    embedding: Optional[List[float]] = field(default=None, repr=False)
    dimensions: int = 0
    model: Optional[str] = None
    estimated_tokens: int = 0
    estimated_cost: Optional[float] = None
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[str] = None
    index: int = 0
    batch_index: int = 0
    position_in_batch: int = 0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    u = np.asarray(a, dtype=float)
    v = np.asarray(b, dtype=float)
    if u.shape != v.shape:
        raise ValidationFailed(f"Vectors differ in length: {u.shape[0]} vs {v.shape[0]}")
    denom = float(np.linalg.norm(u) * np.linalg.norm(v))
    if denom == 0.0:
        return 0.0
    return float(np.dot(u, v) / denom)


def _vector_at(response: Dict[str, Any], position: int) -> List[float]:
    data = response["data"]
    for item in data:
        if item.get("index") == position:
            return item["embedding"]
    return data[position]["embedding"]


class EmbeddingsResource(Resource):
    """``embeddings``."""

    async def create(
        self,
        texts: Union[str, Sequence[str]],
        *,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimensions: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        pause: float = DEFAULT_CHUNK_PAUSE,
        verbose: bool = False,
    ) -> List[EmbeddingResult]:
        """Embed ``texts`` in chunks of ``chunk_size`` (one request per chunk).

        Returns one :class:`EmbeddingResult` per input.  A failing chunk marks
        only its own items as unsuccessful.
        """

        items = [texts] if isinstance(texts, str) else list(texts)
        check_range("dimensions", dimensions, 1)
        check_range("chunk_size", chunk_size, 1, 2048)

        async def _call(chunk: List[str]) -> Dict[str, Any]:
            body = drop_none({"model": model, "input": chunk, "dimensions": dimensions})
            return await self._post("embeddings", body)

        def _record(text: str, position: int, response: Dict[str, Any]) -> EmbeddingResult:
            vector = _vector_at(response, position)
            tokens = count_tokens(text, model)
            return EmbeddingResult(
                input=text,
                embedding=vector,
                dimensions=len(vector),
                model=response.get("model") or model,
                estimated_tokens=tokens,
                estimated_cost=estimate_cost(model, tokens, 0),
            )

        def _error(text: str, err: ApiError) -> EmbeddingResult:
            return EmbeddingResult(
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
            desc="Embeddings",
        )

    async def similarity(
        self, first: str, second: str, *, model: str = DEFAULT_EMBEDDING_MODEL
    ) -> float:
        """Cosine similarity between two texts, embedded in one request."""

        response = await self._post("embeddings", {"model": model, "input": [first, second]})
        return cosine_similarity(_vector_at(response, 0), _vector_at(response, 1))
