"""
Similarity scoring for lost/found item pairs.

Two interchangeable strategies sit behind the ``Scorer`` interface:

- ``LexicalScorer``: per-field token-set Jaccard overlap, weighted
  40/30/30 across title, description and location.
- ``SemanticScorer``: one embedding per item (title, description and location
  joined), compared with cosine similarity.

Both return an integer in [0, 100] and are deterministic for identical
inputs. The ranker only ever talks to ``Scorer``, so strategies can be swapped
through configuration without touching it.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from reunite.config import SEMANTIC, Settings
from reunite.matching.embeddings import EmbeddingClient
from reunite.utils.logger import get_logger

logger = get_logger(__name__)

TITLE_WEIGHT = 0.4
DESCRIPTION_WEIGHT = 0.3
LOCATION_WEIGHT = 0.3

MIN_TOKEN_LENGTH = 3


@dataclass(frozen=True)
class ItemText:
    """The comparable text of an item."""

    title: str
    description: str
    location: str

    @classmethod
    def of(cls, item) -> "ItemText":
        return cls(
            title=item.title or "",
            description=item.description or "",
            location=item.location or "",
        )

    def blob(self) -> str:
        return " ".join(part for part in (self.title, self.description, self.location) if part)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: int) -> int:
    return max(0, min(100, value))


def tokenize(text: str) -> set[str]:
    return {word for word in text.lower().split() if len(word) >= MIN_TOKEN_LENGTH}


def jaccard(text_a: str, text_b: str) -> float:
    tokens_a = tokenize(text_a)
    tokens_b = tokenize(text_b)

    if not tokens_a or not tokens_b:
        return 0.0

    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors, 0.0 for zero or mismatched vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0

    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return sum(x * y for x, y in zip(a, b)) / (norm_a * norm_b)


def lexical_score(a: ItemText, b: ItemText) -> int:
    """
    Weighted per-field Jaccard overlap, 0-100.

    A field with no tokens on either side says nothing about the pair, so its
    weight is left out and the rest are renormalised. A field with tokens on
    only one side still counts, as 0.
    """
    fields = (
        (TITLE_WEIGHT, a.title, b.title),
        (DESCRIPTION_WEIGHT, a.description, b.description),
        (LOCATION_WEIGHT, a.location, b.location),
    )

    total_weight = 0.0
    composite = 0.0
    for weight, text_a, text_b in fields:
        if not tokenize(text_a) and not tokenize(text_b):
            continue
        total_weight += weight
        composite += weight * jaccard(text_a, text_b)

    if total_weight == 0:
        return 0

    return clamp_score(round_half_up(composite / total_weight * 100))


class Scorer(ABC):
    """Maps a pair of items to a similarity score in [0, 100]."""

    name: str = "base"

    @abstractmethod
    async def score(self, a: ItemText, b: ItemText) -> int:
        ...

    async def score_all(self, subject: ItemText, candidates: Sequence[ItemText]) -> list[int]:
        """Score every candidate against the subject, in candidate order."""
        return [await self.score(subject, candidate) for candidate in candidates]


class LexicalScorer(Scorer):
    name = "lexical"

    async def score(self, a: ItemText, b: ItemText) -> int:
        return lexical_score(a, b)


class SemanticScorer(Scorer):
    name = "semantic"

    def __init__(self, client: EmbeddingClient):
        self.client = client

    def _compare(self, vec_a: list[float], vec_b: list[float]) -> int:
        if len(vec_a) != len(vec_b):
            logger.warning(
                "embedding_dimension_mismatch",
                left=len(vec_a),
                right=len(vec_b),
            )
        return clamp_score(round_half_up(cosine_similarity(vec_a, vec_b) * 100))

    async def _embed(self, text: ItemText) -> Optional[list[float]]:
        blob = text.blob()
        if not blob.strip():
            return None
        return await self.client.embed(blob)

    async def score(self, a: ItemText, b: ItemText) -> int:
        vec_a = await self._embed(a)
        vec_b = await self._embed(b)
        if vec_a is None or vec_b is None:
            return 0
        return self._compare(vec_a, vec_b)

    async def score_all(self, subject: ItemText, candidates: Sequence[ItemText]) -> list[int]:
        if not candidates:
            return []

        subject_vec = await self._embed(subject)
        if subject_vec is None:
            return [0] * len(candidates)

        scores = []
        # One request per candidate, sequentially; any ProviderError aborts the pass
        for candidate in candidates:
            candidate_vec = await self._embed(candidate)
            if candidate_vec is None:
                scores.append(0)
            else:
                scores.append(self._compare(subject_vec, candidate_vec))

        return scores


def get_scorer(settings: Settings, client: Optional[EmbeddingClient] = None) -> Scorer:
    if settings.match_strategy == SEMANTIC:
        return SemanticScorer(client or EmbeddingClient.from_settings(settings))
    return LexicalScorer()
