from dataclasses import dataclass
from typing import Any, Sequence

from reunite.matching.scorer import ItemText, Scorer
from reunite.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TOP_K = 3


@dataclass
class ScoredCandidate:
    """A counterpart item paired with its similarity score."""

    candidate: Any
    score: int

    def to_dict(self) -> dict:
        return {
            "item": self.candidate.model_dump(mode="json"),
            "score": self.score,
        }


async def rank(
    subject,
    candidates: Sequence,
    scorer: Scorer,
    threshold: int,
    top_k: int = DEFAULT_TOP_K,
) -> list[ScoredCandidate]:
    """
    Score ``candidates`` against ``subject`` and keep the best ones.

    Sorts by score descending (stable, so equal scores keep candidate-list
    order), takes the first ``top_k`` and then drops anything below
    ``threshold``. Scorer errors propagate: a pass either completes or
    yields nothing.
    """
    if not candidates:
        return []

    scores = await scorer.score_all(
        ItemText.of(subject),
        [ItemText.of(candidate) for candidate in candidates],
    )

    scored = [
        ScoredCandidate(candidate=candidate, score=score)
        for candidate, score in zip(candidates, scores)
    ]
    scored.sort(key=lambda sc: sc.score, reverse=True)

    top = [sc for sc in scored[:top_k] if sc.score >= threshold]

    logger.info(
        "ranking_completed",
        strategy=scorer.name,
        candidates=len(candidates),
        kept=len(top),
        threshold=threshold,
        top_scores=[sc.score for sc in top],
    )
    return top
