from reunite.matching.engine import MatchingEngine
from reunite.matching.notifier import Notifier, NotifyResult
from reunite.matching.ranker import ScoredCandidate, rank
from reunite.matching.scorer import (
    ItemText,
    LexicalScorer,
    Scorer,
    SemanticScorer,
    get_scorer,
)
from reunite.matching.store import MatchStore

__all__ = [
    "MatchingEngine",
    "Notifier",
    "NotifyResult",
    "ScoredCandidate",
    "rank",
    "ItemText",
    "LexicalScorer",
    "Scorer",
    "SemanticScorer",
    "get_scorer",
    "MatchStore",
]
