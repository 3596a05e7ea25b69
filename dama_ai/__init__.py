"""Position evaluation and minimax search for the checkers engine."""

from .cancel import SearchCancelled, SearchTimeout
from .config import SearchSettings
from .evaluation import DEFAULT_WEIGHTS, EvaluationWeights, evaluate, evaluate_board
from .minimax import SearchResult, TranspositionTable, best_move, search, select_move
from .worker import SearchJob, SearchWorker

__all__ = [
    "SearchCancelled",
    "SearchTimeout",
    "SearchSettings",
    "EvaluationWeights",
    "DEFAULT_WEIGHTS",
    "evaluate",
    "evaluate_board",
    "SearchResult",
    "TranspositionTable",
    "best_move",
    "search",
    "select_move",
    "SearchJob",
    "SearchWorker",
]
