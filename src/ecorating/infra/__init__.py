"""
eco-rating Infrastructure - Batch processing.

- parallel: process/thread pool running one isolated engine per match
"""

from ecorating.infra.parallel import (
    BatchProgress,
    BatchResult,
    MatchOutcome,
    MatchTask,
    ParallelMatchRater,
)

__all__: list[str] = [
    "BatchProgress",
    "BatchResult",
    "MatchOutcome",
    "MatchTask",
    "ParallelMatchRater",
]
