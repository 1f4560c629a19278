"""
Parallel Processing Module for Batch Match Rating

Implements:
- One isolated engine per match, run in a process (or thread) pool
- Failure isolation: a failing match is reported and excluded
- Progress tracking and result collection
"""

from __future__ import annotations

import hashlib
import logging
import os
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from ecorating.core.config import EngineConfig

logger = logging.getLogger(__name__)

# Default to CPU count - 1, minimum 1
DEFAULT_WORKERS = max(1, (os.cpu_count() or 4) - 1)
MAX_WORKERS = os.cpu_count() or 8

EVENT_FILE_PATTERNS = ("*.jsonl", "*.ndjson")


@dataclass
class MatchTask:
    """A single match to rate."""

    events_path: Path
    match_id: str = ""
    config: EngineConfig = field(default_factory=EngineConfig)

    def __post_init__(self):
        if not self.match_id:
            digest = hashlib.md5(str(self.events_path).encode(), usedforsecurity=False)
            self.match_id = f"{Path(self.events_path).stem}-{digest.hexdigest()[:8]}"


@dataclass
class MatchOutcome:
    """Result of rating one match. ``result`` is None when the match failed."""

    match_id: str
    events_path: str
    success: bool
    duration_seconds: float
    error_message: str | None = None
    error: dict[str, Any] | None = None
    result: dict[str, Any] | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BatchProgress:
    """Matches finished so far, passed to the progress callback after each one."""

    total_tasks: int
    completed_tasks: int = 0
    failed_tasks: int = 0


@dataclass
class BatchResult:
    """Result of a batch run."""

    total_matches: int
    successful: int
    failed: int
    total_duration_seconds: float
    outcomes: list[MatchOutcome] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total_matches == 0:
            return 0.0
        return round((self.successful / self.total_matches) * 100, 1)

    @property
    def results(self) -> list[dict[str, Any]]:
        """Finalized results of the matches that succeeded."""
        return [o.result for o in self.outcomes if o.success and o.result is not None]

    @property
    def failures(self) -> list[MatchOutcome]:
        return [o for o in self.outcomes if not o.success]

    def to_dict(self) -> dict:
        return {
            "total_matches": self.total_matches,
            "successful": self.successful,
            "failed": self.failed,
            "success_rate": self.success_rate,
            "total_duration_seconds": round(self.total_duration_seconds, 2),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def _rate_single_match(task: MatchTask) -> MatchOutcome:
    """
    Worker function to rate a single match.
    This runs in a separate process.
    """
    start_time = time.time()

    try:
        # Import here to avoid pickle issues with multiprocessing
        from ecorating.core.errors import MatchProcessingError
        from ecorating.state_machine import rate_file

        try:
            result = rate_file(task.events_path, config=task.config, match_id=task.match_id)
        except MatchProcessingError as e:
            duration = time.time() - start_time
            return MatchOutcome(
                match_id=task.match_id,
                events_path=str(task.events_path),
                success=False,
                duration_seconds=duration,
                error_message=str(e),
                error=e.to_dict(),
            )

        return MatchOutcome(
            match_id=task.match_id,
            events_path=str(task.events_path),
            success=True,
            duration_seconds=time.time() - start_time,
            result=result.to_dict(),
        )

    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"Failed to rate {task.events_path}: {e}")
        return MatchOutcome(
            match_id=task.match_id,
            events_path=str(task.events_path),
            success=False,
            duration_seconds=duration,
            error_message=str(e),
        )


class ParallelMatchRater:
    """
    Rates many matches in parallel, one isolated engine per match.

    Usage:
        rater = ParallelMatchRater(workers=4)
        batch = rater.rate_batch([Path("m1.jsonl"), Path("m2.jsonl")])
    """

    def __init__(
        self,
        workers: int = DEFAULT_WORKERS,
        use_processes: bool = True,
        config: EngineConfig | None = None,
        progress_callback: Callable[[BatchProgress], None] | None = None,
    ):
        """
        Initialize the parallel rater.

        Args:
            workers: Number of worker processes/threads
            use_processes: If True, use ProcessPoolExecutor; if False, use ThreadPoolExecutor
            config: Engine configuration shared (read-only) by every match
            progress_callback: Optional callback for progress updates
        """
        self.workers = max(1, min(workers, MAX_WORKERS))
        self.use_processes = use_processes
        self.config = config or EngineConfig()
        self.progress_callback = progress_callback

        logger.info(f"ParallelMatchRater initialized with {self.workers} workers")

    def rate_batch(
        self,
        paths: list[Path],
        timeout_per_match: float = 300,
    ) -> BatchResult:
        """
        Rate multiple matches in parallel.

        Matches still running when the batch deadline
        (``timeout_per_match`` times the number of matches) passes are
        cancelled and reported as failed; finished matches keep their outcomes.

        Args:
            paths: Event files, one per match
            timeout_per_match: Timeout in seconds per match

        Returns:
            BatchResult with one outcome per match
        """
        if not paths:
            return BatchResult(total_matches=0, successful=0, failed=0, total_duration_seconds=0.0)

        tasks = [MatchTask(events_path=Path(path), config=self.config) for path in paths]

        progress = BatchProgress(total_tasks=len(tasks))
        start_time = time.time()
        deadline = time.monotonic() + timeout_per_match * len(tasks)
        outcomes: list[MatchOutcome] = []

        def record(outcome: MatchOutcome) -> None:
            outcomes.append(outcome)
            progress.completed_tasks += 1
            if not outcome.success:
                progress.failed_tasks += 1
            if self.progress_callback:
                self.progress_callback(progress)

        ExecutorClass = ProcessPoolExecutor if self.use_processes else ThreadPoolExecutor

        logger.info(f"Starting batch rating of {len(tasks)} matches with {self.workers} workers")

        executor = ExecutorClass(max_workers=self.workers)
        pending: set = set()
        try:
            future_to_task = {executor.submit(_rate_single_match, task): task for task in tasks}
            pending = set(future_to_task)

            while pending:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)

                for future in done:
                    task = future_to_task[future]
                    try:
                        outcome = future.result()
                    except Exception as e:
                        logger.error(f"Task {task.match_id} failed: {e}")
                        outcome = MatchOutcome(
                            match_id=task.match_id,
                            events_path=str(task.events_path),
                            success=False,
                            duration_seconds=0.0,
                            error_message=str(e),
                        )
                    record(outcome)

            for future in pending:
                future.cancel()
                task = future_to_task[future]
                logger.error(f"Task {task.match_id} timed out")
                record(
                    MatchOutcome(
                        match_id=task.match_id,
                        events_path=str(task.events_path),
                        success=False,
                        duration_seconds=time.time() - start_time,
                        error_message="timed out",
                    )
                )
        finally:
            # A stuck worker cannot be interrupted; do not wait for it
            executor.shutdown(wait=not pending, cancel_futures=True)

        total_duration = time.time() - start_time
        successful = sum(1 for o in outcomes if o.success)

        logger.info(
            f"Batch rating complete: {successful}/{len(outcomes)} successful "
            f"in {total_duration:.1f}s"
        )

        return BatchResult(
            total_matches=len(outcomes),
            successful=successful,
            failed=len(outcomes) - successful,
            total_duration_seconds=total_duration,
            outcomes=outcomes,
        )

    def rate_directory(self, directory: Path, recursive: bool = True) -> BatchResult:
        """
        Rate every event file in a directory.

        Args:
            directory: Directory to scan for ``.jsonl`` / ``.ndjson`` files
            recursive: Whether to scan subdirectories

        Returns:
            BatchResult with all outcomes
        """
        paths: list[Path] = []
        for pattern in EVENT_FILE_PATTERNS:
            paths.extend(directory.glob(f"**/{pattern}" if recursive else pattern))
        paths.sort()

        logger.info(f"Found {len(paths)} event files in {directory}")

        return self.rate_batch(paths)
