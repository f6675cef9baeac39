"""
Thread-safe store of visual analysis results keyed by slide id.

Written by the analysis client's worker threads, read by the batch
scheduler. Readers can block for a bounded time until a result arrives.

Every ``clear()`` starts a new generation. Writers pass the generation they
were submitted under, and results from an earlier generation are dropped.
"""

import logging
import threading
from typing import Dict, Optional

from layout.models import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisCache:
    """Slide id to AnalysisResult map guarded by a condition variable."""

    def __init__(self):
        self._results: Dict[str, AnalysisResult] = {}
        self._condition = threading.Condition()
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._condition:
            return self._generation

    def put(self, slide_id: str, result: AnalysisResult, generation: Optional[int] = None) -> bool:
        """Store a result; returns False when it belongs to a cleared generation."""
        with self._condition:
            if generation is not None and generation != self._generation:
                logger.debug(f"Dropping stale analysis for slide {slide_id} "
                             f"(generation {generation}, current {self._generation})")
                return False
            self._results[slide_id] = result
            self._condition.notify_all()
            return True

    def wait_for(self, slide_id: str, timeout: float) -> Optional[AnalysisResult]:
        """
        Block until a result for ``slide_id`` exists or ``timeout`` seconds pass.

        Returns:
            The result, or None on timeout
        """
        with self._condition:
            self._condition.wait_for(lambda: slide_id in self._results, timeout=max(0.0, timeout))
            return self._results.get(slide_id)

    def clear(self):
        with self._condition:
            self._results.clear()
            self._generation += 1

    def __len__(self) -> int:
        with self._condition:
            return len(self._results)
