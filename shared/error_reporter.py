#!/usr/bin/env python3
"""
Extraction Run Reports
======================

A RunReport collects what happened during one extraction run: the slide
source used, slides omitted after errors, the terminal error when nothing
was extracted, and counters. It is written as JSON by ``extract --report``.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from shared.processing_exceptions import ProcessingError, log_structured_error

logger = logging.getLogger(__name__)


class RunReport:
    """Errors and counters of one extraction run."""

    def __init__(self, document: str):
        self.document = document
        self.started_at = time.time()
        self.finished_at: Optional[float] = None
        self.success = False
        self.errors: List[Dict[str, Any]] = []
        self.metrics: Dict[str, Any] = {}

    @property
    def duration(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    def record_error(self, error: ProcessingError, **context):
        """Append a structured error and log it at the level its recoverability implies."""
        entry = error.to_dict()
        entry.pop('stack_trace', None)
        entry.update(context)
        self.errors.append(entry)
        log_structured_error(error, logger)

    def set_metrics(self, metrics: Dict[str, Any]):
        self.metrics.update(metrics)

    def finish(self, error: Optional[ProcessingError] = None):
        """
        Close the report.

        Args:
            error: Terminal error; the run counts as failed when given
        """
        if error is not None:
            self.record_error(error)
        self.success = error is None
        self.finished_at = time.time()

    def error_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for entry in self.errors:
            code = entry.get('error_code', 'UNKNOWN')
            counts[code] = counts.get(code, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document': self.document,
            'success': self.success,
            'started_at': time.strftime('%Y-%m-%dT%H:%M:%S', time.localtime(self.started_at)),
            'duration': self.duration,
            'metrics': self.metrics,
            'error_counts': self.error_counts(),
            'errors': self.errors,
        }

    def save_to_file(self, file_path: Union[str, Path]) -> Path:
        """Write the report as JSON (temp file, then replace)."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = file_path.with_suffix('.tmp')
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False, default=str)
        temp_path.replace(file_path)

        logger.info(f"Run report saved to: {file_path}")
        return file_path


def log_run_start(document: str):
    logger.info(f"Extracting slide text from '{document}'")


def log_run_summary(report: RunReport):
    """One line per counter on success; the first few errors on failure."""
    if report.success:
        logger.info(f"Extraction of '{report.document}' finished in {report.duration:.2f}s")
        for key, value in report.metrics.items():
            logger.info(f"   {key.replace('_', ' ')}: {value}")
        omitted = report.error_counts().get('SLIDE_EXTRACTION_FAILED', 0)
        if omitted:
            logger.warning(f"   {omitted} slide(s) omitted after errors")
        return

    logger.error(f"Extraction of '{report.document}' produced no slides")
    for entry in report.errors[:3]:
        logger.error(f"   - [{entry.get('error_code')}] {entry.get('message')}")
