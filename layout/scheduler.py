#!/usr/bin/env python3
"""
Batch Scheduler
===============

Drives one extraction run over a whole document:

    Idle -> LocatingSlides -> CollectingItems -> ProcessingSlides -> Sorting -> Done

Slides are located through the document's slide grid when it has one, and
through frame naming otherwise (or when the grid is empty, yields nothing,
or raises). Collection and processing advance in fixed-size batches; a run
is a generator that yields a ProgressEvent after each batch, so a host can
stay responsive and report progress between increments.

When a visual analysis collaborator is attached, each processing batch
first submits rendered images of its slides, then every slide waits a
bounded time for its result in the shared cache. A slide whose analysis
has not arrived is processed with the default column policy.

A failure on one slide is logged and the slide is omitted; the run goes on.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Generator, List, Optional, Protocol, Tuple

from hosts.base import ExportedImage
from layout.models import ProgressEvent, RunState, SlideRecord, SlideRef
from layout.slide_extractor import extract_slide_text, slide_size
from layout.slide_locator import collect_from_frames, collect_from_grid
from shared.analysis_cache import AnalysisCache
from shared.config_manager import AnalysisSettings, BatchSettings, LayoutSettings
from shared.error_reporter import RunReport, log_run_start, log_run_summary
from shared.processing_exceptions import (
    NoSlidesFoundError,
    RunInProgressError,
    SlideExtractionError,
    SourceUnavailableError,
    log_structured_error,
)

logger = logging.getLogger(__name__)


class AnalysisSubmitter(Protocol):
    """Anything that accepts a slide image and later fills the analysis cache."""

    def submit(self, slide_id: str, image: ExportedImage) -> Any:
        ...


@dataclass
class RunResult:
    """Outcome of one extraction run."""
    records: List[SlideRecord] = field(default_factory=list)
    error: Optional[str] = None
    report: Optional[RunReport] = None
    source: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self):
        return [record.to_dict() for record in self.records]


def slide_id_of(ref: SlideRef) -> str:
    """Stable cache key for a located slide."""
    node_id = getattr(ref.element, 'id', None)
    if node_id:
        return str(node_id)
    return f"{ref.section_number}-{ref.slide_number}"


class ExtractionRun:
    """
    A single pass over one document.

    Use :meth:`events` as a generator; its return value is the RunResult.
    """

    def __init__(self,
                 document: Any,
                 layout_settings: LayoutSettings,
                 batch_settings: BatchSettings,
                 analysis_settings: AnalysisSettings,
                 analyzer: Optional[AnalysisSubmitter] = None,
                 cache: Optional[AnalysisCache] = None,
                 session_log: Any = None):
        self.document = document
        self.layout_settings = layout_settings
        self.batch_settings = batch_settings
        self.analysis_settings = analysis_settings
        self.analyzer = analyzer
        self.cache = cache
        self.session_log = session_log
        self.state = RunState.IDLE
        self.source: Optional[str] = None

    def events(self) -> Generator[ProgressEvent, None, RunResult]:
        document_name = getattr(self.document, 'name', '') or 'document'
        report = RunReport(document_name)
        log_run_start(document_name)

        if self.cache is not None:
            self.cache.clear()

        yield ProgressEvent(0, 0, "Starting extraction...")

        refs, has_grid = yield from self._locate()

        records: List[SlideRecord] = []
        if refs:
            records = yield from self._process(refs, report)

        self.state = RunState.SORTING
        records.sort(key=lambda record: record.sort_key)
        for index, record in enumerate(records, start=1):
            record.overall_slide_number = index

        report.set_metrics({
            'slides_located': len(refs),
            'slides_extracted': len(records),
            'slides_failed': len(refs) - len(records),
            'slide_source': self.source,
        })

        error_message = None
        if not records:
            error = NoSlidesFoundError(has_slide_grid=has_grid)
            error_message = error.message
            report.finish(error)
        else:
            report.finish()

        if self.session_log is not None:
            self.session_log.update_processing_stats(report.metrics)

        log_run_summary(report)
        self.state = RunState.DONE
        return RunResult(records=records, error=error_message, report=report, source=self.source)

    def _locate(self) -> Generator[ProgressEvent, None, Tuple[List[SlideRef], bool]]:
        self.state = RunState.LOCATING_SLIDES
        get_slide_grid: Optional[Callable[[], Any]] = getattr(self.document, 'get_slide_grid', None)
        has_grid = callable(get_slide_grid)

        refs: List[SlideRef] = []
        if has_grid:
            yield ProgressEvent(0, 0, "Accessing slide grid...")
            try:
                grid = get_slide_grid()
                if not grid:
                    raise SourceUnavailableError("slide grid is empty")
                self.state = RunState.COLLECTING_ITEMS
                refs = yield from collect_from_grid(grid, self.batch_settings.grid_batch_size)
                if not refs:
                    raise SourceUnavailableError("slide grid has no visible slides")
                self.source = 'grid'
            except SourceUnavailableError as e:
                logger.info(f"{e.message}; {e.recovery_hint}")
                refs = []
            except Exception as e:
                log_structured_error(SourceUnavailableError(str(e), cause=e), logger)
                refs = []
        else:
            logger.info("Slide grid is not available, using frame names")

        if not refs:
            self.state = RunState.LOCATING_SLIDES
            yield ProgressEvent(0, 0, "Scanning for frames...")
            try:
                frames = list(self.document.find_frames())
                logger.debug(f"Found {len(frames)} frames on the page")
                self.state = RunState.COLLECTING_ITEMS
                refs = yield from collect_from_frames(frames, self.batch_settings.frame_batch_size)
            except Exception as e:
                logger.error(f"Error in frame-name slide detection: {e}")
                refs = []
            self.source = 'frames' if refs else None

        return refs, has_grid

    def _process(self, refs: List[SlideRef], report: RunReport) -> Generator[ProgressEvent, None, List[SlideRecord]]:
        self.state = RunState.PROCESSING_SLIDES
        total = len(refs)
        batch_size = self.batch_settings.process_batch_size
        records: List[SlideRecord] = []

        yield ProgressEvent(0, total, f"Found {total} slides. Processing...")

        for start in range(0, total, batch_size):
            batch = refs[start:start + batch_size]
            self._request_analysis(batch)

            for ref in batch:
                record = self._process_slide(ref, report)
                if record is not None:
                    records.append(record)

            done = start + len(batch)
            yield ProgressEvent(done, total, f"Processing slide {done} of {total}...")

        return records

    def _request_analysis(self, batch: List[SlideRef]):
        if self.analyzer is None or self.cache is None:
            return

        for ref in batch:
            try:
                image = self.document.export_image(ref.element, self.analysis_settings.target_width)
                self.analyzer.submit(slide_id_of(ref), image)
            except Exception as e:
                logger.warning(f"Could not submit slide {ref.section_number}-{ref.slide_number} for analysis: {e}")

    def _await_analysis(self, ref: SlideRef):
        if self.analyzer is None or self.cache is None:
            return None

        analysis = self.cache.wait_for(slide_id_of(ref), self.analysis_settings.wait_timeout_ms / 1000.0)
        if analysis is None:
            logger.debug(f"No analysis for slide {ref.section_number}-{ref.slide_number}, using default layout")
        return analysis

    def _process_slide(self, ref: SlideRef, report: RunReport) -> Optional[SlideRecord]:
        slide_key = f"{ref.section_number}-{ref.slide_number}"
        try:
            analysis = self._await_analysis(ref)
            plain_text, formatted_text = extract_slide_text(
                ref.element,
                self.layout_settings,
                analysis,
                self.analysis_settings.min_region_confidence,
            )
        except Exception as e:
            error = SlideExtractionError(ref.section_number, ref.slide_number, str(e), cause=e)
            report.record_error(error)
            if self.session_log is not None:
                self.session_log.log_slide_failed(slide_key, str(e), {'slide_id': slide_id_of(ref)})
            return None

        if self.session_log is not None:
            width, height = slide_size(ref.element, self.layout_settings)
            self.session_log.log_slide_extracted(slide_key, {
                'elements': len(plain_text),
                'width': width,
                'height': height,
                'analysed': analysis is not None,
            })

        return SlideRecord(
            section_number=ref.section_number,
            slide_number=ref.slide_number,
            plain_text=plain_text,
            formatted_text=formatted_text,
        )


class ExtractionScheduler:
    """
    Runs extractions one at a time.

    A run requested while another is active is rejected with
    RunInProgressError when the new run's generator is first advanced.
    """

    def __init__(self,
                 layout_settings: Optional[LayoutSettings] = None,
                 batch_settings: Optional[BatchSettings] = None,
                 analysis_settings: Optional[AnalysisSettings] = None,
                 analyzer: Optional[AnalysisSubmitter] = None,
                 cache: Optional[AnalysisCache] = None,
                 session_log: Any = None):
        self.layout_settings = layout_settings or LayoutSettings()
        self.batch_settings = batch_settings or BatchSettings()
        self.analysis_settings = analysis_settings or AnalysisSettings()
        self.analyzer = analyzer
        self.cache = cache if cache is not None else (AnalysisCache() if analyzer is not None else None)
        self.session_log = session_log
        self._lock = threading.Lock()
        self.current_run: Optional[ExtractionRun] = None

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def run(self, document: Any) -> Generator[ProgressEvent, None, RunResult]:
        """
        Extraction run as a generator of progress events returning a RunResult.

        Raises:
            RunInProgressError: If another run is active
        """
        if not self._lock.acquire(blocking=False):
            raise RunInProgressError()

        try:
            self.current_run = ExtractionRun(
                document,
                self.layout_settings,
                self.batch_settings,
                self.analysis_settings,
                analyzer=self.analyzer,
                cache=self.cache,
                session_log=self.session_log,
            )
            return (yield from self.current_run.events())
        finally:
            self._lock.release()

    def extract(self, document: Any, on_progress: Optional[Callable[[ProgressEvent], None]] = None) -> RunResult:
        """Drive a run to completion, forwarding each progress event."""
        events = self.run(document)
        while True:
            try:
                event = next(events)
            except StopIteration as stop:
                return stop.value
            if on_progress is not None:
                on_progress(event)
            logger.debug(f"Progress: {event.current}/{event.total} - {event.message}")
