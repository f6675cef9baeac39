#!/usr/bin/env python3
"""
Unified Exception Hierarchy for Slide Text Extraction
=====================================================

Common exception classes for the extraction pipeline with consistent error
codes, categorization, and structured data for programmatic handling.

Error Categories:
- Source: Slide grid / frame enumeration problems
- Service: Visual analysis backend failures
- Processing: Per-slide walking or classification failures
- Configuration: Invalid settings
- Storage: Saved prompt persistence
"""

from typing import Any, Dict, Optional, Union
import logging
import traceback
import time
from pathlib import Path

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """
    Base exception for all extraction errors.

    Provides structured error data, categorization, and recovery hints.
    """

    ERROR_CATEGORIES = {
        'SOURCE': 'source',
        'SERVICE': 'service',
        'PROCESSING': 'processing',
        'CONFIGURATION': 'configuration',
        'STORAGE': 'storage'
    }

    def __init__(self,
                 message: str,
                 error_code: str,
                 category: str = 'processing',
                 details: Optional[Dict[str, Any]] = None,
                 recoverable: bool = False,
                 recovery_hint: Optional[str] = None,
                 cause: Optional[Exception] = None):
        """
        Initialize processing error with structured data.

        Args:
            message: Human-readable error message
            error_code: Unique error code (e.g., 'NO_SLIDES_FOUND')
            category: Error category from ERROR_CATEGORIES
            details: Additional error data for programmatic handling
            recoverable: Whether the run can continue past this error
            recovery_hint: Suggested recovery action
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.details = details or {}
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint
        self.cause = cause
        self.timestamp = time.time()

        self.stack_trace = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            'error_code': self.error_code,
            'category': self.category,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'recovery_hint': self.recovery_hint,
            'timestamp': self.timestamp,
            'cause': str(self.cause) if self.cause else None,
            'stack_trace': self.stack_trace
        }

    def get_user_message(self) -> str:
        """Get user-friendly error message with actionable guidance."""
        if self.recovery_hint:
            return f"{self.message}\n\nSuggested action: {self.recovery_hint}"
        return self.message


# Slide source exceptions
class SourceError(ProcessingError):
    """Errors locating slides in the host document."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(message, error_code, category='source', **kwargs)


class SourceUnavailableError(SourceError):
    """The structured slide grid is missing, empty, or failed."""

    def __init__(self, reason: str, **kwargs):
        super().__init__(
            message=f"Slide grid unavailable: {reason}",
            error_code='SOURCE_UNAVAILABLE',
            details={'reason': reason},
            recoverable=True,
            recovery_hint="Falling back to frame-name detection",
            **kwargs
        )


class NoSlidesFoundError(SourceError):
    """Neither the slide grid nor the frame-name fallback yielded a slide."""

    def __init__(self, has_slide_grid: bool, **kwargs):
        message = "No slides found. "
        if not has_slide_grid:
            message += "This does not appear to be a slides document. "
        message += "Make sure you have a slides deck open with at least one slide. "
        message += ('If your slides are named with patterns like "Section 1 - Slide 2", '
                    'they should be detected.')
        super().__init__(
            message=message,
            error_code='NO_SLIDES_FOUND',
            details={'has_slide_grid': has_slide_grid},
            recoverable=False,
            **kwargs
        )


class UnsupportedDocumentError(SourceError):
    """Input file type cannot be opened as a slide document."""

    def __init__(self, file_path: Union[str, Path], **kwargs):
        super().__init__(
            message=f"Unsupported document type: {Path(file_path).suffix or file_path}",
            error_code='UNSUPPORTED_DOCUMENT',
            details={'file_path': str(file_path), 'supported_types': ['.pptx', '.json']},
            recoverable=False,
            recovery_hint="Provide a .pptx presentation or a .json document snapshot",
            **kwargs
        )


# Service exceptions
class AnalysisServiceError(ProcessingError):
    """Visual analysis backend request failed."""

    def __init__(self, endpoint: str, slide_id: str, status_code: Optional[int] = None, **kwargs):
        message = f"Visual analysis failed for slide {slide_id} at {endpoint}"
        if status_code:
            message += f" (HTTP {status_code})"
        super().__init__(
            message=message,
            error_code='ANALYSIS_SERVICE_ERROR',
            category='service',
            details={'endpoint': endpoint, 'slide_id': slide_id, 'status_code': status_code},
            recoverable=True,
            recovery_hint="The slide will use the default column layout",
            **kwargs
        )


# Processing exceptions
class SlideExtractionError(ProcessingError):
    """Walking or classifying one slide failed; the slide is omitted."""

    def __init__(self, section_number: int, slide_number: int, reason: str, **kwargs):
        super().__init__(
            message=f"Error processing slide {section_number}-{slide_number}: {reason}",
            error_code='SLIDE_EXTRACTION_FAILED',
            category='processing',
            details={'section_number': section_number, 'slide_number': slide_number},
            recoverable=True,
            **kwargs
        )


class RunInProgressError(ProcessingError):
    """An extraction run was requested while another one is active."""

    def __init__(self, **kwargs):
        super().__init__(
            message="An extraction run is already in progress",
            error_code='RUN_IN_PROGRESS',
            category='processing',
            recoverable=True,
            recovery_hint="Wait for the current extraction to finish and request again",
            **kwargs
        )


# Configuration exceptions
class InvalidConfigError(ProcessingError):
    """Invalid configuration value."""

    def __init__(self, config_key: str, reason: str, **kwargs):
        super().__init__(
            message=f"Invalid configuration for '{config_key}': {reason}",
            error_code='INVALID_CONFIG',
            category='configuration',
            details={'config_key': config_key, 'reason': reason},
            recoverable=False,
            recovery_hint=f"Check the '{config_key}' setting in your configuration file",
            **kwargs
        )


# Storage exceptions
class PersistenceError(ProcessingError):
    """Saving or loading the saved prompt failed."""

    def __init__(self, key: str, operation: str, **kwargs):
        super().__init__(
            message=f"Cannot {operation} stored value '{key}'",
            error_code='PERSISTENCE_ERROR',
            category='storage',
            details={'key': key, 'operation': operation},
            recoverable=True,
            **kwargs
        )


def log_structured_error(error: ProcessingError, logger: logging.Logger):
    """
    Log a structured error with appropriate level and formatting.
    """
    if error.recoverable:
        log_level = logging.WARNING
    else:
        log_level = logging.ERROR

    logger.log(log_level, f"[{error.error_code}] {error.message}")

    if error.details:
        logger.debug(f"Error details: {error.details}")

    if error.recovery_hint:
        logger.info(f"Recovery hint: {error.recovery_hint}")

    if error.cause:
        logger.debug(f"Caused by: {type(error.cause).__name__}: {error.cause}")
