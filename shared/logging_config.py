"""
Session logging for extraction runs.

Attaches a stderr console handler and two rotating log files (everything,
and errors only) named after a session id, and keeps a per-slide record of
the session that can be exported as JSON next to the logs.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def _level(name: str) -> int:
    return getattr(logging, str(name).upper(), logging.INFO)


class SessionLog:
    """Log handlers plus a JSON-exportable record of one CLI session."""

    def __init__(self, log_dir: str = "logs", max_bytes: int = 5 * 1024 * 1024, backup_count: int = 5):
        self.log_dir = Path(log_dir)
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self.session_id = datetime.now().strftime("run-%Y%m%d-%H%M%S")
        self.started = datetime.now().isoformat()
        self.slides: Dict[str, Dict[str, Any]] = {}
        self.failures: List[Dict[str, Any]] = []
        self.stats: Dict[str, Any] = {}
        self.handlers: List[logging.Handler] = []

    def _rotating_handler(self, suffix: str, level: int, max_bytes: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / f"{self.session_id}{suffix}.log",
            maxBytes=max_bytes,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(FILE_FORMAT))
        return handler

    def attach(self, console_level: str = "INFO", file_level: str = "DEBUG"):
        """Replace the root logger's handlers with this session's handlers."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        root.setLevel(logging.DEBUG)

        # stdout carries the extracted JSON
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(_level(console_level))
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))

        self.handlers = [
            console,
            self._rotating_handler('', _level(file_level), self.max_bytes),
            self._rotating_handler('-errors', logging.ERROR, self.max_bytes // 2),
        ]
        for handler in self.handlers:
            root.addHandler(handler)

        logger.info(f"Session {self.session_id} logging to {self.log_dir.absolute()}")
        return self

    def detach(self):
        root = logging.getLogger()
        for handler in self.handlers:
            root.removeHandler(handler)
            handler.close()
        self.handlers = []

    def log_slide_extracted(self, slide_key: str, metadata: Dict[str, Any]):
        self.slides[slide_key] = {'metadata': metadata, 'timestamp': datetime.now().isoformat()}

    def log_slide_failed(self, slide_key: str, error: str, metadata: Dict[str, Any]):
        self.failures.append({
            'slide_key': slide_key,
            'error': error,
            'metadata': metadata,
            'timestamp': datetime.now().isoformat()
        })

    def update_processing_stats(self, stats: Dict[str, Any]):
        self.stats.update(stats)

    def summary(self) -> Dict[str, Any]:
        attempted = len(self.slides) + len(self.failures)
        return {
            'session_id': self.session_id,
            'slides_extracted': len(self.slides),
            'slides_failed': len(self.failures),
            'success_rate': (len(self.slides) / attempted * 100) if attempted else 0,
        }

    def export_session_data(self) -> Path:
        """Write the session record to ``<log_dir>/<session_id>-session.json``."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        session_file = self.log_dir / f"{self.session_id}-session.json"
        data = {
            'session_id': self.session_id,
            'start_time': self.started,
            'end_time': datetime.now().isoformat(),
            'summary': self.summary(),
            'slides_extracted': self.slides,
            'failed_slides': self.failures,
            'processing_stats': self.stats,
        }
        with open(session_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)

        logger.info(f"Session data exported to {session_file}")
        return session_file


def setup_session_logging(log_dir: str = "logs", console_level: str = "INFO",
                          file_level: str = "DEBUG") -> SessionLog:
    """Create a SessionLog and attach its handlers to the root logger."""
    return SessionLog(log_dir).attach(console_level, file_level)
