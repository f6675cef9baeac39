"""
Configuration Manager for SlideText
Handles loading and managing configuration from YAML/JSON files
"""

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from shared.processing_exceptions import InvalidConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutSettings:
    """Tunable constants of the layout-inference pipeline."""
    column_split_ratio: float = 0.4
    default_slide_width: float = 1920.0
    default_font_size: float = 16.0


@dataclass(frozen=True)
class BatchSettings:
    """Increment sizes used by the batch scheduler."""
    grid_batch_size: int = 50
    frame_batch_size: int = 100
    process_batch_size: int = 5


@dataclass(frozen=True)
class AnalysisSettings:
    """Visual analysis collaborator settings."""
    enabled: bool = False
    endpoint: str = "http://127.0.0.1:8765/analyze"
    target_width: int = 400
    wait_timeout_ms: int = 200
    request_timeout: float = 10.0
    max_workers: int = 2
    min_region_confidence: float = 0.0
    retry_attempts: int = 2


class ConfigManager:
    """Manages configuration for the slide text extractor."""

    DEFAULT_CONFIG = {
        "layout": {
            "column_split_ratio": 0.4,
            "default_slide_width": 1920,
            "default_font_size": 16,
        },
        "batching": {
            "grid_batch_size": 50,
            "frame_batch_size": 100,
            "process_batch_size": 5,
        },
        "analysis": {
            "enabled": False,
            "endpoint": "http://127.0.0.1:8765/analyze",
            "target_width": 400,
            "wait_timeout_ms": 200,
            "request_timeout": 10,
            "max_workers": 2,
            "min_region_confidence": 0.0,
            "retry_attempts": 2,
        },
        "storage": {
            "prompt_store": "slidetext_storage.json",
            "prompt_key": "customSystemPrompt",
        },
        "logging": {
            "level": "INFO",
            "log_dir": "logs",
            "log_to_file": True,
        },
    }

    # Required configuration paths for validation
    REQUIRED_PATHS = [
        "layout.column_split_ratio",
        "batching.process_batch_size",
        "analysis.target_width",
        "storage.prompt_store",
    ]

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to configuration file (YAML or JSON)
                        If None, looks for config.yaml or config.json in current directory

        Raises:
            InvalidConfigError: If required keys are missing or values are out of range
        """
        self.config_path = self._find_config_file(config_path)
        self.config = self._load_config()
        self._validate_config()

    def _find_config_file(self, config_path: Optional[str]) -> Optional[Path]:
        """Find configuration file if not explicitly provided."""
        if config_path:
            return Path(config_path)

        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("config.json"),
        ]

        for path in search_paths:
            if path.exists():
                logger.info(f"Found configuration file: {path}")
                return path

        logger.info("No configuration file found, using defaults")
        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file or use defaults."""
        if not self.config_path or not self.config_path.exists():
            logger.info("Using default configuration")
            return copy.deepcopy(self.DEFAULT_CONFIG)

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                if self.config_path.suffix in ['.yaml', '.yml']:
                    user_config = yaml.safe_load(f) or {}
                else:
                    user_config = json.load(f)

            config = self._deep_merge(copy.deepcopy(self.DEFAULT_CONFIG), user_config)
            logger.info(f"Loaded configuration from {self.config_path}")
            return config

        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.error(f"Error loading config file: {e}")
            logger.info("Falling back to default configuration")
            return copy.deepcopy(self.DEFAULT_CONFIG)

    def _deep_merge(self, base: Dict, update: Dict) -> Dict:
        """Deep merge two dictionaries."""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                base[key] = self._deep_merge(base[key], value)
            else:
                base[key] = value
        return base

    def _validate_config(self):
        """
        Validate configuration has all required keys and sane values.

        Raises:
            InvalidConfigError: If a key is missing or a value is out of range
        """
        for path in self.REQUIRED_PATHS:
            if self.get(path) is None:
                raise InvalidConfigError(path, "required key is missing")

        ratio = self.get("layout.column_split_ratio")
        if not isinstance(ratio, (int, float)) or not 0 < ratio < 1:
            raise InvalidConfigError("layout.column_split_ratio", f"must be between 0 and 1, got {ratio!r}")

        for key in ("grid_batch_size", "frame_batch_size", "process_batch_size"):
            value = self.get(f"batching.{key}")
            if not isinstance(value, int) or value < 1:
                raise InvalidConfigError(f"batching.{key}", f"must be a positive integer, got {value!r}")

        target_width = self.get("analysis.target_width")
        if not isinstance(target_width, int) or target_width < 1:
            raise InvalidConfigError("analysis.target_width", f"must be a positive integer, got {target_width!r}")

        timeout_ms = self.get("analysis.wait_timeout_ms")
        if not isinstance(timeout_ms, (int, float)) or timeout_ms < 0:
            raise InvalidConfigError("analysis.wait_timeout_ms", f"must be non-negative, got {timeout_ms!r}")

        logger.debug("Configuration validation passed")

    def get(self, dotted_path: str, default: Any = None) -> Any:
        """Look up a value by dotted path, e.g. 'analysis.endpoint'."""
        current: Any = self.config
        for key in dotted_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    def get_layout_settings(self) -> LayoutSettings:
        """Get layout-inference constants."""
        layout = self.config['layout']
        return LayoutSettings(
            column_split_ratio=float(layout['column_split_ratio']),
            default_slide_width=float(layout['default_slide_width']),
            default_font_size=float(layout['default_font_size']),
        )

    def get_batch_settings(self) -> BatchSettings:
        """Get batch sizes for collection and processing."""
        batching = self.config['batching']
        return BatchSettings(
            grid_batch_size=batching['grid_batch_size'],
            frame_batch_size=batching['frame_batch_size'],
            process_batch_size=batching['process_batch_size'],
        )

    def get_analysis_settings(self) -> AnalysisSettings:
        """Get visual analysis collaborator settings."""
        analysis = self.config['analysis']
        return AnalysisSettings(
            enabled=bool(analysis['enabled']),
            endpoint=analysis['endpoint'],
            target_width=analysis['target_width'],
            wait_timeout_ms=analysis['wait_timeout_ms'],
            request_timeout=float(analysis['request_timeout']),
            max_workers=analysis['max_workers'],
            min_region_confidence=float(analysis['min_region_confidence']),
            retry_attempts=analysis['retry_attempts'],
        )

    def get_storage_config(self) -> Dict[str, Any]:
        """Get saved-prompt storage configuration."""
        return self.config['storage'].copy()

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.config['logging'].copy()

    def update_from_cli(self, args: Dict[str, Any]):
        """
        Update configuration from CLI arguments.

        Args:
            args: Dictionary of CLI arguments
        """
        if args.get('analysis_endpoint'):
            self.config['analysis']['endpoint'] = args['analysis_endpoint']
            self.config['analysis']['enabled'] = True

        if args.get('verbose'):
            self.config['logging']['level'] = 'DEBUG'

        if args.get('no_file_logging'):
            self.config['logging']['log_to_file'] = False
