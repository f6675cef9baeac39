"""
Key-value persistence for the user's saved system prompt.

Values live in a small JSON file. Writes are atomic (temp file, then
replace) so a crash never leaves a half-written store behind.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from shared.processing_exceptions import PersistenceError, log_structured_error

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_KEY = "customSystemPrompt"


class PromptStore:
    """JSON-file backed string store."""

    def __init__(self, store_path: Union[str, Path], key: str = DEFAULT_PROMPT_KEY):
        self.store_path = Path(store_path)
        self.key = key
        self.last_error: Optional[PersistenceError] = None

    def _read(self) -> Dict[str, Any]:
        if not self.store_path.exists():
            return {}
        with open(self.store_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Store {self.store_path} does not hold a JSON object")
        return data

    def get_value(self, key: str) -> Optional[str]:
        """
        Read one value.

        Returns:
            The stored string, or None when absent or unreadable
        """
        try:
            value = self._read().get(key)
        except (OSError, ValueError) as e:
            log_structured_error(PersistenceError(key, 'load', cause=e), logger)
            return None
        return value if isinstance(value, str) else None

    def set_value(self, key: str, value: Optional[str]) -> bool:
        """
        Write one value; None removes the key.

        Returns:
            True when the value was persisted
        """
        self.last_error = None
        try:
            try:
                data = self._read()
            except ValueError:
                logger.warning(f"Replacing unreadable store {self.store_path}")
                data = {}

            if value is None:
                data.pop(key, None)
            else:
                data[key] = value

            self.store_path.parent.mkdir(parents=True, exist_ok=True)

            # Write atomically
            temp_path = self.store_path.with_suffix('.tmp')
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self.store_path)
        except (OSError, TypeError) as e:
            self.last_error = PersistenceError(key, 'save', cause=e)
            log_structured_error(self.last_error, logger)
            return False

        logger.debug(f"Saved '{key}' to {self.store_path}")
        return True

    def get(self) -> Optional[str]:
        """Saved prompt, or None."""
        return self.get_value(self.key)

    def set(self, prompt: Optional[str]) -> bool:
        """Save the prompt; returns False on failure."""
        return self.set_value(self.key, prompt)
