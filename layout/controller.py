"""
Message-driven front end for an extraction host.

A host UI talks to the controller with small dict messages and receives
dict messages back through a sink callable:

    update-context        -> progress*, then data {data, systemPrompt} or error {message}
    save-system-prompt    -> system-prompt-saved {success, error?}
    load-system-prompt    -> system-prompt-loaded {prompt}
"""

import logging
from typing import Any, Callable, Dict, Optional

from layout.scheduler import ExtractionScheduler, RunResult
from shared.processing_exceptions import ProcessingError
from shared.prompt_store import PromptStore

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
MessageSink = Callable[[Message], None]


class PluginController:
    """Routes host messages to the scheduler and the prompt store."""

    def __init__(self, document: Any, scheduler: ExtractionScheduler,
                 prompt_store: PromptStore, sink: MessageSink):
        self.document = document
        self.scheduler = scheduler
        self.prompt_store = prompt_store
        self.sink = sink
        self._handlers: Dict[str, Callable[[Message], Any]] = {
            'update-context': lambda message: self.extract_and_send(),
            'save-system-prompt': self.save_prompt,
            'load-system-prompt': lambda message: self.send_prompt(),
        }

    def handle_message(self, message: Message):
        msg_type = message.get('type') if isinstance(message, dict) else None
        handler = self._handlers.get(msg_type)
        if handler is None:
            logger.warning(f"Ignoring unknown message type: {msg_type!r}")
            return None
        return handler(message)

    def start(self) -> Optional[RunResult]:
        """Initial extraction, followed by the saved prompt."""
        result = self.extract_and_send()
        self.send_prompt()
        return result

    def extract_and_send(self) -> Optional[RunResult]:
        """Run one extraction, streaming progress and posting data or an error."""
        try:
            result = self.scheduler.extract(self.document, on_progress=lambda event: self.sink(event.to_message()))
        except ProcessingError as e:
            logger.warning(f"Extraction rejected: {e.message}")
            self.sink({'type': 'error', 'message': e.message})
            return None
        except Exception as e:
            logger.exception("Extraction failed")
            self.sink({'type': 'error', 'message': f"Error extracting text: {e}"})
            return None

        if result.error:
            self.sink({'type': 'error', 'message': result.error})
        else:
            self.sink({
                'type': 'data',
                'data': result.to_dict(),
                'systemPrompt': self.prompt_store.get() or None,
            })
        return result

    def save_prompt(self, message: Message) -> bool:
        success = self.prompt_store.set(message.get('prompt'))
        reply: Message = {'type': 'system-prompt-saved', 'success': success}
        if not success:
            error = self.prompt_store.last_error
            reply['error'] = error.message if error is not None else 'Could not save prompt'
        self.sink(reply)
        return success

    def send_prompt(self):
        self.sink({'type': 'system-prompt-loaded', 'prompt': self.prompt_store.get() or None})
