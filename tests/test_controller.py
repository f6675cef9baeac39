"""Tests for the message-driven controller."""

from builders import document, frame, slide, text
from layout.controller import PluginController
from layout.scheduler import ExtractionScheduler
from shared.prompt_store import PromptStore


class BrokenScheduler:
    def extract(self, doc, on_progress=None):
        raise KeyError('page')


def make_controller(tmp_path, doc=None, scheduler=None, store_path=None):
    messages = []
    doc = doc or document([slide('s1', [text('t', 'Hello', size=32)])], grid=[['s1']])
    store = PromptStore(store_path or tmp_path / 'storage.json')
    controller = PluginController(doc, scheduler or ExtractionScheduler(), store, messages.append)
    return controller, messages, store


def test_update_context_streams_progress_then_data(tmp_path):
    controller, messages, _ = make_controller(tmp_path)
    controller.handle_message({'type': 'update-context'})

    assert messages[0] == {'type': 'progress', 'current': 0, 'total': 0, 'message': 'Starting extraction...'}
    assert all(m['type'] == 'progress' for m in messages[:-1])
    data = messages[-1]
    assert data['type'] == 'data'
    assert data['systemPrompt'] is None
    assert data['data'] == [{
        'sectionNumber': 1,
        'slideNumber': 1,
        'overallSlideNumber': 1,
        'plainText': ['Hello'],
        'formattedText': [{'text': 'Hello', 'markup': '# Hello', 'level': 'title'}],
    }]


def test_data_message_carries_saved_prompt(tmp_path):
    controller, messages, store = make_controller(tmp_path)
    store.set('Be brief.')
    controller.extract_and_send()
    assert messages[-1]['systemPrompt'] == 'Be brief.'


def test_no_slides_becomes_error_message(tmp_path):
    controller, messages, _ = make_controller(tmp_path, doc=document([frame('f', 'Cover', [])]))
    controller.extract_and_send()
    assert messages[-1]['type'] == 'error'
    assert messages[-1]['message'].startswith('No slides found.')


def test_unexpected_failure_becomes_error_message(tmp_path):
    controller, messages, _ = make_controller(tmp_path, scheduler=BrokenScheduler())
    assert controller.extract_and_send() is None
    assert messages == [{'type': 'error', 'message': "Error extracting text: 'page'"}]


def test_request_during_active_run_is_reported(tmp_path):
    scheduler = ExtractionScheduler()
    controller, messages, _ = make_controller(tmp_path, scheduler=scheduler)
    active = scheduler.run(controller.document)
    next(active)

    controller.handle_message({'type': 'update-context'})
    assert messages == [{'type': 'error', 'message': 'An extraction run is already in progress'}]
    active.close()


def test_save_and_load_prompt(tmp_path):
    controller, messages, _ = make_controller(tmp_path)
    controller.handle_message({'type': 'save-system-prompt', 'prompt': 'Use bullet points.'})
    controller.handle_message({'type': 'load-system-prompt'})

    assert messages == [
        {'type': 'system-prompt-saved', 'success': True},
        {'type': 'system-prompt-loaded', 'prompt': 'Use bullet points.'},
    ]


def test_failed_save_reports_error(tmp_path):
    blocker = tmp_path / 'blocker'
    blocker.write_text('x', encoding='utf-8')
    controller, messages, _ = make_controller(tmp_path, store_path=blocker / 'storage.json')
    controller.save_prompt({'type': 'save-system-prompt', 'prompt': 'Prompt'})

    assert messages[0]['type'] == 'system-prompt-saved'
    assert messages[0]['success'] is False
    assert messages[0]['error']


def test_start_extracts_before_loading_prompt(tmp_path):
    controller, messages, _ = make_controller(tmp_path)
    controller.start()
    assert [m['type'] for m in messages[-2:]] == ['data', 'system-prompt-loaded']


def test_unknown_messages_are_ignored(tmp_path):
    controller, messages, _ = make_controller(tmp_path)
    assert controller.handle_message({'type': 'resize'}) is None
    assert controller.handle_message('not a message') is None
    assert messages == []
