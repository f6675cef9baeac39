"""Tests for run reports and session logs."""

import json
import logging

from shared.error_reporter import RunReport
from shared.logging_config import SessionLog
from shared.processing_exceptions import NoSlidesFoundError, SlideExtractionError


def test_successful_report_round_trips_to_json(tmp_path):
    report = RunReport('deck')
    report.record_error(SlideExtractionError(1, 2, 'corrupt slide'), slide_id='s2')
    report.set_metrics({'slides_extracted': 3})
    report.finish()

    path = report.save_to_file(tmp_path / 'out' / 'report.json')
    data = json.loads(path.read_text(encoding='utf-8'))

    assert data['success'] is True
    assert data['document'] == 'deck'
    assert data['metrics'] == {'slides_extracted': 3}
    assert data['error_counts'] == {'SLIDE_EXTRACTION_FAILED': 1}
    assert data['errors'][0]['slide_id'] == 's2'
    assert 'stack_trace' not in data['errors'][0]
    assert not (tmp_path / 'out' / 'report.tmp').exists()
    assert set(data) == {'document', 'success', 'started_at', 'duration', 'metrics', 'error_counts', 'errors'}


def test_terminal_error_fails_report():
    report = RunReport('deck')
    report.finish(NoSlidesFoundError(has_slide_grid=False))
    assert report.success is False
    assert report.duration is not None
    assert report.errors[0]['details'] == {'has_slide_grid': False}


def test_session_log_exports_slide_records(tmp_path):
    session = SessionLog(str(tmp_path / 'logs'))
    session.log_slide_extracted('1-1', {'elements': 4})
    session.log_slide_failed('1-2', 'corrupt slide', {'slide_id': 's2'})
    session.update_processing_stats({'slides_located': 2})

    data = json.loads(session.export_session_data().read_text(encoding='utf-8'))
    assert data['summary']['slides_extracted'] == 1
    assert data['summary']['success_rate'] == 50.0
    assert data['slides_extracted']['1-1']['metadata'] == {'elements': 4}
    assert data['failed_slides'][0]['slide_key'] == '1-2'
    assert data['processing_stats'] == {'slides_located': 2}


def test_session_handlers_write_rotating_logs(tmp_path):
    session = SessionLog(str(tmp_path / 'logs')).attach('WARNING')
    try:
        logging.getLogger('layout.scheduler').error('slide failed')
    finally:
        session.detach()

    errors_log = tmp_path / 'logs' / f"{session.session_id}-errors.log"
    assert 'slide failed' in errors_log.read_text(encoding='utf-8')
    assert session.handlers == []
