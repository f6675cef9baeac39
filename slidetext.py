#!/usr/bin/env python3
"""
slidetext - extract slide text in reading order with outline markup

Reads a .pptx presentation or a .json document snapshot, reconstructs the
reading order of every slide, classifies text by relative font size, and
prints JSON (or Markdown) to stdout.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from hosts.pptx_document import PptxDocument
from hosts.snapshot import load_snapshot
from layout.controller import PluginController
from layout.scheduler import ExtractionScheduler, RunResult
from shared.analysis_cache import AnalysisCache
from shared.config_manager import ConfigManager
from shared.logging_config import setup_session_logging
from shared.processing_exceptions import ProcessingError, UnsupportedDocumentError
from shared.prompt_store import PromptStore
from shared.visual_analysis import VisualAnalysisClient

logger = logging.getLogger(__name__)


def open_document(path: Path):
    """Open a supported document by file extension."""
    suffix = path.suffix.lower()
    if suffix == '.pptx':
        return PptxDocument(path)
    if suffix == '.json':
        return load_snapshot(path)
    raise UnsupportedDocumentError(path)


def render_markdown(result: RunResult) -> str:
    """Slides as Markdown, one commented header per slide."""
    blocks = []
    for record in result.records:
        lines = [f"<!-- Slide {record.overall_slide_number} ({record.section_number}.{record.slide_number}) -->"]
        lines.extend(item.markup for item in record.formatted_text)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"


def configure_logging(config: ConfigManager):
    logging_config = config.get_logging_config()
    level = logging_config.get('level', 'INFO')
    if logging_config.get('log_to_file', True):
        return setup_session_logging(logging_config.get('log_dir', 'logs'), console_level=level)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    return None


def build_scheduler(config: ConfigManager, session_log=None):
    analysis_settings = config.get_analysis_settings()
    analyzer = None
    cache = None
    if analysis_settings.enabled:
        cache = AnalysisCache()
        analyzer = VisualAnalysisClient(analysis_settings, cache)
        logger.info(f"Visual analysis enabled: {analysis_settings.endpoint}")

    scheduler = ExtractionScheduler(
        layout_settings=config.get_layout_settings(),
        batch_settings=config.get_batch_settings(),
        analysis_settings=analysis_settings,
        analyzer=analyzer,
        cache=cache,
        session_log=session_log,
    )
    return scheduler, analyzer


def build_prompt_store(config: ConfigManager) -> PromptStore:
    storage = config.get_storage_config()
    return PromptStore(storage['prompt_store'], key=storage['prompt_key'])


def cmd_extract(args, config: ConfigManager, session_log=None) -> int:
    path = Path(args.path)
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1

    document = open_document(path)
    scheduler, analyzer = build_scheduler(config, session_log)
    messages = []

    def sink(message):
        messages.append(message)
        if message['type'] == 'progress':
            logger.info(f"[{message['current']}/{message['total']}] {message['message']}")

    try:
        controller = PluginController(document, scheduler, build_prompt_store(config), sink)
        result = controller.extract_and_send()
    finally:
        if analyzer is not None:
            analyzer.close()

    if session_log is not None:
        session_log.export_session_data()

    if args.report and result is not None and result.report is not None:
        result.report.save_to_file(args.report)

    final = messages[-1] if messages else {'type': 'error', 'message': 'No result'}
    if final['type'] == 'error':
        print(f"Error: {final['message']}", file=sys.stderr)
        return 1

    if args.markdown:
        output = render_markdown(result)
    else:
        output = json.dumps(final, indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(output, encoding='utf-8')
        print(f"Wrote {len(result.records)} slides to {args.output}", file=sys.stderr)
    else:
        print(output)

    return 0


def cmd_prompt(args, config: ConfigManager) -> int:
    store = build_prompt_store(config)

    if args.prompt_command == 'save':
        if not store.set(args.text):
            print(f"Error: {store.last_error.message if store.last_error else 'could not save prompt'}",
                  file=sys.stderr)
            return 1
        print("System prompt saved", file=sys.stderr)
        return 0

    if args.prompt_command == 'show':
        prompt = store.get()
        if prompt is None:
            print("(no saved prompt)", file=sys.stderr)
        else:
            print(prompt)
        return 0

    if args.prompt_command == 'clear':
        return 0 if store.set(None) else 1

    return 1


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='slidetext',
        description='Extract slide text in reading order with outline markup'
    )

    # Global flags
    parser.add_argument('--config', metavar='PATH',
                       help='Path to config.yaml / config.json (default: search current directory)')
    parser.add_argument('--verbose', '-v', action='store_true',
                       help='Verbose output')
    parser.add_argument('--no-file-logging', action='store_true',
                       help='Log to the console only')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # extract
    extract_parser = subparsers.add_parser('extract', help='Extract text from a .pptx or .json snapshot')
    extract_parser.add_argument('path', help='Presentation or snapshot file')
    extract_parser.add_argument('-o', '--output', metavar='PATH',
                               help='Write output to a file instead of stdout')
    extract_parser.add_argument('--markdown', action='store_true',
                               help='Emit Markdown outline instead of JSON')
    extract_parser.add_argument('--analysis-endpoint', metavar='URL',
                               help='Enable visual analysis using this HTTP endpoint')
    extract_parser.add_argument('--report', metavar='PATH',
                               help='Write the processing report (errors, metrics) as JSON')

    # prompt
    prompt_parser = subparsers.add_parser('prompt', help='Manage the saved system prompt')
    prompt_subparsers = prompt_parser.add_subparsers(dest='prompt_command')
    prompt_subparsers.required = True
    save_parser = prompt_subparsers.add_parser('save', help='Save a system prompt')
    save_parser.add_argument('text', help='Prompt text')
    prompt_subparsers.add_parser('show', help='Print the saved system prompt')
    prompt_subparsers.add_parser('clear', help='Remove the saved system prompt')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = ConfigManager(args.config)
        config.update_from_cli(vars(args))
        session_log = configure_logging(config)

        if args.command == 'extract':
            return cmd_extract(args, config, session_log)

        elif args.command == 'prompt':
            return cmd_prompt(args, config)

    except ProcessingError as e:
        print(f"Error: {e.get_user_message()}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130

    return 1


if __name__ == '__main__':
    sys.exit(main())
