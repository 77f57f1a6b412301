#!/usr/bin/env python3
"""
EcoSort Waste Classification - Main Application

This script wires the components together:
- YOLOv8 object detector and MobileNetV2 classifier
- Filename-based fallback classifier
- Reward points
- Classification history with statistics and export/import

Usage:
    python main.py classify photo.jpg [--no-save]
    python main.py stats
    python main.py history [--page N] [--limit N] [--search TEXT] [--category NAME] [--days N]
    python main.py export backup.json
    python main.py import backup.json
    python main.py correct LABEL CATEGORY
    python main.py types
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from ecosort.config import load_config
from ecosort.exceptions import EcoSortError, InvalidInputError
from ecosort.models.fallback import get_all_waste_types
from ecosort.pipeline import ClassificationPipeline
from ecosort.taxonomy import OutwardCategory, WasteCategory
from ecosort.utils.history_ledger import HistoryLedger
from ecosort.utils.label_corrections import LabelCorrections
from ecosort.utils.storage import JsonFileStore


class EcoSortApp:
    """
    Command-line front end for the classification pipeline and history
    Models are only loaded when a command needs them
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the application

        Args:
            config: Configuration dictionary
        """
        self.config = config
        self.setup_logging()

        history_config = self.config.get('history', {})
        self.store = JsonFileStore(history_config.get('directory', 'data'))
        self.ledger = HistoryLedger(
            store=self.store,
            max_records=history_config.get('max_records', 1000)
        )
        self.corrections = LabelCorrections(self.store)
        self._pipeline = None

        self.logger.info("EcoSort initialized")

    def setup_logging(self):
        """Setup logging configuration"""
        log_level = getattr(logging, str(self.config.get('log_level', 'INFO')).upper(), logging.INFO)
        log_file = Path(self.config.get('log_file', 'logs/ecosort.log'))
        log_file.parent.mkdir(parents=True, exist_ok=True)

        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.StreamHandler(),
                logging.FileHandler(log_file)
            ]
        )
        self.logger = logging.getLogger(__name__)

    @property
    def pipeline(self) -> ClassificationPipeline:
        if self._pipeline is None:
            self._pipeline = ClassificationPipeline.from_config(self.config, corrections=self.corrections)
        return self._pipeline

    def classify(self, image_path: str, save: bool = True) -> Dict:
        """Classify one image file and optionally record it in the history"""
        verdict, metadata = self.pipeline.classify_upload(image_path)
        result = verdict.to_dict()

        if save:
            record = self.ledger.record_classification(verdict, metadata)
            result['record_id'] = record.id

        return result

    def history(self, page: int = 1, limit: int = 10, search: str = None,
                category: str = None, days: int = None) -> Dict:
        if search:
            records = self.ledger.search_records(search)
        elif category:
            records = self.ledger.get_records_by_category(OutwardCategory(category))
        elif days:
            records = self.ledger.get_recent_records(days)
        else:
            paged = self.ledger.get_records(page, limit)
            return {
                "records": [r.to_dict() for r in paged['records']],
                "total": paged['total'],
                "has_more": paged['has_more'],
            }

        return {"records": [r.to_dict() for r in records[:limit]], "total": len(records),
                "has_more": len(records) > limit}

    def close(self):
        if self._pipeline is not None:
            self._pipeline.close()


def print_json(data: Any):
    print(json.dumps(data, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="EcoSort Waste Classification")
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--data-dir', help='Directory for classification history')
    parser.add_argument('--debug', '-d', action='store_true',
                       help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    classify_parser = subparsers.add_parser('classify', help='Classify one or more images')
    classify_parser.add_argument('images', nargs='+', help='Image file paths')
    classify_parser.add_argument('--no-save', action='store_true',
                                help='Do not record results in the history')

    subparsers.add_parser('stats', help='Show classification statistics')

    history_parser = subparsers.add_parser('history', help='List saved classifications')
    history_parser.add_argument('--page', type=int, default=1)
    history_parser.add_argument('--limit', type=int, default=10)
    history_parser.add_argument('--search', help='Search item names, filenames and descriptions')
    history_parser.add_argument('--category', choices=[c.value for c in OutwardCategory])
    history_parser.add_argument('--days', type=int, help='Only records from the last N days')
    history_parser.add_argument('--clear', action='store_true', help='Delete all saved records')

    export_parser = subparsers.add_parser('export', help='Export history to a JSON file')
    export_parser.add_argument('output', help='Output file path')

    import_parser = subparsers.add_parser('import', help='Replace history with an exported JSON file')
    import_parser.add_argument('input', help='Input file path')

    correct_parser = subparsers.add_parser('correct', help='Assign a category to a model label')
    correct_parser.add_argument('label', help='Model label, e.g. "water bottle"')
    correct_parser.add_argument('category', choices=[c.value for c in WasteCategory])

    subparsers.add_parser('types', help='List the curated waste item types')

    return parser


def run_command(app: EcoSortApp, args: argparse.Namespace) -> int:
    """Run the selected command, returning the process exit code"""
    if args.command == 'classify':
        results: List[Dict] = []
        exit_code = 0
        for image_path in args.images:
            try:
                results.append(app.classify(image_path, save=not args.no_save))
            except InvalidInputError as e:
                print(f"Error: {e}", file=sys.stderr)
                if e.remediation:
                    print(f"  {e.remediation}", file=sys.stderr)
                exit_code = 2
        if results:
            print_json(results[0] if len(results) == 1 else results)
        return exit_code

    if args.command == 'stats':
        print_json(app.ledger.get_statistics().to_dict())
        return 0

    if args.command == 'history':
        if args.clear:
            cleared = app.ledger.clear_all_records()
            print("History cleared" if cleared else "Failed to clear history")
            return 0 if cleared else 1
        print_json(app.history(args.page, args.limit, args.search, args.category, args.days))
        return 0

    if args.command == 'export':
        Path(args.output).write_text(app.ledger.export_data(), encoding='utf-8')
        print(f"Exported {len(app.ledger.get_all_records())} records to {args.output}")
        return 0

    if args.command == 'import':
        try:
            data = Path(args.input).read_text(encoding='utf-8')
        except OSError as e:
            print(f"Error: cannot read {args.input}: {e}", file=sys.stderr)
            return 1
        if not app.ledger.import_data(data):
            print("Import failed, history left unchanged", file=sys.stderr)
            return 1
        print(f"Imported {len(app.ledger.get_all_records())} records")
        return 0

    if args.command == 'correct':
        return 0 if app.corrections.save(args.label, WasteCategory(args.category)) else 1

    if args.command == 'types':
        print_json(get_all_waste_types())
        return 0

    return 1


def main(argv=None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load configuration
    config = load_config(args.config)

    if args.debug:
        config['log_level'] = 'DEBUG'
    if args.data_dir:
        config['history']['directory'] = args.data_dir

    app = EcoSortApp(config)
    try:
        return run_command(app, args)
    except EcoSortError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
