#!/usr/bin/env python3
"""
Receipt Extraction System - Main Entry Point.

Command line access to the receipt scanning pipeline: recognize receipt
images (or read already recognized text), extract merchant, date, time,
total and tax, and print the pre-populated expense forms as JSON.

Usage:
    Command Line:
        python main.py --input receipt.jpg
        python main.py --input ./receipts/ --output results.json
        python main.py --text receipt.txt --locale en

    Python:
        from main import run_scan
        outcomes = run_scan(text_path="receipt.txt")
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Iterable, List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import ConfigurationManager
from receipt_extraction.utils.helpers import ensure_directory, get_file_extension
from receipt_extraction.utils.logger import get_logger, setup_logger_from_config

SUPPORTED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp'}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Receipt Extraction System",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Scan a single receipt:
        python main.py --input receipt.jpg

    Scan a directory and save results:
        python main.py --input ./receipts/ --output results.json

    Extract from recognized text:
        python main.py --text receipt.txt
        """
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--input", "-i",
        type=str,
        help="Receipt image (JPG, PNG, WebP) or directory of images"
    )
    source.add_argument(
        "--text", "-t",
        type=str,
        help="Text file with already recognized receipt text"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="JSON output file (default: stdout)"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )
    parser.add_argument(
        "--locale",
        action="append",
        default=None,
        help="Keyword locale (repeatable, default: from configuration)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def collect_images(input_path: Path) -> List[Path]:
    """
    List the receipt images to process.

    Raises:
        FileNotFoundError: If input path doesn't exist.
        ValueError: If a single file has an unsupported extension.
    """
    logger = get_logger(__name__)

    if not input_path.exists():
        raise FileNotFoundError(f"Input path not found: {input_path}")

    if input_path.is_file():
        if get_file_extension(input_path) not in SUPPORTED_EXTENSIONS:
            raise ValueError(f"Unsupported file type: {input_path.suffix}")
        return [input_path]

    files = sorted(
        path for path in input_path.iterdir()
        if path.is_file() and get_file_extension(path) in SUPPORTED_EXTENSIONS
    )
    if not files:
        logger.warning(f"No supported files found in: {input_path}")
    else:
        logger.info(f"Found {len(files)} files to process")
    return files


def run_scan(
    input_path: Optional[str] = None,
    text_path: Optional[str] = None,
    locales: Optional[Iterable[str]] = None
) -> list:
    """
    Run the receipt scanning pipeline.

    Args:
        input_path: Image file or directory of images.
        text_path: Text file with recognized receipt text.
        locales: Keyword locales for extraction.

    Returns:
        List of ScanOutcome objects, one per receipt.
    """
    from receipt_extraction.ocr_engine import RecognitionSession, describe_progress
    from receipt_extraction.parsing import ReceiptFieldExtractor
    from receipt_extraction.pipeline import ReceiptScanner

    logger = get_logger(__name__)
    extractor = ReceiptFieldExtractor(locales=locales)

    if text_path is not None:
        raw_text = Path(text_path).read_text(encoding='utf-8')
        return [ReceiptScanner(extractor=extractor).scan_text(raw_text)]

    images = collect_images(Path(input_path))
    outcomes = []

    def report(value: float) -> None:
        logger.debug(f"{describe_progress(value)} ({value:.0%})")

    with RecognitionSession() as session:
        scanner = ReceiptScanner(session, extractor)
        for image_path in images:
            logger.info(f"Processing: {image_path.name}")
            outcome = scanner.scan(image_path, progress=report)
            if outcome.notification:
                logger.warning(f"{image_path.name}: {outcome.notification.message}")
            outcomes.append(outcome)

    return outcomes


def write_output(payload, output_path: Optional[str]) -> None:
    """Write JSON to a file, or to stdout when no path is given."""
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output_path is None:
        print(text)
        return

    output = Path(output_path)
    ensure_directory(output.parent)
    output.write_text(text + "\n", encoding='utf-8')


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, 1 for errors, 130 when interrupted).
    """
    args = parse_arguments(argv)

    try:
        config = ConfigurationManager(args.config)
        setup_logger_from_config("DEBUG" if args.debug else None)
        logger = get_logger(__name__)
        logger.info(f"Receipt Extraction System v{config.get('project.version', '1.0.0')}")

        outcomes = run_scan(args.input, args.text, args.locale)

        payload = [outcome.to_dict() for outcome in outcomes]
        if args.text is not None or (args.input and Path(args.input).is_file()):
            payload = payload[0] if payload else None
        write_output(payload, args.output)

        if not outcomes:
            logger.error("No files to process")
            return 1
        return 0 if all(outcome.success for outcome in outcomes) else 1

    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
