"""
Thai Slip Reader - command line
Reads slips and prints the slip JSON document for each one

Examples:
    python read_slip.py slip1.jpg slip2.png
    python read_slip.py --qr-payload "000201010211..." --text-file ocr.txt
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from loguru import logger

from result_merger import to_json
from settings import load_config
from slip_processor import SlipProcessor
from utils import format_processing_time, setup_logging, validate_image_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract PromptPay QR data and slip fields from Thai bank-transfer slips.",
    )
    parser.add_argument("images", nargs="*", help="Slip image files")
    parser.add_argument("--qr-payload", help="Raw QR payload (skips image scanning)")
    parser.add_argument("--text-file", help="File with raw OCR text (skips image OCR)")
    parser.add_argument("--config", help="Path to slip_config.yaml")
    parser.add_argument("--compact", action="store_true", help="Print one-line JSON")
    parser.add_argument("--log-level", help="Override the configured log level")
    return parser


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def main(argv: Optional[Sequence[str]] = None, processor: Optional[SlipProcessor] = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)

    if not ns.images and ns.qr_payload is None and ns.text_file is None:
        parser.error("give at least one image, --qr-payload or --text-file")

    config = load_config(ns.config)
    setup_logging(config['logging'].get('file'), ns.log_level or config['logging'].get('level', 'INFO'))

    if processor is None:
        processor = SlipProcessor(config)
    indent = None if ns.compact else 2
    outputs: List[bool] = []

    if ns.qr_payload is not None or ns.text_file is not None:
        text = _read_text(ns.text_file) if ns.text_file else None
        record = processor.process_inputs(ns.qr_payload, text)
        print(to_json(record, indent=indent))
        outputs.append(record.success)

    for image in ns.images:
        is_valid, msg = validate_image_file(image)
        if not is_valid:
            logger.error(f"Skipping {image}: {msg}")
            outputs.append(False)
            continue

        result = processor.process_image(image)
        logger.info(f"{image}: {result['status']} in {format_processing_time(result['processing_time_ms'])}")
        print(to_json(result['record'], indent=indent))
        outputs.append(result['record'].success)

    return 0 if outputs and all(outputs) else 1


if __name__ == "__main__":
    sys.exit(main())
