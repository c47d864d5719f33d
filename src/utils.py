"""
Utility functions for slip processing
"""

import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

ALLOWED_IMAGE_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.webp', '.bmp']


def validate_image_file(file_path: str, allowed_extensions: Optional[List[str]] = None) -> Tuple[bool, str]:
    """
    Validate if file looks like a usable slip image

    Args:
        file_path: Path to file
        allowed_extensions: List of allowed extensions (default: common image formats)

    Returns:
        (is_valid, message)
    """
    if allowed_extensions is None:
        allowed_extensions = ALLOWED_IMAGE_EXTENSIONS

    if not os.path.exists(file_path):
        return False, "File not found"

    ext = os.path.splitext(file_path)[1].lower()
    if ext not in allowed_extensions:
        return False, f"Invalid extension: {ext}. Allowed: {allowed_extensions}"

    if os.path.getsize(file_path) == 0:
        return False, "File is empty"

    return True, "Valid image file"


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal and special characters

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    import re

    filename = os.path.basename(filename)
    filename = re.sub(r'[^a-zA-Z0-9._-]', '_', filename)

    if len(filename) > 100:
        name, ext = os.path.splitext(filename)
        filename = name[:95] + ext

    return filename


def ensure_directory(dir_path: str) -> str:
    """
    Ensure directory exists, create if it doesn't

    Returns:
        Absolute path to directory
    """
    path = Path(dir_path)
    path.mkdir(parents=True, exist_ok=True)
    return str(path.absolute())


def format_processing_time(milliseconds: int) -> str:
    """
    Format processing time in human-readable format (e.g., "1.23s", "456ms")
    """
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    seconds = milliseconds / 1000
    return f"{seconds:.2f}s"


def setup_logging(log_file: Optional[str] = "logs/slip_reader.log", level: str = "INFO"):
    """
    Setup logging configuration

    Args:
        log_file: Path to log file (None → console only)
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    # Remove default handler
    logger.remove()

    # Console goes to stderr so CLI output on stdout stays pure JSON
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level
    )

    if log_file:
        ensure_directory(os.path.dirname(log_file) or ".")
        logger.add(
            log_file,
            rotation="10 MB",
            retention="30 days",
            level=level,
            encoding="utf-8",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
        )

    logger.info("Logging initialized")
