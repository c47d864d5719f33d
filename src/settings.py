"""
Configuration loading for the slip reader
YAML file (config/slip_config.yaml) deep-merged over built-in defaults
"""

import copy
import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from loguru import logger

CONFIG_ENV_VAR = "SLIP_READER_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "slip_config.yaml"


def default_config() -> Dict:
    """Return default configuration"""
    return {
        'ocr': {
            'lang': 'th',
            'use_gpu': False,
            'use_angle_cls': True,
            'drop_score': 0.25,
            'det_db_thresh': 0.3,
            'rec_batch_num': 6,
        },
        'qr': {
            'try_grayscale': True,
        },
        'pipeline': {
            'timeout_seconds': 60,
            'max_workers': 2,
        },
        'api': {
            'upload_dir': 'data/uploads',
            'max_file_size_mb': 10,
        },
        'logging': {
            'level': 'INFO',
            'file': 'logs/slip_reader.log',
        },
    }


def _deep_merge(base: Dict, override: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict:
    """
    Load configuration from a YAML file.

    Resolution order: explicit path, $SLIP_READER_CONFIG, config/slip_config.yaml.
    A missing file falls back to defaults; a file that is not a mapping is an error.
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH

    if not os.path.exists(config_path):
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return default_config()

    with open(config_path, 'r', encoding='utf-8') as f:
        loaded = yaml.safe_load(f) or {}

    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping, got {type(loaded).__name__}")

    logger.debug(f"Loaded config from {config_path}")
    return _deep_merge(default_config(), loaded)
