"""
OCR Engine for Slip Text Recognition
Uses PaddleOCR (Thai model) to turn a slip image into raw text

The engine only recognizes text; field extraction happens in
extractor.slip_extractor on the joined text.
"""

import os
import time
from typing import Dict, List, Optional

from loguru import logger

from settings import load_config

# Fix for Windows OneDNN compatibility issue
os.environ['FLAGS_use_mkldnn'] = 'False'
os.environ['FLAGS_enable_new_ir'] = 'False'

try:
    from paddleocr import PaddleOCR
    import numpy as np
except ImportError as e:
    logger.error(f"Missing dependency: {e}")
    logger.info("Install with: pip install 'thai-slip-reader[ocr]'")
    raise


class OCREngine:
    """
    Slip OCR Engine powered by PaddleOCR

    Features:
    - Thai + Latin recognition with the 'th' model
    - Angle classification for rotated slips
    - Per-line confidence and bounding boxes
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize OCR engine with configuration (loaded from YAML when not given)
        """
        self.config = config if config is not None else load_config()
        self.ocr = None
        self._initialize_ocr()
        logger.info("OCR Engine initialized successfully")
        logger.info(f"GPU enabled: {self.config['ocr']['use_gpu']}")

    def _initialize_ocr(self):
        """Initialize PaddleOCR model"""
        try:
            ocr_config = self.config['ocr']

            init_params = {
                'use_angle_cls': ocr_config.get('use_angle_cls', True),
                'lang': ocr_config.get('lang', 'th'),
                'use_gpu': ocr_config.get('use_gpu', False),
                'det_db_thresh': ocr_config.get('det_db_thresh', 0.3),
                'rec_batch_num': ocr_config.get('rec_batch_num', 6),
                'drop_score': ocr_config.get('drop_score', 0.25),
                'use_space_char': True,
                'show_log': False
            }

            logger.info(f"Initializing PaddleOCR (lang={init_params['lang']}, "
                        f"drop_score={init_params['drop_score']})")

            self.ocr = PaddleOCR(**init_params)

            logger.success("PaddleOCR model loaded successfully")

        except Exception as e:
            logger.error(f"Failed to initialize PaddleOCR: {e}")
            raise

    def extract_text(self, image_path: str) -> Dict:
        """
        Extract text from a slip image

        Args:
            image_path: Path to image file

        Returns:
            Dictionary with status, joined text, lines and timing
        """
        if not os.path.exists(image_path):
            raise FileNotFoundError(f"Image not found: {image_path}")

        logger.info(f"Processing image: {image_path}")
        start_time = time.time()

        result = self.ocr.ocr(image_path, cls=True)

        if not result or not result[0]:
            logger.warning(f"No text detected in {image_path}")
            return {
                "status": "no_text_found",
                "text": "",
                "lines": [],
                "lines_detected": 0,
                "average_confidence": 0.0,
                "processing_time_ms": int((time.time() - start_time) * 1000),
            }

        lines = self._parse_ocr_result(result[0])

        avg_confidence = float(np.mean([line["confidence"] for line in lines])) if lines else 0.0
        processing_time = int((time.time() - start_time) * 1000)
        full_text = "\n".join(line["text"] for line in lines)

        logger.info(f"Extracted {len(lines)} lines in {processing_time}ms  "
                    f"avg_conf={avg_confidence:.2f}")

        return {
            "status": "success",
            "text": full_text,
            "lines": lines,
            "lines_detected": len(lines),
            "average_confidence": round(avg_confidence, 3),
            "processing_time_ms": processing_time,
        }

    def _parse_ocr_result(self, result: List) -> List[Dict]:
        """Parse PaddleOCR result into structured format"""
        lines = []
        for line in result:
            lines.append({
                'text': line[1][0],
                'confidence': round(float(line[1][1]), 3),
                'bbox': line[0],
            })
        return lines
