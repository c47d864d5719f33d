"""
QR Scanner
Locates and decodes the QR code printed on a slip image using OpenCV.

Only pixel decoding happens here; the returned string is handed to
promptpay_decoder as-is.
"""

import os
from typing import Dict, Optional

import cv2
import numpy as np
from loguru import logger


class QRScanner:
    """Thin wrapper around cv2.QRCodeDetector."""

    def __init__(self, config: Optional[Dict] = None):
        qr_config = (config or {}).get('qr', {})
        self.try_grayscale = qr_config.get('try_grayscale', True)
        self.detector = cv2.QRCodeDetector()

    def scan(self, image_path: str) -> Optional[str]:
        """
        Decode the first QR code found in an image file.

        Returns:
            Raw payload string, or None when no QR code could be decoded
        """
        if not os.path.exists(image_path):
            raise FileNotFoundError(f"Image not found: {image_path}")

        img = cv2.imread(image_path)
        if img is None:
            logger.warning(f"[QR] Unable to read image: {image_path}")
            return None

        return self.scan_array(img)

    def scan_array(self, img: np.ndarray) -> Optional[str]:
        """Decode from an already-loaded BGR (or grayscale) image."""
        payload = self._decode(img)
        if payload is None and self.try_grayscale:
            payload = self._decode(self._binarize(img))
            if payload is not None:
                logger.debug("[QR] Decoded on binarized retry")

        if payload is None:
            logger.info("[QR] No QR code found")
        else:
            logger.info(f"[QR] Decoded payload ({len(payload)} chars)")
        return payload

    def _decode(self, img: np.ndarray) -> Optional[str]:
        try:
            data, points, _ = self.detector.detectAndDecode(img)
        except cv2.error as e:
            logger.warning(f"[QR] Detector error: {e}")
            return None
        if points is None or not data:
            return None
        return data

    @staticmethod
    def _binarize(img: np.ndarray) -> np.ndarray:
        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY) if img.ndim == 3 else img
        _, bw = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return bw
