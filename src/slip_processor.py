"""
Integrated Slip Processing Pipeline
Runs QR scanning and OCR over one slip image, extracts fields from both and
merges them into a SlipRecord

Workflow:
1. Validate input image
2. In parallel:
     a. QR scan → PromptPay TLV decode
     b. OCR     → text field extraction
3. Merge (success iff either side produced data)

A side that fails, raises or times out contributes None; it never takes the
other side down with it.
"""

import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeout, as_completed
from datetime import datetime
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from loguru import logger

from datetime_normalizer import format_date_time
from extractor.slip_extractor import SlipTextExtractor
from promptpay_decoder import decode_promptpay
from qr_scanner import QRScanner
from result_merger import merge
from settings import load_config
from slip_models import OcrSlipInfo, QrPaymentInfo, SlipRecord


class ProgressEvent(NamedTuple):
    stage: str
    message: str
    percent: int


ProgressCallback = Callable[[ProgressEvent], None]

STAGE_STARTED   = "started"
STAGE_QR        = "qr_scanned"
STAGE_OCR       = "ocr_completed"
STAGE_MERGING   = "merging"
STAGE_COMPLETED = "completed"


class SlipProcessor:
    """
    End-to-end slip processing pipeline

    The QR scanner and OCR engine can be injected (tests, alternative
    engines); otherwise they are built from config.  The OCR engine is
    created on first use because loading the PaddleOCR model is slow.
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        qr_scanner=None,
        ocr_engine=None,
        extractor: Optional[SlipTextExtractor] = None,
    ):
        """Initialize all processing components"""
        logger.info("Initializing Slip Processor Pipeline")

        self.config = config if config is not None else load_config()
        self.qr_scanner = qr_scanner if qr_scanner is not None else QRScanner(self.config)
        self._ocr_engine = ocr_engine
        self._ocr_lock = threading.Lock()
        self.extractor = extractor if extractor is not None else SlipTextExtractor()

        pipeline = self.config.get('pipeline', {})
        self.timeout_seconds = pipeline.get('timeout_seconds', 60)
        self.max_workers = pipeline.get('max_workers', 2)

        logger.success("Slip Processor ready")

    @property
    def ocr_engine(self):
        with self._ocr_lock:
            if self._ocr_engine is None:
                from ocr_engine import OCREngine
                self._ocr_engine = OCREngine(self.config)
            return self._ocr_engine

    # ── Raw inputs (no image) ─────────────────────────────────────────────────

    def decode_qr(self, payload: Optional[str]) -> Optional[QrPaymentInfo]:
        """Empty/missing payload or malformed TLV → None"""
        if not payload:
            return None
        return decode_promptpay(payload)

    def extract_text(self, text: Optional[str]) -> Optional[OcrSlipInfo]:
        """Empty/missing OCR text → None (no OCR data), otherwise always a record"""
        if not text or not text.strip():
            return None
        return self.extractor.extract(text)

    def process_inputs(
        self,
        qr_payload: Optional[str] = None,
        ocr_text: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SlipRecord:
        """Merge already-decoded QR payload and OCR text into a record"""
        return merge(self.decode_qr(qr_payload), self.extract_text(ocr_text), now)

    # ── Image pipeline ────────────────────────────────────────────────────────

    def process_image(self, image_path: str, progress: Optional[ProgressCallback] = None) -> Dict:
        """
        Process a single slip image.

        Args:
            image_path: Path to slip image
            progress:   Optional callback receiving ProgressEvent

        Returns:
            Dict with record (SlipRecord), qr_payload, ocr_text,
            display_datetime, processing_time_ms, status
        """
        if not os.path.exists(image_path):
            raise FileNotFoundError(f"Image not found: {image_path}")

        logger.info(f"Processing slip: {image_path}")
        start_time = time.time()
        self._emit(progress, STAGE_STARTED, "Processing slip...", 0)

        qr_payload, qr_data = None, None
        ocr_text, ocr_data = "", None

        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="slip")
        try:
            qr_future = pool.submit(self._run_qr, image_path)
            ocr_future = pool.submit(self._run_ocr, image_path)
            futures = {qr_future: STAGE_QR, ocr_future: STAGE_OCR}

            finished = 0
            try:
                for future in as_completed(futures, timeout=self.timeout_seconds):
                    finished += 1
                    stage = futures[future]
                    if stage == STAGE_QR:
                        qr_payload, qr_data = future.result()
                        message = "QR code read" if qr_data is not None else "No PromptPay QR code"
                    else:
                        ocr_text, ocr_data = future.result()
                        message = (f"Slip text read ({len(ocr_data.found_fields())} fields)"
                                   if ocr_data is not None else "No slip text")
                    self._emit(progress, stage, message, 25 + 25 * finished)
            except FuturesTimeout:
                pending = [futures[f] for f in futures if not f.done()]
                logger.warning(
                    f"Timed out after {self.timeout_seconds}s waiting for {', '.join(pending)}; "
                    f"continuing without it"
                )
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        self._emit(progress, STAGE_MERGING, "Merging results...", 90)
        record = merge(qr_data, ocr_data)
        processing_time = int((time.time() - start_time) * 1000)

        if record.success:
            logger.success(
                f"Slip processed in {processing_time}ms "
                f"(qr={'yes' if qr_data else 'no'}, ocr={'yes' if ocr_data else 'no'})"
            )
        else:
            logger.warning(f"Could not read slip {image_path}: no QR data and no OCR data")

        self._emit(progress, STAGE_COMPLETED, "Done", 100)

        return {
            'status': 'success' if record.success else 'no_data',
            'record': record,
            'qr_payload': qr_payload,
            'ocr_text': ocr_text,
            'display_datetime': format_date_time(ocr_data.date, ocr_data.time) if ocr_data else None,
            'processing_time_ms': processing_time,
            'image_path': image_path,
        }

    def _run_qr(self, image_path: str) -> Tuple[Optional[str], Optional[QrPaymentInfo]]:
        try:
            payload = self.qr_scanner.scan(image_path)
            return payload, self.decode_qr(payload)
        except Exception as e:
            logger.error(f"QR pipeline failed for {image_path}: {e}")
            return None, None

    def _run_ocr(self, image_path: str) -> Tuple[str, Optional[OcrSlipInfo]]:
        try:
            result = self.ocr_engine.extract_text(image_path)
            text = result.get('text', '') or ''
            return text, self.extract_text(text)
        except Exception as e:
            logger.error(f"OCR pipeline failed for {image_path}: {e}")
            return "", None

    @staticmethod
    def _emit(progress: Optional[ProgressCallback], stage: str, message: str, percent: int):
        if progress is None:
            return
        try:
            progress(ProgressEvent(stage, message, percent))
        except Exception as e:
            logger.warning(f"Progress callback raised during '{stage}': {e}")


class SlipReaderSession:
    """
    Single-flight front end for interactive use.

    Each submit() supersedes every earlier submission: queued ones are
    cancelled, a running one finishes but its result is discarded (its
    future resolves to None and its progress events are dropped).
    latest_result always belongs to the most recent submission.
    """

    def __init__(self, processor: SlipProcessor):
        self.processor = processor
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="slip-session")
        self._lock = threading.Lock()
        self._generation = 0
        self._pending: Optional[Future] = None
        self._latest: Optional[Dict] = None

    def submit(self, image_path: str, progress: Optional[ProgressCallback] = None) -> Future:
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._pending is not None and not self._pending.done():
                if self._pending.cancel():
                    logger.info("Cancelled queued slip submission")
            self._latest = None
            future = self._executor.submit(self._run, generation, image_path, progress)
            self._pending = future
        return future

    @property
    def latest_result(self) -> Optional[Dict]:
        with self._lock:
            return self._latest

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _run(self, generation: int, image_path: str, progress: Optional[ProgressCallback]) -> Optional[Dict]:
        if not self._is_current(generation):
            logger.info(f"Skipping superseded submission: {image_path}")
            return None

        def _forward(event: ProgressEvent):
            if progress is not None and self._is_current(generation):
                progress(event)

        result = self.processor.process_image(image_path, progress=_forward)

        with self._lock:
            if generation != self._generation:
                logger.info(f"Discarding result of superseded submission: {image_path}")
                return None
            self._latest = result
        return result

    def close(self):
        self._executor.shutdown(wait=True, cancel_futures=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
