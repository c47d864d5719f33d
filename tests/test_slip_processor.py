"""
Tests for the slip processing pipeline
Scanner and OCR engine are replaced by in-process fakes
"""

import threading
import time

import pytest

from settings import default_config
from slip_processor import (
    STAGE_COMPLETED,
    STAGE_MERGING,
    STAGE_OCR,
    STAGE_QR,
    STAGE_STARTED,
    SlipProcessor,
    SlipReaderSession,
)


# ─── Fakes ────────────────────────────────────────────────────────────────────

class FakeScanner:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error

    def scan(self, image_path):
        if self.error:
            raise self.error
        return self.payload


class FakeOCR:
    def __init__(self, text="", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay

    def extract_text(self, image_path):
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return {'status': 'success', 'text': self.text}


class GatedOCR:
    """Blocks the first call until release is set."""

    def __init__(self, text):
        self.text = text
        self.started = threading.Event()
        self.release = threading.Event()
        self._first = True

    def extract_text(self, image_path):
        if self._first:
            self._first = False
            self.started.set()
            self.release.wait(5)
        return {'status': 'success', 'text': self.text}


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "slip.png"
    path.write_bytes(b"not really a png")
    return str(path)


@pytest.fixture
def qr_payload(make_payload):
    return make_payload(merchant="6681234567890", amount="1500.00")


def build(scanner, ocr, **pipeline):
    config = default_config()
    config['pipeline'].update(pipeline)
    return SlipProcessor(config, qr_scanner=scanner, ocr_engine=ocr)


# ─── Raw inputs ───────────────────────────────────────────────────────────────

def test_process_inputs_both(qr_payload, slip_text):
    record = build(FakeScanner(), FakeOCR()).process_inputs(qr_payload, slip_text)
    assert record.success is True
    assert record.qr_data.amount == "1500.00"
    assert record.ocr_data.amount == "1500.00"


def test_process_inputs_nothing():
    record = build(FakeScanner(), FakeOCR()).process_inputs(None, "   ")
    assert record.success is False


def test_malformed_qr_counts_as_no_data(slip_text):
    record = build(FakeScanner(), FakeOCR()).process_inputs("5410123", slip_text)
    assert record.qr_data is None
    assert record.success is True


# ─── Image pipeline ───────────────────────────────────────────────────────────

def test_image_both_sides(image, qr_payload, slip_text):
    result = build(FakeScanner(qr_payload), FakeOCR(slip_text)).process_image(image)

    assert result['status'] == 'success'
    assert result['qr_payload'] == qr_payload
    assert result['ocr_text'] == slip_text
    assert result['display_datetime'] == "01/15/2024 14:30:25"
    assert result['image_path'] == image
    record = result['record']
    assert record.qr_data.merchant_id.startswith("081-234-5678")
    assert record.ocr_data.reference == "2024011514302512345"


def test_image_without_qr(image, slip_text):
    result = build(FakeScanner(None), FakeOCR(slip_text)).process_image(image)
    assert result['record'].success is True
    assert result['record'].qr_data is None
    assert result['qr_payload'] is None


def test_ocr_failure_does_not_affect_qr(image, qr_payload):
    result = build(FakeScanner(qr_payload), FakeOCR(error=RuntimeError("model crashed"))).process_image(image)
    assert result['record'].success is True
    assert result['record'].ocr_data is None
    assert result['ocr_text'] == ""
    assert result['display_datetime'] is None


def test_qr_failure_does_not_affect_ocr(image, slip_text):
    result = build(FakeScanner(error=ValueError("bad image")), FakeOCR(slip_text)).process_image(image)
    assert result['record'].qr_data is None
    assert result['record'].ocr_data.amount == "1500.00"


def test_nothing_found(image):
    result = build(FakeScanner(None), FakeOCR("")).process_image(image)
    assert result['status'] == 'no_data'
    assert result['record'].success is False


def test_missing_image_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        build(FakeScanner(), FakeOCR()).process_image(str(tmp_path / "missing.png"))


def test_slow_side_is_dropped_after_timeout(image, qr_payload):
    ocr = GatedOCR("จำนวนเงิน: 10.00")
    processor = build(FakeScanner(qr_payload), ocr, timeout_seconds=0.2)
    try:
        result = processor.process_image(image)
    finally:
        ocr.release.set()

    assert result['record'].qr_data is not None
    assert result['record'].ocr_data is None
    assert result['record'].success is True


# ─── Progress ─────────────────────────────────────────────────────────────────

def test_progress_events(image, qr_payload, slip_text):
    events = []
    build(FakeScanner(qr_payload), FakeOCR(slip_text)).process_image(image, progress=events.append)

    stages = [e.stage for e in events]
    assert stages[0] == STAGE_STARTED
    assert stages[-2:] == [STAGE_MERGING, STAGE_COMPLETED]
    assert set(stages[1:3]) == {STAGE_QR, STAGE_OCR}

    percents = [e.percent for e in events]
    assert percents == sorted(percents)
    assert percents[0] == 0 and percents[-1] == 100

    ocr_event = next(e for e in events if e.stage == STAGE_OCR)
    assert ocr_event.message == "Slip text read (8 fields)"


def test_failing_progress_callback_is_ignored(image, slip_text):
    def explode(event):
        raise RuntimeError("ui gone")

    result = build(FakeScanner(None), FakeOCR(slip_text)).process_image(image, progress=explode)
    assert result['status'] == 'success'


# ─── Session ──────────────────────────────────────────────────────────────────

def test_session_returns_result(image, slip_text):
    with SlipReaderSession(build(FakeScanner(None), FakeOCR(slip_text))) as session:
        result = session.submit(image).result(5)
        assert result['status'] == 'success'
        assert session.latest_result is result


def test_newer_submission_supersedes_running_one(tmp_path, slip_text):
    first, second = tmp_path / "a.png", tmp_path / "b.png"
    first.write_bytes(b"a")
    second.write_bytes(b"b")

    ocr = GatedOCR(slip_text)
    first_events = []
    with SlipReaderSession(build(FakeScanner(None), ocr)) as session:
        f1 = session.submit(str(first), progress=first_events.append)
        assert ocr.started.wait(5)

        f2 = session.submit(str(second))
        ocr.release.set()

        assert f1.result(5) is None
        result = f2.result(5)
        assert result['image_path'] == str(second)
        assert session.latest_result is result

    # events after the second submission are dropped
    stages = [e.stage for e in first_events]
    assert stages[0] == STAGE_STARTED
    assert STAGE_MERGING not in stages
    assert STAGE_COMPLETED not in stages


def test_queued_submission_is_cancelled(tmp_path, slip_text):
    paths = []
    for name in ("a.png", "b.png", "c.png"):
        p = tmp_path / name
        p.write_bytes(b"x")
        paths.append(str(p))

    ocr = GatedOCR(slip_text)
    with SlipReaderSession(build(FakeScanner(None), ocr)) as session:
        f1 = session.submit(paths[0])
        assert ocr.started.wait(5)
        f2 = session.submit(paths[1])
        f3 = session.submit(paths[2])
        ocr.release.set()

        assert f2.cancelled()
        assert f1.result(5) is None
        assert f3.result(5)['image_path'] == paths[2]
