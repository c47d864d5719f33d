"""
Tests for the API routes
The processor dependency is overridden with fakes so no model is loaded
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.routes import get_processor, router
from settings import default_config
from slip_processor import SlipProcessor


class FakeScanner:
    def __init__(self, payload=None):
        self.payload = payload

    def scan(self, image_path):
        return self.payload


class FakeOCR:
    def __init__(self, text=""):
        self.text = text

    def extract_text(self, image_path):
        return {'status': 'success', 'text': self.text}


@pytest.fixture
def qr_payload(make_payload):
    return make_payload(merchant="001234567890123", amount="1500.00", additional={"05": "REF12345"})


@pytest.fixture
def processor(tmp_path, qr_payload, slip_text):
    config = default_config()
    config['api']['upload_dir'] = str(tmp_path / "uploads")
    config['api']['max_file_size_mb'] = 1
    return SlipProcessor(config, qr_scanner=FakeScanner(qr_payload), ocr_engine=FakeOCR(slip_text))


@pytest.fixture
def client(processor):
    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.dependency_overrides[get_processor] = lambda: processor
    return TestClient(app)


# ─── Upload endpoints ─────────────────────────────────────────────────────────

def test_read_slip(client):
    response = client.post(
        "/api/v1/slip/read",
        files={"file": ("slip.png", b"\x89PNG fake", "image/png")},
    )
    assert response.status_code == 200

    doc = response.json()
    assert doc["success"] is True
    assert doc["timestamp"].endswith("Z")
    assert doc["slip_data"]["qr_data"]["merchantID"] == "1-2345-67890-12-3"
    assert doc["slip_data"]["qr_data"]["reference"] == "REF12345"
    assert doc["slip_data"]["ocr_data"]["fromAccount"] == "123-4-56789-0"
    assert doc["slip_data"]["ocr_data"]["transactionNo"] is None


def test_read_slip_detailed(client, qr_payload):
    response = client.post(
        "/api/v1/slip/read-detailed",
        files={"file": ("slip.jpg", b"fake jpeg", "image/jpeg")},
    )
    assert response.status_code == 200

    body = response.json()
    assert body["status"] == "success"
    assert body["filename"] == "slip.jpg"
    assert body["qr_payload"] == qr_payload
    assert "จำนวนเงิน" in body["ocr_text"]
    assert body["display_datetime"] == "01/15/2024 14:30:25"
    assert body["slip"]["slip_data"]["ocr_data"]["amount"] == "1500.00"


def test_upload_is_removed_after_processing(client, tmp_path):
    client.post("/api/v1/slip/read", files={"file": ("slip.png", b"data", "image/png")})
    assert list((tmp_path / "uploads").iterdir()) == []


def test_invalid_extension_rejected(client):
    response = client.post("/api/v1/slip/read", files={"file": ("slip.pdf", b"%PDF", "application/pdf")})
    assert response.status_code == 400
    assert "Invalid file type" in response.json()["detail"]


def test_documented_errors_match_http_exception_body(client):
    schemas = client.get("/openapi.json").json()["components"]["schemas"]
    assert "ErrorResponse" not in schemas


def test_empty_upload_rejected(client):
    response = client.post("/api/v1/slip/read", files={"file": ("slip.png", b"", "image/png")})
    assert response.status_code == 400


def test_oversized_upload_rejected(client):
    big = b"0" * (1024 * 1024 + 1)
    response = client.post("/api/v1/slip/read", files={"file": ("slip.png", big, "image/png")})
    assert response.status_code == 400
    assert "too large" in response.json()["detail"]


def test_unreadable_slip_is_still_200(tmp_path):
    config = default_config()
    config['api']['upload_dir'] = str(tmp_path / "uploads")
    empty = SlipProcessor(config, qr_scanner=FakeScanner(None), ocr_engine=FakeOCR(""))

    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.dependency_overrides[get_processor] = lambda: empty

    response = TestClient(app).post("/api/v1/slip/read", files={"file": ("s.png", b"x", "image/png")})
    assert response.status_code == 200
    assert response.json()["success"] is False


# ─── Raw-input endpoints ──────────────────────────────────────────────────────

def test_parse_slip(client, qr_payload, slip_text):
    response = client.post("/api/v1/slip/parse", json={"qr_payload": qr_payload, "ocr_text": slip_text})
    assert response.status_code == 200
    doc = response.json()
    assert doc["success"] is True
    assert doc["slip_data"]["qr_data"]["amount"] == "1500.00"
    assert doc["slip_data"]["ocr_data"]["transferType"] == "โอนเงิน"


def test_parse_slip_without_inputs(client):
    doc = client.post("/api/v1/slip/parse", json={}).json()
    assert doc["success"] is False
    assert doc["slip_data"] == {"ocr_data": None, "qr_data": None}


def test_decode_qr(client, qr_payload):
    body = client.post("/api/v1/qr/decode", json={"payload": qr_payload}).json()
    assert body["status"] == "success"
    assert body["qr_data"]["merchantID"] == "1-2345-67890-12-3"


def test_decode_malformed_qr(client):
    body = client.post("/api/v1/qr/decode", json={"payload": "5410123"}).json()
    assert body == {"status": "no_data", "qr_data": None}


def test_decode_qr_requires_payload(client):
    assert client.post("/api/v1/qr/decode", json={}).status_code == 422


def test_extract_text(client, slip_text):
    body = client.post("/api/v1/text/extract", json={"text": slip_text}).json()
    assert body["status"] == "success"
    assert body["ocr_data"]["amount"] == "1500.00"
    assert body["ocr_data"]["toAccount"] == "987-6-54321-0"
    assert body["display_datetime"] == "01/15/2024 14:30:25"


def test_extract_blank_text(client):
    body = client.post("/api/v1/text/extract", json={"text": "  "}).json()
    assert body["status"] == "no_data"
    assert body["ocr_data"] is None


# ─── Application ──────────────────────────────────────────────────────────────

def test_health_and_root():
    from main import app

    client = TestClient(app)
    assert client.get("/health").json() == {
        "status": "healthy", "service": "thai-slip-reader", "version": "1.0.0",
    }
    assert client.get("/").json()["docs"] == "/docs"
