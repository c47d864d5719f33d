"""
API Routes - All API endpoints
Image upload goes through SlipProcessor; raw-input endpoints skip the scanner/OCR
"""

import shutil
import uuid
from functools import lru_cache
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from api.models import (
    QrDecodeRequest,
    QrDecodeResponse,
    SlipParseRequest,
    SlipReadResponse,
    TextExtractRequest,
    TextExtractResponse,
)
from datetime_normalizer import format_date_time
from settings import load_config
from slip_models import SlipRecord
from slip_processor import SlipProcessor
from utils import ALLOWED_IMAGE_EXTENSIONS, ensure_directory, sanitize_filename

router = APIRouter()


@lru_cache(maxsize=1)
def get_processor() -> SlipProcessor:
    """Shared processor; the OCR model is loaded on the first image request."""
    return SlipProcessor(load_config())


# ==================== UTILITY FUNCTIONS ====================

def validate_file(file: UploadFile):
    """Validate uploaded file"""
    if not file.filename:
        raise HTTPException(400, detail="No filename provided")

    ext = Path(file.filename).suffix.lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(
            400,
            detail=f"Invalid file type: {ext}. Allowed: {', '.join(ALLOWED_IMAGE_EXTENSIONS)}"
        )


def save_upload(file: UploadFile, processor: SlipProcessor) -> Path:
    """Save uploaded file and return path; rejects files over the size limit"""
    api_config = processor.config.get('api', {})
    upload_dir = Path(ensure_directory(api_config.get('upload_dir', 'data/uploads')))
    max_bytes = int(api_config.get('max_file_size_mb', 10) * 1024 * 1024)

    ext = Path(file.filename).suffix.lower()
    file_path = upload_dir / f"{uuid.uuid4()}{ext}"

    with file_path.open("wb") as buffer:
        shutil.copyfileobj(file.file, buffer)

    size = file_path.stat().st_size
    if size == 0 or size > max_bytes:
        file_path.unlink(missing_ok=True)
        raise HTTPException(
            400,
            detail="Empty file" if size == 0 else f"File too large (max {max_bytes // (1024 * 1024)}MB)"
        )

    return file_path


async def _process_upload(file: UploadFile, processor: SlipProcessor) -> dict:
    file_path = None
    try:
        validate_file(file)
        file_path = save_upload(file, processor)
        logger.info(f"Processing upload: {sanitize_filename(file.filename)}")
        return await run_in_threadpool(processor.process_image, str(file_path))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error processing {file.filename}: {e}")
        logger.exception("Full traceback:")
        raise HTTPException(500, str(e))
    finally:
        if file_path and file_path.exists():
            file_path.unlink()


# ==================== API ENDPOINTS ====================

@router.post("/slip/read", response_model=SlipRecord, tags=["Slip"])
async def read_slip(
    file: UploadFile = File(..., description="Slip image"),
    processor: SlipProcessor = Depends(get_processor),
):
    """
    **Read a bank-transfer slip**

    Scans the PromptPay QR code and OCRs the text of the uploaded image,
    then returns the merged slip document.

    `success` is false when neither side produced data; that is still a
    200 response.

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/api/v1/slip/read -F "file=@slip.jpg"
    ```
    """
    result = await _process_upload(file, processor)
    return result['record']


@router.post("/slip/read-detailed", response_model=SlipReadResponse, tags=["Slip"])
async def read_slip_detailed(
    file: UploadFile = File(..., description="Slip image"),
    processor: SlipProcessor = Depends(get_processor),
):
    """
    **Read a slip and include the raw inputs**

    Same as /slip/read plus the recognized text, the raw QR payload and the
    normalized transaction date/time.
    """
    result = await _process_upload(file, processor)
    return SlipReadResponse(
        status=result['status'],
        filename=file.filename,
        slip=result['record'],
        ocr_text=result.get('ocr_text') or '',
        qr_payload=result.get('qr_payload'),
        display_datetime=result.get('display_datetime'),
        processing_time_ms=result.get('processing_time_ms', 0),
    )


@router.post("/slip/parse", response_model=SlipRecord, tags=["Slip"])
async def parse_slip(
    request: SlipParseRequest,
    processor: SlipProcessor = Depends(get_processor),
):
    """
    **Build a slip document from already-decoded inputs**

    For clients that run their own QR decoder / OCR.  Empty inputs count as
    "no data" for that side.
    """
    return processor.process_inputs(request.qr_payload, request.ocr_text)


@router.post("/qr/decode", response_model=QrDecodeResponse, tags=["QR"])
async def decode_qr(
    request: QrDecodeRequest,
    processor: SlipProcessor = Depends(get_processor),
):
    """Decode a raw PromptPay payload; malformed payloads give status 'no_data'."""
    qr_data = processor.decode_qr(request.payload)
    return QrDecodeResponse(
        status="success" if qr_data is not None else "no_data",
        qr_data=qr_data,
    )


@router.post("/text/extract", response_model=TextExtractResponse, tags=["OCR"])
async def extract_text(
    request: TextExtractRequest,
    processor: SlipProcessor = Depends(get_processor),
):
    """Extract slip fields from raw OCR text."""
    ocr_data = processor.extract_text(request.text)
    return TextExtractResponse(
        status="success" if ocr_data is not None else "no_data",
        ocr_data=ocr_data,
        display_datetime=format_date_time(ocr_data.date, ocr_data.time) if ocr_data else None,
    )
