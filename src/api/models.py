"""
API Models - Request and Response schemas
Using Pydantic for automatic validation and documentation

The slip document itself (slip_data / timestamp / success) is
slip_models.SlipRecord and is returned unchanged by /slip/read and
/slip/parse so downstream parsers see the same shape everywhere.
"""

from typing import Optional

from pydantic import BaseModel, Field

from slip_models import OcrSlipInfo, QrPaymentInfo, SlipRecord


# ─── Requests ─────────────────────────────────────────────────────────────────

class QrDecodeRequest(BaseModel):
    payload: str = Field(..., description="Raw PromptPay QR string (TLV)")


class TextExtractRequest(BaseModel):
    text: str = Field(..., description="Raw OCR text of the slip (Thai/English)")


class SlipParseRequest(BaseModel):
    """Both sides already decoded by the caller; either may be omitted."""
    qr_payload: Optional[str] = Field(None, description="Raw PromptPay QR string")
    ocr_text: Optional[str]   = Field(None, description="Raw OCR text")

    class Config:
        json_schema_extra = {
            "example": {
                "qr_payload": "00020101021229370016A000000677010111011500112345678901235303764540415005802TH6304ABCD",
                "ocr_text": "โอนเงินสำเร็จ\n15 Jan 2024 14:30:00\nจำนวนเงิน: 1,500.00 บาท\nเลขที่อ้างอิง: 202401151430ABC123",
            }
        }


# ─── Responses ────────────────────────────────────────────────────────────────

class QrDecodeResponse(BaseModel):
    status: str                      = Field(..., description="'success' or 'no_data'")
    qr_data: Optional[QrPaymentInfo] = Field(None, description="Decoded fields, null when malformed")


class TextExtractResponse(BaseModel):
    status: str                    = Field(..., description="'success' or 'no_data'")
    ocr_data: Optional[OcrSlipInfo] = Field(None, description="Extracted fields, null for empty text")
    display_datetime: Optional[str] = Field(None, description="MM/DD/YYYY HH:MM:SS")


class SlipReadResponse(BaseModel):
    """Upload response with the slip document plus the raw inputs behind it."""
    status: str                     = Field(..., description="'success' or 'no_data'")
    filename: str                   = Field(..., description="Processed filename")
    slip: SlipRecord                = Field(..., description="Slip JSON document")
    ocr_text: str                   = Field("", description="Full recognized text")
    qr_payload: Optional[str]       = Field(None, description="Raw QR payload, if one was found")
    display_datetime: Optional[str] = Field(None, description="MM/DD/YYYY HH:MM:SS")
    processing_time_ms: int         = Field(..., description="Processing time in milliseconds")


# ─── Health ───────────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str  = Field("healthy",          description="Health status")
    service: str = Field("thai-slip-reader", description="Service name")
    version: str = Field("1.0.0",            description="API version")
