"""
Slip Models - structured records produced by the extraction core
Using Pydantic so the same models drive validation, JSON export and the API docs

Attribute names are snake_case; the JSON aliases are the export contract
consumed downstream (slip_data.qr_data / slip_data.ocr_data / timestamp / success).
Always dump with by_alias=True.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ─── QR side ──────────────────────────────────────────────────────────────────

class QrPaymentInfo(BaseModel):
    """Fields decoded from a PromptPay QR payload. Absent tags stay ''."""
    model_config = ConfigDict(populate_by_name=True)

    merchant_id: str       = Field("", alias="merchantID",      description="Citizen ID, phone or e-Wallet ID")
    amount: str            = Field("", alias="amount",          description="Tag 54, verbatim")
    reference: str         = Field("", alias="reference",       description="Tag 62 / sub-tag 05")
    bill_payment_ref1: str = Field("", alias="billPaymentRef1", description="Tag 62 / sub-tag 01")
    bill_payment_ref2: str = Field("", alias="billPaymentRef2", description="Tag 62 / sub-tag 02")


# ─── OCR side ─────────────────────────────────────────────────────────────────

class OcrSlipInfo(BaseModel):
    """
    Fields recovered from OCR text.

    None means no pattern matched. transaction_no, ref1 and ref2 have no
    extraction rule and are always None; they are kept in the export shape.
    """
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[str]         = Field(None, alias="amount")
    fee: Optional[str]            = Field(None, alias="fee")
    date: Optional[str]           = Field(None, alias="date")
    time: Optional[str]           = Field(None, alias="time")
    reference: Optional[str]      = Field(None, alias="reference")
    ref1: Optional[str]           = Field(None, alias="ref1")
    ref2: Optional[str]           = Field(None, alias="ref2")
    transaction_no: Optional[str] = Field(None, alias="transactionNo")
    from_account: Optional[str]   = Field(None, alias="fromAccount")
    to_account: Optional[str]     = Field(None, alias="toAccount")
    transfer_type: Optional[str]  = Field(None, alias="transferType")

    def found_fields(self) -> list:
        """Names of the fields that were extracted (attribute names)."""
        return [name for name, value in self if value is not None]


# ─── Merged record ────────────────────────────────────────────────────────────

class SlipData(BaseModel):
    ocr_data: Optional[OcrSlipInfo] = None
    qr_data: Optional[QrPaymentInfo] = None


class SlipRecord(BaseModel):
    """One merged extraction result, serialized as the slip JSON document."""
    slip_data: SlipData = Field(default_factory=SlipData)
    timestamp: str      = Field(..., description="ISO-8601 instant of record creation")
    success: bool       = Field(..., description="True iff QR or OCR produced data")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "slip_data": {
                    "ocr_data": {
                        "amount": "1500.00",
                        "fee": "0.00",
                        "date": "15 Jan 2024",
                        "time": "14:30:00",
                        "reference": "202401151430ABC123",
                        "ref1": None,
                        "ref2": None,
                        "transactionNo": None,
                        "fromAccount": "123-4-56789-0",
                        "toAccount": "987-6-54321-0",
                        "transferType": "PromptPay",
                    },
                    "qr_data": {
                        "merchantID": "1-2345-67890-12-3",
                        "amount": "1500.00",
                        "reference": "",
                        "billPaymentRef1": "",
                        "billPaymentRef2": "",
                    },
                },
                "timestamp": "2024-01-15T07:30:00.000Z",
                "success": True,
            }
        }
    )

    @model_validator(mode="after")
    def _check_success(self):
        has_data = self.slip_data.qr_data is not None or self.slip_data.ocr_data is not None
        if self.success != has_data:
            raise ValueError(
                f"success={self.success} but qr_data/ocr_data presence is {has_data}"
            )
        return self

    @property
    def qr_data(self) -> Optional[QrPaymentInfo]:
        return self.slip_data.qr_data

    @property
    def ocr_data(self) -> Optional[OcrSlipInfo]:
        return self.slip_data.ocr_data

    def to_document(self) -> dict:
        """The export document: slip_data{ocr_data, qr_data}, timestamp, success."""
        return self.model_dump(by_alias=True)
