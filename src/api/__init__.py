"""
API Package
Contains FastAPI routes and models
"""

from api.routes import router, get_processor
from api.models import (
    QrDecodeResponse,
    TextExtractResponse,
    SlipReadResponse,
    HealthResponse,
)

__all__ = [
    'router',
    'get_processor',
    'QrDecodeResponse',
    'TextExtractResponse',
    'SlipReadResponse',
    'HealthResponse',
]
