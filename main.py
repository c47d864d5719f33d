"""
Thai Slip Reader API - Main Application
FastAPI application for reading Thai bank-transfer slips (PromptPay QR + OCR)

Run with: python main.py
Access API docs at: http://localhost:8000/docs
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from api.routes import router
from api.models import HealthResponse
from settings import load_config
from utils import setup_logging

config = load_config()
setup_logging(config['logging'].get('file'), config['logging'].get('level', 'INFO'))

# Create FastAPI app
app = FastAPI(
    title="Thai Slip Reader API",
    description="Extract PromptPay QR data and slip fields from Thai bank-transfer receipts",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Thai Slip Reader API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    return HealthResponse()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
