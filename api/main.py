"""
Medical bill service — FastAPI application.

Startup sequence:
  1. Load .env
  2. Init DB (create tables)
  3. Include API routers
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agents.verification_agent import VERIFICATION_MODEL, VERIFY_DOCUMENTS
from api.routes import bills as bills_router
from db.database import init_db

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Medical Bill Service",
    description="OCR extraction and rule-based validation of uploaded medical bills.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event() -> None:
    logger.info("Medical bill service startup: initialising database …")
    init_db()
    logger.info("Medical bill service startup: ready.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["meta"])
def health() -> dict:
    """
    Liveness / readiness check.
    Reports the document-verification model and LangSmith status; no LLM call is made.
    """
    langsmith_enabled: bool = (
        os.getenv("LANGSMITH_TRACING", "").lower() == "true"
        and bool(os.getenv("LANGSMITH_API_KEY", "").strip())
    )
    return {
        "status": "ok",
        "verification_model": VERIFICATION_MODEL,
        "verify_documents": VERIFY_DOCUMENTS,
        "langsmith_enabled": langsmith_enabled,
    }


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(bills_router.router)
