from datetime import datetime, timezone

from fastapi import APIRouter

from app.core.config import settings
from app.models.schemas import HealthResponse

API_VERSION = "1.0.0"

router = APIRouter(tags=["meta"])


@router.get("/")
def root():
    return {"ok": True, "service": settings.service_name}


@router.get("/health", response_model=HealthResponse)
def health():
    return {"status": "ok", "time": datetime.now(timezone.utc)}


@router.get("/version")
def version():
    return {"version": API_VERSION}
