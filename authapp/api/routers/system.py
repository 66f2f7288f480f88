"""System-level API endpoints."""

from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from ...core import isoformat_utc, utcnow
from ...services.media import resolve_upload

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> Dict[str, str]:
    """Simple readiness check."""

    return {"status": "OK", "timestamp": isoformat_utc(utcnow())}


@router.get("/uploads/{path}")
def serve_upload(path: str):
    """Serve uploaded profile pictures."""

    file_path = resolve_upload(path)
    if file_path is None:
        raise HTTPException(404, "File not found")
    return FileResponse(file_path)


__all__ = ["router"]
