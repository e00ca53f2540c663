"""Unauthenticated routes."""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict:
    """Liveness check."""
    return {"status": "ok"}
