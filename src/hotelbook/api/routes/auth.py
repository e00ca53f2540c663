"""Auth routes - user identity endpoints."""

from fastapi import APIRouter, Depends

from hotelbook.api.auth import CurrentUser, get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/whoami")
def whoami(user: CurrentUser = Depends(get_current_user)) -> dict:
    """Return the authenticated user and their role."""
    return {
        "id": user.id,
        "external_subject": user.external_subject,
        "email": user.email,
        "name": user.name,
        "role": user.role,
    }
