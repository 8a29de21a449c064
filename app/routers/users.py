"""
Users router - the signed-in user's own profile.
All endpoints here require authentication.
"""

from fastapi import APIRouter, Depends

from app.deps import get_current_user
from app.models.user import User
from app.schemas.user import UserOut

# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/users", tags=["users"])


# ---------------------------------------------------------------------------
# GET /users/me - Get the current user's profile
# ---------------------------------------------------------------------------
@router.get("/me", response_model=UserOut)
def read_current_user(current_user: User = Depends(get_current_user)):
    """
    Profile of the signed-in user (navbar, settings page).

    The front end also calls this after sign-in to check the stored token.
    """
    return current_user
