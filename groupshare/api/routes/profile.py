from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from groupshare.db.session import get_db
from groupshare.schemas.users import ProfileOut, ProfileUpdate
from groupshare.services.auth.identity import CallerContext, require_caller
from groupshare.services.users.service import UserProfileService


router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/profile", response_model=ProfileOut)
def get_profile(caller: CallerContext = Depends(require_caller)) -> ProfileOut:
    """Current caller's profile; created on the first authenticated request."""
    return ProfileOut.model_validate(caller.profile)


@router.post("/profile", response_model=ProfileOut)
def update_profile(
    body: ProfileUpdate,
    caller: CallerContext = Depends(require_caller),
    db: Session = Depends(get_db),
) -> ProfileOut:
    profile = UserProfileService(db).update_profile(caller.profile, **body.model_dump(exclude_none=True))
    return ProfileOut.model_validate(profile)
