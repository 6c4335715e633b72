from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from groupshare.core.errors import NotFoundError
from groupshare.db.session import get_db
from groupshare.schemas.notifications import NotificationOut
from groupshare.services.auth.identity import CallerContext, require_caller
from groupshare.services.notifications.service import NotificationService


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def list_notifications(
    caller: CallerContext = Depends(require_caller),
    db: Session = Depends(get_db),
) -> list[NotificationOut]:
    items = NotificationService(db).list_for_user(caller.user_id)
    return [NotificationOut.model_validate(n) for n in items]


@router.post("/{notification_id}/read")
def mark_read(
    notification_id: str,
    caller: CallerContext = Depends(require_caller),
    db: Session = Depends(get_db),
) -> dict:
    if not NotificationService(db).mark_read(caller.user_id, notification_id):
        raise NotFoundError("Notification not found")
    return {"read": True}
