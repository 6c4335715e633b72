"""
Group routes: the caller's groups, group details for members, owner CRUD.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from groupshare.db.session import get_db
from groupshare.schemas.groups import (
    GroupCreate,
    GroupDetailOut,
    GroupListItem,
    GroupMemberOut,
    GroupOut,
    GroupUpdate,
)
from groupshare.schemas.offers import OfferOut
from groupshare.services.auth.identity import CallerContext, require_caller
from groupshare.services.groups.service import GroupService


router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(db: Session = Depends(get_db)) -> GroupService:
    return GroupService(db)


@router.get("", response_model=list[GroupListItem])
def list_groups(
    caller: CallerContext = Depends(require_caller),
    service: GroupService = Depends(get_group_service),
) -> list[GroupListItem]:
    return [
        GroupListItem(
            **GroupOut.model_validate(group).model_dump(),
            role=role,
            is_owner=group.owner_id == caller.user_id,
        )
        for group, role in service.list_for_user(caller.user_id)
    ]


@router.post("", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
def create_group(
    body: GroupCreate,
    caller: CallerContext = Depends(require_caller),
    service: GroupService = Depends(get_group_service),
) -> GroupOut:
    """Creates the group and adds the caller as its admin member."""
    return GroupOut.model_validate(service.create_group(caller.user_id, body.name, body.description))


@router.get("/{group_id}", response_model=GroupDetailOut)
def get_group(
    group_id: str,
    caller: CallerContext = Depends(require_caller),
    service: GroupService = Depends(get_group_service),
) -> GroupDetailOut:
    detail = service.get_detail(caller.user_id, group_id)
    return GroupDetailOut(
        **GroupOut.model_validate(detail.group).model_dump(),
        members=[
            GroupMemberOut(
                id=m.id,
                user_id=m.user_id,
                display_name=m.user.display_name if m.user else "",
                role=m.role,
                status=m.status,
                joined_at=m.joined_at,
            )
            for m in detail.members
        ],
        subscriptions=[OfferOut.model_validate(o) for o in detail.offers],
        user_role=detail.role,
        is_owner=detail.group.owner_id == caller.user_id,
    )


@router.patch("/{group_id}", response_model=GroupOut)
def update_group(
    group_id: str,
    body: GroupUpdate,
    caller: CallerContext = Depends(require_caller),
    service: GroupService = Depends(get_group_service),
) -> GroupOut:
    group = service.update_group(caller.user_id, group_id, name=body.name, description=body.description)
    return GroupOut.model_validate(group)


@router.delete("/{group_id}")
def delete_group(
    group_id: str,
    caller: CallerContext = Depends(require_caller),
    service: GroupService = Depends(get_group_service),
) -> dict:
    service.delete_group(caller.user_id, group_id)
    return {"message": "Group deleted successfully"}
