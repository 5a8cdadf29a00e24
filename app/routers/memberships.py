from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends
from sqlmodel import Session
from app.db.session import get_session
from app.models.membership import Membership, UserMembership
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.membership import MembershipService, days_remaining, membership_state

router = APIRouter()

def get_membership_service(session: Session = Depends(get_session)) -> MembershipService:
    return MembershipService(session)

def instance_view(instance: UserMembership, plan: Optional[Membership], now: datetime) -> dict:
    return {
        "id": instance.id,
        "membership_id": instance.membership_id,
        "membership": plan.model_dump() if plan else None,
        "start_date": instance.start_date.isoformat(),
        "end_date": instance.end_date.isoformat(),
        "state": membership_state(now, instance.start_date, instance.end_date).value,
        "days_remaining": days_remaining(now, instance.end_date),
    }

def _my_memberships(user: User, service: MembershipService) -> List[dict]:
    now = datetime.utcnow()
    service.activate_queued(user.id, now)
    return [
        instance_view(instance, service.session.get(Membership, instance.membership_id) if instance.membership_id else None, now)
        for instance in service.get_user_memberships(user.id)
    ]

@router.get("/", response_model=List[Membership])
def read_plans(service: MembershipService = Depends(get_membership_service)):
    return service.list_plans()

@router.get("/me")
def read_my_memberships(
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    return _my_memberships(current_user, service)

@router.post("/me/refresh")
def refresh_my_memberships(
    current_user: User = Depends(get_current_user),
    service: MembershipService = Depends(get_membership_service),
):
    """Run the reconciliation sweep and return the promoted periods with the full list."""
    promoted = service.activate_queued(current_user.id)
    return {
        "activated": [instance.id for instance in promoted],
        "memberships": _my_memberships(current_user, service),
    }
