from collections import defaultdict
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.models.membership import Membership, UserMembership
from app.models.order import Order
from app.models.user import User
from app.services.order_notes import parse_membership_ids

logger = get_logger(__name__)


class MembershipState(str, Enum):
    QUEUED = "queued"
    ACTIVE = "active"
    EXPIRED = "expired"

def membership_state(now: datetime, start_date: datetime, end_date: datetime) -> MembershipState:
    """State of a subscription period, derived from the clock only.

    The stored ``is_active`` flag lags behind (it is only written by the
    reconciliation sweep), so it is never consulted here.
    """
    if now >= end_date:
        return MembershipState.EXPIRED
    if now < start_date:
        return MembershipState.QUEUED
    return MembershipState.ACTIVE

def days_remaining(now: datetime, end_date: datetime) -> int:
    seconds = (end_date - now).total_seconds()
    if seconds <= 0:
        return 0
    return int(-(-seconds // 86400))


class MembershipService:
    def __init__(self, session: Session):
        self.session = session

    # Plans

    def list_plans(self, include_inactive: bool = False) -> List[Membership]:
        query = select(Membership)
        if not include_inactive:
            query = query.where(Membership.is_active == True)
        return self.session.exec(query.order_by(Membership.created_at.desc())).all()

    def get_plan(self, membership_id: int) -> Membership:
        plan = self.session.get(Membership, membership_id)
        if not plan:
            raise NotFoundError("Membership not found")
        return plan

    def create_plan(self, data: dict) -> Membership:
        plan = Membership(**data)
        self.session.add(plan)
        self.session.commit()
        self.session.refresh(plan)
        return plan

    def update_plan(self, membership_id: int, data: dict) -> Membership:
        plan = self.get_plan(membership_id)
        for field, value in data.items():
            setattr(plan, field, value)
        plan.updated_at = datetime.utcnow()
        self.session.add(plan)
        self.session.commit()
        self.session.refresh(plan)
        return plan

    def delete_plan(self, membership_id: int) -> bool:
        """Delete a plan. One with subscription periods is deactivated instead. Returns True if deleted."""
        plan = self.get_plan(membership_id)
        subscribed = self.session.exec(
            select(UserMembership).where(UserMembership.membership_id == membership_id)
        ).first()
        if subscribed:
            plan.is_active = False
            plan.updated_at = datetime.utcnow()
            self.session.add(plan)
            self.session.commit()
            return False

        self.session.delete(plan)
        self.session.commit()
        return True

    # Subscription instances

    def get_user_memberships(self, user_id: int) -> List[UserMembership]:
        return self.session.exec(
            select(UserMembership)
            .where(UserMembership.user_id == user_id)
            .order_by(UserMembership.end_date.desc())
        ).all()

    def get_active_memberships(self, user_id: int, now: Optional[datetime] = None) -> List[UserMembership]:
        now = now or datetime.utcnow()
        return [
            m for m in self.get_user_memberships(user_id)
            if membership_state(now, m.start_date, m.end_date) == MembershipState.ACTIVE
        ]

    def latest_instance(self, user_id: int, membership_id: int, lock: bool = False) -> Optional[UserMembership]:
        query = (
            select(UserMembership)
            .where(UserMembership.user_id == user_id, UserMembership.membership_id == membership_id)
            .order_by(UserMembership.end_date.desc())
        )
        if lock:
            # SQLite ignores FOR UPDATE; PostgreSQL serializes concurrent purchases of one plan
            query = query.with_for_update()
        return self.session.exec(query).first()

    def create_or_queue(self, user_id: int, membership_id: int, now: Optional[datetime] = None) -> Optional[UserMembership]:
        """
        Add one purchased period of a plan for a user.

        If the user already holds a period of this plan that ends in the
        future, the new one is queued to start when that one ends. Otherwise
        it starts now. Returns None when the plan does not exist.
        """
        now = now or datetime.utcnow()

        plan = self.session.get(Membership, membership_id)
        if not plan:
            logger.warning("Membership %s not found, skipping for user %s", membership_id, user_id)
            return None

        latest = self.latest_instance(user_id, membership_id, lock=True)
        if latest and latest.end_date > now:
            start_date = latest.end_date
            is_active = False
        else:
            start_date = now
            is_active = True

        instance = UserMembership(
            user_id=user_id,
            membership_id=membership_id,
            start_date=start_date,
            end_date=start_date + timedelta(days=plan.duration_days),
            is_active=is_active,
        )
        self.session.add(instance)
        self.session.commit()
        self.session.refresh(instance)

        logger.info(
            "%s membership %s for user %s: %s -> %s",
            "Activated" if is_active else "Queued",
            membership_id, user_id, instance.start_date.isoformat(), instance.end_date.isoformat(),
        )
        return instance

    def process_order_memberships(self, order_id: int, user_id: Optional[int], now: Optional[datetime] = None) -> List[UserMembership]:
        """Create subscription periods for every membership referenced by a paid order."""
        if not user_id:
            return []

        order = self.session.get(Order, order_id)
        if not order:
            logger.warning("Order %s not found while processing memberships", order_id)
            return []

        created = []
        for membership_id in parse_membership_ids(order.notes):
            try:
                instance = self.create_or_queue(user_id, membership_id, now=now)
            except Exception:
                self.session.rollback()
                logger.exception("Failed to create membership %s for order %s", membership_id, order_id)
                continue
            if instance:
                created.append(instance)
        return created

    def activate_queued(self, user_id: int, now: Optional[datetime] = None) -> List[UserMembership]:
        """
        Reconciliation sweep. For each plan the user holds, if no period is
        currently active, promote the earliest inactive period whose window
        has started. Returns the promoted periods.
        """
        now = now or datetime.utcnow()

        by_plan = defaultdict(list)
        for instance in self.get_user_memberships(user_id):
            by_plan[instance.membership_id].append(instance)

        promoted = []
        for plan_instances in by_plan.values():
            if any(
                i.is_active and membership_state(now, i.start_date, i.end_date) == MembershipState.ACTIVE
                for i in plan_instances
            ):
                continue

            eligible = [
                i for i in plan_instances
                if not i.is_active and membership_state(now, i.start_date, i.end_date) == MembershipState.ACTIVE
            ]
            if not eligible:
                continue

            next_instance = min(eligible, key=lambda i: i.start_date)
            next_instance.is_active = True
            next_instance.updated_at = now
            self.session.add(next_instance)
            promoted.append(next_instance)

        if promoted:
            self.session.commit()
            for instance in promoted:
                self.session.refresh(instance)
                logger.info("Promoted queued membership %s for user %s", instance.id, user_id)
        return promoted

    def list_subscribers(
        self,
        state: Optional[MembershipState] = None,
        search: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Tuple[UserMembership, Optional[Membership], User]]:
        now = now or datetime.utcnow()
        rows = self.session.exec(
            select(UserMembership, Membership, User)
            .join(Membership, UserMembership.membership_id == Membership.id, isouter=True)
            .join(User, UserMembership.user_id == User.id)
            .order_by(UserMembership.created_at.desc())
        ).all()

        result = []
        query = search.lower() if search else None
        for instance, plan, user in rows:
            if state and membership_state(now, instance.start_date, instance.end_date) != state:
                continue
            if query:
                haystack = [user.full_name, user.email, plan.name if plan else None]
                if not any(value and query in value.lower() for value in haystack):
                    continue
            result.append((instance, plan, user))
        return result
