from datetime import datetime, timedelta

from sqlmodel import select

from app.models import Order, UserMembership
from app.services.membership import MembershipService, MembershipState, days_remaining, membership_state


NOW = datetime(2024, 6, 1, 12, 0, 0)


class TestMembershipState:
    def test_queued_before_start(self):
        assert membership_state(NOW, NOW + timedelta(days=1), NOW + timedelta(days=31)) == MembershipState.QUEUED

    def test_active_inside_window(self):
        assert membership_state(NOW, NOW - timedelta(days=1), NOW + timedelta(days=29)) == MembershipState.ACTIVE

    def test_start_is_inclusive_end_is_exclusive(self):
        assert membership_state(NOW, NOW, NOW + timedelta(days=30)) == MembershipState.ACTIVE
        assert membership_state(NOW, NOW - timedelta(days=30), NOW) == MembershipState.EXPIRED

    def test_days_remaining(self):
        assert days_remaining(NOW, NOW + timedelta(days=2, hours=1)) == 3
        assert days_remaining(NOW, NOW - timedelta(days=1)) == 0


class TestCreateOrQueue:
    def test_first_purchase_starts_now(self, session, customer, plan):
        instance = MembershipService(session).create_or_queue(customer.id, plan.id, now=NOW)

        assert instance.is_active is True
        assert instance.start_date == NOW
        assert instance.end_date == NOW + timedelta(days=30)

    def test_repurchase_is_queued_after_current_period(self, session, customer, plan):
        service = MembershipService(session)
        first = service.create_or_queue(customer.id, plan.id, now=NOW)
        first_end = first.end_date

        second = service.create_or_queue(customer.id, plan.id, now=NOW + timedelta(days=5))

        assert second.is_active is False
        assert second.start_date == first_end
        assert second.end_date == first_end + timedelta(days=30)
        session.refresh(first)
        assert first.is_active is True
        assert first.start_date == NOW
        assert first.end_date == first_end

    def test_third_purchase_chains_off_latest_end(self, session, customer, plan):
        service = MembershipService(session)
        service.create_or_queue(customer.id, plan.id, now=NOW)
        service.create_or_queue(customer.id, plan.id, now=NOW)
        third = service.create_or_queue(customer.id, plan.id, now=NOW)

        assert third.start_date == NOW + timedelta(days=60)
        assert third.end_date == NOW + timedelta(days=90)

    def test_purchase_after_expiry_starts_now(self, session, customer, plan):
        service = MembershipService(session)
        service.create_or_queue(customer.id, plan.id, now=NOW)
        later = NOW + timedelta(days=45)

        renewed = service.create_or_queue(customer.id, plan.id, now=later)

        assert renewed.is_active is True
        assert renewed.start_date == later

    def test_missing_plan_is_skipped(self, session, customer):
        assert MembershipService(session).create_or_queue(customer.id, 999, now=NOW) is None
        assert session.exec(select(UserMembership)).all() == []


class TestProcessOrderMemberships:
    def _order(self, session, user, notes):
        order = Order(user_id=user.id, order_number="ORD-1", total_amount=50.0, notes=notes)
        session.add(order)
        session.commit()
        session.refresh(order)
        return order

    def test_creates_one_instance_per_id(self, session, customer, plan):
        order = self._order(session, customer, f"MEMBERSHIPS:[{plan.id},{plan.id}]. Thanks")

        created = MembershipService(session).process_order_memberships(order.id, customer.id, now=NOW)

        assert len(created) == 2
        assert [i.is_active for i in created] == [True, False]

    def test_notes_without_prefix_insert_nothing(self, session, customer, plan):
        order = self._order(session, customer, "Gift wrap please")

        assert MembershipService(session).process_order_memberships(order.id, customer.id, now=NOW) == []
        assert session.exec(select(UserMembership)).all() == []

    def test_no_user_skips(self, session, customer, plan):
        order = self._order(session, customer, f"MEMBERSHIPS:[{plan.id}]")

        assert MembershipService(session).process_order_memberships(order.id, None) == []
        assert session.exec(select(UserMembership)).all() == []

    def test_missing_plan_does_not_stop_batch(self, session, customer, plan):
        order = self._order(session, customer, f"MEMBERSHIPS:[999,{plan.id}]")

        created = MembershipService(session).process_order_memberships(order.id, customer.id, now=NOW)

        assert [i.membership_id for i in created] == [plan.id]

    def test_failure_on_one_id_continues(self, session, customer, plan, monkeypatch):
        order = self._order(session, customer, f"MEMBERSHIPS:[{plan.id},{plan.id}]")
        service = MembershipService(session)
        original = service.create_or_queue
        calls = []

        def flaky(user_id, membership_id, now=None):
            calls.append(membership_id)
            if len(calls) == 1:
                raise RuntimeError("connection reset")
            return original(user_id, membership_id, now=now)

        monkeypatch.setattr(service, "create_or_queue", flaky)
        created = service.process_order_memberships(order.id, customer.id, now=NOW)

        assert len(calls) == 2
        assert len(created) == 1


class TestActivateQueued:
    def test_promotes_queued_instance_once_window_starts(self, session, customer, plan):
        service = MembershipService(session)
        service.create_or_queue(customer.id, plan.id, now=NOW)
        queued = service.create_or_queue(customer.id, plan.id, now=NOW)

        assert service.activate_queued(customer.id, now=NOW + timedelta(days=10)) == []

        promoted = service.activate_queued(customer.id, now=NOW + timedelta(days=31))

        assert [i.id for i in promoted] == [queued.id]
        session.refresh(queued)
        assert queued.is_active is True

    def test_state_is_derived_even_when_flag_is_stale(self, session, customer, plan):
        service = MembershipService(session)
        first = service.create_or_queue(customer.id, plan.id, now=NOW)
        later = NOW + timedelta(days=40)

        # Flag still says active, the window says otherwise
        assert first.is_active is True
        assert membership_state(later, first.start_date, first.end_date) == MembershipState.EXPIRED
        assert service.get_active_memberships(customer.id, now=later) == []

    def test_list_subscribers_filters(self, session, customer, other_customer, plan):
        service = MembershipService(session)
        service.create_or_queue(customer.id, plan.id, now=NOW - timedelta(days=60))
        service.create_or_queue(other_customer.id, plan.id, now=NOW)

        active = service.list_subscribers(MembershipState.ACTIVE, now=NOW)
        expired = service.list_subscribers(MembershipState.EXPIRED, now=NOW)
        searched = service.list_subscribers(search="rival", now=NOW)

        assert [user.email for _, _, user in active] == ["rival@example.com"]
        assert [user.email for _, _, user in expired] == ["skater@example.com"]
        assert [user.email for _, _, user in searched] == ["rival@example.com"]
