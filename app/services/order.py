from typing import List, Optional, Tuple
from datetime import datetime
from sqlalchemy import func, desc
from sqlmodel import Session, select

from app.core.errors import NotFoundError
from app.models.membership import Membership
from app.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from app.models.product import Product
from app.services.order_notes import parse_membership_ids, strip_membership_prefix

class OrderService:
    def __init__(self, session: Session):
        self.session = session

    def get_user_orders(self, user_id: int) -> List[Order]:
        return self.session.exec(
            select(Order).where(Order.user_id == user_id).order_by(desc(Order.created_at))
        ).all()

    def get_order_by_id(self, order_id: int) -> Order:
        order = self.session.get(Order, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_order_by_number(self, order_number: str) -> Order:
        order = self.session.exec(
            select(Order).where(Order.order_number == order_number.strip().upper())
        ).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_all_orders(
        self,
        status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        query = select(Order)
        if status:
            query = query.where(Order.status == status)
        if payment_status:
            query = query.where(Order.payment_status == payment_status)

        total = self.session.exec(query.with_only_columns(func.count(Order.id))).first() or 0
        orders = self.session.exec(
            query.order_by(desc(Order.created_at)).offset((page - 1) * limit).limit(limit)
        ).all()
        return orders, total

    def update_status(self, order_id: int, new_status: OrderStatus, comment: Optional[str] = None) -> Order:
        # Any status may follow any other; admins correct mistakes by hand
        order = self.get_order_by_id(order_id)
        order.status = new_status
        order.status_comment = comment or None
        order.updated_at = datetime.utcnow()
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)
        return order

    def order_detail(self, order: Order) -> dict:
        """Order with its product lines and the memberships bought with it."""
        items = []
        for item in self.session.exec(select(OrderItem).where(OrderItem.order_id == order.id)).all():
            product = self.session.get(Product, item.product_id) if item.product_id else None
            items.append({
                "product_id": item.product_id,
                "name": product.name if product else "Unknown Product",
                "image": product.image_url if product else None,
                "price": item.price,
                "quantity": item.quantity,
                "total": item.price * item.quantity,
            })

        memberships = []
        for membership_id in parse_membership_ids(order.notes):
            plan = self.session.get(Membership, membership_id)
            memberships.append({
                "membership_id": membership_id,
                "name": plan.name if plan else "Unknown Membership",
                "price": plan.price if plan else None,
                "duration_days": plan.duration_days if plan else None,
            })

        return {
            "id": order.id,
            "order_number": order.order_number,
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "payment_method": order.payment_method,
            "payu_transaction_id": order.payu_transaction_id,
            "total": order.total_amount,
            "items": items,
            "memberships": memberships,
            "notes": strip_membership_prefix(order.notes),
            "shipping_address": order.shipping_address,
            "customer_email": order.customer_email,
            "customer_phone": order.customer_phone,
            "status_comment": order.status_comment,
            "date": order.created_at.isoformat(),
        }
