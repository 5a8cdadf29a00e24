from typing import Optional
from datetime import datetime
from pydantic import BaseModel
from sqlmodel import Session

from app.core.config import settings
from app.core.errors import CheckoutValidationError
from app.core.logging import get_logger
from app.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from app.models.user import User
from app.services.cart import CartStore
from app.services.order_notes import format_order_notes
from app.services.payment import PaymentRequest, PaymentResult, PaymentService, epoch_millis

logger = get_logger(__name__)

REQUIRED_FIELDS = ("full_name", "email", "phone", "address", "city", "state", "zipcode")

class ShippingForm(BaseModel):
    full_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zipcode: str = ""
    notes: Optional[str] = None

class CheckoutResult(BaseModel):
    order_id: int
    order_number: str
    total: float
    payment: PaymentResult
    cart_cleared: bool

class CheckoutService:
    def __init__(self, session: Session, payment_service: PaymentService, simulate: Optional[bool] = None):
        self.session = session
        self.payment_service = payment_service
        self.simulate = settings.PAYMENT_SIMULATION if simulate is None else simulate

    def validate(self, cart: CartStore, form: ShippingForm):
        """Reject the submission before anything is written."""
        if not cart.items:
            raise CheckoutValidationError("Your cart is empty")
        if any(not (getattr(form, field) or "").strip() for field in REQUIRED_FIELDS):
            raise CheckoutValidationError("Please fill in all required fields")

    def place_order(self, user: User, cart: CartStore, form: ShippingForm) -> CheckoutResult:
        self.validate(cart, form)

        # One entry per purchased period, so two of the same plan queue back to back
        membership_ids = [item.product.id for item in cart.membership_items for _ in range(item.quantity)]
        total = cart.total

        order = Order(
            user_id=user.id,
            order_number=f"ORD-{epoch_millis()}",
            status=OrderStatus.PENDING,
            total_amount=total,
            payment_method="payu",
            payment_status=PaymentStatus.PENDING,
            shipping_address={
                "name": form.full_name,
                "address": form.address,
                "city": form.city,
                "state": form.state,
                "zip": form.zipcode,
                "phone": form.phone,
            },
            notes=format_order_notes(membership_ids, form.notes),
            customer_email=form.email,
            customer_phone=form.phone,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)

        # Membership lines live only in the notes
        for item in cart.product_items:
            self.session.add(OrderItem(
                order_id=order.id,
                product_id=item.product.id,
                quantity=item.quantity,
                price=item.product.price,
            ))
        self.session.commit()

        if self.simulate:
            payment = self.payment_service.simulate_payment_success(order.id, total, user.email, user.id)
        else:
            payment = self.payment_service.initiate_payment(PaymentRequest(
                order_id=order.id,
                amount=total,
                email=form.email,
                full_name=form.full_name,
                phone=form.phone,
                address=form.address,
                city=form.city,
                state=form.state,
                zipcode=form.zipcode,
                description=f"Order {order.order_number}",
            ))

        # A provider redirect has not paid yet, so the cart stays until the callback
        cart_cleared = False
        if self.simulate and payment.ok:
            cart.clear()
            cart_cleared = True
        elif not payment.ok:
            logger.warning("Payment failed for order %s, left pending", order.order_number)

        return CheckoutResult(
            order_id=order.id,
            order_number=order.order_number,
            total=total,
            payment=payment,
            cart_cleared=cart_cleared,
        )
