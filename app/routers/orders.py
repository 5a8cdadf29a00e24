from typing import List
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from app.core.errors import CheckoutValidationError, NotFoundError, to_http
from app.core.logging import get_logger
from app.db.session import get_session
from app.models.order import Order
from app.models.user import User
from app.routers.auth import get_current_user
from app.routers.cart import get_cart
from app.services.cart import CartStore
from app.services.checkout import CheckoutResult, CheckoutService, ShippingForm
from app.services.order import OrderService
from app.services.payment import PaymentService
from app.services.receipt import build_receipt_data, generate_receipt_html

logger = get_logger(__name__)

router = APIRouter()

def get_order_service(session: Session = Depends(get_session)) -> OrderService:
    return OrderService(session)

def get_payment_service(session: Session = Depends(get_session)) -> PaymentService:
    return PaymentService(session)

def get_checkout_service(
    session: Session = Depends(get_session),
    payment_service: PaymentService = Depends(get_payment_service),
) -> CheckoutService:
    return CheckoutService(session, payment_service)

def _owned_order(order_id: int, current_user: User, service: OrderService) -> Order:
    try:
        order = service.get_order_by_id(order_id)
    except NotFoundError as e:
        raise to_http(e)
    if order.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized")
    return order

@router.post("/checkout", response_model=CheckoutResult)
def checkout(
    form: ShippingForm,
    current_user: User = Depends(get_current_user),
    cart: CartStore = Depends(get_cart),
    service: CheckoutService = Depends(get_checkout_service),
):
    try:
        return service.place_order(current_user, cart, form)
    except CheckoutValidationError as e:
        raise to_http(e)
    except SQLAlchemyError:
        service.session.rollback()
        logger.exception("Checkout failed for user %s", current_user.id)
        raise HTTPException(status_code=500, detail="An error occurred during checkout. Please try again.")

@router.get("/", response_model=List[Order])
def list_orders(
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    return service.get_user_orders(current_user.id)

@router.get("/track/{order_number}")
def track_order(
    order_number: str,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    try:
        order = service.get_order_by_number(order_number)
    except NotFoundError as e:
        raise to_http(e)
    if order.user_id != current_user.id and not current_user.is_admin:
        # Do not reveal other customers' order numbers
        raise HTTPException(status_code=404, detail="Order not found")
    return service.order_detail(order)

@router.get("/{order_id}")
def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = _owned_order(order_id, current_user, service)
    return service.order_detail(order)

@router.get("/{order_id}/receipt", response_class=HTMLResponse)
def get_receipt(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = _owned_order(order_id, current_user, service)
    return HTMLResponse(generate_receipt_html(build_receipt_data(service.session, order)))
