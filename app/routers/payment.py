from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from app.models.order import Order
from app.models.payment import PaymentProvider
from app.models.user import User
from app.routers.auth import get_current_user
from app.routers.orders import get_payment_service
from app.services.payment import PaymentRequest, PaymentResult, PaymentService

router = APIRouter()

class PaymentInitiate(BaseModel):
    full_name: str
    phone: str
    address: str = ""
    city: str = ""
    state: str = ""
    zipcode: str = ""
    payment_method: PaymentProvider = PaymentProvider.PAYU

def _load_order(order_id: int, current_user: User, service: PaymentService):
    order = service.session.get(Order, order_id)
    if not order or (order.user_id != current_user.id and not current_user.is_admin):
        raise HTTPException(status_code=404, detail="Order not found")
    return order

@router.post("/initiate/{order_id}", response_model=PaymentResult)
def initiate_payment(
    order_id: int,
    data: PaymentInitiate,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Retry payment for a pending order."""
    order = _load_order(order_id, current_user, service)
    result = service.initiate_payment(PaymentRequest(
        order_id=order.id,
        amount=order.total_amount,
        email=order.customer_email or current_user.email,
        description=f"Order {order.order_number}",
        **data.model_dump(),
    ))
    if not result.ok:
        raise HTTPException(status_code=502, detail=result.message)
    return result

@router.post("/callback", response_model=PaymentResult)
async def payment_callback(request: Request, service: PaymentService = Depends(get_payment_service)):
    """PayU posts the transaction outcome here as a form."""
    form = await request.form()
    response = dict(form)
    txnid = response.get("txnid")
    if not txnid:
        raise HTTPException(status_code=400, detail="Missing transaction id")

    result = service.verify_payment(txnid, response)
    if result.status == "error":
        raise HTTPException(status_code=400, detail=result.message)
    return result

@router.post("/simulate/{order_id}", response_model=PaymentResult)
def simulate_payment(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    order = _load_order(order_id, current_user, service)
    result = service.simulate_payment_success(order.id, order.total_amount, current_user.email, order.user_id)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.message)
    return result
