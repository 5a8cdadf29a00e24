import hashlib
import hmac
import time
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.models.order import Order, OrderStatus, PaymentStatus
from app.models.payment import PaymentOption, PaymentProvider, PaymentTransaction, TransactionStatus
from app.services.cart import CartStore, DatabaseStorage, cart_owner
from app.services.membership import MembershipService

logger = get_logger(__name__)

PROVIDER_URLS = {
    PaymentProvider.PAYPAL: "https://www.paypal.com/cgi-bin/webscr",
    PaymentProvider.PAYTM: "https://securegw.paytm.in/theia/api/v1/initiateTransaction",
}


def epoch_millis() -> int:
    return int(time.time() * 1000)

def format_amount(amount: float) -> str:
    """Amount as sent to the provider: 250 -> "250", 129.9 -> "129.9"."""
    return ("%.2f" % amount).rstrip("0").rstrip(".")

def generate_hash(txnid: str, amount: Any, productinfo: str, firstname: str, email: str, merchant_key: str, merchant_salt: str) -> str:
    """SHA-512 request signature: key|txnid|amount|productinfo|firstname|email|||||||||||salt"""
    if isinstance(amount, (int, float)):
        amount = format_amount(amount)
    raw = f"{merchant_key}|{txnid}|{amount}|{productinfo}|{firstname}|{email}|||||||||||{merchant_salt}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


class PaymentRequest(BaseModel):
    order_id: int
    amount: float
    email: str
    full_name: str
    phone: str
    address: str
    city: str
    state: str
    zipcode: str
    description: str = ""
    payment_method: PaymentProvider = PaymentProvider.PAYU

class PaymentResult(BaseModel):
    status: str
    message: str
    data: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class PaymentService:
    def __init__(self, session: Session, membership_service: Optional[MembershipService] = None):
        self.session = session
        self.membership_service = membership_service or MembershipService(session)

    def resolve_credentials(self, provider: PaymentProvider) -> Tuple[str, str, str]:
        """(merchant_key, merchant_salt, endpoint) for a provider, PayU defaults if unconfigured."""
        option = self.session.exec(
            select(PaymentOption).where(PaymentOption.provider == provider, PaymentOption.is_enabled == True)
        ).first()
        default_url = f"{settings.PAYU_BASE_URL}/_payment"

        if option is None:
            logger.warning("No enabled payment option for %s, using default PayU credentials", provider.value)
            return settings.PAYU_KEY, settings.PAYU_SALT, default_url

        if provider == PaymentProvider.PAYU:
            return option.merchant_key, option.merchant_salt or settings.PAYU_SALT, default_url
        if provider == PaymentProvider.PAYPAL:
            return option.api_key or "", option.api_secret or "", PROVIDER_URLS[provider]
        return option.merchant_key, option.merchant_salt or "", PROVIDER_URLS[provider]

    def initiate_payment(self, request: PaymentRequest) -> PaymentResult:
        """Sign the provider form and record the transaction as initiated."""
        try:
            merchant_key, merchant_salt, payment_url = self.resolve_credentials(request.payment_method)

            txnid = f"TXN_{request.order_id}_{epoch_millis()}"
            productinfo = f"Order #{request.order_id}"
            amount = format_amount(request.amount)
            payment_hash = generate_hash(txnid, amount, productinfo, request.full_name, request.email, merchant_key, merchant_salt)

            form_data = {
                "key": merchant_key,
                "txnid": txnid,
                "amount": amount,
                "productinfo": productinfo,
                "firstname": request.full_name,
                "email": request.email,
                "phone": request.phone,
                "address1": request.address,
                "city": request.city,
                "state": request.state,
                "zipcode": request.zipcode,
                "hash": payment_hash,
                "surl": f"{settings.PUBLIC_BASE_URL}/payment/success",
                "furl": f"{settings.PUBLIC_BASE_URL}/payment/failed",
                "service_provider": "payu_paisa",
            }

            self.session.add(PaymentTransaction(
                transaction_id=txnid,
                order_id=request.order_id,
                amount=request.amount,
                email=request.email,
                phone=request.phone,
                provider=request.payment_method,
                hash=payment_hash,
                status=TransactionStatus.INITIATED.value,
            ))
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Payment initiation failed for order %s", request.order_id)
            return PaymentResult(status="error", message="Failed to initiate payment")

        return PaymentResult(
            status="success",
            message="Payment initiated",
            data={
                "txnid": txnid,
                "payuFormData": form_data,
                "payuUrl": payment_url,
                "provider": request.payment_method.value,
            },
        )

    def verify_payment(self, txnid: str, response: Dict[str, Any]) -> PaymentResult:
        """Check the provider's callback signature and apply its status."""
        transaction = self.session.exec(
            select(PaymentTransaction).where(PaymentTransaction.transaction_id == txnid)
        ).first()
        if not transaction:
            return PaymentResult(status="error", message="Unknown transaction")

        merchant_key, merchant_salt, _ = self.resolve_credentials(transaction.provider or PaymentProvider.PAYU)
        expected = generate_hash(
            txnid,
            str(response.get("amount", "")),
            response.get("productinfo", ""),
            response.get("firstname", ""),
            response.get("email", ""),
            merchant_key,
            merchant_salt,
        )
        if not hmac.compare_digest(expected, str(response.get("hash", ""))):
            logger.warning("Hash verification failed for transaction %s", txnid)
            return PaymentResult(status="error", message="Hash verification failed")

        status = str(response.get("status", ""))
        transaction.status = status
        transaction.payu_response = dict(response)
        transaction.updated_at = datetime.utcnow()
        self.session.add(transaction)
        self.session.commit()

        if status == TransactionStatus.SUCCESS.value:
            order = self.session.get(Order, transaction.order_id)
            self.mark_order_paid(transaction.order_id, txnid, order.user_id if order else None)

        return PaymentResult(status=status, message="Payment verified", data={"txnid": txnid, "status": status})

    def simulate_payment_success(self, order_id: int, amount: float, email: str, user_id: Optional[int] = None) -> PaymentResult:
        """Demo mode: record a successful transaction without calling a provider."""
        txnid = f"SIM_{order_id}_{epoch_millis()}"
        try:
            self.session.add(PaymentTransaction(
                transaction_id=txnid,
                order_id=order_id,
                amount=amount,
                email=email,
                status=TransactionStatus.SUCCESS.value,
                simulated=True,
            ))
            self.session.commit()
            self.mark_order_paid(order_id, txnid, user_id)
        except (SQLAlchemyError, NotFoundError):
            self.session.rollback()
            logger.exception("Payment simulation failed for order %s", order_id)
            return PaymentResult(status="error", message="Failed to simulate payment")

        return PaymentResult(status="success", message="Payment simulated successfully", data={"txnid": txnid})

    def mark_order_paid(self, order_id: int, txnid: str, user_id: Optional[int]) -> Order:
        order = self.session.get(Order, order_id)
        if not order:
            raise NotFoundError("Order not found")

        if order.payment_status == PaymentStatus.COMPLETED:
            # Replayed callback: memberships were already created for this order
            logger.info("Order %s already paid, ignoring transaction %s", order_id, txnid)
            return order

        order.payment_status = PaymentStatus.COMPLETED
        order.status = OrderStatus.CONFIRMED
        order.payu_transaction_id = txnid
        order.updated_at = datetime.utcnow()
        self.session.add(order)
        self.session.commit()
        self.session.refresh(order)

        self.membership_service.process_order_memberships(order_id, user_id)

        # The shopper's saved cart is only emptied once the order is paid
        if order.user_id:
            CartStore(DatabaseStorage(self.session, cart_owner(order.user_id))).clear()
        return order
