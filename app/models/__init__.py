# Import all models to register them with SQLModel
from app.models.user import User, UserRole
from app.models.product import Product
from app.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from app.models.membership import Membership, UserMembership
from app.models.inventory import InventoryLog
from app.models.payment import PaymentOption, PaymentProvider, PaymentTransaction, TransactionStatus
from app.models.storage import StorageEntry

__all__ = [
    "User",
    "UserRole",
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Membership",
    "UserMembership",
    "InventoryLog",
    "PaymentOption",
    "PaymentProvider",
    "PaymentTransaction",
    "TransactionStatus",
    "StorageEntry",
]
