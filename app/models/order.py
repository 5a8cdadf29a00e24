from typing import List, Optional
from datetime import datetime
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import JSON, Text
from enum import Enum

class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    product_id: Optional[int] = Field(default=None, foreign_key="products.id")
    quantity: int
    price: float  # Unit price at purchase time
    created_at: datetime = Field(default_factory=datetime.utcnow)

class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, foreign_key="users.id", index=True)

    # e.g. ORD-1718000000000
    order_number: str = Field(index=True)

    status: OrderStatus = Field(default=OrderStatus.PENDING)
    total_amount: float

    # Payment Info
    payment_method: Optional[str] = None
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    payu_transaction_id: Optional[str] = None

    # Shipping snapshot: name, address, city, state, zip, phone
    shipping_address: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # May start with MEMBERSHIPS:[...] (see services/order_notes.py)
    notes: Optional[str] = Field(default=None, sa_column=Column(Text))

    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    status_comment: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    items: List["OrderItem"] = Relationship()
