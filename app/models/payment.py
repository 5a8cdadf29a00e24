from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON
from enum import Enum

class PaymentProvider(str, Enum):
    PAYU = "payu"
    PAYPAL = "paypal"
    PAYTM = "paytm"

class PaymentOption(SQLModel, table=True):
    """Merchant credentials for one provider, managed from the admin panel."""
    __tablename__ = "payment_options"

    id: Optional[int] = Field(default=None, primary_key=True)
    provider: PaymentProvider = Field(unique=True, index=True)
    is_enabled: bool = Field(default=True)

    # Credentials
    merchant_key: str
    merchant_salt: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    webhook_secret: Optional[str] = None
    additional_config: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class TransactionStatus(str, Enum):
    INITIATED = "initiated"
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"

class PaymentTransaction(SQLModel, table=True):
    __tablename__ = "payment_transactions"

    id: Optional[int] = Field(default=None, primary_key=True)

    # TXN_<order>_<millis> for provider payments, SIM_<order>_<millis> when simulated
    transaction_id: str = Field(unique=True, index=True)
    order_id: int = Field(foreign_key="orders.id", index=True)

    amount: float
    email: Optional[str] = None
    phone: Optional[str] = None
    provider: Optional[PaymentProvider] = None
    hash: Optional[str] = None

    # Free-form: the provider's callback status is stored as-is
    status: str = Field(default=TransactionStatus.INITIATED.value)
    payu_response: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    simulated: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
