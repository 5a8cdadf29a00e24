from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    name: str = Field(index=True)
    description: Optional[str] = None
    category: str = Field(index=True)
    sku: Optional[str] = Field(default=None, index=True)

    # Pricing
    price: float
    original_price: Optional[float] = None  # Shown struck through when higher than price

    # Images
    image_url: Optional[str] = None

    # Inventory
    stock_quantity: int = Field(default=0)

    # Metadata
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
