from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class InventoryLog(SQLModel, table=True):
    __tablename__ = "inventory_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    quantity_change: int  # Signed delta
    reason: Optional[str] = None
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
