from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text, UniqueConstraint

class StorageEntry(SQLModel, table=True):
    """Durable key/value slot owned by one shopper (e.g. the saved cart)."""
    __tablename__ = "storage_entries"
    __table_args__ = (UniqueConstraint("owner", "key"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    owner: str = Field(index=True)
    key: str
    value: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(default_factory=datetime.utcnow)
