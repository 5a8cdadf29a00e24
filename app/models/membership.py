from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON

class Membership(SQLModel, table=True):
    """Admin-defined plan a customer can buy."""
    __tablename__ = "memberships"

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str = Field(index=True)
    description: Optional[str] = None
    price: float
    duration_days: int = Field(default=30, gt=0)

    # Stored as {"list": ["Free rink entry", ...]}
    benefits: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Card theme
    icon: Optional[str] = Field(default="Star")
    color: Optional[str] = Field(default="silver")

    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class UserMembership(SQLModel, table=True):
    """One purchased period of a plan for one user."""
    __tablename__ = "user_memberships"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    membership_id: Optional[int] = Field(default=None, foreign_key="memberships.id", index=True)

    start_date: datetime
    end_date: datetime
    # Queued periods are stored inactive until the reconciliation sweep promotes them
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
