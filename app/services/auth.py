from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlmodel import Session, select

from app.core.config import settings
from app.core.errors import ValidationError
from app.core.security import get_password_hash, verify_password
from app.models.user import User, UserRole

class AuthService:
    def __init__(self, session: Session):
        self.session = session

    def get_user_by_email(self, email: str) -> Optional[User]:
        # Case-insensitive, with no LIKE wildcards
        return self.session.exec(select(User).where(User.email == email)).first() or \
               self.session.exec(select(User).where(func.lower(User.email) == email.lower())).first()

    def register_user(self, email: str, password: str, full_name: Optional[str] = None, role: UserRole = UserRole.CUSTOMER) -> User:
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")

        if self.get_user_by_email(email):
            raise ValidationError("Email already registered")

        user = User(
            email=email,
            full_name=full_name,
            password_hash=get_password_hash(password),
            role=role,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def authenticate_user(self, email: str, password: str) -> tuple[Optional[User], Optional[str]]:
        user = self.get_user_by_email(email)
        if not user:
            return None, "User not found. Please check your email or register a new account."
        if not verify_password(password, user.password_hash):
            return None, "Incorrect password. Please try again."
        return user, None

    def update_profile(self, user: User, full_name: Optional[str] = None, phone: Optional[str] = None, avatar_url: Optional[str] = None) -> User:
        if full_name is not None:
            user.full_name = full_name
        if phone is not None:
            user.phone = phone
        if avatar_url is not None:
            user.avatar_url = avatar_url
        user.updated_at = datetime.utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user
