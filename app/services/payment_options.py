from typing import List
from datetime import datetime
from sqlmodel import Session, select

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.payment import PaymentOption

SECRET_FIELDS = ("merchant_salt", "api_key", "api_secret", "webhook_secret")

def mask_secret(value):
    if not value:
        return value
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]

def public_view(option: PaymentOption, reveal: bool = False) -> dict:
    data = option.model_dump()
    if not reveal:
        for field in SECRET_FIELDS:
            data[field] = mask_secret(data.get(field))
    return data

class PaymentOptionService:
    def __init__(self, session: Session):
        self.session = session

    def list_options(self) -> List[PaymentOption]:
        return self.session.exec(select(PaymentOption).order_by(PaymentOption.provider)).all()

    def get_option(self, option_id: int) -> PaymentOption:
        option = self.session.get(PaymentOption, option_id)
        if not option:
            raise NotFoundError("Payment option not found")
        return option

    def create_option(self, data: dict) -> PaymentOption:
        if not data.get("merchant_key"):
            raise ValidationError("Merchant Key is required")
        existing = self.session.exec(
            select(PaymentOption).where(PaymentOption.provider == data["provider"])
        ).first()
        if existing:
            raise ConflictError("This payment provider is already configured")

        option = PaymentOption(**data)
        self.session.add(option)
        self.session.commit()
        self.session.refresh(option)
        return option

    def update_option(self, option_id: int, data: dict) -> PaymentOption:
        option = self.get_option(option_id)
        if "merchant_key" in data and not data["merchant_key"]:
            raise ValidationError("Merchant Key is required")
        if "provider" in data and data["provider"] != option.provider:
            clash = self.session.exec(
                select(PaymentOption).where(PaymentOption.provider == data["provider"])
            ).first()
            if clash:
                raise ConflictError("This payment provider is already configured")

        for field, value in data.items():
            setattr(option, field, value)
        option.updated_at = datetime.utcnow()
        self.session.add(option)
        self.session.commit()
        self.session.refresh(option)
        return option

    def delete_option(self, option_id: int):
        option = self.get_option(option_id)
        self.session.delete(option)
        self.session.commit()
