from typing import List, Optional
from datetime import datetime
from sqlmodel import Session, select

from app.core.errors import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.inventory import InventoryLog
from app.models.order import OrderItem
from app.models.product import Product

logger = get_logger(__name__)

class InventoryService:
    def __init__(self, session: Session):
        self.session = session

    def list_products(self, include_inactive: bool = False, category: Optional[str] = None) -> List[Product]:
        query = select(Product)
        if not include_inactive:
            query = query.where(Product.is_active == True)
        if category:
            query = query.where(Product.category == category)
        return self.session.exec(query.order_by(Product.created_at.desc())).all()

    def list_categories(self) -> List[str]:
        rows = self.session.exec(
            select(Product.category).where(Product.is_active == True).distinct()
        ).all()
        return sorted(rows)

    def get_product(self, product_id: int) -> Product:
        product = self.session.get(Product, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def create_product(self, data: dict, created_by: Optional[int] = None) -> Product:
        product = Product(**data)
        self.session.add(product)
        self.session.commit()
        self.session.refresh(product)

        if product.stock_quantity:
            self._log(product.id, product.stock_quantity, "Initial stock", created_by)
            self.session.commit()
        return product

    def update_product(self, product_id: int, data: dict, updated_by: Optional[int] = None) -> Product:
        product = self.get_product(product_id)
        new_stock = data.pop("stock_quantity", None)
        for field, value in data.items():
            setattr(product, field, value)
        product.updated_at = datetime.utcnow()
        self.session.add(product)

        if new_stock is not None and new_stock != product.stock_quantity:
            self._log(product.id, new_stock - product.stock_quantity, "Product edit", updated_by)
            product.stock_quantity = new_stock

        self.session.commit()
        self.session.refresh(product)
        return product

    def delete_product(self, product_id: int) -> bool:
        """Delete a product. One that appears on past orders is deactivated instead. Returns True if deleted."""
        product = self.get_product(product_id)
        ordered = self.session.exec(select(OrderItem).where(OrderItem.product_id == product_id)).first()
        if ordered:
            product.is_active = False
            product.updated_at = datetime.utcnow()
            self.session.add(product)
            self.session.commit()
            return False

        # Logs reference the product, drop them first
        for log in self.get_logs(product_id):
            self.session.delete(log)
        self.session.delete(product)
        self.session.commit()
        return True

    def update_stock(self, product_id: int, new_quantity: int, reason: Optional[str] = None, created_by: Optional[int] = None) -> Product:
        if new_quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")

        product = self.get_product(product_id)
        change = new_quantity - product.stock_quantity
        product.stock_quantity = new_quantity
        product.updated_at = datetime.utcnow()
        self.session.add(product)
        if change:
            self._log(product.id, change, reason or "Manual adjustment", created_by)
        self.session.commit()
        self.session.refresh(product)
        logger.info("Stock for product %s set to %s (%+d)", product_id, new_quantity, change)
        return product

    def get_logs(self, product_id: int) -> List[InventoryLog]:
        return self.session.exec(
            select(InventoryLog)
            .where(InventoryLog.product_id == product_id)
            .order_by(InventoryLog.created_at.desc(), InventoryLog.id.desc())
        ).all()

    def _log(self, product_id: int, change: int, reason: str, created_by: Optional[int]):
        self.session.add(InventoryLog(
            product_id=product_id,
            quantity_change=change,
            reason=reason,
            created_by=created_by,
        ))
