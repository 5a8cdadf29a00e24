import json
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field, TypeAdapter
from sqlmodel import Session, select

from app.core.logging import get_logger
from app.models.storage import StorageEntry

logger = get_logger(__name__)

CART_STORAGE_KEY = "skating_cart"
OLD_CART_STORAGE_KEY = "jpskating_cart"


class ItemType(str, Enum):
    PRODUCT = "product"
    MEMBERSHIP = "membership"

class CartProduct(BaseModel):
    """Snapshot of the product (or membership plan) taken when it was added."""
    id: int
    name: str
    price: float
    image: Optional[str] = None
    category: str = ""
    item_type: ItemType = ItemType.PRODUCT

class CartItem(BaseModel):
    id: str
    product: CartProduct
    quantity: int = Field(ge=1)
    size: Optional[str] = None
    color: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.product.price * self.quantity

class Notification(BaseModel):
    title: str
    description: str

class CartSnapshot(BaseModel):
    items: List[CartItem]
    item_count: int
    total: float
    is_open: bool
    notifications: List[Notification] = []

_items_adapter = TypeAdapter(List[CartItem])


def cart_owner(user_id: int) -> str:
    """Storage owner key for a signed-in shopper's cart."""
    return f"user:{user_id}"

def make_item_id(product: CartProduct, size: Optional[str] = None, color: Optional[str] = None) -> str:
    prefix = f"membership-{product.id}" if product.item_type == ItemType.MEMBERSHIP else str(product.id)
    return f"{prefix}-{size or 'default'}-{color or 'default'}"


class MemoryStorage:
    """Dict-backed storage, used for guests and in tests."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data = data if data is not None else {}

    def get_item(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set_item(self, key: str, value: str):
        self.data[key] = value

    def remove_item(self, key: str):
        self.data.pop(key, None)


class DatabaseStorage:
    """Key/value slots in ``storage_entries``, scoped to one owner."""

    def __init__(self, session: Session, owner: str):
        self.session = session
        self.owner = owner

    def _entry(self, key: str) -> Optional[StorageEntry]:
        return self.session.exec(
            select(StorageEntry).where(StorageEntry.owner == self.owner, StorageEntry.key == key)
        ).first()

    def get_item(self, key: str) -> Optional[str]:
        entry = self._entry(key)
        return entry.value if entry else None

    def set_item(self, key: str, value: str):
        entry = self._entry(key)
        if entry:
            entry.value = value
            entry.updated_at = datetime.utcnow()
        else:
            entry = StorageEntry(owner=self.owner, key=key, value=value)
        self.session.add(entry)
        self.session.commit()

    def remove_item(self, key: str):
        entry = self._entry(key)
        if entry:
            self.session.delete(entry)
            self.session.commit()


def _upgrade_legacy_item(raw: dict) -> dict:
    # Early carts stored the product fields flat on the item
    if "product" in raw or "price" not in raw:
        return raw
    product = {
        "id": raw.get("product_id", raw.get("id")),
        "name": raw.get("name", ""),
        "price": raw["price"],
        "image": raw.get("image"),
        "category": raw.get("category", ""),
    }
    upgraded = {
        "product": product,
        "quantity": raw.get("quantity", 1),
        "size": raw.get("size"),
        "color": raw.get("color"),
    }
    upgraded["id"] = make_item_id(CartProduct(**product), upgraded["size"], upgraded["color"])
    return upgraded

def decode_items(raw: str) -> List[CartItem]:
    data = json.loads(raw)
    if isinstance(data, list):
        data = [_upgrade_legacy_item(item) if isinstance(item, dict) else item for item in data]
    return _items_adapter.validate_python(data)

def encode_items(items: List[CartItem]) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items])


class CartStore:
    """
    The shopper's pending selections.

    Every mutation rewrites the whole item list to storage. Nothing here raises
    to the caller: unreadable storage gives an empty cart, and user-facing
    messages are collected in ``notifications``.
    """

    def __init__(self, storage, load: bool = True):
        self.storage = storage
        self.items: List[CartItem] = []
        self.is_open = False
        self.notifications: List[Notification] = []
        if load:
            self.load()

    # Persistence

    def load(self):
        saved = self._read(CART_STORAGE_KEY)

        if saved is None:
            old_cart = self._read(OLD_CART_STORAGE_KEY)
            if old_cart is not None:
                try:
                    parsed = json.loads(old_cart)
                    self.storage.set_item(CART_STORAGE_KEY, json.dumps(parsed))
                    self.storage.remove_item(OLD_CART_STORAGE_KEY)
                    saved = old_cart
                    logger.info("Migrated cart from legacy storage key")
                except ValueError:
                    logger.warning("Discarding unreadable legacy cart")
                    self.storage.remove_item(OLD_CART_STORAGE_KEY)

        if saved is not None:
            try:
                self.items = decode_items(saved)
            except (ValueError, TypeError):
                logger.warning("Discarding unreadable cart")
                self.storage.remove_item(CART_STORAGE_KEY)
                self.items = []

    def _read(self, key: str) -> Optional[str]:
        try:
            return self.storage.get_item(key)
        except Exception:
            logger.exception("Failed to read %s from cart storage", key)
            return None

    def _save(self):
        try:
            self.storage.set_item(CART_STORAGE_KEY, encode_items(self.items))
        except Exception:
            logger.exception("Failed to save cart")

    def _notify(self, title: str, description: str):
        self.notifications.append(Notification(title=title, description=description))

    # Derived values

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def product_items(self) -> List[CartItem]:
        return [item for item in self.items if item.product.item_type == ItemType.PRODUCT]

    @property
    def membership_items(self) -> List[CartItem]:
        return [item for item in self.items if item.product.item_type == ItemType.MEMBERSHIP]

    def get(self, item_id: str) -> Optional[CartItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(
            items=list(self.items),
            item_count=self.item_count,
            total=self.total,
            is_open=self.is_open,
            notifications=list(self.notifications),
        )

    # Mutations

    def add_item(self, product: CartProduct, quantity: int = 1, size: Optional[str] = None, color: Optional[str] = None) -> Optional[CartItem]:
        item_id = make_item_id(product, size, color)
        if quantity <= 0:
            return self.get(item_id)

        existing = self.get(item_id)
        if existing:
            existing.quantity += quantity
            item = existing
        else:
            item = CartItem(id=item_id, product=product, quantity=quantity, size=size, color=color)
            self.items.append(item)

        self._save()
        self._notify("Added to cart!", f"{quantity}x {product.name} added to your cart.")
        self.is_open = True
        return item

    def remove_item(self, item_id: str):
        item = self.get(item_id)
        self.items = [i for i in self.items if i.id != item_id]
        self._save()
        if item:
            self._notify("Removed from cart", f"{item.product.name} has been removed.")

    def update_quantity(self, item_id: str, quantity: int):
        if quantity <= 0:
            self.remove_item(item_id)
            return

        item = self.get(item_id)
        if item:
            item.quantity = quantity
            self._save()

    def clear(self):
        if self.items:
            self.items = []
            self._save()
            self._notify("Cart cleared", "All items have been removed from your cart.")

    def refresh_prices(self, lookup: Callable[[int], Optional[CartProduct]]) -> bool:
        """
        Re-read prices from the catalogue. Best effort: a failed lookup keeps
        the cached snapshot for that item. Returns True if anything changed.
        """
        changed = False
        for item in self.product_items:
            try:
                fresh = lookup(item.product.id)
            except Exception as e:
                logger.warning("Could not refresh price for product %s: %s", item.product.id, e)
                continue
            if fresh is None:
                continue
            if fresh.price != item.product.price or fresh.name != item.product.name:
                item.product = item.product.model_copy(update={"price": fresh.price, "name": fresh.name, "image": fresh.image})
                changed = True

        if changed:
            self._save()
        return changed
