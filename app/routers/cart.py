from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from pydantic import BaseModel
from app.db.session import get_session
from app.models.membership import Membership
from app.models.product import Product
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.cart import CartProduct, CartSnapshot, CartStore, DatabaseStorage, ItemType, cart_owner

router = APIRouter()

class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = 1
    size: Optional[str] = None
    color: Optional[str] = None

class MembershipItemCreate(BaseModel):
    membership_id: int
    quantity: int = 1

class CartItemUpdate(BaseModel):
    quantity: int

def get_cart(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> CartStore:
    return CartStore(DatabaseStorage(session, cart_owner(current_user.id)))

def product_snapshot(product: Product) -> CartProduct:
    return CartProduct(
        id=product.id,
        name=product.name,
        price=product.price,
        image=product.image_url,
        category=product.category,
    )

def membership_snapshot(plan: Membership) -> CartProduct:
    return CartProduct(
        id=plan.id,
        name=plan.name,
        price=plan.price,
        category="Membership",
        item_type=ItemType.MEMBERSHIP,
    )

@router.get("/", response_model=CartSnapshot)
def read_cart(refresh: bool = False, cart: CartStore = Depends(get_cart), session: Session = Depends(get_session)):
    if refresh:
        def lookup(product_id: int) -> Optional[CartProduct]:
            product = session.get(Product, product_id)
            return product_snapshot(product) if product else None
        cart.refresh_prices(lookup)
    return cart.snapshot()

@router.post("/items", response_model=CartSnapshot)
def add_product(item: CartItemCreate, cart: CartStore = Depends(get_cart), session: Session = Depends(get_session)):
    product = session.get(Product, item.product_id)
    if not product or not product.is_active:
        raise HTTPException(status_code=404, detail="Product not found or unavailable")
    cart.add_item(product_snapshot(product), item.quantity, item.size, item.color)
    return cart.snapshot()

@router.post("/memberships", response_model=CartSnapshot)
def add_membership(item: MembershipItemCreate, cart: CartStore = Depends(get_cart), session: Session = Depends(get_session)):
    plan = session.get(Membership, item.membership_id)
    if not plan or not plan.is_active:
        raise HTTPException(status_code=404, detail="Membership not found or unavailable")
    cart.add_item(membership_snapshot(plan), item.quantity)
    return cart.snapshot()

@router.put("/items/{item_id}", response_model=CartSnapshot)
def update_item(item_id: str, update: CartItemUpdate, cart: CartStore = Depends(get_cart)):
    cart.update_quantity(item_id, update.quantity)
    return cart.snapshot()

@router.delete("/items/{item_id}", response_model=CartSnapshot)
def remove_item(item_id: str, cart: CartStore = Depends(get_cart)):
    cart.remove_item(item_id)
    return cart.snapshot()

@router.delete("/", response_model=CartSnapshot)
def clear_cart(cart: CartStore = Depends(get_cart)):
    cart.clear()
    return cart.snapshot()
