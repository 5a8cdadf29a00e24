from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session
from pydantic import BaseModel
from app.db.session import get_session
from app.core.errors import StoreError, to_http
from app.core.logging import get_logger
from app.models.inventory import InventoryLog
from app.models.membership import Membership
from app.models.order import OrderStatus, PaymentStatus
from app.models.payment import PaymentProvider
from app.models.product import Product
from app.models.user import User
from app.routers.auth import get_current_admin
from app.routers.memberships import get_membership_service, instance_view
from app.routers.orders import get_order_service
from app.routers.products import get_inventory_service
from app.services.inventory import InventoryService
from app.services.membership import MembershipService, MembershipState
from app.services.order import OrderService
from app.services.payment_options import PaymentOptionService, public_view
from app.services.s3 import S3Service, get_s3_service

logger = get_logger(__name__)

router = APIRouter()

# Request bodies
class ProductCreate(BaseModel):
    name: str
    description: Optional[str] = None
    category: str
    sku: Optional[str] = None
    price: float
    original_price: Optional[float] = None
    image_url: Optional[str] = None
    stock_quantity: int = 0
    is_active: bool = True

class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    price: Optional[float] = None
    original_price: Optional[float] = None
    image_url: Optional[str] = None
    stock_quantity: Optional[int] = None
    is_active: Optional[bool] = None

class StockUpdate(BaseModel):
    stock_quantity: int
    reason: Optional[str] = None

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    comment: Optional[str] = None

class MembershipCreate(BaseModel):
    name: str
    description: Optional[str] = None
    price: float
    duration_days: int = 30
    benefits: Optional[List[str]] = None
    icon: Optional[str] = "Star"
    color: Optional[str] = "silver"
    is_active: bool = True

class MembershipUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    duration_days: Optional[int] = None
    benefits: Optional[List[str]] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: Optional[bool] = None

class PaymentOptionCreate(BaseModel):
    provider: PaymentProvider
    is_enabled: bool = True
    merchant_key: str = ""
    merchant_salt: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    webhook_secret: Optional[str] = None
    additional_config: Optional[dict] = None

class PaymentOptionUpdate(BaseModel):
    provider: Optional[PaymentProvider] = None
    is_enabled: Optional[bool] = None
    merchant_key: Optional[str] = None
    merchant_salt: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    webhook_secret: Optional[str] = None
    additional_config: Optional[dict] = None

def get_payment_option_service(session: Session = Depends(get_session)) -> PaymentOptionService:
    return PaymentOptionService(session)

def _plan_data(data: BaseModel) -> dict:
    values = data.model_dump(exclude_unset=True)
    if "duration_days" in values and values["duration_days"] is not None and values["duration_days"] <= 0:
        raise HTTPException(status_code=400, detail="Duration must be at least one day")
    if values.get("benefits") is not None:
        values["benefits"] = {"list": values["benefits"]}
    return values

# Orders
@router.get("/orders")
def get_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    admin: User = Depends(get_current_admin),
    service: OrderService = Depends(get_order_service),
):
    """Get all orders with pagination and filters"""
    orders, total = service.get_all_orders(status, payment_status, page, limit)
    return {
        "orders": [service.order_detail(order) for order in orders],
        "total": total,
        "page": page,
        "pages": (total + limit - 1) // limit,
    }

@router.get("/orders/{order_id}")
def get_order(
    order_id: int,
    admin: User = Depends(get_current_admin),
    service: OrderService = Depends(get_order_service),
):
    try:
        return service.order_detail(service.get_order_by_id(order_id))
    except StoreError as e:
        raise to_http(e)

@router.put("/orders/{order_id}/status")
def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    admin: User = Depends(get_current_admin),
    service: OrderService = Depends(get_order_service),
):
    try:
        order = service.update_status(order_id, status_update.status, status_update.comment)
    except StoreError as e:
        raise to_http(e)
    logger.info("Admin %s set order %s to %s", admin.id, order.order_number, order.status.value)
    return service.order_detail(order)

# Inventory
@router.get("/products", response_model=List[Product])
def get_products(
    category: Optional[str] = None,
    admin: User = Depends(get_current_admin),
    service: InventoryService = Depends(get_inventory_service),
):
    return service.list_products(include_inactive=True, category=category)

@router.post("/products", response_model=Product)
def create_product(
    data: ProductCreate,
    admin: User = Depends(get_current_admin),
    service: InventoryService = Depends(get_inventory_service),
):
    if data.price < 0 or data.stock_quantity < 0:
        raise HTTPException(status_code=400, detail="Price and stock must not be negative")
    return service.create_product(data.model_dump(), created_by=admin.id)

@router.put("/products/{product_id}", response_model=Product)
def update_product(
    product_id: int,
    data: ProductUpdate,
    admin: User = Depends(get_current_admin),
    service: InventoryService = Depends(get_inventory_service),
):
    try:
        return service.update_product(product_id, data.model_dump(exclude_unset=True), updated_by=admin.id)
    except StoreError as e:
        raise to_http(e)

@router.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    admin: User = Depends(get_current_admin),
    service: InventoryService = Depends(get_inventory_service),
    s3: S3Service = Depends(get_s3_service),
):
    try:
        image_url = service.get_product(product_id).image_url
        deleted = service.delete_product(product_id)
    except StoreError as e:
        raise to_http(e)
    if not deleted:
        return {"message": "Product has orders and was deactivated"}
    if image_url:
        s3.delete_product_image(image_url)
    return {"message": "Product deleted successfully"}

@router.put("/products/{product_id}/stock", response_model=Product)
def update_product_stock(
    product_id: int,
    stock_update: StockUpdate,
    admin: User = Depends(get_current_admin),
    service: InventoryService = Depends(get_inventory_service),
):
    try:
        return service.update_stock(product_id, stock_update.stock_quantity, stock_update.reason, created_by=admin.id)
    except StoreError as e:
        raise to_http(e)

@router.get("/products/{product_id}/inventory-logs", response_model=List[InventoryLog])
def get_inventory_logs(
    product_id: int,
    admin: User = Depends(get_current_admin),
    service: InventoryService = Depends(get_inventory_service),
):
    try:
        service.get_product(product_id)
    except StoreError as e:
        raise to_http(e)
    return service.get_logs(product_id)

# Memberships
@router.get("/memberships", response_model=List[Membership])
def get_memberships(
    admin: User = Depends(get_current_admin),
    service: MembershipService = Depends(get_membership_service),
):
    return service.list_plans(include_inactive=True)

@router.post("/memberships", response_model=Membership)
def create_membership(
    data: MembershipCreate,
    admin: User = Depends(get_current_admin),
    service: MembershipService = Depends(get_membership_service),
):
    return service.create_plan(_plan_data(data))

@router.put("/memberships/{membership_id}", response_model=Membership)
def update_membership(
    membership_id: int,
    data: MembershipUpdate,
    admin: User = Depends(get_current_admin),
    service: MembershipService = Depends(get_membership_service),
):
    try:
        return service.update_plan(membership_id, _plan_data(data))
    except StoreError as e:
        raise to_http(e)

@router.delete("/memberships/{membership_id}")
def delete_membership(
    membership_id: int,
    admin: User = Depends(get_current_admin),
    service: MembershipService = Depends(get_membership_service),
):
    try:
        deleted = service.delete_plan(membership_id)
    except StoreError as e:
        raise to_http(e)
    if not deleted:
        return {"message": "Membership has subscribers and was deactivated"}
    return {"message": "Membership deleted successfully"}

@router.get("/subscribers")
def get_subscribers(
    state: Optional[MembershipState] = None,
    search: Optional[str] = None,
    admin: User = Depends(get_current_admin),
    service: MembershipService = Depends(get_membership_service),
):
    now = datetime.utcnow()
    subscribers = []
    for instance, plan, user in service.list_subscribers(state, search, now):
        row = instance_view(instance, plan, now)
        row["user"] = {"id": user.id, "email": user.email, "full_name": user.full_name}
        subscribers.append(row)
    return subscribers

# Payment options
@router.get("/payment-options")
def get_payment_options(
    reveal: bool = False,
    admin: User = Depends(get_current_admin),
    service: PaymentOptionService = Depends(get_payment_option_service),
):
    return [public_view(option, reveal) for option in service.list_options()]

@router.post("/payment-options")
def create_payment_option(
    data: PaymentOptionCreate,
    admin: User = Depends(get_current_admin),
    service: PaymentOptionService = Depends(get_payment_option_service),
):
    try:
        option = service.create_option(data.model_dump())
    except StoreError as e:
        raise to_http(e)
    return public_view(option)

@router.put("/payment-options/{option_id}")
def update_payment_option(
    option_id: int,
    data: PaymentOptionUpdate,
    admin: User = Depends(get_current_admin),
    service: PaymentOptionService = Depends(get_payment_option_service),
):
    try:
        option = service.update_option(option_id, data.model_dump(exclude_unset=True))
    except StoreError as e:
        raise to_http(e)
    return public_view(option)

@router.delete("/payment-options/{option_id}")
def delete_payment_option(
    option_id: int,
    admin: User = Depends(get_current_admin),
    service: PaymentOptionService = Depends(get_payment_option_service),
):
    try:
        service.delete_option(option_id)
    except StoreError as e:
        raise to_http(e)
    return {"message": "Payment option deleted successfully"}
