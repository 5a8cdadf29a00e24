from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from app.db.session import get_session
from app.models.product import Product
from app.services.inventory import InventoryService

router = APIRouter()

def get_inventory_service(session: Session = Depends(get_session)) -> InventoryService:
    return InventoryService(session)

@router.get("/", response_model=List[Product])
def read_products(
    category: Optional[str] = None,
    service: InventoryService = Depends(get_inventory_service),
):
    return service.list_products(category=category)

@router.get("/categories", response_model=List[str])
def read_categories(service: InventoryService = Depends(get_inventory_service)):
    return service.list_categories()

@router.get("/{product_id}", response_model=Product)
def read_product(product_id: int, session: Session = Depends(get_session)):
    product = session.get(Product, product_id)
    if not product or not product.is_active:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
