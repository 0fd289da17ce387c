# backend/routes/products.py
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from models.users import User
from models.product import Product
import schemas.product as product_schemas

router = APIRouter(tags=["Products"])


def _norm_sku(sku: str) -> str:
    return sku.strip().upper()


# =========================
# LISTA PRODUKTÓW
# =========================
@router.get("/products", response_model=product_schemas.ProductListPage)
def list_products(
    q: Optional[str] = Query(None, description="Filter by name or SKU"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Product).filter(Product.owner_id == current_user.id)

    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))

    total = query.count()
    items = query.order_by(Product.id.asc()).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


# =========================
# POJEDYNCZY PRODUKT
# =========================
@router.get("/products/{product_id}", response_model=product_schemas.ProductResponse)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    product = db.query(Product).filter(Product.id == product_id, Product.owner_id == current_user.id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# =========================
# DODAWANIE PRODUKTU
# =========================
@router.post("/products", response_model=product_schemas.ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sku = _norm_sku(payload.sku)
    if db.query(Product).filter(func.upper(Product.sku) == sku).first():
        raise HTTPException(status_code=409, detail="SKU already registered")

    product = Product(
        name=payload.name,
        sku=sku,
        description=payload.description,
        unit=payload.unit,
        min_stock=payload.min_stock,
        owner_id=current_user.id,
    )
    db.add(product)
    db.flush()

    # Product and its audit entry are committed together
    write_log(
        db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
        status="SUCCESS", ip=request.client.host if request.client else None,
        meta={"id": product.id, "sku": product.sku},
    )
    db.commit()
    db.refresh(product)
    return product
