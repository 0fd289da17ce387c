# backend/routes/warehouse.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from models.warehouse import Warehouse
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from schemas.warehouse import WarehouseCreate, WarehouseListPage, WarehouseResponse

router = APIRouter(prefix="/warehouses", tags=["Warehouses"])


@router.get("", response_model=WarehouseListPage)
def list_warehouses(
    active: bool = Query(False, description="Only active warehouses"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    q = db.query(Warehouse).filter(Warehouse.owner_id == current_user.id)
    if active:
        q = q.filter(Warehouse.is_active.is_(True))

    total = q.count()
    items = q.order_by(Warehouse.id.asc()).offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.get("/{warehouse_id}", response_model=WarehouseResponse)
def get_warehouse(
    warehouse_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    warehouse = db.query(Warehouse).filter(
        Warehouse.id == warehouse_id, Warehouse.owner_id == current_user.id
    ).first()
    if not warehouse:
        raise HTTPException(status_code=404, detail="Warehouse not found")
    return warehouse


@router.post("", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
def create_warehouse(
    payload: WarehouseCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    warehouse = Warehouse(
        name=payload.name,
        address=payload.address,
        is_active=payload.is_active,
        owner_id=current_user.id,
    )
    db.add(warehouse)
    db.flush()

    write_log(db, user_id=current_user.id, action="WAREHOUSE_CREATE", resource="warehouses", status="SUCCESS",
              ip=request.client.host if request.client else None, meta={"id": warehouse.id})
    db.commit()
    db.refresh(warehouse)
    return warehouse
