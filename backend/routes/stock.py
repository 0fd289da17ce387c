# backend/routes/stock.py
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Any, Callable, List, Optional

from database import get_db
from models.stock import MovementType
from models.users import User
from services.ledger import StockLedger
from utils.tokenJWT import get_current_user
from utils.audit import write_log
import schemas.stock as stock_schemas

router = APIRouter(tags=["Stock"])

_errors = {
    404: {"model": stock_schemas.ErrorResponse},
    409: {"model": stock_schemas.ErrorResponse},
    422: {"model": stock_schemas.ErrorResponse},
    503: {"model": stock_schemas.ErrorResponse},
}


# One ledger per request, bound to the request's session
def get_ledger(db: Session = Depends(get_db)) -> StockLedger:
    return StockLedger(db)


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# Audit hook for a ledger command: stages the Log row inside the command's
# unit of work, so the entry and the change commit together
def _audit(ledger: StockLedger, request: Request, user: User, action: str, meta: Callable[[Any], dict]):
    def stage(result):
        write_log(ledger.db, user_id=user.id, action=action, resource="stock", status="SUCCESS",
                  ip=_client_ip(request), meta=meta(result))
    return stage


@router.get("/balances", response_model=List[stock_schemas.StockBalanceResponse])
def list_balances(
    product_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    ledger: StockLedger = Depends(get_ledger),
    current_user: User = Depends(get_current_user),
):
    return ledger.get_balances(current_user.id, product_id=product_id, warehouse_id=warehouse_id)


@router.get("/balances/audit", response_model=List[stock_schemas.BalanceDiscrepancy])
def audit_balances(
    ledger: StockLedger = Depends(get_ledger),
    current_user: User = Depends(get_current_user),
):
    return ledger.audit_balances(current_user.id)


@router.post("/balances/rebuild", response_model=List[stock_schemas.BalanceDiscrepancy], responses=_errors)
def rebuild_balances(
    request: Request,
    ledger: StockLedger = Depends(get_ledger),
    current_user: User = Depends(get_current_user),
):
    audit = _audit(ledger, request, current_user, "STOCK_BALANCE_REBUILD",
                   lambda repaired: {"repaired": len(repaired)})
    return ledger.rebuild_balances(current_user.id, audit=audit)


@router.get("/movements", response_model=List[stock_schemas.StockMovementResponse], responses={422: _errors[422]})
def list_movements(
    start: Optional[str] = Query(None, description="Created at or after (ISO date or datetime)"),
    end: Optional[str] = Query(None, description="Created at or before; a bare date covers the whole day"),
    product_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None, description="Source or destination warehouse"),
    type: Optional[MovementType] = Query(None),
    ledger: StockLedger = Depends(get_ledger),
    current_user: User = Depends(get_current_user),
):
    return ledger.get_movements(
        current_user.id, start=start, end=end,
        product_id=product_id, warehouse_id=warehouse_id, type=type,
    )


@router.post(
    "/movements",
    response_model=stock_schemas.StockMovementResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_errors,
)
def create_movement(
    payload: stock_schemas.StockMovementCreate,
    request: Request,
    ledger: StockLedger = Depends(get_ledger),
    current_user: User = Depends(get_current_user),
):
    audit = _audit(ledger, request, current_user, "STOCK_MOVEMENT_CREATE",
                   lambda m: {"id": m.id, "type": MovementType(m.type).value, "quantity": m.quantity})
    return ledger.create(current_user.id, payload.model_dump(), audit=audit)


@router.put("/movements/{movement_id}", response_model=stock_schemas.StockMovementResponse, responses=_errors)
def update_movement(
    movement_id: int,
    payload: stock_schemas.StockMovementUpdate,
    request: Request,
    ledger: StockLedger = Depends(get_ledger),
    current_user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True)
    audit = _audit(ledger, request, current_user, "STOCK_MOVEMENT_UPDATE",
                   lambda m: {"id": m.id, "fields": sorted(changes)})
    return ledger.update(current_user.id, movement_id, changes, audit=audit)


@router.delete("/movements/{movement_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_errors)
def delete_movement(
    movement_id: int,
    request: Request,
    ledger: StockLedger = Depends(get_ledger),
    current_user: User = Depends(get_current_user),
):
    audit = _audit(ledger, request, current_user, "STOCK_MOVEMENT_DELETE", lambda m: {"id": m.id})
    ledger.delete(current_user.id, movement_id, audit=audit)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
