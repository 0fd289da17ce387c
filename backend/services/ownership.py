# backend/services/ownership.py
"""Which products and warehouses a caller owns, and existence checks against them."""

from sqlalchemy.orm import Session

from models.product import Product
from models.warehouse import Warehouse
from services.errors import NotFoundError


class OwnershipResolver:
    def __init__(self, db: Session):
        self.db = db

    def owned_product_ids(self, owner_id: int) -> set[int]:
        rows = self.db.query(Product.id).filter(Product.owner_id == owner_id).all()
        return {row.id for row in rows}

    def owned_warehouse_ids(self, owner_id: int) -> set[int]:
        rows = self.db.query(Warehouse.id).filter(Warehouse.owner_id == owner_id).all()
        return {row.id for row in rows}

    def require_product(self, owner_id: int, product_id: int) -> Product:
        product = (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.owner_id == owner_id)
            .first()
        )
        if product is None:
            raise NotFoundError(f"Product {product_id} not found", product_id=product_id)
        return product

    def require_warehouse(self, owner_id: int, warehouse_id: int) -> Warehouse:
        warehouse = (
            self.db.query(Warehouse)
            .filter(Warehouse.id == warehouse_id, Warehouse.owner_id == owner_id)
            .first()
        )
        if warehouse is None:
            raise NotFoundError(f"Warehouse {warehouse_id} not found", warehouse_id=warehouse_id)
        return warehouse
