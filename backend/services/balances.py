# backend/services/balances.py
"""
Balance store: one row per (product, warehouse) pair.

Rows are read with FOR UPDATE (a no-op on SQLite) and carry a version
column, so a concurrent writer fails the flush with StaleDataError instead
of silently overwriting. Writes stay in the session until the caller
commits.
"""

from typing import Iterable, Optional

from sqlalchemy.orm import Session

from models.stock import StockBalance

Pair = tuple[int, int]


class BalanceStore:
    def __init__(self, db: Session):
        self.db = db
        # Rows loaded or created during the current unit of work
        self._rows: dict[Pair, Optional[StockBalance]] = {}

    def reset(self) -> None:
        self._rows.clear()

    def lock(self, pairs: Iterable[Pair]) -> dict[Pair, int]:
        """Load and lock the rows of ``pairs`` in sorted order; return current quantities."""
        current = {}
        for pair in sorted(set(pairs)):
            if pair not in self._rows:
                product_id, warehouse_id = pair
                self._rows[pair] = (
                    self.db.query(StockBalance)
                    .filter(
                        StockBalance.product_id == product_id,
                        StockBalance.warehouse_id == warehouse_id,
                    )
                    .with_for_update()
                    .first()
                )
            row = self._rows[pair]
            current[pair] = row.quantity if row is not None else 0
        return current

    def quantity(self, product_id: int, warehouse_id: int) -> int:
        return self.lock([(product_id, warehouse_id)])[(product_id, warehouse_id)]

    def write(self, pair: Pair, quantity: int) -> Optional[StockBalance]:
        """
        Store the new quantity of a locked pair.

        An existing row is updated, even to zero, so later deltas update it
        instead of recreating it. A missing row is only created for a
        positive quantity.
        """
        if quantity < 0:
            raise ValueError(f"Balance for pair {pair} cannot be negative ({quantity})")
        if pair not in self._rows:
            self.lock([pair])

        row = self._rows[pair]
        if row is not None:
            if row.quantity != quantity:
                row.quantity = quantity
            return row
        if quantity > 0:
            product_id, warehouse_id = pair
            row = StockBalance(product_id=product_id, warehouse_id=warehouse_id, quantity=quantity)
            self.db.add(row)
            self._rows[pair] = row
        return row

    def find(
        self,
        product_ids: Iterable[int],
        warehouse_ids: Iterable[int],
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
    ) -> list[StockBalance]:
        """Balances whose product and warehouse are both in the given id sets."""
        product_ids = list(product_ids)
        warehouse_ids = list(warehouse_ids)
        if not product_ids or not warehouse_ids:
            return []

        query = self.db.query(StockBalance).filter(
            StockBalance.product_id.in_(product_ids),
            StockBalance.warehouse_id.in_(warehouse_ids),
        )
        if product_id is not None:
            query = query.filter(StockBalance.product_id == product_id)
        if warehouse_id is not None:
            query = query.filter(StockBalance.warehouse_id == warehouse_id)
        return query.order_by(StockBalance.product_id, StockBalance.warehouse_id).all()
