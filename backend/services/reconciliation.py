# backend/services/reconciliation.py
"""
Reconciliation engine.

Turns a movement into signed balance deltas and commits staged deltas
against the balance store.

    apply(m)   -> deltas that record m
    revert(m)  -> the exact negation of apply(m)
    rebuild(ms) -> {pair: quantity} replayed from a movement log

Reconciler.commit() folds a list of deltas per pair in order, enforces the
negative-stock policy and writes the results. Under the "reject" policy
revert(apply(m)) is exact and the stored balances always match rebuild();
under "clamp" each delta is floored at zero, which loses information.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from models.stock import MovementType
from services.balances import BalanceStore, Pair
from services.errors import InsufficientStockError, ValidationError

logger = logging.getLogger(__name__)


class NegativeStockPolicy(str, enum.Enum):
    REJECT = "reject"
    CLAMP = "clamp"


@dataclass(frozen=True)
class BalanceDelta:
    product_id: int
    warehouse_id: int
    amount: int

    @property
    def pair(self) -> Pair:
        return (self.product_id, self.warehouse_id)

    def negated(self) -> "BalanceDelta":
        return BalanceDelta(self.product_id, self.warehouse_id, -self.amount)


def _warehouse(movement, field: str) -> int:
    warehouse_id = getattr(movement, field)
    if warehouse_id is None:
        raise ValidationError(
            f"{MovementType(movement.type).value} movement requires {field}",
            field=field,
            type=MovementType(movement.type).value,
        )
    return warehouse_id


def _receipt(movement) -> list[BalanceDelta]:
    return [BalanceDelta(movement.product_id, _warehouse(movement, "warehouse_to_id"), movement.quantity)]


def _issue(movement) -> list[BalanceDelta]:
    return [BalanceDelta(movement.product_id, _warehouse(movement, "warehouse_from_id"), -movement.quantity)]


def _transfer(movement) -> list[BalanceDelta]:
    return _issue(movement) + _receipt(movement)


# One rule per movement type. ADJUST only ever adds stock.
DELTA_RULES: dict[MovementType, Callable[..., list[BalanceDelta]]] = {
    MovementType.IN: _receipt,
    MovementType.ADJUST: _receipt,
    MovementType.OUT: _issue,
    MovementType.TRANSFER: _transfer,
}

REQUIRED_WAREHOUSES: dict[MovementType, tuple[str, ...]] = {
    MovementType.IN: ("warehouse_to_id",),
    MovementType.ADJUST: ("warehouse_to_id",),
    MovementType.OUT: ("warehouse_from_id",),
    MovementType.TRANSFER: ("warehouse_from_id", "warehouse_to_id"),
}

_missing = (set(MovementType) - set(DELTA_RULES)) | (set(MovementType) - set(REQUIRED_WAREHOUSES))
if _missing:
    raise RuntimeError(f"Movement types without a delta rule: {sorted(t.value for t in _missing)}")


def apply(movement) -> list[BalanceDelta]:
    """Deltas that record ``movement`` on the balances."""
    try:
        rule = DELTA_RULES[MovementType(movement.type)]
    except (KeyError, ValueError):
        raise ValidationError(f"Unknown movement type: {movement.type!r}", type=str(movement.type))
    if movement.quantity is None or movement.quantity <= 0:
        raise ValidationError("Quantity must be positive", quantity=movement.quantity)
    return rule(movement)


def revert(movement) -> list[BalanceDelta]:
    """Deltas that undo ``apply(movement)``."""
    return [delta.negated() for delta in apply(movement)]


def rebuild(movements: Iterable) -> dict[Pair, int]:
    """Replay a movement log into per-pair quantities (no clamping)."""
    totals: dict[Pair, int] = {}
    for movement in movements:
        for delta in apply(movement):
            totals[delta.pair] = totals.get(delta.pair, 0) + delta.amount
    return totals


class Reconciler:
    """Commits staged deltas against the balance store under one policy."""

    def __init__(self, balances: BalanceStore, policy: NegativeStockPolicy | str = NegativeStockPolicy.REJECT):
        self.balances = balances
        self.policy = NegativeStockPolicy(policy)

    def commit(self, deltas: Iterable[BalanceDelta]) -> dict[Pair, int]:
        """
        Fold ``deltas`` per pair, in order, and write the results.

        Rows of every touched pair are locked first, in sorted order.
        Under REJECT the whole batch fails with InsufficientStockError if
        any pair ends below zero; nothing is written in that case.

        Returns:
            New quantity per touched pair
        """
        deltas = list(deltas)
        before = self.balances.lock(delta.pair for delta in deltas)
        staged = dict(before)

        for delta in deltas:
            quantity = staged[delta.pair] + delta.amount
            if quantity < 0 and self.policy is NegativeStockPolicy.CLAMP:
                logger.warning(
                    "Clamping balance of product %s in warehouse %s to 0 (would be %s)",
                    delta.product_id, delta.warehouse_id, quantity,
                )
                quantity = 0
            staged[delta.pair] = quantity

        if self.policy is NegativeStockPolicy.REJECT:
            for pair in sorted(staged):
                if staged[pair] < 0:
                    product_id, warehouse_id = pair
                    raise InsufficientStockError(
                        f"Not enough stock of product {product_id} in warehouse {warehouse_id}",
                        product_id=product_id,
                        warehouse_id=warehouse_id,
                        available=before[pair],
                        shortfall=-staged[pair],
                    )

        for pair in sorted(staged):
            self.balances.write(pair, staged[pair])
        return staged
