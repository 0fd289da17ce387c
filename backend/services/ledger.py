# backend/services/ledger.py
"""
Stock ledger: the single entry point for movement commands.

Usage:
    ledger = StockLedger(db)
    movement = ledger.create(user.id, {"product_id": 1, "type": "IN",
                                       "quantity": 10, "warehouse_to_id": 2})
    ledger.update(user.id, movement.id, {"quantity": 3})
    ledger.delete(user.id, movement.id)

Every command is one unit of work: ownership checks, the movement row
change and all balance deltas are staged in the session and committed
together, or rolled back together. A stale row version (or a duplicate
first insert of a balance pair) means another command got there first;
the whole unit of work is then replayed, up to CONCURRENCY_MAX_RETRIES
attempts, before ConcurrencyConflict is raised.

Commands take an optional ``audit`` hook. It is called with the result
inside the unit of work, after the changes are flushed, so whatever it
stages (an audit Log row) is committed with the command or not at all.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from config import settings
from models.stock import MovementType, StockBalance, StockMovement
from services import reconciliation
from services.balances import BalanceStore
from services.errors import (
    ConcurrencyConflict,
    LedgerError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from services.movements import MUTABLE_FIELDS, MovementStore
from services.ownership import OwnershipResolver
from services.reconciliation import BalanceDelta, NegativeStockPolicy, Reconciler

logger = logging.getLogger(__name__)

T = TypeVar("T")
AuditHook = Callable[[Any], None]

WAREHOUSE_FIELDS = ("warehouse_from_id", "warehouse_to_id")


class StockLedger:
    def __init__(
        self,
        db: Session,
        policy: Optional[NegativeStockPolicy | str] = None,
        max_retries: Optional[int] = None,
    ):
        self.db = db
        self.balances = BalanceStore(db)
        self.movements = MovementStore(db)
        self.ownership = OwnershipResolver(db)
        self.reconciler = Reconciler(self.balances, policy or settings.NEGATIVE_STOCK_POLICY)
        if max_retries is None:
            max_retries = settings.CONCURRENCY_MAX_RETRIES
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.max_retries = max_retries

    # ---- COMMANDS ----

    def create(self, owner_id: int, data: dict[str, Any], audit: Optional[AuditHook] = None) -> StockMovement:
        """Record a new movement and apply it to the balances."""

        def work() -> StockMovement:
            fields = self._validate(owner_id, dict(data))
            movement = self.movements.add(owner_id, fields)
            self.reconciler.commit(reconciliation.apply(movement))
            self._stage_audit(audit, movement)
            return movement

        movement = self._unit_of_work("create", work)
        logger.info(
            "Movement %s created: %s %s of product %s (from=%s, to=%s)",
            movement.id, movement.type.value, movement.quantity, movement.product_id,
            movement.warehouse_from_id, movement.warehouse_to_id,
        )
        return movement

    def update(
        self,
        owner_id: int,
        movement_id: int,
        changes: dict[str, Any],
        audit: Optional[AuditHook] = None,
    ) -> StockMovement:
        """
        Edit a movement: revert its old effect, merge ``changes``, apply the new effect.

        Fields missing from ``changes`` keep their value; an explicit None
        clears an optional field. Revert and apply are folded by a single
        Reconciler.commit() so no intermediate state is ever written.
        """

        def work() -> StockMovement:
            movement = self._require_movement(owner_id, movement_id)
            deltas: list[BalanceDelta] = reconciliation.revert(movement)

            merged = {field: getattr(movement, field) for field in MUTABLE_FIELDS}
            merged.update(changes)
            self.movements.update(movement, self._validate(owner_id, merged))

            deltas += reconciliation.apply(movement)
            self.reconciler.commit(deltas)
            self._stage_audit(audit, movement)
            return movement

        movement = self._unit_of_work("update", work)
        logger.info("Movement %s updated (%s)", movement_id, ", ".join(sorted(changes)) or "no changes")
        return movement

    def delete(self, owner_id: int, movement_id: int, audit: Optional[AuditHook] = None) -> None:
        """Revert a movement's effect and remove it. Deleting twice raises NotFoundError."""

        def work() -> None:
            movement = self._require_movement(owner_id, movement_id)
            self.reconciler.commit(reconciliation.revert(movement))
            self._stage_audit(audit, movement)
            self.movements.remove(movement)

        self._unit_of_work("delete", work)
        logger.info("Movement %s deleted", movement_id)

    # ---- QUERIES ----

    def get_balances(
        self,
        owner_id: int,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
    ) -> list[StockBalance]:
        """Balances of pairs whose product and warehouse both belong to ``owner_id``."""
        return self.balances.find(
            self.ownership.owned_product_ids(owner_id),
            self.ownership.owned_warehouse_ids(owner_id),
            product_id=product_id,
            warehouse_id=warehouse_id,
        )

    def get_movements(
        self,
        owner_id: int,
        start: Any = None,
        end: Any = None,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        type: Optional[MovementType | str] = None,
    ) -> list[StockMovement]:
        """
        Owned movements, newest first.

        ``start``/``end`` accept datetimes, dates or ISO strings and bound
        created_at inclusively; a date-only ``end`` covers the whole day.
        Naive values are taken as UTC.
        """
        start_dt = parse_bound(start, "start", end_of_day=False)
        end_dt = parse_bound(end, "end", end_of_day=True)
        if start_dt is not None and end_dt is not None and start_dt > end_dt:
            raise ValidationError("start must not be after end", start=str(start), end=str(end))

        if type is not None:
            try:
                type = MovementType(type)
            except ValueError:
                raise ValidationError(f"Unknown movement type: {type!r}", type=str(type))

        return self.movements.list_owned(
            owner_id,
            start=start_dt,
            end=end_dt,
            product_id=product_id,
            warehouse_id=warehouse_id,
            type=type,
        )

    # ---- INTEGRITY ----

    def audit_balances(self, owner_id: int) -> list[dict[str, int]]:
        """
        Compare stored balances with a replay of the movement log.

        Returns:
            One entry per drifted pair: product_id, warehouse_id, stored, expected
        """
        discrepancies = self._discrepancies(owner_id)
        for entry in discrepancies:
            logger.warning(
                "Balance drift for product %s in warehouse %s: stored %s, expected %s",
                entry["product_id"], entry["warehouse_id"], entry["stored"], entry["expected"],
            )
        return discrepancies

    def rebuild_balances(self, owner_id: int, audit: Optional[AuditHook] = None) -> list[dict[str, int]]:
        """
        Bring drifted balances back to the replayed values.

        The correction goes through the reconciler as one delta per pair.
        A replayed value below zero (possible after clamping) is stored as 0.

        Returns:
            The repaired pairs, as reported by audit_balances()
        """

        def work() -> list[dict[str, int]]:
            discrepancies = self._discrepancies(owner_id)
            pairs = [(entry["product_id"], entry["warehouse_id"]) for entry in discrepancies]
            current = self.balances.lock(pairs)

            deltas = []
            for entry in discrepancies:
                pair = (entry["product_id"], entry["warehouse_id"])
                target = max(0, entry["expected"])
                if target != current[pair]:
                    deltas.append(BalanceDelta(pair[0], pair[1], target - current[pair]))
            if deltas:
                self.reconciler.commit(deltas)
            self._stage_audit(audit, discrepancies)
            return discrepancies

        repaired = self._unit_of_work("rebuild", work)
        if repaired:
            logger.warning("Rebuilt %s balance(s) for owner %s", len(repaired), owner_id)
        return repaired

    # ---- INTERNALS ----

    def _unit_of_work(self, action: str, work: Callable[[], T]) -> T:
        for attempt in range(1, self.max_retries + 1):
            self.balances.reset()
            try:
                result = work()
                self.db.commit()
                return result
            except (StaleDataError, IntegrityError) as exc:
                self.db.rollback()
                # Only a racing first insert of a balance pair is a conflict;
                # any other constraint failure is a storage error
                if isinstance(exc, IntegrityError) and not _is_pair_collision(exc):
                    logger.exception("Integrity failure during %s, transaction rolled back", action)
                    raise PersistenceError(f"Could not {action} movement", action=action) from exc
                logger.warning(
                    "Concurrent modification during %s (attempt %s/%s): %s",
                    action, attempt, self.max_retries, exc,
                )
            except LedgerError:
                self.db.rollback()
                raise
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.exception("Storage failure during %s, transaction rolled back", action)
                raise PersistenceError(f"Could not {action} movement", action=action) from exc
            except Exception:
                self.db.rollback()
                raise

        raise ConcurrencyConflict(
            f"Could not {action} movement after {self.max_retries} attempts",
            action=action,
            attempts=self.max_retries,
        )

    def _stage_audit(self, audit: Optional[AuditHook], result: Any) -> None:
        if audit is None:
            return
        # Assign ids (and surface stale rows) before the hook reads the result
        self.db.flush()
        audit(result)

    def _require_movement(self, owner_id: int, movement_id: int) -> StockMovement:
        movement = self.movements.get_owned(owner_id, movement_id)
        if movement is None:
            raise NotFoundError(f"Movement {movement_id} not found", movement_id=movement_id)
        return movement

    def _validate(self, owner_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        """
        Check a complete set of movement fields and normalize them.

        Field rules come first (422), ownership second (404). The warehouse
        field the type does not use is cleared.
        """
        unknown = set(fields) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}", fields=sorted(unknown))

        if fields.get("type") is None:
            raise ValidationError("type is required", field="type")
        try:
            fields["type"] = movement_type = MovementType(fields["type"])
        except ValueError:
            raise ValidationError(f"Unknown movement type: {fields['type']!r}", field="type")

        quantity = fields.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be a positive integer", field="quantity", quantity=quantity)

        if fields.get("product_id") is None:
            raise ValidationError("product_id is required", field="product_id")

        required = reconciliation.REQUIRED_WAREHOUSES[movement_type]
        for field in WAREHOUSE_FIELDS:
            if field in required:
                if fields.get(field) is None:
                    raise ValidationError(
                        f"{movement_type.value} movement requires {field}",
                        field=field,
                        type=movement_type.value,
                    )
            else:
                fields[field] = None

        if movement_type is MovementType.TRANSFER and fields["warehouse_from_id"] == fields["warehouse_to_id"]:
            raise ValidationError(
                "TRANSFER source and destination must differ",
                field="warehouse_to_id",
                warehouse_id=fields["warehouse_to_id"],
            )

        self.ownership.require_product(owner_id, fields["product_id"])
        for field in required:
            self.ownership.require_warehouse(owner_id, fields[field])
        return fields

    def _discrepancies(self, owner_id: int) -> list[dict[str, int]]:
        product_ids = self.ownership.owned_product_ids(owner_id)
        warehouse_ids = self.ownership.owned_warehouse_ids(owner_id)

        expected = {
            pair: quantity
            for pair, quantity in reconciliation.rebuild(self.movements.for_products(product_ids)).items()
            if pair[1] in warehouse_ids
        }
        stored = {
            (balance.product_id, balance.warehouse_id): balance.quantity
            for balance in self.balances.find(product_ids, warehouse_ids)
        }

        out = []
        for pair in sorted(set(expected) | set(stored)):
            if expected.get(pair, 0) != stored.get(pair, 0):
                out.append({
                    "product_id": pair[0],
                    "warehouse_id": pair[1],
                    "stored": stored.get(pair, 0),
                    "expected": expected.get(pair, 0),
                })
        return out


PAIR_CONSTRAINT = "ux_stock_balances_pair"


def _is_pair_collision(exc: IntegrityError) -> bool:
    # Postgres and MySQL name the constraint; SQLite lists its columns
    message = str(exc.orig)
    return PAIR_CONSTRAINT in message or "stock_balances.product_id, stock_balances.warehouse_id" in message


def parse_bound(value: Any, name: str, end_of_day: bool) -> Optional[datetime]:
    """
    Parse a date range bound (datetime, date or ISO string) into an aware UTC datetime.

    A date-only value is the start of the day, or its last microsecond when
    ``end_of_day``. Naive values are taken as UTC. Bad input raises
    ValidationError naming ``name``.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max if end_of_day else time.min)
    else:
        text = str(value).strip()
        try:
            if len(text) == 10:
                parsed = datetime.combine(date.fromisoformat(text), time.max if end_of_day else time.min)
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid {name} date: {text!r}", field=name)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
