from types import SimpleNamespace

import pytest

from models.stock import MovementType
from services import reconciliation
from services.balances import BalanceStore
from services.errors import InsufficientStockError, ValidationError
from services.reconciliation import BalanceDelta, NegativeStockPolicy, Reconciler

from conftest import balance_of


def movement(type, quantity, product_id=1, warehouse_from_id=None, warehouse_to_id=None):
    return SimpleNamespace(
        type=type,
        quantity=quantity,
        product_id=product_id,
        warehouse_from_id=warehouse_from_id,
        warehouse_to_id=warehouse_to_id,
    )


def test_every_movement_type_has_a_rule():
    assert set(reconciliation.DELTA_RULES) == set(MovementType)
    assert set(reconciliation.REQUIRED_WAREHOUSES) == set(MovementType)


def test_receipt_adds_to_destination():
    assert reconciliation.apply(movement(MovementType.IN, 10, warehouse_to_id=7)) == [BalanceDelta(1, 7, 10)]


def test_adjust_behaves_like_receipt():
    assert reconciliation.apply(movement("ADJUST", 2, warehouse_to_id=7)) == [BalanceDelta(1, 7, 2)]


def test_issue_subtracts_from_source():
    assert reconciliation.apply(movement(MovementType.OUT, 4, warehouse_from_id=7)) == [BalanceDelta(1, 7, -4)]


def test_transfer_moves_between_warehouses():
    deltas = reconciliation.apply(movement(MovementType.TRANSFER, 6, warehouse_from_id=7, warehouse_to_id=8))
    assert deltas == [BalanceDelta(1, 7, -6), BalanceDelta(1, 8, 6)]


def test_apply_ignores_warehouse_the_type_does_not_use():
    deltas = reconciliation.apply(movement(MovementType.IN, 5, warehouse_from_id=3, warehouse_to_id=7))
    assert deltas == [BalanceDelta(1, 7, 5)]


def test_revert_is_exact_negation():
    m = movement(MovementType.TRANSFER, 6, warehouse_from_id=7, warehouse_to_id=8)
    applied = reconciliation.apply(m)
    reverted = reconciliation.revert(m)

    assert [d.pair for d in reverted] == [d.pair for d in applied]
    assert [d.amount for d in reverted] == [-d.amount for d in applied]


@pytest.mark.parametrize("m", [
    movement(MovementType.IN, 5),
    movement(MovementType.OUT, 5, warehouse_to_id=2),
    movement(MovementType.TRANSFER, 5, warehouse_from_id=2),
])
def test_missing_required_warehouse_is_rejected(m):
    with pytest.raises(ValidationError):
        reconciliation.apply(m)


@pytest.mark.parametrize("quantity", [0, -3, None])
def test_non_positive_quantity_is_rejected(quantity):
    with pytest.raises(ValidationError):
        reconciliation.apply(movement(MovementType.IN, quantity, warehouse_to_id=1))


def test_unknown_type_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        reconciliation.apply(movement("RETURN", 1, warehouse_to_id=1))
    assert excinfo.value.kind == "VALIDATION_ERROR"


def test_rebuild_replays_log_without_clamping():
    log = [
        movement(MovementType.IN, 10, warehouse_to_id=1),
        movement(MovementType.OUT, 4, warehouse_from_id=1),
        movement(MovementType.TRANSFER, 6, warehouse_from_id=1, warehouse_to_id=2),
        movement(MovementType.OUT, 9, warehouse_from_id=2),
        movement(MovementType.IN, 1, product_id=2, warehouse_to_id=2),
    ]
    assert reconciliation.rebuild(log) == {(1, 1): 0, (1, 2): -3, (2, 2): 1}


def test_rebuild_of_empty_log_is_empty():
    assert reconciliation.rebuild([]) == {}


# ---- Reconciler against the balance store ----

def test_commit_folds_deltas_in_order(db, p1, w1):
    reconciler = Reconciler(BalanceStore(db), NegativeStockPolicy.REJECT)

    # Going below zero midway is fine when the pair ends non-negative
    staged = reconciler.commit([
        BalanceDelta(p1.id, w1.id, -5),
        BalanceDelta(p1.id, w1.id, 8),
    ])
    db.commit()

    assert staged == {(p1.id, w1.id): 3}
    assert balance_of(db, p1.id, w1.id) == 3


def test_reject_policy_refuses_whole_batch(db, p1, w1, w2):
    store = BalanceStore(db)
    reconciler = Reconciler(store, "reject")
    reconciler.commit([BalanceDelta(p1.id, w1.id, 2)])
    db.commit()
    store.reset()

    with pytest.raises(InsufficientStockError) as excinfo:
        reconciler.commit([
            BalanceDelta(p1.id, w2.id, 4),
            BalanceDelta(p1.id, w1.id, -5),
        ])
    db.rollback()

    assert excinfo.value.status_code == 422
    assert excinfo.value.data == {
        "product_id": p1.id,
        "warehouse_id": w1.id,
        "available": 2,
        "shortfall": 3,
    }
    assert balance_of(db, p1.id, w1.id) == 2
    assert balance_of(db, p1.id, w2.id) == 0


def test_clamp_policy_floors_each_delta(db, p1, w1, caplog):
    reconciler = Reconciler(BalanceStore(db), "clamp")

    with caplog.at_level("WARNING", logger="services.reconciliation"):
        staged = reconciler.commit([
            BalanceDelta(p1.id, w1.id, -4),
            BalanceDelta(p1.id, w1.id, 3),
        ])
    db.commit()

    # -4 clamps to 0, then +3
    assert staged == {(p1.id, w1.id): 3}
    assert balance_of(db, p1.id, w1.id) == 3
    assert "Clamping balance" in caplog.text


def test_unknown_policy_is_rejected(db):
    with pytest.raises(ValueError):
        Reconciler(BalanceStore(db), "ignore")
