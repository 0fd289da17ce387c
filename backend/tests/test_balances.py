import pytest

from models.stock import StockBalance
from services.balances import BalanceStore

from conftest import balance_of


def test_missing_pair_reads_as_zero(db, p1, w1):
    store = BalanceStore(db)
    assert store.quantity(p1.id, w1.id) == 0
    assert store.lock([(p1.id, w1.id), (p1.id, w1.id)]) == {(p1.id, w1.id): 0}


def test_zero_write_does_not_create_row(db, p1, w1):
    store = BalanceStore(db)
    assert store.write((p1.id, w1.id), 0) is None
    db.commit()

    assert db.query(StockBalance).count() == 0


def test_existing_row_is_kept_at_zero(db, p1, w1):
    store = BalanceStore(db)
    store.write((p1.id, w1.id), 5)
    db.commit()

    store.reset()
    row = store.write((p1.id, w1.id), 0)
    db.commit()

    assert row is not None
    assert db.query(StockBalance).count() == 1
    assert balance_of(db, p1.id, w1.id) == 0


def test_negative_write_is_refused(db, p1, w1):
    with pytest.raises(ValueError):
        BalanceStore(db).write((p1.id, w1.id), -1)


def test_write_bumps_row_version(db, p1, w1):
    store = BalanceStore(db)
    row = store.write((p1.id, w1.id), 5)
    db.commit()
    first_version = row.version

    store.reset()
    store.write((p1.id, w1.id), 7)
    db.commit()

    assert row.version == first_version + 1


def test_find_filters_by_owned_ids(db, p1, p2, w1, w2):
    store = BalanceStore(db)
    store.write((p1.id, w1.id), 1)
    store.write((p1.id, w2.id), 2)
    store.write((p2.id, w1.id), 3)
    db.commit()

    everything = store.find({p1.id, p2.id}, {w1.id, w2.id})
    assert [(b.product_id, b.warehouse_id, b.quantity) for b in everything] == [
        (p1.id, w1.id, 1),
        (p1.id, w2.id, 2),
        (p2.id, w1.id, 3),
    ]
    assert [b.quantity for b in store.find({p1.id, p2.id}, {w1.id})] == [1, 3]
    assert [b.quantity for b in store.find({p1.id, p2.id}, {w1.id, w2.id}, product_id=p1.id)] == [1, 2]
    assert [b.quantity for b in store.find({p1.id, p2.id}, {w1.id, w2.id}, warehouse_id=w2.id)] == [2]
    assert store.find([], {w1.id}) == []
