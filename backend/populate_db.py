import os
import random
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.product import Product
from models.users import User
from models.warehouse import Warehouse
from models.stock import MovementType
from services.ledger import StockLedger
from services.errors import InsufficientStockError
from utils.tokenJWT import create_access_token

# Configuration
DEMO_EMAIL = "demo@stock-ledger.local"
PRODUCT_COUNT = 20
MOVEMENT_COUNT = 200
WAREHOUSE_NAMES = ["Main warehouse", "Store front", "Returns"]
# End Configuration


def load_demo_data():
    """Creates a demo owner with products, warehouses and a random movement history."""
    init_db()
    session = SessionLocal()

    user = session.query(User).filter(User.email == DEMO_EMAIL).first()
    if user:
        print(f"Demo user already exists (id={user.id}), skipping seed.")
    else:
        user = User(email=DEMO_EMAIL, name="Demo")
        session.add(user)
        session.commit()

        products = [
            Product(name=f"Demo product {i:03d}", sku=f"DEMO-{i:03d}", owner_id=user.id)
            for i in range(1, PRODUCT_COUNT + 1)
        ]
        warehouses = [Warehouse(name=name, owner_id=user.id) for name in WAREHOUSE_NAMES]
        session.add_all(products + warehouses)
        session.commit()

        print(f"Inserting {MOVEMENT_COUNT} movements...")
        ledger = StockLedger(session)
        created = rejected = 0
        for _ in range(MOVEMENT_COUNT):
            product = random.choice(products)
            source, destination = random.sample(warehouses, 2)
            kind = random.choices(list(MovementType), weights=[5, 3, 2, 1])[0]
            data = {
                "product_id": product.id,
                "type": kind,
                "quantity": random.randint(1, 25),
                "warehouse_from_id": source.id if kind in (MovementType.OUT, MovementType.TRANSFER) else None,
                "warehouse_to_id": destination.id if kind is not MovementType.OUT else None,
                "reason": "Demo data",
            }
            try:
                ledger.create(user.id, data)
                created += 1
            except InsufficientStockError:
                rejected += 1

        print(f"Created {created} movements ({rejected} rejected for insufficient stock).")

    print("Bearer token for the demo user:")
    print(create_access_token({"sub": user.id}))
    session.close()


if __name__ == "__main__":
    load_demo_data()
