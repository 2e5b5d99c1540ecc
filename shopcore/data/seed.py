# shopcore/data/seed.py
from decimal import Decimal

from shopcore.data.database import SessionLocal, init_db
from shopcore.data.models.product import ProductModel
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

# katalog demo, CRUD produktow jest poza tym serwisem
PRODUCTS = [
    {"sku": "ALX-TEE-001", "name": {"en": "Logo T-shirt", "no": "Logo T-skjorte"}, "price": Decimal("299.00"), "stock": 50},
    {"sku": "ALX-HOOD-001", "name": {"en": "Hoodie", "no": "Hettegenser"}, "price": Decimal("799.00"), "stock": 20},
    {"sku": "ALX-CAP-001", "name": {"en": "Cap", "no": "Caps"}, "price": Decimal("199.00"), "stock": 8},
    {"sku": "ALX-MUG-001", "name": {"en": "Coffee mug", "no": "Kaffekopp"}, "price": Decimal("149.00"), "stock": 100},
]


def seed():
    init_db()
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            return
        for data in PRODUCTS:
            db.add(ProductModel(is_active=True, sales_count=0, **data))
        db.commit()
        logger.info(f"Seeded {len(PRODUCTS)} products")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
