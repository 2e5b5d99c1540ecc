# shopcore/repos/product_repo.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from shopcore.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def refresh_product(self, product_id: int) -> ProductModel | None:
        # swiezy odczyt z bazy, z pominieciem identity map
        product = self.db.get(ProductModel, product_id, populate_existing=True)
        return product

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        # UPDATE products SET stock = stock - q WHERE id = ? AND stock >= q
        # jedno zapytanie, nie ma okna miedzy odczytem a zapisem
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(
                stock=ProductModel.stock - quantity,
                sales_count=ProductModel.sales_count + quantity,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def increment_stock(self, product_id: int, quantity: int) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(
                stock=ProductModel.stock + quantity,
                sales_count=ProductModel.sales_count - quantity,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
