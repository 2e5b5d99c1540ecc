from sqlalchemy import Column, Integer, String, Boolean, Numeric, JSON, CheckConstraint

from shopcore.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    sku = Column(String, nullable=True)
    # {"en": "...", "no": "..."}
    name = Column(JSON, nullable=False)

    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    sales_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),)

    def display_name(self, language: str = "en") -> str:
        return localized(self.name, language)


def localized(names, language: str) -> str:
    if not isinstance(names, dict):
        return str(names)
    return names.get(language) or names.get("en") or next(iter(names.values()), "")
