# shopcore/services/inventory_service.py
from typing import Iterable, NamedTuple

from sqlalchemy.orm import Session

from shopcore.domain.errors import OutOfStock, ProductNotFound
from shopcore.repos.product_repo import ProductRepo
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


class StockLine(NamedTuple):
    product_id: int
    quantity: int


class InventoryService:
    """
    Rezerwacja stanow magazynowych.
    reserve - warunkowy dekrement per produkt, przy bledzie cofa juz zarezerwowane pozycje z tej samej partii
    release - kompensacja, wywolywana tylko z zamrozonej listy pozycji zamowienia
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def reserve(self, items: Iterable[StockLine]) -> list[StockLine]:
        reserved: list[StockLine] = []

        for line in items:
            try:
                rowcount = self.repo.decrement_stock(line.product_id, line.quantity)
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                logger.error(f"Stock reservation failed for product {line.product_id}, rolling back batch")
                self.release(reserved)
                raise

            if rowcount == 0:
                # za malo towaru albo produkt zniknal
                self.release(reserved)
                product = self.repo.refresh_product(line.product_id)
                if product is None:
                    raise ProductNotFound(line.product_id)

                logger.info(
                    f"Reservation rejected for product {line.product_id}: "
                    f"available {product.stock}, requested {line.quantity}"
                )
                raise OutOfStock(
                    line.product_id,
                    available=product.stock,
                    requested=line.quantity,
                    name=product.display_name(),
                )

            reserved.append(line)

        logger.info(f"Reserved stock for {len(reserved)} products")
        return reserved

    def release(self, items: Iterable[StockLine]) -> None:
        items = list(items)
        if not items:
            return

        try:
            for line in items:
                rowcount = self.repo.increment_stock(line.product_id, line.quantity)
                if rowcount == 0:
                    logger.warning(f"Cannot restore stock for missing product {line.product_id}")
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            logger.exception(f"Stock release failed for {items}")
            raise

        logger.info(f"Released stock for {len(items)} products")

    def stock_levels(self, product_ids: Iterable[int]) -> dict:
        levels = {}
        for product_id in product_ids:
            product = self.repo.refresh_product(product_id)
            if product is not None:
                levels[product_id] = product
        return levels
