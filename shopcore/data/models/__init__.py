#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from shopcore.data.models.product import ProductModel
from shopcore.data.models.cart import CartModel
from shopcore.data.models.cart_item import CartItemModel
from shopcore.data.models.order import OrderModel
from shopcore.data.models.order_item import OrderItemModel
from shopcore.data.models.order_refund import OrderRefundModel
from shopcore.data.models.sequence_counter import SequenceCounterModel

__all__ = [
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderRefundModel",
    "SequenceCounterModel",
]
