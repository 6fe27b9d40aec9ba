#import all models so SQLAlchemy registers them in Base.metadata

from cartflow.data.models.cart_line import CartLineModel
from cartflow.data.models.order import OrderModel
from cartflow.data.models.order_line import OrderLineModel
from cartflow.data.models.saved_address import SavedAddressModel
from cartflow.data.models.voucher import VoucherModel

__all__ = [
    "CartLineModel",
    "OrderModel",
    "OrderLineModel",
    "SavedAddressModel",
    "VoucherModel",
]
