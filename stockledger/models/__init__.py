# models package

from stockledger.models.party import Supplier, Customer
from stockledger.models.product import Product, Variant
from stockledger.models.purchase_order import PurchaseOrder, PurchaseItem
from stockledger.models.order import Order
from stockledger.models.order_item import OrderItem
from stockledger.models.stock_movement import StockMovement
from stockledger.models.status_change import StatusChange

__all__ = [
    "Supplier",
    "Customer",
    "Product",
    "Variant",
    "PurchaseOrder",
    "PurchaseItem",
    "Order",
    "OrderItem",
    "StockMovement",
    "StatusChange",
]
