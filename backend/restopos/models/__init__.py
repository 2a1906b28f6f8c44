from .types import QUANTITY, to_quantity, quantity_str
from .documents import DocumentSequence, CurrentSelection, AuditEvent
from .menu import MenuItem, RecipeLine, Discount, TaxSetting, DiningTable
from .inventory import Ingredient, StockMovement, Supplier, Purchase, PurchaseItem
from .customers import Customer
from .cashier import CashierSession
from .orders import (
    Order,
    OrderItem,
    Payment,
    OrderStatus,
    OrderType,
    ItemStatus,
    PaymentStatus,
    PaymentMethod,
    can_transition,
)
from .accounting import FinancialYear, ChartOfAccount, AccountingTransaction, AccountingEntry

__all__ = [
    'QUANTITY', 'to_quantity', 'quantity_str',
    'DocumentSequence', 'CurrentSelection', 'AuditEvent',
    'MenuItem', 'RecipeLine', 'Discount', 'TaxSetting', 'DiningTable',
    'Ingredient', 'StockMovement', 'Supplier', 'Purchase', 'PurchaseItem',
    'Customer', 'CashierSession',
    'Order', 'OrderItem', 'Payment',
    'OrderStatus', 'OrderType', 'ItemStatus', 'PaymentStatus', 'PaymentMethod', 'can_transition',
    'FinancialYear', 'ChartOfAccount', 'AccountingTransaction', 'AccountingEntry',
]
