from .auth import User, SessionToken, USER_ROLES
from .customers import Customer
from .catalog import Category, Product, ProductVariant
from .sales import Transaction, TransactionItem, PAYMENT_METHODS, TRANSACTION_STATUSES
from .shifts import Shift

__all__ = [
    'User', 'SessionToken', 'USER_ROLES',
    'Customer',
    'Category', 'Product', 'ProductVariant',
    'Transaction', 'TransactionItem', 'PAYMENT_METHODS', 'TRANSACTION_STATUSES',
    'Shift',
]
