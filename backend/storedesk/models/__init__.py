from .storage import StorageEntry
from .records import (
    StorageDecodeError, new_id,
    RoleName, Role, SuperAdmin, StoreOwner, Manager, Seller, make_role,
    Store, User, Product, Customer, Sale, SaleItem,
    PAYMENT_METHODS, SALE_STATUSES,
)

__all__ = [
    'StorageEntry',
    'StorageDecodeError', 'new_id',
    'RoleName', 'Role', 'SuperAdmin', 'StoreOwner', 'Manager', 'Seller', 'make_role',
    'Store', 'User', 'Product', 'Customer', 'Sale', 'SaleItem',
    'PAYMENT_METHODS', 'SALE_STATUSES',
]
