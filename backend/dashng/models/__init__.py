from .auth import User, SessionToken
from .settings import UserSettings
from .inventory import Product, InventoryHistory
from .notifications import Notification

__all__ = [
    'User', 'SessionToken',
    'UserSettings',
    'Product', 'InventoryHistory',
    'Notification',
]
