from .catalog import Product, PriceHistoryEntry
from .audit import ProductAuditLog, AUDIT_ACTIONS
from .auth import User, SessionToken, ROLES, ROLE_USER, ROLE_ADMIN
from .security import SecurityEvent
from .settings import AppSetting

__all__ = [
    'Product', 'PriceHistoryEntry',
    'ProductAuditLog', 'AUDIT_ACTIONS',
    'User', 'SessionToken', 'ROLES', 'ROLE_USER', 'ROLE_ADMIN',
    'SecurityEvent',
    'AppSetting',
]
