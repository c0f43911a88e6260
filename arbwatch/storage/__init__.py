from .base import Storage
from .memory import InMemoryStorage
from .audit import AuditLog

__all__ = [
    "Storage",
    "InMemoryStorage",
    "AuditLog",
]
