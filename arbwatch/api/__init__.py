from .errors import register_exception_handlers, status_for
from .routes import router

__all__ = [
    "router",
    "register_exception_handlers",
    "status_for",
]
