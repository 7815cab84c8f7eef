from .admin import router as admin_router
from .reminders import router as reminders_router

__all__ = [
    "admin_router",
    "reminders_router",
]
