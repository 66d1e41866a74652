"""Router modules exposed by the gateway API."""
from . import admin, auth, inventory, leads, logistics, notifications, orders, system

__all__ = [
    "admin",
    "auth",
    "inventory",
    "leads",
    "logistics",
    "notifications",
    "orders",
    "system",
]
