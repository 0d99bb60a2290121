"""
Domain enums shared by services and routers.
"""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    DELIVERED = "delivered"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Role(str, Enum):
    PARENT = "parent"
    CASHIER = "cashier"
    ADMIN = "admin"
