"""
SQLAlchemy ORM models for the School Canteen API.

Tables mirror the Supabase schema the frontend already talks to:
    profiles     — one row per auth user (full name, phone, legacy role)
    user_roles   — authoritative role assignment (parent | cashier | admin)
    categories   — menu categories
    menu_items   — food items with price and availability
    daily_menus  — per-date availability of menu items
    orders       — a parent's order for one child
    order_items  — price/quantity snapshot of a menu item inside an order
    payments     — gateway notifications recorded per transaction
    payment_sessions — every gateway id an order has carried
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, Date, DateTime, Text, JSON, ForeignKey,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    """Public profile attached to an auth user id."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # same as the auth user id
    full_name = Column(String(200), nullable=False, default="")
    email = Column(String(200), nullable=True)
    phone = Column(String(30), nullable=True)
    address = Column(Text, nullable=True)
    role = Column(String(20), nullable=True)  # legacy mirror of user_roles.role
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserRole(Base):
    """Role assignment; takes precedence over profiles.role."""
    __tablename__ = "user_roles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, unique=True, index=True)
    role = Column(String(20), nullable=False, default="parent")
    created_at = Column(DateTime, default=datetime.utcnow)


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class MenuItem(Base):
    """A food item on the canteen menu."""
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    is_available = Column(Boolean, nullable=True, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DailyMenu(Base):
    """Availability of one menu item on one date."""
    __tablename__ = "daily_menus"

    id = Column(String(36), primary_key=True, default=_uuid)
    date = Column(Date, nullable=False, index=True)
    food_item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=False)
    price = Column(Float, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)
    max_quantity = Column(Integer, nullable=False, default=100)
    current_quantity = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("date", "food_item_id", name="uq_daily_menu_date_item"),
    )


class Order(Base):
    """
    A parent's order for one child.

    midtrans_order_id is the gateway transaction id. Batch payments write
    the same id onto every member order.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_number = Column(String(50), nullable=False, default=lambda: f"ORD-{uuid.uuid4().hex[:10].upper()}")
    user_id = Column(String(36), nullable=True, index=True)
    child_name = Column(String(200), nullable=True)
    child_class = Column(String(50), nullable=True)
    total_amount = Column(Float, nullable=False)
    status = Column(String(20), nullable=True, default="pending")  # pending | confirmed | preparing | delivered
    payment_status = Column(String(20), nullable=True, default="pending")  # pending | paid | failed
    payment_method = Column(String(50), nullable=True)
    midtrans_order_id = Column(String(100), nullable=True, index=True)
    transaction_id = Column(String(100), nullable=True)
    delivery_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    order_items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        order_by="OrderItem.created_at",
    )

    __table_args__ = (
        Index("ix_orders_user_created", "user_id", "created_at"),
    )


class OrderItem(Base):
    """Immutable price/quantity snapshot inside an order."""
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True, index=True)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="order_items")
    menu_item = relationship("MenuItem", lazy="selectin")


class Payment(Base):
    """Gateway notification recorded against an order."""
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=True, index=True)
    transaction_id = Column(String(100), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    payment_method = Column(String(50), nullable=False)
    status = Column(String(20), nullable=True)
    midtrans_response = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PaymentSession(Base):
    """
    Every gateway id an order has been attached to.

    orders.midtrans_order_id only holds the latest one; a parent can still pay
    an earlier virtual account after the order was moved into a batch.
    """
    __tablename__ = "payment_sessions"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    midtrans_order_id = Column(String(100), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("order_id", "midtrans_order_id", name="uq_payment_session_order_gateway"),
    )
