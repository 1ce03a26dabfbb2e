"""
SQLAlchemy ORM models for the Sweet Shop service.

Defines the database schema for users and sweets.
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Numeric, CheckConstraint
from .database import Base

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"


def generate_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    """
    User model representing an account that can call the API.

    Attributes:
        id (str): Primary key, opaque generated identifier
        username (str): Display name
        email (str): User's email address (unique, stored lower-cased)
        password_hash (str): Bcrypt password hash
        role (str): User role (USER, ADMIN)
        is_active (bool): Whether the user account is active
        created_at (datetime): Timestamp when the user was created
    """
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=generate_id)
    username = Column(String(50), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String(10), default=ROLE_USER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Sweet(Base):
    """
    Sweet model representing an inventory item in stock.

    The CHECK constraints keep quantity within the 32-bit integer range and
    price non-negative for every committed row, whichever code path writes them.

    Attributes:
        id (str): Primary key, opaque generated identifier
        name (str): Product name
        category (str): Product category
        price (Decimal): Unit price
        quantity (int): Units available in inventory
        created_at (datetime): Timestamp when the item was created
        updated_at (datetime): Timestamp of the last mutation
    """
    __tablename__ = "sweets"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_sweets_quantity_non_negative"),
        CheckConstraint("quantity <= 2147483647", name="ck_sweets_quantity_max"),
        CheckConstraint("price >= 0", name="ck_sweets_price_non_negative"),
    )

    id = Column(String(32), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False, index=True)
    category = Column(String(50), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
