"""
Pydantic schemas for request/response validation in the Sweet Shop service.

These schemas define the structure of data for API requests and responses.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator
from .validators import MAX_QUANTITY


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _normalize_email(value):
    return value.strip().lower() if isinstance(value, str) else value


class UserRegister(BaseModel):
    """Schema for user registration with password."""
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        return _strip(value)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class TokenData(BaseModel):
    """Schema for data stored in JWT token."""
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None


class User(BaseModel):
    """
    Schema for user responses, includes all database fields except password.

    Attributes:
        id (str): User's unique identifier
        username (str): Display name
        email (str): User's email address
        role (str): User role (USER or ADMIN)
        is_active (bool): Whether the account is active
        created_at (datetime): When the user was created
    """
    id: str
    username: str
    email: str
    role: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RegisterResponse(BaseModel):
    message: str
    user: User


class LoginResponse(BaseModel):
    """Schema for login response carrying the JWT access token."""
    message: str
    token: str
    token_type: str = "bearer"
    user: User


class SweetCreate(BaseModel):
    """Schema for creating a new sweet."""
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=50)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(0, ge=0, le=MAX_QUANTITY, strict=True)

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)


class SweetUpdate(BaseModel):
    """Schema for updating an existing sweet. All fields are optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(None, ge=0, le=MAX_QUANTITY, strict=True)

    @field_validator("name", "category", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)


class Sweet(BaseModel):
    """
    Schema for sweet responses, includes all database fields.

    Attributes:
        id (str): Sweet's unique identifier
        name (str): Product name
        category (str): Product category
        price (Decimal): Unit price, serialized as a JSON number
        quantity (int): Units available
        created_at (datetime): When the sweet was created
        updated_at (datetime): When the sweet was last changed
    """
    id: str
    name: str
    category: str
    price: Decimal
    quantity: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)

    class Config:
        from_attributes = True


class SweetFilters(BaseModel):
    """Optional search filters for listing sweets."""
    name: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class PurchaseRequest(BaseModel):
    """Schema for a purchase. Quantity defaults to 1 when omitted."""
    quantity: int = Field(1, strict=True)


class RestockRequest(BaseModel):
    """Schema for a restock. Quantity has no default."""
    quantity: Optional[int] = Field(None, strict=True)


class SweetResponse(BaseModel):
    message: str
    sweet: Sweet


class SweetListResponse(BaseModel):
    message: str
    count: int
    sweets: List[Sweet]
