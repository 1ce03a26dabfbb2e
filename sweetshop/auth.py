"""
Authentication and authorization utilities.

Provides password hashing, JWT token creation/validation, and FastAPI dependencies
for protecting endpoints.
"""
from datetime import datetime, timedelta
from typing import Optional
import logging
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from . import crud, models, schemas
from .database import get_db
from .config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from .exceptions import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Security scheme for JWT bearer tokens; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The hashed password to compare against

    Returns:
        True if the password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password for secure storage.

    Args:
        password: The plain text password to hash

    Returns:
        The hashed password
    """
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing the claims to encode in the token
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def create_user_token(user: models.User) -> str:
    return create_access_token(data={"sub": user.id, "email": user.email, "role": user.role})


def decode_access_token(token: str) -> schemas.TokenData:
    """
    Decode and validate a JWT access token.

    Raises:
        Unauthorized: if the token is malformed, expired or lacks a subject
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT validation error: {e}")
        raise Unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if user_id is None:
        logger.warning("No 'sub' claim in token")
        raise Unauthorized("Invalid or expired token")
    return schemas.TokenData(user_id=str(user_id), email=payload.get("email"), role=payload.get("role"))


def authenticate_user(db: Session, email: str, password: str) -> Optional[models.User]:
    """
    Authenticate a user by email and password.

    Args:
        db: Database session
        email: User's email address
        password: Plain text password to verify

    Returns:
        User object if authentication succeeds, None otherwise
    """
    user = crud.get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> models.User:
    """
    FastAPI dependency to get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Authorization credentials (injected)
        db: Database session (injected)

    Returns:
        Current authenticated user

    Raises:
        Unauthorized: 401 if the token is missing or invalid, or the user no longer exists
        Forbidden: 403 if the user account is inactive
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Authentication required. Please provide a valid token.")

    token_data = decode_access_token(credentials.credentials)
    user = crud.get_user(db, token_data.user_id)
    if user is None:
        logger.warning(f"Token subject {token_data.user_id} does not match any user")
        raise Unauthorized("Invalid or expired token")
    if not user.is_active:
        raise Forbidden("User account is inactive")
    return user


def require_admin(current_user: models.User = Depends(get_current_user)) -> models.User:
    """
    FastAPI dependency to require admin role.

    Args:
        current_user: Current authenticated user (injected)

    Returns:
        Current user if they are an admin

    Raises:
        Forbidden: 403 if user is not an admin
    """
    if current_user.role != models.ROLE_ADMIN:
        logger.info(f"User {current_user.id} denied admin access")
        raise Forbidden("Insufficient permissions. Admin access required.")
    return current_user
