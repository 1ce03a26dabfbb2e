"""
CRUD (Create, Read, Update, Delete) operations for the Sweet Shop service.

This module is the only writer of persisted state. Quantity is never
overwritten from a value read earlier: stock changes go through
`apply_quantity_delta` or `decrement_quantity`, each a single UPDATE
statement evaluated by the database.
"""
import logging
from datetime import datetime
from typing import Iterator, Optional
from sqlalchemy import update
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from . import models, schemas, validators
from .exceptions import Conflict, NotFound, ValidationError

logger = logging.getLogger(__name__)

SWEET_FIELDS = ("name", "category", "price", "quantity")


def get_user(db: Session, user_id: str) -> Optional[models.User]:
    """
    Retrieve a single user by ID.

    Args:
        db: Database session
        user_id: ID of the user to retrieve

    Returns:
        User object or None if not found
    """
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    """
    Retrieve a user by email address (case-insensitive, surrounding spaces ignored).
    """
    return db.query(models.User).filter(models.User.email == email.strip().lower()).first()


def create_user(db: Session, username: str, email: str, password_hash: str,
                role: str = models.ROLE_USER) -> models.User:
    """
    Create a new user in the database.

    Args:
        db: Database session
        username: Display name
        email: Email address, stored lower-cased
        password_hash: Already hashed password
        role: USER or ADMIN

    Returns:
        Created User object
    """
    db_user = models.User(
        username=username.strip(),
        email=email.strip().lower(),
        password_hash=password_hash,
        role=role,
        is_active=True,
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("email already exists")
    db.refresh(db_user)
    return db_user


def get_sweet(db: Session, sweet_id: str) -> models.Sweet:
    """
    Retrieve a single sweet by ID.

    Raises:
        NotFound: if no sweet has this ID
    """
    db_sweet = db.query(models.Sweet).filter(models.Sweet.id == sweet_id).first()
    if db_sweet is None:
        raise NotFound("Sweet not found")
    return db_sweet


def iter_sweets(db: Session, filters: Optional[schemas.SweetFilters] = None) -> Iterator[models.Sweet]:
    """
    Iterate over sweets matching optional filters, newest first.

    Name and category match as case-insensitive substrings; the price range is
    inclusive on both ends. The query runs when iteration starts and the
    result can be consumed once.

    Args:
        db: Database session
        filters: Optional search filters

    Yields:
        Sweet objects
    """
    query = db.query(models.Sweet)
    if filters is not None:
        if filters.name:
            query = query.filter(models.Sweet.name.ilike(f"%{filters.name}%"))
        if filters.category:
            query = query.filter(models.Sweet.category.ilike(f"%{filters.category}%"))
        if filters.min_price is not None:
            query = query.filter(models.Sweet.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(models.Sweet.price <= filters.max_price)
    query = query.order_by(models.Sweet.created_at.desc())
    yield from query.yield_per(100)


def create_sweet(db: Session, sweet: schemas.SweetCreate) -> models.Sweet:
    """
    Create a new sweet in the database.

    Args:
        db: Database session
        sweet: Sweet data to create

    Returns:
        Created Sweet object

    Raises:
        ValidationError: if any field breaks the sweet constraints
    """
    data = sweet.model_dump()
    ok, message = validators.validate_sweet_fields(data)
    if not ok:
        raise ValidationError(message)

    db_sweet = models.Sweet(**data)
    db.add(db_sweet)
    _commit(db)
    db.refresh(db_sweet)
    logger.info(f"Created sweet {db_sweet.id} ({db_sweet.name}) with quantity {db_sweet.quantity}")
    return db_sweet


def update_sweet(db: Session, sweet_id: str, sweet: schemas.SweetUpdate) -> models.Sweet:
    """
    Update an existing sweet. Only provided fields are changed.

    Args:
        db: Database session
        sweet_id: ID of the sweet to update
        sweet: Updated sweet data

    Returns:
        Updated Sweet object

    Raises:
        NotFound: if no sweet has this ID
        ValidationError: if the resulting values break the sweet constraints
    """
    db_sweet = get_sweet(db, sweet_id)

    update_data = sweet.model_dump(exclude_unset=True)
    merged = {field: getattr(db_sweet, field) for field in SWEET_FIELDS}
    merged.update(update_data)
    ok, message = validators.validate_sweet_fields(merged)
    if not ok:
        raise ValidationError(message)

    for key, value in update_data.items():
        setattr(db_sweet, key, value)

    _commit(db)
    db.refresh(db_sweet)
    return db_sweet


def delete_sweet(db: Session, sweet_id: str) -> schemas.Sweet:
    """
    Delete a sweet from the database.

    Returns:
        Snapshot of the removed sweet as it was before deletion

    Raises:
        NotFound: if no sweet has this ID
    """
    db_sweet = get_sweet(db, sweet_id)
    snapshot = schemas.Sweet.model_validate(db_sweet)
    db.delete(db_sweet)
    _commit(db)
    logger.info(f"Deleted sweet {sweet_id} ({snapshot.name})")
    return snapshot


def apply_quantity_delta(db: Session, sweet_id: str, delta: int) -> int:
    """
    Atomically add `delta` to a sweet's quantity.

    The arithmetic happens inside one UPDATE statement, so concurrent deltas
    on the same row never lose updates. No precondition is checked here; a
    result below zero or above the column range is refused by the database.

    Args:
        db: Database session
        sweet_id: ID of the sweet
        delta: Signed adjustment

    Returns:
        The new stored quantity

    Raises:
        NotFound: if no sweet has this ID
        ValidationError: if the result would be negative or out of range
    """
    stmt = (
        update(models.Sweet)
        .where(models.Sweet.id == sweet_id)
        .values(quantity=models.Sweet.quantity + delta, updated_at=datetime.utcnow())
        .returning(models.Sweet.quantity)
        .execution_options(synchronize_session=False)
    )
    try:
        new_quantity = db.execute(stmt).scalar_one_or_none()
    except (IntegrityError, DataError):
        db.rollback()
        logger.warning(f"Rejected delta {delta} on sweet {sweet_id}: quantity out of range")
        raise ValidationError("Quantity out of range")
    if new_quantity is None:
        db.rollback()
        raise NotFound("Sweet not found")
    _commit(db)
    return new_quantity


def decrement_quantity(db: Session, sweet_id: str, amount: int) -> Optional[int]:
    """
    Atomically subtract `amount` from a sweet's quantity if enough is in stock.

    The stock check and the subtraction are one conditional UPDATE, so two
    callers can never both take the last units.

    Args:
        db: Database session
        sweet_id: ID of the sweet
        amount: Units to remove (positive)

    Returns:
        The new stored quantity, or None if the sweet does not exist or holds
        fewer than `amount` units
    """
    stmt = (
        update(models.Sweet)
        .where(models.Sweet.id == sweet_id, models.Sweet.quantity >= amount)
        .values(quantity=models.Sweet.quantity - amount, updated_at=datetime.utcnow())
        .returning(models.Sweet.quantity)
        .execution_options(synchronize_session=False)
    )
    new_quantity = db.execute(stmt).scalar_one_or_none()
    if new_quantity is None:
        db.rollback()
        return None
    _commit(db)
    return new_quantity


def _commit(db: Session) -> None:
    try:
        db.commit()
    except (IntegrityError, DataError) as e:
        db.rollback()
        logger.warning(f"Rejected write on commit: {e.orig}")
        raise ValidationError("Stored values violate constraints")
    except SQLAlchemyError:
        db.rollback()
        raise
