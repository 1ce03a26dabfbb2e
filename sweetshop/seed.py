"""
Seed the database with sample sweets and, optionally, an admin account.

Usage:
    python -m sweetshop.seed

Existing sweets are removed first. When ADMIN_EMAIL and ADMIN_PASSWORD are set,
an ADMIN user with that email is created, or promoted if it already exists.
"""
import logging
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session

from . import auth, crud, models, schemas
from .config import ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_USERNAME, LOG_LEVEL
from .database import Database

logger = logging.getLogger(__name__)

SAMPLE_SWEETS = [
    {"name": "Chocolate Bar", "category": "Chocolate", "price": Decimal("2.99"), "quantity": 50},
    {"name": "Gummy Bears", "category": "Gummies", "price": Decimal("1.99"), "quantity": 100},
    {"name": "Lollipop", "category": "Hard Candy", "price": Decimal("0.99"), "quantity": 200},
    {"name": "Caramel Candy", "category": "Caramel", "price": Decimal("1.49"), "quantity": 75},
    {"name": "Jelly Beans", "category": "Gummies", "price": Decimal("3.49"), "quantity": 150},
    {"name": "Marshmallow", "category": "Soft Candy", "price": Decimal("2.49"), "quantity": 80},
    {"name": "Toffee", "category": "Hard Candy", "price": Decimal("1.99"), "quantity": 60},
    {"name": "Licorice", "category": "Hard Candy", "price": Decimal("1.79"), "quantity": 90},
]


def seed_sweets(db: Session) -> List[models.Sweet]:
    """
    Replace all sweets with the sample set.

    Returns:
        The created sweets
    """
    removed = db.query(models.Sweet).delete()
    db.commit()
    logger.info(f"Cleared {removed} existing sweets")

    created = [crud.create_sweet(db, schemas.SweetCreate(**data)) for data in SAMPLE_SWEETS]
    logger.info(f"Created {len(created)} sweets")
    return created


def ensure_admin(db: Session, email: str, password: str, username: str = "admin") -> models.User:
    """Create an ADMIN account for `email`, or promote the existing account."""
    user = crud.get_user_by_email(db, email)
    if user is None:
        user = crud.create_user(
            db,
            username=username,
            email=email,
            password_hash=auth.get_password_hash(password),
            role=models.ROLE_ADMIN,
        )
        logger.info(f"Created admin {user.email}")
    elif user.role != models.ROLE_ADMIN:
        user.role = models.ROLE_ADMIN
        db.commit()
        logger.info(f"Promoted {user.email} to admin")
    return user


def main(database_url: Optional[str] = None) -> None:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    database = Database(database_url)
    database.create_all()
    db = database.session()
    try:
        for sweet in seed_sweets(db):
            logger.info(f"  - {sweet.name} ({sweet.category}): ${sweet.price} - Qty: {sweet.quantity}")
        if ADMIN_EMAIL and ADMIN_PASSWORD:
            ensure_admin(db, ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_USERNAME)
    finally:
        db.close()
        database.close()


if __name__ == "__main__":
    main()
