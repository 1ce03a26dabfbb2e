"""
Stock mutation operations: purchase and restock.

Both operations read the sweet once to report precise failure reasons, then
hand the actual change to an atomic primitive in `crud`. The purchase
precondition is repeated inside the conditional UPDATE itself, so a snapshot
that went stale between the read and the write can never drive stock below
zero; the losing request fails with `InsufficientQuantity`.

This module keeps no state and takes no locks.
"""
import logging
from typing import Optional, Union
from sqlalchemy.orm import Session
from . import crud, models, schemas, validators
from .exceptions import Forbidden, InsufficientQuantity, InvalidArgument, NotFound, OutOfStock

logger = logging.getLogger(__name__)


def _check_quantity(quantity) -> None:
    ok, message = validators.validate_mutation_quantity(quantity)
    if not ok:
        raise InvalidArgument(message)


def purchase_sweet(db: Session, sweet_id: str, quantity: int = 1) -> Union[models.Sweet, schemas.Sweet]:
    """
    Take `quantity` units of a sweet out of stock.

    Args:
        db: Database session
        sweet_id: ID of the sweet to purchase
        quantity: Units to purchase (defaults to 1)

    Returns:
        The sweet after the purchase

    Raises:
        InvalidArgument: quantity is not a positive integer or is too large
        NotFound: no sweet has this ID
        OutOfStock: the sweet has no units left
        InsufficientQuantity: fewer units are available than requested,
            including when a concurrent purchase took them first
    """
    _check_quantity(quantity)

    sweet = crud.get_sweet(db, sweet_id)
    if sweet.quantity == 0:
        logger.info(f"Purchase of {quantity} rejected: sweet {sweet_id} is out of stock")
        raise OutOfStock("Sweet is out of stock")
    if sweet.quantity < quantity:
        logger.info(
            f"Purchase of {quantity} rejected: sweet {sweet_id} has only {sweet.quantity} available"
        )
        raise InsufficientQuantity("Insufficient quantity available")

    before = schemas.Sweet.model_validate(sweet)
    new_quantity = crud.decrement_quantity(db, sweet_id, quantity)
    if new_quantity is None:
        # Stock changed after the read above; raises NotFound if it was deleted
        crud.get_sweet(db, sweet_id)
        logger.warning(f"Purchase of {quantity} lost a race on sweet {sweet_id}")
        raise InsufficientQuantity("Insufficient quantity available")

    logger.info(f"Purchased {quantity} of sweet {sweet_id}; {new_quantity} left")
    return _after_change(db, before, new_quantity)


def restock_sweet(db: Session, sweet_id: str, quantity: Optional[int],
                  actor: Optional[models.User] = None) -> Union[models.Sweet, schemas.Sweet]:
    """
    Add `quantity` units of a sweet to stock, up to the column range.

    Args:
        db: Database session
        sweet_id: ID of the sweet to restock
        quantity: Units to add; required, no default
        actor: User performing the restock; when given, must be an admin

    Returns:
        The sweet after the restock

    Raises:
        Forbidden: actor is not an admin
        InvalidArgument: quantity is missing, not a positive integer or too large
        NotFound: no sweet has this ID
        ValidationError: the new stock level would exceed the column range
    """
    if actor is not None and actor.role != models.ROLE_ADMIN:
        raise Forbidden("Insufficient permissions. Admin access required.")
    _check_quantity(quantity)

    before = schemas.Sweet.model_validate(crud.get_sweet(db, sweet_id))
    new_quantity = crud.apply_quantity_delta(db, sweet_id, quantity)

    logger.info(f"Restocked sweet {sweet_id} with {quantity}; {new_quantity} available")
    return _after_change(db, before, new_quantity)


def _after_change(db: Session, before: schemas.Sweet, new_quantity: int):
    # The change is committed; a concurrent delete must not turn it into an error
    try:
        return crud.get_sweet(db, before.id)
    except NotFound:
        logger.info(f"Sweet {before.id} was deleted right after its stock changed")
        return before.model_copy(update={"quantity": new_quantity})
