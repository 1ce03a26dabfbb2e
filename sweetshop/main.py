"""
    Sweet Shop Service API

    This module implements a FastAPI-based service for a sweet shop inventory.
    It provides user registration and login, CRUD endpoints for sweets, and
    the two stock operations (purchase and restock), with SQL database
    persistence through SQLAlchemy.

    Access policy:
    - Any authenticated user may list, view, create, update and purchase sweets
    - Only admins may delete or restock sweets

    The service exposes:
    - Auth endpoints: /api/auth/register, /api/auth/login, /api/auth/me
    - Sweet endpoints under /api/sweets
    - Health endpoint: Provides service health status for monitoring and orchestration
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import APIRouter, FastAPI, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import crud, models, schemas, auth, stock
from .config import LOG_LEVEL
from .database import Database, get_db
from .exceptions import Conflict, SweetShopError, Unauthorized

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])
sweets_router = APIRouter(prefix="/api/sweets", tags=["sweets"])


@auth_router.post("/register", response_model=schemas.RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserRegister, db: Session = Depends(get_db)):
    """
    Register a new user account with the USER role.

    Args:
        user: User registration data (username, email, password)
        db: Database session (injected)

    Returns:
        The created user (without password)

    Raises:
        Conflict: 409 if email already exists
    """
    if crud.get_user_by_email(db, email=user.email):
        raise Conflict("email already exists")

    password_hash = auth.get_password_hash(user.password)
    db_user = crud.create_user(db, username=user.username, email=user.email, password_hash=password_hash)
    logger.info(f"Registered user {db_user.id} ({db_user.email})")
    return {"message": "User registered successfully", "user": db_user}


@auth_router.post("/login", response_model=schemas.LoginResponse)
def login(credentials: schemas.UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate and login a user.

    Returns:
        JWT access token and the user

    Raises:
        Unauthorized: 401 if credentials are invalid
    """
    user = auth.authenticate_user(db, credentials.email, credentials.password)
    if not user:
        logger.info(f"Failed login for {credentials.email}")
        raise Unauthorized("Invalid email or password")

    token = auth.create_user_token(user)
    return {"message": "Login successful", "token": token, "user": user}


@auth_router.get("/me", response_model=schemas.User)
def get_current_user_info(current_user: models.User = Depends(auth.get_current_user)):
    return current_user


@sweets_router.post("", response_model=schemas.SweetResponse, status_code=status.HTTP_201_CREATED)
def create_sweet(
    sweet: schemas.SweetCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Create a new sweet (any authenticated user).

    Args:
        sweet: Sweet data to create
        db: Database session (injected)
        current_user: Current authenticated user (injected)

    Returns:
        Created sweet
    """
    db_sweet = crud.create_sweet(db, sweet)
    return {"message": "Sweet created successfully", "sweet": db_sweet}


@sweets_router.get("", response_model=schemas.SweetListResponse)
@sweets_router.get("/search", response_model=schemas.SweetListResponse)
def list_sweets(
    name: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    List sweets, newest first, with optional search filters (authenticated users only).

    Args:
        name: Case-insensitive substring of the name
        category: Case-insensitive substring of the category
        min_price: Inclusive lower price bound
        max_price: Inclusive upper price bound

    Returns:
        Matching sweets and their count
    """
    filters = schemas.SweetFilters(name=name, category=category, min_price=min_price, max_price=max_price)
    sweets = list(crud.iter_sweets(db, filters))
    return {"message": "Sweets retrieved successfully", "count": len(sweets), "sweets": sweets}


@sweets_router.get("/{sweet_id}", response_model=schemas.SweetResponse)
def get_sweet(
    sweet_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Get a single sweet by ID (authenticated users only).

    Raises:
        NotFound: 404 if sweet not found
    """
    return {"message": "Sweet retrieved successfully", "sweet": crud.get_sweet(db, sweet_id)}


@sweets_router.put("/{sweet_id}", response_model=schemas.SweetResponse)
def update_sweet(
    sweet_id: str,
    sweet: schemas.SweetUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Update an existing sweet (any authenticated user). Only provided fields change.

    Raises:
        NotFound: 404 if sweet not found
        ValidationError: 400 if the resulting values are invalid
    """
    db_sweet = crud.update_sweet(db, sweet_id, sweet)
    return {"message": "Sweet updated successfully", "sweet": db_sweet}


@sweets_router.delete("/{sweet_id}", response_model=schemas.SweetResponse)
def delete_sweet(
    sweet_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_admin)
):
    """
    Delete a sweet (admin only).

    Returns:
        The deleted sweet as it was before removal

    Raises:
        NotFound: 404 if sweet not found
    """
    deleted = crud.delete_sweet(db, sweet_id)
    logger.info(f"Sweet {sweet_id} deleted by {current_user.id}")
    return {"message": "Sweet deleted successfully", "sweet": deleted}


@sweets_router.post("/{sweet_id}/purchase", response_model=schemas.SweetResponse)
def purchase_sweet(
    sweet_id: str,
    payload: Optional[schemas.PurchaseRequest] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    """
    Purchase a sweet, decreasing its quantity (any authenticated user).

    The body is optional; quantity defaults to 1.

    Raises:
        InvalidArgument: 400 if quantity is not positive
        NotFound: 404 if sweet not found
        OutOfStock / InsufficientQuantity: 400 if stock cannot cover the purchase
    """
    quantity = payload.quantity if payload is not None else 1
    db_sweet = stock.purchase_sweet(db, sweet_id, quantity)
    return {"message": "Purchase successful", "sweet": db_sweet}


@sweets_router.post("/{sweet_id}/restock", response_model=schemas.SweetResponse)
def restock_sweet(
    sweet_id: str,
    payload: Optional[schemas.RestockRequest] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.require_admin)
):
    """
    Restock a sweet, increasing its quantity (admin only).

    Raises:
        InvalidArgument: 400 if quantity is missing or not positive
        NotFound: 404 if sweet not found
    """
    quantity = payload.quantity if payload is not None else None
    db_sweet = stock.restock_sweet(db, sweet_id, quantity, actor=current_user)
    return {"message": "Restock successful", "sweet": db_sweet}


async def sweetshop_error_handler(request: Request, exc: SweetShopError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "reason": exc.reason},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "reason": "ValidationError",
            "details": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
        },
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(database_url: Optional[str] = None) -> FastAPI:
    """
    Build the Sweet Shop application.

    The database handle is created here, stored on `app.state.database` and
    closed when the application shuts down.

    Args:
        database_url: Optional override of the configured DATABASE_URL

    Returns:
        Configured FastAPI application
    """
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    database = Database(database_url)
    # Create database tables
    database.create_all()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Sweet Shop service starting")
        yield
        database.close()

    app = FastAPI(title="sweetshop-service", lifespan=lifespan)
    app.state.database = database

    app.add_exception_handler(SweetShopError, sweetshop_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/health", response_model=dict)
    def health():
        """
        Health check endpoint for the sweet shop service.

        Example:
            GET /health
            Response: {"status": "ok", "message": "Sweet Shop API is running"}
        """
        return {"status": "ok", "message": "Sweet Shop API is running"}

    @app.get("/", response_model=dict)
    def api_info():
        """API information and endpoint map."""
        return {
            "message": "Sweet Shop Management API",
            "version": "1.0.0",
            "endpoints": {
                "health": "GET /health",
                "auth": {
                    "register": "POST /api/auth/register",
                    "login": "POST /api/auth/login",
                    "me": "GET /api/auth/me (requires JWT)",
                },
                "sweets": {
                    "getAll": "GET /api/sweets",
                    "search": "GET /api/sweets/search",
                    "getById": "GET /api/sweets/{id}",
                    "create": "POST /api/sweets (requires JWT)",
                    "update": "PUT /api/sweets/{id} (requires JWT)",
                    "delete": "DELETE /api/sweets/{id} (requires JWT, ADMIN only)",
                    "purchase": "POST /api/sweets/{id}/purchase (requires JWT)",
                    "restock": "POST /api/sweets/{id}/restock (requires JWT, ADMIN only)",
                },
            },
        }

    app.include_router(auth_router)
    app.include_router(sweets_router)
    return app
