"""
Finance Tracker - HTTP API

FastAPI application exposing accounts, categories, transactions,
authentication and the health check under /api.

Responsibilities of this layer ONLY:
1. Parse and validate request bodies (pydantic request models)
2. Resolve the caller's user id from the bearer token
3. Translate service results into status codes and problem details

Every rule about balances and ownership lives below this layer.

Run with:
    uvicorn --factory app.main:create_app --reload
"""

from contextlib import asynccontextmanager
from typing import Optional
from uuid import UUID

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer

from finance_tracker.config import SETTINGS_GROUPS, Settings, get_settings, validate_all_settings
from finance_tracker.models.finance import (
    AccountCreateRequest,
    AccountDto,
    AccountUpdateRequest,
    CategoryCreateRequest,
    CategoryDeleteResult,
    CategoryDto,
    CategoryUpdateRequest,
    HealthCheckResult,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    TransactionCreateRequest,
    TransactionDto,
    TransactionUpdateRequest,
)
from finance_tracker.orchestrator import AppComponents, create_app_components
from finance_tracker.services.storage import BalanceOutOfRangeError, StorageError


logger = structlog.get_logger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

PROBLEM_JSON = "application/problem+json"


# ----------------------------------------------------------------------------
# Problem details
# ----------------------------------------------------------------------------

def problem(
    status_code: int,
    title: str,
    detail: Optional[str] = None,
    errors: Optional[dict[str, list[str]]] = None,
) -> JSONResponse:
    """RFC 7807 response body."""
    body = {
        "type": f"https://httpstatuses.io/{status_code}",
        "title": title,
        "status": status_code,
    }
    if detail is not None:
        body["detail"] = detail
    if errors is not None:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body, media_type=PROBLEM_JSON)


def _field_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return errors


# ----------------------------------------------------------------------------
# Dependencies
# ----------------------------------------------------------------------------

def get_components(request: Request) -> AppComponents:
    return request.app.state.components


async def get_current_user_id(
    token: Optional[str] = Depends(oauth2_scheme),
    components: AppComponents = Depends(get_components),
) -> UUID:
    user_id = components.auth.decode_token(token) if token else None
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


# ----------------------------------------------------------------------------
# App factory
# ----------------------------------------------------------------------------

def check_settings(settings: Settings) -> None:
    """
    Refuse to start with a settings group that does not validate.

    Raises:
        RuntimeError: Naming every invalid group
    """
    results = validate_all_settings(settings)
    failed = [name for name in SETTINGS_GROUPS if not results[name]]

    for name in failed:
        logger.error("settings_invalid", group=name, error=results[f"{name}_error"])

    if failed:
        raise RuntimeError(f"Invalid configuration: {', '.join(failed)}")


def create_app(
    components: Optional[AppComponents] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        components: Pre-built components (tests pass an in-memory database).
        settings: Settings used for CORS, seeding and component wiring.
    """
    settings = settings or get_settings()
    check_settings(settings)
    components = components or create_app_components(settings)
    app_settings = settings.app

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await components.startup(settings)
        logger.info(
            "api_started",
            environment=app_settings.app_environment,
            debug=app_settings.debug_mode,
        )
        yield
        await components.shutdown()

    app = FastAPI(
        title="Finance Tracker API",
        version="1.0.0",
        debug=app_settings.debug_mode,
        lifespan=lifespan,
    )
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return problem(
            status.HTTP_400_BAD_REQUEST,
            "One or more validation errors occurred.",
            errors=_field_errors(exc),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        response = problem(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(BalanceOutOfRangeError)
    async def balance_range_exception_handler(request: Request, exc: BalanceOutOfRangeError):
        logger.warning("balance_out_of_range", path=request.url.path, error=str(exc))
        return problem(
            status.HTTP_400_BAD_REQUEST,
            "Balance Out Of Range",
            "The resulting account balance exceeds the supported range.",
        )

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        logger.error("storage_error", path=request.url.path, error=str(exc))
        return problem(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred.",
        )

    _register_auth_routes(app)
    _register_account_routes(app)
    _register_category_routes(app)
    _register_transaction_routes(app)
    _register_health_routes(app)

    return app


# ----------------------------------------------------------------------------
# Auth routes
# ----------------------------------------------------------------------------

def _register_auth_routes(app: FastAPI) -> None:

    @app.post("/api/auth/login", response_model=LoginResponse)
    async def login(
        request: LoginRequest,
        components: AppComponents = Depends(get_components),
    ):
        response = await components.auth.login(request)
        if response is None:
            return problem(
                status.HTTP_401_UNAUTHORIZED,
                "Authentication Failed",
                "Invalid email or password.",
            )
        return response

    @app.post("/api/auth/register", status_code=status.HTTP_201_CREATED)
    async def register(
        request: RegisterRequest,
        components: AppComponents = Depends(get_components),
    ):
        user_id = await components.auth.register(request)
        if user_id is None:
            return problem(
                status.HTTP_400_BAD_REQUEST,
                "Registration Failed",
                "A user with this email already exists.",
            )
        return {"id": str(user_id)}


# ----------------------------------------------------------------------------
# Account routes
# ----------------------------------------------------------------------------

def _register_account_routes(app: FastAPI) -> None:

    @app.post("/api/accounts", status_code=status.HTTP_201_CREATED)
    async def create_account(
        request: AccountCreateRequest,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ) -> UUID:
        return await components.accounts.create_account(request, user_id)

    @app.put("/api/accounts")
    async def update_account(
        request: AccountUpdateRequest,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        if not await components.accounts.update_account(request, user_id):
            return problem(
                status.HTTP_400_BAD_REQUEST,
                "Account Not Found",
                f"Account with ID {request.id} does not exist or you do not have permission to update it.",
            )
        return None

    @app.get("/api/accounts", response_model=list[AccountDto])
    async def get_all_accounts(
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        return await components.accounts.get_all_accounts(user_id)

    @app.get("/api/accounts/{account_id}", response_model=AccountDto)
    async def get_account(
        account_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        account = await components.accounts.get_account(account_id, user_id)
        if account is None:
            return problem(
                status.HTTP_404_NOT_FOUND,
                "Account Not Found",
                f"Account with ID {account_id} does not exist or you do not have permission to view it.",
            )
        return account

    @app.delete("/api/accounts/{account_id}")
    async def delete_account(
        account_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        if not await components.accounts.delete_account(account_id, user_id):
            return problem(
                status.HTTP_400_BAD_REQUEST,
                "Account Not Found",
                f"Account with ID {account_id} does not exist or you do not have permission to delete it.",
            )
        return None


# ----------------------------------------------------------------------------
# Category routes
# ----------------------------------------------------------------------------

def _register_category_routes(app: FastAPI) -> None:

    @app.post("/api/categories", status_code=status.HTTP_201_CREATED)
    async def create_category(
        request: CategoryCreateRequest,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ) -> UUID:
        return await components.categories.create_category(request, user_id)

    @app.put("/api/categories")
    async def update_category(
        request: CategoryUpdateRequest,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        if not await components.categories.update_category(request, user_id):
            return problem(
                status.HTTP_400_BAD_REQUEST,
                "Category Not Found",
                f"Category with ID {request.id} does not exist or you do not have permission to update it.",
            )
        return None

    @app.get("/api/categories", response_model=list[CategoryDto])
    async def get_all_categories(
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        return await components.categories.get_all_categories(user_id)

    @app.delete("/api/categories/{category_id}")
    async def delete_category(
        category_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        result = await components.categories.delete_category(category_id, user_id)
        if result == CategoryDeleteResult.NOT_FOUND:
            return problem(
                status.HTTP_400_BAD_REQUEST,
                "Category Not Found",
                f"Category with ID {category_id} does not exist or you do not have permission to delete it.",
            )
        if result == CategoryDeleteResult.IN_USE:
            return problem(
                status.HTTP_409_CONFLICT,
                "Category In Use",
                f"Category with ID {category_id} is used by existing transactions and cannot be deleted.",
            )
        return None


# ----------------------------------------------------------------------------
# Transaction routes
# ----------------------------------------------------------------------------

def _register_transaction_routes(app: FastAPI) -> None:

    @app.post("/api/transactions", status_code=status.HTTP_201_CREATED)
    async def create_transaction(
        request: TransactionCreateRequest,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        transaction_id = await components.transactions.create(request, user_id)
        if transaction_id is None:
            return problem(
                status.HTTP_400_BAD_REQUEST,
                "Transaction Creation Failed",
                "The specified account or category does not exist or you do not have permission to use it.",
            )
        return str(transaction_id)

    @app.put("/api/transactions")
    async def update_transaction(
        request: TransactionUpdateRequest,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        if not await components.transactions.update(request, user_id):
            return problem(
                status.HTTP_400_BAD_REQUEST,
                "Transaction Not Found",
                f"Transaction with ID {request.id} does not exist or you do not have permission "
                f"to update it, or the specified account/category is unauthorized.",
            )
        return None

    @app.get("/api/transactions", response_model=list[TransactionDto])
    async def get_all_transactions(
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        return await components.transactions.get_all(user_id)

    @app.delete("/api/transactions/{transaction_id}")
    async def delete_transaction(
        transaction_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        components: AppComponents = Depends(get_components),
    ):
        if not await components.transactions.delete(transaction_id, user_id):
            return problem(
                status.HTTP_400_BAD_REQUEST,
                "Transaction Not Found",
                f"Transaction with ID {transaction_id} does not exist or you do not have permission to delete it.",
            )
        return None


# ----------------------------------------------------------------------------
# Health
# ----------------------------------------------------------------------------

def _register_health_routes(app: FastAPI) -> None:

    @app.get("/api/health", response_model=HealthCheckResult)
    async def health(components: AppComponents = Depends(get_components)):
        return await components.health.check_health()
