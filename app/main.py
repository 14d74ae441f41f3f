"""
FastAPI Application Entry Point

Warung Ordering - remote-preferring backend with local mirror fallback.

Endpoints:
    - GET /api/menu: Browse the menu
    - POST/PATCH/DELETE /api/menu: Manage menu items (admin)
    - POST /api/menu/images: Upload a menu image (admin)
    - GET/POST /api/cart: Build a cart
    - POST /api/checkout: Turn the cart into an order
    - GET /api/orders, DELETE /api/orders/{id}: Order queue (admin)
    - POST /admin/login, /admin/logout: Admin session (per client session cookie)
    - WS /ws/{table}: Change notifications
    - GET /health: Remote connection probe

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import sys
import logging
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import (
    Depends,
    FastAPI,
    File,
    HTTPException,
    Request,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from pydantic import ValidationError

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from app.core.config import get_settings, setup_logging
from app.schemas import (
    AdminLoginRequest,
    AdminSessionResponse,
    CartResponse,
    CheckoutRequest,
    ErrorResponse,
    HealthResponse,
    ImageUploadResponse,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
    Order,
    OrderCreate,
    OrderItem,
    WriteResultResponse,
)
from app.services.connection import ConnectionState
from app.services.admin_session import AdminSession
from app.services.cart import CartStore
from app.services.context import RepositoryContext, get_client_id, get_context
from app.services.data_access import WriteResult
from app.services.remote.base import ChangePayload, Table

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    context = RepositoryContext.from_settings(settings)
    await context.open()
    app.state.context = context
    logger.info(f"✅ Data layer ready ({context.data.mode} mode)")

    state = await context.data.check_connection()
    logger.info(f"✅ Remote connection: {state.value}")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await context.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant ordering backend. Reads and writes prefer the hosted "
        "database and fall back to a local mirror when it is unavailable."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Signed session cookie identifying each client (cart, admin login)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie=settings.session_cookie,
    same_site="lax",
    https_only=settings.is_production,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_cart(
    client_id: str = Depends(get_client_id),
    context: RepositoryContext = Depends(get_context),
) -> CartStore:
    return context.cart_for(client_id)


def get_admin(
    client_id: str = Depends(get_client_id),
    context: RepositoryContext = Depends(get_context),
) -> AdminSession:
    return context.admin_for(client_id)


def require_admin(
    admin: AdminSession = Depends(get_admin),
    context: RepositoryContext = Depends(get_context),
) -> RepositoryContext:
    """Reject admin routes unless this client has an active admin session."""
    if not admin.is_active():
        raise HTTPException(status_code=401, detail="Admin login required")
    return context


def write_response(result: WriteResult) -> WriteResultResponse:
    """Map a WriteResult to the API shape; a failed local commit is a 500."""
    if not result.success:
        raise HTTPException(
            status_code=500,
            detail=result.error_message or "Local storage unavailable",
        )

    data = result.data.model_dump(mode="json") if result.data is not None else None
    return WriteResultResponse(
        success=True,
        outcome=result.outcome.value,
        synced=result.synced,
        data=data,
        error=result.error_message,
    )


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "menu": "/api/menu",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Remote Connection Check",
)
async def health_check(
    context: RepositoryContext = Depends(get_context),
) -> HealthResponse:
    """Probe the remote service. Advisory only: routing never depends on it."""
    state = await context.data.check_connection()

    return HealthResponse(
        status="operational" if state == ConnectionState.REACHABLE else "degraded",
        remote=state.value,
        remote_provider=context.remote.provider_name if context.remote else "none",
        mode=context.data.mode,
        timestamp=datetime.now(),
    )


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get(
    "/api/menu",
    response_model=list[MenuItem],
    tags=["Menu"],
    summary="List Menu Items",
)
async def list_menu(
    context: RepositoryContext = Depends(get_context),
) -> list[MenuItem]:
    return await context.data.list_menu_items()


@app.post(
    "/api/menu",
    response_model=WriteResultResponse,
    tags=["Menu"],
    summary="Create Menu Item (Admin)",
)
async def create_menu_item(
    item: MenuItemCreate,
    context: RepositoryContext = Depends(require_admin),
) -> WriteResultResponse:
    logger.info(f"Creating menu item: {item.name}")
    return write_response(await context.data.create_menu_item(item))


@app.patch(
    "/api/menu/{item_id}",
    response_model=WriteResultResponse,
    tags=["Menu"],
    summary="Update Menu Item (Admin)",
)
async def update_menu_item(
    item_id: int,
    patch: MenuItemUpdate,
    context: RepositoryContext = Depends(require_admin),
) -> WriteResultResponse:
    return write_response(await context.data.update_menu_item(item_id, patch))


@app.delete(
    "/api/menu/{item_id}",
    response_model=WriteResultResponse,
    tags=["Menu"],
    summary="Delete Menu Item (Admin)",
)
async def delete_menu_item(
    item_id: int,
    context: RepositoryContext = Depends(require_admin),
) -> WriteResultResponse:
    return write_response(await context.data.delete_menu_item(item_id))


@app.post(
    "/api/menu/images",
    response_model=ImageUploadResponse,
    tags=["Menu"],
    summary="Upload Menu Image (Admin)",
)
async def upload_menu_image(
    file: UploadFile = File(...),
    context: RepositoryContext = Depends(require_admin),
) -> ImageUploadResponse:
    content = await file.read()
    image_url = await context.data.upload_image(file.filename, content, file.content_type)
    return ImageUploadResponse(image_url=image_url, embedded=image_url.startswith("data:"))


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=WriteResultResponse,
    responses={500: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Create Order",
)
async def create_order(
    order: OrderCreate,
    context: RepositoryContext = Depends(get_context),
) -> WriteResultResponse:
    """Create an order from explicit line items. Validated before storage."""
    logger.info(f"Creating {order.type.value} order for: {order.customer_name}")
    return write_response(await context.data.create_order(order))


@app.get(
    "/api/orders",
    response_model=list[Order],
    tags=["Orders"],
    summary="List Orders (Admin)",
)
async def list_orders(
    context: RepositoryContext = Depends(require_admin),
) -> list[Order]:
    return await context.data.list_orders()


@app.get(
    "/api/orders/pending",
    response_model=list[Order],
    tags=["Orders"],
    summary="List Pending Orders (Admin)",
)
async def list_pending_orders(
    context: RepositoryContext = Depends(require_admin),
) -> list[Order]:
    return await context.data.list_pending_orders()


@app.delete(
    "/api/orders/{order_id}",
    response_model=WriteResultResponse,
    tags=["Orders"],
    summary="Complete Order (Admin)",
)
async def complete_order(
    order_id: int,
    context: RepositoryContext = Depends(require_admin),
) -> WriteResultResponse:
    """Completing an order deletes it from both stores."""
    logger.info(f"Completing order #{order_id}")
    return write_response(await context.data.delete_order(order_id))


# =============================================================================
# CART & CHECKOUT ENDPOINTS
# =============================================================================

async def cart_response(cart: CartStore, context: RepositoryContext) -> CartResponse:
    menu = await context.data.list_menu_items()
    lines = cart.lines(menu)
    return CartResponse(
        items=cart.items(),
        lines=lines,
        count=cart.count(lines),
        total=cart.total(lines),
    )


@app.get("/api/cart", response_model=CartResponse, tags=["Cart"])
async def show_cart(
    cart: CartStore = Depends(get_cart),
    context: RepositoryContext = Depends(get_context),
) -> CartResponse:
    return await cart_response(cart, context)


@app.post("/api/cart/{item_id}", response_model=CartResponse, tags=["Cart"])
async def add_to_cart(
    item_id: int,
    cart: CartStore = Depends(get_cart),
    context: RepositoryContext = Depends(get_context),
) -> CartResponse:
    cart.add(item_id)
    return await cart_response(cart, context)


@app.delete("/api/cart/{item_id}", response_model=CartResponse, tags=["Cart"])
async def remove_from_cart(
    item_id: int,
    cart: CartStore = Depends(get_cart),
    context: RepositoryContext = Depends(get_context),
) -> CartResponse:
    cart.remove(item_id)
    return await cart_response(cart, context)


@app.delete("/api/cart", response_model=CartResponse, tags=["Cart"])
async def clear_cart(
    cart: CartStore = Depends(get_cart),
    context: RepositoryContext = Depends(get_context),
) -> CartResponse:
    cart.clear()
    return await cart_response(cart, context)


@app.post(
    "/api/checkout",
    response_model=WriteResultResponse,
    responses={400: {"model": ErrorResponse}},
    tags=["Cart"],
    summary="Checkout Cart",
)
async def checkout(
    details: CheckoutRequest,
    cart: CartStore = Depends(get_cart),
    context: RepositoryContext = Depends(get_context),
) -> WriteResultResponse:
    """
    Snapshot the cart (name, quantity, current price) into a new order.

    The cart is cleared only once the order has been stored.
    """
    menu = await context.data.list_menu_items()
    lines = cart.lines(menu)

    if not lines:
        raise HTTPException(status_code=400, detail="Cart is empty")

    try:
        order = OrderCreate(
            **details.model_dump(),
            items=[
                OrderItem(name=line.name, quantity=line.quantity, price=line.price)
                for line in lines
            ],
        )
    except ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise HTTPException(status_code=400, detail=messages)

    response = write_response(await context.data.create_order(order))
    cart.clear()
    logger.info(f"Checkout complete for {order.customer_name} (total {order.total})")
    return response


# =============================================================================
# ADMIN SESSION ENDPOINTS
# =============================================================================

def session_response(admin: AdminSession) -> AdminSessionResponse:
    if not admin.is_active():
        return AdminSessionResponse(logged_in=False)
    login_time = admin.login_time()
    return AdminSessionResponse(
        logged_in=True,
        login_time=login_time,
        expires_at=login_time + admin.lifetime if login_time else None,
    )


@app.post("/admin/login", response_model=AdminSessionResponse, tags=["Admin"])
async def admin_login(
    credentials: AdminLoginRequest,
    admin: AdminSession = Depends(get_admin),
) -> AdminSessionResponse:
    if not admin.login(credentials.password):
        raise HTTPException(status_code=401, detail="Invalid password")
    return session_response(admin)


@app.post("/admin/logout", response_model=AdminSessionResponse, tags=["Admin"])
async def admin_logout(admin: AdminSession = Depends(get_admin)) -> AdminSessionResponse:
    admin.logout()
    return AdminSessionResponse(logged_in=False)


@app.get("/admin/session", response_model=AdminSessionResponse, tags=["Admin"])
async def admin_session(admin: AdminSession = Depends(get_admin)) -> AdminSessionResponse:
    return session_response(admin)


# =============================================================================
# CHANGE FEED
# =============================================================================

@app.websocket("/ws/{table}")
async def change_feed(
    websocket: WebSocket,
    table: Table,
    context: RepositoryContext = Depends(get_context),
) -> None:
    """
    Forward remote change events as {"table", "event"} notices.

    Clients re-fetch the list on every notice; payloads are not forwarded.
    """
    await websocket.accept()

    async def notify(payload: ChangePayload) -> None:
        await websocket.send_json({
            "table": table.value,
            "event": payload.get("type") or payload.get("eventType"),
        })

    subscription = await context.data.subscribe(table, notify)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Change feed client for {table.value} disconnected")
    finally:
        await subscription.unsubscribe()


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port)
