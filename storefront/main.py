"""
FastAPI application exposing the storefront page aggregates as JSON.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from storefront.backends import build_backends, close_http_client, get_http_client
from storefront.config import Config
from storefront.context import RequestContext
from storefront.core import StorefrontCore
from storefront.currency import CurrencyConverter
from storefront.exceptions import (
    AuthenticationRequiredError,
    MoneyError,
    UpstreamUnavailableError,
    ValidationError,
)
from storefront.middleware import RequestContextMiddleware, clear_auth_cookies, get_request_context
from storefront.models import (
    AddToCartForm,
    CartPage,
    HomePage,
    LoginForm,
    LoginResult,
    OrderHistoryPage,
    OrderPage,
    PlaceOrderForm,
    ProductPage,
    ProfilePage,
    RegisterForm,
    RegisterResult,
    SearchPage,
    SetCurrencyForm,
    UpdateCartItemForm,
)

logger = logging.getLogger(__name__)

_core = None

def get_core() -> StorefrontCore:
    """Get or create the consolidation core (singleton)"""
    global _core
    if _core is None:
        converter = CurrencyConverter(Config.CURRENCY_RATES)
        _core = StorefrontCore(build_backends(get_http_client()), converter)
    return _core


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"starting storefront on {Config.LISTEN_ADDR}:{Config.APP_PORT}")
    if Config.API_GATEWAY_ADDR:
        logger.info(f"Using API Gateway at {Config.API_GATEWAY_ADDR} for all backend calls")
    yield
    await close_http_client()


# Initialize FastAPI app
app = FastAPI(
    title="Storefront API",
    description="Storefront consolidation service over catalog, cart, checkout, shipping and auth backends",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Session and request context middleware
app.add_middleware(RequestContextMiddleware)


def _set_cookie(response: Response, name: str, value: str) -> None:
    response.set_cookie(name, value, max_age=Config.COOKIE_MAX_AGE_SECONDS, path="/")


@app.get("/_healthz", response_class=PlainTextResponse)
async def health_check():
    return "ok"


@app.get("/robots.txt", response_class=PlainTextResponse)
async def robots():
    return "User-agent: *\nDisallow: /"


@app.get("/", response_model=HomePage)
async def home(
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    return await core.home_page(ctx)


@app.get("/product/{product_id}", response_model=ProductPage)
async def product(
    product_id: str,
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    return await core.product_page(ctx, product_id)


@app.get("/search", response_model=SearchPage)
async def search(
    q: str = Query("", description="Search query"),
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    return await core.search_page(ctx, q)


@app.get("/cart", response_model=CartPage)
async def view_cart(
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    return await core.cart_page(ctx)


@app.post("/cart", response_model=dict)
async def add_to_cart(
    form: AddToCartForm,
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    await core.add_to_cart(ctx, form)
    return {"success": True, "product_id": form.product_id, "quantity": form.quantity}


@app.post("/cart/update", response_model=dict)
async def update_cart_item(
    form: UpdateCartItemForm,
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    await core.update_cart_item(ctx, form)
    return {"success": True, "product_id": form.product_id, "quantity": form.quantity}


@app.post("/cart/empty", response_model=dict)
async def empty_cart(
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    await core.empty_cart(ctx)
    return {"success": True}


@app.post("/cart/checkout", response_model=OrderPage)
async def place_order(
    form: PlaceOrderForm,
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    return await core.place_order(ctx, form)


@app.get("/orders", response_model=OrderHistoryPage)
async def order_history(
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    return await core.order_history_page(ctx)


@app.post("/setCurrency", response_model=dict)
async def set_currency(
    form: SetCurrencyForm,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    currency = core.set_currency(ctx, form)
    _set_cookie(response, Config.COOKIE_CURRENCY, currency)
    return {"success": True, "currency": currency}


@app.post("/login", response_model=LoginResult, response_model_exclude={"token"})
async def login(
    form: LoginForm,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    result = await core.login(ctx, form)
    if result.success:
        _set_cookie(response, Config.COOKIE_TOKEN, result.token)
        _set_cookie(response, Config.COOKIE_USERNAME, result.username)
    else:
        response.status_code = 401
    return result


@app.post("/register", response_model=RegisterResult)
async def register(
    form: RegisterForm,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    result = await core.register(ctx, form)
    response.status_code = 201 if result.success else 400
    return result


@app.get("/profile", response_model=ProfilePage)
async def profile(
    ctx: RequestContext = Depends(get_request_context),
    core: StorefrontCore = Depends(get_core),
):
    return await core.profile_page(ctx)


@app.get("/auth/logout", response_model=dict)
async def auth_logout(response: Response):
    clear_auth_cookies(response)
    return {"success": True}


@app.get("/logout", response_model=dict)
async def logout(request: Request, response: Response):
    for name in request.cookies:
        response.delete_cookie(name, path="/")
    return {"success": True}


# Error handlers
@app.exception_handler(ValidationError)
async def validation_error_handler(request, exc):
    return JSONResponse(
        status_code=422,
        content={"error": "Validation error", "message": str(exc)}
    )


@app.exception_handler(AuthenticationRequiredError)
async def authentication_required_handler(request, exc):
    if request.cookies.get(Config.COOKIE_TOKEN):
        # the middleware drops the auth cookies on the way out
        get_request_context(request).clear_auth_cookies = True
    return JSONResponse(
        status_code=401,
        content={"error": "Authentication required", "message": str(exc)}
    )


@app.exception_handler(UpstreamUnavailableError)
async def upstream_error_handler(request, exc):
    logger.error(f"request error: {exc}")
    return JSONResponse(
        status_code=503,
        content={"error": "Service unavailable", "message": str(exc), "service": exc.service}
    )


@app.exception_handler(MoneyError)
async def money_error_handler(request, exc):
    logger.error(f"Money arithmetic failed: {type(exc).__name__}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc), "type": type(exc).__name__}
    )


# Generic exception handler for unhandled errors
@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc),
            "type": type(exc).__name__
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=Config.LISTEN_ADDR, port=Config.APP_PORT)
