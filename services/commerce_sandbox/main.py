"""Commerce sandbox API built with FastAPI.

Emulates the part of the WooCommerce REST API v3 the storefront
orchestrator uses: order creation, order updates (shipping, billing and
the paid flag) and the shipping methods of a zone. Every call under
``/wp-json/wc/v3`` must carry ``consumer_key`` and ``consumer_secret``
query parameters matching ``SANDBOX_CONSUMER_KEY`` and
``SANDBOX_CONSUMER_SECRET``. Persistence lives in ``repo.CommerceRepo``.
"""

import hmac
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pythonjsonlogger import jsonlogger

from repo import CommerceRepo, UnknownProductError, init_db

CONSUMER_KEY = os.getenv("SANDBOX_CONSUMER_KEY", "ck_sandbox")
CONSUMER_SECRET = os.getenv("SANDBOX_CONSUMER_SECRET", "cs_sandbox")

logger = logging.getLogger("commerce_sandbox")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Commerce Sandbox", lifespan=lifespan)


def woo_error(status: int, code: str, message: str) -> HTTPException:
    """Build an error in WooCommerce's ``{code, message, data}`` shape."""
    return HTTPException(status_code=status, detail={"code": code, "message": message, "data": {"status": status}})


def require_credentials(
    consumer_key: Annotated[Optional[str], Query()] = None,
    consumer_secret: Annotated[Optional[str], Query()] = None,
):
    """Reject calls whose API credentials do not match the configured pair."""
    if not (
        consumer_key
        and consumer_secret
        and hmac.compare_digest(consumer_key, CONSUMER_KEY)
        and hmac.compare_digest(consumer_secret, CONSUMER_SECRET)
    ):
        raise woo_error(401, "woocommerce_rest_cannot_view", "Sorry, you cannot list resources.")


class LineItemIn(BaseModel):
    """A requested order line.

    Attributes:
        product_id: Catalog product id.
        quantity: Positive quantity.
    """

    product_id: int = Field(gt=0)
    quantity: int = Field(gt=0)


class AddressIn(BaseModel):
    first_name: str = ""
    last_name: str = ""
    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None


class OrderCreate(BaseModel):
    """Request body for ``POST orders``."""

    set_paid: bool = False
    line_items: List[LineItemIn] = Field(min_length=1)
    customer_note: str = ""
    payment_method: str = ""
    payment_method_title: str = ""


class OrderUpdate(BaseModel):
    """Request body for ``PUT orders/{id}``; every field is optional."""

    set_paid: Optional[bool] = None
    shipping: Optional[AddressIn] = None
    billing: Optional[AddressIn] = None


router = APIRouter(prefix="/wp-json/wc/v3", dependencies=[Depends(require_credentials)])


@router.post("/orders", status_code=201)
def create_order(req: OrderCreate):
    """Create an order priced from the catalog.

    Raises:
        HTTPException: 400 when a line references an unknown product.
    """
    try:
        order = CommerceRepo().create_order(
            [(li.product_id, li.quantity) for li in req.line_items],
            customer_note=req.customer_note,
            payment_method=req.payment_method,
            payment_method_title=req.payment_method_title,
            set_paid=req.set_paid,
        )
    except UnknownProductError as e:
        raise woo_error(400, "woocommerce_rest_invalid_product_id", f"Invalid product ID {e.product_id}.")
    logger.info("order created", extra={"order_id": order["id"], "payment_method": order["payment_method"]})
    return order


@router.get("/orders/{order_id}")
def get_order(order_id: int):
    order = CommerceRepo().get_order(order_id)
    if order is None:
        raise woo_error(404, "woocommerce_rest_shop_order_invalid_id", "Invalid ID.")
    return order


@router.put("/orders/{order_id}")
def update_order(order_id: int, req: OrderUpdate):
    """Merge shipping/billing blocks and apply the paid flag.

    Raises:
        HTTPException: 404 for an unknown order.
    """
    order = CommerceRepo().update_order(
        order_id,
        set_paid=req.set_paid,
        shipping=req.shipping.model_dump(exclude_none=True) if req.shipping else None,
        billing=req.billing.model_dump(exclude_none=True) if req.billing else None,
    )
    if order is None:
        raise woo_error(404, "woocommerce_rest_shop_order_invalid_id", "Invalid ID.")
    logger.info("order updated", extra={"order_id": order_id, "status": order["status"]})
    return order


@router.get("/shipping/zones/{zone_id}/methods")
def shipping_methods(zone_id: int):
    methods = CommerceRepo().shipping_methods(zone_id)
    if methods is None:
        raise woo_error(404, "woocommerce_rest_shipping_zone_invalid", "Invalid resource ID.")
    return methods


app.include_router(router)


@app.get("/health")
def health():
    """Liveness/health probe endpoint."""
    return {"ok": True}


@app.exception_handler(HTTPException)
async def woo_error_handler(_request: Request, exc: HTTPException):
    # WooCommerce errors are top-level objects, not wrapped in ``detail``
    body = exc.detail if isinstance(exc.detail, dict) else {"code": "error", "message": str(exc.detail)}
    return JSONResponse(body, status_code=exc.status_code)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        # never log the query string, it carries the API credentials
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
