"""
main.py — FastAPI Entry Point for the Checkout Bridge

This module provides the REST API between the storefront frontend and the
backend shops. It accepts a cart, hands it to the bridge workflow and
redirects the buyer to the checkout of the first healthy shop.

Responsibilities:
    • Accept carts via POST /bridge and answer with a 302 redirect
    • Publish and hot-reload the SKU mapping
    • Apply privacy headers and the request body bound to every route
    • Provide system health information
"""

import json
import secrets
import time

import httpx
from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from . import config
from .clients import build_http_client
from .exceptions import BridgeError, InvalidCartError, PayloadTooLargeError, UnauthorizedError
from .logging_config import get_logger, setup_logging
from .mapping import MappingStore
from .workflow import process_bridge_request

# Initialization
# Configure logging, load the shop registry and initialize FastAPI app
setup_logging()
log = get_logger(__name__)

SHOPS = config.load_shop_registry()
MAPPING_STORE = MappingStore()

app = FastAPI(title="Checkout Bridge")

PRIVACY_HEADERS = {
    "Referrer-Policy": "no-referrer",
    "X-Content-Type-Options": "nosniff",
}


# Dependencies (overridden in tests)
def get_shops():
    return SHOPS


def get_mapping_store():
    return MAPPING_STORE


def get_admin_token():
    return config.ADMIN_TOKEN


def get_http_client():
    """Yields a per-request HTTP client with bounded timeouts, closed afterwards."""
    client = build_http_client()
    try:
        yield client
    finally:
        client.close()


@app.on_event("startup")
def on_startup():
    """
    FastAPI startup event handler.

    Loads the SKU mapping. A missing or malformed mapping leaves an empty
    mapping in place; the service starts regardless.
    """
    log.info("Checkout Bridge démarre...")
    MAPPING_STORE.load_initial()
    for key, shop in SHOPS.items():
        state = shop.domain if shop.is_configured else "non configuré"
        log.info(f"[Config] Shop {key.value}: {state}")


# Middleware: privacy headers, body bound, last-resort error handling
@app.middleware("http")
async def privacy_and_limits(request: Request, call_next):
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > config.MAX_BODY_BYTES:
        response = JSONResponse(status_code=413, content={"error": PayloadTooLargeError().message})
    else:
        try:
            response = await call_next(request)
        except Exception as e:
            log.critical(f"Erreur non gérée sur {request.method} {request.url.path}: {e}", exc_info=True)
            response = JSONResponse(status_code=500, content={"error": "Erreur interne"})

    response.headers.update(PRIVACY_HEADERS)
    return response


@app.exception_handler(BridgeError)
async def bridge_error_handler(request: Request, exc: BridgeError):
    """Converts every bridge error into the `{"error": message}` shape."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def read_bounded_body(request: Request, limit: int) -> bytes:
    """
    Reads the request body, giving up as soon as it exceeds `limit` bytes.

    Covers chunked uploads, which carry no Content-Length for the middleware to check.

    Raises:
        PayloadTooLargeError(413): If the body is larger than `limit`.
    """
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            log.warning(f"[Bridge] Corps de requête refusé: plus de {limit} octets.")
            raise PayloadTooLargeError()
    return bytes(body)


# API Endpoint: Frontend → Bridge
@app.post("/bridge")
async def bridge(
        request: Request,
        shops=Depends(get_shops),
        mapping: MappingStore = Depends(get_mapping_store),
        http: httpx.Client = Depends(get_http_client),
):
    """
    Receives a cart from the storefront frontend and redirects to a checkout.

    Body: `{"lines": [...], "attributes": {...}?, "note": "..."?}`

    Returns:
        RedirectResponse(302): To the checkout URL of the selected shop.

    Raises:
        InvalidCartError(400): Missing/empty lines or malformed JSON.
        NoShopAvailableError(503): No shop passed the liveness probe.
        CheckoutError(500): The shop refused or failed to create the cart.
    """
    body = await read_bounded_body(request, config.MAX_BODY_BYTES)
    try:
        payload = json.loads(body) if body else {}
    except ValueError:
        raise InvalidCartError("JSON invalide")

    # The workflow uses a blocking client; keep it off the event loop
    checkout_url = await run_in_threadpool(process_bridge_request, payload, shops, http, mapping)
    return RedirectResponse(url=checkout_url, status_code=302)


@app.get("/mapping.json")
def get_mapping(mapping: MappingStore = Depends(get_mapping_store)):
    """Publishes the current SKU → identifier mapping."""
    return dict(mapping.snapshot())


@app.post("/admin/reload-mapping")
def reload_mapping(
        mapping: MappingStore = Depends(get_mapping_store),
        admin_token=Depends(get_admin_token),
        x_admin_token: str = Header(None, alias="X-Admin-Token"),
):
    """
    Reloads the mapping from its source without a redeploy.

    When ADMIN_TOKEN is configured, the X-Admin-Token header must match it.

    Returns:
        dict: `{"ok": true, "count": N}`.

    Raises:
        UnauthorizedError(401): Wrong or missing admin token.
        MappingError(500): Invalid source; the previous mapping keeps being served.
    """
    if admin_token and not secrets.compare_digest(x_admin_token or "", admin_token):
        log.warning("[Mapping] Rechargement refusé: token admin invalide.")
        raise UnauthorizedError()
    count = mapping.reload()
    return {"ok": True, "count": count}


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint for monitoring systems and orchestrators.

    Returns:
        dict: `{"ok": true, "ts": <epoch milliseconds>}`.
    """
    return {"ok": True, "ts": int(time.time() * 1000)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
