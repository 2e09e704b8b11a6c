"""
workflow.py — Core Orchestration Logic for Checkout Bridging

This module contains the shop selection and checkout creation pipeline.
It coordinates the liveness probes and the cart creation in the correct sequence.

Workflow Overview:
1. Validate the client payload (at least one line)
2. Select the first healthy shop in priority order (sequential probes)
3. Translate the payload into a `cartCreate` mutation and send it to that shop
4. Return the checkout URL (the API answers with a 302 redirect)
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .clients import StorefrontClient
from .config import ShopConfig, ShopKey
from .exceptions import InvalidCartError, NoShopAvailableError
from .mapping import MappingStore
from .models import BridgeRequest, CheckoutRequest, NormalizedCartLine, to_variant_gid

log = logging.getLogger(__name__)


# --- Shop Selector ---
def health_check(shop: Optional[ShopConfig], http: httpx.Client) -> bool:
    """
    Probes one shop. Never raises.

    A shop without domain or token is unhealthy without any network call.
    Any transport failure, non-success status or unexpected exception also
    counts as unhealthy.
    """
    if shop is None or not shop.is_configured:
        return False
    try:
        return StorefrontClient(shop, http).ping()
    except httpx.HTTPError as e:
        log.warning(f"[Shop: {shop.key.value}] Sonde de santé échouée: {e!r}")
        return False
    except Exception as e:
        log.error(f"[Shop: {shop.key.value}] Erreur inattendue pendant la sonde: {e!r}")
        return False


def pick_target_shop(shops: Dict[ShopKey, ShopConfig], http: httpx.Client) -> Optional[ShopKey]:
    """
    Returns the first healthy shop in ShopKey order, or None.

    Probes run one after the other and stop at the first healthy shop, so a
    healthy primary is never shadowed by a faster secondary.
    """
    for key in ShopKey:
        if health_check(shops.get(key), http):
            log.info(f"[Bridge] Shop cible: {key.value}.")
            return key
        log.info(f"[Bridge] Shop {key.value} indisponible.")
    return None


# --- Checkout Builder ---
def build_checkout_request(payload: Any, mapping: MappingStore = None) -> CheckoutRequest:
    """
    Parses the raw client payload into the `cartCreate` variables.

    Args:
        payload (Any): Decoded JSON body of POST /bridge.
        mapping (MappingStore | None): Used for lines that only carry a `sku`.

    Returns:
        CheckoutRequest: Normalized lines, cart attributes and note.

    Raises:
        InvalidCartError: If there are no lines, or a line has no usable identifier.
    """
    try:
        request = BridgeRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidCartError(f"payload invalide: {e.error_count()} erreur(s)")

    if not request.lines:
        raise InvalidCartError()

    lines = []
    for index, line in enumerate(request.lines):
        identifier = line.id
        if identifier is None and line.sku and mapping is not None:
            identifier = mapping.resolve(line.sku)
        if identifier is None:
            ref = f"sku {line.sku}" if line.sku else f"ligne {index}"
            raise InvalidCartError(f"id de variante introuvable ({ref})")

        lines.append(NormalizedCartLine(
            quantity=line.quantity,
            merchandiseId=to_variant_gid(identifier),
            sellingPlanId=line.selling_plan,
            attributes=line.properties,
        ))

    return CheckoutRequest(lines=lines, attributes=request.attributes, note=request.note)


def create_checkout(shop: ShopConfig, checkout: CheckoutRequest, http: httpx.Client) -> str:
    """
    Sends one `cartCreate` mutation to the shop and returns the checkout URL.

    Raises:
        CheckoutError: Propagated from StorefrontClient.create_cart. No retry.
    """
    client = StorefrontClient(shop, http)
    return client.create_cart(checkout.to_variables())


# --- Request pipeline ---
def process_bridge_request(
        payload: Any,
        shops: Dict[ShopKey, ShopConfig],
        http: httpx.Client,
        mapping: MappingStore = None,
) -> str:
    """
    Executes the complete bridge pipeline for one inbound request.

    Steps:
        Validate — reject empty carts before any network call.
        Select   — first healthy shop in priority order.
        Build    — one cartCreate call to the selected shop.

    Args:
        payload (Any): Decoded JSON body.
        shops (Dict[ShopKey, ShopConfig]): Shop registry.
        http (httpx.Client): HTTP client for probes and the mutation.
        mapping (MappingStore | None): SKU mapping for `sku`-only lines.

    Returns:
        str: The checkout URL.

    Raises:
        InvalidCartError: 400 — missing/empty lines or unusable line.
        NoShopAvailableError: 503 — no shop answered the probe.
        CheckoutError: 500 — provider or transport failure during cart creation.
    """
    checkout = build_checkout_request(payload, mapping)
    log.info(f"[Bridge] Panier reçu: {len(checkout.lines)} ligne(s).")

    target = pick_target_shop(shops, http)
    if target is None:
        log.error("[Bridge] Aucun shop disponible.")
        raise NoShopAvailableError()

    checkout_url = create_checkout(shops[target], checkout, http)
    log.info(f"[Bridge] Checkout créé sur le shop {target.value}.")
    return checkout_url
