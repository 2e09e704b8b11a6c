"""
This module provides the communication client for the backend shops:
- Storefront API (GraphQL over HTTPS, one endpoint per configured shop)
The class encapsulates the protocol logic, error handling, and timeouts.
"""

import logging

import httpx

from .config import SHOP_TIMEOUT_SECONDS, STOREFRONT_API_VERSION, ShopConfig
from .exceptions import CheckoutError

log = logging.getLogger(__name__)

SHOP_QUERY = "query { shop { name } }"

CART_CREATE_MUTATION = """
mutation CreateCart($lines: [CartLineInput!], $attributes: [AttributeInput!], $note: String) {
  cartCreate(input: { lines: $lines, attributes: $attributes, note: $note }) {
    cart { id checkoutUrl }
    userErrors { field message }
  }
}
"""


def build_http_client(timeout: float = None) -> httpx.Client:
    """
    Creates the HTTP client used for all outbound shop calls.

    Every phase (connect, read, write, pool) is bounded so that one
    unresponsive shop cannot stall a request indefinitely.
    """
    return httpx.Client(timeout=httpx.Timeout(timeout or SHOP_TIMEOUT_SECONDS))


# --- Storefront Client (GraphQL) ---
class StorefrontClient:
    """
    Client for the Storefront GraphQL API of one shop.
    Handles the liveness probe and cart creation.
    """
    def __init__(self, shop: ShopConfig, http: httpx.Client, api_version: str = None):
        """
        Args:
            shop (ShopConfig): The target shop (domain + access token).
            http (httpx.Client): Shared HTTP client, owned by the caller.
            api_version (str | None): Storefront API version, defaults to STOREFRONT_API_VERSION.
        """
        self.shop = shop
        self.http = http
        self.url = shop.graphql_url(api_version or STOREFRONT_API_VERSION)
        self.log_prefix = f"[Shop: {shop.key.value}]"

    def _post(self, query: str, variables: dict = None) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Storefront-Access-Token": self.shop.token,
        }
        body = {"query": query}
        if variables is not None:
            body["variables"] = variables
        return self.http.post(self.url, json=body, headers=headers)

    def ping(self) -> bool:
        """
        Sends a minimal read-only query to the shop.
        Returns:
            bool: True if the shop answered with a success status.
        Raises:
            httpx.HTTPError: On timeout or connection failure.
        """
        response = self._post(SHOP_QUERY)
        if not response.is_success:
            log.warning(f"{self.log_prefix} Sonde de santé: HTTP {response.status_code}.")
        return response.is_success

    def create_cart(self, variables: dict) -> str:
        """
        Creates a cart via the `cartCreate` mutation and returns its checkout URL.
        Args:
            variables (dict): Mutation variables (lines, attributes, note).
        Returns:
            str: The checkout URL to redirect the buyer to.
        Raises:
            CheckoutError: On transport failure, undecodable response, GraphQL errors,
                user errors, or a missing checkout URL.
        """
        try:
            response = self._post(CART_CREATE_MUTATION, variables)
        except httpx.TimeoutException:
            log.error(f"{self.log_prefix} Timeout lors de la création du panier.")
            raise CheckoutError(f"Shop {self.shop.key.value} injoignable (timeout)")
        except httpx.HTTPError as e:
            log.error(f"{self.log_prefix} Erreur réseau lors de la création du panier: {e}")
            raise CheckoutError(f"Shop {self.shop.key.value} injoignable")

        try:
            data = response.json()
        except ValueError:
            log.error(f"{self.log_prefix} Réponse non-JSON (HTTP {response.status_code}).")
            raise CheckoutError(f"réponse invalide du shop (HTTP {response.status_code})")

        if not isinstance(data, dict):
            raise CheckoutError(f"réponse invalide du shop (HTTP {response.status_code})")

        # Top-level GraphQL errors (bad token, throttling, schema mismatch)
        errors = data.get("errors")
        if errors:
            message = "; ".join(_messages(errors)) or f"erreur GraphQL (HTTP {response.status_code})"
            log.error(f"{self.log_prefix} Erreurs GraphQL: {message}")
            raise CheckoutError(message)

        cart_create = _field(_field(data, "data"), "cartCreate")
        user_errors = cart_create.get("userErrors") or []
        if user_errors:
            message = "; ".join(_messages(user_errors))
            log.warning(f"{self.log_prefix} userErrors: {message}")
            raise CheckoutError(message)

        checkout_url = _field(cart_create, "cart").get("checkoutUrl")
        if not checkout_url or not isinstance(checkout_url, str):
            log.error(f"{self.log_prefix} checkoutUrl absent de la réponse.")
            raise CheckoutError("checkoutUrl introuvable")
        return checkout_url


def _field(obj: dict, key: str) -> dict:
    """Nested object under `key`; anything that is not an object counts as absent."""
    value = obj.get(key)
    return value if isinstance(value, dict) else {}


def _messages(errors) -> list:
    if not isinstance(errors, list):
        errors = [errors]
    return [
        str(e.get("message")) if isinstance(e, dict) else str(e)
        for e in errors
    ]
