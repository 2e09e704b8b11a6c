"""
config.py — Process configuration for the Checkout Bridge

All settings come from the process environment. The shop registry is built
once at startup and is read-only afterwards.

Shops:
    The candidate shops form a fixed, ordered set (ShopKey). Declaration order
    is the priority order used by the shop selector: PRIMARY is always probed
    before SECONDARY.
"""

import logging
import os
from enum import Enum
from typing import Dict, Mapping

from pydantic import BaseModel, ConfigDict

log = logging.getLogger(__name__)


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning(f"[Config] {name}={raw!r} invalide, utilisation de {default}.")
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning(f"[Config] {name}={raw!r} invalide, utilisation de {default}.")
        return default


STOREFRONT_API_VERSION = os.environ.get("STOREFRONT_API_VERSION", "2024-10")
SHOP_TIMEOUT_SECONDS = _float_env("SHOP_TIMEOUT_SECONDS", 5.0)
MAPPING_PATH = os.environ.get("MAPPING_PATH", "mapping.json")
ADMIN_TOKEN = os.environ.get("ADMIN_TOKEN") or None
PORT = _int_env("PORT", 8080)
MAX_BODY_BYTES = 200 * 1024


class ShopKey(str, Enum):
    """Candidate shops, in priority order."""
    PRIMARY = "B"
    SECONDARY = "C"

    @property
    def env_prefix(self) -> str:
        return f"SHOP_{self.value}_"


class ShopConfig(BaseModel):
    """
    Identifies one backend shop.

    Attributes:
        key (ShopKey): Registry key of the shop.
        domain (str): Storefront domain, e.g. 'my-shop.myshopify.com'. Empty when unset.
        token (str): Storefront API access token. Empty when unset.
    """
    model_config = ConfigDict(frozen=True)

    key: ShopKey
    domain: str = ""
    token: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.domain.strip()) and bool(self.token.strip())

    def graphql_url(self, api_version: str = None) -> str:
        version = api_version or STOREFRONT_API_VERSION
        return f"https://{self.domain.strip()}/api/{version}/graphql.json"


def load_shop_registry(environ: Mapping[str, str] = None) -> Dict[ShopKey, ShopConfig]:
    """
    Builds the shop registry from environment variables.

    For each ShopKey, reads `SHOP_<value>_DOMAIN` and `SHOP_<value>_STOREFRONT_TOKEN`.
    Unset shops are still registered (with empty fields) so the selector can
    report them as unhealthy without a network call.

    Args:
        environ (Mapping[str, str] | None): Source mapping, defaults to os.environ.

    Returns:
        Dict[ShopKey, ShopConfig]: Registry in priority order.
    """
    if environ is None:
        environ = os.environ

    registry = {}
    for key in ShopKey:
        shop = ShopConfig(
            key=key,
            domain=environ.get(f"{key.env_prefix}DOMAIN", ""),
            token=environ.get(f"{key.env_prefix}STOREFRONT_TOKEN", ""),
        )
        if not shop.is_configured:
            log.warning(f"[Config] Shop {key.value} non configuré (domaine ou token manquant).")
        registry[key] = shop
    return registry
