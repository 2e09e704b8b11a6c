"""
models.py — Data Models for Cart Bridging

This module defines the data structures used between the storefront frontend
and the Storefront API. Client payloads are untyped JSON; they are parsed once,
on entry, into Pydantic models that default or drop malformed fields, so the
rest of the pipeline never deals with missing keys or foreign types.

Models:
    - Attribute: A key/value string pair (line properties, cart attributes).
    - CartLineInput: One line as sent by the frontend.
    - BridgeRequest: The complete payload received on POST /bridge.
    - NormalizedCartLine: One line in the Storefront `CartLineInput` shape.
    - CheckoutRequest: The `variables` of the `cartCreate` mutation.
"""

import math
from collections.abc import Mapping
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

VARIANT_GID_PREFIX = "gid://shopify/ProductVariant/"
MAX_QUANTITY = 2 ** 31 - 1


def _stringify(value) -> str:
    """Renders a scalar the way it appears in JSON (true/false, 3 rather than 3.0)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_scalar(value) -> bool:
    return isinstance(value, (str, int, float, bool))


def to_variant_gid(value) -> str:
    """
    Normalizes a merchandise identifier into a fully-qualified variant GID.

    Bare identifiers (e.g. 44012345678901 or "44012345678901") get the
    ProductVariant prefix; values already starting with 'gid://' are returned
    unchanged, so normalizing twice is a no-op.

    Args:
        value (str | int): Raw identifier sent by the client.

    Returns:
        str: The fully-qualified identifier.
    """
    s = _stringify(value) if value is not None else ""
    return s if s.startswith("gid://") else f"{VARIANT_GID_PREFIX}{s}"


def coerce_quantity(value) -> int:
    """
    Coerces a client-supplied quantity into a positive integer.

    Numbers and numeric strings are accepted; anything missing, non-numeric,
    non-finite, zero, negative or beyond MAX_QUANTITY becomes 1. Fractions
    are truncated.
    """
    if value is None or isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 1
    else:
        return 1

    if isinstance(number, float) and not math.isfinite(number):
        return 1
    quantity = int(number)
    # Storefront quantities are GraphQL Int (32-bit)
    if quantity < 1 or quantity > MAX_QUANTITY:
        return 1
    return quantity


class Attribute(BaseModel):
    key: str
    value: str


def filter_attributes(mapping) -> List[Attribute]:
    """
    Turns an open-ended mapping into Storefront attributes.

    Entries whose value is None, or not a string/number/boolean, are dropped.
    Surviving entries keep their insertion order and get stringified values.
    Anything that is not a mapping yields no attributes.

    Args:
        mapping (Any): Client-supplied `properties` or `attributes` object.

    Returns:
        List[Attribute]: The filtered key/value pairs.
    """
    if not isinstance(mapping, Mapping):
        return []

    attributes = []
    for key, value in mapping.items():
        if value is None or not _is_scalar(value):
            continue
        attributes.append(Attribute(key=str(key), value=_stringify(value)))
    return attributes


class CartLineInput(BaseModel):
    """
    Represents one cart line as sent by the storefront frontend.

    Attributes:
        id (str | None): Variant identifier, bare or fully-qualified.
        sku (str | None): SKU, resolved through the mapping when `id` is absent.
        quantity (int): Quantity, defaults to 1 when missing or invalid.
        selling_plan (str | None): Selling plan identifier (subscriptions).
        properties (List[Attribute]): Filtered line properties.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = 1
    selling_plan: Optional[str] = None
    properties: List[Attribute] = []

    @model_validator(mode="before")
    @classmethod
    def require_object(cls, data: Any) -> Any:
        # A line that is not an object carries nothing usable
        return data if isinstance(data, dict) else {}

    @field_validator("id", "sku", "selling_plan", mode="before")
    @classmethod
    def coerce_optional_scalar(cls, value: Any) -> Optional[str]:
        if not value or isinstance(value, bool) or not _is_scalar(value):
            return None
        return _stringify(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_line_quantity(cls, value: Any) -> int:
        return coerce_quantity(value)

    @field_validator("properties", mode="before")
    @classmethod
    def filter_properties(cls, value: Any) -> List[Attribute]:
        return filter_attributes(value)


class BridgeRequest(BaseModel):
    """
    Represents the payload received on POST /bridge.

    Attributes:
        lines (List[CartLineInput]): Cart lines; empty when absent or not a list.
        attributes (List[Attribute]): Filtered cart-level attributes.
        note (str): Cart note, empty string when absent.
    """
    model_config = ConfigDict(extra="ignore")

    lines: List[CartLineInput] = []
    attributes: List[Attribute] = []
    note: str = ""

    @model_validator(mode="before")
    @classmethod
    def require_object(cls, data: Any) -> Any:
        return data if isinstance(data, dict) else {}

    @field_validator("lines", mode="before")
    @classmethod
    def require_line_list(cls, value: Any) -> list:
        return value if isinstance(value, list) else []

    @field_validator("attributes", mode="before")
    @classmethod
    def filter_cart_attributes(cls, value: Any) -> List[Attribute]:
        return filter_attributes(value)

    @field_validator("note", mode="before")
    @classmethod
    def coerce_note(cls, value: Any) -> str:
        if not value or not _is_scalar(value):
            return ""
        return _stringify(value)


class NormalizedCartLine(BaseModel):
    """One line in the shape expected by the Storefront `CartLineInput` type."""
    quantity: int = Field(..., gt=0)
    merchandiseId: str
    sellingPlanId: Optional[str] = None
    attributes: List[Attribute] = []


class CheckoutRequest(BaseModel):
    """
    Variables of the `cartCreate` mutation.

    Attributes:
        lines (List[NormalizedCartLine]): At least one line.
        attributes (List[Attribute]): Cart-level attributes.
        note (str): Free-text note.
    """
    lines: List[NormalizedCartLine] = Field(..., min_length=1)
    attributes: List[Attribute] = []
    note: str = ""

    def to_variables(self) -> dict:
        return self.model_dump()
