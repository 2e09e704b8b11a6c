"""
mock_storefront.py — Mock Implementation of the Storefront API (GraphQL)

This module provides a simulated Storefront endpoint for local runs and tests
of the checkout bridge. It exposes a FastAPI application that mimics the two
operations the bridge relies on: the `shop` liveness query and the
`cartCreate` mutation.

Simulation Scenarios (by access token prefix):
    • "sf_down_"     → Shop unavailable (HTTP 503)
    • "sf_soldout_"  → cartCreate answers userErrors "Sold out"
    • "sf_nourl_"    → cartCreate answers a cart without checkoutUrl
    • any other      → Healthy shop, cart created

Endpoints:
    POST /api/{version}/graphql.json

Port:
    Default: 8001 (HTTP)
"""

from typing import Optional
import logging
import uuid

from fastapi import FastAPI, Header, HTTPException, Request
from pydantic import BaseModel

app = FastAPI(title="Mock Storefront")
logging.basicConfig(level=logging.INFO)


class GraphQLRequest(BaseModel):
    """
    Represents a GraphQL request body.

    Attributes:
        query (str): The GraphQL document.
        variables (dict | None): Operation variables.
    """
    query: str
    variables: Optional[dict] = None


@app.post("/api/{version}/graphql.json")
def graphql(
        version: str,
        body: GraphQLRequest,
        request: Request,
        token: Optional[str] = Header(None, alias="X-Shopify-Storefront-Access-Token"),
):
    """
        Answers the `shop` query and the `cartCreate` mutation.

        Args:
            version (str): Storefront API version from the path.
            body (GraphQLRequest): Query and variables.
            token (str): Storefront access token; drives the simulated scenario.

        Returns:
            dict: A GraphQL response `{"data": ...}`.

        Raises:
            HTTPException(401): If no access token is sent.
            HTTPException(503): If the token simulates an unavailable shop.
    """
    host = request.url.hostname
    if not token:
        raise HTTPException(status_code=401, detail="Missing access token")

    if token.startswith("sf_down_"):
        logging.warning(f"[SF:{host}] Shop simulé indisponible.")
        raise HTTPException(status_code=503, detail="Unavailable")

    if "cartCreate" not in body.query:
        return {"data": {"shop": {"name": host}}}

    lines = (body.variables or {}).get("lines") or []
    logging.info(f"[SF:{host}] cartCreate ({version}) avec {len(lines)} ligne(s).")

    if token.startswith("sf_soldout_"):
        return {"data": {"cartCreate": {
            "cart": None,
            "userErrors": [{"field": ["input", "lines", "0"], "message": "Sold out"}],
        }}}

    cart_id = uuid.uuid4().hex
    cart = {"id": f"gid://shopify/Cart/{cart_id}"}
    if not token.startswith("sf_nourl_"):
        cart["checkoutUrl"] = f"https://{host}/cart/c/{cart_id}"
    return {"data": {"cartCreate": {"cart": cart, "userErrors": []}}}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8001)
