"""
WooCommerce REST client: the external order/inventory system.

Only the calls the engine needs: stock increase, order status, order notes
and order lookup. Every transport or HTTP error is raised as
ExternalSideEffectFailure so workflows can report it without knowing httpx.
"""

from decimal import Decimal
from typing import Optional

import httpx
import structlog

from backoffice.config import settings
from backoffice.exceptions import ExternalSideEffectFailure
from backoffice.schemas.order import ExternalOrder, ExternalOrderLine

logger = structlog.get_logger()

API_PATH = "/wp-json/wc/v3"


class WooCommerceClient:
    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(consumer_key, consumer_secret)
        self._timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}{API_PATH}",
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self, effect: str, target: str, method: str, path: str, json: Optional[dict] = None
    ) -> dict:
        if not self.is_configured:
            raise ExternalSideEffectFailure(effect, target, "WooCommerce is not configured")
        try:
            response = await self._get_client().request(method, path, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalSideEffectFailure(
                effect, target, f"HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise ExternalSideEffectFailure(
                effect, target, str(e) or e.__class__.__name__
            ) from e
        return response.json()

    async def increase_stock(self, product_ref: str, quantity: int) -> None:
        product = await self._request(
            "increase_stock", product_ref, "GET", f"products/{product_ref}"
        )
        current = product.get("stock_quantity") or 0
        new_stock = current + quantity
        await self._request(
            "increase_stock",
            product_ref,
            "PUT",
            f"products/{product_ref}",
            json={
                "stock_quantity": new_stock,
                "manage_stock": True,
                "stock_status": "instock" if new_stock > 0 else "outofstock",
            },
        )
        logger.info(
            "woocommerce_stock_increased",
            product_ref=product_ref,
            quantity=quantity,
            stock=new_stock,
        )

    async def set_order_status(self, order_ref: str, status: str) -> None:
        await self._request(
            "set_order_status", order_ref, "PUT", f"orders/{order_ref}", json={"status": status}
        )
        logger.info("woocommerce_order_status_set", order_ref=order_ref, status=status)

    async def add_order_note(
        self, order_ref: str, text: str, customer_visible: bool = False
    ) -> None:
        await self._request(
            "add_order_note",
            order_ref,
            "POST",
            f"orders/{order_ref}/notes",
            json={"note": text, "customer_note": customer_visible},
        )
        logger.info("woocommerce_order_note_added", order_ref=order_ref)

    async def fetch_order(self, order_ref: str) -> ExternalOrder:
        data = await self._request("fetch_order", order_ref, "GET", f"orders/{order_ref}")
        return ExternalOrder(
            order_ref=str(data.get("id", order_ref)),
            number=str(data["number"]) if data.get("number") is not None else None,
            status=data.get("status"),
            line_items=[_order_line(item) for item in data.get("line_items", [])],
        )


def _order_line(item: dict) -> ExternalOrderLine:
    product_id = item.get("product_id")
    return ExternalOrderLine(
        line_ref=str(item["id"]) if item.get("id") is not None else None,
        product_ref=str(product_id) if product_id else None,
        description=item.get("name") or "",
        quantity=int(item.get("quantity") or 0),
        unit_price=Decimal(str(item.get("price") or "0")),
        total=Decimal(str(item.get("total") or "0")),
        total_tax=Decimal(str(item.get("total_tax") or "0")),
    )


_client: Optional[WooCommerceClient] = None


def get_order_system() -> WooCommerceClient:
    """FastAPI dependency; one client per process so connections are reused."""
    global _client
    if _client is None:
        _client = WooCommerceClient(
            settings.WOOCOMMERCE_URL,
            settings.WOOCOMMERCE_CONSUMER_KEY,
            settings.WOOCOMMERCE_CONSUMER_SECRET,
            timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        )
    return _client


async def close_order_system():
    if _client is not None:
        await _client.aclose()
