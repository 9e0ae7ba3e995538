"""
Side effects on the external order/inventory system.

Workflows first save and commit the document, then describe what the outside world
should do as a list of SideEffectRequest and hand it to dispatch_side_effects.
Each call is bounded by a timeout. A failing call never undoes the local
change: it becomes a failed SideEffectOutcome that the caller reports or
retries. Nothing here retries on its own.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Generic, List, Optional, Protocol, TypeVar

import structlog

from backoffice.config import SideEffectConfig
from backoffice.exceptions import ExternalSideEffectFailure
from backoffice.schemas.common import SideEffectResponse
from backoffice.schemas.order import ExternalOrder

logger = structlog.get_logger()

INCREASE_STOCK = "increase_stock"
SET_ORDER_STATUS = "set_order_status"
ADD_ORDER_NOTE = "add_order_note"
FETCH_ORDER = "fetch_order"


class OrderSystem(Protocol):
    async def increase_stock(self, product_ref: str, quantity: int) -> None: ...

    async def set_order_status(self, order_ref: str, status: str) -> None: ...

    async def add_order_note(
        self, order_ref: str, text: str, customer_visible: bool = False
    ) -> None: ...

    async def fetch_order(self, order_ref: str) -> ExternalOrder: ...


@dataclass(frozen=True)
class SideEffectRequest:
    effect: str
    target: str
    quantity: Optional[int] = None
    status: Optional[str] = None
    text: Optional[str] = None
    customer_visible: bool = False


@dataclass
class SideEffectOutcome:
    request: SideEffectRequest
    succeeded: bool
    error: Optional[str] = None

    @property
    def failure(self) -> Optional[ExternalSideEffectFailure]:
        if self.succeeded:
            return None
        return ExternalSideEffectFailure(
            self.request.effect, self.request.target, self.error or "unknown error"
        )


D = TypeVar("D")


@dataclass
class WorkflowResult(Generic[D]):
    """A persisted document plus what happened to its external side effects."""

    document: D
    side_effects: List[SideEffectOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[ExternalSideEffectFailure]:
        return [o.failure for o in self.side_effects if not o.succeeded]

    def side_effect_responses(self) -> list[SideEffectResponse]:
        return [
            SideEffectResponse(
                effect=o.request.effect,
                target=o.request.target,
                succeeded=o.succeeded,
                error=o.error,
            )
            for o in self.side_effects
        ]


def stock_increase(product_ref: str, quantity: int) -> SideEffectRequest:
    return SideEffectRequest(effect=INCREASE_STOCK, target=product_ref, quantity=quantity)


def order_status(order_ref: str, status: str) -> SideEffectRequest:
    return SideEffectRequest(effect=SET_ORDER_STATUS, target=order_ref, status=status)


def order_note(order_ref: str, text: str, customer_visible: bool) -> SideEffectRequest:
    return SideEffectRequest(
        effect=ADD_ORDER_NOTE,
        target=order_ref,
        text=text,
        customer_visible=customer_visible,
    )


async def _call(order_system: OrderSystem, request: SideEffectRequest):
    if request.effect == INCREASE_STOCK:
        return await order_system.increase_stock(request.target, request.quantity)
    if request.effect == SET_ORDER_STATUS:
        return await order_system.set_order_status(request.target, request.status)
    if request.effect == ADD_ORDER_NOTE:
        return await order_system.add_order_note(
            request.target, request.text, request.customer_visible
        )
    raise ValueError(f"Unknown side effect '{request.effect}'")


async def execute_side_effect(
    order_system: OrderSystem,
    request: SideEffectRequest,
    config: SideEffectConfig,
) -> SideEffectOutcome:
    try:
        await asyncio.wait_for(_call(order_system, request), timeout=config.timeout_seconds)
    except asyncio.TimeoutError:
        error = f"timed out after {config.timeout_seconds}s"
    except ExternalSideEffectFailure as e:
        error = e.reason
    except Exception as e:
        error = str(e) or e.__class__.__name__
    else:
        logger.info("side_effect_succeeded", effect=request.effect, target=request.target)
        return SideEffectOutcome(request=request, succeeded=True)

    logger.error(
        "side_effect_failed",
        effect=request.effect,
        target=request.target,
        error=error,
    )
    return SideEffectOutcome(request=request, succeeded=False, error=error)


async def dispatch_side_effects(
    order_system: OrderSystem,
    requests: list[SideEffectRequest],
    config: SideEffectConfig,
) -> list[SideEffectOutcome]:
    """Run requests one after another; every request gets an outcome."""
    outcomes = []
    for request in requests:
        outcomes.append(await execute_side_effect(order_system, request, config))
    if outcomes:
        failed = sum(1 for o in outcomes if not o.succeeded)
        logger.info("side_effects_dispatched", total=len(outcomes), failed=failed)
    return outcomes


async def fetch_order(
    order_system: OrderSystem, order_ref: str, config: SideEffectConfig
) -> tuple[Optional[ExternalOrder], Optional[SideEffectOutcome]]:
    """
    Look up an external order. On failure returns (None, failed outcome) so the
    caller can skip whatever depended on the order and still report why.
    """
    request = SideEffectRequest(effect=FETCH_ORDER, target=order_ref)
    try:
        order = await asyncio.wait_for(
            order_system.fetch_order(order_ref), timeout=config.timeout_seconds
        )
    except asyncio.TimeoutError:
        error = f"timed out after {config.timeout_seconds}s"
    except ExternalSideEffectFailure as e:
        error = e.reason
    except Exception as e:
        error = str(e) or e.__class__.__name__
    else:
        return order, None

    logger.error("order_lookup_failed", order_ref=order_ref, error=error)
    return None, SideEffectOutcome(request=request, succeeded=False, error=error)
