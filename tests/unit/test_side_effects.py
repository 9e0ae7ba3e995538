import pytest

from backoffice.config import SideEffectConfig
from backoffice.services.side_effects import (
    ADD_ORDER_NOTE,
    INCREASE_STOCK,
    SideEffectRequest,
    WorkflowResult,
    dispatch_side_effects,
    execute_side_effect,
    fetch_order,
    order_note,
    order_status,
    stock_increase,
)


@pytest.mark.asyncio
async def test_dispatch_runs_every_request_in_order(order_system, side_effect_config):
    requests = [
        stock_increase("P1", 2),
        order_status("42", "refunded"),
        order_note("42", "hello", True),
    ]
    outcomes = await dispatch_side_effects(order_system, requests, side_effect_config)

    assert [o.succeeded for o in outcomes] == [True, True, True]
    assert order_system.calls == [
        ("increase_stock", "P1", 2),
        ("set_order_status", "42", "refunded"),
        ("add_order_note", "42", "hello", True),
    ]


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_rest(order_system, side_effect_config):
    order_system.fail["set_order_status"] = "HTTP 500"
    outcomes = await dispatch_side_effects(
        order_system,
        [order_status("42", "completed"), order_note("42", "done", False)],
        side_effect_config,
    )

    assert [o.succeeded for o in outcomes] == [False, True]
    assert outcomes[0].error == "HTTP 500"
    failure = outcomes[0].failure
    assert failure.code == "EXTERNAL_SIDE_EFFECT_FAILED"
    assert failure.target == "42"


@pytest.mark.asyncio
async def test_slow_call_times_out(order_system):
    order_system.delay = 0.2
    outcome = await execute_side_effect(
        order_system, stock_increase("P1", 1), SideEffectConfig(timeout_seconds=0.01)
    )
    assert not outcome.succeeded
    assert "timed out" in outcome.error


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_failed_outcome(side_effect_config):
    class Broken:
        async def increase_stock(self, product_ref, quantity):
            raise RuntimeError("boom")

    outcome = await execute_side_effect(Broken(), stock_increase("P1", 1), side_effect_config)
    assert outcome.error == "boom"


@pytest.mark.asyncio
async def test_unknown_effect_is_reported(order_system, side_effect_config):
    outcome = await execute_side_effect(
        order_system, SideEffectRequest(effect="teleport", target="x"), side_effect_config
    )
    assert not outcome.succeeded
    assert "teleport" in outcome.error


@pytest.mark.asyncio
async def test_fetch_order_failure_returns_outcome(order_system, side_effect_config):
    order, failed = await fetch_order(order_system, "missing", side_effect_config)
    assert order is None
    assert failed.request.effect == "fetch_order"
    assert failed.error == "HTTP 404"


@pytest.mark.asyncio
async def test_workflow_result_helpers(order_system, side_effect_config):
    order_system.fail["add_order_note"] = "HTTP 400"
    outcomes = await dispatch_side_effects(
        order_system, [stock_increase("P1", 1), order_note("1", "x", True)], side_effect_config
    )
    result = WorkflowResult(document="doc", side_effects=outcomes)

    assert [o.request.target for o in result.side_effects if o.succeeded] == ["P1"]
    assert [f.effect for f in result.failures] == [ADD_ORDER_NOTE]
    responses = result.side_effect_responses()
    assert [(r.effect, r.succeeded, r.error) for r in responses] == [
        (INCREASE_STOCK, True, None),
        (ADD_ORDER_NOTE, False, "HTTP 400"),
    ]
