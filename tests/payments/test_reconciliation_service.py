import pytest

from application.services.reconciliation_service import ReconciliationService
from domain.order.entity import Order, OrderStatus
from domain.webhook.entity import AuditOutcome
from infrastructure.external.payments.exceptions import PaymentProviderError


FEED = {"topic": "payment", "id": 123}


@pytest.fixture
def pending_order(store):
    store.orders["order-1"] = Order(id="order-1", status=OrderStatus.PENDING)
    return store.orders["order-1"]


def _service(gateway, uow_factory, verifier, **kwargs):
    return ReconciliationService(gateway=gateway, uow_factory=uow_factory, verifier=verifier, **kwargs)


@pytest.mark.asyncio
async def test_approved_payment_marks_order_paid(
    store, uow_factory, verifier, gateway_factory, payment_factory, pending_order
):
    gw = gateway_factory([payment_factory("123", "approved", "order-1")])
    result = await _service(gw, uow_factory, verifier).handle_notification(FEED, request_id="req-1")

    assert result.outcome == AuditOutcome.SUCCESS
    assert result.message == "Webhook processed successfully"
    assert gw.calls == ["123"]

    order = store.orders["order-1"]
    assert order.status == OrderStatus.PAID
    assert order.payment_status == "approved"
    assert order.payment_external_id == "123"
    assert order.payment_method == "visa"
    assert order.payment_details.status_detail == "accredited"
    assert order.payment_confirmed_at is not None

    assert len(store.logs) == 1
    entry = store.logs[0]
    assert entry.outcome == AuditOutcome.SUCCESS
    assert entry.order_id == "order-1"
    assert entry.external_payment_id == "123"
    assert entry.event_kind == "payment.updated"
    assert entry.request_id == "req-1"
    assert entry.detail["old_status"] == "pending"
    assert entry.detail["new_status"] == "paid"
    assert entry.detail["signature"] == "missing"


@pytest.mark.asyncio
async def test_redelivery_rewrites_without_regression(
    store, uow_factory, verifier, gateway_factory, payment_factory, pending_order
):
    gw = gateway_factory([payment_factory("123", "approved", "order-1")])
    service = _service(gw, uow_factory, verifier)

    await service.handle_notification(FEED)
    first = store.orders["order-1"]
    second_result = await service.handle_notification(FEED)
    second = store.orders["order-1"]

    assert second_result.outcome == AuditOutcome.SUCCESS
    assert second.status == OrderStatus.PAID
    assert (second.status, second.payment_status, second.payment_external_id, second.payment_details) == (
        first.status,
        first.payment_status,
        first.payment_external_id,
        first.payment_details,
    )
    # the write is never skipped, and neither is the audit entry
    assert store.write_count == 2
    assert [e.outcome for e in store.logs] == [AuditOutcome.SUCCESS, AuditOutcome.SUCCESS]
    assert store.logs[1].detail["changed"] is False


@pytest.mark.asyncio
async def test_missing_order_is_an_error_without_mutation(
    store, uow_factory, verifier, gateway_factory, payment_factory
):
    gw = gateway_factory([payment_factory("123", "approved", "order-404")])
    result = await _service(gw, uow_factory, verifier).handle_notification(FEED)

    assert result.outcome == AuditOutcome.ERROR
    assert result.error == "order_not_found"
    assert store.write_count == 0
    assert len(store.logs) == 1
    assert store.logs[0].outcome == AuditOutcome.ERROR
    assert store.logs[0].order_id == "order-404"


@pytest.mark.asyncio
async def test_invalid_signature_skips_fetch_and_mutation(
    store, uow_factory, verifier, gateway_factory, payment_factory, pending_order
):
    gw = gateway_factory([payment_factory("123", "approved", "order-1")])
    result = await _service(gw, uow_factory, verifier).handle_notification(FEED, signature="0" * 64)

    assert result.outcome == AuditOutcome.ERROR
    assert result.error == "auth_failure"
    assert gw.calls == []
    assert store.write_count == 0
    assert store.orders["order-1"].status == OrderStatus.PENDING
    assert len(store.logs) == 1
    assert store.logs[0].detail["error"] == "auth_failure"
    assert store.logs[0].detail["signature"] == "invalid"


@pytest.mark.asyncio
async def test_valid_signature_over_raw_body(
    store, uow_factory, verifier, gateway_factory, payment_factory, pending_order
):
    raw = b'{"topic": "payment", "id": 123}'
    gw = gateway_factory([payment_factory("123", "approved", "order-1")])
    result = await _service(gw, uow_factory, verifier).handle_notification(
        FEED, raw_body=raw, signature=verifier.sign(raw)
    )

    assert result.outcome == AuditOutcome.SUCCESS
    assert store.logs[0].detail["signature"] == "valid"


@pytest.mark.asyncio
async def test_fetch_timeout_is_bounded(store, uow_factory, verifier, gateway_factory, payment_factory, pending_order):
    gw = gateway_factory([payment_factory("123", "approved", "order-1")], delay=5.0)
    result = await _service(gw, uow_factory, verifier, fetch_timeout=0.05).handle_notification(FEED)

    assert result.outcome == AuditOutcome.ERROR
    assert result.error == "upstream_fetch_failure"
    assert store.logs[0].detail["timeout"] == 0.05
    assert store.write_count == 0


@pytest.mark.asyncio
async def test_gateway_error_is_upstream_failure(store, uow_factory, verifier, gateway_factory, pending_order):
    gw = gateway_factory(error=PaymentProviderError("Payment not found", provider="mercadopago", status_code=404))
    result = await _service(gw, uow_factory, verifier).handle_notification(FEED)

    assert result.outcome == AuditOutcome.ERROR
    assert result.error == "upstream_fetch_failure"
    assert store.logs[0].detail["payment_id"] == "123"
    assert store.write_count == 0


@pytest.mark.asyncio
async def test_payment_without_reference(store, uow_factory, verifier, gateway_factory, payment_factory):
    gw = gateway_factory([payment_factory("123", "approved", None)])
    result = await _service(gw, uow_factory, verifier).handle_notification(FEED)

    assert result.outcome == AuditOutcome.ERROR
    assert result.error == "reference_missing"
    assert store.write_count == 0


@pytest.mark.asyncio
async def test_rejected_payment_cancels_order(
    store, uow_factory, verifier, gateway_factory, payment_factory, pending_order
):
    gw = gateway_factory([payment_factory("123", "rejected", "order-1")])
    await _service(gw, uow_factory, verifier).handle_notification(FEED)

    assert store.orders["order-1"].status == OrderStatus.CANCELLED
    assert store.orders["order-1"].payment_status == "rejected"


@pytest.mark.asyncio
async def test_unknown_gateway_status_keeps_order_pending(
    store, uow_factory, verifier, gateway_factory, payment_factory, pending_order
):
    gw = gateway_factory([payment_factory("123", "brand_new_status", "order-1")])
    result = await _service(gw, uow_factory, verifier).handle_notification(FEED)

    assert result.outcome == AuditOutcome.SUCCESS
    assert store.orders["order-1"].status == OrderStatus.PENDING
    assert store.orders["order-1"].payment_status == "brand_new_status"


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"topic": "chargebacks", "id": 1}, None, {"foo": "bar"}])
async def test_non_payment_notifications_are_ignored(store, uow_factory, verifier, gateway_factory, payload):
    gw = gateway_factory()
    result = await _service(gw, uow_factory, verifier).handle_notification(payload)

    assert result.outcome == AuditOutcome.INFO
    assert gw.calls == []
    assert len(store.logs) == 1
    assert store.logs[0].outcome == AuditOutcome.INFO


@pytest.mark.asyncio
async def test_store_failure_leaves_order_untouched(
    store, uow_factory, verifier, gateway_factory, payment_factory, pending_order
):
    store.fail_order_writes = True
    gw = gateway_factory([payment_factory("123", "approved", "order-1")])
    result = await _service(gw, uow_factory, verifier).handle_notification(FEED)

    assert result.outcome == AuditOutcome.ERROR
    assert result.error == "store_write_failure"
    assert store.orders["order-1"].status == OrderStatus.PENDING
    assert store.logs[0].outcome == AuditOutcome.ERROR


@pytest.mark.asyncio
async def test_audit_failure_does_not_block_reconciliation(
    store, uow_factory, verifier, gateway_factory, payment_factory, pending_order
):
    store.fail_audit_appends = True
    gw = gateway_factory([payment_factory("123", "approved", "order-1")])
    result = await _service(gw, uow_factory, verifier).handle_notification(FEED)

    assert result.outcome == AuditOutcome.SUCCESS
    assert store.orders["order-1"].status == OrderStatus.PAID
    assert store.logs == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "current, gateway_status",
    [
        (OrderStatus.PAID, "in_mediation"),
        (OrderStatus.PAID, "pending"),
        (OrderStatus.PAID, "refunded"),
        (OrderStatus.CANCELLED, "approved"),
    ],
)
async def test_final_order_status_is_never_changed(
    store, uow_factory, verifier, gateway_factory, payment_factory, current, gateway_status
):
    store.orders["order-1"] = Order(id="order-1", status=current, payment_status="approved")
    gw = gateway_factory([payment_factory("123", gateway_status, "order-1")])
    result = await _service(gw, uow_factory, verifier).handle_notification(FEED)

    assert result.outcome == AuditOutcome.INFO
    assert result.error is None
    assert store.orders["order-1"].status == current
    assert store.orders["order-1"].payment_status == "approved"
    assert store.write_count == 0
    assert len(store.logs) == 1
    assert store.logs[0].order_id == "order-1"
    assert store.logs[0].detail["message"] == "terminal_state_kept"
    assert store.logs[0].detail["gateway_payment_status"] == gateway_status


@pytest.mark.asyncio
async def test_audit_entry_keeps_raw_payload(
    store, uow_factory, verifier, gateway_factory, payment_factory, pending_order
):
    raw = b'{"topic": "payment", "id": 123}'
    gw = gateway_factory([payment_factory("123", "approved", "order-1")])
    await _service(gw, uow_factory, verifier).handle_notification(FEED, raw_body=raw)

    assert store.logs[0].detail["payload"] == raw.decode()
    assert store.logs[0].detail["payload_truncated"] is False


@pytest.mark.asyncio
async def test_audit_payload_is_capped(store, uow_factory, verifier, gateway_factory):
    raw = b'{"topic": "merchant_order", "note": "' + b"x" * 500 + b'"}'
    service = _service(gateway_factory(), uow_factory, verifier, payload_max_bytes=64)
    await service.handle_notification({"topic": "merchant_order"}, raw_body=raw)

    assert store.logs[0].detail["payload"] == raw[:64].decode()
    assert store.logs[0].detail["payload_truncated"] is True
