import pytest

from domain.order.entity import OrderStatus
from shared.codes.payment_codes import GATEWAY_STATUS_TO_ORDER_STATUS, map_gateway_status


@pytest.mark.parametrize(
    "status, expected",
    [
        ("approved", OrderStatus.PAID),
        ("pending", OrderStatus.PENDING),
        ("in_process", OrderStatus.PENDING),
        ("rejected", OrderStatus.CANCELLED),
        ("cancelled", OrderStatus.CANCELLED),
        ("refunded", OrderStatus.CANCELLED),
        ("charged_back", OrderStatus.CANCELLED),
    ],
)
def test_known_statuses(status, expected):
    assert map_gateway_status(status) == expected


@pytest.mark.parametrize("status", ["", "APPROVED", "something_new", "authorized_later", None, 42, {"x": 1}])
def test_unmapped_statuses_default_to_pending(status):
    assert map_gateway_status(status) == OrderStatus.PENDING


def test_surrounding_whitespace_is_ignored():
    assert map_gateway_status("  approved\n") == OrderStatus.PAID


def test_mapping_never_produces_delivered():
    # delivered is set by fulfilment, not by the gateway
    assert OrderStatus.DELIVERED not in GATEWAY_STATUS_TO_ORDER_STATUS.values()
