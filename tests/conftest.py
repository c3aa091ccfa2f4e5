"""Pytest bootstrap configuration.

Environment variables are set before any application module is imported,
since settings are read at import time.
"""
import os

os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("PAYMENT__MERCADOPAGO__ACCESS_TOKEN", "TEST-access-token")
os.environ.setdefault("PAYMENT__WEBHOOK__SECRET", "test-webhook-secret")

import asyncio
import dataclasses
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from application.dtos.payments import GatewayPayment
from application.services.signature_verifier import SignatureVerifier
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Order, OrderStatus
from domain.order.repository import OrderRepository
from domain.webhook.repository import AuditLogRepository
from infrastructure.database import create_tables
from infrastructure.unit_of_work import sqlalchemy_uow_factory


WEBHOOK_SECRET = "test-webhook-secret"


class FakeGateway:
    """Serves canned payments by id; can be told to fail or hang."""

    provider = "fake"

    def __init__(self, payments=None, *, error: Optional[Exception] = None, delay: float = 0.0):
        self.payments = {p.id: p for p in (payments or [])}
        self.error = error
        self.delay = delay
        self.calls = []
        self.closed = False

    async def get_payment(self, payment_id: str) -> GatewayPayment:
        self.calls.append(payment_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payments[payment_id]

    async def aclose(self) -> None:
        self.closed = True


class InMemoryStore:
    def __init__(self):
        self.orders = {}
        self.logs = []
        self.fail_order_writes = False
        self.fail_audit_appends = False
        self.write_count = 0


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_id(self, order_id):
        order = self.store.orders.get(order_id)
        return dataclasses.replace(order) if order else None

    async def apply_payment(self, order_id, update):
        if self.store.fail_order_writes:
            raise RuntimeError("database is locked")
        order = self.store.orders.get(order_id)
        if order is None:
            return False
        self.store.orders[order_id] = dataclasses.replace(
            order,
            status=update.status,
            payment_status=update.payment_status,
            payment_external_id=update.payment_external_id,
            payment_method=update.payment_method,
            payment_details=update.payment_details,
            payment_confirmed_at=update.payment_confirmed_at,
            updated_at=update.updated_at,
        )
        self.store.write_count += 1
        return True


class InMemoryAuditLogRepository(AuditLogRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def append(self, entry):
        if self.store.fail_audit_appends:
            raise RuntimeError("audit table unavailable")
        saved = dataclasses.replace(entry, id=len(self.store.logs) + 1)
        self.store.logs.append(saved)
        return saved

    async def list_recent(self, limit=20):
        ordered = sorted(self.store.logs, key=lambda e: (e.timestamp, e.id), reverse=True)
        return ordered[:limit]


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, store: InMemoryStore, *, readonly: bool = False):
        super().__init__(readonly=readonly)
        self.order_repository = InMemoryOrderRepository(store)
        self.webhook_log_repository = InMemoryAuditLogRepository(store)

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._committed = False


def make_payment(
    payment_id="123",
    status="approved",
    external_reference="ORD-1",
    **overrides,
) -> GatewayPayment:
    data = {
        "id": payment_id,
        "status": status,
        "status_detail": "accredited" if status == "approved" else status,
        "payment_type_id": "credit_card",
        "payment_method_id": "visa",
        "transaction_amount": Decimal("100.00"),
        "installments": 1,
        "external_reference": external_reference,
    }
    data.update(overrides)
    return GatewayPayment.model_validate(data)


@pytest.fixture
def store():
    s = InMemoryStore()
    s.orders["ORD-1"] = Order(id="ORD-1", status=OrderStatus.PENDING)
    return s


@pytest.fixture
def uow_factory(store):
    def _factory(*, readonly: bool = False):
        return FakeUnitOfWork(store, readonly=readonly)
    return _factory


@pytest.fixture
def verifier():
    return SignatureVerifier(WEBHOOK_SECRET)


@pytest_asyncio.fixture
async def sqlite_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine):
    return async_sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def sqlite_uow_factory(sqlite_session_factory):
    return sqlalchemy_uow_factory(sqlite_session_factory)


@pytest.fixture
def payment_factory():
    return make_payment


@pytest.fixture
def gateway_factory():
    return FakeGateway
