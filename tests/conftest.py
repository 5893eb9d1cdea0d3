"""Pytest configuration and fixtures."""

import json
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from saron.api.v1.router import api_router
from saron.core.config import STORE_IDS, StoreCredential
from saron.domain.entities.sales import SaleData, SaleItemData
from saron.domain.ports import ISalesRepository
from saron.domain.services.sales_sync_service import SalesSyncService
from saron.infrastructure.database.base import init_db
from saron.infrastructure.database.sales_repository import SalesRepository
from saron.infrastructure.external_apis.dapic_client import DapicAPIClient

DAPIC_TEST_URL = "https://dapic.test"
FIXED_TODAY = date(2024, 3, 15)


def build_credentials(*store_ids: str) -> dict[str, StoreCredential]:
    """Credentials for the given stores (all stores by default)."""
    return {
        store_id: StoreCredential(
            store_id=store_id,
            empresa=f"empresa-{store_id}",
            token_integracao=f"integracao-{store_id}",
        )
        for store_id in (store_ids or STORE_IDS)
    }


def build_sale_record(code: Any, **overrides: Any) -> dict[str, Any]:
    """Raw vendaspdv record as returned by Dapic."""
    record = {
        "Codigo": code,
        "DataFechamento": "2024-03-10T14:30:00",
        "ValorLiquido": 150.5,
        "NomeVendedor": "Maria",
        "NomeCliente": "Cliente Teste",
        "Status": "Finalizado",
        "FormaPagamento": "Cartão",
        "Itens": [
            {
                "CodigoProduto": "P001",
                "Descricao": "Camiseta",
                "Quantidade": 2,
                "ValorUnitario": 50.25,
                "ValorTotal": 100.5,
            },
            {
                "CodigoProduto": "P002",
                "Descricao": "Boné",
                "Quantidade": 1,
                "ValorUnitario": 50,
                "ValorTotal": 50,
            },
        ],
    }
    record.update(overrides)
    return record


# =============================================================================
# Dapic API fake
# =============================================================================


class FakeDapicServer:
    """In-memory Dapic API served through httpx.MockTransport.

    Tokens are "token-<store>", so data calls know the store from the
    bearer header. Listings are sliced with Pagina/RegistrosPorPagina.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.login_calls: dict[str, int] = defaultdict(int)
        self.expires_in = 3600
        self.failing_logins: set[str] = set()
        self.login_payload: Optional[dict[str, Any]] = None
        self.failing_stores: set[str] = set()
        # (store, path) -> list of records, or a single object for detail paths
        self.resources: dict[tuple[str, str], Any] = {}

    def set_records(self, store_id: str, path: str, records: list[dict[str, Any]]) -> None:
        self.resources[(store_id, path)] = records

    def data_requests(self, path: Optional[str] = None, store_id: Optional[str] = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if not r.url.path.startswith("/autenticacao")
            and (path is None or r.url.path == path)
            and (store_id is None or r.headers.get("Authorization") == f"Bearer token-{store_id}")
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/autenticacao/v1/login":
            body = json.loads(request.content)
            store_id = body["Empresa"].replace("empresa-", "", 1)
            self.login_calls[store_id] += 1
            if store_id in self.failing_logins:
                return httpx.Response(401, json={"message": "Credenciais inválidas"})
            if self.login_payload is not None:
                return httpx.Response(200, json=self.login_payload)
            return httpx.Response(200, json={"access_token": f"token-{store_id}", "expires_in": self.expires_in})

        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer token-"):
            return httpx.Response(401, json={"message": "Unauthorized"})
        store_id = auth.replace("Bearer token-", "", 1)

        if store_id in self.failing_stores:
            return httpx.Response(500, json={"message": "Erro interno"})

        resource = self.resources.get((store_id, request.url.path))
        if resource is None:
            return httpx.Response(404, json={"message": "Não encontrado"})
        if not isinstance(resource, list):
            return httpx.Response(200, json=resource)

        page = int(request.url.params.get("Pagina", 1))
        per_page = int(request.url.params.get("RegistrosPorPagina", 200))
        start = (page - 1) * per_page
        return httpx.Response(200, json={"Dados": resource[start:start + per_page]})


class FakeClock:
    """Controllable epoch clock for token expiry tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def make_sale_record():
    """Raw vendaspdv record builder."""
    return build_sale_record


@pytest.fixture
def make_credentials():
    """Credential map builder, all stores when called without arguments."""
    return build_credentials


@pytest.fixture
def dapic_server() -> FakeDapicServer:
    return FakeDapicServer()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_dapic_client(dapic_server: FakeDapicServer, fake_clock: FakeClock):
    """Factory building a DapicAPIClient wired to the fake server."""

    def factory(credentials: Optional[dict[str, StoreCredential]] = None) -> DapicAPIClient:
        http_client = httpx.AsyncClient(
            base_url=DAPIC_TEST_URL,
            transport=httpx.MockTransport(dapic_server.handler),
        )
        return DapicAPIClient(
            credentials=build_credentials() if credentials is None else credentials,
            base_url=DAPIC_TEST_URL,
            http_client=http_client,
            clock=fake_clock,
        )

    return factory


@pytest_asyncio.fixture
async def dapic_client(make_dapic_client) -> AsyncGenerator[DapicAPIClient, None]:
    """Dapic client with credentials for every store."""
    client = make_dapic_client()
    yield client
    await client.client.aclose()


# =============================================================================
# Persistence
# =============================================================================


class InMemorySalesRepository(ISalesRepository):
    """Sales repository keeping rows in a list."""

    def __init__(self) -> None:
        self.sales: list[tuple[SaleData, list[SaleItemData]]] = []
        self.delete_calls: list[tuple[str, date, date]] = []
        self.failing_deletes: set[str] = set()
        self.failing_codes: set[str] = set()

    async def delete_sales_by_period(self, store_id: str, start_date: date, end_date: date) -> int:
        self.delete_calls.append((store_id, start_date, end_date))
        if store_id in self.failing_deletes:
            raise RuntimeError("database unavailable")

        kept = [
            (sale, items)
            for sale, items in self.sales
            if not (sale.store_id == store_id and start_date <= sale.sale_date <= end_date)
        ]
        deleted = len(self.sales) - len(kept)
        self.sales = kept
        return deleted

    async def create_sale_with_items(self, sale: SaleData, items: list[SaleItemData]) -> SaleData:
        if sale.sale_code in self.failing_codes:
            raise RuntimeError(f"insert failed for {sale.sale_code}")
        self.sales.append((sale, items))
        return sale

    def codes(self, store_id: Optional[str] = None) -> list[str]:
        return [sale.sale_code for sale, _ in self.sales if store_id is None or sale.store_id == store_id]


@pytest.fixture
def memory_repository() -> InMemorySalesRepository:
    return InMemorySalesRepository()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,  # Single connection pool for shared in-memory DB
    )
    await init_db(engine)

    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest.fixture
def sales_repository(session_factory) -> SalesRepository:
    return SalesRepository(session_factory)


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def api_app(dapic_server: FakeDapicServer, fake_clock: FakeClock) -> FastAPI:
    """
    Application with the v1 routes and test doubles on app.state.

    State is built in the lifespan so the database engine and the HTTP
    client live on the TestClient event loop.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
        await init_db(engine)

        http_client = httpx.AsyncClient(
            base_url=DAPIC_TEST_URL,
            transport=httpx.MockTransport(dapic_server.handler),
        )
        app.state.dapic_client = DapicAPIClient(
            credentials=build_credentials(),
            base_url=DAPIC_TEST_URL,
            http_client=http_client,
            clock=fake_clock,
        )
        app.state.sales_repository = SalesRepository(
            async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
        )
        app.state.sync_service = SalesSyncService(
            app.state.dapic_client,
            app.state.sales_repository,
            today=lambda: FIXED_TODAY,
        )

        yield

        await http_client.aclose()
        await engine.dispose()

    app = FastAPI(lifespan=lifespan)
    app.include_router(api_router, prefix="/api/v1")
    return app


@pytest.fixture
def client(api_app: FastAPI):
    """FastAPI TestClient running the test lifespan."""
    with TestClient(api_app) as test_client:
        yield test_client
