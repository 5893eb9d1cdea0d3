"""Dapic ERP API client with per-store authentication and fan-out."""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

import httpx

from saron.core.config import ALL_STORES, StoreCredential, get_settings
from saron.core.logging import get_logger
from saron.infrastructure.external_apis.pagination import (
    FanOutMode,
    FanOutResult,
    PagePolicy,
    extract_records,
    fan_out,
    paginate,
)

logger = get_logger(__name__)


class DapicAPIError(Exception):
    """Base exception for Dapic API errors."""

    pass


class ConfigurationError(DapicAPIError):
    """Store is unknown or has no credentials."""

    pass


class AuthenticationError(DapicAPIError):
    """Login call failed or returned an unusable token."""

    pass


class TransportError(DapicAPIError):
    """HTTP-level failure of a data call."""

    def __init__(self, message: str, store_id: str, endpoint: str) -> None:
        super().__init__(message)
        self.store_id = store_id
        self.endpoint = endpoint


# Safety margin subtracted from the server-reported token lifetime
TOKEN_EXPIRY_MARGIN_SECONDS = 300

LOGIN_ENDPOINT = "/autenticacao/v1/login"

# Page policies per resource
CLIENTES_POLICY = PagePolicy(per_page=200, max_pages=100)
PRODUTOS_POLICY = PagePolicy(per_page=200, max_pages=10)
VENDAS_POLICY = PagePolicy(per_page=200, max_pages=50)
CONTAS_PAGAR_POLICY = PagePolicy(per_page=200, max_pages=50)
ORCAMENTOS_POLICY = PagePolicy(per_page=200, max_pages=50)


class DapicAPIClient:
    """
    Async HTTP client for the Dapic ERP.

    Each store (tenant) has its own empresa/token pair and therefore its own
    bearer token. Tokens are cached per store until shortly before the
    expiry reported by the login call.

    Features:
    - Per-store authentication with token cache
    - Auto-pagination to exhaustion with per-resource safety caps
    - Fan-out over all stores ("todas"), parallel or replicate-from-one
    - No retries: transport errors surface to the caller with store context
    """

    def __init__(
        self,
        credentials: Optional[dict[str, StoreCredential]] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize Dapic API client.

        Args:
            credentials: Store credentials (from settings if not provided)
            base_url: Base URL of the Dapic API (from settings if not provided)
            timeout: Request timeout in seconds
            http_client: Optional preconfigured httpx.AsyncClient
            clock: Returns the current epoch time in seconds
        """
        settings = get_settings()

        self.credentials = credentials if credentials is not None else settings.store_credentials()
        self.base_url = (base_url or settings.dapic_api_url).rstrip("/")
        self.timeout = timeout or settings.dapic_timeout
        self._clock = clock

        self.client = http_client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        self._client_owned = http_client is None

        # store_id -> (access token, expiry in epoch milliseconds)
        self._tokens: dict[str, tuple[str, int]] = {}
        self._token_locks: dict[str, asyncio.Lock] = {}

        for store_id in self.credentials:
            logger.info("Dapic store configured", store=store_id)

        if not self.credentials:
            logger.warning("No Dapic credentials configured, ERP calls will fail")

    async def __aenter__(self) -> "DapicAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client_owned:
            await self.client.aclose()

    # ============================================
    # Stores
    # ============================================

    def get_available_stores(self) -> list[str]:
        """Get ids of the stores with both empresa and token configured."""
        return [
            store_id
            for store_id, credential in self.credentials.items()
            if credential.empresa and credential.token_integracao
        ]

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ============================================
    # Authentication
    # ============================================

    async def get_access_token(self, store_id: str) -> str:
        """
        Get a valid bearer token for a store, logging in when needed.

        Args:
            store_id: Store identifier

        Returns:
            Access token

        Raises:
            ConfigurationError: If the store has no credentials
            AuthenticationError: If the login call fails
        """
        credential = self.credentials.get(store_id)
        if credential is None or store_id not in self.get_available_stores():
            raise ConfigurationError(f"Dapic credentials not configured for store {store_id}")

        cached = self._tokens.get(store_id)
        if cached and self._now_ms() < cached[1]:
            return cached[0]

        lock = self._token_locks.setdefault(store_id, asyncio.Lock())
        async with lock:
            # Another coroutine may have logged in while we waited
            cached = self._tokens.get(store_id)
            if cached and self._now_ms() < cached[1]:
                return cached[0]

            return await self._authenticate(credential)

    async def _authenticate(self, credential: StoreCredential) -> str:
        store_id = credential.store_id
        logger.info("Authenticating with Dapic", store=store_id)

        try:
            response = await self.client.post(
                LOGIN_ENDPOINT,
                json={
                    "Empresa": credential.empresa,
                    "TokenIntegracao": credential.token_integracao,
                },
            )
            response.raise_for_status()

            data = response.json()
            token = data.get("access_token")
            if not token:
                raise AuthenticationError("No access token in authentication response")

            expires_in = int(data.get("expires_in"))

        except httpx.HTTPStatusError as e:
            logger.error("Dapic authentication failed", store=store_id, status_code=e.response.status_code)
            raise AuthenticationError(f"Failed to authenticate store {store_id} with Dapic API: {e}") from e
        except Exception as e:
            logger.error("Dapic authentication error", store=store_id, error=str(e))
            raise AuthenticationError(f"Failed to authenticate store {store_id} with Dapic API: {e}") from e

        expires_at = self._now_ms() + (expires_in - TOKEN_EXPIRY_MARGIN_SECONDS) * 1000
        self._tokens[store_id] = (token, expires_at)

        logger.info("Dapic authentication successful", store=store_id, expires_in=expires_in)
        return token

    # ============================================
    # HTTP Methods
    # ============================================

    async def make_request(
        self,
        store_id: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Make an authenticated GET request for one store.

        Args:
            store_id: Store identifier
            endpoint: API endpoint (e.g., "/v1/vendaspdv")
            params: Query parameters

        Returns:
            Response JSON body

        Raises:
            ConfigurationError: If the store has no credentials
            AuthenticationError: If the login call fails
            TransportError: If the request fails
        """
        token = await self.get_access_token(store_id)
        query = {key: value for key, value in (params or {}).items() if value is not None}

        logger.debug("Dapic request", store=store_id, endpoint=endpoint, params=query)

        try:
            response = await self.client.get(
                endpoint,
                params=query,
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()

            if response.status_code == 204 or not response.content:
                return None

            return response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "Dapic request failed",
                store=store_id,
                endpoint=endpoint,
                status_code=e.response.status_code,
            )
            raise TransportError(
                f"Dapic request {endpoint} failed for store {store_id}: {e}",
                store_id=store_id,
                endpoint=endpoint,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Dapic request error", store=store_id, endpoint=endpoint, error=str(e))
            raise TransportError(
                f"Dapic request {endpoint} failed for store {store_id}: {e}",
                store_id=store_id,
                endpoint=endpoint,
            ) from e

    async def fetch_all_pages(
        self,
        store_id: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        per_page: int = 200,
        max_pages: int = 50,
    ) -> Any:
        """
        Fetch every page of a listing for one store.

        When params carries an explicit "Pagina", only that page is requested
        and its raw body is returned.

        Args:
            store_id: Store identifier
            endpoint: API endpoint
            params: Query parameters (date filters etc.)
            per_page: Records per page
            max_pages: Safety cap on pages fetched

        Returns:
            Raw body for an explicit page, otherwise {"Dados": [all records]}
        """
        params = dict(params or {})

        if params.get("Pagina") is not None:
            params.setdefault("RegistrosPorPagina", per_page)
            return await self.make_request(store_id, endpoint, params)

        requested = params.get("RegistrosPorPagina") or per_page

        async def fetch_page(page: int) -> list[dict[str, Any]]:
            body = await self.make_request(
                store_id,
                endpoint,
                {**params, "Pagina": page, "RegistrosPorPagina": requested},
            )
            return extract_records(body)

        records: list[dict[str, Any]] = []
        async for page_records in paginate(fetch_page, requested, max_pages, label=f"{store_id}{endpoint}"):
            records.extend(page_records)

        logger.info("Fetched all pages", store=store_id, endpoint=endpoint, records=len(records))
        return {"Dados": records}

    # ============================================
    # Fan-out
    # ============================================

    async def fan_out_all_stores(
        self,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        policy: PagePolicy = VENDAS_POLICY,
    ) -> FanOutResult:
        """
        Query a tenant-scoped resource on every available store in parallel.

        A failing store is reported in errors and does not affect the others.
        """
        async def fetch(store_id: str) -> Any:
            return await self.fetch_all_pages(store_id, endpoint, params, policy.per_page, policy.max_pages)

        return await fan_out(self.get_available_stores(), fetch, FanOutMode.PARALLEL, label=endpoint)

    async def fan_out_replicated(
        self,
        fetcher: Callable[[str, Optional[dict[str, Any]]], Awaitable[Any]],
        params: Optional[dict[str, Any]] = None,
    ) -> FanOutResult:
        """
        Fetch a tenant-shared resource once and copy it under every store.

        Stores are tried in order until one succeeds.
        """
        async def fetch(store_id: str) -> Any:
            return await fetcher(store_id, params)

        label = getattr(fetcher, "__name__", "replicated")
        return await fan_out(self.get_available_stores(), fetch, FanOutMode.REPLICATE_FIRST, label=label)

    async def _listing(
        self,
        store_id: str,
        endpoint: str,
        params: Optional[dict[str, Any]],
        policy: PagePolicy,
    ) -> Any:
        return await self.fetch_all_pages(store_id, endpoint, params, policy.per_page, policy.max_pages)

    # ============================================
    # Clientes (tenant-shared)
    # ============================================

    async def _fetch_clientes(self, store_id: str, params: Optional[dict[str, Any]] = None) -> Any:
        return await self._listing(store_id, "/v1/clientes", params, CLIENTES_POLICY)

    async def get_clientes(self, store_id: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Get clients of a store, or of all stores when store_id is "todas".

        Clients are shared by the stores, so the all-stores call fetches
        them once and replicates the result.
        """
        if store_id == ALL_STORES:
            return await self.fan_out_replicated(self._fetch_clientes, params)
        return await self._fetch_clientes(store_id, params)

    async def get_cliente(self, store_id: str, cliente_id: int) -> Any:
        """Get a single client."""
        return await self.make_request(store_id, f"/v1/clientes/{cliente_id}")

    # ============================================
    # Produtos (tenant-shared)
    # ============================================

    async def _fetch_produtos(self, store_id: str, params: Optional[dict[str, Any]] = None) -> Any:
        return await self._listing(store_id, "/v1/produtos", params, PRODUTOS_POLICY)

    async def get_produtos(self, store_id: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Get products of a store, or replicated for all stores ("todas")."""
        if store_id == ALL_STORES:
            return await self.fan_out_replicated(self._fetch_produtos, params)
        return await self._fetch_produtos(store_id, params)

    async def get_produto(self, store_id: str, produto_id: int) -> Any:
        """Get a single product."""
        return await self.make_request(store_id, f"/v1/produtos/{produto_id}")

    # ============================================
    # Vendas PDV (tenant-scoped)
    # ============================================

    async def get_vendas_pdv(self, store_id: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Get point-of-sale sales.

        Args:
            store_id: Store identifier or "todas"
            params: DataInicial, DataFinal, FiltrarPor, Status, Pagina, RegistrosPorPagina

        Returns:
            Page body / {"Dados": [...]} for one store, FanOutResult for "todas"
        """
        if store_id == ALL_STORES:
            return await self.fan_out_all_stores("/v1/vendaspdv", params, VENDAS_POLICY)
        return await self._listing(store_id, "/v1/vendaspdv", params, VENDAS_POLICY)

    # ============================================
    # Orcamentos (tenant-scoped)
    # ============================================

    async def get_orcamentos(self, store_id: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Get quotes of a store, or of every store ("todas")."""
        if store_id == ALL_STORES:
            return await self.fan_out_all_stores("/v1/orcamentos", params, ORCAMENTOS_POLICY)
        return await self._listing(store_id, "/v1/orcamentos", params, ORCAMENTOS_POLICY)

    async def get_orcamento(self, store_id: str, orcamento_id: int) -> Any:
        """Get a single quote."""
        return await self.make_request(store_id, f"/v1/orcamentos/{orcamento_id}")

    # ============================================
    # Contas a Pagar (tenant-scoped)
    # ============================================

    async def get_contas_pagar(self, store_id: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Get accounts payable of a store, or of every store ("todas")."""
        if store_id == ALL_STORES:
            return await self.fan_out_all_stores("/v1/contas-pagar", params, CONTAS_PAGAR_POLICY)
        return await self._listing(store_id, "/v1/contas-pagar", params, CONTAS_PAGAR_POLICY)
