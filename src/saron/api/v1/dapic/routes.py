"""Dapic API routes - live reads from the ERP, per store or for all stores."""

from datetime import date, timedelta
from typing import Any, Awaitable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from saron.api.dependencies import get_dapic_client
from saron.core.config import ALL_STORES, STORE_IDS
from saron.core.date_helpers import local_today, parse_iso_date
from saron.core.logging import get_logger
from saron.infrastructure.external_apis.dapic_client import (
    AuthenticationError,
    ConfigurationError,
    DapicAPIClient,
    TransportError,
)
from saron.infrastructure.external_apis.pagination import FanOutResult

from .schemas import AllStoresResponse, StoresResponse

router = APIRouter(prefix="/dapic", tags=["Dapic"])
logger = get_logger(__name__)

DEFAULT_START_DATE = "2020-01-01"


def _check_store(store_id: str, allow_all: bool = True) -> None:
    if store_id in STORE_IDS or (allow_all and store_id == ALL_STORES):
        return
    raise HTTPException(status_code=404, detail=f"Loja não encontrada: {store_id}")


def _validated_date(value: Optional[str], default: date) -> str:
    if not value:
        return default.isoformat()
    try:
        return parse_iso_date(value).isoformat()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def _call(request: Awaitable[Any], resource: str) -> Any:
    """Await a Dapic call and map client errors to HTTP errors."""
    try:
        result = await request
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (AuthenticationError, TransportError) as e:
        logger.error("Dapic call failed", resource=resource, error=str(e))
        raise HTTPException(status_code=502, detail=f"Falha ao consultar {resource} no Dapic: {e}")

    if isinstance(result, FanOutResult):
        return AllStoresResponse(stores=result.data, errors=result.errors)
    return result


def _listing_params(
    data_inicial: Optional[str],
    data_final: Optional[str],
    pagina: Optional[int],
    registros_por_pagina: Optional[int],
) -> dict[str, Any]:
    return {
        "DataInicial": _validated_date(data_inicial, date.fromisoformat(DEFAULT_START_DATE)),
        "DataFinal": _validated_date(data_final, local_today()),
        "Pagina": pagina,
        "RegistrosPorPagina": registros_por_pagina,
    }


@router.get("/stores", response_model=StoresResponse)
def list_stores(api_client: DapicAPIClient = Depends(get_dapic_client)) -> StoresResponse:
    """
    Retorna as lojas com credenciais Dapic configuradas.
    """
    return StoresResponse(stores=api_client.get_available_stores(), all_stores_key=ALL_STORES)


@router.get("/{store_id}/clientes")
async def list_clientes(
    store_id: str,
    data_inicial: Optional[str] = Query(None, alias="DataInicial", description="Data inicial (YYYY-MM-DD)"),
    data_final: Optional[str] = Query(None, alias="DataFinal", description="Data final (YYYY-MM-DD)"),
    pagina: Optional[int] = Query(None, alias="Pagina", ge=1, description="Página específica (desativa paginação automática)"),
    registros_por_pagina: Optional[int] = Query(None, alias="RegistrosPorPagina", ge=1, le=200),
    api_client: DapicAPIClient = Depends(get_dapic_client),
) -> Any:
    """
    Retorna clientes de uma loja, ou de todas as lojas com store_id=todas.
    """
    _check_store(store_id)
    params = _listing_params(data_inicial, data_final, pagina, registros_por_pagina)
    return await _call(api_client.get_clientes(store_id, params), "clientes")


@router.get("/{store_id}/clientes/{cliente_id}")
async def get_cliente(
    store_id: str,
    cliente_id: int,
    api_client: DapicAPIClient = Depends(get_dapic_client),
) -> Any:
    """
    Retorna um cliente.
    """
    _check_store(store_id, allow_all=False)
    return await _call(api_client.get_cliente(store_id, cliente_id), "cliente")


@router.get("/{store_id}/orcamentos")
async def list_orcamentos(
    store_id: str,
    data_inicial: Optional[str] = Query(None, alias="DataInicial", description="Data inicial (YYYY-MM-DD)"),
    data_final: Optional[str] = Query(None, alias="DataFinal", description="Data final (YYYY-MM-DD)"),
    pagina: Optional[int] = Query(None, alias="Pagina", ge=1),
    registros_por_pagina: Optional[int] = Query(None, alias="RegistrosPorPagina", ge=1, le=200),
    api_client: DapicAPIClient = Depends(get_dapic_client),
) -> Any:
    """
    Retorna orçamentos de uma loja, ou de todas as lojas com store_id=todas.
    """
    _check_store(store_id)
    params = _listing_params(data_inicial, data_final, pagina, registros_por_pagina)
    return await _call(api_client.get_orcamentos(store_id, params), "orçamentos")


@router.get("/{store_id}/orcamentos/{orcamento_id}")
async def get_orcamento(
    store_id: str,
    orcamento_id: int,
    api_client: DapicAPIClient = Depends(get_dapic_client),
) -> Any:
    """
    Retorna um orçamento.
    """
    _check_store(store_id, allow_all=False)
    return await _call(api_client.get_orcamento(store_id, orcamento_id), "orçamento")


@router.get("/{store_id}/vendaspdv")
async def list_vendas_pdv(
    store_id: str,
    data_inicial: Optional[str] = Query(None, alias="DataInicial", description="Data inicial (YYYY-MM-DD). Padrão: 30 dias atrás"),
    data_final: Optional[str] = Query(None, alias="DataFinal", description="Data final (YYYY-MM-DD). Padrão: hoje"),
    filtrar_por: str = Query("0", alias="FiltrarPor"),
    status: str = Query("1", alias="Status"),
    pagina: int = Query(1, alias="Pagina", ge=1),
    registros_por_pagina: int = Query(200, alias="RegistrosPorPagina", ge=1, le=200),
    api_client: DapicAPIClient = Depends(get_dapic_client),
) -> Any:
    """
    Retorna vendas PDV de uma loja, ou de todas as lojas com store_id=todas.
    """
    _check_store(store_id)
    today = local_today()
    params = {
        "DataInicial": _validated_date(data_inicial, today - timedelta(days=30)),
        "DataFinal": _validated_date(data_final, today),
        "FiltrarPor": filtrar_por,
        "Status": status,
        "Pagina": pagina,
        "RegistrosPorPagina": registros_por_pagina,
    }
    return await _call(api_client.get_vendas_pdv(store_id, params), "vendas PDV")


@router.get("/{store_id}/produtos")
async def list_produtos(
    store_id: str,
    data_inicial: Optional[str] = Query(None, alias="DataInicial", description="Data inicial (YYYY-MM-DD)"),
    data_final: Optional[str] = Query(None, alias="DataFinal", description="Data final (YYYY-MM-DD)"),
    pagina: Optional[int] = Query(None, alias="Pagina", ge=1),
    registros_por_pagina: Optional[int] = Query(None, alias="RegistrosPorPagina", ge=1, le=200),
    api_client: DapicAPIClient = Depends(get_dapic_client),
) -> Any:
    """
    Retorna produtos de uma loja, ou de todas as lojas com store_id=todas.
    """
    _check_store(store_id)
    params = _listing_params(data_inicial, data_final, pagina, registros_por_pagina)
    return await _call(api_client.get_produtos(store_id, params), "produtos")


@router.get("/{store_id}/produtos/{produto_id}")
async def get_produto(
    store_id: str,
    produto_id: int,
    api_client: DapicAPIClient = Depends(get_dapic_client),
) -> Any:
    """
    Retorna um produto.
    """
    _check_store(store_id, allow_all=False)
    return await _call(api_client.get_produto(store_id, produto_id), "produto")


@router.get("/{store_id}/contas-pagar")
async def list_contas_pagar(
    store_id: str,
    data_inicial: Optional[str] = Query(None, alias="DataInicial", description="Data inicial (YYYY-MM-DD)"),
    data_final: Optional[str] = Query(None, alias="DataFinal", description="Data final (YYYY-MM-DD)"),
    pagina: Optional[int] = Query(None, alias="Pagina", ge=1),
    registros_por_pagina: Optional[int] = Query(None, alias="RegistrosPorPagina", ge=1, le=200),
    api_client: DapicAPIClient = Depends(get_dapic_client),
) -> Any:
    """
    Retorna contas a pagar de uma loja, ou de todas as lojas com store_id=todas.
    """
    _check_store(store_id)
    params = _listing_params(data_inicial, data_final, pagina, registros_por_pagina)
    return await _call(api_client.get_contas_pagar(store_id, params), "contas a pagar")
