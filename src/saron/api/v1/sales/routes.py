"""Sales API routes - synced sales and sync triggers."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from saron.api.dependencies import get_sales_repository, get_sync_service
from saron.core.config import ALL_STORES, STORE_IDS
from saron.core.date_helpers import local_today, month_bounds
from saron.core.logging import get_logger
from saron.domain.entities.sales import SyncProgress
from saron.domain.services.sales_sync_service import SalesSyncService
from saron.infrastructure.database.sales_repository import SalesRepository

from .schemas import (
    SaleListResponse,
    SaleResponse,
    StoreSummary,
    SyncRequest,
    SyncResponse,
    SyncScope,
)

router = APIRouter(prefix="/sales", tags=["Sales"])
logger = get_logger(__name__)


def _check_store(store_id: Optional[str]) -> None:
    if store_id is None or store_id in STORE_IDS:
        return
    raise HTTPException(status_code=404, detail=f"Loja não encontrada: {store_id}")


def _window(request: SyncRequest, service: SalesSyncService) -> tuple[date, date]:
    today = local_today()
    if request.scope == SyncScope.TODAY:
        return today, today
    if request.scope == SyncScope.MONTH:
        return month_bounds(today)
    if request.scope == SyncScope.FULL:
        return service.FULL_HISTORY_START, today
    return request.start_date, request.end_date


@router.post("/sync", response_model=SyncResponse)
async def trigger_sync(
    request: SyncRequest,
    service: SalesSyncService = Depends(get_sync_service),
) -> SyncResponse:
    """
    Dispara sincronização de vendas do Dapic para o banco local.

    Sem store_id, as lojas são sincronizadas em sequência. A resposta só
    retorna quando a sincronização termina.
    """
    store_id = None if request.store_id == ALL_STORES else request.store_id
    _check_store(store_id)

    start_date, end_date = _window(request, service)
    logger.info(
        "Manual sales sync triggered",
        scope=request.scope.value,
        store=store_id or ALL_STORES,
        start=str(start_date),
        end=str(end_date),
    )

    if store_id:
        results = [await service.sync_store(store_id, start_date, end_date)]
    else:
        results = await service.sync_all_stores(start_date, end_date)

    succeeded = sum(1 for r in results if r.success)
    return SyncResponse(
        results=results,
        total_sales=sum(r.sales_count for r in results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
    )


@router.get("/sync/status", response_model=SyncProgress)
def get_sync_status(
    store_id: str = Query(..., description="Loja"),
    start_date: date = Query(..., description="Data inicial (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Data final (YYYY-MM-DD)"),
    service: SalesSyncService = Depends(get_sync_service),
) -> SyncProgress:
    """
    Retorna o estado da sincronização de uma loja para um período.
    """
    _check_store(store_id)
    progress = service.get_sync_status(store_id, start_date, end_date)
    if progress is None:
        raise HTTPException(status_code=404, detail="Nenhuma sincronização registrada para este período")
    return progress


@router.get("/sync/progress", response_model=List[SyncProgress])
def list_sync_progress(service: SalesSyncService = Depends(get_sync_service)) -> List[SyncProgress]:
    """
    Retorna todas as sincronizações registradas desde o início do processo.
    """
    return service.list_sync_progress()


@router.get("", response_model=SaleListResponse)
async def list_sales(
    store_id: Optional[str] = Query(None, description="Filtrar por loja"),
    start_date: Optional[date] = Query(None, description="Data inicial"),
    end_date: Optional[date] = Query(None, description="Data final"),
    page: int = Query(1, ge=1, description="Página"),
    per_page: int = Query(50, ge=1, le=500, description="Itens por página"),
    repository: SalesRepository = Depends(get_sales_repository),
) -> SaleListResponse:
    """
    Retorna vendas sincronizadas com paginação.
    """
    _check_store(store_id)

    total = await repository.count_sales(store_id, start_date, end_date)
    offset = (page - 1) * per_page
    sales = await repository.list_sales(store_id, start_date, end_date, limit=per_page, offset=offset)

    return SaleListResponse(
        items=[SaleResponse.model_validate(sale) for sale in sales],
        total=total,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page if total > 0 else 0,
    )


@router.get("/summary", response_model=List[StoreSummary])
async def get_sales_summary(
    start_date: Optional[date] = Query(None, description="Data inicial"),
    end_date: Optional[date] = Query(None, description="Data final"),
    repository: SalesRepository = Depends(get_sales_repository),
) -> List[StoreSummary]:
    """
    Retorna quantidade e valor total de vendas sincronizadas por loja.
    """
    rows = await repository.summarize_by_store(start_date, end_date)
    return [StoreSummary(**row) for row in rows]
