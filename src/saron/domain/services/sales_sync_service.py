"""Sales synchronization service - mirrors Dapic PDV sales into the local database."""

from datetime import date
from typing import Any, Callable, Optional, Sequence

from saron.core.config import STORE_IDS
from saron.core.date_helpers import local_today, month_bounds, utc_now
from saron.core.logging import get_logger
from saron.domain.entities.sales import SyncProgress, SyncResult, SyncStatus
from saron.domain.ports import ISalesRepository
from saron.domain.services.dapic_transformer import DapicSaleTransformer
from saron.infrastructure.external_apis.dapic_client import DapicAPIClient
from saron.infrastructure.external_apis.pagination import extract_records, paginate

logger = get_logger(__name__)

ALREADY_RUNNING_MESSAGE = "Sincronização já em andamento para este período"


class SalesSyncService:
    """Service to synchronize PDV sales from Dapic to the Saron database.

    A sync run replaces the whole (store, window) slice: stored sales in the
    window are deleted, then every page of the ERP listing is re-imported.
    Progress is tracked in memory per (store, start, end) key so that an
    identical window cannot run twice at the same time in this process.
    """

    SALES_ENDPOINT = "/v1/vendaspdv"
    SALES_PAGE_SIZE = 200
    SALES_MAX_PAGES = 100

    # First date covered by a full history import
    FULL_HISTORY_START = date(2024, 1, 1)

    def __init__(
        self,
        api_client: DapicAPIClient,
        repository: ISalesRepository,
        transformer: Optional[DapicSaleTransformer] = None,
        stores: Sequence[str] = STORE_IDS,
        today: Callable[[], date] = local_today,
    ) -> None:
        """
        Initialize sync service.

        Args:
            api_client: Dapic API client
            repository: Sales persistence gateway
            transformer: ERP record transformer (default instance if not provided)
            stores: Stores synchronized by sync_all_stores, in order
            today: Returns the current date in the stores' timezone
        """
        self.api_client = api_client
        self.repository = repository
        self.transformer = transformer or DapicSaleTransformer(today=today)
        self.stores = tuple(stores)
        self._today = today
        self._progress: dict[str, SyncProgress] = {}

    @staticmethod
    def _sync_key(store_id: str, start_date: date, end_date: date) -> str:
        return f"{store_id}-{start_date.isoformat()}-{end_date.isoformat()}"

    # ============================================
    # Single store
    # ============================================

    async def sync_store(self, store_id: str, start_date: date, end_date: date) -> SyncResult:
        """
        Replace the stored sales of a store for a date window with the ERP data.

        Never raises: failures are reported through SyncResult.success/error.
        Cancellation is re-raised after the run is marked failed.

        Args:
            store_id: Store identifier
            start_date: First day of the window (inclusive)
            end_date: Last day of the window (inclusive)

        Returns:
            SyncResult with the number of sales stored
        """
        sync_key = self._sync_key(store_id, start_date, end_date)

        current = self._progress.get(sync_key)
        if current is not None and current.status == SyncStatus.IN_PROGRESS:
            logger.warning("Sync already running", store=store_id, start=str(start_date), end=str(end_date))
            return SyncResult(success=False, store=store_id, error=ALREADY_RUNNING_MESSAGE)

        progress = SyncProgress(
            store=store_id,
            start_date=start_date,
            end_date=end_date,
            status=SyncStatus.IN_PROGRESS,
            started_at=utc_now(),
        )
        self._progress[sync_key] = progress

        deleted = 0
        try:
            logger.info("Starting sales sync", store=store_id, start=str(start_date), end=str(end_date))

            deleted = await self.repository.delete_sales_by_period(store_id, start_date, end_date)
            logger.info("Stale sales deleted", store=store_id, deleted=deleted)

            processed_codes: set[str] = set()

            async def fetch_page(page: int) -> list[dict[str, Any]]:
                logger.debug("Fetching sales page", store=store_id, page=page)
                body = await self.api_client.get_vendas_pdv(
                    store_id,
                    {
                        "DataInicial": start_date.isoformat(),
                        "DataFinal": end_date.isoformat(),
                        "Pagina": page,
                        "RegistrosPorPagina": self.SALES_PAGE_SIZE,
                    },
                )
                return extract_records(body)

            async for records in paginate(
                fetch_page,
                self.SALES_PAGE_SIZE,
                self.SALES_MAX_PAGES,
                label=f"{store_id}{self.SALES_ENDPOINT}",
            ):
                for record in records:
                    await self._store_record(record, store_id, start_date, end_date, processed_codes, progress)

        except Exception as e:
            logger.error("Sales sync failed", store=store_id, error=str(e), exc_info=True)
            progress.status = SyncStatus.FAILED
            progress.sales_count = 0
            progress.error = str(e)
            progress.finished_at = utc_now()
            return SyncResult(
                success=False,
                store=store_id,
                sales_count=0,
                error=str(e),
                duplicates_skipped=progress.duplicates_skipped,
                records_skipped=progress.records_skipped,
                deleted_count=deleted,
            )
        except BaseException:
            # Cancelled mid-run: release the window key
            logger.warning("Sales sync cancelled", store=store_id, start=str(start_date), end=str(end_date))
            progress.status = SyncStatus.FAILED
            progress.error = "cancelled"
            progress.finished_at = utc_now()
            raise

        if progress.duplicates_skipped:
            logger.info("Duplicate sales ignored", store=store_id, duplicates=progress.duplicates_skipped)

        progress.status = SyncStatus.COMPLETED
        progress.finished_at = utc_now()

        logger.info(
            "Sales sync completed",
            store=store_id,
            sales=progress.sales_count,
            skipped=progress.records_skipped,
        )
        return SyncResult(
            success=True,
            store=store_id,
            sales_count=progress.sales_count,
            duplicates_skipped=progress.duplicates_skipped,
            records_skipped=progress.records_skipped,
            deleted_count=deleted,
        )

    async def _store_record(
        self,
        record: dict[str, Any],
        store_id: str,
        start_date: date,
        end_date: date,
        processed_codes: set[str],
        progress: SyncProgress,
    ) -> None:
        """Normalize and persist one ERP record; failures are logged and counted.

        Only sales dated inside the window are stored, since the next run
        of the window only deletes rows in that range.
        """
        try:
            sale_code = self.transformer.sale_code(record)

            if sale_code in processed_codes:
                progress.duplicates_skipped += 1
                return
            processed_codes.add(sale_code)

            sale, items = self.transformer.transform_sale(record, store_id, default_date=end_date)
            if not start_date <= sale.sale_date <= end_date:
                progress.records_skipped += 1
                logger.warning(
                    "Sale dated outside sync window",
                    store=store_id,
                    sale_code=sale_code,
                    sale_date=str(sale.sale_date),
                    start=str(start_date),
                    end=str(end_date),
                )
                return

            await self.repository.create_sale_with_items(sale, items)
            progress.sales_count += 1

        except Exception as e:
            progress.records_skipped += 1
            raw_code = (record.get("Codigo") or record.get("CodigoVenda")) if isinstance(record, dict) else None
            logger.error("Error processing sale", store=store_id, sale_code=raw_code, error=str(e))

    # ============================================
    # All stores
    # ============================================

    async def sync_all_stores(self, start_date: date, end_date: date) -> list[SyncResult]:
        """
        Sync every store for the same window, one store at a time.

        A failing store does not stop the following ones.
        """
        results: list[SyncResult] = []
        for store_id in self.stores:
            results.append(await self.sync_store(store_id, start_date, end_date))

        succeeded = sum(1 for r in results if r.success)
        logger.info(
            "All stores synced",
            start=str(start_date),
            end=str(end_date),
            succeeded=succeeded,
            total=len(results),
            sales=sum(r.sales_count for r in results),
        )
        return results

    async def sync_today(self) -> list[SyncResult]:
        """Sync today's sales of every store."""
        today = self._today()
        logger.info("Syncing today's sales", date=str(today))
        return await self.sync_all_stores(today, today)

    async def sync_current_month(self) -> list[SyncResult]:
        """Sync the current calendar month of every store."""
        start_date, end_date = month_bounds(self._today())
        logger.info("Syncing current month", start=str(start_date), end=str(end_date))
        return await self.sync_all_stores(start_date, end_date)

    async def sync_full_history(self) -> list[SyncResult]:
        """Re-import every store from FULL_HISTORY_START through today."""
        end_date = self._today()
        logger.info("Starting full history sync", start=str(self.FULL_HISTORY_START), end=str(end_date))
        return await self.sync_all_stores(self.FULL_HISTORY_START, end_date)

    # ============================================
    # Status
    # ============================================

    def get_sync_status(self, store_id: str, start_date: date, end_date: date) -> Optional[SyncProgress]:
        """Get the progress of the last run for a (store, window) key, if any."""
        return self._progress.get(self._sync_key(store_id, start_date, end_date))

    def list_sync_progress(self) -> list[SyncProgress]:
        """Get the progress of every key tracked since startup, newest first."""
        return sorted(self._progress.values(), key=lambda p: p.started_at, reverse=True)
