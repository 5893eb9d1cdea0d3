"""Generic pagination and multi-store fan-out helpers for the Dapic API."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Sequence

from saron.core.logging import get_logger

logger = get_logger(__name__)

NO_STORES_KEY = "geral"
NO_STORES_MESSAGE = "No stores configured"

FetchPage = Callable[[int], Awaitable[list[dict[str, Any]]]]
PerStoreFetch = Callable[[str], Awaitable[Any]]


@dataclass(frozen=True)
class PagePolicy:
    """Page size and safety cap for one resource."""

    per_page: int
    max_pages: int

    @property
    def max_records(self) -> int:
        """Upper bound of records fetched under this policy."""
        return self.per_page * self.max_pages


class FanOutMode(str, Enum):
    """How a request is spread over the stores."""

    PARALLEL = "parallel"  # tenant-scoped data, one call per store
    REPLICATE_FIRST = "replicate_first"  # tenant-shared data, first success copied to all


@dataclass
class FanOutResult:
    """Per-store data and per-store errors of a fan-out call."""

    data: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


def extract_records(body: Any) -> list[dict[str, Any]]:
    """
    Get the record list of a Dapic page body.

    Depending on the resource the list comes under "Resultado" or "Dados".
    """
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        return []
    records = body.get("Resultado") or body.get("Dados") or []
    return records if isinstance(records, list) else []


async def paginate(
    fetch_page: FetchPage,
    per_page: int,
    max_pages: int,
    label: str = "",
) -> AsyncIterator[list[dict[str, Any]]]:
    """
    Yield pages 1..n in order until the source is exhausted.

    A page shorter than per_page is the last one. Reaching max_pages
    stops the iteration with a warning instead of an error.

    Args:
        fetch_page: Coroutine function returning the records of a page number
        per_page: Records requested per page
        max_pages: Safety cap on the number of pages fetched
        label: Resource description used in log messages

    Yields:
        Non-empty record lists, one per page
    """
    page = 1
    while True:
        records = await fetch_page(page)

        if records:
            yield records

        if len(records) < per_page:
            logger.debug("Last page reached", resource=label, page=page, records=len(records))
            return

        if page >= max_pages:
            logger.warning(
                "Page cap reached, result truncated",
                resource=label,
                max_pages=max_pages,
                max_records=per_page * max_pages,
            )
            return

        page += 1


async def fan_out(
    stores: Sequence[str],
    per_store_fetch: PerStoreFetch,
    mode: FanOutMode = FanOutMode.PARALLEL,
    label: str = "",
) -> FanOutResult:
    """
    Run the same request against several stores.

    PARALLEL queries every store concurrently; a failing store is reported
    in errors and never cancels the others. REPLICATE_FIRST tries the stores
    in order and copies the first successful result under every store key.

    Args:
        stores: Store ids taking part in the fan-out
        per_store_fetch: Coroutine function fetching the data of one store
        mode: Fan-out strategy
        label: Resource description used in log messages

    Returns:
        FanOutResult with data and errors keyed by store id
    """
    result = FanOutResult()

    if not stores:
        result.errors[NO_STORES_KEY] = NO_STORES_MESSAGE
        return result

    if mode == FanOutMode.REPLICATE_FIRST:
        for store_id in stores:
            try:
                data = await per_store_fetch(store_id)
            except Exception as e:
                logger.warning("Store fetch failed, trying next store", resource=label, store=store_id, error=str(e))
                result.errors[store_id] = str(e)
                continue

            logger.info("Replicating store result to all stores", resource=label, source_store=store_id)
            result.data = {key: data for key in stores}
            result.errors = {}
            return result

        logger.error("Every store failed", resource=label, stores=list(stores))
        return result

    async def run(store_id: str) -> tuple[str, Any, Optional[Exception]]:
        try:
            return store_id, await per_store_fetch(store_id), None
        except Exception as e:
            return store_id, None, e

    outcomes = await asyncio.gather(*(run(store_id) for store_id in stores))

    for store_id, data, error in outcomes:
        if error is not None:
            logger.warning("Store fetch failed", resource=label, store=store_id, error=str(error))
            result.errors[store_id] = str(error)
        else:
            result.data[store_id] = data

    return result
