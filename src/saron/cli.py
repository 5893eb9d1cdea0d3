"""CLI application entry point."""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional

import click
from dotenv import load_dotenv

from saron.core.config import STORE_IDS, get_settings
from saron.core.logging import configure_logging, get_logger
from saron.domain.entities.sales import SyncResult
from saron.domain.services.sales_sync_service import SalesSyncService
from saron.infrastructure.database.base import init_db
from saron.infrastructure.database.sales_repository import SalesRepository
from saron.infrastructure.external_apis.dapic_client import DapicAPIClient

# Load environment variables from .env file
dotenv_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path)

# Configure logging on module import
configure_logging()
logger = get_logger(__name__)


def _echo_results(results: list[SyncResult]) -> None:
    total = sum(r.sales_count for r in results)
    succeeded = sum(1 for r in results if r.success)

    click.echo(f"\n📊 Resumo:")
    click.echo(f"   • Vendas sincronizadas: {total}")
    click.echo(f"   • Lojas com sucesso: {succeeded}/{len(results)}")
    for result in results:
        if result.success:
            extra = f" ({result.duplicates_skipped} duplicatas ignoradas)" if result.duplicates_skipped else ""
            click.echo(f"   ✓ {result.store}: {result.sales_count} vendas{extra}")
        else:
            click.echo(f"   ✗ {result.store}: ERRO - {result.error}")


async def _with_service(action: Callable[[SalesSyncService], Awaitable[list[SyncResult]]]) -> list[SyncResult]:
    await init_db()
    async with DapicAPIClient() as api_client:
        service = SalesSyncService(api_client, SalesRepository())
        return await action(service)


def _run_sync(action: Callable[[SalesSyncService], Awaitable[list[SyncResult]]]) -> None:
    try:
        results = asyncio.run(_with_service(action))
    except Exception as e:
        logger.error("Sync command failed", error=str(e), exc_info=True)
        click.echo(f"\n❌ Erro durante sincronização: {e}", err=True)
        raise click.Abort()

    _echo_results(results)
    if not any(r.success for r in results):
        raise SystemExit(1)


@click.group()
@click.version_option(version="0.1.0")
def app() -> None:
    """Saron - Sincronização de vendas do Dapic."""
    pass


@app.command("init-db")
def init_database() -> None:
    """Inicializa o banco de dados."""
    click.echo("🔧 Inicializando banco de dados...")
    asyncio.run(init_db())
    click.echo("✅ Banco de dados inicializado")


@app.command()
def stores() -> None:
    """Lista as lojas e o estado das credenciais Dapic."""
    credentials = get_settings().store_credentials()
    for store_id in STORE_IDS:
        status = "configurada" if store_id in credentials else "sem credenciais"
        click.echo(f"   • {store_id}: {status}")


@app.command()
@click.option(
    "--store",
    "store_id",
    type=click.Choice(list(STORE_IDS)),
    help="Loja a sincronizar. Se omitido, sincroniza todas em sequência.",
)
@click.option(
    "--start",
    "start",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    required=True,
    help="Data inicial (formato: YYYY-MM-DD)",
)
@click.option(
    "--end",
    "end",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    required=True,
    help="Data final (formato: YYYY-MM-DD)",
)
def sync(store_id: Optional[str], start: datetime, end: datetime) -> None:
    """Sincroniza as vendas de um período (substitui o período no banco)."""
    start_date, end_date = start.date(), end.date()
    if start_date > end_date:
        click.echo("❌ Erro: data inicial maior que a data final", err=True)
        raise click.Abort()

    click.echo(f"🚀 Sincronizando {store_id or 'todas as lojas'}: {start_date} a {end_date}")

    async def action(service: SalesSyncService) -> list[SyncResult]:
        if store_id:
            return [await service.sync_store(store_id, start_date, end_date)]
        return await service.sync_all_stores(start_date, end_date)

    _run_sync(action)


@app.command("sync-today")
def sync_today() -> None:
    """Sincroniza as vendas de hoje de todas as lojas."""
    click.echo("🚀 Sincronizando vendas de hoje")
    _run_sync(lambda service: service.sync_today())


@app.command("sync-month")
def sync_month() -> None:
    """Sincroniza o mês atual de todas as lojas."""
    click.echo("🚀 Sincronizando mês atual")
    _run_sync(lambda service: service.sync_current_month())


@app.command("sync-history")
@click.confirmation_option(prompt="Reimportar todo o histórico de vendas?")
def sync_history() -> None:
    """Reimporta todo o histórico de vendas desde 2024-01-01."""
    click.echo("🚀 Sincronização completa do histórico")
    _run_sync(lambda service: service.sync_full_history())


@app.command()
def scheduler() -> None:
    """Executa apenas o agendador de sincronização (sem API HTTP)."""
    from saron.core.scheduler import SalesSyncScheduler

    async def serve() -> None:
        await init_db()
        async with DapicAPIClient() as api_client:
            service = SalesSyncService(api_client, SalesRepository())
            sync_scheduler = SalesSyncScheduler(service)
            sync_scheduler.start()
            click.echo("⏰ Agendador iniciado (Ctrl+C para sair)")
            try:
                await asyncio.Event().wait()
            finally:
                sync_scheduler.stop()

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        click.echo("\n👋 Agendador encerrado")


if __name__ == "__main__":
    app()
