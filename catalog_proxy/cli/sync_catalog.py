# catalog_proxy/cli/sync_catalog.py
import asyncio
import json

import click

from catalog_proxy.core.config import get_settings
from catalog_proxy.core.enums import SyncStatus
from catalog_proxy.core.exceptions import SyncCooldownError
from catalog_proxy.core.logging_config import configure_logging
from catalog_proxy.database import create_tables, engine
from catalog_proxy.scheduler import build_sync_service
from catalog_proxy.services.mercadolibre.token_manager import TokenCache


@click.command()
@click.option('--force', is_flag=True, help='Ignore the cooldown since the last started sync')
@click.option('--include-items', is_flag=True, help='Include every normalized item in the output')
@click.option('--json', 'as_json', is_flag=True, help='Print the full result as JSON')
def sync_catalog(force, include_items, as_json):
    """Run a full catalog sync from the command line"""
    configure_logging()

    async def _sync():
        await create_tables()
        service = build_sync_service(get_settings(), TokenCache())
        try:
            return await service.run_sync(force=force, include_items=include_items)
        finally:
            await engine.dispose()

    try:
        result = asyncio.run(_sync())
    except SyncCooldownError as e:
        click.echo(f"Sync skipped: {str(e)}", err=True)
        raise SystemExit(2)

    if as_json:
        click.echo(json.dumps(result.to_response(), indent=2, ensure_ascii=False))
    else:
        for line in result.logs:
            click.echo(line)
        if result.stats:
            stats = result.stats
            click.echo(
                f"\n{result.status.value}: {stats.total} items "
                f"({stats.active} active, {stats.paused} paused, {stats.closed} closed) "
                f"in {stats.duration_seconds}s"
            )
        if result.error:
            click.echo(f"Error: {result.error}", err=True)

    if result.status == SyncStatus.ERROR:
        raise SystemExit(1)


if __name__ == "__main__":
    sync_catalog()
