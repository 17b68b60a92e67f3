# catalog_proxy/cli/create_tables.py
import asyncio

import click

from catalog_proxy.core.config import get_settings
from catalog_proxy.database import build_engine, create_tables as create_all


@click.command()
@click.option('--database-url', default=None, help='Override DATABASE_URL')
def create_tables(database_url):
    """Create the key-value table directly using SQLAlchemy"""
    url = database_url or get_settings().async_database_url

    async def _create_tables():
        engine = build_engine(url)
        try:
            await create_all(engine)
        finally:
            await engine.dispose()
        click.echo("All tables created successfully!")

    asyncio.run(_create_tables())


if __name__ == "__main__":
    create_tables()
