# app/cli/create_tables.py
import asyncio
import click
from sqlalchemy.ext.asyncio import create_async_engine

from app.core.config import get_settings
from app.database import Base, normalise_database_url

# Import all models so they're registered with the Base
import app.models  # noqa: F401


@click.command()
@click.option("--drop", is_flag=True, help="Drop every table before creating it again")
@click.option("--echo/--no-echo", default=False, help="Echo the generated SQL")
def create_tables(drop: bool, echo: bool):
    """Create all database tables directly using SQLAlchemy"""
    settings = get_settings()

    async def _create_tables():
        engine = create_async_engine(normalise_database_url(settings.DATABASE_URL), echo=echo)
        async with engine.begin() as conn:
            if drop:
                await conn.run_sync(Base.metadata.drop_all)
                click.echo("Dropped existing tables")
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()
        click.echo(f"Created {len(Base.metadata.tables)} tables")

    asyncio.run(_create_tables())


if __name__ == "__main__":
    create_tables()
