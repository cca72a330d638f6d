from collections.abc import AsyncGenerator
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from alquemist.core.config import settings


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


engine = create_async_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


# Models are imported here so routers can pull everything from one place and
# so Base.metadata knows every table before create_all runs.
from .company import Company  # noqa: E402,F401
from .users import User  # noqa: E402,F401
from .facility import Facility  # noqa: E402,F401
from .area import Area  # noqa: E402,F401
from .product import Product  # noqa: E402,F401
from .supplier import Supplier  # noqa: E402,F401
from .recipe import Recipe, RecipeIngredient  # noqa: E402,F401
from .template import ProductionTemplate, TemplatePhase  # noqa: E402,F401
from .activity import Activity  # noqa: E402,F401
from .inventory.lot import InventoryLot  # noqa: E402,F401
from .inventory.transaction import InventoryTransaction  # noqa: E402,F401
