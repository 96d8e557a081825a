import asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from stockledger.db.session import engine as default_engine
from stockledger.db.base import Base

# import every model so its table is registered on Base.metadata
from stockledger.models import (  # noqa: F401
    Supplier, Customer, Product, Variant, PurchaseOrder, PurchaseItem,
    Order, OrderItem, StockMovement, StatusChange
)


async def ensure_tables_exist(engine: AsyncEngine = None) -> None:
    """
    Create missing tables (called at startup)
    """
    async with (engine or default_engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


if __name__ == "__main__":
    asyncio.run(ensure_tables_exist())
