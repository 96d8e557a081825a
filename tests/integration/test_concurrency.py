"""
Concurrency tests: parallel units of work on separate sessions must never
lose a counter update.
"""
import asyncio

import pytest

from stockledger.core.exceptions import InsufficientStockError
from stockledger.db.transaction import run_atomic
from stockledger.schemas.order import OrderCreate, OrderItemCreate
from stockledger.services.orders import create_order
from stockledger.services.purchases import record_purchase
from stockledger.services.stock_ledger import recalculate_stock


@pytest.mark.integration
@pytest.mark.slow
class TestParallelWrites:

    async def test_parallel_purchases_sum_up(self, session_factory, variant_id, read_stock, purchase_payload):
        """N purchases of the same size at once end at opening + sum of quantities."""
        quantities = list(range(1, 11))

        async def buy(n: int, quantity: int):
            async with session_factory() as session:
                payload = purchase_payload(f"PAR-{n:03d}", [(variant_id, "S", quantity, 180)])
                return await run_atomic(session, record_purchase, payload)

        purchases = await asyncio.gather(*(buy(n, q) for n, q in enumerate(quantities)))

        assert len({p.id for p in purchases}) == len(quantities)
        assert await read_stock(variant_id, "S") == 10 + sum(quantities)

    async def test_parallel_orders_never_oversell(self, session_factory, db, customer_id, variant_id, read_stock):
        """Twelve single-unit orders against ten in stock: ten win, two are refused."""
        async def sell():
            async with session_factory() as session:
                order_in = OrderCreate(
                    customer_id=customer_id,
                    items=[OrderItemCreate(variant_id=variant_id, size="S", quantity=1, rate=250)],
                )
                return await run_atomic(session, create_order, order_in)

        results = await asyncio.gather(*(sell() for _ in range(12)), return_exceptions=True)

        placed = [r for r in results if not isinstance(r, BaseException)]
        refused = [r for r in results if isinstance(r, BaseException)]
        assert len(placed) == 10
        assert all(isinstance(r, InsufficientStockError) for r in refused)
        assert len({o.invoice_no for o in placed}) == 10
        assert await read_stock(variant_id, "S") == 0

        report = await run_atomic(db, recalculate_stock, variant_id=variant_id)
        assert report.drifts == []
