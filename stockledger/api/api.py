"""API router aggregation (no auth, handled upstream)"""
from fastapi import APIRouter

from stockledger.api.endpoints import products, parties, purchases, orders, stocks, reports

api_router = APIRouter()

api_router.include_router(products.router, prefix="/products", tags=["Catalog"])
api_router.include_router(parties.router, prefix="/parties", tags=["Parties"])
api_router.include_router(purchases.router, prefix="/purchases", tags=["Purchases"])
api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])
api_router.include_router(stocks.router, prefix="/stocks", tags=["Stock ledger"])
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
