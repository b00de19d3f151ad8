from fastapi import APIRouter

from stockledger.app.api.v1.endpoints.health import router as health_router
from stockledger.app.api.v1.endpoints.locations import router as locations_router
from stockledger.app.api.v1.endpoints.stock import router as stock_router
from stockledger.app.api.v1.endpoints.stock_movements import router as stock_movements_router
from stockledger.app.api.v1.endpoints.purchase_orders import router as purchase_orders_router
from stockledger.app.api.v1.endpoints.receipts import router as receipts_router
from stockledger.app.api.v1.endpoints.deliveries import router as deliveries_router
from stockledger.app.api.v1.endpoints.shipment_issues import router as shipment_issues_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(locations_router, tags=["locations"])
router.include_router(stock_router, tags=["stock"])
router.include_router(stock_movements_router, tags=["stock_movements"])
router.include_router(purchase_orders_router, tags=["purchase_orders"])
router.include_router(receipts_router, tags=["receipts"])
router.include_router(deliveries_router, tags=["deliveries"])
router.include_router(shipment_issues_router, tags=["shipment_issues"])
