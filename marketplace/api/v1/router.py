from fastapi import APIRouter

from marketplace.api.v1.endpoints.admin_categories import router as admin_categories_router
from marketplace.api.v1.endpoints.admin_collector import router as admin_collector_router
from marketplace.api.v1.endpoints.admin_users import router as admin_users_router
from marketplace.api.v1.endpoints.health import router as health_router
from marketplace.api.v1.endpoints.me import router as me_router
from marketplace.api.v1.endpoints.public import router as public_router
from marketplace.api.v1.endpoints.seller_items import router as seller_items_router
from marketplace.api.v1.endpoints.seller_shops import router as seller_shops_router


router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(me_router, tags=["me"])
router.include_router(seller_shops_router, tags=["seller"])
router.include_router(seller_items_router, tags=["seller"])
router.include_router(admin_collector_router, tags=["admin"])
router.include_router(admin_users_router, tags=["admin"])
router.include_router(admin_categories_router, tags=["admin"])
router.include_router(public_router, tags=["public"])
