from armory.api.avatars import router as avatars_router
from armory.api.health import router as health_router
from armory.api.principals import router as principals_router
from armory.api.shops import router as shops_router
from armory.api.treasury import router as treasury_router

__all__ = [
    "avatars_router",
    "health_router",
    "principals_router",
    "shops_router",
    "treasury_router",
]
