from .health import router as health_router
from .media import router as media_router
from .user import router as user_router

_routers = [health_router, user_router, media_router]

__all__ = ["get_routers"]


def get_routers():
    return _routers
