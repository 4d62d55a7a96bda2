from .auth import auth_router
from .products import products_router
from .adjustments import adjustments_router
from .roles import roles_router
from .users import users_router
from .tasks import tasks_router
from .warehouses import warehouses_router
from .receiving_orders import receiving_router
from .preferences import preferences_router

__all__ = [
    "auth_router",
    "products_router",
    "adjustments_router",
    "roles_router",
    "users_router",
    "tasks_router",
    "warehouses_router",
    "receiving_router",
    "preferences_router",
]
