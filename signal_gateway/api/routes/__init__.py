from __future__ import annotations

from signal_gateway.api.routes.devices import router as devices_router
from signal_gateway.api.routes.groups import router as groups_router
from signal_gateway.api.routes.health import router as health_router
from signal_gateway.api.routes.inbox import router as inbox_router
from signal_gateway.api.routes.queue import router as queue_router
from signal_gateway.api.routes.send import router as send_router

__all__ = [
    "devices_router",
    "groups_router",
    "health_router",
    "inbox_router",
    "queue_router",
    "send_router",
]
