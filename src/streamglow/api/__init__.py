"""REST API and WebSocket interfaces for the orchestrator"""

from .app import init_app
from .control import router as control_router
from .models import (
    BaseResponse,
    LightCommand,
    LightRequest,
    PrizeRequest,
    SystemState,
)
from .websocket import router as websocket_router

__all__ = [
    # Application
    "init_app",
    # Routers
    "control_router",
    "websocket_router",
    # Models
    "BaseResponse",
    "LightCommand",
    "LightRequest",
    "PrizeRequest",
    "SystemState",
]
