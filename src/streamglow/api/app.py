import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..core.config import SystemConfig
from ..core.control import SystemController
from . import control, websocket

logger = logging.getLogger(__name__)


def init_app(
    config: Optional[SystemConfig] = None,
    controller: Optional[SystemController] = None,
) -> FastAPI:
    """Create and configure the FastAPI application

    The controller is built on startup from ``config`` unless one is given.
    """
    app = FastAPI(
        title="Streamglow Control API",
        description="Stream light effect orchestration",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.system_controller = controller
    app.state.startup_complete = False
    app.state.auth_token = None

    app.include_router(control.router)
    app.include_router(websocket.router)

    @app.on_event("startup")
    async def startup_event():
        """Initialize the system on startup"""
        logger.info("Starting Streamglow Control API")
        try:
            if app.state.system_controller is None:
                system_config = config or SystemConfig.from_env()
                app.state.system_controller = SystemController(system_config)
                logger.info("System controller initialized")

            system = app.state.system_controller
            app.state.auth_token = system.config.api.auth_token
            await system.start()
            app.state.startup_complete = True
            logger.info("System controller started successfully")
        except Exception as e:
            logger.error(f"Failed to initialize system: {e}")
            if app.state.system_controller:
                try:
                    await app.state.system_controller.stop()
                except Exception as cleanup_error:
                    logger.error(f"Error during cleanup: {cleanup_error}")
                finally:
                    app.state.system_controller = None
            app.state.startup_complete = False
            raise

    @app.on_event("shutdown")
    async def shutdown_event():
        """Clean up resources on shutdown"""
        if app.state.system_controller:
            logger.info("Shutting down Streamglow Control API")
            try:
                await app.state.system_controller.stop()
            except Exception as e:
                logger.error(f"Error during shutdown: {e}")
            finally:
                app.state.system_controller = None
                app.state.startup_complete = False

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        system = app.state.system_controller
        return {
            "status": "healthy" if app.state.startup_complete else "starting",
            "controller": system is not None,
            "running": system.is_running if system else False,
        }

    return app


__all__ = ["init_app"]
