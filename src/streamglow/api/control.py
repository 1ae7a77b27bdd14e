import logging
from pathlib import Path
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from ..common.colors import PATTERNS
from ..core.commands import (
    Command,
    CommandKind,
    DeviceSelector,
    LevelPayload,
    PowerPayload,
    PrizePayload,
    SourcePriority,
    normalize_color,
    strobe_command,
)
from ..core.control import SystemController
from .models import BaseResponse, LightCommand, LightRequest, PrizeRequest, SystemState

logger = logging.getLogger(__name__)

REQUEST = dict(priority=SourcePriority.REQUEST, source="api")
STROBE_ALIASES = {"disco": "white"}


def get_controller(request: Request) -> SystemController:
    """Dependency injection for the system controller"""
    controller = getattr(request.app.state, "system_controller", None)
    if controller is None or not request.app.state.startup_complete:
        raise HTTPException(
            status_code=503,
            detail="System is still starting up. Please try again in a moment.",
        )
    return controller


def require_auth(request: Request) -> None:
    """Reject requests without the shared secret"""
    token = request.app.state.auth_token
    if token and request.headers.get("authorization") != token:
        logger.warning(f"401 Unauthorised: {request.method} {request.url.path}")
        raise HTTPException(status_code=401, detail="Unauthorised")


router = APIRouter(tags=["control"], dependencies=[Depends(require_auth)])


def normalize_strip_command(name: str, strobe_ms: int) -> List[Command]:
    """Commands for a strip request name; empty when the name is unknown"""
    clean = name.strip().lower().lstrip("!")
    if clean in ("seton", "setoff"):
        return [
            Command(
                CommandKind.POWER,
                PowerPayload(clean == "seton"),
                device=DeviceSelector.STRIP,
                **REQUEST,
            )
        ]
    if clean in STROBE_ALIASES:
        return [strobe_command(STROBE_ALIASES[clean], strobe_ms, **REQUEST)]
    # Strobe patterns are effects, never ambient
    if clean.endswith("strobe") and clean in PATTERNS:
        color = clean[: -len("strobe")]
        return [strobe_command(color, strobe_ms, **REQUEST)]
    command = normalize_color(clean, **REQUEST)
    return [command] if command else []


def normalize_panel_command(data: LightCommand) -> List[Command]:
    """Commands for a panel request; empty when nothing valid was asked"""
    commands = []
    if data.command is not None:
        clean = data.command.lower()
        if clean not in ("light_on", "light_off"):
            return []
        commands.append(
            Command(
                CommandKind.POWER,
                PowerPayload(clean == "light_on"),
                device=DeviceSelector.PANEL,
                **REQUEST,
            )
        )
    if data.brightness is not None:
        commands.append(
            Command(
                CommandKind.BRIGHTNESS,
                LevelPayload(data.brightness),
                device=DeviceSelector.PANEL,
                **REQUEST,
            )
        )
    if data.temperature is not None:
        commands.append(
            Command(
                CommandKind.TEMPERATURE,
                LevelPayload(data.temperature),
                device=DeviceSelector.PANEL,
                **REQUEST,
            )
        )
    return commands


async def _route_all(controller: SystemController, commands: List[Command]) -> None:
    for command in commands:
        await controller.router.route(command)


@router.post("/lights/rgbstrip", response_model=BaseResponse)
async def set_strip(
    body: LightRequest, controller: SystemController = Depends(get_controller)
):
    """Set the strip to a named color, pattern, strobe or power state"""
    if body.data.command is None:
        raise HTTPException(status_code=422, detail="Missing command")
    commands = normalize_strip_command(
        body.data.command, controller.config.effects.strobe_ms
    )
    if not commands:
        logger.warning(f"Rejected strip command {body.data.command!r}")
        raise HTTPException(
            status_code=422, detail=f"Unknown strip command: {body.data.command}"
        )
    await _route_all(controller, commands)
    return BaseResponse(status="success", message=f"{body.data.command} received")


@router.post("/lights/keylight", response_model=BaseResponse)
async def set_panel(
    body: LightRequest, controller: SystemController = Depends(get_controller)
):
    """Power the panel or set its brightness/temperature"""
    commands = normalize_panel_command(body.data)
    if not commands:
        raise HTTPException(status_code=422, detail="Unknown panel command")
    await _route_all(controller, commands)
    return BaseResponse(status="success", message="panel command received")


@router.api_route("/newfollow", methods=["GET", "POST"], response_model=BaseResponse)
async def new_follower(controller: SystemController = Depends(get_controller)):
    """Purple strobe for a new follower"""
    logger.info("New follower!")
    await controller.router.route(
        strobe_command("purple", controller.config.effects.strobe_ms, **REQUEST)
    )
    return BaseResponse(status="success", message="purple strobe queued")


@router.post("/prizeupdate", response_model=BaseResponse)
async def prize_update(
    body: PrizeRequest, controller: SystemController = Depends(get_controller)
):
    """Mirror a manual prize pool change to the dashboard"""
    payload = PrizePayload(
        place=body.data.place,
        amount=body.data.amount,
        donor=body.data.donor,
        record=False,
    )
    await controller.router.route(
        Command(CommandKind.PRIZE_UPDATE, payload, **REQUEST)
    )
    return BaseResponse(status="success", message="prize update forwarded")


@router.get("/song", response_class=PlainTextResponse)
async def current_song(controller: SystemController = Depends(get_controller)):
    """Currently playing song as written by the music player"""
    path = Path(controller.config.api.song_file)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="No song information")


@router.get("/state", response_model=SystemState)
async def get_state(controller: SystemController = Depends(get_controller)):
    """Router, adapter and device state"""
    return controller.get_state()
