import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Dashboard feed: game frames, prize pool payloads and heartbeats"""
    controller = websocket.app.state.system_controller
    if controller is None or not websocket.app.state.startup_complete:
        await websocket.close(code=1013)
        return

    manager = controller.observers
    client_id = id(websocket)
    await manager.connect(websocket)
    logger.info(f"Client {client_id} connected")

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Received invalid JSON from client {client_id}")
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            msg_type = message.get("type") if isinstance(message, dict) else None
            if msg_type == "ping":
                await websocket.send_json({"type": "pong", "client_id": client_id})
            elif msg_type == "get_state":
                await websocket.send_json(
                    {"type": "state", "state": controller.get_state()}
                )
            else:
                await websocket.send_json({"status": "ok", "client_id": client_id})
    except WebSocketDisconnect:
        logger.info(f"Client {client_id} disconnected normally")
    except Exception as e:
        logger.error(f"WebSocket error for client {client_id}: {e}")
    finally:
        await manager.disconnect(websocket)
