from fastapi import APIRouter, WebSocket

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def realtime_channel(websocket: WebSocket):
    await websocket.app.state.gateway.handle(websocket)
