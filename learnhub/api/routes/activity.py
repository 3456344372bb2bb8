import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from learnhub.api.deps import user_from_token
from learnhub.core.errors import ApiError
from learnhub.db.session import get_db
from learnhub.services.activity_notifier import activity_notifier

logger = logging.getLogger("learnhub.activity")

router = APIRouter(tags=["activity"])


def extract_ws_token(websocket: WebSocket) -> str | None:
    auth = websocket.headers.get("authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1]
    return websocket.query_params.get("token")


@router.websocket("/ws/activity")
async def activity_feed(websocket: WebSocket, db: Session = Depends(get_db)) -> None:
    token = extract_ws_token(websocket)
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        user = user_from_token(db, token)
    except ApiError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        db.close()

    await activity_notifier.connect(websocket)
    logger.debug("Activity listener connected: user=%s", user.id)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        activity_notifier.disconnect(websocket)
