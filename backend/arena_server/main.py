from __future__ import annotations

import json
import logging

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from arena_server.core.config import settings
from arena_server.tournament import Hub, Tournament

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="1.0")
app.state.tournament = Tournament(registration_open=settings.registration_open)
app.state.hub = Hub()


class ScoreUpdate(BaseModel):
    name: str
    score: int


def _tournament() -> Tournament:
    return app.state.tournament


def _hub() -> Hub:
    return app.state.hub


async def _handle_frame(raw: str) -> None:
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring non-JSON frame: %r", raw[:200])
        return
    if not isinstance(data, dict) or data.get("type") != "user":
        logger.debug("Ignoring frame: %r", data)
        return
    if _tournament().register(data.get("user")):
        await _hub().broadcast(_tournament().leader_board_message())


@app.websocket("/ws")
async def event_stream(websocket: WebSocket):
    await websocket.accept()
    hub = _hub()
    hub.add(websocket)
    try:
        await websocket.send_json(_tournament().phase_message())
        await websocket.send_json(_tournament().leader_board_message())
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info("Client disconnected")
                break
            raw = message.get("text")
            if raw is None:
                logger.warning("Ignoring non-text frame")
                continue
            await _handle_frame(raw)
    except WebSocketDisconnect:
        logger.info("Client disconnected")
    finally:
        hub.discard(websocket)


@app.post("/registration/open")
async def open_registration():
    tournament = _tournament()
    tournament.open_registration()
    await _hub().broadcast(tournament.phase_message())
    return {"registrationOpen": tournament.registration_open}


@app.post("/registration/close")
async def close_registration():
    tournament = _tournament()
    tournament.close_registration()
    await _hub().broadcast(tournament.phase_message())
    return {"registrationOpen": tournament.registration_open}


@app.post("/scores")
async def update_score(update: ScoreUpdate):
    tournament = _tournament()
    if tournament.set_score(update.name, update.score) is None:
        raise HTTPException(status_code=404, detail="Player not registered")
    message = tournament.leader_board_message()
    await _hub().broadcast(message)
    return {"leaderBoard": message["leaderBoard"]}


@app.get("/leaderboard")
def get_leader_board():
    return {"leaderBoard": _tournament().leader_board()}


@app.get("/health")
def health():
    return {"status": "ok"}


def run() -> None:
    import uvicorn

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
