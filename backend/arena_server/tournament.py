from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class Player:
    name: str
    score: int = 0
    details: Dict[str, Any] = field(default_factory=dict)

    def to_entry(self) -> Dict[str, Any]:
        return {"name": self.name, "score": self.score}


class Tournament:
    """In-memory registration phase and scores of a single event."""

    def __init__(self, registration_open: bool = True) -> None:
        self.registration_open = registration_open
        self._players: Dict[str, Player] = {}

    def open_registration(self) -> None:
        self.registration_open = True

    def close_registration(self) -> None:
        self.registration_open = False

    def register(self, user: Any) -> Optional[Player]:
        if not self.registration_open:
            logger.info("Registration closed; ignoring %r", user)
            return None
        if not isinstance(user, dict):
            logger.warning("Ignoring registration with non-object payload: %r", user)
            return None
        name = str(user.get("name") or "").strip()
        if not name:
            logger.warning("Ignoring registration without a name: %r", user)
            return None
        player = self._players.get(name)
        if player is None:
            player = Player(name=name, details=dict(user))
            self._players[name] = player
            logger.info("Registered player %s", name)
        return player

    def set_score(self, name: str, score: int) -> Optional[Player]:
        player = self._players.get(name)
        if player is None:
            return None
        player.score = score
        return player

    def leader_board(self) -> List[Dict[str, Any]]:
        ranked = sorted(self._players.values(), key=lambda p: (-p.score, p.name))
        return [player.to_entry() for player in ranked]

    def phase_message(self) -> Dict[str, Any]:
        return {"type": "registrationOpened" if self.registration_open else "registrationClosed"}

    def leader_board_message(self) -> Dict[str, Any]:
        return {"type": "leaderBoard", "leaderBoard": self.leader_board()}


class Hub:
    def __init__(self) -> None:
        self.connections: Set[WebSocket] = set()

    def add(self, websocket: WebSocket) -> None:
        self.connections.add(websocket)

    def discard(self, websocket: WebSocket) -> None:
        self.connections.discard(websocket)

    async def broadcast(self, message: Dict[str, Any]) -> None:
        dead = []
        for websocket in list(self.connections):
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.info("Dropping websocket after failed send: %s", exc)
                dead.append(websocket)
        for websocket in dead:
            self.connections.discard(websocket)
