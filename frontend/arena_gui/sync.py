"""
Client-side view of the event: connection flag, registration phase,
leaderboard and the registration form lock.

The synchronizer is the only writer of that state. Every processed event
produces a fresh ``ClientState`` snapshot on the ``state_changed`` signal, so
the window never reads half-applied updates.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from .config import ClientSettings, get_settings
from .ws_client import ConnectionManager

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class RegistrationPhase(Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class ClientState:
    connection: ConnectionState = ConnectionState.DISCONNECTED
    phase: RegistrationPhase = RegistrationPhase.CLOSED
    leader_board: Tuple[Any, ...] = field(default_factory=tuple)
    form_disabled: bool = False

    @property
    def connected(self) -> bool:
        return self.connection is ConnectionState.CONNECTED

    @property
    def game_in_progress(self) -> bool:
        return self.phase is RegistrationPhase.CLOSED

    def to_view(self) -> Dict[str, Any]:
        return {
            "connected": self.connected,
            "gameInProgress": self.game_in_progress,
            "leaderBoard": [_copy_entry(entry) for entry in self.leader_board],
            "formDisabled": self.form_disabled,
        }


class MalformedMessage(ValueError):
    """Raised internally when an inbound frame does not fit the protocol."""


PHASE_MESSAGES = {
    "registrationOpened": RegistrationPhase.OPEN,
    "registrationClosed": RegistrationPhase.CLOSED,
}


class ClientStateSynchronizer(QObject):
    state_changed = pyqtSignal(object)

    def __init__(
        self,
        connection: ConnectionManager,
        config: Optional[ClientSettings] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.connection = connection
        self.config = config or get_settings()
        self._state = ClientState()
        self._user: Dict[str, Any] = {}

        connection.register_open_callback(self.handle_open)
        connection.register_close_callback(self.handle_close)
        connection.register_callback(self.handle_message)

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def user_input(self) -> Dict[str, Any]:
        return dict(self._user)

    def set_user_field(self, name: str, value: Any) -> None:
        if value in (None, ""):
            self._user.pop(name, None)
        else:
            self._user[name] = value

    def handle_open(self) -> None:
        self._apply(connection=ConnectionState.CONNECTED)

    def handle_close(self) -> None:
        self._apply(connection=ConnectionState.DISCONNECTED)

    def handle_message(self, raw: str) -> None:
        try:
            data = _parse_frame(raw)
        except MalformedMessage as exc:
            logger.warning("Skipping malformed frame: %s", exc)
            return

        message_type = data["type"]
        if message_type in PHASE_MESSAGES:
            self._apply(phase=PHASE_MESSAGES[message_type])
        elif message_type == "leaderBoard":
            board = data.get("leaderBoard")
            if not isinstance(board, list):
                logger.warning("Skipping leaderBoard frame without a list payload: %r", board)
                return
            self._apply(leader_board=tuple(_copy_entry(entry) for entry in board))
        else:
            logger.debug("Ignoring message of unknown type %r", message_type)

    def register(self, user: Optional[Dict[str, Any]] = None) -> bool:
        """Send the registration request once and lock the form.

        Returns whether the frame reached the transport. A dropped frame is not
        an error; under the ``retry_on_drop`` policy it unlocks the form and
        puts the input back so the user can submit again.
        """

        if self._state.form_disabled:
            logger.debug("Registration form is locked; ignoring submit")
            return False

        payload = dict(user) if user is not None else dict(self._user)
        if not payload:
            logger.debug("Ignoring empty registration submit")
            return False

        sent = self.connection.send({"type": "user", "user": payload})
        self._user = {}
        if not sent and self.config.form_lock_policy == "retry_on_drop":
            self._user = payload
            self._apply(form_disabled=False)
        else:
            self._apply(form_disabled=True)
        return sent

    def _apply(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        self.state_changed.emit(self._state)


def _copy_entry(entry: Any) -> Any:
    return dict(entry) if isinstance(entry, dict) else entry


def _parse_frame(raw: Any) -> Dict[str, Any]:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedMessage(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedMessage(f"expected an object, got {type(data).__name__}")
    if not isinstance(data.get("type"), str):
        raise MalformedMessage("missing 'type' discriminator")
    return data


def leader_board_rows(entries: List[Any]) -> List[Tuple[str, str]]:
    """Flatten leaderboard entries into (identity, score) display pairs."""

    rows: List[Tuple[str, str]] = []
    for entry in entries:
        if isinstance(entry, dict):
            name = entry.get("name") or entry.get("user") or entry.get("id") or ""
            score = entry.get("score", entry.get("rank", ""))
            rows.append((str(name), str(score)))
        else:
            rows.append((str(entry), ""))
    return rows
