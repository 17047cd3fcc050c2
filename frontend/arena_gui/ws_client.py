"""
Persistent websocket connection to the event server.

The manager owns a single QWebSocket and keeps it alive: whenever the socket
closes without an explicit ``disconnect()`` it schedules another attempt on a
single-shot QTimer, backing off up to a capped delay. Nothing here blocks the
Qt event loop.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from PyQt5.QtCore import QTimer, QUrl
from PyQt5.QtWebSockets import QWebSocket

from .config import ClientSettings, get_settings

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(
        self,
        config: Optional[ClientSettings] = None,
        socket_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.config = config or get_settings()
        self._message_callbacks: List[Callable[[str], None]] = []
        self._open_callbacks: List[Callable[[], None]] = []
        self._close_callbacks: List[Callable[[], None]] = []
        self._url: Optional[str] = None
        self._connected = False
        self._torn_down = True
        self._attempts = 0

        self._socket = (socket_factory or QWebSocket)()
        self._socket.connected.connect(self._on_connected)
        self._socket.disconnected.connect(self._on_disconnected)
        self._socket.error.connect(self._on_error)
        self._socket.textMessageReceived.connect(self._on_text_message)

        self._reconnect_timer = QTimer()
        self._reconnect_timer.setSingleShot(True)
        self._reconnect_timer.timeout.connect(self._open_socket)

        self._connect_timer = QTimer()
        self._connect_timer.setSingleShot(True)
        self._connect_timer.timeout.connect(self._on_connect_timeout)

    @property
    def url(self) -> Optional[str]:
        return self._url

    @property
    def current_delay_ms(self) -> int:
        """Delay before the next reconnection attempt."""

        delay = self.config.base_delay_ms * (self.config.growth_factor ** self._attempts)
        return int(min(delay, self.config.max_delay_ms))

    def connect(self, url: Optional[str] = None) -> None:
        target = url or self._url or self.config.server_url
        self._torn_down = False
        if self._connected:
            if target != self._url:
                # the close path reopens against the new url
                logger.info("Switching connection from %s to %s", self._url, target)
                self._url = target
                self._socket.close()
            return
        self._url = target
        self._attempts = 0
        self._reconnect_timer.stop()
        self._open_socket()

    def disconnect(self) -> None:
        self._torn_down = True
        self._reconnect_timer.stop()
        self._connect_timer.stop()
        logger.info("Closing connection to %s", self._url)
        self._socket.close()

    def is_connected(self) -> bool:
        return self._connected

    def is_reconnect_pending(self) -> bool:
        return self._reconnect_timer.isActive()

    def send(self, payload: Union[str, Dict[str, Any]]) -> bool:
        if not self._connected:
            logger.warning("Not connected; dropping outbound frame")
            return False
        message = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
        self._socket.sendTextMessage(message)
        return True

    def register_callback(self, callback: Callable[[str], None]) -> None:
        if callback not in self._message_callbacks:
            self._message_callbacks.append(callback)

    def register_open_callback(self, callback: Callable[[], None]) -> None:
        if callback not in self._open_callbacks:
            self._open_callbacks.append(callback)

    def register_close_callback(self, callback: Callable[[], None]) -> None:
        if callback not in self._close_callbacks:
            self._close_callbacks.append(callback)

    def _open_socket(self) -> None:
        if self._torn_down or not self._url:
            return
        logger.info("Connecting to %s (attempt %d)", self._url, self._attempts + 1)
        self._connect_timer.start(self.config.connect_timeout_ms)
        self._socket.open(QUrl(self._url))

    def _on_connected(self) -> None:
        self._connect_timer.stop()
        self._attempts = 0
        self._connected = True
        logger.info("Connected to %s", self._url)
        for callback in list(self._open_callbacks):
            callback()

    def _on_disconnected(self) -> None:
        self._handle_close()

    def _on_error(self, error: Any) -> None:
        logger.warning("Socket error %s: %s", error, self._socket.errorString())
        self._handle_close()

    def _on_connect_timeout(self) -> None:
        logger.warning("Connection attempt to %s timed out", self._url)
        self._socket.abort()
        self._handle_close()

    def _handle_close(self) -> None:
        self._connect_timer.stop()
        # error and disconnected usually both fire for one failure
        if self._reconnect_timer.isActive():
            return
        if self._connected:
            logger.info("Disconnected from %s", self._url)
        self._connected = False
        for callback in list(self._close_callbacks):
            callback()
        if self._torn_down:
            return
        delay = self.current_delay_ms
        self._attempts += 1
        logger.info("Reconnecting in %d ms", delay)
        self._reconnect_timer.start(delay)

    def _on_text_message(self, message: str) -> None:
        for callback in list(self._message_callbacks):
            callback(message)
