from __future__ import annotations

import json
import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt5.QtCore import QObject, pyqtSignal
from PyQt5.QtWidgets import QApplication

from arena_gui.config import ClientSettings
from arena_gui.sync import ClientStateSynchronizer
from arena_gui.ws_client import ConnectionManager


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


class FakeSocket(QObject):
    """Stands in for QWebSocket: same signals, scripted by the test."""

    connected = pyqtSignal()
    disconnected = pyqtSignal()
    error = pyqtSignal(int)
    textMessageReceived = pyqtSignal(str)

    def __init__(self) -> None:
        super().__init__()
        self.opened_urls = []
        self.sent = []
        self.aborts = 0
        self.is_open = False

    def open(self, url) -> None:
        self.opened_urls.append(url.toString())

    def close(self) -> None:
        if self.is_open:
            self.is_open = False
            self.disconnected.emit()

    def abort(self) -> None:
        self.aborts += 1

    def sendTextMessage(self, message: str) -> int:
        self.sent.append(message)
        return len(message)

    def errorString(self) -> str:
        return "Connection refused"

    def accept(self) -> None:
        self.is_open = True
        self.connected.emit()

    def drop(self) -> None:
        self.is_open = False
        self.disconnected.emit()

    def fail(self) -> None:
        self.error.emit(0)

    def push(self, message) -> None:
        if not isinstance(message, str):
            message = json.dumps(message)
        self.textMessageReceived.emit(message)

    def sent_frames(self):
        return [json.loads(message) for message in self.sent]


@pytest.fixture
def config():
    return ClientSettings(
        server_url="ws://arena.test/ws",
        base_delay_ms=10,
        max_delay_ms=40,
        growth_factor=2.0,
        connect_timeout_ms=1000,
    )


@pytest.fixture
def fake_socket():
    return FakeSocket()


@pytest.fixture
def manager(config, fake_socket):
    connection = ConnectionManager(config, socket_factory=lambda: fake_socket)
    yield connection
    connection.disconnect()


@pytest.fixture
def synchronizer(manager, config):
    return ClientStateSynchronizer(manager, config)


@pytest.fixture
def emitted(synchronizer):
    states = []
    synchronizer.state_changed.connect(states.append)
    return states
