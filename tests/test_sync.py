from __future__ import annotations

import logging

import pytest

from arena_gui.config import ClientSettings
from arena_gui.sync import (
    ClientState,
    ClientStateSynchronizer,
    ConnectionState,
    RegistrationPhase,
    leader_board_rows,
)

OPENED = {"type": "registrationOpened"}
CLOSED = {"type": "registrationClosed"}


def board(*entries):
    return {"type": "leaderBoard", "leaderBoard": list(entries)}


@pytest.fixture
def online(manager, fake_socket, synchronizer):
    manager.connect()
    fake_socket.accept()
    return fake_socket


def test_initial_state_is_conservative(synchronizer):
    state = synchronizer.state
    assert state == ClientState()
    assert state.to_view() == {
        "connected": False,
        "gameInProgress": True,
        "leaderBoard": [],
        "formDisabled": False,
    }


def test_open_and_close_are_idempotent(manager, fake_socket, synchronizer):
    manager.connect()
    fake_socket.accept()
    synchronizer.handle_open()
    assert synchronizer.state.connection is ConnectionState.CONNECTED

    fake_socket.drop()
    synchronizer.handle_close()
    assert synchronizer.state.connection is ConnectionState.DISCONNECTED


@pytest.mark.parametrize(
    "messages, expected",
    [
        ([OPENED], RegistrationPhase.OPEN),
        ([OPENED, CLOSED], RegistrationPhase.CLOSED),
        ([CLOSED, board({"name": "A"}), OPENED, board()], RegistrationPhase.OPEN),
        ([OPENED, board(), board({"name": "B"}), CLOSED, board()], RegistrationPhase.CLOSED),
        ([board({"name": "C"})], RegistrationPhase.CLOSED),
    ],
)
def test_phase_follows_last_phase_message(online, synchronizer, messages, expected):
    for message in messages:
        online.push(message)
    assert synchronizer.state.phase is expected


def test_leader_board_is_replaced_not_merged(online, synchronizer):
    online.push(board({"name": "A", "score": 10}, {"name": "B", "score": 7}))
    online.push(board({"name": "C", "score": 3}))

    assert synchronizer.state.to_view()["leaderBoard"] == [{"name": "C", "score": 3}]

    online.push(board())
    assert synchronizer.state.leader_board == ()


def test_closed_then_leader_board_scenario(online, synchronizer):
    online.push(CLOSED)
    online.push(board({"name": "A", "score": 10}))

    view = synchronizer.state.to_view()
    assert view["gameInProgress"] is True
    assert view["leaderBoard"] == [{"name": "A", "score": 10}]


def test_unknown_type_leaves_state_unchanged(online, synchronizer, emitted):
    online.push(OPENED)
    before = synchronizer.state
    emitted.clear()

    online.push({"type": "matchStarted", "leaderBoard": [{"name": "X"}]})

    assert synchronizer.state == before
    assert emitted == []


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        "[1, 2, 3]",
        '{"leaderBoard": []}',
        '{"type": 7}',
        '{"type": "leaderBoard", "leaderBoard": {"name": "A"}}',
        '{"type": "leaderBoard"}',
    ],
)
def test_malformed_frames_are_logged_and_skipped(online, synchronizer, emitted, caplog, raw):
    online.push(board({"name": "A", "score": 1}))
    before = synchronizer.state
    emitted.clear()

    with caplog.at_level(logging.WARNING, logger="arena_gui.sync"):
        online.push(raw)

    assert synchronizer.state == before
    assert emitted == []
    assert caplog.records


def test_state_survives_reconnection(manager, online, synchronizer, emitted):
    online.push(OPENED)
    online.push(board({"name": "A", "score": 10}))

    online.drop()
    assert synchronizer.state.connected is False
    manager.connect()
    online.accept()

    assert [state.connected for state in emitted[-2:]] == [False, True]
    assert synchronizer.state.phase is RegistrationPhase.OPEN
    assert synchronizer.state.to_view()["leaderBoard"] == [{"name": "A", "score": 10}]


def test_each_processed_event_emits_a_snapshot(online, synchronizer, emitted):
    online.push(OPENED)
    online.push(board({"name": "A"}))

    assert len(emitted) == 2
    assert emitted[0].phase is RegistrationPhase.OPEN
    assert emitted[0].leader_board == ()
    assert emitted[1] is synchronizer.state


def test_register_sends_one_frame_and_locks_form(online, synchronizer):
    synchronizer.set_user_field("name", "Ada")
    synchronizer.set_user_field("email", "ada@example.com")

    assert synchronizer.register() is True

    assert online.sent_frames() == [
        {"type": "user", "user": {"name": "Ada", "email": "ada@example.com"}}
    ]
    assert synchronizer.state.form_disabled is True
    assert synchronizer.user_input == {}


def test_register_while_disconnected_drops_frame_but_locks_form(manager, fake_socket, synchronizer):
    manager.connect()
    synchronizer.set_user_field("name", "Ada")

    assert synchronizer.register() is False

    assert fake_socket.sent == []
    assert synchronizer.state.form_disabled is True
    assert synchronizer.user_input == {}


def test_retry_policy_unlocks_form_after_dropped_frame(manager, fake_socket):
    config = ClientSettings(form_lock_policy="retry_on_drop")
    synchronizer = ClientStateSynchronizer(manager, config)
    manager.connect()
    synchronizer.set_user_field("name", "Ada")

    assert synchronizer.register() is False
    assert synchronizer.state.form_disabled is False
    assert synchronizer.user_input == {"name": "Ada"}

    fake_socket.accept()
    assert synchronizer.register() is True
    assert synchronizer.state.form_disabled is True
    assert len(fake_socket.sent) == 1


def test_empty_submit_is_ignored(online, synchronizer):
    synchronizer.set_user_field("name", "")

    assert synchronizer.register() is False
    assert online.sent == []
    assert synchronizer.state.form_disabled is False


def test_explicit_user_payload_overrides_buffer(online, synchronizer):
    synchronizer.set_user_field("name", "buffered")

    synchronizer.register({"name": "explicit"})

    assert online.sent_frames()[0]["user"] == {"name": "explicit"}
    assert synchronizer.user_input == {}


def test_leader_board_rows_tolerate_loose_entries():
    rows = leader_board_rows([{"name": "A", "score": 10}, {"user": "B", "rank": 2}, "C"])
    assert rows == [("A", "10"), ("B", "2"), ("C", "")]


def test_second_submit_after_lock_sends_nothing(online, synchronizer):
    synchronizer.set_user_field("name", "Ada")
    assert synchronizer.register() is True

    synchronizer.set_user_field("name", "Ada")
    assert synchronizer.register() is False
    assert synchronizer.register({"name": "Bob"}) is False

    assert len(online.sent) == 1
    assert synchronizer.state.form_disabled is True


def test_view_entries_are_copies_of_state(online, synchronizer):
    online.push(board({"name": "A", "score": 10}))

    view = synchronizer.state.to_view()
    view["leaderBoard"][0]["score"] = 999

    assert synchronizer.state.to_view()["leaderBoard"] == [{"name": "A", "score": 10}]
