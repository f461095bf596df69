from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from datetime import datetime

import pytest
from dateutil import tz

from glucose_watch.config import DisplayConfig
from glucose_watch.transport import (
    REQUEST_UPDATE_MESSAGE,
    PairedSession,
    SendError,
    SessionChannel,
    SnapshotCallback,
    SnapshotChannel,
    StatusCallback,
    WatchStateModel,
)

NOW = datetime(2026, 1, 31, 12, 30, tzinfo=tz.UTC)

SNAPSHOT = json.dumps(
    {
        "bgReadingValues": [180],
        "bgReadingDates": ["2026-01-31T12:25:00Z"],
        "isMgDl": True,
        "highLimitInMgDl": 175,
    }
).encode("utf-8")


class _Session(PairedSession):
    def __init__(self, activated: bool, fail: bool = False) -> None:
        self.activated = activated
        self.fail = fail
        self.activate_calls = 0
        self.sent: list[Mapping[str, object]] = []
        self.handler: SnapshotCallback | None = None
        self.activation_handler: StatusCallback | None = None
        self.reachability_handler: StatusCallback | None = None

    @property
    def is_activated(self) -> bool:
        return self.activated

    def activate(self) -> None:
        self.activate_calls += 1

    def send_message(self, message: Mapping[str, object]) -> None:
        if self.fail:
            raise SendError("not reachable")
        self.sent.append(message)

    def set_message_data_handler(self, handler: SnapshotCallback) -> None:
        self.handler = handler

    def set_activation_handler(self, handler: StatusCallback) -> None:
        self.activation_handler = handler

    def set_reachability_handler(self, handler: StatusCallback) -> None:
        self.reachability_handler = handler

    def finish_activation(self) -> None:
        self.activated = True
        assert self.activation_handler is not None
        self.activation_handler(True)


class _Channel(SnapshotChannel):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.requests = 0
        self.callback: SnapshotCallback | None = None

    def request_update(self) -> None:
        self.requests += 1
        if self.fail:
            raise SendError("boom")

    def on_snapshot(self, callback: SnapshotCallback) -> None:
        self.callback = callback

    def deliver(self, data: bytes) -> None:
        assert self.callback is not None
        self.callback(data)


def _model(channel: SnapshotChannel, **kwargs: object) -> WatchStateModel:
    return WatchStateModel(
        channel,
        clock=lambda: NOW,
        config=DisplayConfig(timezone=tz.UTC),
        **kwargs,  # type: ignore[arg-type]
    )


def test_session_channel_activates_before_sending() -> None:
    session = _Session(activated=False)
    SessionChannel(session).request_update()
    assert session.activate_calls == 1
    assert session.sent == []


def test_session_channel_sends_request_when_activated() -> None:
    session = _Session(activated=True)
    SessionChannel(session).request_update()
    assert session.sent == [REQUEST_UPDATE_MESSAGE]
    assert session.sent[0] == {"requestWatchStateUpdate": True}


def test_session_channel_registers_snapshot_handler() -> None:
    session = _Session(activated=True)
    model = _model(SessionChannel(session))
    assert session.handler is not None
    session.handler(SNAPSHOT)
    assert model.state.bg_value_mg_dl() == 180.0


def test_send_failure_is_logged_and_dropped(caplog: pytest.LogCaptureFixture) -> None:
    session = _Session(activated=True, fail=True)
    model = _model(SessionChannel(session))
    with caplog.at_level(logging.WARNING, logger="glucose_watch.transport"):
        model.request_update()
    assert "request failed" in caplog.text
    assert "not reachable" in caplog.text


def test_initial_state_before_any_snapshot() -> None:
    model = _model(_Channel())
    assert model.state.bg_value_mg_dl() == 123.0
    assert model.state.bg_reading_date() is not None


def test_session_activated_requests_update() -> None:
    channel = _Channel()
    model = _model(channel)
    model.session_activated(True)
    assert channel.requests == 1


def test_snapshot_replaces_state() -> None:
    channel = _Channel()
    model = _model(channel)
    channel.deliver(SNAPSHOT)
    state = model.state
    assert state.bg_value_mg_dl() == 180.0
    assert state.thresholds.high == 175.0
    assert state.thresholds.urgent_high == 240.0
    assert state.updated_date == NOW
    assert state.updated_string == "BG: 12:25 / State: 12:30"


def test_invalid_snapshot_is_ignored() -> None:
    channel = _Channel()
    model = _model(channel)
    before = model.state
    channel.deliver(b"{broken")
    channel.deliver(b'{"bgReadingValues": [1, 2], "bgReadingDates": [0]}')
    assert model.state is before


def test_snapshot_applied_through_dispatcher() -> None:
    pending: list[Callable[[], None]] = []
    channel = _Channel()
    model = _model(channel, dispatch=pending.append)
    before = model.state
    channel.deliver(SNAPSHOT)
    assert model.state is before
    assert len(pending) == 1
    pending[0]()
    assert model.state.bg_value_mg_dl() == 180.0


def test_channel_error_does_not_raise() -> None:
    channel = _Channel(fail=True)
    model = _model(channel)
    model.session_activated(True)
    assert channel.requests == 1


def test_reachability_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    model = _model(_Channel())
    with caplog.at_level(logging.INFO, logger="glucose_watch.transport"):
        model.reachability_changed(True)
    assert "reachability: True" in caplog.text


def test_model_activates_and_requests_once_activation_finishes() -> None:
    session = _Session(activated=False)
    _model(SessionChannel(session))
    assert session.activate_calls == 1
    assert session.sent == []
    session.finish_activation()
    assert session.sent == [REQUEST_UPDATE_MESSAGE]


def test_model_with_activated_session_waits_for_activation_callback() -> None:
    session = _Session(activated=True)
    _model(SessionChannel(session))
    assert session.activate_calls == 1
    assert session.sent == []
    session.finish_activation()
    assert len(session.sent) == 1


def test_session_reachability_reaches_model(caplog: pytest.LogCaptureFixture) -> None:
    session = _Session(activated=True)
    _model(SessionChannel(session))
    assert session.reachability_handler is not None
    with caplog.at_level(logging.INFO, logger="glucose_watch.transport"):
        session.reachability_handler(False)
    assert "reachability: False" in caplog.text
