"""Canal con el teléfono emparejado y modelo de estado del reloj."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import datetime

from glucose_watch.config import LOCAL_TZ, DisplayConfig
from glucose_watch.state import (
    SnapshotDecodeError,
    WatchState,
    apply_snapshot,
    decode_snapshot,
)

logger = logging.getLogger(__name__)

REQUEST_UPDATE_MESSAGE: dict[str, object] = {"requestWatchStateUpdate": True}

SnapshotCallback = Callable[[bytes], None]
StatusCallback = Callable[[bool], None]
Dispatcher = Callable[[Callable[[], None]], None]


class SendError(RuntimeError):
    """Raised by a session when a message cannot be delivered."""


class SnapshotChannel(ABC):
    """Capability to ask the phone for a snapshot and receive it."""

    @abstractmethod
    def request_update(self) -> None:
        """Ask the phone for a full state snapshot (fire and forget).

        Raises:
            SendError: If the request could not be sent.
        """

    @abstractmethod
    def on_snapshot(self, callback: SnapshotCallback) -> None:
        """Register the handler that receives raw snapshot payloads."""

    def activate(self) -> None:
        """Open the link with the phone; channels that need no setup do nothing."""

    def on_activation(self, callback: StatusCallback) -> None:
        """Register the handler called when activation finishes."""

    def on_reachability(self, callback: StatusCallback) -> None:
        """Register the handler called when the phone becomes (un)reachable."""


class PairedSession(ABC):
    """Low level device-to-device session."""

    @property
    @abstractmethod
    def is_activated(self) -> bool:
        """Whether the session finished activating."""

    @abstractmethod
    def activate(self) -> None:
        """Start (or restart) session activation."""

    @abstractmethod
    def send_message(self, message: Mapping[str, object]) -> None:
        """Send a message without waiting for a reply.

        Raises:
            SendError: If delivery fails.
        """

    @abstractmethod
    def set_message_data_handler(self, handler: SnapshotCallback) -> None:
        """Register the handler for incoming binary messages."""

    @abstractmethod
    def set_activation_handler(self, handler: StatusCallback) -> None:
        """Register the handler called with the outcome of activation."""

    @abstractmethod
    def set_reachability_handler(self, handler: StatusCallback) -> None:
        """Register the handler called when reachability changes."""


class SessionChannel(SnapshotChannel):
    """SnapshotChannel on top of a PairedSession."""

    def __init__(self, session: PairedSession) -> None:
        self._session = session

    def request_update(self) -> None:
        # sin activar: se activa y se reintenta cuando termine la activación
        if not self._session.is_activated:
            self._session.activate()
            return
        logger.info("Requesting watch state update from the phone")
        self._session.send_message(REQUEST_UPDATE_MESSAGE)

    def on_snapshot(self, callback: SnapshotCallback) -> None:
        self._session.set_message_data_handler(callback)

    def activate(self) -> None:
        self._session.activate()

    def on_activation(self, callback: StatusCallback) -> None:
        self._session.set_activation_handler(callback)

    def on_reachability(self, callback: StatusCallback) -> None:
        self._session.set_reachability_handler(callback)


class WatchStateModel:
    """Holds the current WatchState and replaces it when a snapshot arrives."""

    def __init__(
        self,
        channel: SnapshotChannel,
        *,
        dispatch: Dispatcher | None = None,
        clock: Callable[[], datetime] | None = None,
        config: DisplayConfig | None = None,
    ) -> None:
        """Create the model, subscribe to the channel and start activation.

        Args:
            channel: Link with the phone.
            dispatch: Runs state updates on the rendering thread
                (default: run immediately).
            clock: Current time provider.
            config: Display settings; its timezone is used for the
                "updated" text.
        """
        self._channel = channel
        self._dispatch = dispatch or (lambda fn: fn())
        self._clock = clock or (lambda: datetime.now(tz=LOCAL_TZ))
        self.config = config or DisplayConfig()
        self.state = WatchState.initial(self._clock())
        channel.on_snapshot(self._on_message_data)
        channel.on_activation(self.session_activated)
        channel.on_reachability(self.reachability_changed)
        # la solicitud sale cuando termina la activación
        channel.activate()

    def request_update(self) -> None:
        """Ask for a snapshot; send failures are logged and dropped."""
        try:
            self._channel.request_update()
        except SendError as exc:
            logger.warning("Watch state request failed: %s", exc)

    def session_activated(self, activated: bool) -> None:
        """Activation finished: ask for the current state."""
        logger.info("Session activated: %s", activated)
        self.request_update()

    def reachability_changed(self, reachable: bool) -> None:
        logger.info("Session reachability: %s", reachable)

    def _on_message_data(self, data: bytes) -> None:
        try:
            snapshot = decode_snapshot(data)
        except SnapshotDecodeError as exc:
            logger.debug("Ignoring undecodable snapshot: %s", exc)
            return

        def _apply() -> None:
            logger.info("Received watch state from the phone")
            self.state = apply_snapshot(snapshot, self._clock(), self.config.timezone)

        self._dispatch(_apply)
