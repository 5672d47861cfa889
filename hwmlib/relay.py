"""
Installation Relay
******************

An :class:`InstallSession` relays the APDUs a remote orchestrator sends over a :class:`~hwmlib.channel.SessionChannel`
to the device, and the device answers back.

The remote end drives the session with JSON messages carrying a ``query`` tag:

- ``exchange``: send one APDU (``data``, hex) and answer ``{"nonce", "response": "success", "data"}``.
- ``bulk``: send a list of APDUs (``data``, list of hex) in order, without answering.
  The session switches to bulk mode for good: the device must receive the whole list,
  so channel failures and device unresponsiveness no longer stop it.
- ``success``: acknowledgement, nothing to do.
- ``error``: the remote end failed, the session fails with its detail.
- ``warning``: reported to the :class:`RelayObserver`.

Every event is turned into an :class:`Outcome` by a ``handle_*`` method, and the session acts on the outcome
in one place. A fatal outcome ends the session and its error is raised by :meth:`InstallSession.run`.
"""

import json
import logging
import threading

from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
)

from .channel import SessionChannel
from .common import StatusWord
from .errors import (
    BadArgumentError,
    DeviceConnectionError,
    DeviceLockedError,
    DeviceStatusError,
    HWMError,
    MalformedResponseError,
    RemoteSessionError,
    SessionChannelError,
    SessionClosed,
    UserRefusedOnDeviceError,
)
from .transport.base import DISCONNECT, UNRESPONSIVE, Transport

LOG = logging.getLogger(__name__)

# APDU asking the user to allow the secure channel with the remote end
ALLOW_SECURE_CHANNEL_PREFIX = bytes.fromhex("e051")


class RelayState(Enum):
    """
    The state of an :class:`InstallSession`
    """
    ACTIVE = 1 #: Each APDU is answered
    BULK = 2 #: A bulk list was received, APDUs are replayed unattended. Never left, except for CLOSED.
    CLOSED = 3 #: The session ended


class Action(Enum):
    CONTINUE = 1 #: Keep going, the event was handled or ignored
    WARN = 2 #: Report a warning and keep going
    END = 3 #: The session ended normally
    FATAL = 4 #: The session failed


@dataclass(frozen=True)
class Outcome:
    """
    The result of handling one event of a session.
    """
    action: Action
    error: Optional[HWMError] = None
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def proceed(cls) -> "Outcome":
        return cls(Action.CONTINUE)

    @classmethod
    def warn(cls, message: str, **details: Any) -> "Outcome":
        return cls(Action.WARN, message=message, details=details)

    @classmethod
    def end(cls) -> "Outcome":
        return cls(Action.END)

    @classmethod
    def fatal(cls, error: HWMError) -> "Outcome":
        return cls(Action.FATAL, error=error)


class RelayObserver:
    """
    Receives what an :class:`InstallSession` reports to its host application.
    The default implementation logs to the ``hwmlib.relay`` logger; subclass it to show the notifications elsewhere.
    """

    def warning(self, message: str, details: Dict[str, Any]) -> None:
        LOG.warning("%s %s", message, details)

    def state_changed(self, state: RelayState) -> None:
        LOG.debug("Session state is now %s", state.name)

    def exchanged(self, apdu: bytes, response: bytes) -> None:
        LOG.debug("Relayed %s => %s", apdu.hex(), response.hex())


def split_response(response: bytes) -> Tuple[int, bytes]:
    """
    :param response: An APDU response, data followed by the status word
    :return: The status word and the data
    :raises MalformedResponseError: if the response has no status word
    """
    if len(response) < 2:
        raise MalformedResponseError("Response without status word: {}".format(response.hex()))
    return int.from_bytes(response[-2:], byteorder="big"), response[:-2]


def status_error(sw: int, allow_secure_channel: bool) -> Optional[HWMError]:
    """
    Map the status word of a relayed APDU to the error ending the session.

    :param sw: The status word
    :param allow_secure_channel: Whether the APDU asked the user to allow the secure channel
    :return: None if the status is a success, the error otherwise
    """
    if sw == StatusWord.OK:
        return None
    if sw == StatusWord.LOCKED_DEVICE:
        return DeviceStatusError(sw, "Device is locked (status 0x{:04x})".format(sw))
    if allow_secure_channel and sw in (StatusWord.USER_REFUSED_ON_DEVICE, StatusWord.CONDITIONS_OF_USE_NOT_SATISFIED):
        return UserRefusedOnDeviceError()
    return DeviceStatusError(sw)


class InstallSession:
    """
    Relay between the remote orchestrator on ``channel`` and the device on ``transport``.

    A session is used once. :meth:`run` registers the transport listeners, processes the channel
    messages until the channel closes or something fatal happens, and always unregisters the listeners
    and closes the channel before returning.

    :param transport: The device transport
    :param channel: The channel to the remote orchestrator
    :param observer: Receives warnings and traffic notifications, logs them by default
    """

    def __init__(self, transport: Transport, channel: SessionChannel, observer: Optional[RelayObserver] = None) -> None:
        self.transport = transport
        self.channel = channel
        self.observer = observer if observer is not None else RelayObserver()
        self._lock = threading.Lock()
        self._state = RelayState.ACTIVE
        self._failure: Optional[HWMError] = None
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Outcome]] = {
            "exchange": self._on_exchange,
            "bulk": self._on_bulk,
            "success": self._on_success,
            "error": self._on_error,
            "warning": self._on_warning,
        }

    @property
    def state(self) -> RelayState:
        with self._lock:
            return self._state

    @property
    def failure(self) -> Optional[HWMError]:
        """The error that ended the session, if any"""
        with self._lock:
            return self._failure

    def __enter__(self) -> "InstallSession":
        self.transport.on(DISCONNECT, self._on_transport_disconnect)
        self.transport.on(UNRESPONSIVE, self._on_transport_unresponsive)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.transport.off(DISCONNECT, self._on_transport_disconnect)
        self.transport.off(UNRESPONSIVE, self._on_transport_unresponsive)
        self._close()
        self.channel.close()

    def run(self) -> None:
        """
        Relay until the session ends.

        :raises HWMError: the error that made the session fail
        """
        with self:
            while self.state is not RelayState.CLOSED:
                try:
                    text = self.channel.recv()
                except SessionClosed:
                    outcome = self.handle_channel_close()
                except SessionChannelError as e:
                    outcome = self.handle_channel_error(e)
                else:
                    outcome = self.handle_message(text)
                self._apply(outcome)

    def _close(self) -> None:
        with self._lock:
            changed = self._state is not RelayState.CLOSED
            self._state = RelayState.CLOSED
        if changed:
            self.observer.state_changed(RelayState.CLOSED)

    def _apply(self, outcome: Outcome) -> None:
        if outcome.action is Action.WARN:
            self.observer.warning(outcome.message or "", outcome.details or {})
        elif outcome.action is Action.END:
            self._close()
        elif outcome.action is Action.FATAL:
            if outcome.error is None:
                raise BadArgumentError("Fatal outcome without an error")
            with self._lock:
                if self._failure is None:
                    self._failure = outcome.error
            self._close()

        failure = self.failure
        if failure is not None:
            raise failure

    def _fail_from_listener(self, outcome: Outcome) -> None:
        if outcome.action is not Action.FATAL:
            self._apply(outcome)
            return
        # Wake up the loop if it waits for a message on another thread
        try:
            self._apply(outcome)
        finally:
            self.channel.close()

    # Transport events

    def handle_transport_disconnect(self, payload: Any) -> Outcome:
        return Outcome.fatal(DeviceConnectionError("Device disconnected: {}".format(payload)))

    def handle_transport_unresponsive(self) -> Outcome:
        if self.state is RelayState.BULK:
            return Outcome.proceed()
        return Outcome.fatal(DeviceLockedError())

    def _on_transport_disconnect(self, payload: Any = None) -> None:
        self.transport.off(DISCONNECT, self._on_transport_disconnect)
        self._fail_from_listener(self.handle_transport_disconnect(payload))

    def _on_transport_unresponsive(self) -> None:
        self._fail_from_listener(self.handle_transport_unresponsive())

    # Channel events

    def handle_channel_error(self, error: Exception) -> Outcome:
        # The channel cannot be read anymore in any case
        if self.state is RelayState.BULK:
            return Outcome.end()
        return Outcome.fatal(SessionChannelError(str(error)))

    def handle_channel_close(self) -> Outcome:
        return Outcome.end()

    def handle_message(self, text: str) -> Outcome:
        """
        Handle one message received on the channel.

        Failures to decode or process the message are warnings, unless a fatal error was recorded meanwhile.
        """
        try:
            message = json.loads(text)
            query = message["query"]
        except (ValueError, TypeError, KeyError) as e:
            return Outcome.warn("Cannot decode message: {}".format(e), raw=text)

        handler = self._handlers.get(query) if isinstance(query, str) else None
        if handler is None:
            return Outcome.warn("Cannot handle msg of type {}".format(query), query=query)

        try:
            return handler(message)
        except SessionClosed:
            return self.handle_channel_close()
        except SessionChannelError as e:
            return self.handle_channel_error(e)
        except Exception as e:
            failure = self.failure
            if failure is not None:
                return Outcome.fatal(failure)
            return Outcome.warn("Failed to process {} message: {}".format(query, e), query=query)

    def _on_exchange(self, message: Dict[str, Any]) -> Outcome:
        nonce = message.get("nonce")
        apdu = bytes.fromhex(message["data"])
        allow_secure_channel = apdu[:2] == ALLOW_SECURE_CHANNEL_PREFIX

        response = self.transport.exchange(apdu)
        self.observer.exchanged(apdu, response)
        sw, data = split_response(response)

        error = status_error(sw, allow_secure_channel)
        if error is not None:
            return Outcome.fatal(error)

        self.channel.send(json.dumps({
            "nonce": nonce,
            "response": "success",
            "data": data.hex(),
        }))
        return Outcome.proceed()

    def _on_bulk(self, message: Dict[str, Any]) -> Outcome:
        apdus: List[str] = message["data"]
        if not isinstance(apdus, list):
            raise TypeError("bulk data must be a list, not {}".format(type(apdus).__name__))

        with self._lock:
            entered = self._state is RelayState.ACTIVE
            if entered:
                self._state = RelayState.BULK
        if entered:
            self.observer.state_changed(RelayState.BULK)

        for i, hex_apdu in enumerate(apdus):
            apdu = bytes.fromhex(hex_apdu)
            response = self.transport.exchange(apdu)
            self.observer.exchanged(apdu, response)
            sw, _ = split_response(response)
            if sw != StatusWord.OK:
                return Outcome.fatal(DeviceStatusError(
                    sw, "Bulk APDU {} of {} failed with status 0x{:04x}".format(i + 1, len(apdus), sw)))
        return Outcome.proceed()

    def _on_success(self, message: Dict[str, Any]) -> Outcome:
        return Outcome.proceed()

    def _on_error(self, message: Dict[str, Any]) -> Outcome:
        return Outcome.fatal(RemoteSessionError(str(message.get("data"))))

    def _on_warning(self, message: Dict[str, Any]) -> Outcome:
        return Outcome.warn(str(message.get("data")), type="warning")
