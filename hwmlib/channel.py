"""
Session Channels
****************

The bidirectional text channel an installation session talks to the remote orchestrator over.
"""

import logging

from abc import ABCMeta, abstractmethod
from typing import Optional

import websocket

from .errors import SessionChannelError, SessionClosed

LOG = logging.getLogger(__name__)


class SessionChannel(metaclass=ABCMeta):
    """
    Abstract class for a session channel.

    :meth:`recv` raises :class:`~hwmlib.errors.SessionClosed` once the channel is closed
    and :class:`~hwmlib.errors.SessionChannelError` when the underlying connection fails.
    """

    def open(self) -> None:
        """Connect the channel, if the implementation needs to."""
        pass

    @abstractmethod
    def send(self, text: str) -> None:
        """Send a text message."""
        raise NotImplementedError

    @abstractmethod
    def recv(self) -> str:
        """Block until the next text message."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Close the channel. Closing twice is allowed, and a blocked :meth:`recv` then raises SessionClosed."""
        raise NotImplementedError


class WebSocketChannel(SessionChannel):
    """
    A :class:`SessionChannel` over a websocket.

    :param url: The ``ws://`` or ``wss://`` URL to connect to
    :param timeout: Seconds to wait when connecting, None to wait forever
    """

    def __init__(self, url: str, timeout: Optional[float] = None) -> None:
        self.url = url
        self.timeout = timeout
        self.ws: Optional[websocket.WebSocket] = None

    def open(self) -> None:
        if self.ws is not None:
            return
        LOG.debug("Connecting to %s", self.url)
        try:
            self.ws = websocket.create_connection(self.url, timeout=self.timeout)
        except (websocket.WebSocketException, OSError) as e:
            raise SessionChannelError("Unable to connect to {}: {}".format(self.url, e)) from e
        # Exchanges may wait for the user for a long time
        self.ws.settimeout(None)

    def send(self, text: str) -> None:
        if self.ws is None:
            raise SessionClosed()
        try:
            self.ws.send(text)
        except websocket.WebSocketConnectionClosedException as e:
            raise SessionClosed() from e
        except (websocket.WebSocketException, OSError) as e:
            raise SessionChannelError(str(e)) from e

    def recv(self) -> str:
        if self.ws is None:
            raise SessionClosed()
        try:
            data = self.ws.recv()
        except websocket.WebSocketConnectionClosedException as e:
            raise SessionClosed() from e
        except (websocket.WebSocketException, OSError) as e:
            if self.ws is None or not self.ws.connected:
                raise SessionClosed() from e
            raise SessionChannelError(str(e)) from e
        # A close frame is returned as an empty message
        if not data:
            raise SessionClosed()
        if isinstance(data, bytes):
            data = data.decode()
        return data

    def close(self) -> None:
        ws = self.ws
        if ws is not None:
            self.ws = None
            ws.close()
