"""hwmlib.transport.base module."""

import struct
import threading
from abc import ABCMeta, abstractmethod
from typing import Any, Callable, Dict, List, Tuple, Union

from ..common import StatusWord
from ..errors import BadArgumentError, DeviceStatusError

DISCONNECT = "disconnect"
UNRESPONSIVE = "unresponsive"

Listener = Callable[..., None]


class Transport(metaclass=ABCMeta):
    """Abstract class for a connection to a device sending APDUs.

    Subclasses implement the framing of a physical or emulated link
    and report two events to the listeners registered with :meth:`on`:

    - ``"disconnect"`` with a description of the failure, when the link broke.
      The pending call then raises :class:`~hwmlib.errors.DeviceConnectionError`.
    - ``"unresponsive"``, once per exchange, when the device did not answer within
      ``unresponsive_timeout`` seconds. The exchange keeps waiting for the answer.

    Listeners run on the thread doing the I/O. An exception raised by a listener
    aborts the exchange in progress and propagates to its caller.

    Parameters
    ----------
    unresponsive_timeout : float
        Seconds to wait for the first bytes of an answer before emitting ``"unresponsive"``.

    """

    EVENTS = (DISCONNECT, UNRESPONSIVE)

    def __init__(self, unresponsive_timeout: float = 15.0) -> None:
        """Init constructor of Transport."""
        self.unresponsive_timeout: float = unresponsive_timeout
        self._listeners: Dict[str, List[Listener]] = {event: [] for event in self.EVENTS}
        self._listeners_lock = threading.Lock()

    def on(self, event: str, listener: Listener) -> None:
        """Register `listener` to be called when `event` happens."""
        if event not in self._listeners:
            raise BadArgumentError("Unknown transport event '{}'".format(event))
        with self._listeners_lock:
            self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        """Unregister `listener` from `event`. Unknown listeners are ignored."""
        with self._listeners_lock:
            try:
                self._listeners[event].remove(listener)
            except (KeyError, ValueError):
                pass

    def emit(self, event: str, *args: Any) -> None:
        """Call every listener registered for `event` with `args`."""
        with self._listeners_lock:
            listeners = list(self._listeners[event])
        for listener in listeners:
            listener(*args)

    @staticmethod
    def apdu_header(cla: int, ins: int, p1: int = 0, p2: int = 0, lc: int = 0) -> bytes:
        """Pack the APDU header CLA INS P1 P2 Lc as bytes."""
        return struct.pack("BBBBB", cla, ins, p1, p2, lc)

    def exchange(self, apdu: Union[str, bytes]) -> bytes:
        """Send a raw APDU and wait for the answer.

        Parameters
        ----------
        apdu : Union[str, bytes]
            Hexstring or bytes of the APDU.

        Returns
        -------
        bytes
            The response data followed by the 2 bytes big endian status word.

        """
        if isinstance(apdu, str):
            apdu = bytes.fromhex(apdu)

        sw, rdata = self.exchange_raw(apdu)

        return rdata + sw.to_bytes(2, byteorder="big")

    def send(self, cla: int, ins: int, p1: int = 0, p2: int = 0, cdata: bytes = b"") -> bytes:
        """Send a structured APDU and wait for a successful answer.

        Returns
        -------
        bytes
            The response data, without the status word.

        Raises
        ------
        DeviceStatusError
            If the status word is not 0x9000.

        """
        header = Transport.apdu_header(cla, ins, p1, p2, len(cdata))
        sw, rdata = self.exchange_raw(header + cdata)

        if sw != StatusWord.OK:
            raise DeviceStatusError(sw)

        return rdata

    def exchange_raw(self, data: bytes) -> Tuple[int, bytes]:
        """Exchange (send + receive) `data` with the device."""
        self.write(data)

        return self.read()  # blocking IO

    @abstractmethod
    def open(self) -> None:
        """Just open the interface."""
        raise NotImplementedError

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Send an APDU through the interface."""
        raise NotImplementedError

    @abstractmethod
    def read(self) -> Tuple[int, bytes]:
        """Receive a pair (sw, rdata) from the interface."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Just close the interface."""
        raise NotImplementedError

    def __enter__(self) -> "Transport":
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
