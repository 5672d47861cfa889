"""hwmlib.transport.tcp_client module."""

import socket
from typing import Optional, Tuple

from .base import DISCONNECT, UNRESPONSIVE, Transport
from .log import LOG
from ..errors import DeviceConnectionError

SIMULATOR_PATH = "tcp:127.0.0.1:9999"


class TCPTransport(Transport):
    """TCP transport.

    Mainly used to connect to the APDU server of the Speculos emulator.

    Parameters
    ----------
    server : str
        IP address of the TCP server.
    port : int
        Port of the TCP server.
    unresponsive_timeout : float
        Seconds to wait for the first bytes of an answer before emitting ``"unresponsive"``.

    Attributes
    ----------
    socket : Optional[socket.socket]
        TCP socket to communicate with the server, None until opened.

    """

    def __init__(self, server: str = "127.0.0.1", port: int = 9999, unresponsive_timeout: float = 15.0) -> None:
        """Init constructor of TCPTransport."""
        super().__init__(unresponsive_timeout)
        self.server: str = server
        self.port: int = port
        self.socket: Optional[socket.socket] = None

    @classmethod
    def from_path(cls, path: str, unresponsive_timeout: float = 15.0) -> "TCPTransport":
        """Build a transport from a ``tcp:<server>:<port>`` device path."""
        split_path = path.split(":")
        return cls(split_path[1], int(split_path[2]), unresponsive_timeout)

    def open(self) -> None:
        """Open connection to TCP socket with `self.server` and `self.port`."""
        if self.socket is None:
            try:
                self.socket = socket.create_connection((self.server, self.port))
            except OSError as e:
                raise DeviceConnectionError("Unable to connect to {}:{}: {}".format(self.server, self.port, e)) from e

    def _disconnected(self, e: Exception) -> DeviceConnectionError:
        self.emit(DISCONNECT, str(e))
        return DeviceConnectionError("Device disconnected: {}".format(e))

    def _recv_exact(self, size: int, data: Optional[bytearray] = None) -> bytes:
        """Receive `size` bytes, accumulated in `data` when given."""
        if self.socket is None:
            raise DeviceConnectionError("Transport is not opened")
        if data is None:
            data = bytearray()
        while len(data) < size:
            chunk = self.socket.recv(size - len(data))
            if not chunk:
                raise ConnectionResetError("connection closed by the emulator")
            data += chunk
        return bytes(data)

    def write(self, data: bytes) -> int:
        """Send `data` prefixed by its 4 bytes length through TCP socket `self.socket`."""
        if self.socket is None:
            raise DeviceConnectionError("Transport is not opened")
        if not data:
            raise DeviceConnectionError("Can't send empty data!")

        LOG.debug("=> %s", data.hex())
        data_len: bytes = int.to_bytes(len(data), 4, byteorder="big")

        try:
            self.socket.sendall(data_len + data)
        except OSError as e:
            raise self._disconnected(e) from e

        return len(data_len + data)

    def read(self) -> Tuple[int, bytes]:
        """Receive data through TCP socket `self.socket`.

        Blocking IO.

        Returns
        -------
        Tuple[int, bytes]
            A pair (sw, rdata) containing the status word and response data.

        """
        if self.socket is None:
            raise DeviceConnectionError("Transport is not opened")

        try:
            self.socket.settimeout(self.unresponsive_timeout)
            partial_header = bytearray()
            try:
                header = self._recv_exact(4, partial_header)
            except socket.timeout:
                LOG.debug("no answer after %ss", self.unresponsive_timeout)
                self.emit(UNRESPONSIVE)
                self.socket.settimeout(None)
                header = self._recv_exact(4, partial_header)
            self.socket.settimeout(None)

            length: int = int.from_bytes(header, byteorder="big")
            rdata: bytes = self._recv_exact(length)
            sw: int = int.from_bytes(self._recv_exact(2), byteorder="big")
        except OSError as e:
            raise self._disconnected(e) from e

        LOG.debug("<= %s %s", rdata.hex(), hex(sw)[2:])

        return sw, rdata

    def close(self) -> None:
        """Close connection to TCP socket `self.socket`."""
        if self.socket is not None:
            self.socket.close()
            self.socket = None
