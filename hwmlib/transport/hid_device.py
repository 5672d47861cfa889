"""hwmlib.transport.hid_device module."""

import time
from typing import Any, Dict, List, Optional, Tuple

import hid

from .base import DISCONNECT, UNRESPONSIVE, Transport
from .log import LOG
from ..errors import DeviceConnectionError, MalformedResponseError

LEDGER_VENDOR_ID = 0x2C97

CHANNEL = b"\x01\x01"
TAG_APDU = 0x05
PACKET_SIZE = 64
# Milliseconds between two checks of the unresponsive timer while waiting for an answer
POLL_INTERVAL_MS = 250


class HIDTransport(Transport):
    """HID transport.

    Used to communicate with the devices through USB.

    Parameters
    ----------
    hid_path : Optional[bytes]
        Path of the HID device. Default to the first device enumerated.
    vendor_id : int
        Vendor ID of the device. Default to Ledger Vendor ID 0x2C97.
    unresponsive_timeout : float
        Seconds to wait for the first packet of an answer before emitting ``"unresponsive"``.

    Attributes
    ----------
    device : hid.device
        HID device connection.
    path : Optional[bytes]
        Path of the HID device.
    __opened : bool
        Whether the connection to the HID device is opened or not.

    """

    def __init__(self,
                 hid_path: Optional[bytes] = None,
                 vendor_id: int = LEDGER_VENDOR_ID,
                 unresponsive_timeout: float = 15.0) -> None:
        """Init constructor of HIDTransport."""
        super().__init__(unresponsive_timeout)
        self.device = hid.device()
        self.path: Optional[bytes] = hid_path
        self.vendor_id: int = vendor_id
        self.__opened: bool = False

    def open(self) -> None:
        """Open connection to the HID device."""
        if not self.__opened:
            if self.path is None:
                paths = HIDTransport.enumerate_devices(self.vendor_id)
                if not paths:
                    raise DeviceConnectionError(
                        "Can't find device with vendor_id {}".format(hex(self.vendor_id)))
                self.path = paths[0]
            try:
                self.device.open_path(self.path)
            except OSError as e:
                raise DeviceConnectionError("Unable to open {!r}: {}".format(self.path, e)) from e
            self.device.set_nonblocking(True)
            self.__opened = True

    @staticmethod
    def list_devices(vendor_id: int = LEDGER_VENDOR_ID) -> List[Dict[str, Any]]:
        """List the hidapi descriptions of the APDU interfaces of the devices with `vendor_id`."""
        devices: List[Dict[str, Any]] = []

        for hid_device in hid.enumerate(vendor_id, 0):
            if (hid_device.get("interface_number") == 0 or
                    # MacOS specific
                    hid_device.get("usage_page") == 0xffa0):
                devices.append(hid_device)

        return devices

    @staticmethod
    def enumerate_devices(vendor_id: int = LEDGER_VENDOR_ID) -> List[bytes]:
        """Enumerate the paths of the HID devices with `vendor_id`."""
        return [d["path"] for d in HIDTransport.list_devices(vendor_id)]

    def _disconnected(self, e: Exception) -> DeviceConnectionError:
        self.emit(DISCONNECT, str(e))
        return DeviceConnectionError("Device disconnected: {}".format(e))

    def write(self, data: bytes) -> int:
        """Send `data` through HID device `self.device`, split in 64 bytes packets.

        Returns
        -------
        int
            Total length of data sent to the device.

        """
        if not data:
            raise DeviceConnectionError("Can't send empty data!")

        LOG.debug("=> %s", data.hex())

        data = int.to_bytes(len(data), 2, byteorder="big") + data
        offset: int = 0
        seq_idx: int = 0
        length: int = 0

        while offset < len(data):
            # Header: channel (0x0101), tag (0x05), sequence index
            header: bytes = CHANNEL + bytes([TAG_APDU]) + seq_idx.to_bytes(2, byteorder="big")
            data_chunk: bytes = header + data[offset:offset + PACKET_SIZE - len(header)]

            try:
                self.device.write(b"\x00" + data_chunk)
            except (OSError, ValueError) as e:
                raise self._disconnected(e) from e
            length += len(data_chunk) + 1
            offset += PACKET_SIZE - len(header)
            seq_idx += 1

        return length

    def _read_packet(self, timeout_ms: int) -> bytes:
        try:
            return bytes(self.device.read(PACKET_SIZE + 1, timeout_ms=timeout_ms))
        except (OSError, ValueError) as e:
            raise self._disconnected(e) from e

    def _wait_first_packet(self) -> bytes:
        start = time.monotonic()
        warned = False
        while True:
            packet = self._read_packet(POLL_INTERVAL_MS)
            if packet:
                return packet
            if not warned and time.monotonic() - start > self.unresponsive_timeout:
                warned = True
                LOG.debug("no answer after %ss", self.unresponsive_timeout)
                self.emit(UNRESPONSIVE)

    def read(self) -> Tuple[int, bytes]:
        """Receive data through HID device `self.device`.

        Blocking IO.

        Returns
        -------
        Tuple[int, bytes]
            A pair (sw, rdata) containing the status word and response data.

        """
        seq_idx: int = 0
        data_chunk: bytes = self._wait_first_packet()

        if data_chunk[:2] != CHANNEL or data_chunk[2] != TAG_APDU:
            raise MalformedResponseError("Unexpected HID packet header {}".format(data_chunk[:5].hex()))
        if data_chunk[3:5] != seq_idx.to_bytes(2, byteorder="big"):
            raise MalformedResponseError("Unexpected HID sequence index {}".format(data_chunk[3:5].hex()))

        data_len: int = int.from_bytes(data_chunk[5:7], byteorder="big")
        data: bytes = data_chunk[7:]

        while len(data) < data_len:
            read_bytes = self._read_packet(1000)
            if not read_bytes:
                raise self._disconnected(TimeoutError("answer interrupted after {} bytes".format(len(data))))
            data += read_bytes[5:]

        sw: int = int.from_bytes(data[data_len - 2:data_len], byteorder="big")
        rdata: bytes = data[:data_len - 2]

        LOG.debug("<= %s %s", rdata.hex(), hex(sw)[2:])

        return sw, rdata

    def close(self) -> None:
        """Close connection to HID device `self.device`."""
        if self.__opened:
            self.device.close()
            self.__opened = False
