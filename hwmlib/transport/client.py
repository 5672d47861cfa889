"""hwmlib.transport.client module."""

from ..common import read_uint_be
from ..errors import MalformedResponseError
from ..firmware import (
    AppAndVersion,
    FirmwareInfo,
    decode_app_and_version,
    decode_version,
)
from .base import Transport

CLA_BOLOS = 0xe0
CLA_DASHBOARD = 0xb0
INS_GET_VERSION = 0x01
INS_GET_APP_AND_VERSION = 0x01


class TransportClient:
    """Identification commands on top of a :class:`~hwmlib.transport.base.Transport`.

    Every method raises :class:`~hwmlib.errors.DeviceStatusError` when the device
    answers with a status word other than 0x9000.
    """

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    def get_version(self, legacy_offset: bool = False) -> FirmwareInfo:
        """Send ``E0 01 00 00`` and decode the firmware identity."""
        data = self.transport.send(CLA_BOLOS, INS_GET_VERSION, 0x00, 0x00)
        return decode_version(data, legacy_offset=legacy_offset)

    def get_app_and_version(self) -> AppAndVersion:
        """Send ``B0 01 00 00`` and decode the running application name and version."""
        data = self.transport.send(CLA_DASHBOARD, INS_GET_APP_AND_VERSION, 0x00, 0x00)
        return decode_app_and_version(data)

    def get_target_id(self) -> int:
        """Send ``E0 01 00 00`` and only read the target id, without decoding the rest of the answer."""
        data = self.transport.send(CLA_BOLOS, INS_GET_VERSION, 0x00, 0x00)
        if len(data) < 4:
            raise MalformedResponseError("Target id truncated: {} bytes".format(len(data)))
        return read_uint_be(data, 4)

    def stop(self) -> None:
        self.transport.close()
