"""
Common Classes and Utilities
****************************
"""

from enum import Enum, IntEnum


class StatusWord(IntEnum):
    """
    Status words the device appends to every APDU response
    """
    OK = 0x9000 #: Command succeeded
    LOCKED_DEVICE = 0x5515 #: The device is locked by its PIN
    USER_REFUSED_ON_DEVICE = 0x5501 #: The user rejected the action on the device
    CONDITIONS_OF_USE_NOT_SATISFIED = 0x6985 #: The action was denied, usually by the user
    CLA_NOT_SUPPORTED = 0x6e00 #: No application handles this instruction class
    INS_NOT_SUPPORTED = 0x6d00 #: The running application does not know the instruction
    DEVICE_NOT_ONBOARDED = 0x6d07 #: The device has no seed yet
    DEVICE_NOT_ONBOARDED_2 = 0x6d06 #: The device has no seed yet, older firmwares

    def __str__(self) -> str:
        return str(self.name).lower()


class DeviceModelId(Enum):
    """
    The hardware models a target id can resolve to
    """
    BLUE = "blue"
    NANO_S = "nanoS"
    NANO_X = "nanoX"
    NANO_SP = "nanoSP"
    STAX = "stax"
    EUROPA = "europa"

    def __str__(self) -> str:
        return str(self.value)

    def __repr__(self) -> str:
        return str(self)


def read_uint_be(data: bytes, length: int) -> int:
    """
    Read an unsigned big endian integer from the start of ``data``.

    :param data: The bytes to read from, at least ``length`` long
    :param length: The number of bytes making the integer
    :return: The integer
    """
    return int.from_bytes(data[:length], byteorder="big")
