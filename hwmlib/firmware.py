"""
Firmware Identity
*****************

Decoders for the responses of the two identification APDUs:

- ``E0 01 00 00`` (get version) answers with the target id, the versions and the flags of the firmware that is running,
  bootloader or secure element. Which fields follow depends on the mode and, in secure element mode, on the model and version.
- ``B0 01 00 00`` (get app and version) answers with the name and version of the running application.

Both decoders take the response data without its trailing status word.
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from .common import read_uint_be
from .errors import MalformedResponseError, UnsupportedFormatError
from .models import (
    BOOTLOADER_VERSION_RANGES,
    HARDWARE_VERSION_RANGES,
    LOCALIZATION_RANGES,
    identify_target_id,
    version_satisfies,
)

OSU_MARKER = "-osu"

SE_TARGET_ID_MASK = 0xf0000000
SE_TARGET_ID_PREFIX = 0x30000000

# A bootloader part shorter than this is a bare target id, longer is a version string
SE_VERSION_MIN_LENGTH = 5


@dataclass(frozen=True)
class FirmwareInfo:
    """
    The decoded get version response.

    Exactly one of the two groups of optional fields is filled in:
    ``mcu_bl_version``, ``mcu_target_id``, ``se_version`` and ``se_target_id`` in bootloader mode,
    ``se_version``, ``se_target_id``, ``mcu_version`` and the fields gated by the model in secure element mode.
    """
    target_id: int
    is_bootloader: bool
    raw_version: str
    flags: bytes
    mcu_version: str = ""
    mcu_bl_version: Optional[str] = None
    mcu_target_id: Optional[int] = None
    se_version: Optional[str] = None
    se_target_id: Optional[int] = None
    bootloader_version: Optional[str] = None
    hardware_version: Optional[int] = None
    language_id: Optional[int] = None


@dataclass(frozen=True)
class AppAndVersion:
    """The decoded get app and version response."""
    name: str
    version: str
    flags: bytes


class _ResponseReader:
    """Cursor over a response, failing instead of reading past its end."""

    def __init__(self, data: bytes) -> None:
        self.stream = BytesIO(data)
        self.size = len(data)

    @property
    def offset(self) -> int:
        return self.stream.tell()

    def remaining(self) -> int:
        return self.size - self.stream.tell()

    def read(self, length: int) -> bytes:
        if length > self.remaining():
            raise MalformedResponseError(
                "Response truncated: {} bytes needed at offset {}, {} available".format(length, self.offset, self.remaining())
            )
        return self.stream.read(length)

    def read_byte(self) -> int:
        return self.read(1)[0]

    def read_field(self) -> bytes:
        """Read a field made of a length byte followed by that many bytes."""
        return self.read(self.read_byte())

    def skip(self, length: int) -> None:
        self.stream.seek(length, 1)


def _strip_nul(buf: bytes) -> bytes:
    if buf.endswith(b"\x00"):
        return buf[:-1]
    return buf


def _text(buf: bytes) -> str:
    # Undecodable bytes become U+FFFD
    return buf.decode("utf-8", errors="replace")


def is_bootloader_target_id(target_id: int) -> bool:
    """
    :param target_id: The target id of the running firmware
    :return: Whether the target id belongs to a bootloader rather than to a secure element
    """
    return (target_id & SE_TARGET_ID_MASK) != SE_TARGET_ID_PREFIX


def decode_version(data: bytes, legacy_offset: bool = False) -> FirmwareInfo:
    """
    Decode the response to the get version APDU.

    In bootloader mode, newer bootloaders follow the flags with the secure element version and
    target id, older ones with the secure element target id only.
    Firmwares that ran the second field of the newer layout short were accepted by older hosts,
    which skipped it using the length of the flags field. ``legacy_offset`` restores that.

    :param data: The response data, without the status word
    :param legacy_offset: Skip the secure element target id field by the flags length instead of its own length
    :return: The firmware identity
    :raises MalformedResponseError: if a field runs past the end of the response
    """
    reader = _ResponseReader(data)

    target_id = read_uint_be(reader.read(4), 4)

    raw_version_length = reader.read_byte()
    raw_version = _text(reader.read(raw_version_length))

    flags = b""
    flags_length = 0
    if raw_version_length or reader.remaining():
        flags_length = reader.read_byte()
        flags = reader.read(flags_length)

    if not raw_version_length:
        # Bootloaders such as 1.3.1 do not report a version
        raw_version = "0.0.0"
        flags = b""

    if is_bootloader_target_id(target_id):
        se_version = None
        se_target_id = None

        if reader.remaining():
            part1 = reader.read_field()

            if len(part1) >= SE_VERSION_MIN_LENGTH:
                se_version = _text(part1)
                part2_length = reader.read_byte()
                if legacy_offset:
                    part2 = data[reader.offset:reader.offset + part2_length]
                    if len(part2) < 4:
                        raise MalformedResponseError("Secure element target id truncated")
                    reader.skip(flags_length)
                else:
                    part2 = reader.read(part2_length)
                se_target_id = _read_target_id(part2)
            else:
                se_target_id = _read_target_id(part1)

        return FirmwareInfo(
            target_id=target_id,
            is_bootloader=True,
            raw_version=raw_version,
            flags=flags,
            mcu_bl_version=raw_version,
            mcu_target_id=target_id,
            se_version=se_version,
            se_target_id=se_target_id,
        )

    se_version = raw_version
    mcu_version = _text(_strip_nul(reader.read_field()))

    bootloader_version = None
    hardware_version = None
    language_id = None

    # OS update packages report nothing more
    if OSU_MARKER not in raw_version:
        model = identify_target_id(target_id)

        if version_satisfies(se_version, BOOTLOADER_VERSION_RANGES, model):
            bootloader_version = _text(_strip_nul(reader.read_field()))

        if version_satisfies(se_version, HARDWARE_VERSION_RANGES, model):
            hardware_version = _first_byte(reader.read_field(), "hardware version")

        if version_satisfies(se_version, LOCALIZATION_RANGES, model):
            language_id = _first_byte(reader.read_field(), "language id")

    return FirmwareInfo(
        target_id=target_id,
        is_bootloader=False,
        raw_version=raw_version,
        flags=flags,
        mcu_version=mcu_version,
        se_version=se_version,
        se_target_id=target_id,
        bootloader_version=bootloader_version,
        hardware_version=hardware_version,
        language_id=language_id,
    )


def _read_target_id(buf: bytes) -> int:
    if len(buf) < 4:
        raise MalformedResponseError("Secure element target id truncated: {} bytes".format(len(buf)))
    return read_uint_be(buf, 4)


def _first_byte(buf: bytes, name: str) -> int:
    if not buf:
        raise MalformedResponseError("Empty {} field".format(name))
    return buf[0]


def decode_app_and_version(data: bytes) -> AppAndVersion:
    """
    Decode the response to the get app and version APDU.

    :param data: The response data, without the status word
    :return: The name, version and flags of the running application
    :raises UnsupportedFormatError: if the response format byte is not 1
    :raises MalformedResponseError: if a field runs past the end of the response
    """
    reader = _ResponseReader(data)
    fmt = reader.read_byte()
    if fmt != 1:
        raise UnsupportedFormatError("Get app and version format {} not supported".format(fmt))

    name = _text(reader.read_field())
    version = _text(reader.read_field())
    flags = reader.read_field()
    return AppAndVersion(name=name, version=version, flags=flags)
