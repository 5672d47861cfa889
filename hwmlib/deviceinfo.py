"""
Device Information
******************

Turns the decoded firmware identity into the normalized record applications show and reason about.
"""

import re

from dataclasses import dataclass
from typing import Optional

from .common import StatusWord
from .errors import (
    DeviceNotOnboardedError,
    DeviceOnDashboardExpectedError,
    DeviceStatusError,
)
from .firmware import OSU_MARKER, FirmwareInfo
from .transport.client import TransportClient

MANAGER_ALLOWED_FLAG = 0x08
PIN_VALIDATED_FLAG = 0x80
RECOVERY_MODE_FLAG = 0x01
ONBOARDED_FLAG = 0x04

PROVIDERS = {
    "das": 2,
    "club": 3,
    "shitcoins": 4,
    "ee": 5,
}

DASHBOARD_NAMES = ("BOLOS", "OLOS\u0000")

# Firmware versions can contain letters, only these suffixes mark development builds
DEV_FIRMWARE_SUFFIXES = ("-lo", "-rc", "-il", "-tr")

_VERSION_RE = re.compile(r"([0-9]+.[0-9]+)(.[0-9]+)?(-(.*))?")


@dataclass(frozen=True)
class DeviceInfo:
    """
    Normalized information about a device, as returned by :func:`classify`.
    """
    version: str #: The firmware version without the OS update marker
    is_osu: bool #: Whether the firmware is an OS update package
    is_bootloader: bool #: Whether the device runs its bootloader
    target_id: int
    maj_min: Optional[str] #: ``MAJOR.MINOR`` part of the version
    provider_name: Optional[str] #: Firmware provider when the version suffix names one
    manager_allowed: bool
    pin_validated: bool
    is_recovery_mode: bool
    onboarded: bool
    has_dev_firmware: bool
    mcu_version: str = ""
    se_version: Optional[str] = None
    mcu_bl_version: Optional[str] = None
    se_target_id: Optional[int] = None
    mcu_target_id: Optional[int] = None
    bootloader_version: Optional[str] = None
    hardware_version: Optional[int] = None
    language_id: Optional[int] = None


def is_dashboard_name(name: str) -> bool:
    return name in DASHBOARD_NAMES


def is_dev_firmware(se_version: Optional[str]) -> bool:
    if not se_version:
        return False
    return any(suffix in se_version for suffix in DEV_FIRMWARE_SUFFIXES)


def classify(info: FirmwareInfo) -> DeviceInfo:
    """
    Derive the device information from a decoded get version response.

    The flags of 4 bytes are only sent by newer firmwares, which report the recovery and onboarding states in their first byte.
    Devices sending a shorter flags field are considered onboarded and not in recovery mode.

    :param info: The decoded get version response
    :return: The device information
    """
    raw_version = info.raw_version
    is_osu = OSU_MARKER in raw_version
    version = raw_version.replace(OSU_MARKER, "")

    maj_min = None
    post_dash = None
    m = _VERSION_RE.search(raw_version)
    if m is not None:
        maj_min = m.group(1)
        post_dash = m.group(4)
    provider_name = post_dash if post_dash in PROVIDERS else None

    flags = info.flags
    flag = flags[0] if len(flags) > 0 else 0

    is_recovery_mode = False
    onboarded = True
    if len(flags) == 4:
        is_recovery_mode = bool(flags[0] & RECOVERY_MODE_FLAG)
        onboarded = bool(flags[0] & ONBOARDED_FLAG)

    return DeviceInfo(
        version=version,
        is_osu=is_osu,
        is_bootloader=info.is_bootloader,
        target_id=info.target_id,
        maj_min=maj_min,
        provider_name=provider_name,
        manager_allowed=bool(flag & MANAGER_ALLOWED_FLAG),
        pin_validated=bool(flag & PIN_VALIDATED_FLAG),
        is_recovery_mode=is_recovery_mode,
        onboarded=onboarded,
        has_dev_firmware=is_dev_firmware(info.se_version),
        mcu_version=info.mcu_version,
        se_version=info.se_version,
        mcu_bl_version=info.mcu_bl_version,
        se_target_id=info.se_target_id,
        mcu_target_id=info.mcu_target_id,
        bootloader_version=info.bootloader_version,
        hardware_version=info.hardware_version,
        language_id=info.language_id,
    )


def is_on_dashboard(client: TransportClient) -> bool:
    """
    Ask the device which application is running.

    When the get app and version command itself is refused, the status word tells:
    an unknown instruction class means an old dashboard, an unknown instruction means an application.

    :param client: The client of the device
    :return: Whether the device is on its dashboard
    :raises DeviceStatusError: for any other refusal
    """
    try:
        return is_dashboard_name(client.get_app_and_version().name)
    except DeviceStatusError as e:
        if e.sw == StatusWord.CLA_NOT_SUPPORTED:
            return True
        if e.sw == StatusWord.INS_NOT_SUPPORTED:
            return False
        raise


def get_device_info(client: TransportClient) -> DeviceInfo:
    """
    Get the information of a device that is on its dashboard.

    :param client: The client of the device
    :return: The device information
    :raises DeviceOnDashboardExpectedError: if an application is running on the device
    :raises DeviceNotOnboardedError: if the device has not been set up yet
    """
    if not is_on_dashboard(client):
        raise DeviceOnDashboardExpectedError()

    try:
        info = client.get_version()
    except DeviceStatusError as e:
        if e.sw in (StatusWord.DEVICE_NOT_ONBOARDED, StatusWord.DEVICE_NOT_ONBOARDED_2):
            raise DeviceNotOnboardedError() from e
        raise

    return classify(info)
