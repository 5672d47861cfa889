"""
Device Models
*************

Static knowledge about the hardware models: which target ids belong to which model,
and from which secure element version a model starts reporting extra fields in its version response.
"""

import re

from typing import (
    Dict,
    Optional,
    Tuple,
)

import semver

from .common import DeviceModelId

# Target id masks (target_id & 0xffff0000) of each model
MODEL_TARGET_ID_MASKS: Dict[DeviceModelId, Tuple[int, ...]] = {
    DeviceModelId.BLUE: (0x31000000, 0x31010000),
    DeviceModelId.NANO_S: (0x31100000,),
    DeviceModelId.NANO_X: (0x33000000,),
    DeviceModelId.NANO_SP: (0x33100000,),
    DeviceModelId.STAX: (0x33200000,),
    DeviceModelId.EUROPA: (0x33300000,),
}

# Minimum secure element version from which the version response carries the field
BOOTLOADER_VERSION_RANGES: Dict[DeviceModelId, str] = {
    DeviceModelId.NANO_S: ">=2.0.0",
    DeviceModelId.NANO_X: ">=2.0.0",
    DeviceModelId.NANO_SP: ">=1.0.0",
}

HARDWARE_VERSION_RANGES: Dict[DeviceModelId, str] = {
    DeviceModelId.NANO_X: ">=2.0.0",
}

LOCALIZATION_RANGES: Dict[DeviceModelId, str] = {
    DeviceModelId.NANO_X: ">=2.1.0",
    DeviceModelId.NANO_SP: ">=1.1.0",
}

_LEADING_VERSION = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def identify_target_id(target_id: int) -> Optional[DeviceModelId]:
    """
    Find the model a target id belongs to.

    :param target_id: The target id reported by the device, in either bootloader or secure element mode
    :return: The model, or None if the target id is not known
    """
    mask = target_id & 0xffff0000
    for model, masks in MODEL_TARGET_ID_MASKS.items():
        if mask in masks:
            return model
    return None


def coerce_version(version: str) -> Optional[semver.Version]:
    """
    Coerce a firmware version string to a semantic version using its leading numeric dotted form.
    Missing minor or patch parts are 0, so ``"2.1-rc1"`` becomes ``2.1.0``.

    :param version: The firmware version string
    :return: The semantic version, or None if the string has no number in it
    """
    match = _LEADING_VERSION.search(version)
    if match is None:
        return None
    major, minor, patch = (int(part) if part else 0 for part in match.groups())
    return semver.Version(major, minor, patch)


def version_satisfies(version: str, ranges: Dict[DeviceModelId, str], model: Optional[DeviceModelId]) -> bool:
    """
    Check that a model has a minimum version configured in ``ranges`` and that ``version`` satisfies it.

    :param version: The secure element version string
    :param ranges: One of the per model version range tables of this module
    :param model: The model of the device, None if unknown
    :return: Whether the device reports the field associated with ``ranges``
    """
    if model is None or model not in ranges:
        return False
    coerced = coerce_version(version)
    if coerced is None:
        return False
    return coerced.match(ranges[model])
