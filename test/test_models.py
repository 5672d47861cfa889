#! /usr/bin/env python3

import unittest

import semver

from hwmlib.common import DeviceModelId
from hwmlib.models import (
    BOOTLOADER_VERSION_RANGES,
    HARDWARE_VERSION_RANGES,
    LOCALIZATION_RANGES,
    coerce_version,
    identify_target_id,
    version_satisfies,
)

class TestIdentifyTargetId(unittest.TestCase):
    def test_known_models(self):
        self.assertEqual(identify_target_id(0x31000002), DeviceModelId.BLUE)
        self.assertEqual(identify_target_id(0x31010004), DeviceModelId.BLUE)
        self.assertEqual(identify_target_id(0x31100004), DeviceModelId.NANO_S)
        self.assertEqual(identify_target_id(0x33000004), DeviceModelId.NANO_X)
        self.assertEqual(identify_target_id(0x33100004), DeviceModelId.NANO_SP)
        self.assertEqual(identify_target_id(0x33200004), DeviceModelId.STAX)
        self.assertEqual(identify_target_id(0x33300004), DeviceModelId.EUROPA)

    def test_unknown(self):
        self.assertIsNone(identify_target_id(0x3f000004))
        self.assertIsNone(identify_target_id(0x01000001))
        self.assertIsNone(identify_target_id(0))

class TestVersions(unittest.TestCase):
    def test_coerce(self):
        self.assertEqual(coerce_version("2.1.0"), semver.Version(2, 1, 0))
        self.assertEqual(coerce_version("2.1"), semver.Version(2, 1, 0))
        self.assertEqual(coerce_version("2"), semver.Version(2, 0, 0))
        self.assertEqual(coerce_version("1.0.3-rc2"), semver.Version(1, 0, 3))
        self.assertEqual(coerce_version("v2.0.2-il0"), semver.Version(2, 0, 2))
        self.assertIsNone(coerce_version("abc"))
        self.assertIsNone(coerce_version(""))

    def test_satisfies(self):
        self.assertTrue(version_satisfies("2.0.0", BOOTLOADER_VERSION_RANGES, DeviceModelId.NANO_X))
        self.assertFalse(version_satisfies("1.9.9", BOOTLOADER_VERSION_RANGES, DeviceModelId.NANO_X))
        self.assertTrue(version_satisfies("1.0.0", BOOTLOADER_VERSION_RANGES, DeviceModelId.NANO_SP))
        self.assertTrue(version_satisfies("2.0.2", HARDWARE_VERSION_RANGES, DeviceModelId.NANO_X))
        self.assertFalse(version_satisfies("2.0.2", HARDWARE_VERSION_RANGES, DeviceModelId.NANO_SP))
        self.assertFalse(version_satisfies("2.0.2", LOCALIZATION_RANGES, DeviceModelId.NANO_X))
        self.assertTrue(version_satisfies("1.1.0", LOCALIZATION_RANGES, DeviceModelId.NANO_SP))

    def test_unconfigured(self):
        self.assertFalse(version_satisfies("9.0.0", BOOTLOADER_VERSION_RANGES, DeviceModelId.STAX))
        self.assertFalse(version_satisfies("9.0.0", LOCALIZATION_RANGES, None))
        self.assertFalse(version_satisfies("unknown", BOOTLOADER_VERSION_RANGES, DeviceModelId.NANO_S))

if __name__ == "__main__":
    unittest.main()
