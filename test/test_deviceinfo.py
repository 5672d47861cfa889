#! /usr/bin/env python3

import dataclasses
import unittest

from fakes import (
    NANO_S,
    NANO_X,
    FakeTransport,
    app_and_version_response,
    bootloader_response,
    se_response,
)
from hwmlib.deviceinfo import (
    classify,
    get_device_info,
    is_dashboard_name,
    is_dev_firmware,
    is_on_dashboard,
)
from hwmlib.errors import (
    DeviceNotOnboardedError,
    DeviceOnDashboardExpectedError,
    DeviceStatusError,
    MalformedResponseError,
)
from hwmlib.firmware import FirmwareInfo, decode_version
from hwmlib.transport.client import TransportClient

GET_APP_AND_VERSION = b"\xb0\x01\x00\x00\x00"
GET_VERSION = b"\xe0\x01\x00\x00\x00"

def se_info(version, flags=b"\x00", target_id=NANO_X):
    return FirmwareInfo(target_id=target_id, is_bootloader=False, raw_version=version, flags=flags, mcu_version="1.12", se_version=version, se_target_id=target_id)

class TestClassify(unittest.TestCase):
    def test_osu_with_provider(self):
        info = classify(se_info("1.6.0-osu-club", flags=b"\x08"))
        self.assertEqual(info.version, "1.6.0-club")
        self.assertTrue(info.is_osu)
        self.assertEqual(info.maj_min, "1.6")
        self.assertIsNone(info.provider_name)
        self.assertTrue(info.manager_allowed)
        self.assertFalse(info.pin_validated)

    def test_provider(self):
        info = classify(se_info("1.4.2-ee"))
        self.assertEqual(info.version, "1.4.2-ee")
        self.assertFalse(info.is_osu)
        self.assertEqual(info.maj_min, "1.4")
        self.assertEqual(info.provider_name, "ee")

        self.assertEqual(classify(se_info("1.4.2-das")).provider_name, "das")
        self.assertIsNone(classify(se_info("1.4.2-foo")).provider_name)
        self.assertIsNone(classify(se_info("1.4.2")).provider_name)

    def test_flags_in_first_byte(self):
        info = classify(se_info("2.0.0", flags=b"\x88"))
        self.assertTrue(info.manager_allowed)
        self.assertTrue(info.pin_validated)

        info = classify(se_info("2.0.0", flags=b""))
        self.assertFalse(info.manager_allowed)
        self.assertFalse(info.pin_validated)

    def test_recovery_and_onboarding_need_four_flag_bytes(self):
        info = classify(se_info("2.1.0", flags=b"\x01\x00\x00\x00"))
        self.assertTrue(info.is_recovery_mode)
        self.assertFalse(info.onboarded)

        info = classify(se_info("2.1.0", flags=b"\x04\x00\x00\x00"))
        self.assertFalse(info.is_recovery_mode)
        self.assertTrue(info.onboarded)

        for flags in (b"\x01", b"\x01\x00\x00", b"\x01\x00\x00\x00\x00"):
            info = classify(se_info("2.1.0", flags=flags))
            self.assertFalse(info.is_recovery_mode, flags.hex())
            self.assertTrue(info.onboarded, flags.hex())

    def test_dev_firmware(self):
        self.assertTrue(classify(se_info("2.1.0-rc1")).has_dev_firmware)
        self.assertTrue(classify(se_info("2.1.0-il0")).has_dev_firmware)
        self.assertFalse(classify(se_info("2.1.0")).has_dev_firmware)
        self.assertFalse(classify(se_info("2.1.0-ee")).has_dev_firmware)

        self.assertTrue(is_dev_firmware("1.0.0-lo2"))
        self.assertTrue(is_dev_firmware("1.0.0-tr"))
        self.assertFalse(is_dev_firmware(None))
        self.assertFalse(is_dev_firmware(""))

    def test_bootloader(self):
        firmware = decode_version(bootloader_response(0x01000001, "1.6", parts=[NANO_S.to_bytes(4, "big")]))
        info = classify(firmware)
        self.assertTrue(info.is_bootloader)
        self.assertEqual(info.version, "1.6")
        self.assertEqual(info.maj_min, "1.6")
        self.assertEqual(info.se_target_id, NANO_S)
        self.assertEqual(info.mcu_bl_version, "1.6")
        self.assertFalse(info.has_dev_firmware)

    def test_no_version_pattern(self):
        info = classify(se_info("custom"))
        self.assertIsNone(info.maj_min)
        self.assertIsNone(info.provider_name)
        self.assertEqual(info.version, "custom")

    def test_idempotent_on_cleaned_version(self):
        firmware = se_info("2.1.0-osu", flags=b"\x88\x00\x00\x00")
        first = classify(firmware)
        second = classify(dataclasses.replace(firmware, raw_version=first.version))
        self.assertEqual(first.version, "2.1.0")
        self.assertEqual(second.version, first.version)
        for name in ("maj_min", "provider_name", "manager_allowed", "pin_validated", "is_recovery_mode", "onboarded"):
            self.assertEqual(getattr(first, name), getattr(second, name), name)
        self.assertTrue(first.is_osu)
        self.assertFalse(second.is_osu)

    def test_copies_firmware_fields(self):
        firmware = decode_version(se_response(NANO_X, "2.1.0", extra=[b"1.2", b"\x05", b"\x07"]))
        info = classify(firmware)
        self.assertEqual(info.target_id, NANO_X)
        self.assertEqual(info.se_version, "2.1.0")
        self.assertEqual(info.mcu_version, "1.12")
        self.assertEqual(info.bootloader_version, "1.2")
        self.assertEqual(info.hardware_version, 5)
        self.assertEqual(info.language_id, 7)

    def test_dashboard_names(self):
        self.assertTrue(is_dashboard_name("BOLOS"))
        self.assertTrue(is_dashboard_name("OLOS\x00"))
        self.assertFalse(is_dashboard_name("Bitcoin"))
        self.assertFalse(is_dashboard_name("OLOS"))

class TestGetDeviceInfo(unittest.TestCase):
    def test_on_dashboard(self):
        transport = FakeTransport([
            (0x9000, app_and_version_response(b"BOLOS", b"2.1.0")),
            (0x9000, se_response(NANO_X, "2.1.0", flags=b"\x08", extra=[b"1.2", b"\x05", b"\x07"])),
        ])
        info = get_device_info(TransportClient(transport))
        self.assertEqual(transport.sent, [GET_APP_AND_VERSION, GET_VERSION])
        self.assertEqual(info.version, "2.1.0")
        self.assertTrue(info.manager_allowed)
        self.assertEqual(info.language_id, 7)

    def test_old_dashboard(self):
        transport = FakeTransport([
            (0x6e00, b""),
            (0x9000, se_response(NANO_S, "1.6.1")),
        ])
        info = get_device_info(TransportClient(transport))
        self.assertEqual(info.version, "1.6.1")

    def test_in_application(self):
        transport = FakeTransport([(0x9000, app_and_version_response(b"Bitcoin", b"2.1.0"))])
        with self.assertRaises(DeviceOnDashboardExpectedError):
            get_device_info(TransportClient(transport))
        self.assertEqual(transport.sent, [GET_APP_AND_VERSION])

        transport = FakeTransport([(0x6d00, b"")])
        with self.assertRaises(DeviceOnDashboardExpectedError):
            get_device_info(TransportClient(transport))

    def test_not_onboarded(self):
        for sw in (0x6d06, 0x6d07):
            transport = FakeTransport([
                (0x9000, app_and_version_response(b"BOLOS")),
                (sw, b""),
            ])
            with self.assertRaises(DeviceNotOnboardedError):
                get_device_info(TransportClient(transport))

    def test_other_status(self):
        transport = FakeTransport([
            (0x9000, app_and_version_response(b"BOLOS")),
            (0x5515, b""),
        ])
        with self.assertRaises(DeviceStatusError) as cm:
            get_device_info(TransportClient(transport))
        self.assertEqual(cm.exception.sw, 0x5515)

        transport = FakeTransport([(0x6a80, b"")])
        with self.assertRaises(DeviceStatusError) as cm:
            is_on_dashboard(TransportClient(transport))
        self.assertEqual(cm.exception.sw, 0x6a80)

    def test_get_target_id(self):
        transport = FakeTransport([(0x9000, se_response(NANO_X, "2.1.0")), (0x9000, b"\x33\x00")])
        client = TransportClient(transport)
        self.assertEqual(client.get_target_id(), NANO_X)
        with self.assertRaises(MalformedResponseError):
            client.get_target_id()

if __name__ == "__main__":
    unittest.main()
