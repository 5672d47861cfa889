#! /usr/bin/env python3

import argparse
import sys
import unittest

from test_cli import TestCommands, TestLoadApp
from test_device import device_test_suite
from test_deviceinfo import TestClassify, TestGetDeviceInfo
from test_firmware import TestAppAndVersion, TestBootloaderMode, TestRoundTrip, TestSecureElementMode
from test_manager import TestInstallApp, TestInstallUrl
from test_models import TestIdentifyTargetId, TestVersions
from test_relay import TestActiveMode, TestBulkMode, TestListeners, TestMessages
from test_transport import TestHIDTransport, TestTCPTransport, TestTransport

parser = argparse.ArgumentParser(description='Run automated tests')
parser.add_argument('--device-path', help='Also run the device tests against the device or emulator at this path, tcp:<host>:<port> for an emulator')
parser.add_argument('--interface', help='Which interface to send commands over', choices=['library', 'cli', 'stdin'], default='library')
parser.add_argument("--device-only", help="Only run device tests", action="store_true")

args = parser.parse_args()

# Run tests
success = True
suite = unittest.TestSuite()
if not args.device_only:
    for testcase in (
        TestSecureElementMode,
        TestBootloaderMode,
        TestRoundTrip,
        TestAppAndVersion,
        TestIdentifyTargetId,
        TestVersions,
        TestClassify,
        TestGetDeviceInfo,
        TestTransport,
        TestTCPTransport,
        TestHIDTransport,
        TestActiveMode,
        TestMessages,
        TestBulkMode,
        TestListeners,
        TestInstallUrl,
        TestInstallApp,
        TestCommands,
        TestLoadApp,
    ):
        suite.addTests(unittest.defaultTestLoader.loadTestsFromTestCase(testcase))
    success = unittest.TextTestRunner(stream=sys.stdout, verbosity=2).run(suite).wasSuccessful()

if success and args.device_path:
    success &= device_test_suite(args.device_path, args.interface)

sys.exit(not success)
