#! /usr/bin/env python3

from .commands import (
    enumerate,
    get_transport,
    getappandversion,
    getdeviceinfo,
    getversion,
    install,
    uninstall,
)
from .errors import (
    handle_errors,
    BadArgumentError,
    DEVICE_CONN_ERROR,
    HELP_TEXT,
    MISSING_ARGUMENTS,
)
from .manager import INSTALL_URL
from .transport.base import Transport
from . import __version__

import argparse
import logging
import json
import os
import sys

from typing import (
    Any,
    Dict,
    IO,
    List,
    NoReturn,
    Optional,
)


def load_app(value: str) -> Dict[str, Any]:
    """Read an application record given as a JSON object or as the path of a JSON file."""
    try:
        if os.path.isfile(value):
            with open(value, "r") as f:
                app = json.load(f)
        else:
            app = json.loads(value)
    except ValueError as e:
        raise BadArgumentError("Invalid application record: {}".format(e))
    if not isinstance(app, dict):
        raise BadArgumentError("The application record must be a JSON object")
    return app

def enumerate_handler(args: argparse.Namespace) -> List[Dict[str, Any]]:
    return enumerate(allow_emulators=args.allow_emulators)

def getdeviceinfo_handler(args: argparse.Namespace, transport: Transport) -> Dict[str, Any]:
    return getdeviceinfo(transport)

def getversion_handler(args: argparse.Namespace, transport: Transport) -> Dict[str, Any]:
    return getversion(transport, legacy_offset=args.legacy_offset)

def getappandversion_handler(args: argparse.Namespace, transport: Transport) -> Dict[str, Any]:
    return getappandversion(transport)

def install_handler(args: argparse.Namespace, transport: Transport) -> Dict[str, bool]:
    return install(transport, load_app(args.app), url=args.url)

def uninstall_handler(args: argparse.Namespace, transport: Transport) -> Dict[str, bool]:
    return uninstall(transport, load_app(args.app), url=args.url)

class HWMHelpFormatter(argparse.ArgumentDefaultsHelpFormatter, argparse.RawDescriptionHelpFormatter):
    pass

class HWMArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.formatter_class = HWMHelpFormatter

    def print_usage(self, file: Optional[IO[str]] = None) -> None:
        if file is None:
            file = sys.stderr
        super().print_usage(file)

    def print_help(self, file: Optional[IO[str]] = None) -> None:
        if file is None:
            file = sys.stderr
        super().print_help(file)
        error = {'error': 'Help text requested', 'code': HELP_TEXT}
        print(json.dumps(error))

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        args = {'prog': self.prog, 'message': message}
        error = {'error': '%(prog)s: error: %(message)s' % args, 'code': MISSING_ARGUMENTS}
        print(json.dumps(error))
        self.exit(2)

def get_parser() -> HWMArgumentParser:
    parser = HWMArgumentParser(description='Hardware Wallet Manager, version {}.\nQuery the firmware of a device and install applications on it. Responses are in JSON format.'.format(__version__))
    parser.add_argument('--device-path', '-d', help='Specify the device path of the device to connect to. Use tcp:<host>:<port> for an emulator. If not given, the first USB device enumerated is used.')
    parser.add_argument('--debug', help='Print debug statements', action='store_true')
    parser.add_argument('--version', action='version', version='%(prog)s {}'.format(__version__))
    parser.add_argument('--stdin', help='Enter commands and arguments via stdin', action='store_true')
    parser.add_argument('--unresponsive-timeout', help='Seconds after which a device that does not answer is considered locked', type=float, default=15.0)
    parser.add_argument("--emulators", help="Enable enumeration and detection of device emulators", action="store_true", dest="allow_emulators")

    subparsers = parser.add_subparsers(description='Commands', dest='command')
    # work-around to make subparser required
    subparsers.required = True

    enumerate_parser = subparsers.add_parser('enumerate', help='List all available devices')
    enumerate_parser.set_defaults(func=enumerate_handler)

    getdeviceinfo_parser = subparsers.add_parser('getdeviceinfo', help='Get the firmware information of a device. The device must be on its dashboard')
    getdeviceinfo_parser.set_defaults(func=getdeviceinfo_handler)

    getversion_parser = subparsers.add_parser('getversion', help='Get the raw firmware identity of a device, in bootloader or normal mode')
    getversion_parser.add_argument('--legacy-offset', action='store_true', help='Read bootloader answers the way older hosts did, for firmwares that send a short secure element target id')
    getversion_parser.set_defaults(func=getversion_handler)

    getappandversion_parser = subparsers.add_parser('getappandversion', help='Get the name and version of the running application')
    getappandversion_parser.set_defaults(func=getappandversion_handler)

    install_parser = subparsers.add_parser('install', help='Install an application')
    install_parser.add_argument('app', help='The application version record, as a JSON object or the path of a JSON file')
    install_parser.add_argument('--url', help='The installation endpoint', default=INSTALL_URL)
    install_parser.set_defaults(func=install_handler)

    uninstall_parser = subparsers.add_parser('uninstall', help='Uninstall an application')
    uninstall_parser.add_argument('app', help='The application version record, as a JSON object or the path of a JSON file')
    uninstall_parser.add_argument('--url', help='The installation endpoint', default=INSTALL_URL)
    uninstall_parser.set_defaults(func=uninstall_handler)

    return parser

def process_commands(cli_args: List[str]) -> Any:
    parser = get_parser()

    if any(arg == '--stdin' for arg in cli_args):
        while True:
            try:
                line = input()
                # Exit loop when we see 2 consecutive newlines (i.e. an empty line)
                if line == '':
                    break
                # Split the line and append it to the cli args
                import shlex
                cli_args.extend(shlex.split(line))
            except EOFError:
                # If we see EOF, stop taking input
                break

    # Parse arguments again for anything entered over stdin
    args = parser.parse_args(cli_args)

    command = args.command
    result: Dict[str, Any] = {}

    # Setup debug logging
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    # List all available devices
    if command == 'enumerate':
        with handle_errors(result=result, debug=args.debug):
            return args.func(args)
        return result

    with handle_errors(result=result, code=DEVICE_CONN_ERROR):
        transport = get_transport(args.device_path, args.unresponsive_timeout)
    if 'error' in result:
        return result

    # Do the commands
    with handle_errors(result=result, debug=args.debug):
        result = args.func(args, transport)

    with handle_errors(result=result, debug=args.debug):
        transport.close()

    return result

def main() -> None:
    result = process_commands(sys.argv[1:])
    print(json.dumps(result))
