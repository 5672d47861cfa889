#! /usr/bin/env python3

"""
Commands
********

The functions in this module are the primary way to interact with devices.
Each function that takes a ``transport`` uses an opened :class:`~hwmlib.transport.base.Transport`.

Transports can be constructed using :func:`~get_transport`.

The :func:`~enumerate` function returns information about what devices are available to be connected to.
These information can then be used with :func:`~get_transport`.

Results are dictionaries ready to be serialized to JSON.
"""

import dataclasses
import importlib
import logging

from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from .deviceinfo import get_device_info
from .errors import DeviceConnectionError
from .manager import INSTALL_URL, install_app
from .relay import RelayObserver
from .transport.base import Transport
from .transport.client import TransportClient
from .transport.tcp_client import SIMULATOR_PATH, TCPTransport

LOG = logging.getLogger(__name__)

LEDGER_MODEL_IDS = {
    0x10: "ledger_nano_s",
    0x40: "ledger_nano_x",
    0x50: "ledger_nano_s_plus",
    0x60: "ledger_stax",
    0x70: "ledger_flex"
}
LEDGER_LEGACY_PRODUCT_IDS = {
    0x0001: "ledger_nano_s",
    0x0004: "ledger_nano_x"
}


def _to_json_dict(record: Any) -> Dict[str, Any]:
    result = dataclasses.asdict(record)
    for key, value in result.items():
        if isinstance(value, bytes):
            result[key] = value.hex()
    return result


def _hid_transport_class() -> Any:
    # Only import hidapi when a USB device is actually used
    module = importlib.import_module(".transport.hid_device", __package__)
    return module.HIDTransport


def get_transport(device_path: Optional[str] = None, unresponsive_timeout: float = 15.0) -> Transport:
    """
    Returns an opened transport to the device at the device path

    :param device_path: The path as returned by :func:`~enumerate`. ``tcp:<server>:<port>`` for an emulator. None for the first USB device found
    :param unresponsive_timeout: Seconds before a device that does not answer is reported unresponsive
    :return: The opened transport
    :raises DeviceConnectionError: if the device cannot be opened
    """
    transport: Transport
    if device_path is not None and device_path.startswith("tcp"):
        transport = TCPTransport.from_path(device_path, unresponsive_timeout)
    else:
        hid_path = device_path.encode() if device_path is not None else None
        transport = _hid_transport_class()(hid_path=hid_path, unresponsive_timeout=unresponsive_timeout)
    transport.open()
    return transport


def enumerate(allow_emulators: bool = False) -> List[Dict[str, Any]]:
    """
    Enumerate all of the devices that can be connected to.

    :param allow_emulators: Whether to look for an emulator at the default address
    :return: A list of devices, each with its ``type``, ``model`` and ``path``
    """
    results: List[Dict[str, Any]] = []

    for d in _hid_transport_class().list_devices():
        model = d["product_id"] >> 8
        if model in LEDGER_MODEL_IDS:
            model_name = LEDGER_MODEL_IDS[model]
        elif d["product_id"] in LEDGER_LEGACY_PRODUCT_IDS:
            model_name = LEDGER_LEGACY_PRODUCT_IDS[d["product_id"]]
        else:
            continue
        results.append({"type": "ledger", "model": model_name, "path": d["path"].decode()})

    if allow_emulators:
        try:
            transport = get_transport(SIMULATOR_PATH)
        except DeviceConnectionError:
            # Ignore simulator if there's an exception, means it isn't there
            LOG.debug("No emulator at %s", SIMULATOR_PATH)
        else:
            transport.close()
            results.append({"type": "ledger", "model": "emulator", "path": SIMULATOR_PATH})

    return results


def getdeviceinfo(transport: Transport) -> Dict[str, Any]:
    """
    Get the information of a device on its dashboard.

    :param transport: The transport of the device
    :return: The fields of :class:`~hwmlib.deviceinfo.DeviceInfo`
    """
    return _to_json_dict(get_device_info(TransportClient(transport)))


def getversion(transport: Transport, legacy_offset: bool = False) -> Dict[str, Any]:
    """
    Get the raw firmware identity of a device, in any mode.

    :param transport: The transport of the device
    :param legacy_offset: See :func:`~hwmlib.firmware.decode_version`
    :return: The fields of :class:`~hwmlib.firmware.FirmwareInfo`
    """
    return _to_json_dict(TransportClient(transport).get_version(legacy_offset=legacy_offset))


def getappandversion(transport: Transport) -> Dict[str, Any]:
    """
    Get the name and version of the application running on a device.

    :param transport: The transport of the device
    :return: The fields of :class:`~hwmlib.firmware.AppAndVersion`
    """
    return _to_json_dict(TransportClient(transport).get_app_and_version())


def install(transport: Transport, app: Dict[str, Any], url: str = INSTALL_URL, observer: Optional[RelayObserver] = None) -> Dict[str, bool]:
    """
    Install an application on a device.

    :param transport: The transport of the device
    :param app: The application version record
    :param url: The installation endpoint
    :param observer: Receives the warnings of the installation session
    :return: A dictionary containing the key ``success`` set to True if the installation completed
    """
    install_app(transport, app, delete=False, base_url=url, observer=observer)
    return {"success": True}


def uninstall(transport: Transport, app: Dict[str, Any], url: str = INSTALL_URL, observer: Optional[RelayObserver] = None) -> Dict[str, bool]:
    """
    Uninstall an application from a device.

    :param transport: The transport of the device
    :param app: The application version record
    :param url: The installation endpoint
    :param observer: Receives the warnings of the session
    :return: A dictionary containing the key ``success`` set to True if the removal completed
    """
    install_app(transport, app, delete=True, base_url=url, observer=observer)
    return {"success": True}
