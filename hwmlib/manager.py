"""
Application Manager
*******************

Installs and uninstalls applications and firmwares by letting the remote orchestrator drive the device
through an :class:`~hwmlib.relay.InstallSession`.
"""

import logging

from typing import (
    Any,
    Callable,
    Dict,
    Optional,
)
from urllib.parse import urlencode

from .channel import SessionChannel, WebSocketChannel
from .errors import BadArgumentError
from .relay import InstallSession, RelayObserver
from .transport.base import Transport
from .transport.client import TransportClient

LOG = logging.getLogger(__name__)

INSTALL_URL = "wss://scriptrunner.api.live.ledger.com/update/install"

APP_FIELDS = ("perso", "delete_key", "firmware", "firmware_key", "delete", "hash")


def install_url(app: Dict[str, Any], target_id: int, delete: bool = False, base_url: str = INSTALL_URL) -> str:
    """
    Build the URL of the installation session of an application.

    :param app: The application version record, with the keys of :data:`APP_FIELDS`
    :param target_id: The target id of the device
    :param delete: Whether to uninstall the application instead of installing it
    :param base_url: The installation endpoint
    :return: The URL
    :raises BadArgumentError: if the record lacks a field
    """
    missing = [field for field in APP_FIELDS if field not in app]
    if missing:
        raise BadArgumentError("Application record is missing {}".format(", ".join(missing)))

    params = [
        ("targetId", str(target_id)),
        ("perso", app["perso"]),
        ("deleteKey", app["delete_key"]),
        ("firmware", app["delete"] if delete else app["firmware"]),
        ("firmwareKey", app["delete_key"] if delete else app["firmware_key"]),
        ("hash", app["hash"]),
    ]
    return "{}?{}".format(base_url, urlencode(params))


def install_app(
    transport: Transport,
    app: Dict[str, Any],
    delete: bool = False,
    base_url: str = INSTALL_URL,
    observer: Optional[RelayObserver] = None,
    channel_factory: Callable[[str], SessionChannel] = WebSocketChannel,
) -> None:
    """
    Install, or uninstall, an application on the device.

    :param transport: The opened transport of the device
    :param app: The application version record, see :func:`install_url`
    :param delete: Whether to uninstall the application instead of installing it
    :param base_url: The installation endpoint
    :param observer: Receives the warnings of the session
    :param channel_factory: Opens the session channel to a URL
    :raises HWMError: if the session failed
    """
    target_id = TransportClient(transport).get_target_id()
    url = install_url(app, target_id, delete=delete, base_url=base_url)

    LOG.info("%s %s", "Uninstalling" if delete else "Installing", url)
    channel = channel_factory(url)
    channel.open()

    InstallSession(transport, channel, observer).run()
