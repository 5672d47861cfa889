"""
Errors and Error Codes
**********************

HWM has several possible Exceptions with corresponding error codes.

:mod:`~hwmlib.commands` functions and the :class:`~hwmlib.relay.InstallSession` will generally raise an exception that is a subclass of :class:`HWMError`.
The HWM command line tool will convert these exceptions into a dictionary containing the error message and error code.
These look like ``{"error": "<msg>", "code": <code>}``.
"""

from typing import Any, Dict, Iterator, Optional
from contextlib import contextmanager

# Error codes
MISSING_ARGUMENTS = -2 #: Arguments are missing
DEVICE_CONN_ERROR = -3 #: Error connecting to the device, or the device was disconnected
BAD_ARGUMENT = -7 #: Bad, malformed, or conflicting argument was provided
UNKNOWN_ERROR = -13 #: An unknown error occurred
HELP_TEXT = -17 #: Help text was requested by the user
MALFORMED_RESPONSE = -20 #: The device response ended before all of its fields were read
UNSUPPORTED_FORMAT = -21 #: The device response uses a format this library does not know
DEVICE_NOT_ON_DASHBOARD = -22 #: The device must be on its dashboard, not inside an app
DEVICE_NOT_ONBOARDED = -23 #: The device has not been set up yet
DEVICE_LOCKED = -24 #: The device stopped answering and needs user interaction
USER_REFUSED = -25 #: The user refused the secure channel on the device
DEVICE_STATUS = -26 #: The device answered with a non-success status word
CHANNEL_ERROR = -27 #: The installation session channel failed
SESSION_CLOSED = -28 #: The installation session channel was closed

# Exceptions
class HWMError(Exception):
    """
    Generic exception type produced by HWM
    Subclassed by specific Errors to have Exceptions that have specific error codes.

    Contains a message and error code.
    """
    def __init__(self, msg: str, code: int) -> None:
        """
        Create an exception with the message and error code

        :param msg: The error message
        :param code: The error code
        """
        Exception.__init__(self, msg)
        self.code = code
        self.msg = msg

    def get_code(self) -> int:
        """
        Get the error code for this Error

        :return: The error code
        """
        return self.code

    def get_msg(self) -> str:
        """
        Get the error message for this Error

        :return: The error message
        """
        return self.msg

    def __str__(self) -> str:
        return self.msg

class BadArgumentError(HWMError):
    """
    :class:`HWMError` for :data:`BAD_ARGUMENT`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, BAD_ARGUMENT)

class DeviceConnectionError(HWMError):
    """
    :class:`HWMError` for :data:`DEVICE_CONN_ERROR`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, DEVICE_CONN_ERROR)

class MalformedResponseError(HWMError):
    """
    :class:`HWMError` for :data:`MALFORMED_RESPONSE`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, MALFORMED_RESPONSE)

class UnsupportedFormatError(HWMError):
    """
    :class:`HWMError` for :data:`UNSUPPORTED_FORMAT`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, UNSUPPORTED_FORMAT)

class DeviceOnDashboardExpectedError(HWMError):
    """
    :class:`HWMError` for :data:`DEVICE_NOT_ON_DASHBOARD`
    """
    def __init__(self, msg: str = "Device must be on its dashboard"):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, DEVICE_NOT_ON_DASHBOARD)

class DeviceNotOnboardedError(HWMError):
    """
    :class:`HWMError` for :data:`DEVICE_NOT_ONBOARDED`
    """
    def __init__(self, msg: str = "Device is not onboarded"):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, DEVICE_NOT_ONBOARDED)

class DeviceLockedError(HWMError):
    """
    :class:`HWMError` for :data:`DEVICE_LOCKED`
    """
    def __init__(self, msg: str = "Device is locked"):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, DEVICE_LOCKED)

class UserRefusedOnDeviceError(HWMError):
    """
    :class:`HWMError` for :data:`USER_REFUSED`
    """
    def __init__(self, msg: str = "User refused the secure channel on the device"):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, USER_REFUSED)

class DeviceStatusError(HWMError):
    """
    :class:`HWMError` for :data:`DEVICE_STATUS`

    The status word returned by the device is kept in :attr:`sw`.
    """
    def __init__(self, sw: int, msg: Optional[str] = None):
        """
        :param sw: The status word returned by the device
        :param msg: The error message
        """
        if msg is None:
            msg = "Invalid status 0x{:04x}".format(sw)
        HWMError.__init__(self, msg, DEVICE_STATUS)
        self.sw = sw

class SessionChannelError(HWMError):
    """
    :class:`HWMError` for :data:`CHANNEL_ERROR`
    """
    def __init__(self, msg: str):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, CHANNEL_ERROR)

class RemoteSessionError(SessionChannelError):
    """
    :class:`SessionChannelError` for an error reported by the remote orchestrator itself
    """
    def __init__(self, msg: str):
        """
        :param msg: The error detail sent by the remote end
        """
        SessionChannelError.__init__(self, msg)

class SessionClosed(HWMError):
    """
    :class:`HWMError` for :data:`SESSION_CLOSED`

    Not a failure: raised by a :class:`~hwmlib.channel.SessionChannel` when the remote end closed it.
    """
    def __init__(self, msg: str = "Session channel closed"):
        """
        :param msg: The error message
        """
        HWMError.__init__(self, msg, SESSION_CLOSED)

@contextmanager
def handle_errors(
    msg: Optional[str] = None,
    result: Optional[Dict[str, Any]] = None,
    code: int = UNKNOWN_ERROR,
    debug: bool = False,
) -> Iterator[None]:
    """
    Context manager to catch all Exceptions and HWMErrors to return them as dictionaries containing the error message and code.

    :param msg: Error message prefix. Attached to the beginning of each error message
    :param result: The dictionary to put the resulting error in
    :param code: The default error code to use for Exceptions
    :param debug: Whether to also print out the traceback for debugging purposes
    """
    if result is None:
        result = {}

    if msg is None:
        msg = ""
    else:
        msg = msg + " "

    try:
        yield

    except HWMError as e:
        result['error'] = msg + e.get_msg()
        result['code'] = e.get_code()
    except Exception as e:
        result['error'] = msg + str(e)
        result['code'] = code
        if debug:
            import traceback
            traceback.print_exc()
