"""hwmlib.transport.log module."""

import logging

LOG: logging.Logger = logging.getLogger("hwmlib.transport")
