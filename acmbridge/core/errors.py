# acmbridge/core/errors.py
from __future__ import annotations


class BridgeError(Exception):
    """
    Base class for all expected operational errors surfaced to the operator.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration errors (no port touched yet)
# ---------------------------------------------------------------------------

class ConfigError(BridgeError):
    """
    Gateway configuration is invalid.

    Examples:
      - config file missing or not valid YAML
      - unknown key / wrong value type
      - framing slack not smaller than capacity
      - empty delimiter list
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Startup errors (fatal; the gateway does not start)
# ---------------------------------------------------------------------------

class DeviceConnectError(BridgeError):
    """
    A serial port could not be opened at startup.

    Examples:
      - /dev/ttyACM0 not present
      - permission denied
      - port already in use
    """
    code = "device_connect_error"


class GatewayStateError(BridgeError):
    """
    Operation not allowed in the gateway's current lifecycle state.

    Examples:
      - issue_command() while stopped
      - start() while stopping
    """
    code = "gateway_state_error"
