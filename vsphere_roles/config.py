"""Configuration management for the vCenter role tools."""

import importlib.metadata
import os
import re
from typing import Final, Tuple

from .exceptions import ClientEnvironmentError

# Load environment variables
VSPHERE_USER: Final[str] = os.getenv("VSPHERE_USER", "")
VSPHERE_PASSWORD: Final[str] = os.getenv("VSPHERE_PASSWORD", "")
VSPHERE_PORT: Final[int] = int(os.getenv("VSPHERE_PORT", "443"))
VSPHERE_INSECURE: Final[bool] = os.getenv("VSPHERE_INSECURE", "false").lower() == "true"
VSPHERE_TIMEOUT: Final[int] = int(os.getenv("VSPHERE_TIMEOUT", "30"))
INAV_ROLE_NAME: Final[str] = os.getenv("INAV_ROLE_NAME", "InfrastructureNavigator-Access")

CLIENT_DISTRIBUTION: Final[str] = "pyvmomi"
MIN_CLIENT_VERSION: Final[str] = "7.0"


def validate_config() -> None:
    """Validate configuration values.

    Raises:
        ValueError: If any configuration value is invalid.
    """
    if VSPHERE_PORT <= 0 or VSPHERE_PORT > 65535:
        raise ValueError(f"VSPHERE_PORT must be between 1 and 65535, got {VSPHERE_PORT}")

    if VSPHERE_TIMEOUT <= 0:
        raise ValueError(f"VSPHERE_TIMEOUT must be positive, got {VSPHERE_TIMEOUT}")

    if not INAV_ROLE_NAME:
        raise ValueError("INAV_ROLE_NAME must be set")


def _version_tuple(version: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in re.findall(r"\d+", version)[:3])


def check_client_version(minimum: str = MIN_CLIENT_VERSION) -> str:
    """Make sure the pyVmomi client library is installed and recent enough.

    Args:
        minimum: Lowest supported pyVmomi release (e.g., "7.0")

    Returns:
        The installed pyVmomi version string

    Raises:
        ClientEnvironmentError: If pyVmomi is missing or older than minimum
    """
    try:
        installed = importlib.metadata.version(CLIENT_DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        raise ClientEnvironmentError(
            f"{CLIENT_DISTRIBUTION} is not installed; install it with 'pip install {CLIENT_DISTRIBUTION}'"
        )

    if _version_tuple(installed) < _version_tuple(minimum):
        raise ClientEnvironmentError(
            f"{CLIENT_DISTRIBUTION} {installed} is too old, {minimum} or newer is required"
        )

    return installed
