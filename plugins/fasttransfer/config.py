"""
Runtime configuration read from environment variables.

Settings are read at call time (not import time) so a worker picks up
changes without a restart and tests can patch os.environ.

Variables:
- FASTTRANSFER_BINARY_PATH: installed binary to stage from
- FASTTRANSFER_TIMEOUT: process timeout in seconds (unset or 0 = no timeout)
- FASTTRANSFER_TEMP_DIR: directory for staged executables
- FASTTRANSFER_LOG_OUTPUT: log the full process output (default true)
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


def get_binary_path() -> Optional[str]:
    """Return the configured binary path, or None to use the packaged one."""
    path = os.environ.get('FASTTRANSFER_BINARY_PATH', '').strip()
    return path or None


def get_process_timeout() -> Optional[float]:
    """
    Get the process timeout from FASTTRANSFER_TIMEOUT.

    Returns:
        Timeout in seconds, or None when unset, zero or negative

    Raises:
        ValueError: If the variable is set but is not a number
    """
    raw = os.environ.get('FASTTRANSFER_TIMEOUT', '').strip()
    if not raw:
        return None
    try:
        timeout = float(raw)
    except ValueError:
        raise ValueError(f"Invalid FASTTRANSFER_TIMEOUT '{raw}': must be a number of seconds")
    return timeout if timeout > 0 else None


def get_temp_dir() -> Optional[str]:
    """Return the staging directory, or None for the system default."""
    path = os.environ.get('FASTTRANSFER_TEMP_DIR', '').strip()
    return path or None


def log_output_enabled() -> bool:
    """
    Check if the full process output should be written to the task log.

    Returns:
        False only when FASTTRANSFER_LOG_OUTPUT is explicitly disabled
    """
    val = os.environ.get('FASTTRANSFER_LOG_OUTPUT', 'true').lower()
    return val not in ('false', '0', 'no', 'off')
