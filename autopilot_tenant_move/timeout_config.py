"""
Centralized timeout configuration for external operations.

Timeout values are configurable via environment variables, with defaults for
each operation category.

Usage:
    from autopilot_tenant_move.timeout_config import Timeouts

    httpx.Timeout(Timeouts.HTTP_READ, connect=Timeouts.HTTP_CONNECT)
    subprocess.run(cmd, timeout=Timeouts.REMOTE_WIPE)

Environment Variables:
    - ATM_TIMEOUT_HTTP_CONNECT: Graph/identity connect timeout (default: 10s)
    - ATM_TIMEOUT_HTTP_READ: Graph/identity read timeout (default: 30s)
    - ATM_TIMEOUT_REMOTE_WIPE: PowerShell remote wipe invocation (default: 120s)
"""

import logging
import os
from typing import Final

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: int) -> int:
    """Get timeout value from environment variable or use default.

    Args:
        env_var: Environment variable name
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    value = os.environ.get(env_var)
    if value is not None:
        try:
            timeout = int(value)
            if timeout <= 0:
                logger.warning(
                    f"Invalid timeout value for {env_var}: {value}. "
                    f"Must be positive. Using default: {default}s"
                )
                return default
            return timeout
        except ValueError:
            logger.warning(
                f"Invalid timeout value for {env_var}: {value}. "
                f"Must be integer. Using default: {default}s"
            )
            return default
    return default


class Timeouts:
    """Timeout constants in seconds, resolved once at import."""

    HTTP_CONNECT: Final[int] = _get_timeout("ATM_TIMEOUT_HTTP_CONNECT", 10)
    HTTP_READ: Final[int] = _get_timeout("ATM_TIMEOUT_HTTP_READ", 30)

    REMOTE_WIPE: Final[int] = _get_timeout("ATM_TIMEOUT_REMOTE_WIPE", 120)


def log_timeout_event(
    operation: str,
    timeout_value: int,
    command: str | list[str] | None = None,
    level: str = "warning",
) -> None:
    """Log a timeout event with consistent formatting.

    Args:
        operation: Name of the operation that timed out
        timeout_value: Timeout value that was exceeded
        command: Optional command that timed out
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level, logger.warning)
    cmd_str = ""
    if command:
        cmd_str = " ".join(command) if isinstance(command, list) else command
        if len(cmd_str) > 100:
            cmd_str = cmd_str[:97] + "..."
        cmd_str = f" - command: '{cmd_str}'"

    log_func(
        f"Operation '{operation}' timed out after {timeout_value} seconds{cmd_str}"
    )
