"""
Configuration Management for Autopilot Tenant Move

This module provides centralized configuration management with validation
and environment variable handling. Credentials are never hardcoded: they come
from the environment (or a local .env file).
"""

import logging
import os
import socket
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import colorlog
from dotenv import load_dotenv

from autopilot_tenant_move.exceptions import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

AUTOPILOT_CONFIG_FILE_NAME = "AutopilotConfigurationFile.json"
DEFAULT_PROVISIONING_DIR = r"C:\Windows\Provisioning\Autopilot"
DEFAULT_RUN_LOG = (
    r"C:\Users\Public\Documents\IntuneDetectionLogs\AutopilotTenantMove.log"
)


def _default_source_dir() -> str:
    # A wrapper .py shipped next to the config file points at its own
    # directory. Console-script launchers and `python -m` live in the
    # install, so fall back to the working directory for those.
    script = Path(sys.argv[0]) if sys.argv and sys.argv[0] else None
    package_dir = Path(__file__).resolve().parent
    if (
        script is not None
        and script.suffix.lower() == ".py"
        and script.resolve().parent != package_dir
    ):
        return str(script.resolve().parent)
    return os.getcwd()


def _default_ime_log_path() -> str:
    program_data = os.environ.get("ProgramData", r"C:\ProgramData")
    return os.path.join(
        program_data,
        "Microsoft",
        "IntuneManagementExtension",
        "Logs",
        "IntuneManagementExtension.log",
    )


def _default_device_name() -> str:
    return os.environ.get("COMPUTERNAME") or socket.gethostname()


def _set_http_log_level(log_level: str) -> None:
    """Set log levels for HTTP-related loggers to reduce noise."""
    http_loggers = [
        "azure.core.pipeline.policies.http_logging_policy",
        "azure.core.pipeline",
        "azure.identity",
        "azure",
        "msal",
        "urllib3",
        "httpx",
        "httpcore",
    ]
    # HTTP logging should only appear at DEBUG level
    target_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in http_loggers:
        logging.getLogger(name).setLevel(target_level)


@dataclass
class TenantCredentials:
    """
    App registration credentials for the source tenant.

    Attributes:
        tenant_id: Azure AD tenant ID
        client_id: App registration client ID
        client_secret: App registration client secret
    """

    tenant_id: str = field(default_factory=lambda: os.getenv("AZURE_TENANT_ID", ""))
    client_id: str = field(default_factory=lambda: os.getenv("AZURE_CLIENT_ID", ""))
    client_secret: str = field(
        default_factory=lambda: os.getenv("AZURE_CLIENT_SECRET", "")
    )

    def __post_init__(self) -> None:
        """Validate credentials after initialization."""
        missing = [
            env_name
            for env_name, value in (
                ("AZURE_TENANT_ID", self.tenant_id),
                ("AZURE_CLIENT_ID", self.client_id),
                ("AZURE_CLIENT_SECRET", self.client_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                "Missing tenant credentials", missing_keys=missing
            )

    def mask_secret(self) -> str:
        """Return a safe representation for logging."""
        return f"TenantCredentials(tenant_id={self.tenant_id}, client_id={self.client_id})"


@dataclass
class GraphConfig:
    """Configuration for Microsoft Graph and the identity endpoint."""

    base_url: str = field(
        default_factory=lambda: os.getenv(
            "ATM_GRAPH_BASE_URL", "https://graph.microsoft.com"
        )
    )
    resource: str = field(
        default_factory=lambda: os.getenv(
            "ATM_GRAPH_RESOURCE", "https://graph.microsoft.com"
        )
    )
    login_authority: str = field(
        default_factory=lambda: os.getenv(
            "ATM_LOGIN_AUTHORITY", "login.microsoftonline.com"
        )
    )
    settle_seconds: float = field(
        default_factory=lambda: float(os.getenv("ATM_SETTLE_SECONDS", "3"))
    )

    def __post_init__(self) -> None:
        """Validate Graph configuration."""
        if not self.base_url.startswith("https://"):
            raise ConfigurationError(
                f"Graph base URL must use HTTPS: {self.base_url}",
                context={"config_section": "graph"},
            )
        if self.settle_seconds < 0:
            raise ConfigurationError(
                "Settle interval must be non-negative",
                context={"config_section": "graph"},
            )
        self.base_url = self.base_url.rstrip("/")


@dataclass
class PathsConfig:
    """Filesystem locations touched by a run."""

    config_file_name: str = field(
        default_factory=lambda: os.getenv(
            "ATM_CONFIG_FILE_NAME", AUTOPILOT_CONFIG_FILE_NAME
        )
    )
    source_dir: str = field(
        default_factory=lambda: os.getenv("ATM_SOURCE_DIR") or _default_source_dir()
    )
    provisioning_dir: str = field(
        default_factory=lambda: os.getenv(
            "ATM_PROVISIONING_DIR", DEFAULT_PROVISIONING_DIR
        )
    )
    ime_log_path: str = field(
        default_factory=lambda: os.getenv("ATM_IME_LOG_PATH")
        or _default_ime_log_path()
    )
    sanitize_marker: Optional[str] = field(
        default_factory=lambda: os.getenv("ATM_SANITIZE_MARKER")
    )

    @property
    def source_file(self) -> Path:
        return Path(self.source_dir) / self.config_file_name


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(log_color)s%(levelname)s:%(name)s:%(message)s"
        )
    )
    file_output: Optional[str] = field(
        default_factory=lambda: os.getenv("LOG_FILE", DEFAULT_RUN_LOG)
    )

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ConfigurationError(
                f"Log level must be one of: {valid_levels}",
                context={"config_section": "logging"},
            )
        self.level = self.level.upper()

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        return int(getattr(logging, self.level))


@dataclass
class TenantMoveConfig:
    """Main configuration class that aggregates all configuration sections."""

    credentials: TenantCredentials = field(default_factory=TenantCredentials)
    graph: GraphConfig = field(default_factory=GraphConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    device_name: str = field(default_factory=_default_device_name)
    dry_run: bool = False

    @classmethod
    def from_environment(
        cls,
        device_name: Optional[str] = None,
        source_dir: Optional[str] = None,
        settle_seconds: Optional[float] = None,
        log_level: Optional[str] = None,
        dry_run: bool = False,
    ) -> "TenantMoveConfig":
        """
        Create configuration from environment variables.

        Args:
            device_name: Override for the local computer name
            source_dir: Override for the directory holding the config file
            settle_seconds: Override for the post-delete settle interval
            log_level: Override for the log level
            dry_run: Log mutating actions instead of performing them

        Returns:
            TenantMoveConfig: Configured instance

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        try:
            config = cls()
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration value: {e}", cause=e) from e
        if device_name:
            config.device_name = device_name
        if source_dir:
            config.paths.source_dir = source_dir
        if settle_seconds is not None:
            config.graph.settle_seconds = settle_seconds
        if log_level:
            config.logging.level = log_level
        config.dry_run = dry_run
        return config

    @property
    def sanitize_marker(self) -> str:
        """Marker stripped from the IME log; the client secret unless overridden."""
        return self.paths.sanitize_marker or self.credentials.client_secret

    def validate_all(self) -> None:
        """Validate all configuration sections."""
        try:
            if not self.device_name:
                raise ConfigurationError("Device name is required")
            self.credentials.__post_init__()
            self.graph.__post_init__()
            self.logging.__post_init__()
            logger.debug("Configuration validation successful")
        except ConfigurationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def log_configuration_summary(self) -> None:
        """Log a summary of the current configuration (without sensitive data)."""
        logger.info("=" * 60)
        logger.info("AUTOPILOT TENANT MOVE CONFIGURATION")
        logger.info("=" * 60)
        logger.info(f"Device: {self.device_name}")
        logger.info(f"Credentials: {self.credentials.mask_secret()}")
        logger.info(f"Graph: {self.graph.base_url}")
        logger.info(f"   - Settle Interval: {self.graph.settle_seconds}s")
        logger.info(f"Config File: {self.paths.source_file}")
        logger.info(f"   - Provisioning Dir: {self.paths.provisioning_dir}")
        logger.info(f"IME Log: {self.paths.ime_log_path}")
        logger.info(f"Dry Run: {self.dry_run}")
        logger.info(f"Logging Level: {self.logging.level}")
        if self.logging.file_output:
            logger.info(f"Log File: {self.logging.file_output}")
        logger.info("=" * 60)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        return {
            "device_name": self.device_name,
            "dry_run": self.dry_run,
            "credentials": {
                "tenant_id": self.credentials.tenant_id,
                "client_id": self.credentials.client_id,
                # Don't include the client secret in serialization
            },
            "graph": {
                "base_url": self.graph.base_url,
                "resource": self.graph.resource,
                "login_authority": self.graph.login_authority,
                "settle_seconds": self.graph.settle_seconds,
            },
            "paths": {
                "config_file_name": self.paths.config_file_name,
                "source_dir": self.paths.source_dir,
                "provisioning_dir": self.paths.provisioning_dir,
                "ime_log_path": self.paths.ime_log_path,
                "sanitize_marker_overridden": self.paths.sanitize_marker is not None,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
            },
        }


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging configuration based on config.

    Console output is colorized; when a log file is configured every record is
    also appended to it with a timestamp.
    """
    _set_http_log_level(config.level.upper())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(config.get_log_level())

    console_handler = colorlog.StreamHandler()
    console_handler.setFormatter(colorlog.ColoredFormatter(config.format))
    root_logger.addHandler(console_handler)

    if config.file_output:
        log_path = Path(config.file_output)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Cannot open log file {log_path}: {e}")
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(levelname)s:%(name)s:%(message)s")
            )
            root_logger.addHandler(file_handler)

    logger.debug(
        f"Logging configured: level={config.level}, file={config.file_output or 'console'}"
    )


def create_config_from_env(
    device_name: Optional[str] = None,
    source_dir: Optional[str] = None,
    settle_seconds: Optional[float] = None,
    log_level: Optional[str] = None,
    dry_run: bool = False,
) -> TenantMoveConfig:
    """
    Factory function to create and validate configuration from environment.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = TenantMoveConfig.from_environment(
        device_name=device_name,
        source_dir=source_dir,
        settle_seconds=settle_seconds,
        log_level=log_level,
        dry_run=dry_run,
    )
    config.validate_all()
    return config
