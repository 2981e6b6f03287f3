"""
Service Layer Module

Single-responsibility services for each phase of a tenant move run.
"""

from .config_staging import ConfigStagingService
from .device_removal_service import DeviceRemovalService
from .graph_auth import GraphAuthenticator
from .graph_client import GraphClient
from .log_sanitizer import LogSanitizer
from .remote_wipe import RemoteWipeTrigger

__all__ = [
    "ConfigStagingService",
    "DeviceRemovalService",
    "GraphAuthenticator",
    "GraphClient",
    "LogSanitizer",
    "RemoteWipeTrigger",
]
