"""Models for the tenant move run.

Philosophy:
- Type-safe data structures using dataclasses
- Records are built from Graph payloads, never mutated afterwards
- One result object per run; the exit status is derived from it

Public API:
    AuthToken: Bearer token obtained once per run
    ManagedDeviceRecord: Intune managed device
    AutopilotRegistrationRecord: Windows Autopilot device identity
    DeviceRemovalResult: Outcome of the resolve/delete phase
    MigrationResult: Outcome of a whole run
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class RunStatus(str, Enum):
    """Status of a tenant move run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class AuthToken:
    """Bearer token used to authorize every Graph call of a run."""

    bearer_value: str

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.bearer_value}"

    def __repr__(self) -> str:
        return "AuthToken(bearer_value=***)"


@dataclass(frozen=True)
class ManagedDeviceRecord:
    """Intune managed device as returned by deviceManagement/managedDevices."""

    id: str
    device_name: str
    azure_ad_device_id: str = ""
    serial_number: str = ""

    @classmethod
    def from_graph(cls, payload: Dict[str, Any]) -> "ManagedDeviceRecord":
        return cls(
            id=payload["id"],
            device_name=payload.get("deviceName") or "",
            azure_ad_device_id=payload.get("azureADDeviceId") or "",
            serial_number=payload.get("serialNumber") or "",
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "device_name": self.device_name,
            "azure_ad_device_id": self.azure_ad_device_id,
            "serial_number": self.serial_number,
        }


@dataclass(frozen=True)
class AutopilotRegistrationRecord:
    """Windows Autopilot device identity (zero-touch registration)."""

    id: str
    serial_number: str = ""
    model: str = ""
    managed_device_id: str = ""

    @classmethod
    def from_graph(cls, payload: Dict[str, Any]) -> "AutopilotRegistrationRecord":
        return cls(
            id=payload["id"],
            serial_number=payload.get("serialNumber") or "",
            model=payload.get("model") or "",
            managed_device_id=payload.get("managedDeviceId") or "",
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "serial_number": self.serial_number,
            "model": self.model,
            "managed_device_id": self.managed_device_id,
        }


@dataclass
class DeviceRemovalResult:
    """Result of the managed device and Autopilot registration removal."""

    device: ManagedDeviceRecord
    registration: Optional[AutopilotRegistrationRecord] = None
    device_deleted: bool = False
    registration_deleted: bool = False
    sync_triggered: bool = False


@dataclass
class MigrationResult:
    """Result of a tenant move run.

    Records every side effect performed so a failed run shows how far it got.
    """

    device_name: str
    status: RunStatus = RunStatus.PENDING
    dry_run: bool = False
    config_staged: bool = False
    device: Optional[ManagedDeviceRecord] = None
    registration: Optional[AutopilotRegistrationRecord] = None
    device_deleted: bool = False
    registration_deleted: bool = False
    sync_triggered: bool = False
    sanitized_lines: int = 0
    wipe_invoked: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def apply_removal(self, removal: DeviceRemovalResult) -> None:
        self.device = removal.device
        self.registration = removal.registration
        self.device_deleted = removal.device_deleted
        self.registration_deleted = removal.registration_deleted
        self.sync_triggered = removal.sync_triggered

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "device_name": self.device_name,
            "status": self.status.value,
            "success": self.success,
            "exit_code": self.exit_code,
            "dry_run": self.dry_run,
            "config_staged": self.config_staged,
            "device": self.device.to_dict() if self.device else None,
            "registration": self.registration.to_dict() if self.registration else None,
            "device_deleted": self.device_deleted,
            "registration_deleted": self.registration_deleted,
            "sync_triggered": self.sync_triggered,
            "sanitized_lines": self.sanitized_lines,
            "wipe_invoked": self.wipe_invoked,
            "error": self.error,
            "error_code": self.error_code,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
