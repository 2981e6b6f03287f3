"""
Device Removal Service

Removes a device from the source tenant before it is re-provisioned into the
target tenant:

1. Resolve the Intune managed device by exact device name. Exactly one match
   is required; anything else raises DeviceResolutionError.
2. Delete the managed device and wait for the settle interval.
3. Resolve the Windows Autopilot registration by serial number. When exactly
   one matches, delete it, wait the settle interval and trigger an Autopilot
   sync. Any other count is logged and the phase ends without error.

Graph deletions are eventually consistent; the settle interval is a blind
wait, not a confirmation.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from autopilot_tenant_move.exceptions import DeviceResolutionError
from autopilot_tenant_move.models import (
    AutopilotRegistrationRecord,
    DeviceRemovalResult,
    ManagedDeviceRecord,
)
from autopilot_tenant_move.services.graph_client import GraphClient

logger = logging.getLogger(__name__)

MANAGED_DEVICES_QUERY_URI = "/Beta/deviceManagement/managedDevices"
MANAGED_DEVICE_URI = "/v1.0/deviceManagement/managedDevices/{id}"
AUTOPILOT_DEVICES_URI = "/beta/deviceManagement/windowsAutopilotDeviceIdentities"
AUTOPILOT_DEVICE_URI = "/beta/deviceManagement/windowsAutopilotDeviceIdentities/{id}"
AUTOPILOT_SYNC_URI = "/beta/deviceManagement/windowsAutopilotSettings/sync"

DEFAULT_SETTLE_SECONDS = 3.0


def odata_quote(value: str) -> str:
    """Quote a string literal for an OData $filter expression."""
    return "'" + value.replace("'", "''") + "'"


def match_count(payload: Dict[str, Any]) -> int:
    """Number of matches in a Graph collection response."""
    count = payload.get("@odata.count")
    if count is not None:
        return int(count)
    return len(payload.get("value") or [])


class DeviceRemovalService:
    """Resolves and deletes the managed device and Autopilot registration."""

    def __init__(
        self,
        client: GraphClient,
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        dry_run: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.settle_seconds = settle_seconds
        self.dry_run = dry_run
        self._sleep = sleep

    def _settle(self) -> None:
        if self.dry_run or self.settle_seconds <= 0:
            return
        logger.debug(f"Waiting {self.settle_seconds}s for deletion to propagate")
        self._sleep(self.settle_seconds)

    def resolve_managed_device(self, device_name: str) -> ManagedDeviceRecord:
        """
        Find the single managed device named device_name.

        Raises:
            DeviceResolutionError: If zero or more than one device matches
        """
        payload = self.client.get(
            MANAGED_DEVICES_QUERY_URI,
            params={"$filter": f"deviceName eq {odata_quote(device_name)}"},
        )
        count = match_count(payload)

        if count == 0:
            logger.error(f"Device {device_name} not found in tenant")
            raise DeviceResolutionError(
                "Managed device not found",
                device_name=device_name,
                match_count=count,
            )
        if count > 1:
            logger.error(f"Too many devices named {device_name} found ({count})")
            raise DeviceResolutionError(
                "Too many managed devices match the device name",
                device_name=device_name,
                match_count=count,
                recovery_suggestion="Remove stale duplicate records in Intune and retry",
            )

        values = payload.get("value") or []
        if not values:
            raise DeviceResolutionError(
                "Device count reported without a device record",
                device_name=device_name,
                match_count=count,
            )
        device = ManagedDeviceRecord.from_graph(values[0])
        logger.info(
            f"Found managed device: name={device.device_name} id={device.id} "
            f"azureADDeviceId={device.azure_ad_device_id} serialNumber={device.serial_number}"
        )
        return device

    def delete_managed_device(self, device: ManagedDeviceRecord) -> bool:
        uri = MANAGED_DEVICE_URI.format(id=device.id)
        if self.dry_run:
            logger.info(f"[dry-run] Would delete managed device {device.id}")
            return False
        self.client.delete(uri)
        logger.info(f"Deleted managed device {device.device_name} ({device.id})")
        self._settle()
        return True

    def resolve_registration(
        self, serial_number: str
    ) -> Optional[AutopilotRegistrationRecord]:
        """Find the single Autopilot registration for a serial number, or None."""
        payload = self.client.get(
            AUTOPILOT_DEVICES_URI,
            params={"$filter": f"contains(serialNumber,{odata_quote(serial_number)})"},
        )
        count = match_count(payload)
        values = payload.get("value") or []
        if count != 1 or not values:
            logger.warning(
                f"Device with serial {serial_number} not found as registered in tenant "
                f"(matches: {count})"
            )
            return None

        registration = AutopilotRegistrationRecord.from_graph(values[0])
        logger.info(
            f"Found Autopilot registration: serialNumber={registration.serial_number} "
            f"model={registration.model} id={registration.id} "
            f"managedDeviceId={registration.managed_device_id}"
        )
        return registration

    def delete_registration(self, registration: AutopilotRegistrationRecord) -> bool:
        uri = AUTOPILOT_DEVICE_URI.format(id=registration.id)
        if self.dry_run:
            logger.info(f"[dry-run] Would delete Autopilot registration {registration.id}")
            return False
        self.client.delete(uri)
        logger.info(f"Deleted Autopilot registration {registration.id}")
        self._settle()
        return True

    def trigger_autopilot_sync(self) -> bool:
        if self.dry_run:
            logger.info("[dry-run] Would trigger Autopilot sync")
            return False
        self.client.post(AUTOPILOT_SYNC_URI)
        logger.info("Triggered Autopilot registration sync")
        return True

    def remove_device(self, device_name: str) -> DeviceRemovalResult:
        """
        Run the full removal sequence for device_name.

        Raises:
            DeviceResolutionError: If the managed device does not resolve to one record
            GraphRequestError: If any Graph call fails
        """
        device = self.resolve_managed_device(device_name)
        result = DeviceRemovalResult(device=device)
        result.device_deleted = self.delete_managed_device(device)

        # contains(serialNumber,'') matches every registration in the tenant
        if not device.serial_number.strip():
            logger.warning(
                f"Device {device.device_name} has no serial number; "
                "not found as registered in tenant"
            )
            return result

        registration = self.resolve_registration(device.serial_number)
        if registration is None:
            return result

        result.registration = registration
        result.registration_deleted = self.delete_registration(registration)
        result.sync_triggered = self.trigger_autopilot_sync()
        return result
