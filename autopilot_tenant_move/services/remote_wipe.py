"""Remote wipe trigger.

Invokes doWipeMethod on the MDM_RemoteWipe CIM instance exposed by the
Windows MDM bridge (root\\cimv2\\mdm\\dmmap). The bridge is only reachable
from the SYSTEM account, which is how the Intune Management Extension runs
scripts. Once the method returns the reset is in progress and cannot be
rolled back.
"""

import logging
import subprocess
from typing import List

from autopilot_tenant_move.exceptions import RemoteWipeError
from autopilot_tenant_move.timeout_config import Timeouts, log_timeout_event

logger = logging.getLogger(__name__)

MDM_NAMESPACE = r"root\cimv2\mdm\dmmap"
MDM_REMOTE_WIPE_CLASS = "MDM_RemoteWipe"
WIPE_METHOD = "doWipeMethod"

WIPE_SCRIPT = f"""
$ErrorActionPreference = 'Stop'
$session = New-CimSession
$params = New-Object Microsoft.Management.Infrastructure.CimMethodParametersCollection
$param = [Microsoft.Management.Infrastructure.CimMethodParameter]::Create('param', '', 'String', 'In')
$params.Add($param)
$instance = Get-CimInstance -Namespace '{MDM_NAMESPACE}' -ClassName '{MDM_REMOTE_WIPE_CLASS}' -Filter "ParentID='./Vendor/MSFT' and InstanceID='RemoteWipe'"
$session.InvokeMethod('{MDM_NAMESPACE}', $instance, '{WIPE_METHOD}', $params) | Out-Null
"""


class RemoteWipeTrigger:
    """Requests an immediate factory reset of this machine."""

    def __init__(self, powershell: str = "powershell.exe", dry_run: bool = False):
        self.powershell = powershell
        self.dry_run = dry_run

    def build_command(self) -> List[str]:
        return [
            self.powershell,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-Command",
            WIPE_SCRIPT,
        ]

    def trigger(self) -> bool:
        """
        Invoke the MDM remote wipe.

        Returns:
            True when the wipe was requested, False in dry-run mode

        Raises:
            RemoteWipeError: If PowerShell is unavailable, times out or fails
        """
        if self.dry_run:
            logger.info(f"[dry-run] Would invoke {MDM_REMOTE_WIPE_CLASS}.{WIPE_METHOD}")
            return False

        command = self.build_command()
        logger.info(f"Invoking {MDM_REMOTE_WIPE_CLASS}.{WIPE_METHOD} in {MDM_NAMESPACE}")
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=Timeouts.REMOTE_WIPE,
            )
        except subprocess.TimeoutExpired as e:
            log_timeout_event("remote_wipe", Timeouts.REMOTE_WIPE, command[:1], level="error")
            raise RemoteWipeError("Remote wipe invocation timed out", cause=e) from e
        except OSError as e:
            logger.error(f"Could not start {self.powershell}: {e}")
            raise RemoteWipeError("PowerShell is not available", cause=e) from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.error(f"Remote wipe failed ({result.returncode}): {stderr}")
            raise RemoteWipeError(
                f"Remote wipe invocation failed: {stderr or 'no error output'}",
                returncode=result.returncode,
            )

        logger.info("Remote wipe requested; device will reset")
        return True
