"""
Tenant move run orchestration.

Runs the phases in order:

    stage config -> acquire token -> remove device -> sanitize IME log -> wipe

Phases raise TenantMoveError subclasses on fatal conditions. TenantMoveRunner.run
is the only place they are caught; it records them on the MigrationResult,
whose exit_code is what the CLI exits with.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import httpx
from azure.identity import ClientSecretCredential

from autopilot_tenant_move.config_manager import TenantMoveConfig
from autopilot_tenant_move.exceptions import TenantMoveError
from autopilot_tenant_move.logging_config import get_logger
from autopilot_tenant_move.models import MigrationResult, RunStatus
from autopilot_tenant_move.services import (
    ConfigStagingService,
    DeviceRemovalService,
    GraphAuthenticator,
    GraphClient,
    LogSanitizer,
    RemoteWipeTrigger,
)

logger = logging.getLogger(__name__)
events = get_logger(__name__)


class TenantMoveRunner:
    """Runs a complete tenant move for the local device."""

    def __init__(
        self,
        config: TenantMoveConfig,
        credential: Optional[ClientSecretCredential] = None,
        transport: Optional[httpx.BaseTransport] = None,
        wipe_trigger: Optional[RemoteWipeTrigger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            config: Validated run configuration
            credential: Optional pre-built credential (defaults to ClientSecretCredential)
            transport: Optional httpx transport for the Graph client
            wipe_trigger: Optional remote wipe trigger
            sleep: Function used for the post-delete settle waits
        """
        self.config = config
        self.credential = credential
        self.transport = transport
        self.wipe_trigger = wipe_trigger or RemoteWipeTrigger(dry_run=config.dry_run)
        self.sleep = sleep

    def run(self) -> MigrationResult:
        result = MigrationResult(
            device_name=self.config.device_name,
            dry_run=self.config.dry_run,
            status=RunStatus.RUNNING,
            started_at=datetime.now(timezone.utc),
        )
        events.info(
            "tenant_move_started",
            device_name=self.config.device_name,
            dry_run=self.config.dry_run,
        )

        try:
            self._run_phases(result)
        except TenantMoveError as e:
            result.status = RunStatus.FAILED
            result.error = str(e)
            result.error_code = e.error_code
            logger.error(f"Tenant move failed: {e}")
        else:
            result.status = RunStatus.COMPLETED

        result.completed_at = datetime.now(timezone.utc)
        events.info(
            "tenant_move_finished",
            status=result.status.value,
            exit_code=result.exit_code,
            error_code=result.error_code,
        )
        return result

    def _run_phases(self, result: MigrationResult) -> None:
        config = self.config

        ConfigStagingService(
            source_file=config.paths.source_file,
            destination_dir=Path(config.paths.provisioning_dir),
            dry_run=config.dry_run,
        ).stage()
        result.config_staged = not config.dry_run

        token = GraphAuthenticator(
            config.credentials,
            resource=config.graph.resource,
            login_authority=config.graph.login_authority,
            credential=self.credential,
        ).acquire_token()

        with GraphClient(
            token, base_url=config.graph.base_url, transport=self.transport
        ) as client:
            removal = DeviceRemovalService(
                client,
                settle_seconds=config.graph.settle_seconds,
                dry_run=config.dry_run,
                sleep=self.sleep,
            ).remove_device(config.device_name)
        result.apply_removal(removal)

        result.sanitized_lines = LogSanitizer(
            Path(config.paths.ime_log_path),
            marker=config.sanitize_marker,
            dry_run=config.dry_run,
        ).sanitize()

        result.wipe_invoked = self.wipe_trigger.trigger()


def run_tenant_move(config: TenantMoveConfig, **kwargs) -> int:
    """Run a tenant move and return the process exit status."""
    return TenantMoveRunner(config, **kwargs).run().exit_code
