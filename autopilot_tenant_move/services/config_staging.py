"""Stages the tenant-specific Autopilot configuration file for provisioning."""

import logging
import shutil
from pathlib import Path

from autopilot_tenant_move.exceptions import ConfigStagingError

logger = logging.getLogger(__name__)


class ConfigStagingService:
    """Copies AutopilotConfigurationFile.json into the provisioning directory."""

    def __init__(self, source_file: Path, destination_dir: Path, dry_run: bool = False):
        self.source_file = Path(source_file)
        self.destination_dir = Path(destination_dir)
        self.dry_run = dry_run

    @property
    def destination_file(self) -> Path:
        return self.destination_dir / self.source_file.name

    def stage(self) -> Path:
        """
        Copy the configuration file, overwriting any previous copy.

        Returns:
            Path of the staged file

        Raises:
            ConfigStagingError: If the source file is missing or the copy fails
        """
        if not self.source_file.is_file():
            logger.error(f"Autopilot configuration file not found: {self.source_file}")
            raise ConfigStagingError(
                "Autopilot configuration file not found",
                source=str(self.source_file),
            )

        if self.dry_run:
            logger.info(
                f"[dry-run] Would copy {self.source_file} to {self.destination_file}"
            )
            return self.destination_file

        try:
            self.destination_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.source_file, self.destination_file)
        except OSError as e:
            logger.error(f"Failed to stage Autopilot configuration file: {e}")
            raise ConfigStagingError(
                "Failed to copy Autopilot configuration file",
                source=str(self.source_file),
                destination=str(self.destination_file),
                cause=e,
            ) from e

        logger.info(f"Staged Autopilot configuration file at {self.destination_file}")
        return self.destination_file
