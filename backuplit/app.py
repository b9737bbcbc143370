"""
Backuplit service facade.
Archives a single directory and uploads it to object storage, on a timer or on change.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from backuplit import scheduler as scheduler_module
from backuplit.config import Config, load_config
from backuplit.logging_setup import configure_logging, parse_level
from backuplit.models import BackupResult
from backuplit.pipeline import BackupPipeline
from backuplit.storage import BlobSink, S3BlobSink

# Load environment variables
load_dotenv()


class Backuplit:
    """Wire configuration, logging, the blob sink and the pipeline together."""

    def __init__(
        self,
        config_file: Union[str, Path] = "config.json",
        *,
        sink: Optional[BlobSink] = None,
        log_level: Union[int, str, None] = None,
    ):
        self.config_path = Path(config_file)
        self.config: Config = load_config(self.config_path)
        self.job = self.config.job

        self.setup_logging(log_level)

        self.sink = sink or S3BlobSink(
            region=self.config.storage.region,
            endpoint_url=self.config.storage.endpoint_url,
            logger=self.logger,
        )
        self.pipeline = BackupPipeline(self.sink, self.logger)

    def setup_logging(self, level_override: Union[int, str, None] = None) -> None:
        """Setup logging configuration"""
        settings = self.config.logging
        level = parse_level(level_override) if level_override is not None else settings.level
        self.logger = configure_logging(level=level, log_file=settings.file)

    def backup_once(self) -> BackupResult:
        """Run a single archive-and-upload attempt."""
        return self.pipeline.run_backup(self.job)

    def run(self) -> None:
        """Run the configured trigger policy until a fatal error."""
        self.logger.info(
            "Backing up %s to bucket '%s' as '%s'",
            self.job.source_dir,
            self.job.bucket,
            self.job.object_name,
        )
        scheduler_module.run(self.pipeline, self.job, logger=self.logger)


__all__ = ["Backuplit"]
