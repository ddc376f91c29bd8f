"""Upload policy checks run before a file is read."""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from taskreport.core.exceptions import (
    DuplicateFileError,
    FileNamingError,
    PolicyError,
    QuotaExceededError,
)
from taskreport.ingestion.dates import format_report_date
from taskreport.models.upload import ExistingFile

logger = logging.getLogger(__name__)

DEFAULT_DAILY_QUOTA = 2


class IngestionPolicy:
    """File naming, duplicate and per-day quota rules.

    Rules are evaluated in order (naming, duplicate, quota) and the first
    violation wins. Checks run against a snapshot of existing files, so two
    concurrent uploads can both pass.
    """

    def __init__(self, daily_quota: int = DEFAULT_DAILY_QUOTA) -> None:
        self._daily_quota = daily_quota

    @property
    def daily_quota(self) -> int:
        return self._daily_quota

    def check(
        self,
        file_name: str,
        report_date: date,
        target_user_id: str,
        existing_files: Sequence[ExistingFile],
        is_elevated: bool,
    ) -> PolicyError | None:
        required_prefix = format_report_date(report_date)
        if not file_name.startswith(required_prefix):
            return FileNamingError(file_name, required_prefix)

        if any(f.file_name == file_name for f in existing_files):
            return DuplicateFileError(file_name)

        if not is_elevated and len(existing_files) >= self._daily_quota:
            return QuotaExceededError(self._daily_quota)

        return None

    def enforce(
        self,
        file_name: str,
        report_date: date,
        target_user_id: str,
        existing_files: Sequence[ExistingFile],
        is_elevated: bool,
    ) -> None:
        """Like :meth:`check`, but raise the violation."""
        error = self.check(file_name, report_date, target_user_id, existing_files, is_elevated)
        if error is not None:
            logger.info("Upload %r for user %s rejected: %s", file_name, target_user_id, error)
            raise error
