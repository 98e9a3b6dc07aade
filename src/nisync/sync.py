"""Download, edit, review and upload indicator datasets.

A SyncSession keeps the snapshot as downloaded next to a working copy.
Edits go to the working copy; before anything is written back the working
copy is validated against the pristine snapshot and a change report is
logged. Upload is a full overwrite of the remote indicator, so it only
happens after a clean validation and an explicit confirmation. Uploads
are never retried.
"""

from typing import Dict, Iterable, Mapping, Optional

import pandas as pd

from nisync.diff import diff_datasets, format_change_report
from nisync.exceptions import NISyncBaseError, RecordStoreError, ShapeMismatchError
from nisync.logging_config import create_logger, log_exception
from nisync.models import IndicatorDataset
from nisync.schema_validator import Discrepancy, ensure_valid_shape, validate_rows, validate_shape
from nisync.setter import set_value
from nisync.store.base import Credentials, RecordStore

logger = create_logger(__name__)


class SyncSession:
    """Manage one download-edit-upload cycle against a record store.

    Example:
        session = SyncSession(store, credentials)
        session.download(["Fjellrev"])
        session.set_value("Fjellrev", 1, 2024, 0.2, lower=0.12, upper=0.24,
                          data_type=1, unit="individer/km^2")
        print(session.report("Fjellrev"))
        session.push(confirmed=True)
    """

    def __init__(self, store: RecordStore, credentials: Optional[Credentials] = None) -> None:
        self.store = store
        self.credentials = credentials
        self.reference: Dict[str, IndicatorDataset] = {}
        self.working: Dict[str, IndicatorDataset] = {}

    def download(self, indicator_names: Iterable[str]) -> Dict[str, IndicatorDataset]:
        """Fetch snapshots and start a working copy of each."""
        names = list(indicator_names)
        logger.info(f"📥 Downloading {len(names)} indicators: {names}")
        snapshot = self.store.download(names, self.credentials)
        for name, dataset in snapshot.items():
            self.reference[name] = dataset
            self.working[name] = dataset.copy()
        return self.working

    def stage(
        self,
        datasets: Mapping[str, IndicatorDataset],
        revisions: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Replace working copies with datasets edited elsewhere.

        Uploads are checked against the revision the edits were based on:
        the one given in revisions, or else the revision of this session's
        download.
        """
        revisions = revisions or {}
        for name, dataset in datasets.items():
            if name not in self.reference:
                raise RecordStoreError(f"Indicator '{name}' was not downloaded in this session")
            staged = dataset.copy()
            staged.revision = revisions.get(name, self.reference[name].revision)
            self.working[name] = staged

    def dataset(self, indicator_name: str) -> IndicatorDataset:
        try:
            return self.working[indicator_name]
        except KeyError:
            raise RecordStoreError(f"Indicator '{indicator_name}' was not downloaded in this session")

    def set_value(self, indicator_name: str, area, years, estimate=None, **kwargs) -> IndicatorDataset:
        """Edit the working copy of an indicator, see nisync.setter.set_value."""
        return set_value(self.dataset(indicator_name), area, years, estimate, **kwargs)

    def validate(self) -> list:
        """All shape and row discrepancies of the working copies."""
        issues = validate_shape(self.reference, self.working)
        for name, dataset in self.working.items():
            issues.extend(validate_rows(name, dataset))
        return issues

    def diff(self, indicator_name: str) -> pd.DataFrame:
        return diff_datasets(self.reference[indicator_name], self.dataset(indicator_name))

    def report(self, indicator_name: str) -> str:
        return format_change_report(self.reference[indicator_name], self.dataset(indicator_name))

    def changed_indicators(self) -> list:
        return [name for name in self.working if self.diff(name)["changed"].any()]

    def push(
        self,
        confirmed: bool = False,
        backup_store: Optional[RecordStore] = None,
    ) -> Dict[str, bool]:
        """Validate, report and upload every changed indicator.

        Args:
            confirmed: The operator reviewed the change reports and confirmed
                the overwrite
            backup_store: Store receiving the pristine snapshots before upload

        Returns:
            Mapping of indicator name to upload result; unchanged indicators
            map to False and are not uploaded

        Raises:
            ShapeMismatchError: If validation finds any discrepancy
            UploadNotConfirmedError: If confirmed is not True
        """
        try:
            ensure_valid_shape(self.reference, self.working)
        except ShapeMismatchError as e:
            log_exception(logger, e, {"indicators": list(self.working)})
            raise

        changed = self.changed_indicators()
        for name in self.working:
            logger.info(self.report(name))

        results = {name: False for name in self.working}
        if not changed:
            logger.info("No changes to upload")
            return results

        if backup_store is not None:
            for name in changed:
                backup = self.reference[name].copy()
                backup.revision = None
                backup_store.upload(name, backup, None, confirmed=True)
                logger.info(f"Backed up {name} before upload")

        for name in changed:
            try:
                results[name] = self.store.upload(
                    name, self.working[name], self.credentials, confirmed=confirmed
                )
            except NISyncBaseError as e:
                uploaded = [n for n, ok in results.items() if ok]
                log_exception(logger, e, {"indicator": name, "uploaded": uploaded})
                raise
            # The uploaded state is the new baseline for further edits.
            self.reference[name] = self.working[name].copy()

        logger.info(f"📤 Uploaded {sum(results.values())} of {len(results)} indicators")
        return results


def summarize(discrepancies: Iterable[Discrepancy]) -> str:
    """One line per discrepancy, for printing."""
    lines = [str(d) for d in discrepancies]
    return "\n".join(lines) if lines else "No discrepancies"
