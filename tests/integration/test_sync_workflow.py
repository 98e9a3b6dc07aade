"""Integration tests for the download, edit, validate and upload workflow."""

import pytest

from nisync.distributions import make_distribution
from nisync.exceptions import (
    RecordStoreError,
    ShapeMismatchError,
    StaleRevisionError,
    UploadNotConfirmedError,
)
from nisync.models import Quartiles
from nisync.store.local import LocalRecordStore
from nisync.sync import SyncSession, summarize

UNIT = "individer/km^2"


@pytest.fixture
def session(local_store):
    """Session with both sample indicators downloaded."""
    session = SyncSession(local_store)
    session.download(["Fjellrev", "Lirype"])
    return session


@pytest.mark.integration
class TestSyncSession:
    """Test a full edit cycle against a local store."""

    def test_download_keeps_pristine_snapshot(self, session):
        session.set_value("Fjellrev", 1, 2024, 0.2, lower=0.12, upper=0.24, data_type=1, unit=UNIT)

        assert session.reference["Fjellrev"] != session.working["Fjellrev"]
        assert session.changed_indicators() == ["Fjellrev"]

    def test_full_cycle(self, session, local_store):
        dist = make_distribution("logNormal", {"mean": -1.7, "sd": 0.09})
        session.set_value("Fjellrev", 1, 2024, 0.2, lower=0.12, upper=0.24, data_type=1, unit=UNIT)
        session.set_value("Fjellrev", "Nord-Norge", [2019, 2024], distribution=dist,
                          data_type=3, unit=UNIT)

        assert session.validate() == []
        assert "Changes to Fjellrev" in session.report("Fjellrev")

        results = session.push(confirmed=True)

        assert results == {"Fjellrev": True, "Lirype": False}
        stored = local_store.download(["Fjellrev"])["Fjellrev"]
        assert stored.values == session.working["Fjellrev"].values
        assert stored.distributions == session.working["Fjellrev"].distributions
        assert session.changed_indicators() == []

    def test_push_without_changes(self, session, local_store):
        revision = local_store.current_revision("Fjellrev")

        assert session.push(confirmed=True) == {"Fjellrev": False, "Lirype": False}
        assert local_store.current_revision("Fjellrev") == revision

    def test_push_requires_confirmation(self, session, local_store):
        session.set_value("Fjellrev", 1, 2024, 0.2, lower=0.12, upper=0.24, data_type=1, unit=UNIT)
        revision = local_store.current_revision("Fjellrev")

        with pytest.raises(UploadNotConfirmedError):
            session.push()

        assert local_store.current_revision("Fjellrev") == revision

    def test_shape_mismatch_blocks_upload(self, session, local_store):
        """Test a dropped row stops every upload, including valid indicators."""
        session.set_value("Lirype", 1, 2024, 0.2, lower=0.12, upper=0.24, data_type=1, unit=UNIT)
        session.working["Fjellrev"].values.pop()
        revisions = {name: local_store.current_revision(name) for name in ("Fjellrev", "Lirype")}

        with pytest.raises(ShapeMismatchError) as excinfo:
            session.push(confirmed=True)

        assert "row_count" in summarize(excinfo.value.discrepancies)
        for name, revision in revisions.items():
            assert local_store.current_revision(name) == revision

    def test_backup_before_upload(self, session, temp_dir, snapshot):
        backup = LocalRecordStore(str(temp_dir / "backup"))
        session.set_value("Fjellrev", 1, 2024, 0.2, lower=0.12, upper=0.24, data_type=1, unit=UNIT)

        session.push(confirmed=True, backup_store=backup)

        assert backup.list_indicators() == ["Fjellrev"]
        saved = backup.download(["Fjellrev"])["Fjellrev"]
        assert saved.values == snapshot["Fjellrev"].values

    def test_concurrent_overwrite_is_detected(self, session, local_store):
        other = SyncSession(local_store)
        other.download(["Fjellrev"])
        other.set_value("Fjellrev", 2, 2024, 3.0, lower=2.0, upper=4.0, data_type=2, unit=UNIT)
        other.push(confirmed=True)

        session.set_value("Fjellrev", 1, 2024, 0.2, lower=0.12, upper=0.24, data_type=1, unit=UNIT)
        with pytest.raises(StaleRevisionError):
            session.push(confirmed=True)

    def test_stage_edited_datasets(self, session, local_store, temp_dir):
        """Test datasets edited in a folder are uploaded against the session snapshot."""
        work = LocalRecordStore(str(temp_dir / "work"))
        edited = local_store.download(["Fjellrev"])["Fjellrev"]
        edited.revision = None
        work.upload("Fjellrev", edited, None, confirmed=True)
        staged = work.download(["Fjellrev"])
        staged["Fjellrev"].values[3].value = 1.5
        staged["Fjellrev"].values[3].lower_quartile = 1.0
        staged["Fjellrev"].values[3].upper_quartile = 2.0
        staged["Fjellrev"].values[3].set_data_type(1)
        staged["Fjellrev"].values[3].unit_of_measurement = UNIT

        session.stage(staged)

        assert session.working["Fjellrev"].revision == session.reference["Fjellrev"].revision
        assert session.push(confirmed=True)["Fjellrev"] is True

    def test_stage_with_revision_of_earlier_download(self, local_store):
        """Test edits staged on an old download are refused after a concurrent overwrite."""
        base = local_store.download(["Fjellrev"])["Fjellrev"]

        other = SyncSession(local_store)
        other.download(["Fjellrev"])
        other.set_value("Fjellrev", 2, 2024, 3.0, lower=2.0, upper=4.0, data_type=2, unit=UNIT)
        other.push(confirmed=True)

        session = SyncSession(local_store)
        session.download(["Fjellrev"])
        edited = base.copy()
        edited.values[3].value = 1.5
        edited.values[3].uncertainty = Quartiles(1.0, 2.0)
        edited.values[3].set_data_type(1)
        edited.values[3].unit_of_measurement = UNIT
        session.stage({"Fjellrev": edited}, {"Fjellrev": base.revision})

        assert session.working["Fjellrev"].revision == base.revision
        with pytest.raises(StaleRevisionError):
            session.push(confirmed=True)

    def test_stage_unknown_indicator(self, session, make_dataset):
        with pytest.raises(RecordStoreError):
            session.stage({"Havørn": make_dataset("Havørn", 7)})

    def test_unknown_working_copy(self, session):
        with pytest.raises(RecordStoreError):
            session.dataset("Havørn")
