"""Pytest configuration and shared fixtures for nisync tests.

This module provides fixtures for:
- Sample indicator datasets
- Local and mocked S3 record stores
- Temporary file management
- Environment configuration
"""

import tempfile
from pathlib import Path
from typing import Dict, Generator

import boto3
import pytest
from moto import mock_aws

from nisync.models import REFERENCE_YEAR, IndicatorDataset, IndicatorValueRow
from nisync.store.base import Credentials
from nisync.store.local import LocalRecordStore
from nisync.store.s3 import S3RecordStore

INDICATOR_NAME = "Fjellrev"
INDICATOR_ID = 42
UNIT = "individer/km^2"
AREAS = [(1, "Sør-Norge"), (2, "Nord-Norge")]
YEARS = ["1990", "2000", "2010", "2014", "2019", "2024", REFERENCE_YEAR]


def build_dataset(name: str = INDICATOR_NAME, indicator_id: int = INDICATOR_ID) -> IndicatorDataset:
    """Dataset as the store hands it out: every (area, year) row pre-created.

    Sør-Norge 1990 holds a monitored value with quartiles; all other rows
    are empty.
    """
    rows = []
    for area_id, area_name in AREAS:
        for year in YEARS:
            rows.append(
                IndicatorValueRow(
                    indicator_id=indicator_id,
                    indicator_name=name,
                    area_id=area_id,
                    area_name=area_name,
                    year_id=None,
                    year_name=year,
                )
            )
    first = rows[0]
    first.value = 0.5
    first.lower_quartile = 0.4
    first.upper_quartile = 0.6
    first.data_type_id = 2
    first.data_type_name = "Overvåkingsdata"
    first.unit_of_measurement = UNIT
    return IndicatorDataset(values=rows)


# ============================================================================
# Environment and Configuration Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def test_env_vars() -> Dict[str, str]:
    """Provide test environment variables."""
    return {
        "AWS_ACCESS_KEY_ID": "testing",
        "AWS_SECRET_ACCESS_KEY": "testing",
        "AWS_SECURITY_TOKEN": "testing",
        "AWS_SESSION_TOKEN": "testing",
        "AWS_DEFAULT_REGION": "us-east-1",
        "NISYNC_S3_BUCKET": "test-naturindeks",
    }


@pytest.fixture(autouse=True)
def default_policies(monkeypatch):
    """Run every test with the default editing policies."""
    monkeypatch.delenv("NISYNC_UNIT_MISMATCH", raising=False)
    monkeypatch.delenv("NISYNC_CHECK_REVISION", raising=False)


# ============================================================================
# Dataset Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def dataset() -> IndicatorDataset:
    """Provide a fresh sample dataset."""
    return build_dataset()


@pytest.fixture(scope="function")
def snapshot() -> Dict[str, IndicatorDataset]:
    """Provide a two-indicator snapshot."""
    return {
        INDICATOR_NAME: build_dataset(),
        "Lirype": build_dataset("Lirype", 43),
    }


@pytest.fixture(scope="function")
def credentials() -> Credentials:
    return Credentials(username="testing", password="testing")


# ============================================================================
# Temporary File and Store Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="function")
def local_store(temp_dir: Path, snapshot) -> LocalRecordStore:
    """Local store seeded with the sample snapshot."""
    store = LocalRecordStore(str(temp_dir / "store"))
    for name, data in snapshot.items():
        store.upload(name, data, None, confirmed=True)
    return store


# ============================================================================
# AWS S3 Mocking Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def aws_credentials(test_env_vars: Dict[str, str], monkeypatch):
    """Mock AWS credentials for moto."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)


@pytest.fixture(scope="function")
def s3_client(aws_credentials, test_env_vars: Dict[str, str]):
    """Provide a mocked S3 client with the test bucket created."""
    with mock_aws():
        client = boto3.client("s3", region_name=test_env_vars["AWS_DEFAULT_REGION"])
        client.create_bucket(Bucket=test_env_vars["NISYNC_S3_BUCKET"])
        yield client


@pytest.fixture(scope="function")
def s3_store(s3_client, test_env_vars: Dict[str, str], snapshot) -> S3RecordStore:
    """S3 store seeded with the sample snapshot."""
    store = S3RecordStore(
        bucket=test_env_vars["NISYNC_S3_BUCKET"],
        prefix="indicators",
        region=test_env_vars["AWS_DEFAULT_REGION"],
    )
    for name, data in snapshot.items():
        store.upload(name, data, None, confirmed=True)
    return store


@pytest.fixture(scope="function")
def make_dataset():
    """Provide the sample dataset builder."""
    return build_dataset
