"""Record store interface.

A record store hands out full snapshots of indicator datasets and takes
back full replacement snapshots. Uploads overwrite the remote value table
and distribution registry; there is no merge on the remote side.
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from nisync import config
from nisync.exceptions import StaleRevisionError, UploadNotConfirmedError
from nisync.logging_config import create_logger
from nisync.models import IndicatorDataset

logger = create_logger(__name__)

VALUES_FILE = "values.parquet"
DISTRIBUTIONS_FILE = "distributions.json"


@dataclass
class Credentials:
    """Credentials handed to the record store.

    Acquiring them (prompting the user) happens outside this package.
    """

    username: str
    password: str
    token: Optional[str] = None

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"

    @classmethod
    def from_env(cls) -> Optional["Credentials"]:
        """Read NISYNC_USERNAME, NISYNC_PASSWORD and NISYNC_TOKEN, if set."""
        username = os.getenv("NISYNC_USERNAME")
        password = os.getenv("NISYNC_PASSWORD")
        if not username or not password:
            return None
        return cls(username=username, password=password, token=os.getenv("NISYNC_TOKEN"))


def dump_distributions(dataset: IndicatorDataset) -> bytes:
    return json.dumps(
        dataset.distributions_to_list(), ensure_ascii=False, indent=2
    ).encode("utf-8")


def load_distributions(payload: bytes) -> list:
    return json.loads(payload.decode("utf-8")) if payload else []


class RecordStore(ABC):
    """Download and upload full indicator snapshots."""

    @abstractmethod
    def download(
        self, indicator_names: Iterable[str], credentials: Optional[Credentials]
    ) -> Dict[str, IndicatorDataset]:
        """Fetch the current snapshot of each named indicator.

        :raises AuthenticationError: If the credentials are rejected
        :raises NotFoundIndicatorError: If an indicator does not exist
        """

    @abstractmethod
    def current_revision(
        self, indicator_name: str, credentials: Optional[Credentials]
    ) -> Optional[str]:
        """Revision token of the stored indicator, None if it does not exist."""

    @abstractmethod
    def _write(
        self, indicator_name: str, dataset: IndicatorDataset, credentials: Optional[Credentials]
    ) -> str:
        """Overwrite the stored indicator and return the new revision."""

    def upload(
        self,
        indicator_name: str,
        dataset: IndicatorDataset,
        credentials: Optional[Credentials],
        confirmed: bool = False,
    ) -> bool:
        """Overwrite the stored value table and distributions of an indicator.

        :param indicator_name: Indicator to overwrite
        :param dataset: Complete replacement snapshot
        :param credentials: Store credentials
        :param confirmed: Must be True; the operator confirmed the overwrite
        :return: True on success
        :raises UploadNotConfirmedError: If confirmed is not True
        :raises StaleRevisionError: If the stored indicator changed since download
        """
        if confirmed is not True:
            raise UploadNotConfirmedError(
                f"Upload of {indicator_name} overwrites the stored dataset "
                "and requires explicit confirmation"
            )

        if dataset.revision is not None and config.check_revision_enabled():
            current = self.current_revision(indicator_name, credentials)
            if current != dataset.revision:
                raise StaleRevisionError(
                    f"{indicator_name} changed since download "
                    f"(downloaded {dataset.revision}, now {current}); "
                    "download again and reapply the edits"
                )

        logger.info(f"Uploading {indicator_name} ({len(dataset.values)} rows, "
                    f"{len(dataset.distributions)} distributions)")
        dataset.revision = self._write(indicator_name, dataset, credentials)
        logger.info(f"✅ Uploaded {indicator_name}")
        return True
