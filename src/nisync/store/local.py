"""Directory-backed record store.

Each indicator lives in its own folder under the store root:

    <root>/<standardized indicator name>/values.parquet
    <root>/<standardized indicator name>/distributions.json

Used for offline work, for backups of downloaded snapshots, and in tests.
"""

import hashlib
import io
import os
from typing import Dict, Iterable, List, Optional

import pandas as pd

from nisync.exceptions import AuthenticationError, NotFoundIndicatorError
from nisync.logging_config import create_logger
from nisync.models import IndicatorDataset
from nisync.store.base import (
    DISTRIBUTIONS_FILE,
    VALUES_FILE,
    Credentials,
    RecordStore,
    dump_distributions,
    load_distributions,
)
from nisync.utils import standardize_name

logger = create_logger(__name__)


class LocalRecordStore(RecordStore):
    """Record store on the local filesystem."""

    def __init__(self, root: str, require_credentials: bool = False) -> None:
        self.root = str(root)
        self.require_credentials = require_credentials
        os.makedirs(self.root, exist_ok=True)

    def _folder(self, indicator_name: str) -> str:
        return os.path.join(self.root, standardize_name(indicator_name))

    def _check_credentials(self, credentials: Optional[Credentials]) -> None:
        if self.require_credentials and credentials is None:
            raise AuthenticationError("Credentials are required for this store")

    def _read_bytes(self, indicator_name: str):
        folder = self._folder(indicator_name)
        values_path = os.path.join(folder, VALUES_FILE)
        if not os.path.isfile(values_path):
            return None, None
        with open(values_path, "rb") as f:
            values = f.read()
        distributions = b""
        distributions_path = os.path.join(folder, DISTRIBUTIONS_FILE)
        if os.path.isfile(distributions_path):
            with open(distributions_path, "rb") as f:
                distributions = f.read()
        return values, distributions

    @staticmethod
    def _revision(values: bytes, distributions: bytes) -> str:
        return hashlib.md5(values + b"\0" + distributions).hexdigest()

    def list_indicators(self) -> List[str]:
        """Indicator names held by the store, read from their value tables."""
        names = []
        for entry in sorted(os.listdir(self.root)):
            values_path = os.path.join(self.root, entry, VALUES_FILE)
            if not os.path.isfile(values_path):
                continue
            frame = pd.read_parquet(values_path, columns=["indicatorName"])
            names.append(str(frame["indicatorName"].iloc[0]) if len(frame) else entry)
        return names

    def download(
        self, indicator_names: Iterable[str], credentials: Optional[Credentials] = None
    ) -> Dict[str, IndicatorDataset]:
        self._check_credentials(credentials)
        datasets = {}
        for name in indicator_names:
            values, distributions = self._read_bytes(name)
            if values is None:
                raise NotFoundIndicatorError(f"Indicator '{name}' not found in {self.root}")
            frame = pd.read_parquet(io.BytesIO(values))
            datasets[name] = IndicatorDataset.from_frame(
                frame,
                load_distributions(distributions),
                revision=self._revision(values, distributions),
            )
            logger.info(f"Loaded {name} from {self._folder(name)} ({len(frame)} rows)")
        return datasets

    def current_revision(
        self, indicator_name: str, credentials: Optional[Credentials] = None
    ) -> Optional[str]:
        self._check_credentials(credentials)
        values, distributions = self._read_bytes(indicator_name)
        if values is None:
            return None
        return self._revision(values, distributions)

    def _write(
        self,
        indicator_name: str,
        dataset: IndicatorDataset,
        credentials: Optional[Credentials] = None,
    ) -> str:
        self._check_credentials(credentials)
        folder = self._folder(indicator_name)
        os.makedirs(folder, exist_ok=True)

        buffer = io.BytesIO()
        dataset.to_frame().to_parquet(buffer, engine="pyarrow", index=False)
        values = buffer.getvalue()
        distributions = dump_distributions(dataset)

        with open(os.path.join(folder, VALUES_FILE), "wb") as f:
            f.write(values)
        with open(os.path.join(folder, DISTRIBUTIONS_FILE), "wb") as f:
            f.write(distributions)

        return self._revision(values, distributions)
