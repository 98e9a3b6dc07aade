"""S3-backed record store.

Layout mirrors the local store, under a key prefix:

    s3://<bucket>/<prefix>/<standardized indicator name>/values.parquet
    s3://<bucket>/<prefix>/<standardized indicator name>/distributions.json

The revision token of an indicator is built from the ETags of both
objects, which lets an upload detect that someone else overwrote the
indicator after our download.
"""

import io
from typing import Dict, Iterable, Optional

import boto3
import pandas as pd
from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
)

from nisync.exceptions import (
    AuthenticationError,
    NotFoundIndicatorError,
    RecordStoreError,
    TransientError,
)
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
from nisync.utils import retry, standardize_name

logger = create_logger(__name__)

AUTH_ERROR_CODES = {
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "AccessDenied",
    "ExpiredToken",
    "InvalidToken",
}
NOT_FOUND_ERROR_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}
TRANSIENT_ERROR_CODES = {
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "RequestTimeout",
    "ServiceUnavailable",
    "InternalError",
    "500",
    "503",
}


def translate_client_error(error: Exception, indicator_name: str) -> Exception:
    """Map a botocore error to the package's exception taxonomy."""
    if isinstance(error, NoCredentialsError):
        return AuthenticationError(f"No AWS credentials available: {error}")
    if isinstance(error, EndpointConnectionError):
        return TransientError(f"S3 endpoint unreachable: {error}")
    if isinstance(error, ClientError):
        code = str(error.response.get("Error", {}).get("Code", ""))
        message = error.response.get("Error", {}).get("Message", str(error))
        if code in AUTH_ERROR_CODES:
            return AuthenticationError(f"S3 rejected the credentials ({code}): {message}")
        if code in NOT_FOUND_ERROR_CODES:
            return NotFoundIndicatorError(f"Indicator '{indicator_name}' not found ({code})")
        if code in TRANSIENT_ERROR_CODES:
            return TransientError(f"S3 temporarily unavailable ({code}): {message}")
        return RecordStoreError(f"S3 operation failed for '{indicator_name}' ({code}): {message}")
    return error


class S3RecordStore(RecordStore):
    """Record store in an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        client=None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.region = region
        self._client = client

    def _s3(self, credentials: Optional[Credentials]):
        """S3 client for the given credentials, or the default credential chain."""
        if self._client is not None:
            return self._client
        if credentials is None:
            return boto3.client("s3", region_name=self.region)
        return boto3.client(
            "s3",
            aws_access_key_id=credentials.username,
            aws_secret_access_key=credentials.password,
            aws_session_token=credentials.token,
            region_name=self.region,
        )

    def _key(self, indicator_name: str, filename: str) -> str:
        parts = [self.prefix, standardize_name(indicator_name), filename]
        return "/".join(part for part in parts if part)

    def _etag(self, s3_client, key: str) -> Optional[str]:
        try:
            return s3_client.head_object(Bucket=self.bucket, Key=key)["ETag"].strip('"')
        except ClientError as e:
            if str(e.response["Error"]["Code"]) in NOT_FOUND_ERROR_CODES:
                return None
            raise

    @staticmethod
    def _revision(values_etag: Optional[str], distributions_etag: Optional[str]) -> Optional[str]:
        if values_etag is None:
            return None
        return f"{values_etag}:{distributions_etag or ''}"

    @retry(max_attempts=3, delay=1.0, exceptions=(TransientError,))
    def _download_one(self, s3_client, indicator_name: str) -> IndicatorDataset:
        try:
            values_obj = s3_client.get_object(
                Bucket=self.bucket, Key=self._key(indicator_name, VALUES_FILE)
            )
            frame = pd.read_parquet(io.BytesIO(values_obj["Body"].read()))

            distributions, distributions_etag = [], None
            try:
                dist_obj = s3_client.get_object(
                    Bucket=self.bucket, Key=self._key(indicator_name, DISTRIBUTIONS_FILE)
                )
                distributions = load_distributions(dist_obj["Body"].read())
                distributions_etag = dist_obj["ETag"].strip('"')
            except ClientError as e:
                if str(e.response["Error"]["Code"]) not in NOT_FOUND_ERROR_CODES:
                    raise
                logger.info(f"No distributions stored for {indicator_name}")
        except (ClientError, NoCredentialsError, EndpointConnectionError) as e:
            raise translate_client_error(e, indicator_name) from e

        revision = self._revision(values_obj["ETag"].strip('"'), distributions_etag)
        return IndicatorDataset.from_frame(frame, distributions, revision=revision)

    def download(
        self, indicator_names: Iterable[str], credentials: Optional[Credentials] = None
    ) -> Dict[str, IndicatorDataset]:
        s3_client = self._s3(credentials)
        datasets = {}
        for name in indicator_names:
            logger.info(f"Downloading {name} from s3://{self.bucket}/{self._key(name, '')}")
            datasets[name] = self._download_one(s3_client, name)
            logger.info(f"Downloaded {name} ({len(datasets[name].values)} rows)")
        return datasets

    def current_revision(
        self, indicator_name: str, credentials: Optional[Credentials] = None
    ) -> Optional[str]:
        s3_client = self._s3(credentials)
        try:
            return self._revision(
                self._etag(s3_client, self._key(indicator_name, VALUES_FILE)),
                self._etag(s3_client, self._key(indicator_name, DISTRIBUTIONS_FILE)),
            )
        except (ClientError, NoCredentialsError, EndpointConnectionError) as e:
            raise translate_client_error(e, indicator_name) from e

    def _write(
        self,
        indicator_name: str,
        dataset: IndicatorDataset,
        credentials: Optional[Credentials] = None,
    ) -> str:
        s3_client = self._s3(credentials)
        buffer = io.BytesIO()
        dataset.to_frame().to_parquet(buffer, engine="pyarrow", index=False)

        try:
            values_obj = s3_client.put_object(
                Bucket=self.bucket,
                Key=self._key(indicator_name, VALUES_FILE),
                Body=buffer.getvalue(),
            )
            dist_obj = s3_client.put_object(
                Bucket=self.bucket,
                Key=self._key(indicator_name, DISTRIBUTIONS_FILE),
                Body=dump_distributions(dataset),
                ContentType="application/json",
            )
        except (ClientError, NoCredentialsError, EndpointConnectionError) as e:
            raise translate_client_error(e, indicator_name) from e

        return self._revision(values_obj["ETag"].strip('"'), dist_obj["ETag"].strip('"'))
