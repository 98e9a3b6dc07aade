"""Record stores for downloading and uploading indicator snapshots."""

from nisync.store.base import Credentials, RecordStore
from nisync.store.local import LocalRecordStore
from nisync.store.s3 import S3RecordStore

__all__ = ["Credentials", "RecordStore", "LocalRecordStore", "S3RecordStore"]
