"""Cloud storage for submitted packages: folder-per-client on S3."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from lawintake.utils.config import StorageConfig
from lawintake.utils.errors import ConfigurationError, ErrorType, StorageError

logger = logging.getLogger(__name__)

FOLDER_MARKER = ".folder"


@dataclass
class StoredFolder:
    """A storage folder; `folder_id` is what uploads are addressed to."""
    folder_id: str
    name: str


class CloudStorage(ABC):
    """Folder-oriented storage used by the submission pipeline."""

    @abstractmethod
    def create_folder(self, name: str, parent_id: Optional[str] = None) -> StoredFolder:
        """Create a folder (or return the existing one with that name)."""

    @abstractmethod
    def search_folders(self, name_prefix: str, parent_id: Optional[str] = None) -> List[StoredFolder]:
        """Folders directly under parent whose name starts with name_prefix."""

    @abstractmethod
    def upload(self, folder_id: str, filename: str, content: bytes, mime_type: str) -> str:
        """Store content in a folder and return its storage key."""

    @abstractmethod
    def download(self, key: str) -> bytes:
        """Fetch a stored object."""


class S3Storage(CloudStorage):
    """
    S3 implementation; folders are key prefixes under `root_prefix`.

    An empty marker object is written for each folder so that empty folders
    are still listed.
    """

    def __init__(self, config: StorageConfig, client: Any = None):
        if not config.bucket:
            raise ConfigurationError.missing("STORAGE_BUCKET", "No storage bucket configured")
        self.bucket = config.bucket
        self.root_prefix = config.root_prefix.strip("/")
        self.client = client or boto3.client("s3", region_name=config.region)

        logger.info(f"Initialized S3Storage: bucket={self.bucket}, prefix={self.root_prefix}")

    def _prefix(self, parent_id: Optional[str]) -> str:
        base = parent_id or self.root_prefix
        return f"{base.strip('/')}/" if base else ""

    def create_folder(self, name: str, parent_id: Optional[str] = None) -> StoredFolder:
        folder_id = f"{self._prefix(parent_id)}{name.strip('/')}"
        try:
            self.client.put_object(Bucket=self.bucket, Key=f"{folder_id}/{FOLDER_MARKER}", Body=b"")
        except (ClientError, BotoCoreError) as e:
            raise StorageError.from_client_error(e, "create_folder", error_type=ErrorType.STORAGE_REQUEST_FAILED)
        logger.info(f"Created folder {folder_id}")
        return StoredFolder(folder_id=folder_id, name=name)

    def search_folders(self, name_prefix: str, parent_id: Optional[str] = None) -> List[StoredFolder]:
        prefix = self._prefix(parent_id)
        folders: List[StoredFolder] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=f"{prefix}{name_prefix}", Delimiter="/"):
                for common in page.get("CommonPrefixes", []):
                    folder_id = common["Prefix"].rstrip("/")
                    folders.append(StoredFolder(folder_id=folder_id, name=folder_id[len(prefix):]))
        except (ClientError, BotoCoreError) as e:
            raise StorageError.from_client_error(e, "search_folders", error_type=ErrorType.STORAGE_REQUEST_FAILED)
        logger.debug(f"Found {len(folders)} folder(s) matching '{name_prefix}'")
        return folders

    def upload(self, folder_id: str, filename: str, content: bytes, mime_type: str) -> str:
        key = f"{folder_id.rstrip('/')}/{filename}"
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=content, ContentType=mime_type)
        except (ClientError, BotoCoreError) as e:
            raise StorageError.from_client_error(e, "upload", error_type=ErrorType.STORAGE_UPLOAD_FAILED)
        logger.info(f"Uploaded {key} ({len(content)} bytes)")
        return key

    def download(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise StorageError.from_client_error(e, "download", error_type=ErrorType.STORAGE_REQUEST_FAILED)
