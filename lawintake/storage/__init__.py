"""Cloud storage, CMS access and session persistence."""

from .cloud_storage import CloudStorage, S3Storage, StoredFolder
from .cms_client import CMSClient
from .session_repository import CMSSessionRepository, InMemorySessionRepository, SessionRepository

__all__ = [
    'CloudStorage',
    'S3Storage',
    'StoredFolder',
    'CMSClient',
    'CMSSessionRepository',
    'InMemorySessionRepository',
    'SessionRepository',
]
