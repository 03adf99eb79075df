"""
PIXELBOOST - Services Layer

Editing session, background loading and the upload client.
"""

from services.editing_session import EditingSession
from services.load_service import LoadService, PendingLoad
from services.upload_client import (
    UploadClient,
    UploadError,
    EnhancementBackend,
    EnhancementMode,
    InMemoryBackend,
)

__all__ = [
    'EditingSession',
    'LoadService',
    'PendingLoad',
    'UploadClient',
    'UploadError',
    'EnhancementBackend',
    'EnhancementMode',
    'InMemoryBackend',
]
