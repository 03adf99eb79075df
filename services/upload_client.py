"""
PIXELBOOST - Upload Client

Client side of the chunked upload/enhancement protocol. Raw image bytes
are split into chunks, sent in order to an upload session, and the
finalized (remotely processed) bytes come back as something to decode.

The remote processing itself is opaque. InMemoryBackend is a pass-through
implementation of the backend interface that returns the reassembled
bytes unchanged.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from bitmap import ACCEPTED_TYPES, PixelboostError
from storage import DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)


class UploadError(PixelboostError):
    """Upload or remote enhancement failed."""


class EnhancementMode(Enum):
    """Remote enhancement flavour."""
    STANDARD = "standard"
    ANIME = "anime"


@dataclass
class FinalizeResult:
    """Outcome of finalizing an upload: either ``ok`` data or an ``err`` message."""
    image_id: Optional[str] = None
    enhanced_image: Optional[bytes] = None
    err: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.err is None and self.enhanced_image is not None


@dataclass
class UploadProgress:
    """Progress report. fraction is 0-1 of chunks sent (uploading phase only)."""
    phase: str  # 'uploading' or 'enhancing'
    fraction: float


@dataclass
class EnhancedImage:
    """Bytes returned by the backend, ready to decode."""
    image_id: str
    data: bytes
    mime_type: str


class EnhancementBackend(ABC):
    """Interface of the remote upload/enhancement service."""

    @abstractmethod
    def init_upload(self, total_chunks: int, file_type: str) -> str:
        """Open an upload session and return its id."""

    @abstractmethod
    def upload_chunk(self, session_id: str, chunk_index: int, data: bytes):
        """Store one chunk of the session."""

    @abstractmethod
    def finalize_upload(self, session_id: str, mode: EnhancementMode) -> FinalizeResult:
        """Reassemble, process and return the image (or an error)."""


def split_into_chunks(data: bytes, chunk_size: int) -> List[bytes]:
    """Split bytes into chunks of at most chunk_size bytes."""
    if chunk_size <= 0:
        raise ValueError("Chunk size must be positive")
    return [data[offset:offset + chunk_size] for offset in range(0, len(data), chunk_size)]


def detect_mime_type(data: bytes) -> Optional[str]:
    """Detect JPEG or PNG from magic bytes. Returns None if neither."""
    if len(data) >= 3 and data[:3] == b'\xff\xd8\xff':
        return 'image/jpeg'
    if len(data) >= 8 and data[:4] == b'\x89PNG':
        return 'image/png'
    return None


class UploadClient:
    """Sends an image through an EnhancementBackend."""

    def __init__(self, backend: EnhancementBackend, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._backend = backend
        self._chunk_size = chunk_size

    def process_image(
        self,
        data: bytes,
        file_type: str,
        mode: EnhancementMode = EnhancementMode.STANDARD,
        on_progress: Callable[[UploadProgress], None] = None,
    ) -> EnhancedImage:
        """
        Upload image bytes chunk by chunk and return the processed result.

        Args:
            data: Raw file bytes
            file_type: Declared MIME type ('image/jpeg' or 'image/png')
            mode: Enhancement mode passed to finalize
            on_progress: Optional progress callback

        Raises:
            UploadError: on unsupported type, empty input, backend failure
                or empty result
        """
        if file_type not in ACCEPTED_TYPES:
            raise UploadError("Only JPEG and PNG images are supported.")
        if not data:
            raise UploadError("No image data to upload")

        def report(phase: str, fraction: float):
            if on_progress:
                on_progress(UploadProgress(phase=phase, fraction=fraction))

        chunks = split_into_chunks(data, self._chunk_size)
        total = len(chunks)
        report('uploading', 0.0)

        try:
            session_id = self._backend.init_upload(total, file_type)
            for i, chunk in enumerate(chunks):
                self._backend.upload_chunk(session_id, i, chunk)
                report('uploading', (i + 1) / total)

            report('enhancing', 1.0)
            result = self._backend.finalize_upload(session_id, mode)
        except UploadError:
            raise
        except Exception as e:
            raise UploadError(f"Upload failed: {e}") from e

        if not result.ok:
            raise UploadError(result.err or 'Enhancement failed on the backend')
        if not result.enhanced_image:
            raise UploadError('Backend returned empty image data')

        mime_type = detect_mime_type(result.enhanced_image) or file_type
        logger.info("[UploadClient] %d chunk(s) -> %s (%d bytes, %s)",
                    total, result.image_id, len(result.enhanced_image), mime_type)
        return EnhancedImage(image_id=result.image_id, data=result.enhanced_image, mime_type=mime_type)


class InMemoryBackend(EnhancementBackend):
    """Pass-through backend: reassembles chunks and returns them unchanged."""

    def __init__(self):
        self._sessions: Dict[str, dict] = {}

    def init_upload(self, total_chunks: int, file_type: str) -> str:
        if total_chunks <= 0:
            raise UploadError("Upload must have at least one chunk")
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = {
            'total': total_chunks,
            'file_type': file_type,
            'chunks': {},
        }
        return session_id

    def upload_chunk(self, session_id: str, chunk_index: int, data: bytes):
        session = self._sessions.get(session_id)
        if session is None:
            raise UploadError(f"Unknown upload session: {session_id}")
        if not 0 <= chunk_index < session['total']:
            raise UploadError(f"Chunk index {chunk_index} out of range")
        session['chunks'][chunk_index] = bytes(data)

    def finalize_upload(self, session_id: str, mode: EnhancementMode) -> FinalizeResult:
        # Nothing is kept once the session is finalized
        session = self._sessions.pop(session_id, None)
        if session is None:
            return FinalizeResult(err=f"Unknown upload session: {session_id}")

        missing = [i for i in range(session['total']) if i not in session['chunks']]
        if missing:
            return FinalizeResult(err=f"Missing chunks: {missing}")

        data = b''.join(session['chunks'][i] for i in range(session['total']))
        return FinalizeResult(image_id=session_id, enhanced_image=data)

    @property
    def open_sessions(self) -> int:
        return len(self._sessions)
