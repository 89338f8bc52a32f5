"""In-memory staging store for two-phase file changes."""

from __future__ import annotations

import hashlib
import secrets
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from loguru import logger

FileChangeOperation = Literal["write_file", "edit_file"]

DEFAULT_TTL_SECONDS = 10 * 60
DEFAULT_MAX_ENTRIES = 50


def hash_content(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class FileChangePreview:
    """A staged, not yet applied, file change addressed by ``token``."""

    token: str
    operation: FileChangeOperation
    absolute_path: str
    before: str
    after: str
    diff_preview: str
    created_at: float
    expires_at: float
    content_hash_before: str

    @property
    def expires_at_iso(self) -> str:
        return datetime.fromtimestamp(self.expires_at, UTC).isoformat()


class FileChangeStore:
    """Token-addressed previews with lazy expiry and a capacity bound.

    Every public method sweeps expired entries first and runs under one lock,
    so a token resolves through ``consume`` at most once across threads.
    """

    def __init__(self, *, ttl_seconds: float = DEFAULT_TTL_SECONDS, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._previews: OrderedDict[str, FileChangePreview] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._cleanup_locked()
            return len(self._previews)

    def create_preview(
        self,
        *,
        operation: FileChangeOperation,
        absolute_path: str,
        before: str,
        after: str,
        diff_preview: str,
    ) -> FileChangePreview:
        now = time.time()
        preview = FileChangePreview(
            token=secrets.token_urlsafe(24),
            operation=operation,
            absolute_path=absolute_path,
            before=before,
            after=after,
            diff_preview=diff_preview,
            created_at=now,
            expires_at=now + self._ttl_seconds,
            content_hash_before=hash_content(before),
        )
        with self._lock:
            self._cleanup_locked()
            self._previews[preview.token] = preview
            self._enforce_max_entries_locked()
        logger.info("staging.preview.create operation={} path={}", operation, absolute_path)
        return preview

    def get(self, token: str) -> FileChangePreview | None:
        with self._lock:
            self._cleanup_locked()
            return self._previews.get(token)

    def consume(self, token: str) -> FileChangePreview | None:
        with self._lock:
            self._cleanup_locked()
            preview = self._previews.pop(token, None)
        if preview is not None:
            logger.info("staging.preview.consume path={}", preview.absolute_path)
        return preview

    def cleanup_expired(self) -> None:
        with self._lock:
            self._cleanup_locked()

    def _cleanup_locked(self) -> None:
        now = time.time()
        expired = [token for token, preview in self._previews.items() if preview.expires_at <= now]
        for token in expired:
            del self._previews[token]
        if expired:
            logger.debug("staging.preview.expired count={}", len(expired))

    def _enforce_max_entries_locked(self) -> None:
        while len(self._previews) > self._max_entries:
            _, evicted = self._previews.popitem(last=False)
            logger.debug("staging.preview.evict path={}", evicted.absolute_path)
