"""Filesystem blob store with HMAC-signed, expiring URLs.

URL shape: ``{base_url}/{path}?expires={unix_ts}&signature={hex}`` where the
signature is HMAC-SHA256 over ``"{path}\\n{expires}"``. The signing secret
comes from MARGINALIA_BLOB_SECRET; without it a per-process random secret is
used, so URLs only verify within the process that issued them.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import secrets
import time
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from urllib.parse import parse_qs, quote, unquote, urlsplit

from marginalia.providers.base import BlobStore

logger = logging.getLogger(__name__)

_SECRET_ENV = "MARGINALIA_BLOB_SECRET"


class LocalBlobStore(BlobStore):
    """Store blobs under *root* and hand out signed URLs for them.

    Args:
        root: Directory holding the blobs (created on first write).
        base_url: URL prefix for signed URLs; defaults to the ``file://`` URL
            of *root*.
        secret: Signing key; defaults to MARGINALIA_BLOB_SECRET.
        clock: Returns the current unix time (injectable for tests).
    """

    def __init__(
        self,
        root: Path | str,
        base_url: str = "",
        secret: str | bytes | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root = Path(root)
        self.base_url = (base_url or self.root.resolve().as_uri()).rstrip("/")
        if secret is None:
            secret = os.environ.get(_SECRET_ENV)
        if not secret:
            logger.warning(
                "%s is not set; signed blob URLs will not verify across processes",
                _SECRET_ENV,
            )
            secret = secrets.token_hex(32)
        self._secret = secret.encode() if isinstance(secret, str) else secret
        self._clock = clock

    def put(self, path: str, data: bytes, content_type: str, expires_in: int) -> str:
        """Write *data* to *path* and return a URL valid for *expires_in* seconds.

        Raises:
            ValueError: If *path* is absolute, escapes the root, or
                *expires_in* is not positive.
        """
        if expires_in < 1:
            raise ValueError(f"expires_in must be >= 1, got {expires_in}")
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        _meta_path(target).write_text(
            json.dumps({"content_type": content_type, "size": len(data)}), encoding="utf-8"
        )
        return self.sign(path, expires_in)

    def sign(self, path: str, expires_in: int) -> str:
        """Return a signed URL for an existing *path*."""
        expires = int(self._clock()) + int(expires_in)
        signature = self._signature(path, expires)
        return f"{self.base_url}/{quote(path)}?expires={expires}&signature={signature}"

    def verify(self, url: str) -> str | None:
        """Return the blob path a signed *url* grants, or None if invalid or expired."""
        parts = urlsplit(url)
        prefix = urlsplit(self.base_url).path.rstrip("/")
        if not parts.path.startswith(prefix + "/"):
            return None
        path = unquote(parts.path[len(prefix) + 1:])
        query = parse_qs(parts.query)
        try:
            expires = int(query["expires"][0])
            signature = query["signature"][0]
        except (KeyError, IndexError, ValueError):
            return None
        if expires < self._clock():
            return None
        if not hmac.compare_digest(signature, self._signature(path, expires)):
            return None
        return path

    def read(self, path: str) -> tuple[bytes, str]:
        """Return ``(data, content_type)`` of a stored blob.

        Raises:
            FileNotFoundError: If no blob is stored at *path*.
        """
        target = self._resolve(path)
        data = target.read_bytes()
        meta = json.loads(_meta_path(target).read_text(encoding="utf-8"))
        return data, meta.get("content_type", "application/octet-stream")

    def _signature(self, path: str, expires: int) -> str:
        message = f"{path}\n{expires}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def _resolve(self, path: str) -> Path:
        pure = PurePosixPath(path)
        if not path or pure.is_absolute() or ".." in pure.parts:
            raise ValueError(f"Blob path must be relative and stay inside the store: {path!r}")
        return self.root.joinpath(*pure.parts)


def _meta_path(target: Path) -> Path:
    return target.with_name(target.name + ".meta.json")
