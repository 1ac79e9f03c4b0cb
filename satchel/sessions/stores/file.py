"""
SatchelSessions - File store.

One signed file per session under a configured directory:

    <location>/<session_id>.txt

Freshness is the file's modification time. A file older than the
session age reads as missing but is left on disk; ``touch`` bumps the
mtime to keep an unchanged session alive.
"""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
import time
from pathlib import Path
from typing import Any, Callable

from ..core import is_valid_session_id, session_fingerprint
from ..faults import SessionStoreUnavailableFault
from ..signing import MessageSigner
from .base import BaseStore

logger = logging.getLogger("satchel.sessions.stores.file")


class FileStore(BaseStore):
    """
    File-based session storage.

    Features:
    - One file per session, HMAC-signed and bound to its session id
    - Expiry computed from mtime, no sweeper required
    - Atomic writes (temp file + rename)
    - Blocking I/O runs in the default executor

    Example:
        >>> store = FileStore("/var/lib/app/sessions", age_seconds=7200, signer=signer)
        >>> await store.write("sess_abc", values)
        >>> await store.read("sess_abc")
    """

    name = "file"

    def __init__(self, location: str | Path, age_seconds: int, signer: MessageSigner):
        """
        Initialize file store.

        Args:
            location: Directory to store session files
            age_seconds: Files older than this read as missing
            signer: Signer used to protect file contents
        """
        self.location = Path(location)
        self.age_seconds = age_seconds
        self.signer = signer

    def _get_path(self, session_id: str) -> Path:
        """Get file path for session."""
        if not is_valid_session_id(session_id):
            raise ValueError(f"Refusing to build a file path from session id {session_id!r}")
        return self.location / f"{session_id}.txt"

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except OSError as e:
            logger.error(f"File session store error in {self.location}: {e}")
            raise SessionStoreUnavailableFault(store_name=self.name, cause=str(e)) from e

    # -- blocking helpers ---------------------------------------------------

    def _read_file(self, path: Path) -> str | None:
        try:
            mtime = path.stat().st_mtime
            if mtime + self.age_seconds < time.time():
                return None
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write_file(self, path: Path, contents: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write file atomically (write to temp, then rename)
        temp_path = path.with_name(f".{path.stem}.{secrets.token_hex(4)}.tmp")
        try:
            temp_path.write_text(contents, encoding="utf-8")
            os.replace(temp_path, path)
        finally:
            temp_path.unlink(missing_ok=True)

    @staticmethod
    def _touch_file(path: Path) -> None:
        try:
            os.utime(path, None)
        except FileNotFoundError:
            pass

    @staticmethod
    def _remove_file(path: Path) -> None:
        path.unlink(missing_ok=True)

    # -- SessionStore -------------------------------------------------------

    async def read(self, session_id: str) -> dict[str, Any] | None:
        contents = await self._run(self._read_file, self._get_path(session_id))
        if contents is None:
            return None

        values = self.signer.unsign(contents.strip(), purpose=session_id)
        if not isinstance(values, dict):
            logger.warning(
                f"Session file for {session_fingerprint(session_id)} failed verification"
            )
            return None

        return values

    async def _write(self, session_id: str, values: dict[str, Any]) -> None:
        contents = self.signer.sign(values, purpose=session_id)
        await self._run(self._write_file, self._get_path(session_id), contents)

    async def destroy(self, session_id: str) -> None:
        await self._run(self._remove_file, self._get_path(session_id))

    async def touch(self, session_id: str) -> None:
        await self._run(self._touch_file, self._get_path(session_id))
