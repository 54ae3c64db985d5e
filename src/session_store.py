"""
Session Store - Durable whole-session snapshots, one JSON file per session.

Every mutation of a session ends with ``put``, which writes the complete
snapshot. The write is atomic (temporary file in the same directory, then
replace) so a crash mid-write leaves the previous snapshot intact, and the
previous snapshot is kept as ``<id>.json.backup``.

Unlike a best-effort state cache, failures are not swallowed: the caller
must know whether the snapshot is durable, so every OS-level failure is
raised as StorageError.
"""
import os
import json
import shutil
import tempfile
from pathlib import Path
from datetime import datetime
from typing import List, Optional

from bale_models import Session
from exceptions import StorageError
from logger import get_logger

logger = get_logger(__name__)

SNAPSHOT_VERSION = '1.0'
SNAPSHOT_SUFFIX = '.json'
BACKUP_SUFFIX = '.json.backup'


class JsonSessionStore:
    """
    Session persistence in a directory of JSON snapshots.

    Snapshot format:
        {
          "version": "1.0",
          "saved_at": "2026-10-19T14:30:45.123456",
          "data": { ...Session.to_dict()... }
        }

    Attributes:
        sessions_dir (Path): Directory holding <session_id>.json files
    """

    def __init__(self, sessions_dir):
        self.sessions_dir = Path(sessions_dir)
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create sessions directory {self.sessions_dir}: {e}")
            raise StorageError(f"Cannot create sessions directory {self.sessions_dir}: {e}") from e

        logger.debug(f"JsonSessionStore using {self.sessions_dir}")

    def _snapshot_path(self, session_id: str) -> Path:
        safe_id = "".join(c for c in str(session_id) if c.isalnum() or c in '-_')
        if not safe_id:
            raise StorageError(f"Invalid session id: '{session_id}'")
        return self.sessions_dir / f"{safe_id}{SNAPSHOT_SUFFIX}"

    def put(self, session: Session) -> None:
        """
        Insert or replace the snapshot for ``session.id``.

        Raises:
            StorageError: If the snapshot could not be written
        """
        path = self._snapshot_path(session.id)
        data = {
            'version': SNAPSHOT_VERSION,
            'saved_at': datetime.now().isoformat(),
            'data': session.to_dict(),
        }

        tmp_path = None
        try:
            if path.exists():
                shutil.copy2(path, path.with_suffix(BACKUP_SUFFIX))

            with tempfile.NamedTemporaryFile(
                mode='w',
                dir=self.sessions_dir,
                prefix='.tmp_session_',
                suffix=SNAPSHOT_SUFFIX,
                delete=False,
                encoding='utf-8'
            ) as tmp_file:
                tmp_path = tmp_file.name
                json.dump(data, tmp_file, indent=2, ensure_ascii=False)

            os.replace(tmp_path, path)
            logger.debug(f"Session {session.id} saved ({len(session.bales)} bales)")

        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save session {session.id}: {e}", exc_info=True)
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Could not save session {session.id}: {e}") from e

    def get(self, session_id: str) -> Optional[Session]:
        """
        Load one session, or None if no snapshot exists.

        Raises:
            StorageError: If the snapshot exists but cannot be read
        """
        path = self._snapshot_path(session_id)
        if not path.exists():
            return None
        return self._read(path)

    def get_all(self) -> List[Session]:
        """
        Load every stored session, newest first (by created_at).

        Raises:
            StorageError: If the directory or any snapshot cannot be read
        """
        try:
            paths = sorted(self.sessions_dir.glob(f"*{SNAPSHOT_SUFFIX}"))
        except OSError as e:
            raise StorageError(f"Cannot list sessions in {self.sessions_dir}: {e}") from e

        sessions = [self._read(p) for p in paths if not p.name.startswith('.tmp_')]
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return sessions

    def delete(self, session_id: str) -> None:
        """
        Remove a session snapshot and its backup. Deleting a missing session is a no-op.

        Raises:
            StorageError: If the file exists but cannot be removed
        """
        path = self._snapshot_path(session_id)
        try:
            for target in (path, path.with_suffix(BACKUP_SUFFIX)):
                if target.exists():
                    target.unlink()
        except OSError as e:
            logger.error(f"Failed to delete session {session_id}: {e}")
            raise StorageError(f"Could not delete session {session_id}: {e}") from e

        logger.debug(f"Session {session_id} deleted")

    def _read(self, path: Path) -> Session:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            # Accept bare session documents as well as versioned snapshots
            if isinstance(data, dict) and 'data' in data and 'version' in data:
                data = data['data']
            return Session.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to read session snapshot {path}: {e}")
            raise StorageError(f"Could not read session snapshot {path.name}: {e}") from e
