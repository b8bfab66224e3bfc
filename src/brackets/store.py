"""
YAML document store for tournaments.

One file per tournament under ``<data_dir>/tournaments/<id>.yaml``. Every
write goes through a per-document file lock and carries the document
version it was computed from; a write based on a stale version raises
StoreConflictError instead of overwriting a concurrent update.
"""
import logging
import os
import re
from typing import Dict, List, Optional

import yaml
from filelock import FileLock

from .errors import StoreConflictError

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 10
_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


def _convert_to_serializable(obj):
    """Convert tuples to lists recursively for YAML serialization."""
    if isinstance(obj, dict):
        return {k: _convert_to_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_convert_to_serializable(item) for item in obj]
    else:
        return obj


class TournamentStore:
    def __init__(self, data_dir: str, lock_timeout: float = LOCK_TIMEOUT):
        self.data_dir = data_dir
        self.tournaments_dir = os.path.join(data_dir, 'tournaments')
        self.lock_timeout = lock_timeout
        os.makedirs(self.tournaments_dir, exist_ok=True)

    def _path(self, tournament_id: str) -> str:
        if not _ID_PATTERN.match(str(tournament_id)):
            raise ValueError(f'Invalid tournament id: {tournament_id!r}')
        return os.path.join(self.tournaments_dir, f'{tournament_id}.yaml')

    def _lock(self, tournament_id: str) -> FileLock:
        return FileLock(self._path(tournament_id) + '.lock', timeout=self.lock_timeout)

    def _read(self, path: str) -> Optional[Dict]:
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        return data if data else None

    def _write(self, path: str, doc: Dict):
        tmp_path = path + '.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            yaml.dump(_convert_to_serializable(doc), f, default_flow_style=False, sort_keys=False)
        os.replace(tmp_path, path)

    def load(self, tournament_id: str) -> Optional[Dict]:
        """Load a tournament document, or None if it doesn't exist."""
        try:
            path = self._path(tournament_id)
        except ValueError:
            return None
        with self._lock(tournament_id):
            return self._read(path)

    def create(self, doc: Dict) -> Dict:
        """Persist a new document at version 1. Raises StoreConflictError if the id is taken."""
        tournament_id = doc['id']
        path = self._path(tournament_id)
        with self._lock(tournament_id):
            current = self._read(path)
            if current is not None:
                raise StoreConflictError(tournament_id, 0, current.get('version', 0))
            saved = dict(doc, version=1)
            self._write(path, saved)
        logger.info(f'Created tournament {tournament_id}')
        return saved

    def replace(self, doc: Dict, expected_version: int) -> Dict:
        """
        Replace a document if nobody else wrote it since it was read.

        Args:
            doc: New document content
            expected_version: Version of the document the change was computed from

        Returns:
            The saved document with its incremented version.
        """
        tournament_id = doc['id']
        path = self._path(tournament_id)
        with self._lock(tournament_id):
            current = self._read(path)
            actual = current.get('version', 0) if current else 0
            if actual != expected_version:
                logger.warning(f'Stale write to tournament {tournament_id}: '
                               f'expected version {expected_version}, found {actual}')
                raise StoreConflictError(tournament_id, expected_version, actual)
            saved = dict(doc, version=expected_version + 1)
            self._write(path, saved)
        return saved

    def delete(self, tournament_id: str) -> bool:
        try:
            path = self._path(tournament_id)
        except ValueError:
            return False
        with self._lock(tournament_id):
            if not os.path.exists(path):
                return False
            os.remove(path)
        logger.info(f'Deleted tournament {tournament_id}')
        return True

    def list(self) -> List[Dict]:
        """Load every tournament document, sorted by id."""
        docs = []
        for filename in sorted(os.listdir(self.tournaments_dir)):
            if not filename.endswith('.yaml'):
                continue
            tournament_id = filename[:-len('.yaml')]
            try:
                doc = self.load(tournament_id)
            except yaml.YAMLError as e:
                logger.warning(f'Failed to parse {filename}: {e}')
                continue
            if doc:
                docs.append(doc)
        return docs
