"""
Checkpoint stores keyed by session identifier.

The orchestrator only sees the CheckpointStore interface, so the backing
medium can be swapped: memory for tests, JSON files for a local runner,
Fernet-encrypted files where candidates must not edit their own progress.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from .errors import CheckpointError


def safe_session_name(session_id: str) -> str:
    """File-system safe name for a session identifier."""
    safe = "".join(c if c.isalnum() or c in "-_" else '_' for c in str(session_id))
    if not safe:
        raise CheckpointError("Empty session identifier")
    return safe


class CheckpointStore(ABC):
    """Durable key-value storage for session checkpoints."""

    @abstractmethod
    def save(self, session_id: str, snapshot: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored snapshot, or None when there is none."""
        ...

    @abstractmethod
    def clear(self, session_id: str) -> None:
        ...

    @abstractmethod
    def list_sessions(self) -> List[str]:
        """Identifiers that currently have a checkpoint."""
        ...

    def exists(self, session_id: str) -> bool:
        return self.load(session_id) is not None

    def clear_all(self) -> int:
        """Remove every checkpoint in the store; returns how many were removed."""
        sessions = self.list_sessions()
        for session_id in sessions:
            self.clear(session_id)
        return len(sessions)


class MemoryCheckpointStore(CheckpointStore):
    """In-process store; snapshots are copied through JSON like a real medium."""

    def __init__(self):
        self._records: Dict[str, str] = {}

    def save(self, session_id: str, snapshot: Dict[str, Any]) -> None:
        self._records[session_id] = json.dumps(snapshot)

    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        raw = self._records.get(session_id)
        if raw is None:
            return None
        return json.loads(raw)

    def clear(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    def list_sessions(self) -> List[str]:
        return sorted(self._records)


class FileCheckpointStore(CheckpointStore):
    """One JSON file per session in a directory."""

    suffix = ".json"

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, session_id: str) -> Path:
        return self.directory / f"progress_{safe_session_name(session_id)}{self.suffix}"

    def _encode(self, snapshot: Dict[str, Any]) -> bytes:
        return json.dumps(snapshot, indent=2).encode('utf-8')

    def _decode(self, data: bytes) -> Dict[str, Any]:
        try:
            record = json.loads(data.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CheckpointError(f"Invalid checkpoint data: {e}") from e
        if not isinstance(record, dict):
            raise CheckpointError("Checkpoint is not a JSON object")
        return record

    def save(self, session_id: str, snapshot: Dict[str, Any]) -> None:
        path = self.path_for(session_id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".tmp_", suffix=self.suffix)
            with os.fdopen(fd, 'wb') as f:
                f.write(self._encode(snapshot))
            os.replace(tmp_path, path)
        except OSError as e:
            raise CheckpointError(f"Could not write checkpoint {path}: {e}") from e

    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        path = self.path_for(session_id)
        if not path.exists():
            return None
        try:
            with open(path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise CheckpointError(f"Could not read checkpoint {path}: {e}") from e
        return self._decode(data)

    def clear(self, session_id: str) -> None:
        path = self.path_for(session_id)
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            raise CheckpointError(f"Could not remove checkpoint {path}: {e}") from e

    def list_sessions(self) -> List[str]:
        # file names hold the sanitized identifier, which clear() maps to itself
        if not self.directory.is_dir():
            return []
        prefix = "progress_"
        return sorted(
            path.name[len(prefix):-len(self.suffix)]
            for path in self.directory.glob(f"{prefix}*{self.suffix}")
        )


class EncryptedFileCheckpointStore(FileCheckpointStore):
    """File store whose records are Fernet tokens."""

    suffix = ".enc"

    def __init__(self, directory: Union[str, Path], key: Union[str, bytes]):
        super().__init__(directory)
        if isinstance(key, str):
            key = key.encode('utf-8')
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as e:
            raise CheckpointError(f"Invalid checkpoint key: {e}") from e

    def _encode(self, snapshot: Dict[str, Any]) -> bytes:
        return self._fernet.encrypt(json.dumps(snapshot).encode('utf-8'))

    def _decode(self, data: bytes) -> Dict[str, Any]:
        try:
            plaintext = self._fernet.decrypt(data)
        except InvalidToken as e:
            raise CheckpointError("Checkpoint failed integrity check (wrong key or tampered file)") from e
        return super()._decode(plaintext)


def open_store(config, key: Optional[Union[str, bytes]] = None,
               base_dir: Optional[Union[str, Path]] = None) -> CheckpointStore:
    """Build the store described by a SessionConfig; relative dirs resolve against base_dir."""
    directory = Path(config.checkpoint_dir)
    if base_dir is not None and not directory.is_absolute():
        directory = Path(base_dir) / directory

    if config.encrypt_checkpoints:
        if key is None:
            raise CheckpointError("encrypt_checkpoints is enabled but no checkpoint key was given")
        return EncryptedFileCheckpointStore(directory, key)
    return FileCheckpointStore(directory)
