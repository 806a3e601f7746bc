"""
Conversation Store
------------------
Durable per-conversation persistence.
One JSON record per conversation id under a dedicated directory.

Rules:
- Best effort: failures are logged, never raised
- Whole-record replace on every save
- Directory created on first use
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union
from uuid import UUID
import json
import logging
import os
import tempfile

from .conversation import ConversationContext

ConversationId = Union[str, UUID]

RECORD_SUFFIX = ".json"


def conversation_key(conversation_id: ConversationId) -> str:
    """Normalize a conversation id to the string used as its record name."""
    key = str(conversation_id)
    if not key or key != key.strip() or key in (".", "..") or "/" in key or "\\" in key or os.sep in key:
        raise ValueError(f"Invalid conversation id: {conversation_id!r}")
    return key


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ConversationStore:
    """
    File-backed conversation storage.

    The disk copy is the source of truth for every conversation.
    """

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory).expanduser()
        self._logger = logging.getLogger("freewrite.memory.store")

    @property
    def directory(self) -> Path:
        return self._directory

    def _ensure_directory(self) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)

    def record_path(self, conversation_id: ConversationId) -> Path:
        """Path of the record for a conversation id."""
        return self._directory / f"{conversation_key(conversation_id)}{RECORD_SUFFIX}"

    def save(self, conversation_id: ConversationId, context: ConversationContext) -> bool:
        """
        Write a conversation, replacing any previous record.

        Returns True on success. Errors are logged and swallowed.
        """
        tmp_name = None
        try:
            path = self.record_path(conversation_id)
            payload = json.dumps(context.to_dict(), ensure_ascii=False)
            self._ensure_directory()

            # Write to a sibling temp file, then swap it in atomically
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self._directory), prefix=".tmp-", suffix=RECORD_SUFFIX
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
            tmp_name = None

            self._logger.debug(f"Saved conversation {conversation_id} ({len(context)} messages)")
            return True
        except (OSError, TypeError, ValueError) as e:
            self._logger.warning(f"Failed to save conversation {conversation_id}: {e}")
            return False
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def load(self, conversation_id: ConversationId) -> Optional[ConversationContext]:
        """Read a conversation. Returns None on a missing or unreadable record."""
        try:
            path = self.record_path(conversation_id)
        except ValueError as e:
            self._logger.warning(str(e))
            return None

        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return ConversationContext.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            self._logger.warning(f"Failed to load conversation {conversation_id}: {e}")
            return None

    def delete(self, conversation_id: ConversationId) -> bool:
        """Remove a record. Returns True if a record was removed."""
        try:
            path = self.record_path(conversation_id)
            if not path.exists():
                return False
            path.unlink()
            self._logger.debug(f"Deleted conversation {conversation_id}")
            return True
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            self._logger.warning(f"Failed to delete conversation {conversation_id}: {e}")
            return False

    def exists(self, conversation_id: ConversationId) -> bool:
        try:
            return self.record_path(conversation_id).exists()
        except ValueError:
            return False

    def _record_created_at(self, path: Path) -> datetime:
        """Creation time of a record: its stored created_at, else file mtime."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return _as_utc(datetime.fromisoformat(data["created_at"]))
        except (ValueError, KeyError, TypeError) as e:
            self._logger.debug(f"No created_at in {path.name}, using mtime: {e}")
            return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)

    def sweep(self, cutoff: datetime) -> int:
        """
        Remove every record created strictly before cutoff.

        Per-record failures are logged and the sweep continues.
        Returns the number of records removed.
        """
        cutoff = _as_utc(cutoff)

        try:
            paths = sorted(self._directory.glob(f"*{RECORD_SUFFIX}"))
        except OSError as e:
            self._logger.warning(f"Failed to list conversations in {self._directory}: {e}")
            return 0

        removed = 0
        for path in paths:
            if path.name.startswith(".tmp-"):
                continue
            try:
                if self._record_created_at(path) < cutoff:
                    path.unlink()
                    removed += 1
            except OSError as e:
                self._logger.warning(f"Failed to sweep {path.name}: {e}")

        if removed:
            self._logger.info(f"Removed {removed} conversations created before {cutoff.isoformat()}")
        return removed
