# store.py
"""Durable, deduplicated log of notices that have already been seen."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import StorageIOError
from .models import Notice, NoticeCandidate, StoreInfo
from .timeutil import format_instant

LOGGER = logging.getLogger(__name__)

STATE_VERSION = "1.0.0"
BACKUP_PREFIX = "notices_backup_"
BACKUP_NAME_PATTERN = re.compile(r"^notices_backup_(\d+)(?:-(\d+))?\.json$")


@dataclass(frozen=True)
class _State:
    notices: Tuple[Notice, ...] = ()
    last_update: Optional[str] = None
    next_id: int = 1
    version: str = STATE_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "notices": [notice.to_dict() for notice in self.notices],
            "lastUpdate": self.last_update,
            "version": self.version,
            "nextId": self.next_id,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "_State":
        """Validate a stored document, raising ValueError if it is not a usable state."""
        if not isinstance(data, dict):
            raise ValueError("State document must be a JSON object")

        raw_notices = data.get("notices", [])
        if not isinstance(raw_notices, list):
            raise ValueError("'notices' must be a list")
        notices = tuple(Notice.from_dict(item) for item in raw_notices)

        seen_keys = set()
        previous_id = 0
        for notice in notices:
            if notice.id <= previous_id:
                raise ValueError(f"Notice ids are not strictly increasing at id {notice.id}")
            if notice.key in seen_keys:
                raise ValueError(f"Duplicate notice {notice.title!r} ({notice.link})")
            seen_keys.add(notice.key)
            previous_id = notice.id

        last_update = data.get("lastUpdate")
        if last_update is not None and not isinstance(last_update, str):
            raise ValueError("'lastUpdate' must be a string or null")

        version = data.get("version", STATE_VERSION)
        if not isinstance(version, str):
            raise ValueError("'version' must be a string")

        # nextId가 없는 예전 파일은 가장 큰 id 다음 번호부터 시작
        next_id = data.get("nextId")
        if isinstance(next_id, bool) or not isinstance(next_id, int):
            next_id = previous_id + 1
        next_id = max(next_id, previous_id + 1)

        return cls(
            notices=notices,
            last_update=last_update,
            next_id=next_id,
            version=version,
        )


def diff_new_notices(
    candidates: Iterable[NoticeCandidate], saved_notices: Iterable[Notice]
) -> List[NoticeCandidate]:
    """Pick the candidates that are not stored yet.

    Identity is the exact ``(title, link)`` pair. The check runs against the
    saved notices as they were before this batch; when the same pair appears
    more than once in ``candidates`` only the first occurrence is returned.
    """
    seen = {notice.key for notice in saved_notices}
    saved_count = len(seen)

    new_list: List[NoticeCandidate] = []
    total = 0
    for candidate in candidates:
        total += 1
        key = (candidate.title, candidate.link)
        if key in seen:
            LOGGER.debug("Already stored, skipping: %s (%s)", candidate.title, candidate.link)
            continue
        seen.add(key)
        new_list.append(candidate)

    LOGGER.info(
        "Fetched %d notices, %d already stored, %d new",
        total,
        saved_count,
        len(new_list),
    )
    return new_list


def _write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    """Write JSON next to ``path`` and atomically move it into place."""
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            json.dump(data, handle, ensure_ascii=False, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
        raise StorageIOError(f"Failed to write {path}: {exc}") from exc


def _backup_sort_key(path: Path) -> Tuple[int, int]:
    match = BACKUP_NAME_PATTERN.match(path.name)
    if not match:
        return (0, 0)
    return (int(match.group(1)), int(match.group(2) or 1))


class NoticeStore:
    """JSON-file-backed store of notices, safe to share between request threads.

    Every mutating call writes the complete state to disk before it returns and
    only swaps the in-memory state once that write succeeded, so a failed write
    leaves the store exactly as it was.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        backup_dir: str | Path | None = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.path = Path(path)
        self.backup_dir = Path(backup_dir) if backup_dir is not None else self.path.parent
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._state = self._load()

    # ------------------------------------------------------------------
    # loading and persistence

    def _load(self) -> _State:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            LOGGER.info("%s not found, creating new storage file", self.path)
            return self._initialize_empty()
        except OSError as exc:
            LOGGER.warning("Could not read %s (%s), starting with empty storage", self.path, exc)
            return self._initialize_empty()

        # UnicodeDecodeError도 ValueError라서 여기서 같이 처리됨
        try:
            state = _State.from_dict(json.loads(raw.decode("utf-8")))
        except ValueError as exc:
            LOGGER.warning("Could not parse %s (%s), starting with empty storage", self.path, exc)
            return self._initialize_empty()

        LOGGER.info("Storage loaded from %s, %d notices", self.path, len(state.notices))
        return state

    def _initialize_empty(self) -> _State:
        state = _State()
        try:
            self._write_state(state)
        except StorageIOError as exc:
            LOGGER.error("Could not create storage file: %s", exc)
        return state

    def _write_state(self, state: _State) -> None:
        _write_json_atomic(self.path, state.to_dict())

    def _commit(self, state: _State) -> None:
        # 디스크에 먼저 쓰고, 성공했을 때만 메모리 상태 교체
        self._write_state(state)
        self._state = state

    def _now(self) -> str:
        return format_instant(self._clock())

    # ------------------------------------------------------------------
    # queries

    def list_all(self) -> List[Notice]:
        with self._lock:
            return list(self._state.notices)

    def exists(self, title: str, link: str) -> bool:
        with self._lock:
            return any(n.title == title and n.link == link for n in self._state.notices)

    def count(self) -> int:
        with self._lock:
            return len(self._state.notices)

    def last_update(self) -> Optional[str]:
        with self._lock:
            return self._state.last_update

    def check_storage(self) -> None:
        """Raise StorageIOError if the data file cannot be read or its directory written."""
        directory = self.path.parent
        if not directory.is_dir():
            raise StorageIOError(f"Storage directory {directory} is missing")
        if not os.access(directory, os.W_OK | os.X_OK):
            raise StorageIOError(f"Storage directory {directory} is not writable")
        try:
            self.path.stat()
        except FileNotFoundError:
            # 다음 저장 때 새로 만들어지므로 문제 없음
            return
        except OSError as exc:
            raise StorageIOError(f"Cannot access {self.path}: {exc}") from exc
        if not os.access(self.path, os.R_OK):
            raise StorageIOError(f"{self.path} is not readable")

    def info(self) -> StoreInfo:
        with self._lock:
            state = self._state
            return StoreInfo(
                location=str(self.path),
                count=len(state.notices),
                last_update=state.last_update,
                version=state.version,
            )

    # ------------------------------------------------------------------
    # mutations

    def merge_new(self, candidates: Sequence[NoticeCandidate]) -> List[Notice]:
        """Store the candidates not seen before and return them as stored notices.

        Raises StorageIOError if the new state cannot be written; in that case
        nothing is added.
        """
        with self._lock:
            state = self._state
            fresh = diff_new_notices(candidates, state.notices)
            if not fresh:
                return []

            now = self._now()
            added = [
                Notice(
                    id=state.next_id + offset,
                    title=candidate.title,
                    link=candidate.link,
                    timestamp=candidate.timestamp,
                    created_at=now,
                )
                for offset, candidate in enumerate(fresh)
            ]
            self._commit(
                replace(
                    state,
                    notices=state.notices + tuple(added),
                    last_update=now,
                    next_id=state.next_id + len(added),
                )
            )

        LOGGER.info("Saved %d new notices (ids %d-%d)", len(added), added[0].id, added[-1].id)
        return added

    def append_if_new(self, candidates: Sequence[NoticeCandidate]) -> int:
        """Append unseen candidates and return how many were added."""
        return len(self.merge_new(candidates))

    def reset(self) -> int:
        """Remove every notice and return how many there were."""
        with self._lock:
            previous = len(self._state.notices)
            self._commit(_State(version=self._state.version))
        LOGGER.info("Cleared %d notices from storage", previous)
        return previous

    # ------------------------------------------------------------------
    # snapshots

    def _next_backup_path(self) -> Path:
        stamp = int(self._clock().timestamp() * 1000)
        candidate = self.backup_dir / f"{BACKUP_PREFIX}{stamp}.json"
        sequence = 1
        while candidate.exists():
            sequence += 1
            candidate = self.backup_dir / f"{BACKUP_PREFIX}{stamp}-{sequence}.json"
        return candidate

    def backup(self) -> str:
        """Write the current state to a new backup file and return its path."""
        with self._lock:
            target = self._next_backup_path()
            _write_json_atomic(target, self._state.to_dict())
        LOGGER.info("Backup written to %s", target)
        return str(target)

    def list_backups(self) -> List[str]:
        """Backup file names in the backup directory, newest first."""
        if not self.backup_dir.is_dir():
            return []
        paths = [p for p in self.backup_dir.iterdir() if BACKUP_NAME_PATTERN.match(p.name)]
        paths.sort(key=_backup_sort_key, reverse=True)
        return [p.name for p in paths]

    def _resolve_backup(self, identifier: str | Path) -> Path:
        path = Path(identifier)
        if not path.is_absolute():
            path = self.backup_dir / path
        return path

    def restore(self, identifier: str | Path) -> bool:
        """Replace the live state with a backup; False if it cannot be used."""
        path = self._resolve_backup(identifier)
        try:
            state = _State.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            LOGGER.error("Error restoring backup %s: %s", path, exc)
            return False

        with self._lock:
            try:
                self._commit(state)
            except StorageIOError as exc:
                LOGGER.error("Error restoring backup %s: %s", path, exc)
                return False

        LOGGER.info("Restored %d notices from %s", len(state.notices), path)
        return True

    # ------------------------------------------------------------------
    # shutdown

    def flush(self, timeout: float = 5.0) -> bool:
        """Best-effort write of the in-memory state, giving up after ``timeout`` seconds."""
        done = threading.Event()

        def _run() -> None:
            if not self._lock.acquire(timeout=timeout):
                return
            try:
                self._write_state(self._state)
                done.set()
            except StorageIOError as exc:
                LOGGER.error("Final flush failed: %s", exc)
            finally:
                self._lock.release()

        worker = threading.Thread(target=_run, name="notice-store-flush", daemon=True)
        worker.start()
        worker.join(timeout)

        if done.is_set():
            LOGGER.info("Storage flushed to %s", self.path)
        else:
            LOGGER.warning("Storage flush did not finish within %.1fs", timeout)
        return done.is_set()
