"""Data models for the notice tracker."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class NoticeCandidate:
    """A notice as observed on the source page, before it is stored."""

    title: str
    link: str
    timestamp: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.title, self.link)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Notice:
    """Represents a single notice persisted in the store."""

    id: int
    title: str
    link: str
    timestamp: str
    created_at: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.title, self.link)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notice":
        """Build a notice from its stored form, raising ValueError on bad input."""
        if not isinstance(data, dict):
            raise ValueError(f"Notice entry must be an object, got {type(data).__name__}")
        try:
            notice_id = data["id"]
            title = data["title"]
            link = data["link"]
        except KeyError as exc:
            raise ValueError(f"Notice entry missing field {exc}") from exc

        if isinstance(notice_id, bool) or not isinstance(notice_id, int):
            raise ValueError(f"Notice id must be an integer: {notice_id!r}")
        if not isinstance(title, str) or not isinstance(link, str):
            raise ValueError(f"Notice {notice_id} has a non-string title or link")

        return cls(
            id=notice_id,
            title=title,
            link=link,
            timestamp=str(data.get("timestamp") or ""),
            created_at=str(data.get("created_at") or ""),
        )


@dataclass(frozen=True)
class StoreInfo:
    """Diagnostic metadata about the notice store."""

    location: str
    count: int
    last_update: Optional[str]
    version: str
