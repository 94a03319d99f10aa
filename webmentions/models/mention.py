"""Mention model representing one inbound Webmention."""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

MENTIONS_KIND = "Mentions"


class MentionState(str, Enum):
    """Triage state of a mention."""

    UNTRIAGED = "untriaged"
    GOOD = "good"
    SPAM = "spam"


def mention_key(source: str, target: str) -> str:
    """Deterministic dedup key for a (source, target) pair."""
    return hashlib.md5((source + target).encode("utf-8")).hexdigest()


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as fixed-width UTC ISO 8601 so it sorts lexically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_optional_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


@dataclass
class Mention:
    """An inbound mention and the metadata found while verifying it."""

    source: str
    target: str
    state: MentionState = MentionState.UNTRIAGED
    received_at: Optional[datetime] = None

    # Metadata found when verifying. Might be displayed.
    title: str = ""
    author: str = ""
    author_url: str = ""
    published_at: Optional[datetime] = None
    thumbnail_id: str = ""
    url: str = ""  # Permalink when the source only syndicates the content

    @classmethod
    def new(cls, source: str, target: str) -> "Mention":
        """Create a freshly received, untriaged mention."""
        return cls(
            source=source,
            target=target,
            state=MentionState.UNTRIAGED,
            received_at=datetime.now(timezone.utc),
        )

    @property
    def key(self) -> str:
        return mention_key(self.source, self.target)

    @property
    def display_title(self) -> str:
        """Title to show, falling back to the raw source URL."""
        return self.title or self.source

    @property
    def link(self) -> str:
        """Where a reader should be sent to view the mention."""
        return self.url or self.source

    def to_document(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible store document."""
        return {
            "source": self.source,
            "target": self.target,
            "state": self.state.value,
            "received_at": format_timestamp(self.received_at) if self.received_at else "",
            "title": self.title,
            "author": self.author,
            "author_url": self.author_url,
            "published_at": self.published_at.isoformat() if self.published_at else "",
            "thumbnail_id": self.thumbnail_id,
            "url": self.url,
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Mention":
        """Build a Mention from a stored document."""
        return cls(
            source=document["source"],
            target=document["target"],
            state=MentionState(document.get("state", MentionState.UNTRIAGED.value)),
            received_at=_parse_optional_datetime(document.get("received_at")),
            title=document.get("title", ""),
            author=document.get("author", ""),
            author_url=document.get("author_url", ""),
            published_at=_parse_optional_datetime(document.get("published_at")),
            thumbnail_id=document.get("thumbnail_id", ""),
            url=document.get("url", ""),
        )


@dataclass(frozen=True)
class MentionWithKey:
    """A mention paired with the opaque key used to update it during triage."""

    mention: Mention
    key: str
