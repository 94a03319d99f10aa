"""Data models module."""

from webmentions.models.mention import (
    MENTIONS_KIND,
    Mention,
    MentionState,
    MentionWithKey,
    format_timestamp,
    mention_key,
)
from webmentions.models.microformats import (
    MicroformatDocument,
    MicroformatItem,
    document_from_mf2,
)
from webmentions.models.thumbnail import THUMBNAIL_KIND, Thumbnail, compute_content_hash
from webmentions.models.webmention_sent import WEB_MENTION_SENT_KIND, WebMentionSent

__all__ = [
    "MENTIONS_KIND",
    "Mention",
    "MentionState",
    "MentionWithKey",
    "format_timestamp",
    "mention_key",
    "MicroformatDocument",
    "MicroformatItem",
    "document_from_mf2",
    "THUMBNAIL_KIND",
    "Thumbnail",
    "compute_content_hash",
    "WEB_MENTION_SENT_KIND",
    "WebMentionSent",
]
