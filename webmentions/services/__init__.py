"""Mention pipeline services."""

from webmentions.services.extraction import (
    Enrichment,
    MentionEnricher,
    apply_enrichment,
    extract,
    parse_microformats,
)
from webmentions.services.mention_service import BatchResult, MentionService
from webmentions.services.sent_service import SentNotificationService
from webmentions.services.thumbnail_service import (
    ImageFetcher,
    ThumbnailError,
    ThumbnailService,
    make_image_fetcher,
    resize_to_thumbnail,
)
from webmentions.services.validation import ValidationError, validate
from webmentions.services.verification import (
    ParseFailureError,
    SlowVerifier,
    SourceTooLargeError,
    SourceUnreachableError,
    TargetNotLinkedError,
    VerificationError,
    discover_links,
)

__all__ = [
    "Enrichment",
    "MentionEnricher",
    "apply_enrichment",
    "extract",
    "parse_microformats",
    "BatchResult",
    "MentionService",
    "SentNotificationService",
    "ImageFetcher",
    "ThumbnailError",
    "ThumbnailService",
    "make_image_fetcher",
    "resize_to_thumbnail",
    "ValidationError",
    "validate",
    "ParseFailureError",
    "SlowVerifier",
    "SourceTooLargeError",
    "SourceUnreachableError",
    "TargetNotLinkedError",
    "VerificationError",
    "discover_links",
]
