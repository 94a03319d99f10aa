"""Fast, network-free validation of freshly submitted mentions."""

from typing import Iterable
from urllib.parse import urlparse


class ValidationError(Exception):
    """Raised when a submission is malformed or targets a disallowed page."""

    pass


def validate(source: str, target: str, allowed_hosts: Iterable[str]) -> None:
    """
    Check a (source, target) pair before it is stored.

    Checks run in order and the first failure wins.

    Args:
        source: URL of the page claiming to link to the target.
        target: URL of our page being referenced.
        allowed_hosts: Hostnames that targets may point at.

    Raises:
        ValidationError: With a human-readable reason.
    """
    if not source:
        raise ValidationError("Source is empty.")
    if not target:
        raise ValidationError("Target is empty.")
    if source == target:
        raise ValidationError("Source and Target must be different.")

    try:
        parsed_source = urlparse(source)
        source_host = parsed_source.hostname
    except ValueError as e:
        raise ValidationError(f"Source is not a valid URL: {e}") from e
    if not parsed_source.scheme or not source_host:
        raise ValidationError("Source is not an absolute URL.")

    try:
        parsed = urlparse(target)
        hostname = parsed.hostname
    except ValueError as e:
        raise ValidationError(f"Target is not a valid URL: {e}") from e

    if not parsed.scheme or not hostname:
        raise ValidationError("Target is not an absolute URL.")
    if hostname not in {host.lower() for host in allowed_hosts}:
        raise ValidationError("Wrong target domain.")
    if parsed.scheme != "https":
        raise ValidationError("Wrong scheme for target.")
