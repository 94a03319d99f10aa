"""Content-addressed author thumbnails."""

import base64
import hashlib
from dataclasses import dataclass
from typing import Any, Dict

THUMBNAIL_KIND = "Thumbnail"


def compute_content_hash(content: bytes) -> str:
    """MD5 hex digest used as the thumbnail id."""
    return hashlib.md5(content).hexdigest()


@dataclass(frozen=True)
class Thumbnail:
    """Encoded PNG bytes keyed by their own hash."""

    id: str
    png: bytes

    @classmethod
    def from_png(cls, png: bytes) -> "Thumbnail":
        return cls(id=compute_content_hash(png), png=png)

    def to_document(self) -> Dict[str, Any]:
        return {"png": base64.b64encode(self.png).decode("ascii")}

    @classmethod
    def from_document(cls, thumbnail_id: str, document: Dict[str, Any]) -> "Thumbnail":
        return cls(id=thumbnail_id, png=base64.b64decode(document["png"]))
