from dataclasses import dataclass
from datetime import datetime

WEB_MENTION_SENT_KIND = "WebMentionSent"


@dataclass(frozen=True)
class WebMentionSent:
    source: str
    sent_at: datetime
