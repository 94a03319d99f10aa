"""Tests for mention and thumbnail documents."""

from datetime import datetime, timedelta, timezone

from webmentions.models import Mention, MentionState, Thumbnail, format_timestamp, mention_key


class TestMention:
    """Test the mention model."""

    def test_key_is_deterministic_per_pair(self):
        assert mention_key("https://a.example/", "https://b.example/") == mention_key(
            "https://a.example/", "https://b.example/"
        )
        assert mention_key("https://a.example/", "https://b.example/") != mention_key(
            "https://b.example/", "https://a.example/"
        )
        assert len(mention_key("s", "t")) == 32

    def test_new_mention_is_untriaged_and_timestamped(self):
        mention = Mention.new("https://a.example/", "https://bitworking.org/x")

        assert mention.state == MentionState.UNTRIAGED
        assert mention.received_at.tzinfo is not None
        assert mention.key == mention_key("https://a.example/", "https://bitworking.org/x")

    def test_document_keeps_published_offset(self):
        published = datetime(2018, 1, 13, tzinfo=timezone(timedelta(hours=-5)))
        mention = Mention(
            source="https://a.example/",
            target="https://bitworking.org/x",
            state=MentionState.GOOD,
            received_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
            title="Hi",
            published_at=published,
        )

        document = mention.to_document()
        restored = Mention.from_document(document)

        assert document["state"] == "good"
        assert document["published_at"] == "2018-01-13T00:00:00-05:00"
        assert restored.published_at.utcoffset() == timedelta(hours=-5)
        assert restored == mention

    def test_timestamps_sort_lexically(self):
        earlier = datetime(2024, 3, 1, 9, 0, tzinfo=timezone(timedelta(hours=-5)))
        later = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

        assert earlier > later
        assert format_timestamp(earlier) > format_timestamp(later)
        assert format_timestamp(datetime(2024, 3, 1)) == "2024-03-01T00:00:00.000000+00:00"

    def test_display_fallbacks(self):
        mention = Mention(source="https://a.example/", target="https://bitworking.org/x")

        assert mention.display_title == "https://a.example/"
        assert mention.link == "https://a.example/"

        mention.title = "Title"
        mention.url = "https://a.example/permalink"
        assert mention.display_title == "Title"
        assert mention.link == "https://a.example/permalink"


class TestThumbnail:
    """Test the thumbnail document."""

    def test_document_round_trip(self):
        thumbnail = Thumbnail.from_png(b"\x89PNG fake")

        assert Thumbnail.from_document(thumbnail.id, thumbnail.to_document()) == thumbnail
        assert isinstance(thumbnail.to_document()["png"], str)
