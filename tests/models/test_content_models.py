import pytest

from feedboard.models.content import ALL_CONTENT_TYPES, ContentItem, ContentType, ProviderResponse
from feedboard.models.state import DEFAULT_CATEGORIES, FeedState, UserPreferences


class TestContentType:
    """Parsing of content type selectors"""

    def test_parse_accepts_enum_and_strings(self):
        assert ContentType.parse(ContentType.MOVIE) is ContentType.MOVIE
        assert ContentType.parse("news") is ContentType.NEWS
        assert ContentType.parse(" Social ") is ContentType.SOCIAL

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown content type"):
            ContentType.parse("podcast")

    def test_all_content_types(self):
        assert ALL_CONTENT_TYPES == {ContentType.NEWS, ContentType.MOVIE, ContentType.SOCIAL}


class TestContentItem:
    """ContentItem behavior"""

    def test_matches_title_or_description_case_insensitive(self, make_item):
        item = make_item("a", title="Launch day", description="A Rocket lifts off")
        assert item.matches("rocket")
        assert item.matches("LAUNCH")
        assert not item.matches("submarine")

    def test_matches_ignores_category(self, make_item):
        item = make_item("a", title="Plain", description="Nothing", category="rockets")
        assert not item.matches("rocket")

    def test_to_dict_uses_public_field_names(self, make_item):
        item = make_item("a", published_at="2024-01-01T00:00:00Z")
        data = item.to_dict()
        assert data["publishedAt"] == "2024-01-01T00:00:00Z"
        assert data["type"] == "news"
        assert set(data) == {
            "id", "type", "title", "description", "imageUrl", "url", "category", "publishedAt", "source",
        }

    def test_from_dict_restores_item(self, make_item):
        item = make_item("a")
        assert ContentItem.from_dict(item.to_dict()) == item

    def test_hash_is_id_based(self, make_item):
        assert hash(make_item("same", title="x")) == hash(make_item("same", title="y"))


class TestProviderResponse:
    """Fail-soft response shape"""

    def test_empty(self):
        response = ProviderResponse.empty()
        assert response.articles == []
        assert response.has_more is False
        assert response.total_results == 0
        assert not response.failed

    def test_empty_with_error_is_failed(self):
        response = ProviderResponse.empty(error="boom")
        assert response.failed
        assert response.articles == []

    def test_to_dict_hides_error(self):
        data = ProviderResponse.empty(error="boom").to_dict()
        assert data == {"articles": [], "hasMore": False, "totalResults": 0}


class TestStateDefaults:
    """Initial state slices"""

    def test_feed_state_defaults(self):
        state = FeedState()
        assert state.feed == []
        assert state.loading is False
        assert state.error is None
        assert state.has_more is True
        assert state.page == 1

    def test_preferences_defaults_are_independent_copies(self):
        first = UserPreferences()
        first.categories.append("science")
        assert UserPreferences().categories == DEFAULT_CATEGORIES

    def test_preferences_to_dict(self):
        data = UserPreferences(favorite_content=["a"]).to_dict()
        assert data["favoriteContent"] == ["a"]
        assert data["notificationSettings"] == {"news": True, "recommendations": True, "social": True}
