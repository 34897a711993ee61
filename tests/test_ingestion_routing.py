"""
Tests for api/services/ingestion_routing.py
"""
import pytest

from api.services.ingestion_routing import (
    DEFAULT_NOTEBOOK_ID,
    classify_google_drive_notebook,
    classify_notebook_from_text,
    classify_notebook_id_from_text,
    classify_telegram_notebook,
    normalize_notebook_id,
    normalize_source,
    resolve_ingestion_route,
)

pytestmark = pytest.mark.unit


class TestNormalizeNotebookId:
    """Test notebook id slugs."""

    @pytest.mark.parametrize("value,expected", [
        ("Work", "work"),
        ("  Ops   Notes ", "ops-notes"),
        ("client_acme", "client_acme"),
        ("Q3 / Planning", "q3-planning"),
        (None, DEFAULT_NOTEBOOK_ID),
        ("", DEFAULT_NOTEBOOK_ID),
        ("   ", DEFAULT_NOTEBOOK_ID),
        ("!!!", "-"),
    ])
    def test_normalizes(self, value, expected):
        assert normalize_notebook_id(value) == expected

    def test_idempotent(self):
        once = normalize_notebook_id("Client: ACME (2025)")
        assert normalize_notebook_id(once) == once


class TestNormalizeSource:
    """Test source name mapping."""

    @pytest.mark.parametrize("value,expected", [
        ("telegram", "telegram"),
        (" Telegram ", "telegram"),
        ("google_drive", "google_drive"),
        ("GDrive", "google_drive"),
        ("google-drive", "google_drive"),
        ("assistant", "assistant"),
        ("sms", "chat"),
        (None, "chat"),
    ])
    def test_maps_sources(self, value, expected):
        assert normalize_source(value) == expected


class TestClassifyNotebookFromText:
    """Test keyword classification."""

    def test_empty_text(self):
        result = classify_notebook_from_text("   ")
        assert result.notebook_id == DEFAULT_NOTEBOOK_ID
        assert result.confidence == pytest.approx(0.8)
        assert result.reason == "empty_default_general"

    def test_no_hints(self):
        result = classify_notebook_from_text("Nice weather today")
        assert result.notebook_id == DEFAULT_NOTEBOOK_ID
        assert result.reason == "no_hints_default_general"

    def test_single_personal_hint(self):
        result = classify_notebook_from_text("doctor appointment")
        assert result.notebook_id == "personal"
        assert result.confidence == pytest.approx(0.88)
        assert result.reason == "personal_hints"

    def test_mixed_hints_favor_majority(self):
        result = classify_notebook_from_text("client project at home")
        assert result.notebook_id == "work"
        assert result.confidence == pytest.approx(0.79 + 0.25 / 3)
        assert result.reason == "work_hints"

    def test_tie_defaults_to_general(self):
        result = classify_notebook_from_text("client dentist")
        assert result.notebook_id == DEFAULT_NOTEBOOK_ID
        assert result.confidence == pytest.approx(0.45)
        assert result.reason == "hint_tie_default_general"

    def test_confidence_is_capped(self):
        result = classify_notebook_from_text("Citrix client rollout milestones")
        assert result.notebook_id == "work"
        assert result.confidence == pytest.approx(0.99)

    def test_substring_matching(self):
        # "projects" counts both "project" and "projects"
        assert classify_notebook_from_text("projects").confidence == pytest.approx(0.96)

    def test_id_only_helper(self):
        assert classify_notebook_id_from_text("family vacation") == "personal"


class TestSourceClassifiers:
    """Test Telegram and Google Drive classification with metadata."""

    def test_telegram_uses_chat_title(self):
        result = classify_telegram_notebook("see you soon", {"chatTitle": "Family chat"})
        assert result.notebook_id == "personal"
        assert result.reason == "telegram_personal_hints"

    def test_telegram_pinned_notebook_key(self):
        result = classify_telegram_notebook("see you soon", {"notebookKey": "Ops Notes"})
        assert result.notebook_id == "ops-notes"
        assert result.confidence == pytest.approx(0.99)
        assert result.reason == "metadata_notebook"

    def test_notebook_id_wins_over_notebook_key(self):
        result = classify_telegram_notebook("", {"notebookId": "work", "notebookKey": "personal"})
        assert result.notebook_id == "work"

    def test_blank_pinned_notebook_is_ignored(self):
        result = classify_telegram_notebook("grocery run", {"notebookId": "  "})
        assert result.notebook_id == "personal"
        assert result.reason == "telegram_personal_hints"

    def test_google_drive_uses_file_name(self):
        result = classify_google_drive_notebook("draft", {"fileName": "Citrix SOW.docx"})
        assert result.notebook_id == "work"
        assert result.reason == "google_drive_work_hints"

    def test_google_drive_ignores_telegram_fields(self):
        result = classify_google_drive_notebook("draft", {"chatTitle": "Family"})
        assert result.notebook_id == DEFAULT_NOTEBOOK_ID
        assert result.reason == "google_drive_no_hints_default_general"


class TestResolveIngestionRoute:
    """Test full ingestion routing."""

    def test_explicit_notebook_wins(self):
        route = resolve_ingestion_route("buy groceries", notebook_id="Work")

        assert route.notebook_id == "work"
        assert route.source == "chat"
        assert route.routing.explicit is True
        assert route.routing.confidence == 1.0
        assert route.routing.reason == "explicit_notebook"

    def test_classified_route(self):
        route = resolve_ingestion_route("Client milestones review", source="chat")

        assert route.notebook_id == "work"
        assert route.routing.explicit is False
        assert route.routing.classifier == "chat"
        assert route.routing.reason == "work_hints"

    def test_telegram_route_annotates_metadata(self):
        metadata = {"chatTitle": "Family chat"}
        route = resolve_ingestion_route("see you soon", source="telegram", source_metadata=metadata)

        assert route.notebook_id == "personal"
        assert route.source_metadata["chatTitle"] == "Family chat"
        assert route.source_metadata["source"] == "telegram"
        assert route.source_metadata["routing"] == route.routing.to_dict()
        # Input metadata is left untouched
        assert metadata == {"chatTitle": "Family chat"}

    def test_google_drive_alias(self):
        route = resolve_ingestion_route("draft", source="gdrive", source_metadata={"folder": "Client projects"})
        assert route.source == "google_drive"
        assert route.notebook_id == "work"

    def test_non_dict_metadata_is_ignored(self):
        route = resolve_ingestion_route("hello", source_metadata="not a dict")
        assert route.notebook_id == DEFAULT_NOTEBOOK_ID
        assert set(route.source_metadata.keys()) == {"source", "routing"}


class TestMetadataText:
    """List-valued metadata fields are joined item by item."""

    def test_joins_list_values(self):
        from api.services.ingestion_routing import _metadata_text

        assert _metadata_text(["work", "ehr"]) == "work ehr"
        assert _metadata_text(("a", 1)) == "a 1"
        assert _metadata_text("Family chat") == "Family chat"

    def test_list_tags_drive_classification(self):
        result = classify_telegram_notebook("see you soon", {"tags": ["family", "kids"]})
        assert result.notebook_id == "personal"
        assert result.confidence == pytest.approx(0.96)
