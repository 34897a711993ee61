"""
Pytest configuration and shared fixtures for Work-OS tests.

Test Categories:
- unit: Fast tests with no external dependencies (< 100ms each)
- slow: Tests that build the FastAPI app through TestClient

Run categories:
- pytest -m unit              # Fast unit tests only
- pytest -m "not slow"        # Skip app-level tests
- pytest                      # All tests
"""
import pytest

from api.services.chat_context import ConversationTurn


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "slow: Tests that build the FastAPI app")


def make_history(*pairs, notebook_id=None) -> list[ConversationTurn]:
    """Build turns from (role, content) pairs, optionally tagging a notebook."""
    return [ConversationTurn(role=role, content=content, notebook_id=notebook_id) for role, content in pairs]


@pytest.fixture
def make_turns():
    """Factory fixture for building histories inside tests."""
    return make_history


@pytest.fixture
def acme_followup_history():
    """Three-turn conversation ending in a terse follow-up."""
    return make_history(
        ("user", "let's fix the Acme invoice"),
        ("assistant", "Sure, what's the due date?"),
        ("user", "do it"),
    )


@pytest.fixture
def tagged_work_personal_history():
    """Conversation with explicitly tagged work and personal turns."""
    return [
        ConversationTurn("user", "Family dentist appointment follow-up", "personal"),
        ConversationTurn("assistant", "I can help manage your personal errands.", "personal"),
        ConversationTurn("user", "EHR rollout milestones for Citrix client", "work"),
        ConversationTurn("assistant", "Let's break down the work implementation plan.", "work"),
    ]


@pytest.fixture
def long_work_history():
    """Twelve work turns followed by two personal turns."""
    work = [
        ("user", "EHR rollout milestones for Citrix client"),
        ("assistant", "Let's break down the work implementation plan."),
        ("user", "Draft migration doc"),
        ("assistant", "Captured"),
        ("user", "Confirm owners"),
        ("assistant", "Captured"),
        ("user", "Share timeline"),
        ("assistant", "Captured"),
        ("user", "Track blockers"),
        ("assistant", "Captured"),
        ("user", "Update dependencies"),
        ("user", "Need more detail on implementation sequencing"),
    ]
    personal = [
        ("user", "Family grocery list and doctor appointment"),
        ("assistant", "Personal tasks captured."),
    ]
    return make_history(*work, notebook_id="work") + make_history(*personal, notebook_id="personal")
