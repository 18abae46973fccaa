"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from recallforge.core.models import CardState, ConceptRecord, Item  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (component pipelines)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed Wednesday noon (UTC) every test evaluates against."""
    return datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_record(now):
    """Build a ConceptRecord; due_at defaults to ``now`` (i.e. due)."""

    def _make(entity_id="concept.physics.energy.kinetic", due_in_days=0.0, **overrides):
        overrides.setdefault("due_at", now + timedelta(days=due_in_days))
        if overrides.get("repetition_count", 0) > 0:
            overrides.setdefault("state", CardState.REVIEW)
        return ConceptRecord(entity_id=entity_id, **overrides)

    return _make


@pytest.fixture
def make_item(make_record):
    """Build a learnable Item; pass ``record=None`` for plain content."""

    def _make(item_id, item_type="mcq", variants=(), record=..., **record_fields):
        if record is ...:
            record = make_record(**record_fields)
        return Item(id=item_id, item_type=item_type, record=record, variants=tuple(variants))

    return _make


@pytest.fixture
def settings_env(monkeypatch):
    """Clear cached settings so env overrides take effect, and again afterwards."""
    from config import get_settings

    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()
