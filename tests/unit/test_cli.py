"""
Unit tests for the recallforge CLI.

Runs every command against a small JSON export with a fixed clock.
"""

import json

import pytest
from typer.testing import CliRunner

from recallforge.cli.main import app

runner = CliRunner()

NOW = "2025-01-15T12:00:00"
NOW_MS = 1736942400000
DAY_MS = 86400000


@pytest.fixture
def export_file(tmp_path):
    """Two pages: one with an overdue physics cluster, one locked for a week."""
    pages = [
        {
            "id": "p1",
            "title": "Energy",
            "blocks": [
                {"id": "h1", "type": "heading"},
                {
                    "id": "q1",
                    "type": "mcq",
                    "srs": {
                        "entityId": "concept.physics.energy.kinetic",
                        "repetitionCount": 3,
                        "stability": 1.0,
                        "difficulty": 5.0,
                        "state": "review",
                        "lastReviewed": NOW_MS - 3 * DAY_MS,
                        "nextReviewDue": NOW_MS - DAY_MS,
                    },
                    "variations": [
                        {
                            "id": "q1-v1",
                            "type": "input",
                            "srs": {
                                "entityId": "concept.physics.energy.kinetic",
                                "repetitionCount": 1,
                                "stability": 8.0,
                                "level": 2,
                                "nextReviewDue": NOW_MS + 2 * DAY_MS,
                            },
                        }
                    ],
                },
                {
                    "id": "q2",
                    "type": "socratic",
                    "srs": {
                        "entityId": "concept.physics.energy.potential",
                        "repetitionCount": 2,
                        "stability": 12.0,
                        "difficulty": 4.0,
                        "nextReviewDue": NOW_MS - 2 * DAY_MS,
                    },
                },
            ],
        },
        {
            "id": "p2",
            "title": "Cells",
            "blocks": [
                {
                    "id": "b1",
                    "type": "mcq",
                    "srs": {
                        "entityId": "concept.bio.cell.membrane",
                        "repetitionCount": 4,
                        "stability": 30.0,
                        "nextReviewDue": NOW_MS + 7 * DAY_MS,
                    },
                }
            ],
            "cycle": {"status": "locked", "chapter": 2, "nextReview": NOW_MS + 7 * DAY_MS},
        },
    ]
    path = tmp_path / "export.json"
    path.write_text(json.dumps({"pages": pages}), encoding="utf-8")
    return path


def invoke(*args):
    return runner.invoke(app, ["--now", NOW, *args])


class TestPageCommand:
    def test_lists_pages(self, export_file):
        result = invoke("page", str(export_file))

        assert result.exit_code == 0
        assert "Energy" in result.output
        assert "Cells" in result.output
        assert "locked" in result.output
        assert "incubating" in result.output

    def test_missing_file(self, tmp_path):
        result = invoke("page", str(tmp_path / "nope.json"))

        assert result.exit_code == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        assert invoke("page", str(path)).exit_code == 1

    def test_invalid_payload(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"items": []}), encoding="utf-8")

        assert invoke("page", str(path)).exit_code == 1

    def test_advance_days_unlocks(self, export_file):
        result = invoke("--advance-days", "8", "page", str(export_file))

        assert result.exit_code == 0
        assert "retrieval_due" in result.output


class TestSessionCommand:
    def test_critical_group(self, export_file):
        result = invoke("session", str(export_file), "--item", "q1-v1", "--seed", "1")

        assert result.exit_code == 0
        assert "CRITICAL_REPAIR" in result.output
        assert "q1" in result.output

    def test_unknown_item(self, export_file):
        result = invoke("session", str(export_file), "--item", "zzz")

        assert result.exit_code == 1


class TestForecastCommand:
    def test_forecast(self, export_file):
        result = invoke("forecast", str(export_file))

        assert result.exit_code == 0
        assert "Review Forecast" in result.output
        assert "Unlocks on Friday." in result.output

    def test_progress_section(self, export_file):
        result = invoke("forecast", str(export_file))

        assert result.exit_code == 0
        assert "Realms" in result.output
        assert "Uncharted" in result.output
        assert "Review streak: 0 days" in result.output
        assert "Solid Foundations" in result.output


class TestMissionsCommand:
    def test_repair_mission(self, export_file):
        result = invoke("missions", str(export_file))

        assert result.exit_code == 0
        assert "REPAIR" in result.output


class TestReviewCommand:
    def test_commit_prints_record(self, export_file):
        result = invoke("review", str(export_file), "--item", "q2", "--correct")

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["entityId"] == "concept.physics.energy.potential"
        assert data["repetitionCount"] == 3
        assert data["lastReviewed"] == NOW_MS

    def test_incorrect_is_lapse(self, export_file):
        result = invoke("review", str(export_file), "--item", "q2", "--incorrect")

        data = json.loads(result.stdout)
        assert data["lapses"] == 1
        assert data["state"] == "relearning"

    def test_telemetry_options(self, export_file):
        result = invoke(
            "review", str(export_file), "--item", "q1", "--correct", "--hints", "2", "--time-ms", "4000"
        )

        data = json.loads(result.stdout)
        # Two hints rate Again: a lapse from Review
        assert data["lapses"] == 1
