"""Tests for CSV and JSON exports."""

import csv
import io
import json
from datetime import datetime, timezone

from coopengine.services import export
from coopengine.storage.base import (
    ArenaMatch,
    ArenaRound,
    ChatbotResponse,
    PromptStep,
    Run,
    RunStatus,
    Session,
)


def make_session():
    return Session(
        title="Trust Game",
        prompts=[
            PromptStep(id="s", order=0, role="system", content="Rules"),
            PromptStep(id="a", order=1, role="user", content="First, question"),
            PromptStep(id="b", order=2, role="user", content='Say "hi"'),
        ],
    )


class TestRoundLabels:
    def test_system_steps_excluded(self):
        assert export.round_labels(make_session()) == [
            {"round": 0, "prompt": "First, question"},
            {"round": 1, "prompt": 'Say "hi"'},
        ]


class TestResultsCsv:
    def test_rows_are_quoted(self):
        run = Run(
            session_id="x",
            chatbot_ids=["openai-gpt4o"],
            status=RunStatus.COMPLETED,
            responses=[
                ChatbotResponse("openai-gpt4o", 0, "Yes, I \"agree\"\nfully", 120),
                ChatbotResponse("openai-gpt4o", 5, "", 3, error="timeout"),
            ],
        )
        rows = list(csv.reader(io.StringIO(export.results_to_csv(make_session(), [run]))))

        assert rows[0] == export.RESULTS_HEADER
        assert rows[1] == ["Run 1", "First, question", "GPT-4o", 'Yes, I "agree"\nfully', "120", ""]
        assert rows[2] == ["Run 1", "Round 6", "GPT-4o", "", "3", "timeout"]


class TestResultsJson:
    def test_document_shape(self):
        session = make_session()
        data = json.loads(export.results_to_json(session, []))
        assert data["session"]["id"] == session.id
        assert data["runs"] == []
        assert len(data["roundLabels"]) == 2
        assert data["exportedAt"].endswith("Z")


class TestFilename:
    def test_title_made_safe(self):
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        assert export.export_filename("Trust Game / v2", "csv") == f"Trust_Game_v2-{today}.csv"

    def test_empty_title(self):
        assert export.export_filename("", "json").startswith("results-")


class TestMatches:
    def make_match(self):
        match = ArenaMatch("openai-gpt4o", "gemini-flash", "prisoners-dilemma", 2, 5)
        match.rounds = [
            ArenaRound(1, "COOPERATE", "DEFECT", 0, 5),
            ArenaRound(2, "DEFECT", "DEFECT", 1, 1),
        ]
        return match

    def test_csv_rounds_column(self):
        rows = list(csv.reader(io.StringIO(export.matches_to_csv([self.make_match()]))))
        assert rows[0] == export.ARENA_HEADER
        assert rows[1][1:3] == ["GPT-4o", "Gemini 2.5 Flash"]
        assert rows[1][-1] == "R1:COOPERATE/DEFECT;R2:DEFECT/DEFECT"

    def test_json_adds_names(self):
        data = json.loads(export.matches_to_json([self.make_match()]))
        assert data[0]["player1Name"] == "GPT-4o"
        assert len(data[0]["rounds"]) == 2
