"""Tests for the cooperation benchmark."""

from coopengine.services.benchmark import cooperation_scores, extract_decision
from coopengine.storage.base import ChatbotResponse, Run, RunStatus


def make_run(responses, status=RunStatus.COMPLETED):
    return Run(session_id="s", chatbot_ids=[], status=status, responses=responses)


class TestExtractDecision:
    def test_cooperate_checked_first(self):
        assert extract_decision("I will not defect, I cooperate") == "COOPERATE"

    def test_defect(self):
        assert extract_decision("Defect.") == "DEFECT"

    def test_neither(self):
        assert extract_decision("Pass") is None


class TestCooperationScores:
    def test_rates_sorted_descending(self):
        runs = [
            make_run([
                ChatbotResponse("openai-gpt4o", 0, "COOPERATE", 1),
                ChatbotResponse("openai-gpt4o", 1, "DEFECT", 1),
                ChatbotResponse("gemini-flash", 0, "COOPERATE", 1),
            ]),
        ]
        scores = cooperation_scores(runs)

        assert [s.chatbot_id for s in scores] == ["gemini-flash", "openai-gpt4o"]
        assert scores[1].cooperation_rate == 0.5
        assert scores[1].to_dict()["totalResponses"] == 2
        assert scores[0].display_name == "Gemini 2.5 Flash"

    def test_ignores_errors_and_incomplete_runs(self):
        runs = [
            make_run([ChatbotResponse("openai-gpt4o", 0, "", 1, error="timeout")]),
            make_run([ChatbotResponse("openai-gpt4o", 0, "COOPERATE", 1)], status=RunStatus.FAILED),
            make_run([ChatbotResponse("openai-gpt4o", 0, "no decision", 1)]),
        ]
        assert cooperation_scores(runs) == []

    def test_unknown_chatbot_name_fallback(self):
        scores = cooperation_scores([make_run([ChatbotResponse("legacy-bot", 0, "defect", 1)])])
        assert scores[0].display_name == "Legacy Bot"
        assert scores[0].cooperation_rate == 0.0
