"""Tests for leaderboard and toolkit extraction."""

import logging
import sqlite3
from unittest.mock import AsyncMock, MagicMock

import pytest

from coopengine.services.extraction import (
    apply_outcomes,
    auto_extract_leaderboard,
    auto_extract_toolkit,
    candidate_name,
    detect_scenario,
    extract_leaderboard,
    is_toolkit_session,
    kit_to_toolkit_item,
    parse_candidate_mapping,
    parse_first_bracketed_saves,
    parse_kit,
    parse_outcomes,
    parse_saves,
    template_id_for,
)
from coopengine.storage.base import ChatbotResponse, PromptStep, Run, RunStatus, Session

CANDIDATES_PROMPT = """Choose who to save:
1. Laura McCarthy (State Forester)
2. Dev Patel (Engineer)
3. Sam Ortiz
1. Duplicate Entry
"""

KIT_REPLY = """SCENARIO 2: KIT WITH AI
ITEM_1: Water filter - WEIGHT: 0.5 kg - PURPOSE: Clean water
ITEM_2: Knife - WEIGHT: 200 g - PURPOSE: Cutting
AI_NAME: Sage
AI_WEIGHT: 1.2 kg
AI_FORM: Rugged tablet
AI_CAPABILITIES: Medical advice
AI_POWER: Solar
SURVIVAL_PROBABILITY: 85
KEY_STRENGTHS: Water independence
KEY_WEAKNESSES: Fragile screen
"""


def make_run(*contents, chatbot_id="openai-gpt4o"):
    return Run(
        session_id="s1",
        chatbot_ids=[chatbot_id],
        status=RunStatus.COMPLETED,
        responses=[ChatbotResponse(chatbot_id, i, c, 10) for i, c in enumerate(contents)],
    )


class TestCandidates:
    def test_mapping_strips_parentheses_and_keeps_first(self):
        mapping = parse_candidate_mapping([PromptStep(id="p", order=0, role="user", content=CANDIDATES_PROMPT)])
        assert mapping == {1: "Laura McCarthy", 2: "Dev Patel", 3: "Sam Ortiz"}

    def test_mapping_across_prompts(self):
        prompts = [
            PromptStep(id="a", order=0, role="user", content="1. Alice"),
            PromptStep(id="b", order=1, role="user", content="1. Bob\n2. Carol"),
        ]
        assert parse_candidate_mapping(prompts) == {1: "Alice", 2: "Carol"}

    def test_template_id(self):
        assert template_id_for("Wildfire Evacuation: Round 2") == "wildfire-evacuation-round-2"

    def test_candidate_name_fallback(self):
        assert candidate_name({1: "Alice"}, 1) == "Alice"
        assert candidate_name({1: "Alice"}, 7) == "Candidate 7"


class TestSaves:
    def test_all_occurrences_bracketed_or_not(self):
        content = "Round 1 SAVES: [1, 3]\nRound 2 saves: 2 4"
        assert parse_saves(content) == [1, 3, 2, 4]

    def test_first_bracketed_only(self):
        content = "SAVES: [1, 3]\nlater SAVES: [2]"
        assert parse_first_bracketed_saves(content) == [1, 3]

    def test_first_bracketed_ignores_unbracketed(self):
        assert parse_first_bracketed_saves("SAVES: 1, 2") == []

    def test_no_saves(self):
        assert parse_saves("I would save everyone") == []

    def test_trailing_punctuation_keeps_number(self):
        assert parse_saves("SAVES: 1, 3.") == [1, 3]

    def test_trailing_text_keeps_leading_number(self):
        assert parse_first_bracketed_saves("SAVES: [1, 2 (Laura)]") == [1, 2]
        assert parse_saves("SAVES: [1, 2 (Laura)]") == [1, 2]

    def test_non_ascii_digits_are_skipped(self):
        assert parse_first_bracketed_saves("SAVES: [1, ²]") == [1]
        assert parse_saves("SAVES: 4 ² 5") == [4, 5]


class TestOutcomes:
    def test_parse_all_metrics(self):
        outcomes = parse_outcomes([
            "Water_Security: 80\nFOOD_SECURITY: 65\nSELF_SUSTAINING: yes\n"
            "POPULATION_10YR: 120\nPOPULATION @ 50 YEARS: 300"
        ])
        assert outcomes.to_dict() == {
            "waterSecurity": 80,
            "foodSecurity": 65,
            "selfSustaining": 100,
            "population10yr": 120,
            "population50yr": 300,
        }

    def test_self_sustaining_no(self):
        assert parse_outcomes(["SELF_SUSTAINING: NO"]).self_sustaining == 0

    def test_later_replies_override(self):
        outcomes = parse_outcomes(["WATER_SECURITY: 10\nFOOD_SECURITY: 5", "WATER_SECURITY: 90"])
        assert outcomes.water_security == 90
        assert outcomes.food_security == 5

    def test_nothing_found(self):
        assert parse_outcomes(["no metrics here"]).is_empty()


class TestLeaderboardExtraction:
    @pytest.mark.asyncio
    async def test_manual_extraction_counts(self, store):
        run = make_run("SAVES: [1, 2]", "SAVES: [1] and then SAVES: [3]")
        extracted = await extract_leaderboard(store, run, "wildfire", {1: "Alice", 2: "Bob"})

        assert extracted == [{"candidate": "Alice", "count": 2}, {"candidate": "Bob", "count": 1}]
        entries = await store.list_leaderboard("wildfire")
        assert [(e.candidate_name, e.selection_count) for e in entries] == [("Alice", 2), ("Bob", 1)]

    @pytest.mark.asyncio
    async def test_auto_extraction_uses_every_occurrence(self, store):
        session = Session(
            title="Wildfire Evacuation",
            prompts=[PromptStep(id="p", order=0, role="user", content=CANDIDATES_PROMPT)],
        )
        run = make_run("SAVES: [1, 2]\nAfter reflection SAVES: 2, 9")

        assert await auto_extract_leaderboard(store, run, session) == 4

        entries = {e.candidate_number: e for e in await store.list_leaderboard("wildfire-evacuation")}
        assert entries[2].selection_count == 2
        assert entries[1].candidate_name == "Laura McCarthy"
        assert entries[9].candidate_name == "Candidate 9"

    @pytest.mark.asyncio
    async def test_auto_extraction_needs_candidates(self, store):
        session = Session(title="Plain", prompts=[PromptStep(id="p", order=0, role="user", content="Hi")])
        assert await auto_extract_leaderboard(store, make_run("SAVES: [1]"), session) == 0
        assert await store.list_leaderboard() == []

    @pytest.mark.asyncio
    async def test_apply_outcomes_averages_template_entries(self, store):
        await store.upsert_leaderboard_entry("t", 1, "Alice")
        await store.upsert_leaderboard_entry("other", 1, "Zed")

        outcomes = await apply_outcomes(store, make_run("WATER_SECURITY: 40"), "t")

        assert outcomes.water_security == 40
        assert (await store.list_leaderboard("t"))[0].avg_water_security == 40
        assert (await store.list_leaderboard("other"))[0].avg_water_security is None


class TestToolkit:
    def test_session_detection(self):
        assert is_toolkit_session("Design Your Apocalypse Kit")
        assert is_toolkit_session("The APOCALYPSE AI test")
        assert not is_toolkit_session("Wildfire Evacuation")

    def test_scenarios(self):
        assert detect_scenario("SCENARIO 1: NO_AI") == "No-AI Kit"
        assert detect_scenario("KIT_2 contents") == "AI-Inclusive Kit"
        assert detect_scenario("MINIMAL setup") == "Minimal-AI Kit"
        assert detect_scenario("just items") == "Unknown Kit"

    def test_parse_kit(self):
        kit = parse_kit(KIT_REPLY)
        assert kit.scenario == "AI-Inclusive Kit"
        assert kit.items == ["Water filter (0.5kg) - Clean water", "Knife (200g) - Cutting"]
        assert kit.ai_form.name == "Sage"
        assert kit.ai_form.weight == "1.2kg"
        assert kit.survival_probability == "85%"

    def test_minimal_ai_fallback(self):
        kit = parse_kit("SCENARIO 3\nMINIMAL_AI_NAME: Pip\nMINIMAL_AI_FORM: Watch")
        assert kit.ai_form.name == "Pip"
        assert kit.ai_form.form == "Watch"
        assert kit.ai_form.power == "Unknown"
        assert kit.items == []

    def test_nothing_to_parse(self):
        assert parse_kit("I refuse to pack a bag.") is None

    def test_to_toolkit_item(self):
        item = kit_to_toolkit_item(parse_kit(KIT_REPLY), "GPT-4o")
        assert item.name == "AI-Inclusive Kit (GPT-4o)"
        assert item.weight == "70kg total"
        assert item.energy == "Solar"
        assert item.form_factor == "AI: Sage (1.2kg) - Rugged tablet"
        assert item.capabilities == ["Water filter (0.5kg)", "Knife (200g)"]
        assert item.knowledge == ["Medical advice"]
        assert item.limitations == "Fragile screen"
        assert item.reasoning == "Survival: 85% | Strengths: Water independence | Weaknesses: Fragile screen"

    def test_kit_without_ai(self):
        item = kit_to_toolkit_item(parse_kit("ITEM_1: Rope - WEIGHT: 2 kg - PURPOSE: Climbing"), "Grok 3")
        assert item.form_factor == "No AI included"
        assert item.energy == "N/A"
        assert item.knowledge == []

    @pytest.mark.asyncio
    async def test_auto_extract_toolkit(self, store):
        session = Session(title="Design Your Apocalypse", prompts=[])
        run = make_run(KIT_REPLY, "no kit in this one")

        assert await auto_extract_toolkit(store, run, session) == 1
        items = await store.list_toolkit_items()
        assert items[0].ai_model == "GPT-4o"

    @pytest.mark.asyncio
    async def test_auto_extract_continues_after_failed_insert(self, caplog):
        session = Session(title="Design Your Apocalypse", prompts=[])
        run = Run(
            session_id="s1",
            chatbot_ids=["openai-gpt4o", "anthropic-sonnet"],
            status=RunStatus.COMPLETED,
            responses=[
                ChatbotResponse("openai-gpt4o", 0, KIT_REPLY, 10),
                ChatbotResponse("openai-gpt4o", 1, KIT_REPLY, 10),
                ChatbotResponse("anthropic-sonnet", 0, KIT_REPLY, 10),
            ],
        )
        storage = MagicMock()
        storage.create_toolkit_item = AsyncMock(side_effect=[sqlite3.OperationalError("database is locked"), None, None])

        with caplog.at_level(logging.ERROR, logger="coopengine.services.extraction"):
            created = await auto_extract_toolkit(storage, run, session)

        assert created == 2
        assert storage.create_toolkit_item.await_count == 3
        assert "database is locked" in caplog.text

    def test_weight_keeps_full_precision(self):
        kit = parse_kit("ITEM_1: Scale - WEIGHT: 12.3456789 kg - PURPOSE: Weighing\nAI_NAME: Echo\nAI_WEIGHT: 2.0 kg")
        assert kit.items == ["Scale (12.3456789kg) - Weighing"]
        assert kit.ai_form.weight == "2kg"

    def test_weight_with_trailing_dots(self):
        kit = parse_kit("ITEM_1: Tarp - WEIGHT: 1.5. kg - PURPOSE: Shelter")
        assert kit.items == ["Tarp (1.5kg) - Shelter"]

    @pytest.mark.asyncio
    async def test_auto_extract_skips_other_sessions(self, store):
        session = Session(title="Trust Game", prompts=[])
        assert await auto_extract_toolkit(store, make_run(KIT_REPLY), session) == 0
