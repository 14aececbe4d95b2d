"""
Leaderboard and toolkit extraction from run responses.

Scenario sessions ask each chatbot to pick candidates ("SAVES: [1, 3]") and
to report outcome metrics, or to design survival kits ("ITEM_1: ... -
WEIGHT: 2 kg - PURPOSE: ..."). The parsers here turn those replies into
leaderboard tallies and toolkit catalog entries.
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from coopengine.config import ProviderConfig
from coopengine.core.constants import TOOLKIT_KIT_WEIGHT, TOOLKIT_TEMPLATE_MARKERS
from coopengine.providers.registry import display_name_for
from coopengine.storage.base import Outcomes, PromptStep, Run, Session, StorageBackend, ToolkitItem

logger = logging.getLogger(__name__)

_CANDIDATE_LINE = re.compile(r"^(\d+)\.\s+([^\n]+)", re.MULTILINE)
_SAVES_ANY = re.compile(r"SAVES:\s*\[?([^\]\n]+)\]?", re.IGNORECASE)
_SAVES_BRACKETED = re.compile(r"SAVES:\s*\[([^\]]+)\]", re.IGNORECASE)
_LEADING_INT = re.compile(r"\s*([+-]?\d+)", re.ASCII)
_LEADING_FLOAT = re.compile(r"\d+(?:\.\d*)?|\.\d+", re.ASCII)

_WATER = re.compile(r"WATER_SECURITY:\s*(\d+)")
_FOOD = re.compile(r"FOOD_SECURITY:\s*(\d+)")
_SUSTAINING = re.compile(r"SELF_SUSTAINING:\s*(YES|NO|TRUE|FALSE|1|0)")
_POP10 = (
    re.compile(r"POPULATION_10YR:\s*(\d+)"),
    re.compile(r"POPULATION\s*@?\s*10\s*(?:YEAR|YR)?S?:\s*(\d+)"),
)
_POP50 = (
    re.compile(r"POPULATION_50YR:\s*(\d+)"),
    re.compile(r"POPULATION\s*@?\s*50\s*(?:YEAR|YR)?S?:\s*(\d+)"),
)

_ITEM = re.compile(
    r"ITEM_\d+:\s*([^-\n]+)\s*-\s*WEIGHT:\s*([\d.]+)\s*(kg|g)?\s*-\s*PURPOSE:\s*([^\n]+)",
    re.IGNORECASE,
)


# ----------------------------------------------------------------------
# Leaderboard
# ----------------------------------------------------------------------


def parse_candidate_mapping(prompts: Iterable[PromptStep]) -> Dict[int, str]:
    """
    Collect numbered candidates ("1. Laura McCarthy (State Forester)").

    Names are cut before any parenthesis; the first occurrence of a number
    across all prompts wins.
    """
    mapping: Dict[int, str] = {}
    for prompt in prompts:
        for match in _CANDIDATE_LINE.finditer(prompt.content):
            number = int(match.group(1))
            name = match.group(2).strip().split("(", 1)[0].strip() or match.group(2).strip()
            if number not in mapping:
                mapping[number] = name
    return mapping


def template_id_for(title: str) -> str:
    """Slug of a session title: lowercased, non-alphanumeric runs become '-'."""
    return re.sub(r"[^a-z0-9]+", "-", title.lower())


def _parse_numbers(text: str, pattern: str) -> List[int]:
    # Each part contributes its leading integer; trailing text is ignored.
    numbers = []
    for part in re.split(pattern, text):
        match = _LEADING_INT.match(part)
        if match:
            numbers.append(int(match.group(1)))
    return numbers


def parse_saves(content: str) -> List[int]:
    """Every candidate number from every SAVES line, bracketed or not."""
    numbers: List[int] = []
    for match in _SAVES_ANY.finditer(content):
        numbers.extend(_parse_numbers(match.group(1), r"[,\s]+"))
    return numbers


def parse_first_bracketed_saves(content: str) -> List[int]:
    """Candidate numbers from the first bracketed SAVES list only."""
    match = _SAVES_BRACKETED.search(content)
    if not match:
        return []
    return _parse_numbers(match.group(1), r",")


def candidate_name(mapping: Dict[int, str], number: int) -> str:
    return mapping.get(number) or f"Candidate {number}"


def parse_outcomes(contents: Iterable[str]) -> Outcomes:
    """
    Parse outcome metrics from a sequence of replies.

    Later replies override values found in earlier ones.
    """
    outcomes = Outcomes()
    for content in contents:
        text = content.upper()

        match = _WATER.search(text)
        if match:
            outcomes.water_security = int(match.group(1))
        match = _FOOD.search(text)
        if match:
            outcomes.food_security = int(match.group(1))
        match = _SUSTAINING.search(text)
        if match:
            outcomes.self_sustaining = 100 if match.group(1) in ("YES", "TRUE", "1") else 0
        match = _first_match(_POP10, text)
        if match:
            outcomes.population_10yr = int(match.group(1))
        match = _first_match(_POP50, text)
        if match:
            outcomes.population_50yr = int(match.group(1))
    return outcomes


def _first_match(patterns, text: str):
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match
    return None


async def extract_leaderboard(
    storage: StorageBackend, run: Run, template_id: str, mapping: Dict[int, str]
) -> List[Dict[str, object]]:
    """
    Tally the first bracketed SAVES list of each response.

    Returns:
        [{"candidate": name, "count": n}] in first-seen order
    """
    counts: "OrderedDict[str, int]" = OrderedDict()
    for response in run.responses:
        for number in parse_first_bracketed_saves(response.content):
            name = candidate_name(mapping, number)
            await storage.upsert_leaderboard_entry(template_id, number, name)
            counts[name] = counts.get(name, 0) + 1
    return [{"candidate": name, "count": count} for name, count in counts.items()]


async def apply_outcomes(storage: StorageBackend, run: Run, template_id: str) -> Outcomes:
    """Parse outcomes from a run and fold them into every entry of the template."""
    outcomes = parse_outcomes(r.content for r in run.responses)
    if not outcomes.is_empty():
        for entry in await storage.list_leaderboard(template_id):
            await storage.update_leaderboard_outcomes(entry.id, outcomes)
    return outcomes


async def auto_extract_leaderboard(storage: StorageBackend, run: Run, session: Session) -> int:
    """Post-run hook: tally every SAVES occurrence of every response."""
    mapping = parse_candidate_mapping(session.prompts)
    if not mapping:
        logger.debug("No candidates in session %s, skipping leaderboard extraction", session.id)
        return 0

    template_id = template_id_for(session.title)
    extracted = 0
    for response in run.responses:
        for number in parse_saves(response.content):
            await storage.upsert_leaderboard_entry(template_id, number, candidate_name(mapping, number))
            extracted += 1

    logger.info("Extracted %d leaderboard selections from run %s", extracted, run.id)
    return extracted


# ----------------------------------------------------------------------
# Toolkit
# ----------------------------------------------------------------------


@dataclass
class AIForm:
    name: str
    weight: str = "Unknown"
    form: str = "Unknown"
    capabilities: str = "Unknown"
    power: str = "Unknown"


@dataclass
class Kit:
    """A survival kit parsed from one response."""

    scenario: str
    items: List[str] = field(default_factory=list)
    ai_form: Optional[AIForm] = None
    survival_probability: Optional[str] = None
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None


def is_toolkit_session(title: str) -> bool:
    lowered = title.lower()
    return any(marker in lowered for marker in TOOLKIT_TEMPLATE_MARKERS)


def detect_scenario(content: str) -> str:
    if any(k in content for k in ("SCENARIO 1", "KIT WITHOUT", "NO_AI", "KIT_1")):
        return "No-AI Kit"
    if any(k in content for k in ("SCENARIO 2", "KIT WITH", "WITH_AI", "KIT_2")):
        return "AI-Inclusive Kit"
    if any(k in content for k in ("SCENARIO 3", "MINIMAL", "KIT_3")):
        return "Minimal-AI Kit"
    return "Unknown Kit"


def _format_weight(value: str, unit: Optional[str]) -> str:
    match = _LEADING_FLOAT.match(value)
    if match:
        # Shortest round-trip form; whole numbers drop the trailing ".0".
        text = repr(float(match.group(0)))
        if text.endswith(".0"):
            text = text[:-2]
    else:
        text = value
    return f"{text}g" if (unit or "kg").lower() == "g" else f"{text}kg"


def _search(content: str, *labels: str) -> Optional[re.Match]:
    for label in labels:
        match = re.search(label, content, re.IGNORECASE)
        if match:
            return match
    return None


def parse_kit(content: str) -> Optional[Kit]:
    """Parse one response into a kit, or None if it lists no items and no AI."""
    items = [
        f"{m.group(1).strip()} ({_format_weight(m.group(2), m.group(3))}) - {m.group(4).strip()}"
        for m in _ITEM.finditer(content)
    ]

    ai_form = None
    name = _search(content, r"AI_NAME:\s*([^\n]+)", r"MINIMAL_AI_NAME:\s*([^\n]+)")
    if name:
        weight = _search(content, r"AI_WEIGHT:\s*([\d.]+)\s*(kg|g)?", r"MINIMAL_AI_WEIGHT:\s*([\d.]+)\s*(kg|g)?")
        form = _search(content, r"AI_FORM:\s*([^\n]+)", r"MINIMAL_AI_FORM:\s*([^\n]+)")
        caps = _search(content, r"AI_CAPABILITIES:\s*([^\n]+)", r"MINIMAL_AI_CAPABILITIES:\s*([^\n]+)")
        power = _search(content, r"AI_POWER:\s*([^\n]+)")
        ai_form = AIForm(
            name=name.group(1).strip(),
            weight=_format_weight(weight.group(1), weight.group(2)) if weight else "Unknown",
            form=form.group(1).strip() if form else "Unknown",
            capabilities=caps.group(1).strip() if caps else "Unknown",
            power=power.group(1).strip() if power else "Unknown",
        )

    if not items and ai_form is None:
        return None

    probability = _search(content, r"SURVIVAL_PROBABILITY:\s*(\d+)")
    strengths = _search(content, r"KEY_STRENGTHS:\s*([^\n]+)")
    weaknesses = _search(content, r"KEY_WEAKNESSES:\s*([^\n]+)")

    return Kit(
        scenario=detect_scenario(content),
        items=items,
        ai_form=ai_form,
        survival_probability=f"{probability.group(1)}%" if probability else None,
        strengths=strengths.group(1).strip() if strengths else None,
        weaknesses=weaknesses.group(1).strip() if weaknesses else None,
    )


def kit_to_toolkit_item(kit: Kit, ai_model: str) -> ToolkitItem:
    reasoning = []
    if kit.survival_probability:
        reasoning.append(f"Survival: {kit.survival_probability}")
    if kit.strengths:
        reasoning.append(f"Strengths: {kit.strengths}")
    if kit.weaknesses:
        reasoning.append(f"Weaknesses: {kit.weaknesses}")

    if kit.ai_form:
        form_factor = f"AI: {kit.ai_form.name} ({kit.ai_form.weight}) - {kit.ai_form.form}"
    else:
        form_factor = "No AI included"

    return ToolkitItem(
        name=f"{kit.scenario} ({ai_model})",
        ai_model=ai_model,
        weight=TOOLKIT_KIT_WEIGHT,
        energy=kit.ai_form.power if kit.ai_form else "N/A",
        form_factor=form_factor,
        capabilities=[item.split(" - ")[0] for item in kit.items],
        knowledge=[kit.ai_form.capabilities] if kit.ai_form else [],
        interaction="; ".join(kit.items) or "Complete survival kit",
        limitations=kit.weaknesses,
        reasoning=" | ".join(reasoning),
    )


async def auto_extract_toolkit(
    storage: StorageBackend,
    run: Run,
    session: Session,
    provider_config: Optional[ProviderConfig] = None,
) -> int:
    """Post-run hook: one toolkit item per kit, per chatbot, for apocalypse sessions."""
    if not is_toolkit_session(session.title):
        return 0

    created = 0
    for chatbot_id in run.chatbot_ids:
        ai_model = display_name_for(chatbot_id, provider_config)
        for response in run.responses:
            if response.chatbot_id != chatbot_id:
                continue
            kit = parse_kit(response.content)
            if kit is None:
                continue
            item = kit_to_toolkit_item(kit, ai_model)
            try:
                await storage.create_toolkit_item(item)
            except Exception as e:
                logger.error("Failed to save kit %s from run %s: %s", item.name, run.id, e)
                continue
            created += 1
            logger.info("Extracted kit %s", item.name)

    return created
