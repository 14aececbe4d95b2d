"""Cooperation benchmark: how often each chatbot chose to cooperate."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from coopengine.config import ProviderConfig
from coopengine.providers.registry import get_chatbot
from coopengine.storage.base import Run, RunStatus


@dataclass
class CooperationScore:
    chatbot_id: str
    display_name: str
    cooperate_count: int = 0
    defect_count: int = 0

    @property
    def total_responses(self) -> int:
        return self.cooperate_count + self.defect_count

    @property
    def cooperation_rate(self) -> float:
        return self.cooperate_count / self.total_responses if self.total_responses else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chatbotId": self.chatbot_id,
            "displayName": self.display_name,
            "cooperateCount": self.cooperate_count,
            "defectCount": self.defect_count,
            "totalResponses": self.total_responses,
            "cooperationRate": self.cooperation_rate,
        }


def extract_decision(content: str) -> Optional[str]:
    """COOPERATE if mentioned anywhere, else DEFECT if mentioned, else None."""
    upper = content.upper()
    if "COOPERATE" in upper:
        return "COOPERATE"
    if "DEFECT" in upper:
        return "DEFECT"
    return None


def _fallback_name(chatbot_id: str) -> str:
    return chatbot_id.replace("-", " ").title()


def cooperation_scores(
    runs: List[Run], provider_config: Optional[ProviderConfig] = None
) -> List[CooperationScore]:
    """Tally decisions across completed runs, highest cooperation rate first."""
    scores: Dict[str, CooperationScore] = {}

    for run in runs:
        if run.status != RunStatus.COMPLETED:
            continue
        for response in run.responses:
            if response.error or not response.content:
                continue
            decision = extract_decision(response.content)
            if decision is None:
                continue

            score = scores.get(response.chatbot_id)
            if score is None:
                chatbot = get_chatbot(response.chatbot_id, provider_config)
                name = chatbot.display_name if chatbot else _fallback_name(response.chatbot_id)
                score = scores[response.chatbot_id] = CooperationScore(response.chatbot_id, name)

            if decision == "COOPERATE":
                score.cooperate_count += 1
            else:
                score.defect_count += 1

    return sorted(scores.values(), key=lambda s: s.cooperation_rate, reverse=True)
