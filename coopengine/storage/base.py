"""Record types and the abstract storage backend."""

import math
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional


def utc_now() -> str:
    """Current time as an ISO 8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def new_id() -> str:
    return str(uuid.uuid4())


class RunStatus(str, Enum):
    """Lifecycle of a run or arena match."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ProposalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class PromptStep:
    """One step of a session's prompt script."""

    id: str
    order: int
    role: Literal["user", "assistant", "system"]
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "order": self.order, "role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PromptStep":
        return cls(id=data["id"], order=data["order"], role=data["role"], content=data["content"])


@dataclass
class Session:
    """A saved, ordered prompt script."""

    title: str
    prompts: List[PromptStep] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)

    def sorted_prompts(self) -> List[PromptStep]:
        return sorted(self.prompts, key=lambda p: p.order)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "prompts": [p.to_dict() for p in self.prompts],
            "createdAt": self.created_at,
        }


@dataclass
class ChatbotResponse:
    """Outcome of one (chatbot, round) call."""

    chatbot_id: str
    step_order: int
    content: str
    latency_ms: int
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "chatbotId": self.chatbot_id,
            "stepOrder": self.step_order,
            "content": self.content,
            "latencyMs": self.latency_ms,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class Run:
    """One execution of a session against a set of chatbots."""

    session_id: str
    chatbot_ids: List[str]
    id: str = field(default_factory=new_id)
    status: RunStatus = RunStatus.PENDING
    started_at: str = field(default_factory=utc_now)
    completed_at: Optional[str] = None
    responses: List[ChatbotResponse] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "chatbotIds": list(self.chatbot_ids),
            "status": self.status.value,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "responses": [r.to_dict() for r in self.responses],
        }


@dataclass
class ArenaRound:
    round_number: int
    player1_move: str
    player2_move: str
    player1_points: int
    player2_points: int
    player1_reasoning: Optional[str] = None
    player2_reasoning: Optional[str] = None
    player1_latency_ms: Optional[int] = None
    player2_latency_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roundNumber": self.round_number,
            "player1Move": self.player1_move,
            "player2Move": self.player2_move,
            "player1Points": self.player1_points,
            "player2Points": self.player2_points,
            "player1Reasoning": self.player1_reasoning,
            "player2Reasoning": self.player2_reasoning,
            "player1LatencyMs": self.player1_latency_ms,
            "player2LatencyMs": self.player2_latency_ms,
        }


@dataclass
class ArenaMatch:
    """Two chatbots playing a repeated two-move game."""

    player1_id: str
    player2_id: str
    game_type: str
    total_rounds: int
    temptation_payoff: int
    hidden_length: bool = False
    id: str = field(default_factory=new_id)
    status: RunStatus = RunStatus.PENDING
    current_round: int = 0
    player1_score: int = 0
    player2_score: int = 0
    rounds: List[ArenaRound] = field(default_factory=list)
    created_at: str = field(default_factory=utc_now)
    completed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "player1Id": self.player1_id,
            "player2Id": self.player2_id,
            "gameType": self.game_type,
            "totalRounds": self.total_rounds,
            "temptationPayoff": self.temptation_payoff,
            "hiddenLength": self.hidden_length,
            "status": self.status.value,
            "currentRound": self.current_round,
            "player1Score": self.player1_score,
            "player2Score": self.player2_score,
            "rounds": [r.to_dict() for r in self.rounds],
            "createdAt": self.created_at,
            "completedAt": self.completed_at,
        }


@dataclass
class ToolkitItem:
    """A survival kit / AI form-factor entry in the toolkit catalog."""

    name: str
    ai_model: str
    weight: str
    energy: str
    form_factor: str
    capabilities: List[str] = field(default_factory=list)
    knowledge: List[str] = field(default_factory=list)
    interaction: str = ""
    limitations: Optional[str] = None
    reasoning: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "aiModel": self.ai_model,
            "weight": self.weight,
            "energy": self.energy,
            "formFactor": self.form_factor,
            "capabilities": list(self.capabilities),
            "knowledge": list(self.knowledge),
            "interaction": self.interaction,
            "limitations": self.limitations,
            "reasoning": self.reasoning,
            "createdAt": self.created_at,
        }


def blend_average(old: Optional[int], new: int) -> int:
    """Running average used for outcome metrics.

    A missing or zero previous value is replaced outright; otherwise the
    midpoint is taken, rounding halves up.
    """
    if not old:
        return new
    return int(math.floor((old + new) / 2 + 0.5))


@dataclass
class Outcomes:
    """Scenario outcome metrics parsed from responses."""

    water_security: Optional[int] = None
    food_security: Optional[int] = None
    self_sustaining: Optional[int] = None
    population_10yr: Optional[int] = None
    population_50yr: Optional[int] = None

    _KEYS = {
        "water_security": "waterSecurity",
        "food_security": "foodSecurity",
        "self_sustaining": "selfSustaining",
        "population_10yr": "population10yr",
        "population_50yr": "population50yr",
    }

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> Dict[str, int]:
        return {
            camel: getattr(self, name)
            for name, camel in self._KEYS.items()
            if getattr(self, name) is not None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Outcomes":
        return cls(**{name: data.get(camel) for name, camel in cls._KEYS.items()})


@dataclass
class OutcomeAverages:
    """Averaged outcome columns shared by both leaderboards."""

    avg_water_security: Optional[int] = None
    avg_food_security: Optional[int] = None
    avg_self_sustaining: Optional[int] = None
    avg_population_10yr: Optional[int] = None
    avg_population_50yr: Optional[int] = None

    def apply(self, outcomes: Outcomes) -> None:
        """Fold new outcomes into the running averages in place."""
        for name in Outcomes._KEYS:
            value = getattr(outcomes, name)
            if value is not None:
                avg_name = f"avg_{name}"
                setattr(self, avg_name, blend_average(getattr(self, avg_name), value))

    def averages_dict(self) -> Dict[str, Optional[int]]:
        return {
            "avgWaterSecurity": self.avg_water_security,
            "avgFoodSecurity": self.avg_food_security,
            "avgSelfSustaining": self.avg_self_sustaining,
            "avgPopulation10yr": self.avg_population_10yr,
            "avgPopulation50yr": self.avg_population_50yr,
        }


@dataclass
class LeaderboardEntry(OutcomeAverages):
    """Selection tally for one candidate of one scenario template."""

    template_id: str = ""
    candidate_number: int = 0
    candidate_name: str = ""
    selection_count: int = 0
    id: str = field(default_factory=new_id)
    last_updated: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "templateId": self.template_id,
            "candidateNumber": self.candidate_number,
            "candidateName": self.candidate_name,
            "selectionCount": self.selection_count,
        }
        data.update(self.averages_dict())
        data["lastUpdated"] = self.last_updated
        return data


@dataclass
class ToolkitLeaderboardEntry(OutcomeAverages):
    """Usage tally for one toolkit item."""

    toolkit_item_id: str = ""
    toolkit_item_name: str = ""
    template_id: Optional[str] = None
    usage_count: int = 0
    id: str = field(default_factory=new_id)
    last_updated: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "toolkitItemId": self.toolkit_item_id,
            "toolkitItemName": self.toolkit_item_name,
            "templateId": self.template_id,
            "usageCount": self.usage_count,
        }
        data.update(self.averages_dict())
        data["lastUpdated"] = self.last_updated
        return data


@dataclass
class BenchmarkProposal:
    """A user-submitted idea for a new benchmark."""

    test_description: str
    prompt_count: int
    ai_prep: str
    estimated_duration: str
    outcome_description: str
    required_resources: Optional[str] = None
    submitter_name: Optional[str] = None
    submitter_email: Optional[str] = None
    citations: Optional[str] = None
    status: ProposalStatus = ProposalStatus.PENDING
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "testDescription": self.test_description,
            "promptCount": self.prompt_count,
            "aiPrep": self.ai_prep,
            "estimatedDuration": self.estimated_duration,
            "requiredResources": self.required_resources,
            "outcomeDescription": self.outcome_description,
            "submitterName": self.submitter_name,
            "submitterEmail": self.submitter_email,
            "citations": self.citations,
            "status": self.status.value,
            "createdAt": self.created_at,
        }


class StorageBackend(ABC):
    """Abstract persistence interface for every record type."""

    # Sessions
    @abstractmethod
    async def list_sessions(self) -> List[Session]:
        """All sessions, newest first."""
        pass

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[Session]:
        pass

    @abstractmethod
    async def create_session(self, session: Session) -> Session:
        pass

    @abstractmethod
    async def update_session(
        self,
        session_id: str,
        title: Optional[str] = None,
        prompts: Optional[List[PromptStep]] = None,
    ) -> Optional[Session]:
        """Partially update a session. Returns None if it does not exist."""
        pass

    @abstractmethod
    async def delete_session(self, session_id: str) -> None:
        """Delete a session and every run recorded against it."""
        pass

    # Runs
    @abstractmethod
    async def list_runs(self, session_id: Optional[str] = None) -> List[Run]:
        """All runs (optionally for one session), newest first."""
        pass

    @abstractmethod
    async def get_run(self, run_id: str) -> Optional[Run]:
        pass

    @abstractmethod
    async def create_run(self, run: Run) -> Run:
        pass

    @abstractmethod
    async def update_run_status(
        self, run_id: str, status: RunStatus, completed_at: Optional[str] = None
    ) -> Optional[Run]:
        pass

    @abstractmethod
    async def add_response(self, run_id: str, response: ChatbotResponse) -> None:
        """Append a response. Concurrent appends must never lose each other."""
        pass

    @abstractmethod
    async def delete_run(self, run_id: str) -> None:
        pass

    # Arena
    @abstractmethod
    async def list_matches(self) -> List[ArenaMatch]:
        pass

    @abstractmethod
    async def get_match(self, match_id: str) -> Optional[ArenaMatch]:
        pass

    @abstractmethod
    async def create_match(self, match: ArenaMatch) -> ArenaMatch:
        pass

    @abstractmethod
    async def update_match(self, match_id: str, **updates: Any) -> Optional[ArenaMatch]:
        """Update status, current_round, scores or completed_at."""
        pass

    @abstractmethod
    async def add_round(self, match_id: str, arena_round: ArenaRound) -> None:
        pass

    @abstractmethod
    async def delete_match(self, match_id: str) -> None:
        pass

    # Toolkit
    @abstractmethod
    async def list_toolkit_items(self) -> List[ToolkitItem]:
        pass

    @abstractmethod
    async def get_toolkit_item(self, item_id: str) -> Optional[ToolkitItem]:
        pass

    @abstractmethod
    async def create_toolkit_item(self, item: ToolkitItem) -> ToolkitItem:
        pass

    @abstractmethod
    async def delete_toolkit_item(self, item_id: str) -> None:
        pass

    # Leaderboard
    @abstractmethod
    async def list_leaderboard(self, template_id: Optional[str] = None) -> List[LeaderboardEntry]:
        """Entries ordered by selection count, highest first."""
        pass

    @abstractmethod
    async def upsert_leaderboard_entry(
        self, template_id: str, candidate_number: int, candidate_name: str
    ) -> LeaderboardEntry:
        """Create the entry with a count of 1, or increment an existing one."""
        pass

    @abstractmethod
    async def update_leaderboard_outcomes(
        self, entry_id: str, outcomes: Outcomes
    ) -> Optional[LeaderboardEntry]:
        pass

    @abstractmethod
    async def clear_leaderboard(self) -> None:
        pass

    # Toolkit leaderboard
    @abstractmethod
    async def list_toolkit_leaderboard(self) -> List[ToolkitLeaderboardEntry]:
        pass

    @abstractmethod
    async def upsert_toolkit_usage(
        self, toolkit_item_id: str, toolkit_item_name: str, template_id: Optional[str] = None
    ) -> ToolkitLeaderboardEntry:
        pass

    @abstractmethod
    async def update_toolkit_outcomes(
        self, toolkit_item_id: str, outcomes: Outcomes
    ) -> Optional[ToolkitLeaderboardEntry]:
        pass

    # Benchmark proposals
    @abstractmethod
    async def list_proposals(self) -> List[BenchmarkProposal]:
        pass

    @abstractmethod
    async def create_proposal(self, proposal: BenchmarkProposal) -> BenchmarkProposal:
        pass

    @abstractmethod
    async def update_proposal_status(
        self, proposal_id: str, status: ProposalStatus
    ) -> Optional[BenchmarkProposal]:
        pass
