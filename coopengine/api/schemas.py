"""Request body models.

Bodies arrive with camelCase keys; the models accept either casing and
expose snake_case attributes.
"""

import re
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from coopengine.core.constants import (
    ARENA_DEFAULT_GAME,
    ARENA_DEFAULT_ROUNDS,
    ARENA_DEFAULT_TEMPTATION,
    ARENA_MAX_ROUNDS,
)
from coopengine.core.errors import SchemaValidationError

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

M = TypeVar("M", bound=BaseModel)


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PromptStepIn(RequestModel):
    id: str
    order: int
    role: Literal["user", "assistant", "system"]
    content: str = Field(min_length=1)


class SessionCreate(RequestModel):
    title: str = Field(min_length=1)
    prompts: List[PromptStepIn] = Field(min_length=1)


class SessionUpdate(RequestModel):
    title: Optional[str] = Field(default=None, min_length=1)
    prompts: Optional[List[PromptStepIn]] = Field(default=None, min_length=1)


class RunCreate(RequestModel):
    chatbot_ids: List[str] = Field(min_length=1)


class ArenaMatchCreate(RequestModel):
    player1_id: str = Field(min_length=1)
    player2_id: str = Field(min_length=1)
    game_type: Literal["prisoners-dilemma", "stag-hunt", "apple-tree"] = ARENA_DEFAULT_GAME
    total_rounds: int = Field(default=ARENA_DEFAULT_ROUNDS, ge=1, le=ARENA_MAX_ROUNDS)
    temptation_payoff: int = Field(default=ARENA_DEFAULT_TEMPTATION, ge=0)
    hidden_length: bool = False


class ToolkitItemCreate(RequestModel):
    name: str = Field(min_length=1)
    ai_model: str = Field(min_length=1)
    weight: str
    energy: str
    form_factor: str
    capabilities: List[str] = Field(default_factory=list)
    knowledge: List[str] = Field(default_factory=list)
    interaction: str
    limitations: Optional[str] = None
    reasoning: Optional[str] = None


class LeaderboardExtract(RequestModel):
    run_id: str = Field(min_length=1)
    template_id: str = Field(min_length=1)
    candidate_mapping: Dict[int, str]


class LeaderboardOutcomesRequest(RequestModel):
    run_id: str = Field(min_length=1)
    template_id: str = Field(min_length=1)


class ToolkitUsage(RequestModel):
    toolkit_item_id: str = Field(min_length=1)
    template_id: Optional[str] = None


class OutcomesIn(RequestModel):
    water_security: Optional[int] = None
    food_security: Optional[int] = None
    self_sustaining: Optional[int] = None
    population_10yr: Optional[int] = Field(default=None, alias="population10yr")
    population_50yr: Optional[int] = Field(default=None, alias="population50yr")


class ToolkitOutcomesRequest(RequestModel):
    toolkit_item_id: str = Field(min_length=1)
    outcomes: OutcomesIn


class ProposalCreate(RequestModel):
    test_description: str = Field(min_length=10)
    prompt_count: int = Field(ge=1)
    ai_prep: str = Field(min_length=5)
    estimated_duration: str = Field(min_length=1)
    required_resources: Optional[str] = None
    outcome_description: str = Field(min_length=10)
    submitter_name: Optional[str] = None
    submitter_email: Optional[str] = None
    citations: Optional[str] = None

    @field_validator("submitter_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v and not _EMAIL.match(v):
            raise ValueError("must be a valid email address")
        return v


class ProposalStatusUpdate(RequestModel):
    status: Literal["pending", "approved", "rejected"]


def parse_body(model: Type[M], data: Any) -> M:
    """
    Validate a JSON body against a model.

    Raises:
        SchemaValidationError: With one message per failing field
    """
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        ]
        raise SchemaValidationError(model.__name__, errors) from e
