"""Base domain types shared by every agent role.

Wire names are camelCase; snake_case is accepted on input as well.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting either spelling."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Phase(str, Enum):
    """Session lifecycle stage, strictly ordered."""

    START = "start"
    WARMUP = "warmup"
    MAIN = "main"
    COOLDOWN = "cooldown"
    REFLECT = "reflect"
    COMPLETE = "complete"

    @property
    def index(self) -> int:
        return PHASE_ORDER.index(self)

    def next(self) -> Optional["Phase"]:
        """The immediate successor, or None for the terminal phase."""
        position = self.index
        if position + 1 < len(PHASE_ORDER):
            return PHASE_ORDER[position + 1]
        return None


PHASE_ORDER: List[Phase] = [
    Phase.START,
    Phase.WARMUP,
    Phase.MAIN,
    Phase.COOLDOWN,
    Phase.REFLECT,
    Phase.COMPLETE,
]


class AbilityTag(str, Enum):
    """Cognitive dimension tracked per user and per exercise."""

    ATTENTION = "attention"
    MEMORY = "memory"
    LOGIC = "logic"
    EXPRESSION = "expression"
    METACOGNITION = "metacognition"

    @classmethod
    def _missing_(cls, value: object) -> Optional["AbilityTag"]:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "metacog":
                return cls.METACOGNITION
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class Message(BaseModel):
    """A single transcript entry.

    Content may only grow while ``streaming`` is set; ``finalize`` freezes it.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant", "system"]
    content: str = ""
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    streaming: bool = Field(default=False, exclude=True)

    def append(self, delta: str) -> None:
        if not self.streaming:
            raise ValueError(f"Message {self.id} is finalized and cannot be changed")
        self.content += delta

    def finalize(self) -> None:
        self.streaming = False


class AbilityProfile(CamelModel):
    """Per-user ability scores on a 0-100 scale."""

    attention: float = Field(default=50.0, ge=0, le=100)
    memory: float = Field(default=50.0, ge=0, le=100)
    logic: float = Field(default=50.0, ge=0, le=100)
    expression: float = Field(default=50.0, ge=0, le=100)
    metacognition: float = Field(default=50.0, ge=0, le=100)

    @model_validator(mode="before")
    @classmethod
    def _accept_metacog_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and "metacog" in data and "metacognition" not in data:
            data = dict(data)
            data["metacognition"] = data.pop("metacog")
        return data

    def score(self, ability: AbilityTag) -> float:
        return getattr(self, ability.value)

    def weakest(self, count: int = 2) -> List[AbilityTag]:
        """Lowest-scoring abilities, ties broken by declaration order."""
        ranked = sorted(AbilityTag, key=lambda tag: self.score(tag))
        return ranked[:count]


class RecentPerformance(CamelModel):
    """Summary of the current session's scoring so far."""

    average_score: float = 0.0
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    tasks_completed: int = 0
    current_difficulty: int = 3
    weak_areas: List[AbilityTag] = Field(default_factory=list)
    strong_areas: List[AbilityTag] = Field(default_factory=list)


class AgentContext(CamelModel):
    """Everything a role needs to know about the user and the session."""

    user_name: str = "there"
    user_id: Optional[str] = None
    current_phase: Phase = Phase.START
    energy_level: Optional[int] = Field(default=None, ge=1, le=10)
    user_goal: Optional[str] = None
    session_id: Optional[str] = None
    ability_profile: Optional[AbilityProfile] = None
    last_session_summary: Optional[str] = None
    recent_performance: Optional[RecentPerformance] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
