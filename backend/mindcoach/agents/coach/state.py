"""Coach role result type."""

from typing import Optional

from mindcoach.agents.base.state import CamelModel, Phase


class CoachResult(CamelModel):
    """Reply text plus the phase signal inferred from it."""

    content: str
    suggested_phase: Optional[Phase] = None
    should_generate_exercise: bool = False
    should_reflect: bool = False
