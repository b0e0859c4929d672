"""Optional LangSmith tracing for coach turns."""

import logging
import os
from typing import Any, Dict, Optional

from mindcoach.core.config import Settings

logger = logging.getLogger(__name__)

# LangChain still reads the legacy LANGCHAIN_* names alongside LANGSMITH_*.
_ENV_ALIASES = {
    "LANGSMITH_API_KEY": "LANGCHAIN_API_KEY",
    "LANGSMITH_ENDPOINT": "LANGCHAIN_ENDPOINT",
    "LANGSMITH_PROJECT": "LANGCHAIN_PROJECT",
}


def initialize_langsmith(settings: Settings) -> bool:
    """Export tracing variables; returns whether tracing is active."""
    enabled = settings.LANGSMITH_TRACING and bool(settings.LANGSMITH_API_KEY.strip())
    flag = "true" if enabled else "false"
    os.environ["LANGSMITH_TRACING"] = flag
    os.environ["LANGCHAIN_TRACING_V2"] = flag

    for name, legacy_name in _ENV_ALIASES.items():
        value = getattr(settings, name)
        if value:
            os.environ[name] = value
            os.environ[legacy_name] = value

    if enabled:
        logger.info(f"LangSmith tracing on for project {settings.LANGSMITH_PROJECT}")
    return enabled


def build_trace_config(
    session_id: str,
    phase: str,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Runnable config that groups every turn of one session under a thread."""
    metadata: Dict[str, Any] = {"session_id": session_id, "phase": phase}
    if user_id:
        metadata["user_id"] = user_id
    return {
        "configurable": {"thread_id": session_id},
        "tags": ["mindcoach", f"phase:{phase}"],
        "metadata": metadata,
    }
