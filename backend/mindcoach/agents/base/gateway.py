"""Model gateway: one upstream chat call per invocation, blocking or streamed.

Provider errors are normalised to ``TransportError``; streamed chunks are
normalised to ``GatewayEvent`` with a single terminal ``done`` marker.
"""

import json
import logging
from typing import Any, AsyncIterator, Callable, List, Optional, Sequence

import openai
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from mindcoach.core.config import get_settings

from .errors import TransportError
from .utils import content_to_text, messages_to_langchain, truncate_text

logger = logging.getLogger(__name__)

JSON_ONLY_INSTRUCTION = (
    "\n\nRespond with strict JSON only. Do not wrap it in prose or explanations."
)


class SamplingParams(BaseModel):
    """Per-call sampling overrides; unset values use configured defaults."""

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    model: Optional[str] = None
    json_mode: bool = False


class GatewayEvent(BaseModel):
    """One incremental piece of a streamed reply."""

    delta: str = ""
    done: bool = False


LLMFactory = Callable[[SamplingParams, bool], BaseChatModel]

LOCAL_PLACEHOLDER_KEY = "lm-studio"


def default_llm_factory(params: SamplingParams, streaming: bool) -> BaseChatModel:
    """
    Build the chat model for a single gateway call.

    Retries stay disabled: a failed call surfaces as one TransportError and
    the caller decides whether to resubmit.
    """
    settings = get_settings()
    api_key = settings.LLM_API_KEY
    if not api_key and any(host in settings.LLM_BASE_URL.lower() for host in ("127.0.0.1", "localhost")):
        api_key = LOCAL_PLACEHOLDER_KEY

    return ChatOpenAI(
        base_url=settings.LLM_BASE_URL,
        api_key=api_key,
        model=params.model or settings.LLM_MODEL,
        temperature=settings.LLM_TEMPERATURE if params.temperature is None else params.temperature,
        max_tokens=params.max_tokens or settings.LLM_MAX_TOKENS,
        streaming=streaming,
        max_retries=0,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )


def _error_body(exc: openai.APIStatusError) -> str:
    body = getattr(exc, "body", None)
    if body is None:
        response = getattr(exc, "response", None)
        return response.text if response is not None else str(exc)
    if isinstance(body, str):
        return body
    return json.dumps(body, ensure_ascii=False, default=str)


def _to_transport_error(exc: Exception) -> TransportError:
    if isinstance(exc, openai.APIStatusError):
        return TransportError(exc.status_code, _error_body(exc))
    return TransportError(None, str(exc))


class ModelGateway:
    """Turns (system prompt, history, sampling params) into model text."""

    def __init__(self, llm_factory: Optional[LLMFactory] = None):
        self._llm_factory = llm_factory or default_llm_factory

    def _build_messages(
        self,
        system_prompt: str,
        messages: Sequence[Any],
        params: SamplingParams,
    ) -> List[Any]:
        prompt = system_prompt + (JSON_ONLY_INSTRUCTION if params.json_mode else "")
        return [SystemMessage(content=prompt), *messages_to_langchain(list(messages))]

    async def complete(
        self,
        system_prompt: str,
        messages: Sequence[Any],
        params: Optional[SamplingParams] = None,
        config: Optional[dict] = None,
    ) -> str:
        """Run one blocking completion and return the reply text."""
        params = params or SamplingParams()
        llm = self._llm_factory(params, False)
        try:
            response = await llm.ainvoke(
                self._build_messages(system_prompt, messages, params),
                config=config,
            )
        except openai.APIError as exc:
            error = _to_transport_error(exc)
            logger.error(f"LLM completion failed (status={error.status}): {truncate_text(error.body, 300)}")
            raise error from exc
        return content_to_text(getattr(response, "content", response))

    async def stream(
        self,
        system_prompt: str,
        messages: Sequence[Any],
        params: Optional[SamplingParams] = None,
        config: Optional[dict] = None,
    ) -> AsyncIterator[GatewayEvent]:
        """Yield text deltas in arrival order, then exactly one ``done`` event."""
        params = params or SamplingParams()
        llm = self._llm_factory(params, True)
        try:
            async for chunk in llm.astream(
                self._build_messages(system_prompt, messages, params),
                config=config,
            ):
                delta = content_to_text(getattr(chunk, "content", chunk))
                if delta:
                    yield GatewayEvent(delta=delta)
        except openai.APIError as exc:
            error = _to_transport_error(exc)
            logger.error(f"LLM stream failed (status={error.status}): {truncate_text(error.body, 300)}")
            raise error from exc
        yield GatewayEvent(done=True)
