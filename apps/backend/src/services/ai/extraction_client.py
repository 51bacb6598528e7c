"""Text-completion client for the task extraction oracle."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any

from httpx import HTTPError
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, UserError
from pydantic_ai.settings import ModelSettings

from core.config import get_settings
from services.ai.exceptions import OracleTimeout, OracleUnavailable
from services.ai.interfaces import ExtractionClientProtocol
from services.ai.model_factory import get_extraction_model


logger = logging.getLogger(__name__)

# Nucleus sampling used alongside EXTRACTION_TEMPERATURE for stable JSON output
EXTRACTION_TOP_P = 0.9


@lru_cache
def get_extraction_agent() -> Agent[None, str]:
    """Create and cache the plain-text oracle agent.

    The oracle is treated as opaque: it receives the whole prompt as the user
    message and returns free text, which the normalizer parses.
    """
    return Agent(get_extraction_model(), output_type=str, name="task-extractor")


class ExtractionClient(ExtractionClientProtocol):
    """Calls the oracle once with a hard deadline.

    ``agent`` is injectable for tests; production resolves the cached agent
    lazily so importing this module does not require provider credentials.
    """

    def __init__(self, agent: Agent[None, str] | None = None) -> None:
        self._agent = agent

    def _get_agent(self) -> Agent[None, str]:
        if self._agent is None:
            self._agent = get_extraction_agent()
        return self._agent

    def _model_settings(self) -> ModelSettings:
        return ModelSettings(
            temperature=get_settings().EXTRACTION_TEMPERATURE,
            top_p=EXTRACTION_TOP_P,
        )

    async def complete(self, prompt: str, timeout: float) -> str:
        try:
            agent = self._get_agent()
            result: Any = await asyncio.wait_for(
                agent.run(prompt, model_settings=self._model_settings()),
                timeout=timeout,
            )
        except TimeoutError as exc:
            logger.warning("Extraction oracle timed out after %.1fs", timeout)
            raise OracleTimeout(
                f"Extraction oracle did not answer within {timeout:.0f}s"
            ) from exc
        except (AgentRunError, UserError, HTTPError, ValueError) as exc:
            logger.warning("Extraction oracle call failed: %s", exc)
            raise OracleUnavailable(str(exc) or type(exc).__name__) from exc

        output = getattr(result, "output", None)
        if not isinstance(output, str):
            raise OracleUnavailable("Extraction oracle returned no text output")
        return output
