"""
LLM Service for store insights
Sends the bounded store brief to Claude and returns the raw insight object
"""
import asyncio
from typing import Any, Dict, Optional

from anthropic import AsyncAnthropic

from store_intelligence.config import Settings, get_settings
from store_intelligence.utils.errors import CompletionError
from store_intelligence.utils.logger import log

INSIGHT_TOOL_NAME = "record_store_insight"

# Forcing this tool makes the model answer with a JSON object of this shape
INSIGHT_TOOL = {
    "name": INSIGHT_TOOL_NAME,
    "description": "Record the single actionable insight for the store manager.",
    "input_schema": {
        "type": "object",
        "properties": {
            "insight": {"type": "string"},
            "severity": {"type": "string", "enum": ["info", "warning", "critical"]},
            "metrics": {
                "type": "object",
                "properties": {
                    "expectedOrderIncrease": {"type": "number"},
                    "recommendedExtraDrivers": {"type": "integer"},
                    "primaryReason": {"type": "string"},
                },
                "required": ["expectedOrderIncrease", "recommendedExtraDrivers", "primaryReason"],
            },
            "action": {"type": "string"},
            "carryoutPromotion": {
                "type": ["object", "null"],
                "properties": {
                    "isActive": {"type": "boolean"},
                    "discount": {"type": "number"},
                    "message": {"type": "string"},
                },
            },
            "preOrderCampaign": {
                "type": ["object", "null"],
                "properties": {
                    "eventName": {"type": "string"},
                    "urgency": {"type": "string", "enum": ["HIGH", "MEDIUM"]},
                    "targetOrders": {"type": "integer"},
                    "message": {"type": "string"},
                },
            },
        },
        "required": ["insight", "severity", "metrics", "action"],
    },
}


class LLMService:
    """
    Completion service boundary: bounded prompt + system instruction in,
    insight JSON object out
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        self.settings = settings or get_settings()
        self.enabled = bool(self.settings.enable_llm_insights and (self.settings.anthropic_api_key or client))
        self.client = None

        if not self.enabled:
            log.info("LLM insights disabled (no API key or feature disabled)")
            return

        if client is not None:
            self.client = client
        else:
            try:
                self.client = AsyncAnthropic(
                    api_key=self.settings.anthropic_api_key,
                    timeout=self.settings.llm_timeout_seconds,
                )
                log.info("LLM Service initialized with Claude")
            except Exception as e:
                log.error(f"Failed to initialize Anthropic client: {str(e)}")
                self.enabled = False

    def is_available(self) -> bool:
        return self.enabled and self.client is not None

    async def complete_json(self, system: str, prompt: str) -> Dict[str, Any]:
        """
        Ask for one insight, constrained to the insight JSON shape

        Raises:
            CompletionError: disabled, timed out, failed, or no JSON object returned
        """
        if not self.is_available():
            raise CompletionError("LLM service not configured")

        try:
            response = await asyncio.wait_for(
                self.client.messages.create(
                    model=self.settings.llm_model,
                    max_tokens=self.settings.llm_max_tokens,
                    temperature=self.settings.llm_temperature,
                    system=system,
                    messages=[{"role": "user", "content": prompt}],
                    tools=[INSIGHT_TOOL],
                    tool_choice={"type": "tool", "name": INSIGHT_TOOL_NAME},
                ),
                timeout=self.settings.llm_timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise CompletionError(f"completion timed out after {self.settings.llm_timeout_seconds}s")
        except Exception as e:
            raise CompletionError(f"completion failed: {type(e).__name__}: {e}")

        for block in response.content:
            if getattr(block, "type", None) == "tool_use" and getattr(block, "name", None) == INSIGHT_TOOL_NAME:
                if isinstance(block.input, dict):
                    log.info("Generated store insight via LLM")
                    return block.input
        raise CompletionError("completion returned no insight object")
