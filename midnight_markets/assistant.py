"""
Assistant availability and fallback.

The assistant runs in one of two modes, fixed at startup:

  live       a credential is configured; requests go to Gemini
  simulated  no credential; a keyword-driven local responder answers after a
             short artificial delay, with no network call

A live request that fails for any reason is answered by the same local
responder, with a visible degraded note appended, so the failure is never
silently masked.
"""
from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from google import genai
from google.genai import types

from .models import AssistantMode, ChatReply, Citation, PulseItem, PulseReport, Sentiment

logger = logging.getLogger(__name__)

DEGRADED_NOTE = " (Note: Live uplink failed, using simulated data)."

# Checked in order; first matching keyword group wins
_KEYWORD_REPLIES: List[Tuple[Tuple[str, ...], str]] = [
    (("bitcoin", "btc"),
     "Bitcoin is currently testing major psychological resistance levels. On-chain data suggests "
     "institutional wallets are in a 'holding' phase, while retail sentiment remains cautiously "
     "optimistic. Watch the 200-day moving average for trend confirmation."),
    (("ethereum", "eth"),
     "Ethereum's network activity has seen a slight uptick in L2 gas consumption. Deflationary "
     "pressures are mounting as burn rates exceed issuance. The current focus is on upcoming network "
     "upgrades aimed at scalability."),
    (("memecoin", "meme"),
     "The memecoin sector is currently high-volatility with significant rotation observed into "
     "AI-themed assets. While liquidity is thin, social dominance for top-tier memes remains strong. "
     "High risk, high reward dynamics are dominant here."),
    (("analysis", "market"),
     "Broad market structure remains in a consolidation phase. Dominance levels are shifting as "
     "capital rotates into specific sector narratives. Macro indicators point towards a period of "
     "volatility as traders await clarity on global fiscal policies."),
]
_DEFAULT_REPLY = (
    "The terminal is operating in simulated intelligence mode. Current data streams indicate localized "
    "volatility and increasing accumulation in blue-chip assets. Interrogate specific tickers for deeper "
    "surveillance."
)

SIMULATED_PULSE = PulseReport(
    overall="Bullish",
    mode=AssistantMode.SIMULATED,
    items=[
        PulseItem(headline="Institutional accumulation detected in major L1 assets.", sentiment=Sentiment.POSITIVE),
        PulseItem(headline="Macro volatility expected ahead of regional economic data.", sentiment=Sentiment.NEUTRAL),
        PulseItem(headline="Liquidity drain observed in high-risk memecoin sectors.", sentiment=Sentiment.NEGATIVE),
        PulseItem(headline="Cross-chain bridge volume hits 30-day high.", sentiment=Sentiment.POSITIVE),
        PulseItem(headline="Exchange reserves continue to trend downwards.", sentiment=Sentiment.POSITIVE),
    ],
)

FALLBACK_PULSE = PulseReport(
    overall="Unstable",
    mode=AssistantMode.LIVE,
    degraded=True,
    items=[
        PulseItem(headline="Error fetching live pulse. Using cached surveillance data.", sentiment=Sentiment.NEUTRAL),
        PulseItem(headline="Market volatility remains high across primary sectors.", sentiment=Sentiment.NEUTRAL),
    ],
)

DEFAULT_SUGGESTIONS = [
    "Explain current liquidity flows",
    "Top AI-narrative tokens?",
    "Bitcoin halving impact?",
    "Assess Ethereum network health",
]


def simulated_reply(text: str) -> str:
    lowered = text.lower()
    for keywords, reply in _KEYWORD_REPLIES:
        if any(keyword in lowered for keyword in keywords):
            return reply
    return _DEFAULT_REPLY


# ---------------------------------------------------------------------------
# Live backends
# ---------------------------------------------------------------------------

class AssistantBackend(ABC):
    """Contract for the external text-generation capability."""

    name: str = "base"

    @abstractmethod
    async def chat(self, text: str) -> Tuple[str, List[Citation]]:
        """Answer one message; return the text and any supporting citations."""

    @abstractmethod
    async def pulse(self) -> Dict[str, Any]:
        """Return ``{"overallSentiment": str, "analyses": [{headline, sentiment}]}``."""

    @abstractmethod
    async def suggestions(self) -> List[str]:
        """Return a handful of timely questions to offer the user."""


SYSTEM_INSTRUCTION = (
    "You are the 'Midnight Market' terminal assistant. Provide expert, concise cryptocurrency and market "
    "analysis. Use a professional, slightly cyber-noir tone. Keep responses structured and punchy. If you "
    "use Google Search, ensure you provide accurate, recent information."
)
PULSE_PROMPT = (
    "Perform a sentiment analysis on the top 5 most impactful cryptocurrency news headlines from the last "
    "4 hours. Return the headlines and their sentiment (positive, negative, or neutral)."
)
SUGGESTIONS_PROMPT = (
    "Generate 4 short, interesting, and timely questions a crypto trader would ask about current market "
    "activity today. Return them as a JSON array of strings."
)

_PULSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "overallSentiment": {"type": "STRING"},
        "analyses": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "headline": {"type": "STRING"},
                    "sentiment": {"type": "STRING", "enum": ["positive", "negative", "neutral"]},
                },
                "required": ["headline", "sentiment"],
            },
        },
    },
    "required": ["overallSentiment", "analyses"],
}
_SUGGESTIONS_SCHEMA = {
    "type": "OBJECT",
    "properties": {"suggestions": {"type": "ARRAY", "items": {"type": "STRING"}}},
    "required": ["suggestions"],
}


class GeminiBackend(AssistantBackend):
    name = "gemini"

    def __init__(self, api_key: str, chat_model: str, fast_model: str):
        self.client = genai.Client(api_key=api_key)
        self.chat_model = chat_model
        self.fast_model = fast_model
        self._search = types.Tool(google_search=types.GoogleSearch())

    async def chat(self, text: str) -> Tuple[str, List[Citation]]:
        response = await self.client.aio.models.generate_content(
            model=self.chat_model,
            contents=text,
            config=types.GenerateContentConfig(tools=[self._search], system_instruction=SYSTEM_INSTRUCTION),
        )
        return response.text or "Protocol timeout. Signal lost.", _citations(response)

    async def pulse(self) -> Dict[str, Any]:
        return await self._json(PULSE_PROMPT, _PULSE_SCHEMA)

    async def suggestions(self) -> List[str]:
        data = await self._json(SUGGESTIONS_PROMPT, _SUGGESTIONS_SCHEMA)
        return [str(item) for item in data.get("suggestions") or [] if str(item).strip()]

    async def _json(self, prompt: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.aio.models.generate_content(
            model=self.fast_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                tools=[self._search],
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        data = json.loads(response.text or "{}")
        if not isinstance(data, dict):
            raise ValueError("assistant returned non-object JSON")
        return data


def _citations(response) -> List[Citation]:
    candidates = getattr(response, "candidates", None) or []
    metadata = getattr(candidates[0], "grounding_metadata", None) if candidates else None
    chunks = getattr(metadata, "grounding_chunks", None) or []
    citations = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        if web is not None and getattr(web, "uri", None):
            citations.append(Citation(title=web.title or "", uri=web.uri))
    return citations


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class AssistantController:
    def __init__(
        self,
        backend: Optional[AssistantBackend] = None,
        *,
        chat_delay: float = 1.0,
        pulse_delay: float = 1.5,
        timeout_seconds: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.backend = backend
        self.chat_delay = chat_delay
        self.pulse_delay = pulse_delay
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: Dict[str, Any], **kwargs) -> "AssistantController":
        backend = None
        api_key = config.get('ASSISTANT_API_KEY') or ''
        if api_key:
            backend = GeminiBackend(api_key, config['ASSISTANT_CHAT_MODEL'], config['ASSISTANT_FAST_MODEL'])
        controller = cls(
            backend,
            chat_delay=config.get('ASSISTANT_SIMULATED_DELAY_SECONDS', 1.0),
            pulse_delay=config.get('ASSISTANT_PULSE_DELAY_SECONDS', 1.5),
            **kwargs,
        )
        logger.info("assistant.mode %s", controller.mode.value)
        return controller

    @property
    def mode(self) -> AssistantMode:
        return AssistantMode.LIVE if self.backend is not None else AssistantMode.SIMULATED

    async def ask(self, text: str) -> ChatReply:
        if not text or not text.strip():
            raise ValueError("message must not be empty")
        if self.backend is None:
            await self._sleep(self.chat_delay)
            return ChatReply(text=simulated_reply(text), mode=AssistantMode.SIMULATED)
        try:
            reply, sources = await asyncio.wait_for(self.backend.chat(text), self.timeout_seconds)
        except Exception as exc:
            logger.warning("assistant.chat_failed backend=%s: %s", self.backend.name, exc)
            return ChatReply(text=simulated_reply(text) + DEGRADED_NOTE, mode=AssistantMode.LIVE, degraded=True)
        return ChatReply(text=reply, sources=sources, mode=AssistantMode.LIVE)

    async def pulse(self) -> PulseReport:
        if self.backend is None:
            await self._sleep(self.pulse_delay)
            return SIMULATED_PULSE.model_copy(deep=True)
        try:
            data = await asyncio.wait_for(self.backend.pulse(), self.timeout_seconds)
            items = [PulseItem.model_validate(item) for item in data.get("analyses") or []]
        except Exception as exc:
            logger.warning("assistant.pulse_failed backend=%s: %s", self.backend.name, exc)
            return FALLBACK_PULSE.model_copy(deep=True)
        return PulseReport(overall=data.get("overallSentiment") or "Neutral", items=items, mode=AssistantMode.LIVE)

    async def suggestions(self) -> List[str]:
        if self.backend is None:
            return list(DEFAULT_SUGGESTIONS)
        try:
            suggestions = await asyncio.wait_for(self.backend.suggestions(), self.timeout_seconds)
        except Exception as exc:
            logger.warning("assistant.suggestions_failed backend=%s: %s", self.backend.name, exc)
            return list(DEFAULT_SUGGESTIONS)
        return suggestions or list(DEFAULT_SUGGESTIONS)


__all__ = [
    "AssistantBackend",
    "AssistantController",
    "GeminiBackend",
    "DEGRADED_NOTE",
    "DEFAULT_SUGGESTIONS",
    "simulated_reply",
]
