"""Category suggestion for reports filed without a category.

Two implementations share the :class:`Classifier` protocol: a keyword
scorer that needs no external service, and an LLM-backed classifier.
Both answer with a category name taken verbatim from the candidates, or
``UNKNOWN``.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol, Sequence, runtime_checkable

from civictrack.core.config import ClassifierConfig, LLMConfig
from civictrack.directory.models import Category
from civictrack.llm.client import LLMClient, create_llm_client

logger = logging.getLogger(__name__)

UNKNOWN = "UNKNOWN"

_WORD = re.compile(r"[a-z0-9]+")
_QUOTES = "\"'` \t\n"


@runtime_checkable
class Classifier(Protocol):
    async def suggest_category(self, text: str, candidates: Sequence[Category]) -> str: ...


def match_category(name: str | None, candidates: Sequence[Category]) -> Category | None:
    """Case-insensitive exact match of a suggested name against candidates."""
    if not name or name.strip().upper() == UNKNOWN:
        return None
    key = name.strip().lower()
    for category in candidates:
        if category.name.lower() == key:
            return category
    return None


class KeywordClassifier:
    """Scores each category by how many of its keywords occur in the text.

    The category name counts as a keyword. Highest score wins; ties go to
    the earlier candidate; a zero score is ``UNKNOWN``.
    """

    async def suggest_category(self, text: str, candidates: Sequence[Category]) -> str:
        words = set(_WORD.findall((text or "").lower()))
        lowered = (text or "").lower()
        best: Category | None = None
        best_score = 0
        for category in candidates:
            score = 0
            for kw in [category.name.lower(), *category.keywords]:
                if " " in kw:
                    score += kw in lowered
                else:
                    score += kw in words
            if score > best_score:
                best, best_score = category, score
        return best.name if best else UNKNOWN


class LLMClassifier:
    """Asks an LLM to pick the single best category name.

    Args:
        client: Any configured :class:`LLMClient`.
        max_description_chars: Report text is collapsed and truncated to this length.
    """

    def __init__(self, client: LLMClient, max_description_chars: int = 2000) -> None:
        self._client = client
        self._max_chars = max_description_chars

    def build_prompt(self, text: str, candidates: Sequence[Category]) -> str:
        description = re.sub(r"\s+", " ", text)[: self._max_chars]
        return "\n".join(
            [
                "You are an assistant for classifying citizen civic issue reports.",
                f"Available categories: {', '.join(c.name for c in candidates)}",
                f'Report description: "{description}"',
                "Return ONLY the single best matching category name verbatim from the list. "
                f"If nothing fits, respond with {UNKNOWN}.",
                "Answer:",
            ]
        )

    async def suggest_category(self, text: str, candidates: Sequence[Category]) -> str:
        if not text or not candidates:
            return UNKNOWN
        raw = await self._client.complete(self.build_prompt(text, candidates))
        first = re.split(r"[\n,]", raw.strip(_QUOTES))[0].strip(_QUOTES)
        match = match_category(first, candidates)
        if match is None:
            logger.info("Classifier answer %r matched no category", first)
            return UNKNOWN
        return match.name


def create_classifier(config: ClassifierConfig, llm_config: LLMConfig) -> Classifier | None:
    """Build the classifier named by ``config.provider`` (``keyword``, ``llm`` or ``none``)."""
    provider = config.provider.lower()
    if provider == "none":
        return None
    if provider == "keyword":
        return KeywordClassifier()
    if provider == "llm":
        return LLMClassifier(
            create_llm_client(llm_config),
            max_description_chars=config.max_description_chars,
        )
    raise ValueError(f"Unknown classifier provider {config.provider!r}")
