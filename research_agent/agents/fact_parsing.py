"""Fact extraction strategies.

Each strategy is a pure function that returns an empty list when it cannot
produce anything, so callers can try them in order.
"""

from __future__ import annotations

import json
import re
from typing import Callable

MARKER_PREFIXES = ("FACT:", "- ", "*")
HEURISTIC_MAX_FACTS = 5
HEURISTIC_FALLBACK_SENTENCES = 3
IDEAL_SENTENCE_LENGTH = 140
MIN_SENTENCE_LENGTH = 50
MAX_SENTENCE_LENGTH = 280


def strip_code_fences(text: str) -> str:
    trimmed = text.strip()
    if not trimmed.startswith("```"):
        return trimmed
    lines = trimmed.splitlines()[1:]
    while lines and (not lines[-1].strip() or lines[-1].strip().startswith("```")):
        lines.pop()
    return "\n".join(lines)


def parse_json_facts(text: str) -> list[str]:
    """Facts from a ``{"facts": [...]}`` payload."""
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return []
    if not isinstance(payload, dict):
        return []
    raw_facts = payload.get("facts")
    if not isinstance(raw_facts, list):
        return []
    return [fact.strip() for fact in raw_facts if isinstance(fact, str) and fact.strip()]


def parse_marker_facts(text: str) -> list[str]:
    """Facts from lines starting with ``FACT:``, ``- `` or ``*``."""
    facts: list[str] = []
    for line in text.splitlines():
        line = line.strip()
        if not line.startswith(MARKER_PREFIXES):
            continue
        for prefix in MARKER_PREFIXES:
            line = line.removeprefix(prefix)
        line = line.strip()
        if line:
            facts.append(line)
    return facts


def split_sentences(text: str) -> list[str]:
    text = re.sub(r"\s{2,}", " ", text.replace("\n", " ")).strip()
    if not text:
        return []
    return [s.strip() for s in re.split(r"(?<=[.!?])\s+", text) if s.strip()]


def query_keywords(query: str) -> set[str]:
    return {token for token in re.split(r"[^a-z0-9]+", query.lower()) if len(token) >= 4}


def heuristic_facts(content: str, query: str) -> list[str]:
    """Pick query-relevant, reasonably sized sentences straight from the content."""
    sentences = split_sentences(content)
    if not sentences:
        return []

    keywords = query_keywords(query)
    scored: list[tuple[str, int]] = []
    for sentence in sentences:
        lowered = sentence.lower()
        score = sum(1 for keyword in keywords if keyword in lowered)
        length_ok = MIN_SENTENCE_LENGTH <= len(sentence) <= MAX_SENTENCE_LENGTH
        if score > 0 or length_ok:
            scored.append((sentence, score))

    scored.sort(key=lambda item: (-item[1], abs(len(item[0]) - IDEAL_SENTENCE_LENGTH)))
    picked = list(dict.fromkeys(sentence for sentence, _ in scored))[:HEURISTIC_MAX_FACTS]
    return picked or sentences[:HEURISTIC_FALLBACK_SENTENCES]


# Tried in order against the model response.
RESPONSE_STRATEGIES: tuple[Callable[[str], list[str]], ...] = (
    parse_json_facts,
    parse_marker_facts,
)


def facts_from_response(response: str) -> list[str]:
    text = strip_code_fences(response)
    for strategy in RESPONSE_STRATEGIES:
        facts = strategy(text)
        if facts:
            return facts
    return []
