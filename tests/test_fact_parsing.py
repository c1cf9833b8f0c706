from __future__ import annotations

from research_agent.agents.fact_parsing import (
    facts_from_response,
    heuristic_facts,
    parse_json_facts,
    parse_marker_facts,
    query_keywords,
    strip_code_fences,
)


def test_parse_json_facts_returns_facts_in_order():
    assert parse_json_facts('{"facts": ["A", "B"]}') == ["A", "B"]


def test_parse_json_facts_trims_and_drops_blank_entries():
    assert parse_json_facts('{"facts": [" A ", "   ", "B", 3]}') == ["A", "B"]


def test_parse_json_facts_rejects_other_shapes():
    assert parse_json_facts("not json") == []
    assert parse_json_facts('["A", "B"]') == []
    assert parse_json_facts('{"facts": "A"}') == []
    assert parse_json_facts('{"items": ["A"]}') == []


def test_strip_code_fences_removes_json_fence():
    fenced = '```json\n{"facts": ["A"]}\n```\n'
    assert strip_code_fences(fenced) == '{"facts": ["A"]}'
    assert strip_code_fences("  plain  ") == "plain"


def test_parse_marker_facts_handles_all_prefixes():
    text = "Intro line\nFACT: A\n- B\n* C\n-not a bullet\nFACT:   \n"
    assert parse_marker_facts(text) == ["A", "B", "C"]


def test_facts_from_response_prefers_json():
    assert facts_from_response('```\n{"facts": ["A", "B"]}\n```') == ["A", "B"]


def test_facts_from_response_falls_back_to_markers():
    assert facts_from_response("FACT: A\nFACT: B") == ["A", "B"]


def test_facts_from_response_empty_json_falls_back_to_markers():
    assert facts_from_response('{"facts": []}') == []
    assert facts_from_response("Nothing useful here.") == []


def test_query_keywords_keeps_tokens_of_four_or_more_chars():
    assert query_keywords("How do Solar-Panel cells work in 2024?") == {"solar", "panel", "cells", "work", "2024"}


def test_heuristic_facts_ranks_keyword_sentences_first():
    content = (
        "Solar panels convert sunlight into electricity using photovoltaic cells. "
        "The weather was nice. "
        "Efficiency has improved steadily over the last decade of research and production. "
        "Unrelated filler text that has nothing to do with the topic but is long enough to count."
    )

    facts = heuristic_facts(content, "solar panel efficiency")

    assert facts[0] == "Solar panels convert sunlight into electricity using photovoltaic cells."
    assert "The weather was nice." not in facts
    assert len(facts) <= 5


def test_heuristic_facts_returns_at_most_five():
    sentence = "Battery chemistry sentence number {} talks about lithium battery storage."
    content = " ".join(sentence.format(i) for i in range(12))

    facts = heuristic_facts(content, "battery storage")

    assert len(facts) == 5
    assert len(set(facts)) == 5


def test_heuristic_facts_deduplicates_sentences():
    content = "Graphene is a strong material used in research. " * 3

    assert heuristic_facts(content, "graphene") == ["Graphene is a strong material used in research."]


def test_heuristic_facts_falls_back_to_first_sentences():
    content = "Hi. Yo. Ok. Hm."

    assert heuristic_facts(content, "zzzz") == ["Hi.", "Yo.", "Ok."]


def test_heuristic_facts_on_blank_content():
    assert heuristic_facts("   \n  ", "anything") == []


def test_facts_from_response_ignores_plain_prose():
    assert facts_from_response("Some prose. More prose.") == []
