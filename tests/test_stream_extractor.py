"""Tests for incremental extraction of recommendations from a chunked model stream."""

import json
import random

import pytest
from conftest import document, make_product, reco

from app.domain.services.stream_extractor import (
    ReconciliationError,
    RecommendationStreamExtractor,
)


@pytest.fixture
def candidates():
    return [make_product(pid) for pid in ("A", "B", "C", "D")]


def run(extractor, chunks):
    """Feed every chunk, then reconcile; returns (incremental ids, late ids)."""
    streamed = []
    for chunk in chunks:
        streamed.extend(item.product.id for item in extractor.feed(chunk))
    late = [item.product.id for item in extractor.finish()]
    return streamed, late


def split_every(text, size):
    return [text[i:i + size] for i in range(0, len(text), size)]


def test_two_chunk_scenario(candidates):
    ex = RecommendationStreamExtractor(candidates)
    first = ex.feed('{"recommendations":[{"productId":"A","explanation":"x","relevanceScore":90,"matchReasons":["r1"]}')
    assert [i.product.id for i in first] == ["A"]
    assert first[0].explanation == "x"
    assert first[0].relevance_score == 90
    assert first[0].match_reasons == ["r1"]

    second = ex.feed(',{"productId":"B","explanation":"y","relevanceScore":80,"matchReasons":["r2"]}]}')
    assert [i.product.id for i in second] == ["B"]
    assert ex.finish() == []
    assert ex.sent_count == 2


def test_nothing_before_array_start(candidates):
    ex = RecommendationStreamExtractor(candidates)
    assert ex.feed('{"recommend') == []
    assert ex.feed('ations" : ') == []
    assert [i.product.id for i in ex.feed('[' + json.dumps(reco("C")))] == ["C"]


def test_incomplete_object_is_deferred(candidates):
    ex = RecommendationStreamExtractor(candidates)
    assert ex.feed('{"recommendations":[{"productId":"A","explanation":"x",') == []
    assert ex.sent_count == 0
    items = ex.feed('"relevanceScore":70,"matchReasons":[]}')
    assert [i.product.id for i in items] == ["A"]


@pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 64, 10_000])
def test_chunking_does_not_change_result(candidates, size):
    text = document(reco("B", 95), reco("A", 90), reco("D", 70, explanation="nested {braces} and \"quotes\""))
    ex = RecommendationStreamExtractor(candidates)
    streamed, late = run(ex, split_every(text, size))
    assert streamed == ["B", "A", "D"]
    assert late == []


def test_random_chunk_boundaries_match_whole_document(candidates):
    text = "```json\n" + document(reco("C"), reco("Z"), reco("A"), reco("B")) + "\n```"
    whole = RecommendationStreamExtractor(candidates)
    expected, _ = run(whole, [text])

    rng = random.Random(1234)
    for _ in range(25):
        cuts = sorted(rng.sample(range(1, len(text)), 12))
        chunks = [text[i:j] for i, j in zip([0, *cuts], [*cuts, len(text)])]
        ex = RecommendationStreamExtractor(candidates)
        streamed, late = run(ex, chunks)
        assert streamed + late == expected == ["C", "A", "B"]


def test_braces_inside_strings_do_not_split_objects(candidates):
    text = document(reco("A", explanation="}{ not an object }"), reco("B", reasons=["{", "}"]))
    ex = RecommendationStreamExtractor(candidates)
    streamed, late = run(ex, split_every(text, 5))
    assert streamed == ["A", "B"]
    assert late == []


def test_unknown_product_is_dropped_and_does_not_block(candidates):
    ex = RecommendationStreamExtractor(candidates)
    items = ex.feed(document(reco("Z"), reco("A")))
    assert [i.product.id for i in items] == ["A"]
    assert ex.sent_count == 2
    assert ex.finish() == []
    assert ex.emitted_count == 1


def test_duplicate_product_id_emitted_once(candidates):
    ex = RecommendationStreamExtractor(candidates)
    streamed, late = run(ex, [document(reco("A"), reco("A", 50), reco("B"))])
    assert streamed == ["A", "B"]
    assert late == []


def test_invalid_object_holds_watermark_but_not_later_items(candidates):
    bad = {"productId": "C", "explanation": "", "relevanceScore": 50, "matchReasons": []}
    ex = RecommendationStreamExtractor(candidates)
    items = ex.feed('{"recommendations":[' + json.dumps(bad) + "," + json.dumps(reco("A")))
    assert [i.product.id for i in items] == ["A"]
    assert ex.sent_count == 0  # the invalid element is still pending

    # later chunks never re-emit A
    assert [i.product.id for i in ex.feed("," + json.dumps(reco("B")))] == ["B"]
    assert ex.feed("]}") == []


@pytest.mark.parametrize("bad", [
    {"productId": "A", "explanation": "x", "relevanceScore": 101, "matchReasons": []},
    {"productId": "A", "explanation": "x", "relevanceScore": -1, "matchReasons": []},
    {"productId": "A", "explanation": "x", "relevanceScore": "90", "matchReasons": []},
    {"productId": "A", "explanation": "x", "relevanceScore": 90, "matchReasons": "r1"},
    {"productId": "A", "explanation": "x", "relevanceScore": 90, "matchReasons": [1, 2]},
    {"productId": "", "explanation": "x", "relevanceScore": 90, "matchReasons": []},
    {"explanation": "x", "relevanceScore": 90, "matchReasons": []},
])
def test_schema_violations_are_not_emitted(candidates, bad):
    ex = RecommendationStreamExtractor(candidates)
    assert ex.feed('{"recommendations":[' + json.dumps(bad) + "]}") == []
    with pytest.raises(ReconciliationError):
        ex.finish()


def test_reconciliation_recovers_items_missed_by_scan(candidates):
    # an escaped key is the same JSON document but hides the array from the scanner
    text = '{"recommendation\\u0073": [' + json.dumps(reco("A")) + ", " + json.dumps(reco("B")) + "]}"
    ex = RecommendationStreamExtractor(candidates)
    streamed, late = run(ex, split_every(text, 10))
    assert streamed == []
    assert late == ["A", "B"]
    assert ex.sent_count == 2


def test_reconciliation_errors_on_garbage(candidates):
    ex = RecommendationStreamExtractor(candidates)
    ex.feed("I'm sorry, I cannot help with that.")
    with pytest.raises(ReconciliationError):
        ex.finish()


def test_reconciliation_errors_on_truncated_document(candidates):
    ex = RecommendationStreamExtractor(candidates)
    items = ex.feed('{"recommendations":[' + json.dumps(reco("A")) + ',{"productId":"B"')
    assert [i.product.id for i in items] == ["A"]
    with pytest.raises(ReconciliationError):
        ex.finish()
    assert ex.emitted_count == 1


def test_code_fences_are_tolerated(candidates):
    ex = RecommendationStreamExtractor(candidates)
    streamed, late = run(ex, ["```json\n", document(reco("D")), "\n```"])
    assert streamed == ["D"]
    assert late == []


def test_sent_count_is_monotonic_and_ids_unique(candidates):
    text = document(reco("A"), reco("Z"), reco("B"), reco("A"), reco("C"))
    ex = RecommendationStreamExtractor(candidates)
    seen, last = [], 0
    for chunk in split_every(text, 3):
        seen.extend(i.product.id for i in ex.feed(chunk))
        assert ex.sent_count >= last
        last = ex.sent_count
    seen.extend(i.product.id for i in ex.finish())
    assert seen == ["A", "B", "C"]
    assert len(seen) == len(set(seen))
    assert set(seen) <= {"A", "B", "C", "D"}
