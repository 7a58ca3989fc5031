from __future__ import annotations

import pytest

from batch_classifier import (
    build_classification_prompt,
    classify_batch,
    parse_decisions,
    partition,
    run_curation,
)
from fakes import ScriptedLLM
from errors import BatchClassificationError, LLMAuthError, LLMResponseError, LLMTransientError
from models import Record


def _records(*identifiers: str) -> list[Record]:
    return [Record(identifier=i, title=f"model {i}", abstract_text="desc", source="huggingface") for i in identifiers]


def test_parse_decisions_skips_malformed_line() -> None:
    text = "hf-a KEEP\nthis line is not a decision\nhf-b REMOVE\nhf-c keep\n"
    decisions = parse_decisions(text, ["hf-a", "hf-b", "hf-c"])
    assert decisions.keep_ids == ["hf-a", "hf-c"]
    assert decisions.remove_ids == ["hf-b"]


@pytest.mark.parametrize(
    "line",
    [
        "hf-a KEEP",
        "- hf-a KEEP",
        "1. hf-a KEEP",
        "ID: hf-a KEEP",
        "hf-a: KEEP",
        "  hf-a   KEEP  ",
    ],
)
def test_parse_decisions_tolerates_list_formatting(line: str) -> None:
    assert parse_decisions(line, ["hf-a"]).keep_ids == ["hf-a"]


def test_parse_decisions_ignores_ids_outside_batch_and_keeps_first_verdict() -> None:
    text = "hf-x REMOVE\nhf-a KEEP\nhf-a REMOVE\n"
    decisions = parse_decisions(text, ["hf-a"])
    assert decisions.keep_ids == ["hf-a"]
    assert decisions.remove_ids == []


def test_parse_decisions_handles_ids_containing_keywords() -> None:
    decisions = parse_decisions("hf-keep-remove-model REMOVE", ["hf-keep-remove-model"])
    assert decisions.remove_ids == ["hf-keep-remove-model"]


def test_parse_decisions_without_batch_ids_follows_response_order() -> None:
    decisions = parse_decisions("b KEEP\na KEEP")
    assert decisions.keep_ids == ["b", "a"]


def test_partition() -> None:
    assert [len(b) for b in partition(_records("a", "b", "c", "d", "e"), 2)] == [2, 2, 1]
    with pytest.raises(ValueError):
        partition([], 0)


def test_build_classification_prompt_lists_each_record() -> None:
    record = Record(
        identifier="hf-org-model",
        title="model",
        abstract_text="x" * 1000,
        source_url="https://huggingface.co/org/model",
        tags=("medical",),
    )
    prompt = build_classification_prompt([record])
    assert "1. ID: hf-org-model" in prompt
    assert "Source: https://huggingface.co/org/model" in prompt
    assert "Tags: medical" in prompt
    assert "x" * 1000 not in prompt


def test_classify_batch_sends_one_request_per_batch_with_pauses(fake_clock, rate_limiter) -> None:
    llm = ScriptedLLM(["a KEEP\nb REMOVE", "c KEEP"])
    decisions = classify_batch(_records("a", "b", "c"), 2, client=llm, rate_limiter=rate_limiter)

    assert len(llm.prompts) == 2
    assert decisions.keep_ids == ["a", "c"]
    assert decisions.remove_ids == ["b"]
    assert fake_clock.sleeps == [pytest.approx(1.0)]


def test_classify_batch_failure_carries_partial_results(rate_limiter) -> None:
    llm = ScriptedLLM(["a KEEP\nb REMOVE", LLMTransientError("rate limited")])

    with pytest.raises(BatchClassificationError) as excinfo:
        classify_batch(_records("a", "b", "c"), 2, client=llm, rate_limiter=rate_limiter)

    assert excinfo.value.batch_index == 1
    assert excinfo.value.partial.keep_ids == ["a"]
    assert excinfo.value.partial.remove_ids == ["b"]


def test_classify_batch_auth_error_propagates(rate_limiter) -> None:
    llm = ScriptedLLM([LLMAuthError("bad key")])
    with pytest.raises(LLMAuthError):
        classify_batch(_records("a"), client=llm, rate_limiter=rate_limiter)


def test_classify_batch_empty_reply_leaves_only_that_batch_undecided(rate_limiter) -> None:
    llm = ScriptedLLM([LLMResponseError("no text content"), "hf-3 KEEP\nhf-4 REMOVE"])

    decisions = classify_batch(_records("hf-1", "hf-2", "hf-3", "hf-4"), 2, client=llm, rate_limiter=rate_limiter)

    assert len(llm.prompts) == 2
    assert decisions.keep_ids == ["hf-3"]
    assert decisions.remove_ids == ["hf-4"]
    assert decisions.decided().isdisjoint({"hf-1", "hf-2"})


def test_run_curation_title_filter_then_llm(rate_limiter) -> None:
    records = [
        Record(identifier="hf-tutorial", title="my-first-demo"),
        Record(identifier="hf-clinical", title="Tutorial: BERT for Clinical NER"),
        Record(identifier="hf-chexnet", title="chexnet"),
    ]
    llm = ScriptedLLM(["hf-clinical KEEP\nhf-chexnet ???"])

    result = run_curation(records, 50, client=llm, rate_limiter=rate_limiter)

    assert [r.identifier for r in result.title_removed] == ["hf-tutorial"]
    assert result.keep_ids == ["hf-clinical"]
    assert result.remove_ids == ["hf-tutorial"]
    assert result.unclassified_ids == ["hf-chexnet"]
    assert "hf-tutorial" not in llm.prompts[0]


def test_run_curation_keeps_decisions_before_failed_batch(rate_limiter) -> None:
    llm = ScriptedLLM(["a KEEP", LLMTransientError("timeout")])
    result = run_curation(_records("a", "b"), 1, client=llm, rate_limiter=rate_limiter)

    assert result.keep_ids == ["a"]
    assert result.unclassified_ids == ["b"]
    assert result.failed_batch_index == 1
