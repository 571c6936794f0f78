#!/usr/bin/env python3
"""
Tests for the bidirectional Markov Chain.

The chain is exercised through its public operations; the mappings are
inspected directly where the learned state itself is the subject.
"""

import copy
import io
import random
from unittest.mock import MagicMock

import pytest
from sbot.models.markov_chain.chain import Chain
from sbot.models.markov_chain.prefix import EMPTY, Prefix

CORPUS = "the cat sat on the mat"
LONG_CORPUS = (
    "the quick brown fox jumps over the lazy dog and the quick red fox "
    "runs past the lazy cat while the brown dog sleeps"
)


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    return MagicMock()


@pytest.fixture
def chain(mock_logger):
    """A chain of prefix length 2 trained on the reference sentence"""
    model = Chain(2, logger=mock_logger)
    model.build(CORPUS)
    return model


def snapshot(model):
    return (
        {prefix: list(words) for prefix, words in model.forward.items()},
        {prefix: list(words) for prefix, words in model.backward.items()},
    )


def contains_run(words, run):
    return any(words[i:i + len(run)] == run for i in range(len(words) - len(run) + 1))


class TestConstruction:

    def test_prefix_len_is_kept(self):
        model = Chain(3)
        assert model.prefix_len == 3
        assert model.forward == {}
        assert model.backward == {}

    def test_prefix_len_is_read_only(self):
        model = Chain(3)
        with pytest.raises(AttributeError):
            model.prefix_len = 4

    @pytest.mark.parametrize("prefix_len", [0, -1, "2", 1.5, True, None])
    def test_invalid_prefix_len(self, prefix_len):
        with pytest.raises(ValueError, match="prefix_len must be a positive integer"):
            Chain(prefix_len)

    def test_default_rng_is_random_module(self):
        assert Chain(1).rng is random


class TestBuild:

    def test_forward_mapping(self, chain):
        assert chain.forward[Prefix((EMPTY, EMPTY))] == ["the"]
        assert chain.forward[Prefix((EMPTY, "the"))] == ["cat"]
        assert chain.forward[Prefix(("the", "cat"))] == ["sat"]
        assert chain.forward[Prefix(("cat", "sat"))] == ["on"]
        assert chain.forward[Prefix(("sat", "on"))] == ["the"]
        assert chain.forward[Prefix(("on", "the"))] == ["mat"]
        assert len(chain.forward) == 6

    def test_backward_mapping(self, chain):
        assert chain.backward[Prefix((EMPTY, "the"))] == [EMPTY]
        assert chain.backward[Prefix(("the", "cat"))] == [EMPTY]
        assert chain.backward[Prefix(("cat", "sat"))] == ["the"]
        assert chain.backward[Prefix(("sat", "on"))] == ["cat"]
        assert chain.backward[Prefix(("on", "the"))] == ["sat"]
        assert chain.backward[Prefix(("the", "mat"))] == ["on"]
        assert len(chain.backward) == 6

    def test_one_entry_per_word_in_each_mapping(self):
        model = Chain(2)
        model.build(LONG_CORPUS)

        stats = model.stats()
        assert stats["forward_entries"] == len(LONG_CORPUS.split())
        assert stats["backward_entries"] == len(LONG_CORPUS.split())

    def test_duplicates_are_kept_in_order(self):
        model = Chain(1)
        model.build("x a")
        model.build("x a")
        model.build("x b")

        assert model.forward[Prefix((EMPTY,))] == ["x", "x", "x"]
        assert model.forward[Prefix(("x",))] == ["a", "a", "b"]

    def test_context_does_not_carry_over_between_builds(self):
        model = Chain(1)
        model.build("a b")
        model.build("c d")

        assert Prefix(("b",)) not in model.forward
        assert model.forward[Prefix((EMPTY,))] == ["a", "c"]
        assert model.backward[Prefix(("c",))] == [EMPTY]

    def test_build_from_stream(self):
        model = Chain(2)
        model.build(io.StringIO("the cat\nsat on\nthe mat\n"))

        reference = Chain(2)
        reference.build(CORPUS)
        assert snapshot(model) == snapshot(reference)

    def test_build_empty_input(self, mock_logger):
        model = Chain(2, logger=mock_logger)
        model.build("")
        model.build("   ")

        assert model.forward == {}
        assert model.backward == {}
        mock_logger.warning.assert_not_called()

    def test_build_stops_on_undecodable_stream(self, mock_logger):
        model = Chain(2, logger=mock_logger)
        stream = io.TextIOWrapper(io.BytesIO(b"good words \xff\xfe bad"), encoding="utf-8")

        model.build(stream)

        assert model.forward == {}
        mock_logger.warning.assert_called_once()

    def test_build_logs_metrics(self, chain, mock_logger):
        mock_logger.debug.assert_called()
        _, kwargs = mock_logger.debug.call_args
        assert kwargs["extra"]["metrics"]["words"] == 6


class TestGenerate:

    def test_generate_follows_single_path(self, chain):
        assert chain.generate(100) == CORPUS

    def test_generate_respects_word_limit(self, chain):
        assert chain.generate(3) == "the cat sat"

    @pytest.mark.parametrize("n", [0, -5])
    def test_generate_non_positive(self, chain, n):
        assert chain.generate(n) == ""

    @pytest.mark.parametrize("n", [0, 1, 50])
    def test_generate_on_cold_chain(self, n):
        assert Chain(3).generate(n) == ""

    def test_generate_only_uses_learned_words(self):
        model = Chain(1, rng=random.Random(3))
        model.build(LONG_CORPUS)
        vocabulary = set(LONG_CORPUS.split())

        for _ in range(20):
            words = model.generate(15).split()
            assert 1 <= len(words) <= 15
            assert set(words) <= vocabulary

    def test_generate_samples_from_candidate_list(self):
        rng = MagicMock()
        rng.choice.side_effect = lambda choices: choices[-1]
        model = Chain(1, rng=rng)
        model.build("x a")
        model.build("y b")

        assert model.generate(5) == "y b"
        rng.choice.assert_any_call(["x", "y"])

    def test_generate_is_deterministic_with_seeded_rng(self):
        model = Chain(1)
        model.build(LONG_CORPUS)

        model.rng = random.Random(42)
        first = [model.generate(20) for _ in range(5)]
        model.rng = random.Random(42)
        second = [model.generate(20) for _ in range(5)]

        assert first == second


class TestFindAnchor:

    def test_no_match(self, chain):
        assert chain.find_anchor("zzznotfound") is None

    def test_case_insensitive(self, chain):
        assert chain.find_anchor("CAT SAT") == Prefix(("cat", "sat"))

    def test_last_match_in_insertion_order_wins(self):
        model = Chain(1)
        model.build("a b")
        model.build("x ab y")

        assert model.find_anchor("a") == Prefix(("ab",))

    def test_only_forward_contexts_are_scanned(self, chain):
        # "the mat" is only ever a backward context
        assert chain.find_anchor("mat") is None

    def test_empty_keyword_matches_last_context(self, chain):
        assert chain.find_anchor("") == Prefix(("on", "the"))


class TestGenerateWithKeyword:

    def test_unknown_keyword(self, chain):
        assert chain.generate_with_keyword("zzznotfound", 10) == ""

    def test_cold_chain(self):
        assert Chain(2).generate_with_keyword("cat", 10) == ""

    def test_extends_in_both_directions(self, chain):
        assert chain.generate_with_keyword("sat", 10) == CORPUS
        assert chain.generate_with_keyword("ON", 10) == CORPUS

    def test_zero_extension_returns_anchor(self, chain):
        assert chain.generate_with_keyword("sat", 0) == "sat on"

    def test_extension_limit_applies_per_direction(self, chain):
        assert chain.generate_with_keyword("sat", 1) == "cat sat on the"

    def test_anchor_with_empty_slots(self):
        model = Chain(3)
        model.build("hello world")

        assert model.generate_with_keyword("hello", 10) == "hello world"

    def test_backward_stops_at_start_of_corpus_unit(self):
        model = Chain(1)
        model.build("start middle end")

        assert model.generate_with_keyword("middle", 10) == "start middle end"

    @pytest.mark.parametrize("seed", range(10))
    def test_output_bounds_and_anchor(self, seed):
        model = Chain(2, rng=random.Random(seed))
        model.build(LONG_CORPUS)
        model.build("a brown fox is quick and the brown fox is lazy")
        n = 3

        anchor = model.find_anchor("brown fox")
        words = model.generate_with_keyword("brown fox", n).split()

        assert anchor.tokens() == ["brown", "fox"]
        assert model.prefix_len <= len(words) <= model.prefix_len + 2 * n
        assert contains_run(words, anchor.tokens())

    def test_deterministic_with_seeded_rng(self):
        first = Chain(2, rng=random.Random(5))
        second = Chain(2, rng=random.Random(5))
        for model in (first, second):
            model.build(LONG_CORPUS)

        assert [first.generate_with_keyword("the", 8) for _ in range(5)] == \
            [second.generate_with_keyword("the", 8) for _ in range(5)]


def test_generation_never_mutates_mappings():
    model = Chain(2, rng=random.Random(1))
    model.build(LONG_CORPUS)
    model.build(CORPUS)
    before = snapshot(model)
    stats = model.stats()

    for keyword in ("the", "fox", "zzznotfound", "", "LAZY"):
        for n in (0, 1, 5, 50):
            model.generate(n)
            model.generate_with_keyword(keyword, n)

    assert snapshot(model) == before
    assert model.stats() == stats


def test_empty_sentinel_survives_copy():
    assert copy.deepcopy(EMPTY) is EMPTY
    assert copy.deepcopy(Prefix.empty(2)) == Prefix.empty(2)
