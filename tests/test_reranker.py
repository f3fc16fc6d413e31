"""Tests for the keyword re-ranker."""

import pytest

from minirag.src.core.reranker import KeywordReranker


def _pool(scores_and_texts):
    return [(score, text, i, None) for i, (score, text) in enumerate(scores_and_texts, 1)]


class TestKeywordReranker:
    def test_keywords_drop_stop_words(self):
        assert KeywordReranker().keywords("What is the capital of Sweden?") == ["capital", "sweden"]

    def test_boost_per_hit(self):
        reranker = KeywordReranker(per_hit=0.05, cap=0.2)
        assert reranker.boost(["capital", "sweden"], "Stockholm is the capital of Sweden.") == pytest.approx(0.10)

    def test_boost_is_substring_match(self):
        assert KeywordReranker().boost(["capital"], "Capitalisation rules") == pytest.approx(0.05)

    def test_boost_is_capped(self):
        reranker = KeywordReranker(per_hit=0.05, cap=0.2)
        keywords = ["alpha", "bravo", "charlie", "delta", "echo", "foxtrot"]
        assert reranker.boost(keywords, " ".join(keywords)) == pytest.approx(0.2)

    def test_only_stop_words_leaves_scores_unchanged(self):
        pool = _pool([(0.9, "the cat"), (0.8, "what is this")])
        result = KeywordReranker().rerank("what is the", pool, k=2)
        assert [score for score, *_ in result] == [0.9, 0.8]

    def test_keyword_rich_candidate_displaces_higher_vector_score(self):
        entries = [(0.90 - i * 0.01, f"unrelated passage number {i}") for i in range(12)]
        entries[8] = (0.82, "Stockholm is the capital of Sweden with a population near one million.")
        result = KeywordReranker().rerank("capital sweden stockholm population", _pool(entries), k=4)

        assert [chunk_id for _, _, chunk_id, _ in result] == [9, 1, 2, 3]
        assert result[0][0] == pytest.approx(1.02)
        assert 4 not in [chunk_id for _, _, chunk_id, _ in result]

    def test_blank_candidates_dropped(self):
        pool = _pool([(0.9, "   "), (0.5, "real text")])
        result = KeywordReranker().rerank("query words", pool, k=4)
        assert [text for _, text, _, _ in result] == ["real text"]

    def test_ties_keep_pool_order(self):
        pool = _pool([(0.5, "first"), (0.5, "second"), (0.5, "third")])
        result = KeywordReranker().rerank("nothing matches here", pool, k=3)
        assert [chunk_id for _, _, chunk_id, _ in result] == [1, 2, 3]

    def test_truncates_to_k(self):
        pool = _pool([(0.9 - i * 0.1, f"text {i}") for i in range(6)])
        assert len(KeywordReranker().rerank("zzz", pool, k=2)) == 2

    def test_negative_boost_rejected(self):
        with pytest.raises(ValueError):
            KeywordReranker(per_hit=-0.1)
