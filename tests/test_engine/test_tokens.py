"""Tests for token counting implementations.

Tests TiktokenCounter (production) and NullTokenCounter (counting disabled).
Encoding data is never fetched here; TiktokenCounter is only exercised on
paths that do not resolve the encoding.
"""

from __future__ import annotations

from hookline.engine.tokens import NullTokenCounter, TiktokenCounter, make_token_counter
from hookline.protocols import TokenCounter


class TestTiktokenCounter:
    """Tests for the TiktokenCounter implementation."""

    def test_implements_protocol(self) -> None:
        assert isinstance(TiktokenCounter(), TokenCounter)

    def test_encoding_name(self) -> None:
        assert TiktokenCounter().encoding_name == "o200k_base"
        assert TiktokenCounter("cl100k_base").encoding_name == "cl100k_base"

    def test_encoding_resolved_lazily(self) -> None:
        """Construction alone never loads the tokenizer."""
        counter = TiktokenCounter()
        assert counter._enc is None

    def test_empty_text_skips_encoding(self) -> None:
        counter = TiktokenCounter()
        assert counter.count_text("") == 0
        assert counter._enc is None


class TestNullTokenCounter:
    """Tests for the NullTokenCounter."""

    def test_implements_protocol(self) -> None:
        assert isinstance(NullTokenCounter(), TokenCounter)

    def test_always_zero(self) -> None:
        counter = NullTokenCounter()
        assert counter.count_text("") == 0
        assert counter.count_text("a fairly long piece of text " * 50) == 0


class TestMakeTokenCounter:

    def test_none_disables_counting(self) -> None:
        assert isinstance(make_token_counter(None), NullTokenCounter)

    def test_named_encoding(self) -> None:
        counter = make_token_counter("cl100k_base")
        assert isinstance(counter, TiktokenCounter)
        assert counter.encoding_name == "cl100k_base"
