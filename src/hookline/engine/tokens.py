"""Token counting implementations for Hookline.

Provides TiktokenCounter (production use) and NullTokenCounter (testing or
counting disabled).  Both implement the TokenCounter protocol from
protocols.py.
"""

from __future__ import annotations


class TiktokenCounter:
    """Token counter using tiktoken.

    Lazily imports tiktoken and resolves the encoding on first use, so a
    session that never loads skill content never touches the tokenizer.

    Implements the TokenCounter protocol.
    """

    def __init__(self, encoding_name: str = "o200k_base") -> None:
        self._encoding_name = encoding_name
        self._enc = None

    @property
    def encoding_name(self) -> str:
        """tiktoken encoding applied to skill content."""
        return self._encoding_name

    def _encoding(self):
        if self._enc is None:
            import tiktoken

            self._enc = tiktoken.get_encoding(self._encoding_name)
        return self._enc

    def count_text(self, text: str) -> int:
        """Count tokens in one piece of loaded skill content.

        Returns:
            Token count; 0 for empty content, without loading the encoding.
        """
        if not text:
            return 0
        return len(self._encoding().encode(text))


class NullTokenCounter:
    """Counter used when token accounting is disabled.

    Implements the TokenCounter protocol.
    """

    def count_text(self, text: str) -> int:
        """Always returns 0."""
        return 0


def make_token_counter(encoding_name: str | None) -> TiktokenCounter | NullTokenCounter:
    """Counter for a configured encoding name; ``None`` disables counting."""
    if encoding_name is None:
        return NullTokenCounter()
    return TiktokenCounter(encoding_name=encoding_name)
