"""Token counting against a fixed reference tokenizer."""

from functools import lru_cache

import tiktoken


@lru_cache(maxsize=8)
def _encoding_for(model: str) -> "tiktoken.Encoding":
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        return tiktoken.get_encoding("o200k_base")


class TokenCounter:
    """Counts tokens with the tiktoken encoding of a reference model."""

    def __init__(self, model: str = "gpt-4o"):
        self.model = model

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(_encoding_for(self.model).encode(text, disallowed_special=()))


class CharacterCounter:
    """Character length as the token-equivalent unit (basic translation)."""

    def count(self, text: str) -> int:
        return len(text or "")
