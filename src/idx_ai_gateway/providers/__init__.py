"""Upstream providers."""
from .completion import CompletionClient
from .translator import TextTranslator

__all__ = ["CompletionClient", "TextTranslator"]
