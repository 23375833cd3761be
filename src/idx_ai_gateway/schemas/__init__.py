"""Enumerations and request schemas."""

from .enums import Capability, Dialect, PlanType, SearchTarget, TranslationTier
from .requests import ClientCreate, ClientUpdate, PromptRequest, SearchRequest, TranslateRequest

__all__ = [
    "Capability",
    "Dialect",
    "PlanType",
    "SearchTarget",
    "TranslationTier",
    "ClientCreate",
    "ClientUpdate",
    "PromptRequest",
    "SearchRequest",
    "TranslateRequest",
]
