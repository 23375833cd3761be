"""Pricing, token counting, usage metering and reporting."""

from .geolocation import Geolocator, client_ip_from_headers
from .metering import Usage, UsageMeter
from .pricing import BASIC_TRANSLATION_RATES, LLM_RATES, RatePair, compute_cost
from .tokens import CharacterCounter, TokenCounter
from .usage_report import UsageReporter

__all__ = [
    "Geolocator",
    "client_ip_from_headers",
    "Usage",
    "UsageMeter",
    "BASIC_TRANSLATION_RATES",
    "LLM_RATES",
    "RatePair",
    "compute_cost",
    "CharacterCounter",
    "TokenCounter",
    "UsageReporter",
]
