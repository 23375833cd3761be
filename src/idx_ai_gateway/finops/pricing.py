"""Fixed per-million-unit pricing and cost computation."""

from dataclasses import dataclass

ONE_MILLION = 1_000_000


@dataclass(frozen=True)
class RatePair:
    """Input and output price per million units."""

    input_rate: float
    output_rate: float
    unit: str = "tokens"


# Language-model-backed capabilities (prompt, advanced/expert translation, search)
LLM_RATES = RatePair(input_rate=1.10, output_rate=4.40)

# Basic translation bills characters, not tokens
BASIC_TRANSLATION_RATES = RatePair(input_rate=10.00, output_rate=0.0, unit="characters")


def compute_cost(input_units: int, output_units: int, rates: RatePair) -> float:
    """Cost in USD rounded to 6 decimal places."""
    cost = (input_units / ONE_MILLION) * rates.input_rate + (output_units / ONE_MILLION) * rates.output_rate
    return round(cost, 6)
