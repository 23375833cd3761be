from .prompt import PromptService
from .translation import TranslationService

__all__ = ["PromptService", "TranslationService"]
