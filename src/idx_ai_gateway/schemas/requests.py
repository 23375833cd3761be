"""Request bodies for the capability and admin endpoints.

Capability fields are optional at the schema level so a missing field
surfaces as the capability's own "missing parameters" error, after the
API key has been checked.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PromptRequest(BaseModel):
    """Prompt AI request."""

    prompt: Optional[str] = Field(default=None, description="Natural-language prompt")


class TranslateRequest(BaseModel):
    """Translate AI request, shared by every tier."""

    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = Field(default=None, description="Content to translate")
    base_language: Optional[str] = Field(default=None, alias="baseLanguage", description="Source language code")
    target_language: Optional[str] = Field(default=None, alias="targetLanguage", description="Target language code")


class SearchRequest(BaseModel):
    """Search AI request."""

    prompt: Optional[str] = Field(default=None, description="Natural-language question")
    connection: Optional[Any] = Field(default=None, description="Dialect-specific connection descriptor")
    table: Optional[str] = Field(default=None, description="Table or collection to query")


class ClientCreate(BaseModel):
    """Administrative client creation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    domain: Optional[str] = None
    idx_ai_type: Optional[str] = Field(default=None, alias="idxAiType")
    translation_type: Optional[str] = Field(default=None, alias="translationType")
    idxdb: Optional[str] = None
    ai_model: Optional[str] = Field(default=None, alias="aiModel")
    plan_type: Optional[str] = Field(default=None, alias="planType")
    token_limit: Optional[int] = Field(default=None, alias="tokenLimit")


class ClientUpdate(ClientCreate):
    """Administrative client edit; unset fields keep their value."""

    regenerate_api_key: bool = Field(default=False, alias="regenerateApiKey")
