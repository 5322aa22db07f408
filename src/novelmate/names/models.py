"""Name candidates produced by detection."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from novelmate.storage.models import DETECTED_NAME_TYPES


class NameCandidate(BaseModel):
    """A proper-noun candidate found in source text.

    Accepts the camelCase keys the extraction model is asked to return
    (``originalText``, ``suggestedTranslation``) as well as field names.
    """

    model_config = ConfigDict(populate_by_name=True)

    original_text: str = Field(alias="originalText", min_length=1)
    type: str = Field(default="unknown")
    suggested_translation: str = Field(default="", alias="suggestedTranslation")
    context: Optional[str] = None

    @field_validator("original_text")
    @classmethod
    def _strip_original(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("originalText must not be blank")
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        if not isinstance(value, str):
            return "unknown"
        value = value.strip().lower()
        return value if value in DETECTED_NAME_TYPES else "unknown"

    @field_validator("suggested_translation", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()
