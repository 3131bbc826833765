from typing import List, Optional
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_SELECTIONS = 64


class ConfigurationPayload(BaseModel):
    """
    Configuration soumise par le client (non fiable).
    - steps: sélections positionnelles, alignées sur l'ordre des étapes de la fonction
      (None/"" pour une étape optionnelle laissée vide ou une étape additive).
    - extras: sélections de l'étape additive.
    - price: informatif uniquement, jamais utilisé pour facturer.
    """
    model_config = ConfigDict(extra="ignore")

    function_option_id: str = Field(min_length=1, max_length=100)
    steps: List[Optional[str]] = Field(default_factory=list, max_length=MAX_SELECTIONS)
    extras: List[str] = Field(default_factory=list, max_length=MAX_SELECTIONS)
    addon_ids: List[str] = Field(default_factory=list, max_length=MAX_SELECTIONS)
    price: Optional[Decimal] = None

    @field_validator("steps", mode="before")
    @classmethod
    def _normalize_steps(cls, v):
        return [str(s).strip() or None if s is not None else None for s in (v or [])]

    @field_validator("extras", "addon_ids", mode="before")
    @classmethod
    def _normalize_ids(cls, v):
        return [str(s).strip() for s in (v or []) if s is not None and str(s).strip()]


class QuoteRequest(BaseModel):
    configuration: ConfigurationPayload
    locale: str = Field(default="en", max_length=10)
