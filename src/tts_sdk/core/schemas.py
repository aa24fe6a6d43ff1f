from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SynthesizeOptionsSchema(BaseModel):
    """
    Structural checks on caller input. Voice values are validated later by the
    adapter (they may be enums or Custom wrappers), so they are not declared here.
    """

    model_config = ConfigDict(extra="ignore")

    text: str
    language: Optional[str] = None
    speed: Optional[float] = Field(default=None, gt=0, strict=True, allow_inf_nan=False)
    instructions: Optional[str] = None
    ssml: Optional[str] = None
    output_format: Optional[str] = None
    sample_rate: Optional[int] = Field(default=None, gt=0, strict=True)
    provider_options: Optional[Dict[str, Dict[str, Any]]] = None
    headers: Optional[Dict[str, str]] = None
    max_retries: Optional[int] = Field(default=None, ge=0, le=5, strict=True)

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be empty")
        return v
