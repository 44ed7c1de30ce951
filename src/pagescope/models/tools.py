from __future__ import annotations

from pydantic import BaseModel, field_validator


class FetchAndAnalyzeInput(BaseModel):
    url: str
    question: str | None = None
    use_cache: bool = True

    @field_validator("url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must not be empty")
        if len(v) > 2048:
            raise ValueError("url must not exceed 2048 characters")
        return v

    @field_validator("question")
    @classmethod
    def _check_question(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) > 2000:
            raise ValueError("question must not exceed 2000 characters")
        # Blank questions are treated as no question at all
        return v or None
