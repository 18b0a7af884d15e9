"""Pydantic models for the generateContent request and response."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError


class RequestPart(BaseModel):
    text: str


class RequestContent(BaseModel):
    parts: list[RequestPart]


class GenerateContentRequest(BaseModel):
    """Request body: {"contents": [{"parts": [{"text": prompt}]}]}."""

    contents: list[RequestContent]

    @classmethod
    def from_prompt(cls, prompt: str) -> "GenerateContentRequest":
        return cls(contents=[RequestContent(parts=[RequestPart(text=prompt)])])


# Response levels past the first candidate and first part are never read, so
# they stay unvalidated (Any) and a malformed sibling cannot hide the answer.


class Part(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: Any = None

    def as_text(self) -> Optional[str]:
        """Text of the part; numbers are stringified, empty is None."""
        if isinstance(self.text, bool) or not self.text:
            return None
        if isinstance(self.text, str):
            return self.text
        if isinstance(self.text, (int, float)):
            return str(self.text)
        return None


class Content(BaseModel):
    model_config = ConfigDict(extra="ignore")

    parts: list[Any] = []


class Candidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Optional[Content] = None


class GenerateContentResponse(BaseModel):
    """Response body. Only candidates[0].content.parts[0].text is used."""

    model_config = ConfigDict(extra="ignore")

    candidates: list[Any] = []

    def first_text(self) -> Optional[str]:
        """Text of the first part of the first candidate, if present."""
        if not self.candidates:
            return None
        try:
            candidate = Candidate.model_validate(self.candidates[0])
            content = candidate.content
            if content is None or not content.parts:
                return None
            part = Part.model_validate(content.parts[0])
        except ValidationError:
            return None
        return part.as_text()
