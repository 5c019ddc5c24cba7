"""Result models for the LLM-output repair pipeline."""

import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class RepairWarnings:
    """Collects non-fatal recovery notes and mirrors each one to a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.messages: List[str] = []
        self._logger = logger or logging.getLogger(__name__)

    def add(self, message: str, *args: Any) -> None:
        text = message % args if args else message
        self.messages.append(text)
        self._logger.warning(text)

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):
        return iter(self.messages)


class ParseErrorPosition(BaseModel):
    pos: int
    lineno: int
    colno: int


class RepairFailure(BaseModel):
    """Structured description of why raw model output could not become a recipe."""

    kind: Literal["syntax", "schema", "transport"]
    message: str
    raw_text_truncated: str = ""
    cleaned_text: Optional[str] = None
    best_effort_candidate: Optional[Dict[str, Any]] = None
    validator_issues: List[str] = Field(default_factory=list)
    position: Optional[ParseErrorPosition] = None
    context: Optional[str] = None


class RecipeParseResult(BaseModel):
    """Outcome of running the repair pipeline over one model response."""

    success: bool
    recipe: Optional[Dict[str, Any]] = None
    failure: Optional[RepairFailure] = None
    used_fallback_extraction: bool = False
    warnings: List[str] = Field(default_factory=list)
