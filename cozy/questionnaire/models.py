"""Questionnaire data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class Question:
    id: int
    question: str
    category: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AnsweredQuestion:
    """An answer joined with its question, as fed into AI prompts."""

    question_id: int
    question: str
    category: str
    answer: str

    def to_prompt_dict(self) -> dict[str, str]:
        return {"question": self.question, "category": self.category, "answer": self.answer}
