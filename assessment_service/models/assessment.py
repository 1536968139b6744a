from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Question:
    id: str
    title: str = ""
    kind: str = "text"  # text|comment|radiogroup|checkbox|rating|boolean
    required: bool = False


@dataclass(frozen=True, slots=True)
class Section:
    name: str
    title: str = ""
    questions: tuple[Question, ...] = ()


@dataclass(frozen=True, slots=True)
class Assessment:
    """Read-only assessment definition from the catalog.

    Sections and questions are ordered; the lifecycle engine only uses
    the question identifiers and their total count.
    """

    id: str
    title: str
    description: str = ""
    category: str = "general"
    estimated_time: int = 0  # minutes
    sections: tuple[Section, ...] = ()

    @property
    def total_questions(self) -> int:
        return sum(len(s.questions) for s in self.sections)

    def question_ids(self) -> frozenset[str]:
        return frozenset(q.id for s in self.sections for q in s.questions)
