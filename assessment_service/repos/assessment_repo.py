from __future__ import annotations

from typing import Protocol

from assessment_service.models.assessment import Assessment, Question, Section


class AssessmentCatalog(Protocol):
    async def get(self, assessment_id: str) -> Assessment | None: ...
    async def list(self) -> list[Assessment]: ...


class InMemoryAssessmentCatalog:
    """Read-only catalog held in memory; definitions are registered at startup."""

    def __init__(self) -> None:
        self._by_id: dict[str, Assessment] = {}

    async def get(self, assessment_id: str) -> Assessment | None:
        return self._by_id.get(assessment_id)

    async def list(self) -> list[Assessment]:
        return sorted(self._by_id.values(), key=lambda a: a.title)

    def register(self, assessment: Assessment) -> None:
        if assessment.id in self._by_id:
            raise ValueError(f"assessment {assessment.id!r} already registered")
        self._by_id[assessment.id] = assessment


SAMPLE_ASSESSMENT = Assessment(
    id="classroom-practice-self-review",
    title="Classroom Practice Self-Review",
    description=(
        "Reflect on daily routines and learning environments in early "
        "childhood settings."
    ),
    category="teaching_practice",
    estimated_time=20,
    sections=(
        Section(
            name="environment",
            title="Learning Environment",
            questions=(
                Question(
                    id="env_layout", title="Describe your room layout", kind="comment"
                ),
                Question(
                    id="env_materials",
                    title="Materials are accessible to children",
                    kind="rating",
                    required=True,
                ),
                Question(
                    id="env_displays",
                    title="Children's work is displayed at eye level",
                    kind="boolean",
                ),
            ),
        ),
        Section(
            name="routines",
            title="Daily Routines",
            questions=(
                Question(
                    id="routine_transitions",
                    title="How do you support transitions?",
                    kind="comment",
                ),
                Question(
                    id="routine_schedule",
                    title="A visual schedule is posted",
                    kind="boolean",
                ),
            ),
        ),
    ),
)


def seed_sample_assessment(catalog: InMemoryAssessmentCatalog) -> None:
    """Seed the sample assessment for development/testing. Skip if present."""
    if SAMPLE_ASSESSMENT.id not in catalog._by_id:
        catalog.register(SAMPLE_ASSESSMENT)
