"""
Records owned by external collaborators that the engine only reads:
resume analyses and job positions.
"""

from typing import Any

from pydantic import BaseModel, Field


class ResumeAnalysis(BaseModel):
    """Output of the resume analyzer; a prerequisite for starting an interview."""

    subject_id: str
    position_id: str
    match_percentage: int | None = None
    structured: dict[str, Any] = Field(default_factory=dict)
    explanation: str | None = None

    def skill_list(self) -> list[str]:
        """Flatten the structured skill groups into one de-duplicated list."""
        skills = self.structured.get("skills") or {}
        if isinstance(skills, list):
            groups = [skills]
        else:
            groups = [value for value in skills.values() if isinstance(value, list)]

        seen: set[str] = set()
        flat = []
        for group in groups:
            for skill in group:
                name = str(skill).strip()
                if name and name.lower() not in seen:
                    seen.add(name.lower())
                    flat.append(name)
        return flat


class Position(BaseModel):
    """A job posting and the recruiter who owns it."""

    position_id: str
    title: str = "Software Engineer"
    recruiter_id: str | None = None
    skills: list[str] = Field(default_factory=list)
