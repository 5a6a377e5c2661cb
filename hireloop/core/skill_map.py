"""
Skill Map Builder for HireLoop

Generates a session's skill map (skills x three escalating questions) from
the resume analysis and the position, falling back to template questions
when no provider produces a usable plan.
"""

import logging
from typing import Any

from hireloop.core.parsing import extract_json_object
from hireloop.core.provider_gateway import ProviderGateway
from hireloop.models.candidate import Position, ResumeAnalysis
from hireloop.models.interview import SkillNode
from hireloop.prompts.interviewer import DEFAULT_SKILLS, SKILL_TEMPLATES, InterviewerPrompts

logger = logging.getLogger(__name__)


class SkillMapBuilder:

    def __init__(self, gateway: ProviderGateway, skill_count: int = 3):
        self.gateway = gateway
        self.skill_count = skill_count
        self.prompts = InterviewerPrompts()

    async def build(self, position: Position, resume: ResumeAnalysis) -> list[SkillNode]:
        """Build the skill map for one candidate and position."""
        candidate_skills = self._rank_skills(position, resume)

        result = await self.gateway.generate(
            self.prompts.skill_map_prompt(
                position_title=position.title,
                skills=candidate_skills,
                resume_profile=resume.structured,
                explanation=resume.explanation,
                skill_count=self.skill_count,
            ),
            max_tokens=1200,
            wants_json=True,
            system_prompt=self.prompts.SYSTEM_CONTEXT,
            trace_name="skill_map",
        )

        skill_map = self._parse(extract_json_object(result.text)) if result.ok else []
        if skill_map:
            logger.info(f"Generated skill map via {result.provider}: {[node.skill for node in skill_map]}")
            return skill_map

        logger.warning("Skill map generation failed, using template questions")
        return self.fallback_map(candidate_skills)

    def fallback_map(self, skills: list[str]) -> list[SkillNode]:
        """Template questions over the first `skill_count` skills."""
        chosen = list(dict.fromkeys(skill for skill in skills if skill))[: self.skill_count]
        for default in DEFAULT_SKILLS:
            if len(chosen) >= self.skill_count:
                break
            if default not in chosen:
                chosen.append(default)
        return [
            SkillNode.from_questions(skill, *(template.format(skill=skill) for template in SKILL_TEMPLATES))
            for skill in chosen
        ]

    @staticmethod
    def _rank_skills(position: Position, resume: ResumeAnalysis) -> list[str]:
        """Position skills the candidate also has come first."""
        resume_skills = resume.skill_list()
        known = {skill.lower() for skill in resume_skills}
        overlap = [skill for skill in position.skills if skill.lower() in known]
        rest = [skill for skill in position.skills + resume_skills if skill not in overlap]
        return list(dict.fromkeys(overlap + rest))

    def _parse(self, data: dict[str, Any] | None) -> list[SkillNode]:
        if not data or not isinstance(data.get("skills"), list):
            return []

        skill_map = []
        for item in data["skills"]:
            if not isinstance(item, dict):
                continue
            questions = [str(item.get(key) or "").strip() for key in ("primary", "drill_down", "stress_test")]
            skill = str(item.get("skill") or "").strip()
            if not skill or not all(questions):
                logger.debug(f"Skipping incomplete skill entry: {item}")
                continue
            skill_map.append(SkillNode.from_questions(skill, *questions))
        return skill_map[: self.skill_count]
