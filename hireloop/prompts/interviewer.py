"""
AI Interviewer Prompt Templates

Prompts for building a candidate's skill map and for the end-of-interview
verdict. Wording is opaque to the engine; only the JSON shapes the parsers
expect are contractual.
"""

import json
from typing import Any


class InterviewerPrompts:
    """
    Prompt templates for the AI interviewer.

    Key principles:
    - Questions grounded in the candidate's actual resume
    - Three escalating depths per skill
    - Structured JSON output only
    """

    SYSTEM_CONTEXT = """You are an expert technical interviewer running an adaptive voice interview.
You ask one question at a time, ground questions in the candidate's real experience,
and escalate depth on the same topic when the candidate answers well.
"""

    def skill_map_prompt(
        self,
        position_title: str,
        skills: list[str],
        resume_profile: dict[str, Any],
        explanation: str | None,
        skill_count: int,
    ) -> str:
        """Ask for `skill_count` skills, each with three escalating questions."""
        return f"""
Build an adaptive interview plan for a {position_title} candidate.

Candidate Resume:
- Skills: {json.dumps(resume_profile.get("skills", {}))}
- Projects: {json.dumps(resume_profile.get("projects", []))}
- Experience: {resume_profile.get("experienceYears", 0)} years
- Analysis: {explanation or "n/a"}

Role skills to prioritize: {", ".join(skills) or "general software engineering"}

Pick exactly {skill_count} skills. For each skill write three questions:
- "primary": a concrete question about how they used the skill
- "drill_down": probes implementation details and trade-offs of that work
- "stress_test": a hard scenario (scale, failure, edge case) on the same topic

Return ONLY a JSON object:
{{"skills": [{{"skill": "...", "primary": "...", "drill_down": "...", "stress_test": "..."}}]}}
"""

    def verdict_prompt(self, conversation: str, position_title: str, resume_profile: dict[str, Any]) -> str:
        """Ask for an overall score of the finished interview."""
        return f"""
You are a Senior Technical Recruiter. Evaluate this {position_title} interview conversation:
{conversation}

Job Context: {json.dumps(resume_profile)}

Return ONLY a JSON object:
{{
  "score": 0-100,
  "feedback": "...",
  "metrics": {{
    "technicalDepth": 0-10,
    "communication": 0-10,
    "honesty": 0-10
  }}
}}
"""


# Template questions used when the skill map cannot be generated
SKILL_TEMPLATES = (
    "Tell me about a project where you used {skill}. What did you build and what was your role?",
    "In that {skill} work, what were the key implementation decisions and which alternatives did you reject?",
    "Suppose your {skill} solution had to handle ten times the load and a critical component failed. What breaks first and how would you fix it?",
)

# Generic follow-ups asked when a question cannot be produced any other way
FALLBACK_FOLLOWUPS = (
    "That sounds interesting. Can you elaborate more on the specific challenges you faced?",
    "How did you ensure the scalability of that solution?",
    "What alternatives did you consider before choosing that approach?",
    "Could you dive deeper into the technical implementation details?",
)

DEFAULT_SKILLS = ("Software Engineering", "Problem Solving", "System Design")
