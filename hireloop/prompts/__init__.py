"""
AI Prompt Templates for HireLoop

Contains structured prompts for:
- Skill map generation
- Answer evaluation and probing
- Transcript refinement
- Final interview verdict
"""

from hireloop.prompts.evaluator import NO_TECHNICAL_CONTENT, EvaluatorPrompts
from hireloop.prompts.interviewer import InterviewerPrompts

__all__ = ["InterviewerPrompts", "EvaluatorPrompts", "NO_TECHNICAL_CONTENT"]
