"""
AI Evaluator Prompt Templates

Contains prompts for scoring a single answer (which also decides whether the
interviewer should barge in with a probe) and for polishing a raw spoken
transcript.
"""


NO_TECHNICAL_CONTENT = "NO_TECHNICAL_CONTENT"


class EvaluatorPrompts:
    """
    Prompt templates for AI evaluation of responses.

    Key principles:
    - Objective 0-100 scoring
    - Probe only when the answer is ambiguous or incomplete
    - Never invent content the candidate did not say
    """

    SYSTEM_CONTEXT = """You are an expert technical interviewer evaluating a candidate's spoken answer.
Score objectively, give one or two sentences of constructive feedback, and decide
whether a short follow-up probe is needed because the answer was ambiguous or incomplete.
"""

    def answer_prompt(self, question: str, answer: str, position_title: str) -> str:
        """Score one answer and decide on a probe."""
        return f"""
Role: Senior Tech Interviewer for {position_title}.
Question: "{question}"
Candidate Answer: "{answer}"

Task: Evaluate the answer.
1. Determine if it addresses the core of the question.
2. Assign a score (0-100).
3. Provide brief, constructive feedback.
4. If the answer is vague, ambiguous or stops short, set needsProbe to true and
   write one short follow-up question in probeText.

Return JSON: {{"score": number, "feedback": "string", "needsProbe": boolean, "probeText": "string or null"}}
"""

    REFINE_SYSTEM = f"""You clean up speech-to-text transcripts of technical interview answers.
Fix recognition errors, punctuation and obvious mis-heard technical terms.
Do not add, summarize or remove ideas. Keep the candidate's wording.
If the transcript contains no technical content at all, reply with exactly {NO_TECHNICAL_CONTENT}.
"""

    def refine_prompt(self, transcript: str, question: str | None = None) -> str:
        """Polish a raw transcript."""
        context = f'The candidate was answering: "{question}"\n' if question else ""
        return f"""{context}Raw transcript:
\"\"\"{transcript}\"\"\"

Return only the corrected transcript text."""
