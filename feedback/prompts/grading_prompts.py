"""
Recall Grading Prompts

Prompt for scoring a learner's open-ended recall answer.
"""

from shared.prompts.templates import PromptTemplate


GRADING_SYSTEM_PROMPT = (
    'You grade recall answers. Return only valid JSON with "score" (0-1), "reasoning" (string), '
    '"key_points" (array of 2-3 short strings), and "could_have_said" (array of 2-3 specific '
    "missing ideas). Reasoning must be one concise sentence referencing the key concept."
)


GRADING_USER_PROMPT = PromptTemplate(
    """You are grading a learner's open-ended recall answer.
The learner watched/read content titled "{content_title}" and was asked this question: "{question}"

Their answer: "{user_answer}"

Rate how correct and complete their answer is on a scale of 0.0 to 1.0, where:
- 0.0 = completely wrong or irrelevant
- 0.5 = partially correct, shows some understanding
- 0.7 = mostly correct, demonstrates good understanding
- 1.0 = fully correct and comprehensive

Return a short, stable explanation of the grade, 2-3 key points that matter for this question, and 2-3 concrete things the learner could have added.
Respond with ONLY valid JSON in exactly this shape (no markdown, no extra text):
{{
  "score": 0.85,
  "reasoning": "One concise sentence explaining why.",
  "key_points": ["point A", "point B"],
  "could_have_said": ["specific missing idea 1", "specific missing idea 2"]
}}""",
    name="recall_grading",
)
