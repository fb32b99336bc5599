"""
Content Analysis Prompts

System and user prompts for concept extraction, scoring and recall
question generation, plus the bridge question prompt used when related
library items are found.
"""

from shared.prompts.templates import PromptTemplate


ANALYSIS_SYSTEM_PROMPT = """You are Signal's analysis engine.
Return ONLY valid JSON matching the provided schema. No markdown, no extra keys.

High standards:
- Concepts must be specific and testable (e.g., "RAII", "std::unique_ptr ownership semantics"), not vague ("programming").
- Avoid duplicates and near-duplicates. Prefer 6-10 best concepts over long lists.
- Scores must be calibrated (0-1). Don't always output >0.8.
- If you output MCQs, they MUST have exactly 4 options and exactly 1 correct answer."""


LEARNING_MODE_GUIDANCE = {
    "interview_prep": "Favor explain-it-out-loud questions about trade-offs, pitfalls and edge cases an interviewer would probe.",
    "assessment_exam_prep": "Favor precise, gradable questions on definitions and application, the way an exam would test them.",
    "general_learning": "Favor questions that check understanding of the core ideas in plain language.",
}


ANALYSIS_USER_PROMPT = PromptTemplate(
    """Analyze the content against the user's goal and prior knowledge.

GOAL (short): {goal_description}

KNOWN (avoid reteaching): {known_concepts}
WEAK (prioritize): {weak_concepts}

INTERVENTION POLICY: {intervention_policy}
LEARNING MODE: {learning_mode}
{mode_guidance}

CONTENT (may be long; focus on the core teachable parts):
{content}

Return JSON in this exact schema (no extra fields):
{{
  "concepts": ["string"],
  "relevance_score": number,
  "learning_value_score": number,
  "recall_questions": [
    {{ "type": "open", "question": "string" }},
    {{ "type": "mcq", "question": "string", "options": ["string","string","string","string"], "correct_index": 0 }}
  ]
}}

Rules:
- concepts: 6-10 items, unique, specific, noun-phrases. Include at least 2 from WEAK if present.
- relevance_score: alignment of THIS content to GOAL (0..1).
- learning_value_score: how much the user can learn given KNOWN/WEAK (0..1).
- recall_questions: return {open_target} open and {mcq_target} mcq questions that test concepts found in the content.
- MCQs: 4 plausible options, one correct_index (0..3). No "All of the above". No trick answers.""",
    name="content_analysis",
)


BRIDGE_SYSTEM_PROMPT = (
    "You write one recall question that connects new content to material the learner "
    'already saved. Return only valid JSON: {"question": "string"}.'
)


BRIDGE_USER_PROMPT = PromptTemplate(
    """The learner is working toward this goal: {goal_description}

They just consumed new content. Earlier they saved these related items:
{related_items}

NEW CONTENT (excerpt):
{content_excerpt}

Write ONE open-ended question (8-220 characters) that asks the learner to connect an idea
from the new content with one of the earlier items through their shared concepts.

Return JSON: {{"question": "string"}}""",
    name="bridge_question",
)
