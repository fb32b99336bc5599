"""Application constants - all magic numbers centralized."""

# Content retrieval
MAX_CONTENT_LENGTH = 50000  # ~12k tokens
FETCH_USER_AGENT = "Mozilla/5.0 (compatible; Signal-Bot/1.0)"

# Concept normalization
MAX_CONCEPTS = 10
MIN_CONCEPT_LENGTH = 3
MAX_CONCEPT_LENGTH = 80
VAGUE_CONCEPTS = frozenset({
    "programming",
    "coding",
    "software",
    "computer science",
    "development",
    "learning",
    "technology",
    "basics",
    "memory management",  # too broad on its own; specific variants are fine
})

# Recall question validation
MIN_QUESTION_LENGTH = 8
MAX_QUESTION_LENGTH = 220
MCQ_OPTION_COUNT = 4
MIN_OPTION_LENGTH = 2
MAX_OPTION_LENGTH = 120

# Library digest retrieval
MAX_DIGEST_ITEMS = 100
MAX_DIGEST_TITLE_LENGTH = 80
MAX_DIGEST_CONCEPTS = 12
MIN_OVERLAP_CONCEPTS = 2
MIN_OVERLAP_RATIO = 0.25
MAX_RELATED_ITEMS = 2

# Recall grading
CORRECTNESS_THRESHOLD = 0.6
MAX_GRADING_POINTS = 3

# LLM settings
DEFAULT_LLM_MODEL = "gpt-4o-mini"
ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 1800
BRIDGE_MAX_TOKENS = 300
GRADING_TEMPERATURE = 0.0
GRADING_MAX_TOKENS = 220

# Feedback
ALLOWED_FEEDBACK_REASONS = (
    "aligned_goal",
    "practical",
    "clear",
    "challenging",
    "not_aligned",
    "too_basic",
    "too_advanced",
    "low_quality",
    "clickbait",
)
MAX_FEEDBACK_REASONS = 10
