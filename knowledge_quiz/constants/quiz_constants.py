"""Quiz-related constants shared across the engine and the API layer."""

SECONDS_PER_QUESTION: int = 60
TICK_INTERVAL_SECONDS: float = 1.0

DEFAULT_HINT_TEXT: str = (
    "Think carefully about the question. Consider all options before selecting your answer."
)

# (minimum accuracy percentage, message), checked top to bottom
SCORE_MESSAGES: tuple[tuple[int, str], ...] = (
    (90, "Outstanding! You're a master of this subject!"),
    (80, "Excellent work! You really know your stuff!"),
    (70, "Great job! You have a solid understanding!"),
    (60, "Good effort! Keep learning and improving!"),
    (50, "Not bad! You're on the right track!"),
    (0, "Keep practicing! You'll improve with more study!"),
)

SUBJECTS_FILE_NAME: str = "subjects.json"
QUESTION_FILE_SUFFIX: str = ".txt"
