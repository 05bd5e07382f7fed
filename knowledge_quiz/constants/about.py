"""Static metadata describing Knowledge Quiz."""

APP_NAME = "Knowledge Quiz"
APP_VERSION = "0.2"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "Knowledge Quiz runs timed multiple-choice quizzes per subject, keeps every "
    "attempt resumable across reloads and ranks finished attempts on a leaderboard."
)
