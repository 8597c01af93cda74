"""Backend API endpoints, relative to ``settings.API_BASE_URL``."""

TEST_BY_ID = "/courses/section/tests/{test_id}"
QUIZ_ATTEMPTS = "/quiz/attempts"

# Default headers for every request
DEFAULT_HEADERS = {
    "Accept": "application/json",
}
