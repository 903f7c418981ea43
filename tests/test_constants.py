"""
Test constants for consistent test data.

This module provides status codes, account data and story content shared by
the test modules to avoid magic strings.
"""

# HTTP Status Codes
HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404
HTTP_METHOD_NOT_ALLOWED = 405
HTTP_TOO_MANY_REQUESTS = 429
HTTP_INTERNAL_SERVER_ERROR = 500
HTTP_SERVICE_UNAVAILABLE = 503

# Accounts
TEST_EMAIL = "parent@example.com"
TEST_PASSWORD = "goodnight-moon"
TEST_NAME = "Sam"
OTHER_EMAIL = "other@example.com"

# Story content
FOUR_PARAGRAPHS = "P0 once upon a time.\n\nP1 the fox woke.\n\nP2 the owl sang.\n\nP3 the end."
GENERATED_STORY = (
    "Once upon a time a small fox lived by the river.\n\n"
    "Every night the fox counted the stars.\n\n"
    "One night a star was missing.\n\n"
    "The fox asked the owl for help.\n\n"
    "Together they found the star in the reeds.\n\n"
    "And the fox learned that friends make every search easier."
)
GENERATED_TITLE = "The Fox Who Counted Stars"

# 1x1 transparent PNG
PNG_1X1_BASE64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
PNG_DATA_URI = f"data:image/png;base64,{PNG_1X1_BASE64}"

# Common test values
EMPTY_STRING = ""
WHITESPACE_ONLY = "   \t   "

# Addresses returned by the stubbed DNS resolver
PUBLIC_IP = "93.184.216.34"
METADATA_IP = "169.254.169.254"
