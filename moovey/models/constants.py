"""Constants for Moovey.

This module centralizes the magic numbers and default values used by the
progress engine, the cache and the API client.
"""

# Sections
# Academy tasks without a section count toward this section, and only this one.
UNASSIGNED_SECTION_FALLBACK = 1

# Task defaults
DEFAULT_TASK_TITLE = "Untitled Task"
DEFAULT_ACADEMY_CATEGORY = "Pre-Move"
MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000

# Display categories for academy / CTA tasks
DISPLAY_CATEGORIES = ("Pre-Move", "In-Move", "Post-Move")

# Upcoming tasks widget
UPCOMING_TASK_LIMIT = 4

# Cache
DEFAULT_CACHE_TTL_MS = 5 * 60 * 1000  # 5 minutes
CACHE_MAX_ENTRIES = 50
CACHE_LOW_WATERMARK = 40

# Cache keys
PRIORITY_TASKS_CACHE_KEY = "priority-tasks"
TASKS_CACHE_KEY = "tasks"
MOVE_DETAILS_CACHE_KEY = "move-details"

# Requests
DEFAULT_REQUEST_TIMEOUT_SEC = 15
