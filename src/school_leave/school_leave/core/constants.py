"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Fallback yearly quotas when no quota row is stored for a role.
DEFAULT_STUDENT_QUOTA = {"casual": 10, "medical": 15, "emergency": 5, "personal": 5}
DEFAULT_TEACHER_QUOTA = {"casual": 12, "medical": 15, "emergency": 5, "personal": 8}

# Lookback windows (days) applied on created_at.
APPLICANT_HISTORY_DAYS = 60
PENDING_LOOKBACK_DAYS = 365
PROCESSING_LOOKBACK_DAYS = 60
WATCH_LOOKBACK_DAYS = 30

DEFAULT_POLL_INTERVAL_SECONDS = 10.0
TRANSACTION_MAX_ATTEMPTS = 3
DEFAULT_LIST_LIMIT = 500
