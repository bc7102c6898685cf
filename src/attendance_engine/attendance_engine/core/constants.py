"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

SESSION_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DEFAULT_SESSION_CODE_LENGTH = 8
DEFAULT_SESSION_MINUTES = 5
DEFAULT_SESSION_MAX_MINUTES = 15
SESSION_CODE_MAX_ATTEMPTS = 10

DEFAULT_OTP_LENGTH = 6
DEFAULT_OTP_TTL_MINUTES = 10
DEFAULT_OTP_MAX_ATTEMPTS = 5

DEFAULT_TRIGGER_WINDOW_MINUTES = 7
DEFAULT_DEDUP_WINDOW_MINUTES = 10
DEFAULT_SCHEDULED_SESSION_MINUTES = 5
TRIGGER_LOCK_TIMEOUT_SECONDS = 30

DEFAULT_NOTIFY_TIMEOUT_SECONDS = 10
DEFAULT_NOTIFY_WORKERS = 4

APPROVAL_MAX_ATTEMPTS = 5
RECONCILE_BATCH_LIMIT = 50

SELF_MARKED = "self"
OD_APPROVAL_MARKER = "od_approval"
