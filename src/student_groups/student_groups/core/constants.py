"""Constants and defaults.

Note: Failure reasons are part of the HTTP contract; keep the wording stable.
"""

FAILURE_STATUS = "Failure"

REASON_GROUP_NOT_FOUND = "Group not found. Try again with valid ID"
REASON_GENERIC_FAILURE = "Something went wrong. Please try again"
REASON_NO_GROUP_FILTERS = "Group Filters not found. Create group filters and try again"

RUN_FILTERS_SUCCESS_MESSAGE = "Group filters ran successfully"

ROLL_STATES_SEPARATOR = ","

# Ten years of weekly lookback.
MAX_NUMBER_OF_WEEKS = 520

DEFAULT_RECONCILE_MAX_WORKERS = 1
DEFAULT_RECONCILE_LOCK_TIMEOUT_SECONDS = 300
RECONCILE_ADVISORY_LOCK_NAME = "student_groups.reconcile"
