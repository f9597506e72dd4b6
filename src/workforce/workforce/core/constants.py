"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_LIST_LIMIT = 500
DEFAULT_TIMEZONE = "Europe/Kiev"
DAYS_IN_WEEK = 7
HOURS_PRECISION = 2
NO_COMPANY_LABEL = "No Company"
