"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

VENUE_UNDECIDED = "Undecided"

# Weekday indices used by recurrence rules: 0=Sunday ... 6=Saturday.
WEEKDAY_MIN = 0
WEEKDAY_MAX = 6

# Day-of-month anchor accepted by monthly rules.
MONTH_DAY_MIN = 1
MONTH_DAY_MAX = 31

# Hard cap on how far a single expansion request may reach.
MAX_EXPANSION_DAYS = 3 * 366

DEFAULT_MONTH_ANNUAL_FEE = 4
