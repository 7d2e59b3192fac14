"""Constants for daily archive resolution."""

# Exposures kept per daily archive
MAX_CONTENT_SIZE = 6

# Score lost per day of content age
FRESHNESS_PENALTY_PER_DAY = 10.0
