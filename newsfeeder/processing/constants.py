"""Constants for batch AI processing."""

# Items selected per scheduler tick; one combined AI call covers them all
BATCH_SIZE = 5

# Longest body accepted for analysis, in characters
MAX_ITEM_CHARS = 10_000

# Largest combined body length sent in one batch request
MAX_BATCH_CHARS = 50_000

# Keyword shown on exposures built without AI output
GENERIC_KEYWORD = "Newsletter"

# Keyword shown on AI exposures when the model offered none
NO_KEYWORDS = "No Keywords"

FALLBACK_SUMMARY_CHARS = 500
ELLIPSIS = "..."
