"""Global constants: scoring weights, shared thresholds and defaults."""

# Score penalty per finding, as a multiple of one check's share of 100 points
CRITICAL_WEIGHT = 1.5
WARNING_WEIGHT = 0.75

# Project score when nothing could be evaluated
EMPTY_SCORE = 100.0

# Fire-safety risk category thresholds on the ordered 1..4 scale
SPRINKLER_CATEGORY_THRESHOLD = 3
DETECTION_CATEGORY_THRESHOLD = 2

# Fallback storey height when only the floor count is known (m)
DEFAULT_STOREY_HEIGHT = 3.0

# Prefix for keys written back by the enrichment writer
COMPUTED_PREFIX = "computed_"

# Rule database default (in-memory, auto-seeded)
DEFAULT_RULE_DB = ":memory:"
