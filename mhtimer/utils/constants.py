"""Constants and default values."""

from datetime import timedelta

# Reminder counts
UNLIMITED = -1
EXPIRED = 0

# Consecutive delivery failures tolerated before a reminder is forced to a final send
MAX_DELIVERY_FAILURES = 10

# Schedule listing
DEFAULT_SCHEDULE_HOURS = 24
MAX_SCHEDULE_HOURS = 240
MAX_SCHEDULE_ENTRIES = 24

# Remote lookups
MAX_SEARCH_RESULTS = 10
MIN_SEARCH_LENGTH = 2
MIN_ATTRACTION_HUNTS = 100
MAX_WHOIS_RESULTS = 5

# Relic Hunter
UNKNOWN_LOCATION = "unknown"

# Persisted dataset names
DATASET_TIMERS = "timers"
DATASET_REMINDERS = "reminders"
DATASET_HUNTERS = "hunters"

# Areas with special handling
RELIC_HUNTER_AREA = "relic_hunter"

# Default cadence for saves and remote refreshes
DEFAULT_REFRESH_RATE = timedelta(minutes=5)
