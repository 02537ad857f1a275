"""Application constants."""

USER_AGENT = "pricemap/1.0 (+district price pipeline)"
STAGES = (
    "aggregate",
    "extract-sales",
    "enrich",
)
EXIT_SUCCESS = 0
EXIT_HARD_FAIL = 20

# Ledger has no header row; columns are positional.
COL_PRICE = 1
COL_DATE = 2
COL_POSTCODE = 3
COL_PROPERTY_TYPE = 4
COL_PAON = 7
COL_STREET = 9
COL_TOWN = 11

PROPERTY_CATEGORIES = ("D", "S", "T", "F", "O")
OTHER_CATEGORY = "O"
MIN_PRICE = 100
# Price samples are buffered as signed 64-bit integers.
MAX_PRICE = 2**63 - 1

PROGRESS_EVERY_ROWS = 1_000_000

ENRICHMENT_FIELDS = ("floorArea", "roomCount", "energyRating")

JSON_LOG_FIELDS = (
    "timestamp",
    "level",
    "run_id",
    "stage",
    "source",
    "key",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
