"""
Prometheus metrics for the sync and normalization pipelines
"""
from prometheus_client import Counter

SYNC_RUNS = Counter(
    "omniticket_sync_runs_total",
    "Completed sync runs",
    ["outcome"],  # empty, completed
)

SYNC_ITEMS = Counter(
    "omniticket_sync_items_total",
    "Mailbox items processed by the sync engine",
    ["status"],  # success, error
)

NAME_RESOLUTIONS = Counter(
    "omniticket_name_resolutions_total",
    "Product names resolved per tier",
    ["tier"],  # rule, cache, ai, dropped
)

AI_NORMALIZATION_BATCHES = Counter(
    "omniticket_ai_normalization_batches_total",
    "AI batch calls made by the name resolver",
    ["outcome"],  # success, error
)
