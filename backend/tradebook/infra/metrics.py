# tradebook/infra/metrics.py
from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ───────────────────────── P&L rebuild ─────────────────────────
# outcome ∈ {"processed","skipped","failed"}
rebuild_days_total = Counter(
    "pnl_rebuild_days_total",
    "Calendar days handled by the daily P&L rebuild, by outcome",
    ["outcome"],
)

rebuild_rows_written_total = Counter(
    "pnl_rebuild_rows_written_total",
    "pl_report_daily rows written (delete+insert per key)",
)

rebuild_row_errors_total = Counter(
    "pnl_rebuild_row_errors_total",
    "Symbols dropped from a day because their row could not be built",
)

rebuild_duration_seconds = Histogram(
    "pnl_rebuild_duration_seconds",
    "Wall time of one rebuild_range call, seconds",
    buckets=(0.05, 0.1, 0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)

# Unix seconds of the last rebuild that finished (any outcome); 0 = never
rebuild_last_finished_ts = Gauge(
    "pnl_rebuild_last_finished_ts",
    "Unix time the last rebuild_range call returned",
)

# ───────────────────────── DB ─────────────────────────
db_connect_retries_total = Counter(
    "db_connect_retries_total",
    "Connection acquisitions that failed and were retried",
)
