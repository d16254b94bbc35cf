"""
Cost aggregation over the GCP Cloud Billing export in BigQuery.

Two sequential round trips on the first fetch: tables.list to find the
export table (memoized per BillingService), then one jobs.query computing
current month, previous month, trailing three months and year to date in a
single aggregate row.
"""
import datetime as dt
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from google.cloud import bigquery

from .config import ClientConfig
from .errors import NotFoundError
from .providers.gcp import BigQueryTransport
from .schemas import CostSummary, DEFAULT_CURRENCY

LOG = logging.getLogger(__name__)

# Standard (per-account) and detailed (per-resource) export tables.
EXPORT_TABLE_PREFIXES = ("gcp_billing_export_v1", "gcp_billing_export_resource_v1")

COST_QUERY = """
SELECT
  SUM(CASE WHEN invoice.month = @current_period THEN cost ELSE 0 END) AS current_month_cost,
  SUM(CASE WHEN invoice.month = @previous_period THEN cost ELSE 0 END) AS previous_month_cost,
  SUM(CASE WHEN invoice.month BETWEEN @trailing_start AND @current_period THEN cost ELSE 0 END) AS trailing_3_months_cost,
  SUM(CASE WHEN STARTS_WITH(invoice.month, @year) THEN cost ELSE 0 END) AS year_to_date_cost,
  currency
FROM `{project}.{dataset}.{table}`
GROUP BY currency
LIMIT 1
"""

# current, previous, trailing three months, year to date, currency
ROW_FIELDS = 5


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _period(year: int, month: int) -> str:
    return f"{year:04d}{month:02d}"


def _months_back(year: int, month: int, n: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) - n
    return index // 12, index % 12 + 1


def billing_periods(now: dt.datetime) -> Tuple[str, str, str, str]:
    """Return (current, previous, trailing_start, year) invoice keys for `now` in UTC."""
    if now.tzinfo is not None:
        now = now.astimezone(dt.timezone.utc)
    current = _period(now.year, now.month)
    previous = _period(*_months_back(now.year, now.month, 1))
    trailing_start = _period(*_months_back(now.year, now.month, 3))
    return current, previous, trailing_start, f"{now.year:04d}"


def _amount(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class TableResolver:
    def __init__(self, transport: BigQueryTransport, project_id: str, dataset_id: str):
        self.transport = transport
        self.project_id = project_id
        self.dataset_id = dataset_id
        self._table: Optional[str] = None

    @property
    def cached(self) -> Optional[str]:
        return self._table

    def clear(self) -> None:
        self._table = None

    def resolve(self) -> str:
        if self._table:
            return self._table
        seen = 0
        for table_id in self.transport.list_tables(self.project_id, self.dataset_id):
            seen += 1
            if table_id.startswith(EXPORT_TABLE_PREFIXES):
                self._table = table_id
                LOG.info(f"Discovered billing table: {self.project_id}.{self.dataset_id}.{table_id}")
                return table_id
        if seen == 0:
            raise NotFoundError(f"No tables found in dataset {self.project_id}.{self.dataset_id}")
        raise NotFoundError(
            f"No billing export table found in {self.project_id}.{self.dataset_id} "
            f"(expected {' or '.join(p + '_*' for p in EXPORT_TABLE_PREFIXES)})"
        )


class BillingService:
    """
    Client for one (project, dataset) billing export.

    Not safe for overlapping fetches from several threads; callers serialize
    fetch_cost_summary() themselves.
    """

    def __init__(self, config: ClientConfig, transport: Optional[BigQueryTransport] = None,
                 clock: Optional[Callable[[], dt.datetime]] = None):
        self.config = config
        self.transport = transport or BigQueryTransport(config)
        self.clock = clock or _utcnow
        self.resolver = TableResolver(self.transport, config.project_id, config.dataset_id)
        self._last: Optional[CostSummary] = None

    @property
    def project_id(self) -> str:
        return self.resolver.project_id

    def set_project_id(self, project_id: str) -> None:
        # The memoized table belongs to the old project.
        if project_id != self.resolver.project_id:
            self.resolver.project_id = project_id
            self.resolver.clear()
            self.config = self.config.model_copy(update={"project_id": project_id})

    def get_cached_summary(self) -> Optional[CostSummary]:
        return self._last

    def build_query(self, table: str, now: dt.datetime):
        current, previous, trailing_start, year = billing_periods(now)
        sql = COST_QUERY.format(project=self.project_id, dataset=self.resolver.dataset_id, table=table)
        params = [
            bigquery.ScalarQueryParameter("current_period", "STRING", current),
            bigquery.ScalarQueryParameter("previous_period", "STRING", previous),
            bigquery.ScalarQueryParameter("trailing_start", "STRING", trailing_start),
            bigquery.ScalarQueryParameter("year", "STRING", year),
        ]
        return sql, params

    def fetch_cost_summary(self) -> CostSummary:
        try:
            table = self.resolver.resolve()
            now = self.clock()
            sql, params = self.build_query(table, now)
            data = self.transport.run_query(self.project_id, sql, params)
        except Exception as e:
            LOG.error(f"Failed to fetch billing data: {e}")
            raise
        summary = self._parse(data, now)
        self._last = summary
        LOG.info(f"Billing data fetched: {summary.currency} {summary.current_month:.2f} "
                 f"(year to date {summary.year_to_date:.2f})")
        return summary

    @staticmethod
    def _parse(data: Dict[str, Any], retrieved_at: dt.datetime) -> CostSummary:
        rows = data.get("rows") or []
        fields = (rows[0].get("f") or []) if rows else []
        if len(fields) < ROW_FIELDS:
            # Export configured but no cost rows recorded yet. Also reached when jobs.query
            # answers jobComplete: false before the server-side wait expires.
            return CostSummary(currency=DEFAULT_CURRENCY, retrieved_at=retrieved_at)
        values = [(f or {}).get("v") for f in fields[:ROW_FIELDS]]
        return CostSummary(
            current_month=_amount(values[0]),
            previous_month=_amount(values[1]),
            trailing_3_months=_amount(values[2]),
            year_to_date=_amount(values[3]),
            currency=values[4] or DEFAULT_CURRENCY,
            retrieved_at=retrieved_at,
        )
