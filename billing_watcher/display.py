import os
from typing import Optional
from .schemas import CostSummary, StatusView

WARNING_THRESHOLD = 100.0
ERROR_THRESHOLD = 500.0
SEPARATOR = "-" * 21

LABELS = {
    "en": {
        "title": "GCP Billing Watcher",
        "month": "{month:02d}",
        "trailing": "Last 3 months",
        "year": "{year} total",
        "budget": "Monthly budget",
        "updated": "Last updated",
        "hint": "Refresh to update now",
        "loading": "Fetching billing data...",
        "error": "Error",
        "not_configured": "Set GCP_BQ_PROJECT_ID to start",
    },
    "ja": {
        "title": "GCP Billing Watcher",
        "month": "{month}月",
        "trailing": "過去3ヶ月",
        "year": "{year}年間",
        "budget": "月間予算",
        "updated": "最終更新",
        "hint": "更新すると最新の値を取得します",
        "loading": "課金データを取得しています...",
        "error": "エラー",
        "not_configured": "GCP_BQ_PROJECT_ID を設定してください",
    },
}


def resolve_language(language: str = "auto") -> str:
    if language in LABELS:
        return language
    return "ja" if os.environ.get("LANG", "").lower().startswith("ja") else "en"


def format_currency(amount: float, currency: str) -> str:
    return f"{currency} {amount:,.2f}"


def cost_level(summary: CostSummary) -> str:
    if summary.year_to_date > ERROR_THRESHOLD:
        return "error"
    if summary.year_to_date > WARNING_THRESHOLD:
        return "warning"
    return "ok"


def build_tooltip(summary: CostSummary, budget: float = 0.0, language: str = "auto") -> str:
    labels = LABELS[resolve_language(language)]
    at = summary.retrieved_at
    last_month = 12 if at.month == 1 else at.month - 1
    def fmt(amount): return format_currency(amount, summary.currency)
    lines = [
        labels["title"],
        SEPARATOR,
        f"{labels['month'].format(month=at.month)}: {fmt(summary.current_month)}",
        f"{labels['month'].format(month=last_month)}: {fmt(summary.previous_month)}",
        SEPARATOR,
        f"{labels['trailing']}: {fmt(summary.trailing_3_months)}",
        f"{labels['year'].format(year=at.year)}: {fmt(summary.year_to_date)}",
    ]
    if budget > 0:
        used = summary.current_month / budget * 100
        lines.append(f"{labels['budget']}: {fmt(budget)} ({used:.0f}%)")
    lines += [
        SEPARATOR,
        f"{labels['updated']}: {at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}",
        labels["hint"],
    ]
    return "\n".join(lines)


def summary_view(summary: CostSummary, budget: float = 0.0, language: str = "auto",
                 project_id: Optional[str] = None) -> StatusView:
    text = (f"GCP: {format_currency(summary.current_month, summary.currency)}"
            f" / {format_currency(summary.year_to_date, summary.currency)}")
    return StatusView(state="ok", level=cost_level(summary), text=text,
                      tooltip=build_tooltip(summary, budget, language),
                      summary=summary, project_id=project_id)


def loading_view(language: str = "auto", summary: Optional[CostSummary] = None,
                 project_id: Optional[str] = None) -> StatusView:
    labels = LABELS[resolve_language(language)]
    return StatusView(state="loading", level="info", text="GCP: ...", tooltip=labels["loading"],
                      summary=summary, project_id=project_id)


def error_view(message: str, language: str = "auto", summary: Optional[CostSummary] = None,
               project_id: Optional[str] = None) -> StatusView:
    labels = LABELS[resolve_language(language)]
    return StatusView(state="error", level="error", text="GCP: Error",
                      tooltip=f"{labels['error']}: {message}", error=message,
                      summary=summary, project_id=project_id)


def not_configured_view(language: str = "auto") -> StatusView:
    labels = LABELS[resolve_language(language)]
    return StatusView(state="not_configured", level="warning", text="GCP: Not Configured",
                      tooltip=labels["not_configured"])
