from prometheus_client import Gauge, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST

registry = CollectorRegistry()
cost_gauge = Gauge("gcp_billing_cost", "Billing export cost by window", ["window", "currency"], registry=registry)
budget_gauge = Gauge("gcp_billing_monthly_budget", "Configured monthly budget", registry=registry)
last_success_gauge = Gauge("gcp_billing_last_success_timestamp_seconds", "Retrieval time of the cached summary", registry=registry)
up_gauge = Gauge("gcp_billing_up", "1 if the last refresh succeeded", registry=registry)


def scrape_metrics(watcher):
    summary = watcher.cached_summary()
    if summary is not None:
        cost_gauge.clear()
        for window, amount in summary.amounts().items():
            cost_gauge.labels(window=window, currency=summary.currency).set(amount)
        last_success_gauge.set(summary.retrieved_at.timestamp())
    budget_gauge.set(watcher.settings.monthly_budget)
    up_gauge.set(1 if watcher.last_success else 0)
    return generate_latest(registry), CONTENT_TYPE_LATEST
