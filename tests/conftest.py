import datetime as dt
import pytest

from billing_watcher.billing import BillingService
from billing_watcher.config import ClientConfig
from billing_watcher.providers.gcp import BigQueryTransport

NOW = dt.datetime(2025, 1, 15, 9, 30, tzinfo=dt.timezone.utc)


class FakeResponse:
    def __init__(self, payload=None, status_code=200, reason="OK"):
        self.payload = payload if payload is not None else {}
        self.status_code = status_code
        self.reason = reason

    def json(self):
        return self.payload


class FakeSession:
    """Stands in for AuthorizedSession; replays queued responses per HTTP method."""

    def __init__(self):
        self.calls = []
        self.responses = {"GET": [], "POST": []}

    def queue(self, method, response):
        self.responses[method].append(response)

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        item = self.responses[method].pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def count(self, method):
        return sum(1 for m, _, _ in self.calls if m == method)


def tables_payload(*names, next_token=None):
    payload = {"tables": [{"tableReference": {"tableId": n}} for n in names]}
    if next_token:
        payload["nextPageToken"] = next_token
    return FakeResponse(payload)


def query_payload(*values):
    return FakeResponse({"rows": [{"f": [{"v": v} for v in values]}], "jobComplete": True})


@pytest.fixture
def config():
    return ClientConfig(project_id="my-billing-project")


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def service(config, session):
    return BillingService(config, transport=BigQueryTransport(config, session=session), clock=lambda: NOW)
