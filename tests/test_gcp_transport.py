import pytest
from google.auth import exceptions as auth_exceptions

from billing_watcher.config import ClientConfig
from billing_watcher.errors import AuthError
from billing_watcher.providers import gcp


class DummyCredentials:
    pass


class FakeAuthorizedSession:
    def __init__(self, credentials):
        self.credentials = credentials
        self.verify = True


def test_default_credentials(monkeypatch):
    seen = {}

    def fake_default(scopes=None):
        seen["scopes"] = scopes
        return DummyCredentials(), "ambient-project"

    monkeypatch.setattr(gcp.google.auth, "default", fake_default)
    monkeypatch.setattr(gcp, "AuthorizedSession", FakeAuthorizedSession)
    session = gcp.build_session(ClientConfig(project_id="my-billing-project"))
    assert seen["scopes"] == gcp.SCOPES
    assert session.verify is True


def test_credentials_file_and_relaxed_tls(monkeypatch):
    seen = {}

    def fake_load(path, scopes=None):
        seen["path"] = path
        return DummyCredentials(), None

    monkeypatch.setattr(gcp.google.auth, "load_credentials_from_file", fake_load)
    monkeypatch.setattr(gcp, "AuthorizedSession", FakeAuthorizedSession)
    config = ClientConfig(project_id="my-billing-project", credentials_path="/secrets/sa.json", strict_ssl=False)
    session = gcp.build_session(config)
    assert seen["path"] == "/secrets/sa.json"
    assert session.verify is False


def test_missing_credentials_is_auth_error(monkeypatch):
    def fake_default(scopes=None):
        raise auth_exceptions.DefaultCredentialsError("no credentials")

    monkeypatch.setattr(gcp.google.auth, "default", fake_default)
    transport = gcp.BigQueryTransport(ClientConfig(project_id="my-billing-project"))
    with pytest.raises(AuthError):
        list(transport.list_tables("my-billing-project", "billing_export"))
