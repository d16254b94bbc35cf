import logging
from typing import Any, Dict, Iterator, List, Optional

import google.auth
import requests
from google.auth import exceptions as auth_exceptions
from google.auth.transport.requests import AuthorizedSession
from google.cloud import bigquery

from ..config import ClientConfig
from ..errors import AuthError, TransportError

LOG = logging.getLogger(__name__)

BIGQUERY_API = "https://bigquery.googleapis.com/bigquery/v2"
SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def build_session(config: ClientConfig) -> AuthorizedSession:
    """
    Uses the explicit credential file when config.credentials_path is set,
    otherwise Application Default Credentials (GOOGLE_APPLICATION_CREDENTIALS,
    gcloud user login, metadata server).
    """
    try:
        if config.credentials_path:
            credentials, _ = google.auth.load_credentials_from_file(config.credentials_path, scopes=SCOPES)
        else:
            credentials, _ = google.auth.default(scopes=SCOPES)
    except auth_exceptions.DefaultCredentialsError as e:
        raise AuthError(f"Failed to load GCP credentials: {e}") from e
    session = AuthorizedSession(credentials)
    session.verify = config.strict_ssl
    if not config.strict_ssl:
        LOG.warning("TLS certificate verification is disabled for BigQuery requests")
    return session


class BigQueryTransport:
    """Thin REST wrapper over the BigQuery v2 tables.list and jobs.query calls."""

    def __init__(self, config: ClientConfig, session=None):
        self.config = config
        self._session = session

    @property
    def session(self):
        if self._session is None:
            self._session = build_session(self.config)
        return self._session

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = self.session.request(method, url, **kwargs)
        except auth_exceptions.RefreshError as e:
            raise AuthError(f"Failed to refresh GCP access token: {e}") from e
        except (auth_exceptions.TransportError, requests.RequestException) as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        if resp.status_code in (401, 403):
            raise AuthError(f"BigQuery API denied access: {resp.status_code} {resp.reason}")
        if not 200 <= resp.status_code < 300:
            raise TransportError(f"BigQuery API error: {resp.status_code} {resp.reason}",
                                 status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"BigQuery API returned an invalid JSON response: {e}",
                                 status_code=resp.status_code) from e

    def list_tables(self, project_id: str, dataset_id: str) -> Iterator[str]:
        path = bigquery.DatasetReference(project_id, dataset_id).path
        url = f"{BIGQUERY_API}{path}/tables"
        token: Optional[str] = None
        while True:
            params = {"pageToken": token} if token else None
            data = self._request("GET", url, params=params)
            for table in data.get("tables") or []:
                yield table["tableReference"]["tableId"]
            token = data.get("nextPageToken")
            if not token:
                break

    def run_query(self, project_id: str, sql: str,
                  parameters: List[bigquery.ScalarQueryParameter]) -> Dict[str, Any]:
        body = {
            "query": sql,
            "useLegacySql": False,
            "parameterMode": "NAMED",
            "queryParameters": [p.to_api_repr() for p in parameters],
        }
        return self._request("POST", f"{BIGQUERY_API}/projects/{project_id}/queries", json=body)
