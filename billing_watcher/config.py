import os, re, subprocess
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_DATASET = "billing_export"
PROJECT_ID_PATTERN = re.compile(r"^[a-z][a-z0-9-]{4,28}[a-z0-9]$")
LANGUAGES = ("auto", "en", "ja")


class ClientConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_id: str
    dataset_id: str = DEFAULT_DATASET
    credentials_path: Optional[str] = None
    strict_ssl: bool = True


class WatcherSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    project_id: Optional[str] = None
    dataset_id: str = DEFAULT_DATASET
    credentials_path: Optional[str] = None
    strict_ssl: bool = True
    refresh_interval_minutes: int = Field(default=30, ge=1)
    monthly_budget: float = Field(default=0.0, ge=0)
    language: str = "auto"

    def client_config(self) -> Optional[ClientConfig]:
        if not self.project_id:
            return None
        return ClientConfig(
            project_id=self.project_id,
            dataset_id=self.dataset_id or DEFAULT_DATASET,
            credentials_path=self.credentials_path or None,
            strict_ssl=self.strict_ssl,
        )

    @classmethod
    def from_env(cls, environ=None, **overrides) -> "WatcherSettings":
        env = os.environ if environ is None else environ
        values = {
            "project_id": env.get("GCP_BQ_PROJECT_ID") or None,
            "dataset_id": env.get("GCP_BQ_DATASET") or DEFAULT_DATASET,
            "credentials_path": env.get("GCP_BILLING_CREDENTIALS_PATH") or None,
            "strict_ssl": _env_bool(env.get("GCP_BILLING_STRICT_SSL"), True),
            "refresh_interval_minutes": int(env.get("GCP_BILLING_REFRESH_MINUTES") or "30"),
            "monthly_budget": float(env.get("GCP_BILLING_MONTHLY_BUDGET") or "0"),
            "language": env.get("GCP_BILLING_LANGUAGE") or "auto",
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if values["language"] not in LANGUAGES:
            values["language"] = "auto"
        return cls(**values)


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


def is_valid_project_id(value: str) -> bool:
    return bool(value) and PROJECT_ID_PATTERN.match(value) is not None


def suggest_project_id() -> Optional[str]:
    """Return the active gcloud project, if gcloud is installed and has one set."""
    try:
        out = subprocess.run(
            ["gcloud", "config", "get-value", "project"],
            capture_output=True, text=True, check=True, timeout=10,
        ).stdout.strip()
    except (OSError, subprocess.SubprocessError):
        return None
    return out if is_valid_project_id(out) else None
