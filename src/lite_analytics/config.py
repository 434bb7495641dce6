"""
Configuration for lite-analytics.
"""
import logging
import os
import warnings
from dataclasses import dataclass, field

from .core.store import D1EventStore, SQLEventStore, SQLiteEventStore
from .errors import ConfigError

logger = logging.getLogger(__name__)

# Salts shorter than this are accepted with a warning
MIN_SALT_LENGTH = 16

ENV_PREFIX = "LITE_ANALYTICS_"


@dataclass
class AnalyticsConfig:
    """Configuration for one analytics deployment."""

    # Required: secret mixed into every visitor fingerprint
    fingerprint_salt: str

    # Storage: a SQLite path, or Cloudflare D1 credentials
    database_path: str | None = None
    d1_database_id: str | None = None
    cf_account_id: str | None = None
    cf_api_token: str | None = None

    # Public origin the tracker script posts to (e.g. "https://stats.example.com")
    public_url: str = ""
    collect_path: str = "/api/send"

    # Trusted country headers set by the edge, first present wins
    geo_headers: tuple[str, ...] = field(default=("cf-ipcountry", "x-vercel-ip-country"))
    cors_allow_origin: str = "*"

    # Timeouts
    ingest_timeout_seconds: float = 5.0
    query_timeout_seconds: float = 30.0

    # Windows
    live_window_minutes: int = 5
    summary_window_days: int = 7

    @property
    def uses_d1(self) -> bool:
        """Check if Cloudflare D1 is configured."""
        return bool(self.d1_database_id and self.cf_account_id and self.cf_api_token)

    @property
    def collect_url(self) -> str:
        return f"{self.public_url.rstrip('/')}{self.collect_path}"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_salt()

        if not self.uses_d1 and not self.database_path:
            raise ConfigError(
                "No event store configured. Set database_path, or all of "
                "d1_database_id, cf_account_id and cf_api_token."
            )
        if self.ingest_timeout_seconds <= 0 or self.query_timeout_seconds <= 0:
            raise ConfigError("Timeouts must be positive")
        if self.live_window_minutes <= 0 or self.summary_window_days <= 0:
            raise ConfigError("Windows must be positive")

    def _validate_salt(self) -> None:
        """Reject a missing salt, warn about a weak one."""
        if not self.fingerprint_salt:
            raise ConfigError(
                f"fingerprint_salt is required (set {ENV_PREFIX}SALT). "
                f"Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        if len(self.fingerprint_salt) < MIN_SALT_LENGTH:
            warnings.warn(
                f"fingerprint_salt is shorter than {MIN_SALT_LENGTH} characters; "
                f"visitor hashes are easier to brute-force",
                UserWarning,
                stacklevel=3,
            )
            logger.warning(f"Fingerprint salt is shorter than recommended {MIN_SALT_LENGTH} characters")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "AnalyticsConfig":
        """Build a config from LITE_ANALYTICS_* environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str, default: str | None = None) -> str | None:
            return env.get(f"{ENV_PREFIX}{name}", default)

        try:
            kwargs = dict(
                fingerprint_salt=get("SALT", ""),
                database_path=get("DATABASE_PATH"),
                d1_database_id=get("D1_DATABASE_ID"),
                cf_account_id=get("CF_ACCOUNT_ID"),
                cf_api_token=get("CF_API_TOKEN"),
                public_url=get("PUBLIC_URL", ""),
                cors_allow_origin=get("CORS_ALLOW_ORIGIN", "*"),
                ingest_timeout_seconds=float(get("INGEST_TIMEOUT", "5")),
                query_timeout_seconds=float(get("QUERY_TIMEOUT", "30")),
                live_window_minutes=int(get("LIVE_WINDOW_MINUTES", "5")),
                summary_window_days=int(get("SUMMARY_WINDOW_DAYS", "7")),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        geo = get("GEO_HEADERS")
        if geo:
            kwargs["geo_headers"] = tuple(h.strip().lower() for h in geo.split(",") if h.strip())

        return cls(**kwargs)


def create_store(config: AnalyticsConfig) -> SQLEventStore:
    """Build the event store the config points at. D1 wins if both are set."""
    if config.uses_d1:
        return D1EventStore(
            d1_database_id=config.d1_database_id,
            cf_account_id=config.cf_account_id,
            cf_api_token=config.cf_api_token,
            timeout=config.query_timeout_seconds,
        )
    return SQLiteEventStore(config.database_path)
