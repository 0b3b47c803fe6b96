"""Connection and sync settings for r2-sync.

Reads settings from CLI args, environment variables, .env files, and YAML
config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    R2_BUCKET: Bucket name
    R2_ENDPOINT: API endpoint, e.g. https://<account_id>.r2.cloudflarestorage.com
    R2_ACCESS_KEY_ID: Access key ID
    R2_SECRET_ACCESS_KEY: Secret access key
    R2_SYNC_FOLDER: Folder inside the vault to sync (optional, default: whole vault)
    R2_VAULT_ROOT: Local vault directory (optional, default: current directory)
    R2_AUTO_SYNC: Enable periodic sync in watch mode (optional, default: false)
    R2_SYNC_INTERVAL: Auto sync interval in minutes (optional, default: 5)
    R2_LANGUAGE: Message language, "en" or "zh" (optional, default: en)
    R2_INSECURE: Skip SSL verification (optional, default: false)

Connection settings are not required at load time: an operation checks
them with ``require_complete()`` right before its first network call.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any

from dotenv import find_dotenv, load_dotenv

from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import LoggingConfig, build_config, to_yaml_fallbacks
from .core.signer import Credentials
from .endpoint import Endpoint
from .errors import ConfigurationIncompleteError

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "zh")


@dataclass
class Config:
    bucket_name: str = ""
    endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    sync_folder: str = ""
    vault_root: str = "."
    auto_sync: bool = False
    sync_interval: int = 5
    language: str = "en"
    insecure: bool = False
    debug: bool = False

    def __repr__(self) -> str:
        # Keep the secret out of logs and tracebacks.
        secret = "***" if self.secret_access_key else "''"
        return (
            f"Config(bucket_name={self.bucket_name!r}, "
            f"endpoint={self.endpoint!r}, "
            f"access_key_id={self.access_key_id!r}, "
            f"secret_access_key={secret}, "
            f"sync_folder={self.sync_folder!r}, "
            f"vault_root={self.vault_root!r}, "
            f"auto_sync={self.auto_sync}, "
            f"sync_interval={self.sync_interval}, "
            f"language={self.language!r})"
        )

    def missing_fields(self) -> list[str]:
        """Names of required connection settings that are empty.

        An endpoint that normalizes to no host (``"https://"``) counts as
        missing.
        """
        required = {
            "bucket_name": self.bucket_name,
            "endpoint": self._endpoint_host(),
            "access_key_id": self.access_key_id,
            "secret_access_key": self.secret_access_key,
        }
        return [name for name, value in required.items() if not value]

    def _endpoint_host(self) -> str:
        try:
            return Endpoint.parse(self.endpoint).host
        except ConfigurationIncompleteError:
            return ""

    def is_configured(self) -> bool:
        return not self.missing_fields()

    def require_complete(self) -> None:
        """Raise ``ConfigurationIncompleteError`` if any setting is missing."""
        missing = self.missing_fields()
        if missing:
            raise ConfigurationIncompleteError(missing)

    def credentials(self) -> Credentials:
        return Credentials(
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
        )

    def parsed_endpoint(self) -> Endpoint:
        return Endpoint.parse(self.endpoint)


def validate_config(config: Config) -> None:
    """Normalize and validate non-credential settings in place.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the interval or language is invalid.
    """
    config.sync_folder = config.sync_folder.strip().strip("/")

    if config.sync_interval < 1:
        raise ValueError(
            f"Invalid sync interval '{config.sync_interval}': must be a positive number of minutes"
        )

    config.language = config.language.strip().lower()
    if config.language not in SUPPORTED_LANGUAGES:
        logger.warning(
            "Unsupported language '%s', falling back to 'en'",
            config.language,
        )
        config.language = "en"

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def load_config(
    bucket_name: str | None = None,
    endpoint: str | None = None,
    access_key_id: str | None = None,
    secret_access_key: str | None = None,
    sync_folder: str | None = None,
    vault_root: str | None = None,
    sync_interval: int | None = None,
    language: str | None = None,
    auto_sync: bool = False,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        bucket_name: Override bucket name.
        endpoint: Override API endpoint.
        access_key_id: Override access key ID.
        secret_access_key: Override secret access key.
        sync_folder: Override sync folder (relative to the vault root).
        vault_root: Override local vault directory.
        sync_interval: Override auto sync interval in minutes.
        language: Override message language.
        auto_sync: Enable auto sync (CLI flag).
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML ``r2`` and
            ``sync`` sections.  Used when CLI arg and env var are unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a numeric setting cannot be parsed or is out of range.
    """
    fb = yaml_fallbacks or {}

    def pick(cli: str | None, env_key: str, fb_key: str) -> str:
        value = cli or os.getenv(env_key) or fb.get(fb_key) or ""
        return str(value).strip()

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    def pick_bool(cli: bool, env_key: str, fb_key: str) -> bool:
        if cli:
            return True
        env_val = get_bool_env(env_key)
        if env_val is not None:
            return env_val
        return bool(fb.get(fb_key, False))

    # --- String fields: CLI > env > YAML > default ---

    final_bucket = pick(bucket_name, "R2_BUCKET", "bucket_name")
    final_endpoint = pick(endpoint, "R2_ENDPOINT", "endpoint")
    final_key_id = pick(access_key_id, "R2_ACCESS_KEY_ID", "access_key_id")
    final_secret = pick(
        secret_access_key, "R2_SECRET_ACCESS_KEY", "secret_access_key"
    )
    final_folder = pick(sync_folder, "R2_SYNC_FOLDER", "sync_folder")
    final_vault = pick(vault_root, "R2_VAULT_ROOT", "vault_root") or "."
    final_language = pick(language, "R2_LANGUAGE", "language") or "en"

    # --- Boolean fields: CLI > env > YAML > default ---

    final_auto_sync = pick_bool(auto_sync, "R2_AUTO_SYNC", "auto_sync")
    final_insecure = pick_bool(insecure, "R2_INSECURE", "insecure")
    final_debug = pick_bool(debug, "R2_DEBUG", "debug")

    # --- Numeric fields: CLI > env > YAML > default ---

    if sync_interval is not None:
        final_interval = sync_interval
    else:
        interval_raw = os.getenv("R2_SYNC_INTERVAL")
        if interval_raw is not None:
            try:
                final_interval = int(interval_raw)
            except ValueError:
                raise ValueError(
                    f"Invalid R2_SYNC_INTERVAL '{interval_raw}': must be a positive number of minutes"
                ) from None
        elif "sync_interval" in fb:
            final_interval = int(fb["sync_interval"])
        else:
            final_interval = 5

    config = Config(
        bucket_name=final_bucket,
        endpoint=final_endpoint,
        access_key_id=final_key_id,
        secret_access_key=final_secret,
        sync_folder=final_folder,
        vault_root=final_vault,
        auto_sync=final_auto_sync,
        sync_interval=final_interval,
        language=final_language,
        insecure=final_insecure,
        debug=final_debug,
    )

    validate_config(config)

    return config


def resolve_config(overrides: dict[str, Any] | None = None) -> Config:
    """Merge every configuration source into one ``Config``.

    Loads ``.env`` first (so YAML ``${VAR}`` interpolation can see its
    values), then the YAML files as fallbacks, then applies *overrides*
    (CLI arguments keyed by ``load_config`` parameter names).
    """
    load_dotenv(find_dotenv(usecwd=True))

    config_files = discover_config_files()
    yaml_fallbacks: dict[str, Any] | None = None
    if config_files:
        unified = build_config(load_hierarchical_config())
        yaml_fallbacks = to_yaml_fallbacks(unified)
        logger.info("Configuration file: %s", config_files[0])

    return load_config(**(overrides or {}), yaml_fallbacks=yaml_fallbacks)


def resolve_logging_settings() -> LoggingConfig:
    """Return the ``logging`` section of the YAML config (defaults if none).

    Read before ``setup_logging`` so the file can choose level and log file.
    """
    load_dotenv(find_dotenv(usecwd=True))
    if not discover_config_files():
        return LoggingConfig()
    return build_config(load_hierarchical_config()).logging
