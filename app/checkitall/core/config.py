"""Run configuration and settings.

Configuration is a TOML file (cia.toml) with a top-level run section
and the [analyzer], [pipeline], [poll] and [policy] tables. Loading
validates everything up front so that configuration errors are fatal
before the run starts.
"""

import logging
import os
import tomllib
import uuid
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from checkitall.admission.policy import Policy
from checkitall.core.errors import ConfigError, ConfigNotFoundError
from checkitall.core.paths import ensure_state_dir, get_client_uuid_path, get_config_candidates

logger = logging.getLogger(__name__)

FileErrorMode = Literal["abort", "reject"]


class AnalyzerSettings(BaseModel):
    """Connection settings for the analyzer service.

    Attributes:
        url: Base URL of the analyzer, e.g. ``https://ddan.example.com``.
        api_key: API key issued by the analyzer.
        ignore_tls_errors: Skip TLS certificate verification.
        product_name: Product name reported on registration.
        source_id: Submission source identifier.
        source_name: Submission source name.
        client_uuid: Client UUID. Generated and persisted when empty.
        request_timeout: Per-request timeout in seconds.
    """

    model_config = ConfigDict(extra="forbid")

    url: str = ""
    api_key: str = ""
    ignore_tls_errors: bool = False
    product_name: str = "cia"
    source_id: str = "500"
    source_name: str = "pipeline"
    client_uuid: str = ""
    request_timeout: Annotated[
        float,
        Field(gt=0, description="Per-request timeout in seconds"),
    ] = 60.0


class PipelineSettings(BaseModel):
    """Admission pipeline sizing and error handling.

    Attributes:
        max_file_size: Size ceiling in bytes; larger files are decided
            by the bigFile policy without analysis.
        prescan_jobs: Number of filter/size workers.
        submit_jobs: Number of submit/poll workers. Each one is busy for
            the whole analysis of a file, so this bounds throughput.
        queue_depth: Capacity of each of the two work queues.
        on_file_error: What to do when one file cannot be classified or
            read: abort the run (default) or reject only that file.
    """

    model_config = ConfigDict(extra="forbid")

    max_file_size: Annotated[int, Field(ge=0)] = 50_000_000
    prescan_jobs: Annotated[int, Field(ge=1, le=256)] = 4
    submit_jobs: Annotated[int, Field(ge=1, le=1024)] = 100
    queue_depth: Annotated[int, Field(ge=1)] = 1000
    on_file_error: FileErrorMode = "abort"


class PollSettings(BaseModel):
    """Verdict polling cadence and budget.

    Attributes:
        interval: Base poll interval in seconds.
        max_polls: Maximum queries per sample (None = unbounded).
        timeout: Maximum seconds spent polling one sample (None = unbounded).
    """

    model_config = ConfigDict(extra="forbid")

    interval: Annotated[float, Field(ge=0)] = 60.0
    max_polls: Annotated[int | None, Field(ge=1)] = None
    timeout: Annotated[float | None, Field(gt=0)] = None


class AppConfig(BaseModel):
    """Complete run configuration.

    Attributes:
        folder: Directory to check.
        filter: Path of the filter rules file (None = submit every file).
        skip: Path prefixes or glob patterns pruned from the walk.
    """

    model_config = ConfigDict(extra="forbid")

    folder: str | None = None
    filter: str | None = None
    skip: list[str] = Field(default_factory=list)
    analyzer: AnalyzerSettings = Field(default_factory=AnalyzerSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    poll: PollSettings = Field(default_factory=PollSettings)
    policy: Policy = Field(default_factory=Policy)


def find_config_path() -> Path | None:
    """Return the first existing config file in lookup order, if any."""
    for candidate in get_config_candidates():
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path) -> AppConfig:
    """Load and validate the run configuration from a TOML file.

    Args:
        path: Path to the config file.

    Returns:
        Validated AppConfig.

    Raises:
        ConfigNotFoundError: If the file doesn't exist.
        ConfigError: If the file cannot be read, is not valid TOML, or
            doesn't match the schema.
    """
    if not path.exists():
        raise ConfigNotFoundError(f"Config not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"{path}: failed to read config: {e}") from e

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{path}: invalid config content: {e}") from e

    logger.debug("Loaded config from %s", path)
    return config


def save_config(config: AppConfig, path: Path) -> Path:
    """Save the run configuration to a TOML file atomically.

    Args:
        config: Configuration to write.
        path: Destination path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(by_alias=True, exclude_none=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(mode="wb", dir=path.parent, delete=False, suffix=".tmp") as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config {path}: {e}") from e

    return path


def resolve_client_uuid(settings: AnalyzerSettings) -> str:
    """Return the analyzer client UUID.

    Uses the configured value when set. Otherwise reads the UUID
    persisted in the state directory, generating and saving one on first
    use so that the client registers under the same identity every run.

    Args:
        settings: Analyzer settings.

    Returns:
        Client UUID string.

    Raises:
        ConfigError: If the persisted UUID cannot be read or written.
    """
    if settings.client_uuid:
        return settings.client_uuid

    uuid_path = get_client_uuid_path()
    try:
        if uuid_path.is_file():
            stored = uuid_path.read_text(encoding="utf-8").strip()
            if stored:
                return stored
        ensure_state_dir()
        client_uuid = str(uuid.uuid4())
        uuid_path.write_text(client_uuid + "\n", encoding="utf-8")
    except (OSError, RuntimeError) as e:
        raise ConfigError(f"Cannot persist client UUID in {uuid_path}: {e}") from e

    logger.info("Generated analyzer client UUID %s", client_uuid)
    return client_uuid


def mask_secret(value: str) -> str:
    """Mask a secret for display, keeping only its last four characters."""
    if not value:
        return ""
    if len(value) <= 4:
        return "***"
    return "***" + value[-4:]
