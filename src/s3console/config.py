"""Configuration loading and Pydantic models for s3console."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator


class ServerConfig(BaseModel):
    """Server binding and runtime configuration."""

    host: str = "0.0.0.0"
    port: int = 8500
    log_level: str = "INFO"
    log_format: str = "text"
    shutdown_timeout: int = 30
    cors_origins: list[str] = Field(default_factory=list)


class AuthConfig(BaseModel):
    """Credential resolution configuration.

    ``service`` mode asks the auth node for per-user keys. ``static`` mode
    hands every user the configured key pair and is meant for test and
    development deployments only.
    """

    mode: Literal["service", "static"] = "service"
    url: str = "http://127.0.0.1:8080"
    console_id: str = ""
    console_key: str = ""
    timeout: float = 5.0
    static_access_key: str = ""
    static_secret_key: str = ""


class StoreConfig(BaseModel):
    """Object store client configuration.

    ``endpoint`` may omit the scheme, in which case ``use_tls`` supplies it.
    An explicit scheme must agree with ``use_tls``.
    """

    region: str = "cfs_default"
    endpoint: str = "http://127.0.0.1:80"
    force_path_style: bool = True
    use_tls: bool = False
    list_max_keys: int = 1000
    delimiter: str = "/"
    delete_wait_delay: int = 1
    delete_wait_attempts: int = 20
    strict_delete_confirmation: bool = False
    presign_expires: int = 3600

    @model_validator(mode="after")
    def _endpoint_scheme(self) -> "StoreConfig":
        if not self.endpoint:
            return self
        scheme = "https" if self.use_tls else "http"
        if "://" not in self.endpoint:
            self.endpoint = f"{scheme}://{self.endpoint}"
        elif self.endpoint.split("://", 1)[0].lower() != scheme:
            raise ValueError(f"endpoint {self.endpoint!r} does not match use_tls={self.use_tls}")
        return self


class ObservabilityConfig(BaseModel):
    """Metrics and health check configuration."""

    metrics: bool = True
    health_check: bool = True


class ConsoleConfig(BaseModel):
    """Top-level s3console configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


def _parse_auth(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the auth section from YAML data.

    Handles nested structure: auth.static.access_key -> static_access_key
    """
    if data is None:
        return {}
    result = {k: v for k, v in data.items() if k != "static"}
    static_section = data.get("static")
    if isinstance(static_section, dict):
        result["static_access_key"] = static_section.get("access_key", "")
        result["static_secret_key"] = static_section.get("secret_key", "")
    return result


def _parse_store(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the store section from YAML data.

    Handles nested structure: store.delete_wait.delay -> delete_wait_delay, etc.
    """
    if data is None:
        return {}
    result = {k: v for k, v in data.items() if k != "delete_wait"}
    wait_section = data.get("delete_wait")
    if isinstance(wait_section, dict):
        if "delay" in wait_section:
            result["delete_wait_delay"] = wait_section["delay"]
        if "attempts" in wait_section:
            result["delete_wait_attempts"] = wait_section["attempts"]
        if "strict" in wait_section:
            result["strict_delete_confirmation"] = wait_section["strict"]
    return result


def load_config(path: Path) -> ConsoleConfig:
    """Load a ConsoleConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated ConsoleConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value has the wrong type.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return ConsoleConfig(
        server=ServerConfig(**(raw.get("server") or {})),
        auth=AuthConfig(**_parse_auth(raw.get("auth"))),
        store=StoreConfig(**_parse_store(raw.get("store"))),
        observability=ObservabilityConfig(**(raw.get("observability") or {})),
    )
