"""Configuration loading for Seedling."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_ADMIN_PASSWORD = "971314"


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    static_dir: str = ""  # Serve the web front end from here when set
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class StorageConfig:
    db_path: str = "~/.seedling/data.sqlite"
    timeout_seconds: float = 5.0


@dataclass
class AdminConfig:
    password: str = DEFAULT_ADMIN_PASSWORD


@dataclass
class ClientConfig:
    """Configuration for the remote-first tree client."""

    server_url: str = "http://localhost:3000"
    cache_path: str = "~/.seedling/tree_cache.json"
    timeout_seconds: float = 10.0
    admin_secret: str | None = None
    """Locally-known admin secret. Offline harvest stays disabled while unset."""


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)
    client: ClientConfig = field(default_factory=ClientConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with SEEDLING_ prefix."""
    return os.environ.get(f"SEEDLING_{key}", default)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    # Server overrides
    if host := _get_env("HOST"):
        config.server.host = host
    if port := _get_env("PORT"):
        config.server.port = int(port)
    if static_dir := _get_env("STATIC_DIR"):
        config.server.static_dir = static_dir

    # Storage overrides
    if db_path := _get_env("DB_PATH"):
        config.storage.db_path = db_path

    # Admin password
    if password := _get_env("ADMIN_PW"):
        config.admin.password = password

    # Client overrides
    if server_url := _get_env("SERVER_URL"):
        config.client.server_url = server_url
    if cache_path := _get_env("CACHE_PATH"):
        config.client.cache_path = cache_path
    if admin_secret := _get_env("CLIENT_ADMIN_SECRET"):
        config.client.admin_secret = admin_secret

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default config.

    Returns:
        Loaded Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            # Parse server config
            if "server" in data:
                server_data = data["server"]
                config.server = ServerConfig(
                    host=server_data.get("host", config.server.host),
                    port=server_data.get("port", config.server.port),
                    static_dir=server_data.get("static_dir", config.server.static_dir),
                    cors_origins=server_data.get(
                        "cors_origins", config.server.cors_origins
                    ),
                )

            # Parse storage config
            if "storage" in data:
                storage_data = data["storage"]
                config.storage = StorageConfig(
                    db_path=storage_data.get("db_path", config.storage.db_path),
                    timeout_seconds=storage_data.get(
                        "timeout_seconds", config.storage.timeout_seconds
                    ),
                )

            # Parse admin config
            if "admin" in data:
                config.admin = AdminConfig(
                    password=str(data["admin"].get("password", config.admin.password))
                )

            # Parse client config
            if "client" in data:
                client_data = data["client"]
                admin_secret = client_data.get("admin_secret")
                config.client = ClientConfig(
                    server_url=client_data.get("server_url", config.client.server_url),
                    cache_path=client_data.get("cache_path", config.client.cache_path),
                    timeout_seconds=client_data.get(
                        "timeout_seconds", config.client.timeout_seconds
                    ),
                    admin_secret=str(admin_secret) if admin_secret is not None else None,
                )

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return config
