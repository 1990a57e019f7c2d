"""
Configuration Management for gdocs-markdown-mcp.

All settings come from environment variables and are read once into a
`DocsConfig` instance. Use `reload_config()` after changing the environment
(tests do this through monkeypatch).
"""

import os

APP_NAME = "gdocs-markdown-mcp"
DEFAULT_CONFIG_DIR = "~/.config/gdocs-markdown-mcp"

# Default read budget for plain-text extraction (bytes)
DEFAULT_MAX_BYTES = 2_000_000

SUPPORTED_TRANSPORTS = ("stdio", "streamable-http")


class DocsConfig:
    """
    Centralized configuration.

    Attributes:
        credentials_file: Path to the authorized-user token JSON.
        max_bytes: Default byte budget for reading documents (0 = unlimited).
        temp_image_folder_id: Drive folder for temporary image uploads (None = My Drive root).
        log_level: Name of the logging level.
        transport: MCP transport, "stdio" or "streamable-http".
        port: Port for the HTTP transport.
    """

    def __init__(self):
        config_dir = os.path.expanduser(os.getenv("GDOCS_MCP_CONFIG_DIR", DEFAULT_CONFIG_DIR))
        self.config_dir = config_dir

        self.credentials_file = os.path.expanduser(
            os.getenv("GDOCS_MCP_CREDENTIALS_FILE", os.path.join(config_dir, "token.json"))
        )

        self.max_bytes = self._get_int("GDOCS_MCP_MAX_BYTES", DEFAULT_MAX_BYTES)
        self.temp_image_folder_id = os.getenv("GDOCS_MCP_TEMP_IMAGE_FOLDER") or None
        self.log_level = os.getenv("GDOCS_MCP_LOG_LEVEL", "INFO").upper()

        self.transport = os.getenv("GDOCS_MCP_TRANSPORT", "stdio").lower()
        if self.transport not in SUPPORTED_TRANSPORTS:
            raise ValueError(
                f"GDOCS_MCP_TRANSPORT must be one of {', '.join(SUPPORTED_TRANSPORTS)}, got '{self.transport}'"
            )
        self.port = self._get_int("PORT", 8000)

    @staticmethod
    def _get_int(name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or raw.strip() == "":
            return default
        try:
            return int(raw)
        except ValueError as e:
            raise ValueError(f"{name} must be an integer, got '{raw}'") from e


_config: DocsConfig | None = None


def get_config() -> DocsConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = DocsConfig()
    return _config


def reload_config() -> DocsConfig:
    """
    Reload the configuration from environment variables.

    Returns:
        The reloaded configuration instance
    """
    global _config
    _config = DocsConfig()
    return _config


def get_credentials_file() -> str:
    """Get the path of the stored OAuth token."""
    return get_config().credentials_file


def get_default_max_bytes() -> int:
    """Get the default byte budget for plain-text reads."""
    return get_config().max_bytes


def get_temp_image_folder_id() -> str | None:
    """Get the Drive folder used for temporary image uploads."""
    return get_config().temp_image_folder_id
