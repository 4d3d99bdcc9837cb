"""Configuration management for the chat streaming client."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

from chatstream.llm.models import ChatEndpointConfig

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")


class Configuration:
    """Manages configuration and environment variables for the chat client."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for the API key and endpoint overrides
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = self._load_yaml_config(self.config_path)

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    def get_endpoint_config(self) -> dict[str, Any]:
        """Get chat endpoint configuration from YAML.

        Returns:
            Endpoint configuration with ``base_url`` resolved against the
            environment override when one is set.

        Raises:
            ValueError: If required endpoint parameters are missing.
        """
        endpoint_config = self._config.get("chat", {}).get("endpoint", {})

        required_keys = ["base_url", "path", "api_key_env"]
        for key in required_keys:
            if key not in endpoint_config:
                raise ValueError(
                    f"chat.endpoint.{key} must be explicitly configured "
                    "in config.yaml"
                )

        result_config = {**endpoint_config}
        base_url_env = endpoint_config.get("base_url_env")
        if base_url_env and os.getenv(base_url_env):
            result_config["base_url"] = os.getenv(base_url_env)

        if not result_config["base_url"]:
            raise ValueError(
                "chat.endpoint.base_url is empty and no environment override "
                f"'{base_url_env}' is set"
            )

        return result_config

    @property
    def chat_url(self) -> str:
        """Full URL of the streaming chat endpoint."""
        endpoint_config = self.get_endpoint_config()
        base_url = str(endpoint_config["base_url"]).rstrip("/")
        path = str(endpoint_config["path"])
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{base_url}{path}"

    @property
    def chat_api_key(self) -> str:
        """Get the API key for the chat endpoint.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        env_key = self.get_endpoint_config()["api_key_env"]
        api_key = os.getenv(env_key)
        if not api_key:
            raise ValueError(
                f"API key '{env_key}' not found in environment variables"
            )
        return api_key

    def get_http_client_config(self) -> dict[str, Any]:
        """Get HTTP client timeouts from YAML.

        Raises:
            ValueError: If a timeout is missing or not positive.
        """
        http_config = self._config.get("chat", {}).get("http_client", {})

        required_keys = [
            "connect_timeout", "read_timeout", "write_timeout", "pool_timeout"
        ]
        for key in required_keys:
            if key not in http_config:
                raise ValueError(
                    f"chat.http_client.{key} must be explicitly configured "
                    "in config.yaml"
                )
            value = http_config[key]
            if not isinstance(value, int | float) or value <= 0:
                raise ValueError(f"chat.http_client.{key} must be positive")

        return http_config

    def get_streaming_config(self) -> dict[str, Any]:
        """Get event-stream framing configuration from YAML.

        Raises:
            ValueError: If required streaming parameters are missing or empty.
        """
        streaming_config = self._config.get("chat", {}).get("streaming", {})

        required_keys = ["data_prefix", "done_sentinel", "encoding", "comment_prefix"]
        for key in required_keys:
            if key not in streaming_config:
                raise ValueError(
                    f"chat.streaming.{key} must be explicitly configured "
                    "in config.yaml"
                )
            if not isinstance(streaming_config[key], str) or not streaming_config[key]:
                raise ValueError(f"chat.streaming.{key} must be a non-empty string")

        return streaming_config

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging", {})

    def build_endpoint_config(self) -> ChatEndpointConfig:
        """Assemble the transport configuration for ChatStreamClient."""
        http_config = self.get_http_client_config()
        return ChatEndpointConfig(
            url=self.chat_url,
            api_key=self.chat_api_key,
            connect_timeout=float(http_config["connect_timeout"]),
            read_timeout=float(http_config["read_timeout"]),
            write_timeout=float(http_config["write_timeout"]),
            pool_timeout=float(http_config["pool_timeout"]),
        )
