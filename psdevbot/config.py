"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from psdevbot.utils.platform import get_config_dir

DEFAULT_REPOSITORY_ALIASES = {
    "pokemon-showdown": "server",
    "pokemon-showdown-client": "client",
    "Pokemon-Showdown-Dex": "dex",
}


class RoomConfiguration(BaseModel):
    """Destinations and webhook secret for one repository."""

    model_config = ConfigDict(frozen=True)

    rooms: tuple[str, ...] = ()
    secret: str | None = None
    # Rooms that get a condensed summary instead of the full commit list
    simple_rooms: tuple[str, ...] = ()

    @field_validator("rooms", "simple_rooms")
    @classmethod
    def _dedupe(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(value))


class GitHubApiConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: str = ""
    password: str = ""
    api_url: str = "https://api.github.com"
    timeout: float = 5.0
    cache_size: int = 100

    @property
    def enabled(self) -> bool:
        return bool(self.user and self.password)


class RelayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    send_interval: float = 0.7
    auth_timeout: float = 30.0
    reconnect_delay: float = 10.0
    dedup_window: float = 600.0


@dataclass(frozen=True)
class RoomRoute:
    rooms: tuple[str, ...]
    secret: str
    simple_rooms: tuple[str, ...] = ()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PSDEVBOT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        frozen=True,
    )

    server: str
    login_server: str = "https://play.pokemonshowdown.com/action.php"
    user: str
    password: str
    secret: str = ""
    bind: str = "0.0.0.0"
    port: int = 3030
    room: str | None = None
    project_configuration: dict[str, RoomConfiguration] = Field(default_factory=dict)
    username_aliases: dict[str, str] = Field(default_factory=dict)
    repository_aliases: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_REPOSITORY_ALIASES)
    )
    github: GitHubApiConfig = Field(default_factory=GitHubApiConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs and act as defaults for env vars
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @field_validator("username_aliases")
    @classmethod
    def _casefold_aliases(cls, value: dict[str, str]) -> dict[str, str]:
        # GitHub logins are case-insensitive
        return {login.casefold(): alias for login, alias in value.items()}

    @model_validator(mode="after")
    def _require_destination(self) -> Settings:
        if not self.room and not self.project_configuration:
            raise ValueError(
                "At least one of PSDEVBOT_ROOM or PSDEVBOT_PROJECT_CONFIGURATION needs to be provided"
            )
        return self

    def route_for(self, full_name: str) -> RoomRoute:
        """Resolve destination rooms and webhook secret for a repository."""
        configuration = self.project_configuration.get(full_name)
        if configuration is None:
            rooms = (self.room,) if self.room else ()
            return RoomRoute(rooms=rooms, secret=self.secret)
        secret = self.secret if configuration.secret is None else configuration.secret
        return RoomRoute(
            rooms=configuration.rooms,
            secret=secret,
            simple_rooms=configuration.simple_rooms,
        )

    def all_rooms(self) -> list[str]:
        rooms: set[str] = set()
        for configuration in self.project_configuration.values():
            rooms.update(configuration.rooms)
            rooms.update(configuration.simple_rooms)
        if self.room:
            rooms.add(self.room)
        return sorted(rooms)

    def username_alias(self, login: str) -> str:
        return self.username_aliases.get(login.casefold(), login)

    def repository_alias(self, name: str) -> str:
        return self.repository_aliases.get(name, name)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    # Determine config file path
    if config_path is None:
        config_path = os.environ.get("PSDEVBOT_CONFIG")
    if config_path is None:
        default = get_config_dir() / "config.yaml"
        if default.exists():
            config_path = default

    # Load YAML if found
    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    # Build settings: YAML values as defaults, env vars override
    return Settings(**yaml_data)
