"""Configuration management for gametest."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ProjectConfig(BaseModel):
    """Project identification and metadata."""

    name: str = Field(default="my-game", description="Project name shown in reports")
    description: str = Field(default="", description="Brief description of the project")


class DiscoveryConfig(BaseModel):
    """Where test modules are found."""

    modules: list[str] = Field(default_factory=list, description="Dotted module or package names to scan for tests")
    paths: list[str] = Field(default_factory=lambda: ["."], description="Directories added to the import path before scanning")
    recursive: bool = Field(default=True, description="Also scan submodules of packages")

    @field_validator("modules")
    @classmethod
    def validate_modules(cls, v: list[str]) -> list[str]:
        for name in v:
            if not name.strip():
                raise ValueError("Module names cannot be empty")
        return [name.strip() for name in v]


class SchedulerConfig(BaseModel):
    """Tick loop behavior."""

    frame_delta: float = Field(default=1.0 / 60.0, description="Seconds added to elapsed time by a tick without an explicit delta")
    restore_queue_on_stop: bool = Field(default=False, description="Put the queue back in its start order when a run is stopped")
    skip_remaining_on_stop: bool = Field(default=False, description="Record pending tests as skipped when a run is stopped")

    @field_validator("frame_delta")
    @classmethod
    def validate_frame_delta(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Frame delta must be positive")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_results: bool = Field(default=True, description="Log one line per finished test")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @property
    def numeric_level(self) -> int:
        return logging.getLevelName(self.level)


class SessionConfig(BaseModel):
    """Persistence of selection and results between runs."""

    enabled: bool = Field(default=False, description="Save and restore session state")
    state_file: str = Field(default=".gametest/session.json", description="Path of the session state file")


class GameTestConfig(BaseModel):
    """Main configuration for gametest."""

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "GameTestConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def find_and_load(cls, start_dir: Path | str | None = None) -> "GameTestConfig":
        """Find and load configuration file, searching up the directory tree."""
        if start_dir is None:
            start_dir = Path.cwd()
        else:
            start_dir = Path(start_dir)

        config_names = ["gametest.json", ".gametest.json"]

        current = start_dir.resolve()
        while True:
            for name in config_names:
                config_path = current / name
                if config_path.exists():
                    return cls.from_file(config_path)
            if current == current.parent:
                break
            current = current.parent

        raise FileNotFoundError(
            "No configuration file found. Create gametest.json or run 'gametest init'"
        )

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    def get_absolute_paths(self, base_dir: Path | str | None = None) -> dict:
        """Get absolute paths for the configured locations."""
        if base_dir is None:
            base_dir = Path.cwd()
        else:
            base_dir = Path(base_dir)

        return {
            "state_file": (base_dir / self.session.state_file).resolve(),
            "discovery_paths": [(base_dir / p).resolve() for p in self.discovery.paths],
        }


def get_default_config() -> GameTestConfig:
    """Return a default configuration."""
    return GameTestConfig(
        project=ProjectConfig(name="my-game"),
        discovery=DiscoveryConfig(modules=["tests"]),
    )


def create_example_config(output_path: Path | str, modules: Optional[list[str]] = None) -> Path:
    """Create an example configuration file."""
    output_path = Path(output_path)
    config = get_default_config()
    config.project.description = "Brief description of your game"
    if modules:
        config.discovery.modules = list(modules)
    config.to_file(output_path)
    return output_path
