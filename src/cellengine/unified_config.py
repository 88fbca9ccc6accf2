"""Unified configuration for cell-engine.

Configuration is stored in ~/.cellengine/config.toml
Event logs, patterns and workflows are stored in ~/.cellengine/<namespace>.db
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from cellengine.core.config import KernelConfig

logger = logging.getLogger(__name__)

# Valid namespace: alphanumeric, hyphens, underscores, dots (no path separators)
_NAMESPACE_PATTERN = re.compile(r"^[a-zA-Z0-9_\-\.]+$")


def get_cellengine_dir() -> Path:
    """Get cell-engine data directory.

    Priority:
    1. CELLENGINE_DIR environment variable
    2. ~/.cellengine/
    """
    env_dir = os.environ.get("CELLENGINE_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".cellengine"


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"'
    return str(value)


@dataclass
class UnifiedConfig:
    """cell-engine configuration shared by the CLI and embedding hosts."""

    data_dir: Path = field(default_factory=get_cellengine_dir)
    kernel: KernelConfig = field(default_factory=KernelConfig)

    # CLI preferences
    json_output: bool = False
    verbose: bool = False

    version: str = "1.0"

    @classmethod
    def load(cls, config_path: Path | None = None) -> UnifiedConfig:
        """Load configuration from file, or create default if it doesn't exist.

        ``CELLENGINE_*`` environment variables override the file's
        ``[kernel]`` values.
        """
        if config_path is None:
            data_dir = get_cellengine_dir()
            config_path = data_dir / "config.toml"
        else:
            data_dir = config_path.parent

        if not config_path.exists():
            config = cls(data_dir=data_dir, kernel=KernelConfig.from_env())
            config.save()
            return config

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        kernel = KernelConfig.from_dict(data.get("kernel", {}))
        namespace = data.get("current_namespace")
        if isinstance(namespace, str) and _NAMESPACE_PATTERN.match(namespace):
            kernel = kernel.with_updates(namespace=namespace)
        elif namespace is not None:
            logger.warning("Ignoring invalid namespace %r in %s", namespace, config_path)

        cli = data.get("cli", {})
        return cls(
            data_dir=data_dir,
            kernel=KernelConfig.from_env(kernel),
            json_output=cli.get("json_output", False),
            verbose=cli.get("verbose", False),
            version=data.get("version", "1.0"),
        )

    def save(self) -> None:
        """Save configuration to TOML file (atomic write via temp+rename)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Validate before writing to prevent TOML injection
        if not _NAMESPACE_PATTERN.match(self.current_namespace):
            raise ValueError("Invalid namespace for config save")

        lines = [
            "# cell-engine configuration",
            "",
            f'version = "{self.version}"',
            f'current_namespace = "{self.current_namespace}"',
            "",
            "# Prediction and automation settings",
            "[kernel]",
        ]
        for f in fields(self.kernel):
            if f.name == "namespace":
                continue
            lines.append(f"{f.name} = {_toml_value(getattr(self.kernel, f.name))}")
        lines += [
            "",
            "# CLI preferences",
            "[cli]",
            f"json_output = {_toml_value(self.json_output)}",
            f"verbose = {_toml_value(self.verbose)}",
        ]

        content = "\n".join(lines) + "\n"
        fd, tmp_path = tempfile.mkstemp(dir=str(self.data_dir), suffix=".toml.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            Path(tmp_path).replace(self.config_path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    @property
    def current_namespace(self) -> str:
        return self.kernel.namespace

    @property
    def config_path(self) -> Path:
        """Get path to config file."""
        return self.data_dir / "config.toml"

    def get_db_path(self, namespace: str | None = None) -> Path:
        """Get path to a namespace's SQLite database.

        Raises:
            ValueError: If the namespace contains invalid characters
        """
        name = namespace or self.current_namespace
        if not _NAMESPACE_PATTERN.match(name):
            raise ValueError(
                "Invalid namespace: must contain only "
                "alphanumeric characters, hyphens, underscores, or dots"
            )
        db_path = (self.data_dir / f"{name}.db").resolve()
        if not db_path.is_relative_to(self.data_dir.resolve()):
            raise ValueError("Invalid namespace: path traversal detected")
        return db_path

    def switch_namespace(self, namespace: str) -> None:
        """Switch to a different namespace and save config."""
        if not _NAMESPACE_PATTERN.match(namespace):
            raise ValueError(
                "Invalid namespace: must contain only "
                "alphanumeric characters, hyphens, underscores, or dots"
            )
        self.kernel = self.kernel.with_updates(namespace=namespace)
        self.save()


# Singleton instance for easy access
_config: UnifiedConfig | None = None


def get_config(reload: bool = False) -> UnifiedConfig:
    """Get the unified configuration (singleton).

    Args:
        reload: Force reload from disk
    """
    global _config
    if _config is None or reload:
        _config = UnifiedConfig.load()
    return _config
