"""Configuration management for mac-cleanup."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .models import CategoryKind, RemovalMode

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})

DEFAULT_CATEGORIES: frozenset[CategoryKind] = frozenset({
    CategoryKind.USER_CACHES,
    CategoryKind.BROWSER_CACHES,
    CategoryKind.TEMP_FILES,
})


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a YAML or string boolean.

    Args:
        value: Raw value from the config file.
        default: Value used when ``value`` is None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def resolve_mode(*, dry_run: bool, backup: bool) -> RemovalMode:
    """Collapse raw flags into a single removal mode. Dry-run wins."""
    if dry_run:
        return RemovalMode.DRY_RUN
    if backup:
        return RemovalMode.TRASH_BACKUP
    return RemovalMode.PERMANENT_DELETE


def _expand(path: str | Path) -> Path:
    return Path(os.path.expanduser(str(path)))


@dataclass(frozen=True)
class CleanupPaths:
    """Fixed filesystem locations the engine is allowed to touch."""

    user_caches: Path
    safari: Path
    browser_caches: tuple[Path, ...]
    temp_roots: tuple[Path, ...]
    downloads: Path
    system_caches: tuple[Path, ...]
    trash: Path
    lock_file: Path
    volume: Path

    @classmethod
    def default(cls) -> CleanupPaths:
        """Build the standard macOS locations for the current user."""
        home = Path.home()
        user_caches = home / "Library/Caches"
        return cls(
            user_caches=user_caches,
            safari=home / "Library/Safari",
            browser_caches=(
                user_caches / "Google/Chrome",
                user_caches / "Firefox",
            ),
            temp_roots=(Path("/tmp"), Path("/var/folders")),
            downloads=home / "Downloads",
            system_caches=(
                Path("/Library/Caches"),
                Path("/System/Volumes/Data/Library/Caches"),
            ),
            trash=home / ".Trash",
            lock_file=Path("/tmp/mac-cleanup.lock"),
            volume=home,
        )


@dataclass(frozen=True)
class CleanupConfig:
    """Resolved configuration for one cleanup run."""

    mode: RemovalMode = RemovalMode.PERMANENT_DELETE
    enabled_categories: frozenset[CategoryKind] = DEFAULT_CATEGORIES

    # Age thresholds (days)
    temp_file_age_days: int = 7
    download_file_age_days: int = 30

    # Set by the caller once it has verified it runs with admin rights
    require_elevated_privilege: bool = False

    paths: CleanupPaths = field(default_factory=CleanupPaths.default)

    # Logging
    log_file: Path = field(default_factory=lambda: Path.home() / "Library/Logs/mac-cleanup.log")
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.temp_file_age_days < 0:
            raise ValueError(f"temp_file_age_days must be non-negative, got {self.temp_file_age_days}")
        if self.download_file_age_days < 0:
            raise ValueError(f"download_file_age_days must be non-negative, got {self.download_file_age_days}")

    def is_enabled(self, category: CategoryKind) -> bool:
        return category in self.enabled_categories

    def with_overrides(
        self,
        *,
        dry_run: bool = False,
        backup: bool | None = None,
        enable: frozenset[CategoryKind] = frozenset(),
        elevated: bool | None = None,
    ) -> CleanupConfig:
        """Apply command-line overrides on top of the loaded configuration.

        Args:
            dry_run: Force dry-run mode.
            backup: Force trash backup on or off. None keeps the loaded value.
            enable: Extra categories to switch on.
            elevated: Whether the caller holds elevated privilege.

        Returns:
            New configuration with the overrides applied.

        """
        if backup is None:
            backup = self.mode is RemovalMode.TRASH_BACKUP
        return replace(
            self,
            mode=resolve_mode(dry_run=dry_run or self.mode is RemovalMode.DRY_RUN, backup=backup),
            enabled_categories=self.enabled_categories | enable,
            require_elevated_privilege=(
                self.require_elevated_privilege if elevated is None else elevated
            ),
        )

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / "Library/Application Support/mac-cleanup/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> CleanupConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration.

        Raises:
            ValueError: If the file is not valid YAML or holds invalid values.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Invalid config in {config_path}: expected a mapping")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> CleanupConfig:
        """Create config from dictionary."""
        kwargs: dict[str, Any] = {}

        if "backup" in data:
            backup = parse_bool(data["backup"], False)
            kwargs["mode"] = resolve_mode(dry_run=False, backup=backup)

        if "categories" in data:
            kwargs["enabled_categories"] = cls._parse_categories(data["categories"] or {})

        thresholds = data.get("thresholds") or {}
        if "temp_file_age_days" in thresholds:
            kwargs["temp_file_age_days"] = int(thresholds["temp_file_age_days"])
        if "download_file_age_days" in thresholds:
            kwargs["download_file_age_days"] = int(thresholds["download_file_age_days"])

        # Logging
        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if "file" in logging_cfg:
                kwargs["log_file"] = _expand(logging_cfg["file"])
            if "level" in logging_cfg:
                kwargs["log_level"] = str(logging_cfg["level"]).upper()

        return cls(**kwargs)

    @staticmethod
    def _parse_categories(raw: dict[str, Any]) -> frozenset[CategoryKind]:
        enabled = set(DEFAULT_CATEGORIES)
        for name, value in raw.items():
            try:
                kind = CategoryKind(name)
            except ValueError:
                raise ValueError(f"Unknown cleanup category: {name}") from None
            if parse_bool(value, kind in DEFAULT_CATEGORIES):
                enabled.add(kind)
            else:
                enabled.discard(kind)
        return frozenset(enabled)

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "backup": self.mode is RemovalMode.TRASH_BACKUP,
            "categories": {kind.value: self.is_enabled(kind) for kind in CategoryKind},
            "thresholds": {
                "temp_file_age_days": self.temp_file_age_days,
                "download_file_age_days": self.download_file_age_days,
            },
            "logging": {
                "file": str(self.log_file),
                "level": self.log_level,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
