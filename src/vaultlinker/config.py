"""Configuration loading and defaults."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .exclusion import compile_do_not_back_populate

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "vaultlinker"
_DEFAULT_CONFIG_PATH = _DEFAULT_CONFIG_DIR / "config.yaml"
_DEFAULT_OUTPUT_FOLDER = "vaultlinker output"
_OBSIDIAN_FOLDER = ".obsidian"
REPORT_FILENAME = "vaultlinker.md"


@dataclass
class Config:
    vault_path: Path
    apply_changes: bool = False
    do_not_back_populate: list[str] = field(default_factory=list)
    ignore_folders: list[str] = field(default_factory=list)
    output_folder: str = _DEFAULT_OUTPUT_FOLDER
    file_limit: int | None = None
    file_filter: str | None = None
    max_workers: int = 4
    exclusion_patterns: list[re.Pattern[str]] = field(init=False, repr=False, default_factory=list)

    def __post_init__(self) -> None:
        _check_types(self)
        if self.file_limit is not None and self.file_limit < 1:
            raise ValueError("'file_limit' must be >= 1")
        if self.file_filter is not None and not self.file_filter.strip():
            raise ValueError("'file_filter' must not be empty")
        if self.max_workers < 1:
            raise ValueError("'max_workers' must be >= 1")
        if not self.output_folder.strip():
            raise ValueError("'output_folder' must not be empty")
        self.exclusion_patterns = compile_do_not_back_populate(self.do_not_back_populate)

    @property
    def output_dir(self) -> Path:
        return self.vault_path / self.output_folder.strip()

    @property
    def report_path(self) -> Path:
        return self.output_dir / REPORT_FILENAME

    @property
    def ignored_dirs(self) -> list[Path]:
        dirs = [self.vault_path / folder for folder in self.ignore_folders]
        dirs.append(self.output_dir)
        dirs.append(self.vault_path / _OBSIDIAN_FOLDER)
        return dirs

    @property
    def normalized_file_filter(self) -> str | None:
        """``file_filter`` as a filename: ``[[Note]]`` and ``Note`` become ``Note.md``."""
        if self.file_filter is None:
            return None
        name = self.file_filter.strip()
        if name.startswith("[[") and name.endswith("]]"):
            name = name[2:-2]
        if not name.endswith(".md"):
            name += ".md"
        return name


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_types(config: Config) -> None:
    """Reject YAML scalars of the wrong type, e.g. quoted numbers or booleans."""
    if not isinstance(config.apply_changes, bool):
        raise ValueError("'apply_changes' must be true or false")
    if config.file_limit is not None and not _is_int(config.file_limit):
        raise ValueError("'file_limit' must be an integer")
    if not _is_int(config.max_workers):
        raise ValueError("'max_workers' must be an integer")
    if not isinstance(config.output_folder, str):
        raise ValueError("'output_folder' must be a string")
    if config.file_filter is not None and not isinstance(config.file_filter, str):
        raise ValueError("'file_filter' must be a string")
    for key in ("do_not_back_populate", "ignore_folders"):
        if not all(isinstance(item, str) for item in getattr(config, key)):
            raise ValueError(f"'{key}' must be a list of strings")


def load_config(config_path: Path | None = None) -> Config:
    """Load config from YAML file, falling back to defaults where possible."""
    path = config_path or _DEFAULT_CONFIG_PATH
    path = Path(path).expanduser()

    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            f"Create one at {_DEFAULT_CONFIG_PATH} or pass --config."
        )

    raw = yaml.safe_load(path.read_text())
    if not raw or not isinstance(raw, dict):
        raise ValueError(f"Invalid config file: {path}")

    if "vault_path" not in raw:
        raise ValueError("'vault_path' is required in config")
    if not isinstance(raw["vault_path"], str):
        raise ValueError("'vault_path' must be a string")

    vault_path = Path(raw["vault_path"]).expanduser()

    kwargs: dict = {"vault_path": vault_path}
    for key in ("do_not_back_populate", "ignore_folders"):
        if key in raw:
            value = raw[key] or []
            if not isinstance(value, list):
                raise ValueError(f"'{key}' must be a list")
            kwargs[key] = value
    for key in (
        "apply_changes",
        "output_folder",
        "file_limit",
        "file_filter",
        "max_workers",
    ):
        if key in raw:
            kwargs[key] = raw[key]

    return Config(**kwargs)
