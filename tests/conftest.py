"""Shared fixtures for vaultlinker tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from vaultlinker.config import Config
from vaultlinker.models import Alias, Document
from vaultlinker.pattern_index import PatternIndex
from vaultlinker.vault import load_document


@pytest.fixture
def sample_aliases() -> list[Alias]:
    return [
        Alias.for_title("Target Page"),
        Alias("Test Link", "Target Page", is_alias=True),
        Alias.for_title("tomato"),
        Alias("tomatoes", "tomato", is_alias=True),
        Alias.for_title("Kyri"),
    ]


@pytest.fixture
def sample_index(sample_aliases: list[Alias]) -> PatternIndex:
    return PatternIndex.build(sample_aliases)


@pytest.fixture
def make_document():
    def _make(content: str, title: str = "Other Note", **kwargs) -> Document:
        return Document(
            path=Path(f"/vault/{title}.md"),
            title=title,
            content=content,
            relative_path=f"{title}.md",
            **kwargs,
        )
    return _make


@pytest.fixture
def write_note(tmp_path):
    """Write ``name.md`` into a vault dir and return its path."""
    vault = tmp_path / "vault"
    vault.mkdir()

    def _write(name: str, content: str) -> Path:
        path = vault / f"{name}.md"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def vault_config(tmp_path) -> Config:
    return Config(vault_path=tmp_path / "vault")


@pytest.fixture
def load_note(tmp_path):
    def _load(path: Path) -> Document:
        return load_document(path, tmp_path / "vault")
    return _load
