"""Shared pytest fixtures for the goforge test suite.

Provides reusable fixtures for:
- The bundled manifest store and a generator built on it
- A small on-disk manifest (one framework, three libraries) for loader tests
- Request factories
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from goforge.config import DEFAULT_MANIFEST_PATH
from goforge.scaffolder import GenerateRequest, ManifestStore, ProjectGenerator


# ---------------------------------------------------------------------------
# Bundled manifest
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def bundled_store() -> ManifestStore:
    """The manifest shipped with the package, loaded once per session."""
    return ManifestStore.load(DEFAULT_MANIFEST_PATH)


@pytest.fixture
def generator(bundled_store: ManifestStore) -> ProjectGenerator:
    """A generator over the bundled manifest."""
    return ProjectGenerator(bundled_store)


@pytest.fixture
def make_request() -> Callable[..., GenerateRequest]:
    """Factory for ``GenerateRequest`` with sensible defaults."""

    def _make(**overrides: Any) -> GenerateRequest:
        fields: dict[str, Any] = {
            "project_name": "demo-api",
            "module_name": "github.com/acme/demo-api",
            "framework": "gin",
            "libs": [],
            "include_example": False,
        }
        fields.update(overrides)
        return GenerateRequest(**fields)

    return _make


# ---------------------------------------------------------------------------
# Small on-disk manifest
# ---------------------------------------------------------------------------


MINI_TEMPLATES: dict[str, str] = {
    "frameworks/web/engine.go.j2": "package app\n\n// {{ project_name }} on {{ framework }}\n",
    "libs/store/client.go.j2": "package {{ lib }}\n",
    "libs/altstore/client.go.j2": "package {{ lib }}\n",
    "libs/cache/client.go.j2": "package {{ lib }}\n",
}

MINI_CONFIGS: dict[str, Any] = {
    "web.json": {"server": {"port": 9000}},
    "store.json": {"store": {"dsn": "file:app.db"}},
    "cache.json": {"cache": {"addr": "localhost:6379"}},
}


def mini_manifest_data() -> dict[str, Any]:
    return {
        "version": "1.0.0",
        "frameworks": {
            "web": {
                "imports": ["example.com/web/router"],
                "config_section": "templates/config/web.json",
                "templates": ["templates/frameworks/web/engine.go.j2"],
            },
        },
        "libs": {
            "store": {
                "category": "database",
                "is_radio": True,
                "imports": ["example.com/store/v2"],
                "config_section": "templates/config/store.json",
                "templates": ["templates/libs/store/client.go.j2"],
            },
            "altstore": {
                "category": "database",
                "is_radio": True,
                "imports": ["example.com/altstore"],
                "config_section": "",
                "templates": ["templates/libs/altstore/client.go.j2"],
            },
            "cache": {
                "category": "caching",
                "imports": ["example.com/cache/client/pool"],
                "config_section": "templates/config/cache.json",
                "templates": ["templates/libs/cache/client.go.j2"],
            },
        },
    }


def write_manifest(root: Path, data: dict[str, Any]) -> Path:
    """Write *data* plus the mini templates/config fragments under *root*."""
    templates = root / "templates"
    for rel, content in MINI_TEMPLATES.items():
        path = templates / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    for name, fragment in MINI_CONFIGS.items():
        path = templates / "config" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(fragment), encoding="utf-8")
    manifest_path = root / "manifest.json"
    manifest_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return manifest_path


@pytest.fixture
def manifest_data() -> dict[str, Any]:
    """A fresh copy of the small manifest document."""
    return mini_manifest_data()


@pytest.fixture
def write_catalog(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a manifest document plus its templates; returns the manifest path."""

    def _write(data: dict[str, Any]) -> Path:
        return write_manifest(tmp_path / "catalog", data)

    return _write


@pytest.fixture
def mini_manifest_path(write_catalog, manifest_data) -> Path:
    """Path to a valid small manifest on disk."""
    return write_catalog(manifest_data)


@pytest.fixture
def mini_store(mini_manifest_path: Path) -> ManifestStore:
    return ManifestStore.load(mini_manifest_path)
