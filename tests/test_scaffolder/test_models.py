"""Tests for the engine's Pydantic models.

Covers:
- GenerateRequest field validation and camelCase aliases
- Library de-duplication
- Includes closed key set and request ordering
- Render-context extension
- Manifest radio groups and read-only catalog mappings
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from goforge.scaffolder.models import (
    BuildContext,
    GenerateRequest,
    Includes,
    LibCategory,
    LibDef,
    Manifest,
    RenderContext,
)


pytestmark = pytest.mark.unit


def _request(**overrides) -> GenerateRequest:
    fields = {
        "project_name": "demo-api",
        "module_name": "github.com/acme/demo-api",
        "framework": "gin",
    }
    fields.update(overrides)
    return GenerateRequest(**fields)


# ---------------------------------------------------------------------------
# GenerateRequest
# ---------------------------------------------------------------------------


class TestGenerateRequest:
    def test_defaults(self):
        req = _request()
        assert req.libs == ()
        assert req.include_example is False
        assert req.architecture == "clean"

    def test_accepts_camel_case_aliases(self):
        req = GenerateRequest.model_validate(
            {
                "projectName": "svc",
                "moduleName": "github.com/acme/svc",
                "framework": "echo",
                "libs": ["redis"],
                "includeExample": True,
            }
        )
        assert req.project_name == "svc"
        assert req.module_name == "github.com/acme/svc"
        assert req.include_example is True

    def test_libs_are_deduplicated_in_order(self):
        req = _request(libs=["redis", "postgres", "redis"])
        assert req.libs == ("redis", "postgres")

    def test_none_libs_become_empty(self):
        assert _request(libs=None).libs == ()

    def test_empty_library_name_rejected(self):
        with pytest.raises(ValidationError, match="library names must not be empty"):
            _request(libs=["redis", " "])

    @pytest.mark.parametrize(
        "name",
        ["", "My-App", "my_app", "my app", "a" * 51, "../etc", "a/b"],
    )
    def test_invalid_project_names(self, name):
        with pytest.raises(ValidationError):
            _request(project_name=name)

    def test_project_name_at_max_length(self):
        assert _request(project_name="a" * 50).project_name == "a" * 50

    def test_traversal_in_project_name_has_specific_message(self):
        with pytest.raises(ValidationError, match="path traversal"):
            _request(project_name="..")

    @pytest.mark.parametrize(
        "module",
        ["", "ab", "demo", "github.com/acme/../x", "github.com\\acme\\x", "Github.com/acme/x"],
    )
    def test_invalid_module_names(self, module):
        with pytest.raises(ValidationError):
            _request(module_name=module)

    def test_nested_module_path_accepted(self):
        req = _request(module_name="gitlab.com/group/sub/project")
        assert req.module_name == "gitlab.com/group/sub/project"

    def test_blank_framework_rejected(self):
        with pytest.raises(ValidationError, match="framework is required"):
            _request(framework="  ")

    def test_request_is_frozen(self):
        req = _request()
        with pytest.raises(ValidationError):
            req.project_name = "other"


# ---------------------------------------------------------------------------
# Includes
# ---------------------------------------------------------------------------


class TestIncludes:
    def test_flags_cover_every_known_library(self):
        inc = Includes(["redis", "postgres", "kafka"], ["kafka"])
        assert dict(inc) == {"kafka": True, "postgres": False, "redis": False}

    def test_selected_keeps_request_order(self):
        inc = Includes(["a", "b", "c"], ["c", "a"])
        assert inc.selected == ("c", "a")

    def test_unknown_key_raises(self):
        inc = Includes(["redis"])
        with pytest.raises(KeyError):
            inc["memcached"]

    def test_get_with_default_for_unknown(self):
        inc = Includes(["redis"])
        assert inc.get("cron", False) is False

    def test_unknown_selection_rejected(self):
        with pytest.raises(ValueError, match="unknown libraries: nope"):
            Includes(["redis"], ["nope"])

    def test_from_request(self):
        manifest = Manifest.model_validate(
            {
                "version": "1.0.0",
                "frameworks": {"gin": {"imports": ["x"], "templates": ["t"]}},
                "libs": {
                    "redis": {"imports": ["y"], "templates": ["t"]},
                    "cron": {"imports": ["z"], "templates": ["t"]},
                },
            }
        )
        inc = Includes.from_request(manifest, _request(libs=["cron"]))
        assert inc["cron"] is True
        assert inc["redis"] is False
        assert len(inc) == 2


# ---------------------------------------------------------------------------
# Render contexts
# ---------------------------------------------------------------------------


class TestRenderContext:
    def test_from_request_copies_fields(self):
        req = _request(include_example=True, libs=["redis"])
        ctx = RenderContext.from_request(req, Includes(["redis"], req.libs))
        assert ctx.module_name == "github.com/acme/demo-api"
        assert ctx.project_name == "demo-api"
        assert ctx.include_example is True
        assert ctx.includes["redis"] is True

    def test_extend_keeps_base_fields(self):
        req = _request()
        ctx = RenderContext.from_request(req, Includes([]))
        build = ctx.extend(BuildContext, modules=("a", "b"))
        assert isinstance(build, BuildContext)
        assert build.project_name == ctx.project_name
        assert build.modules == ("a", "b")
        assert build.go_version


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class TestManifest:
    def test_radio_groups(self):
        manifest = Manifest(
            version="1.0.0",
            frameworks={"gin": {"imports": ["x"], "templates": ["t"]}},
            libs={
                "postgres": LibDef(
                    imports=("p",), templates=("t",), category="database", is_radio=True
                ),
                "mysql": LibDef(
                    imports=("m",), templates=("t",), category="database", is_radio=True
                ),
                "redis": LibDef(imports=("r",), templates=("t",), category="caching"),
            },
        )
        assert manifest.radio_groups() == {LibCategory.DATABASE: ["mysql", "postgres"]}

    def test_requires_at_least_one_framework(self):
        with pytest.raises(ValidationError):
            Manifest(version="1.0.0", frameworks={})

    def test_catalog_mappings_are_read_only(self):
        manifest = Manifest(
            version="1.0.0",
            frameworks={"gin": {"imports": ["x"], "templates": ["t"]}},
            libs={"redis": {"imports": ["r"], "templates": ["t"]}},
        )
        with pytest.raises(TypeError):
            manifest.libs["redis"] = LibDef(imports=("evil",), templates=("t",))
        with pytest.raises(TypeError):
            del manifest.frameworks["gin"]
        with pytest.raises(AttributeError):
            manifest.frameworks.pop("gin")
        assert manifest.libs["redis"].imports == ("r",)
        assert list(manifest.frameworks) == ["gin"]

    def test_default_libs_are_read_only(self):
        manifest = Manifest(
            version="1.0.0", frameworks={"gin": {"imports": ["x"], "templates": ["t"]}}
        )
        with pytest.raises(TypeError):
            manifest.libs["redis"] = LibDef(imports=("r",), templates=("t",))

    def test_dump_gives_plain_dicts(self):
        manifest = Manifest(
            version="1.0.0",
            frameworks={"gin": {"imports": ["x"], "templates": ["t"]}},
            libs={"redis": {"imports": ["r"], "templates": ["t"], "category": "caching"}},
        )
        dumped = manifest.model_dump(mode="json")
        assert dumped["frameworks"]["gin"]["imports"] == ["x"]
        assert dumped["libs"]["redis"]["category"] == "caching"

    def test_blank_config_section_is_none(self):
        lib = LibDef(imports=("x",), templates=("t",), config_section="  ")
        assert lib.config_section is None

    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError):
            LibDef(imports=("x",), templates=("t",), category="graphics")
