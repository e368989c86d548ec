"""Tests for manifest lookup and two-stage version resolution."""

import json

import pytest

from esusage.analyzer.manifest import read_nearest_manifest
from esusage.analyzer.resolver import (
    DeclaredDependencyStrategy,
    PackageJsonStrategy,
    VersionResolver,
    merge_dependencies,
)


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding='utf-8')


def touch(path, text=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    return path


@pytest.fixture
def project(tmp_path):
    """A project with one installed package and one source file."""
    write_json(tmp_path / "package.json", {"name": "app", "version": "1.0.0"})
    write_json(tmp_path / "node_modules" / "@acme" / "ui" / "package.json",
               {"name": "@acme/ui", "version": "2.3.4", "main": "index.js"})
    touch(tmp_path / "node_modules" / "@acme" / "ui" / "index.js")
    touch(tmp_path / "node_modules" / "@acme" / "ui" / "icons" / "index.js")
    touch(tmp_path / "src" / "Button.tsx")
    return tmp_path


class TestManifest:
    def test_nearest_manifest_walks_up(self, project):
        manifest = read_nearest_manifest(project / "src" / "Button.tsx")
        assert manifest["name"] == "app"

    def test_malformed_manifest_is_skipped(self, project):
        touch(project / "src" / "package.json", "{ not json")
        manifest = read_nearest_manifest(project / "src" / "Button.tsx")
        assert manifest["name"] == "app"


class TestPackageJsonStrategy:
    def test_installed_package(self, project):
        strategy = PackageJsonStrategy()
        assert strategy.resolve("@acme/ui", project / "src" / "Button.tsx", {}) == "2.3.4"

    def test_subpath_uses_package_manifest(self, project):
        strategy = PackageJsonStrategy()
        assert strategy.resolve("@acme/ui/icons", project / "src" / "Button.tsx", {}) == "2.3.4"

    def test_ascends_node_modules(self, project):
        nested = touch(project / "packages" / "web" / "src" / "App.tsx")
        assert PackageJsonStrategy().resolve("@acme/ui", nested, {}) == "2.3.4"

    def test_relative_specifier_reads_own_project(self, project):
        touch(project / "src" / "Card.tsx")
        strategy = PackageJsonStrategy()
        assert strategy.resolve("./Card", project / "src" / "Button.tsx", {}) == "1.0.0"

    def test_missing_package(self, project):
        assert PackageJsonStrategy().resolve("left-pad", project / "src" / "Button.tsx", {}) is None

    def test_builtins_never_resolve(self, project):
        strategy = PackageJsonStrategy()
        assert strategy.resolve("fs", project / "src" / "Button.tsx", {}) is None
        assert strategy.resolve("node:path", project / "src" / "Button.tsx", {}) is None

    def test_manifest_without_version(self, project):
        write_json(project / "node_modules" / "unversioned" / "package.json", {"name": "unversioned"})
        assert PackageJsonStrategy().resolve("unversioned", project / "src" / "Button.tsx", {}) is None

    def test_lookups_are_memoised_per_directory(self, project):
        """Same specifier and directory reuse the first answer; a new directory looks again."""
        strategy = PackageJsonStrategy()
        button = project / "src" / "Button.tsx"
        assert strategy.resolve("@acme/ui", button, {}) == "2.3.4"

        write_json(project / "node_modules" / "@acme" / "ui" / "package.json",
                   {"name": "@acme/ui", "version": "9.9.9", "main": "index.js"})
        sibling = touch(project / "src" / "Card.tsx")
        nested = touch(project / "src" / "forms" / "Input.tsx")

        assert strategy.resolve("@acme/ui", sibling, {}) == "2.3.4"
        assert strategy.resolve("@acme/ui", nested, {}) == "9.9.9"


class TestVersionResolver:
    def test_authoritative_stage_wins(self, project):
        resolver = VersionResolver()
        version = resolver.resolve("@acme/ui", project / "src" / "Button.tsx", {"@acme/ui": "^2.0.0"})
        assert version == "2.3.4"

    def test_fallback_to_declared_range(self, project):
        resolver = VersionResolver()
        version = resolver.resolve("mod", project / "src" / "Button.tsx", {"mod": "^2.0.0"})
        assert version == "^2.0.0"

    def test_unresolved_is_empty_string(self, project):
        assert VersionResolver().resolve("mod", project / "src" / "Button.tsx", {}) == ""

    def test_failing_strategy_never_raises(self, tmp_path):
        class Exploding:
            def resolve(self, module, from_file, dependencies):
                raise OSError("disk on fire")

        resolver = VersionResolver([Exploding(), DeclaredDependencyStrategy()])
        assert resolver.resolve("mod", tmp_path / "a.ts", {"mod": "1.x"}) == "1.x"
        assert VersionResolver([Exploding()]).resolve("mod", tmp_path / "a.ts", {}) == ""

    def test_strategies_are_substitutable(self, tmp_path):
        class Fixed:
            def resolve(self, module, from_file, dependencies):
                return "9.9.9"

        assert VersionResolver([Fixed()]).resolve("anything", tmp_path / "a.ts") == "9.9.9"


class TestMergeDependencies:
    def test_later_sources_override(self):
        merged = merge_dependencies(
            {"a": "dev", "b": "dev"},
            {"a": "optional", "c": "optional"},
            {"a": "prod"},
        )
        assert merged == {"a": "prod", "b": "dev", "c": "optional"}

    def test_missing_sources(self):
        assert merge_dependencies(None, {}, {"x": "1"}) == {"x": "1"}
