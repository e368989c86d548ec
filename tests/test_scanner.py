"""Tests for default project discovery."""

import json

from esusage.analyzer.scanner import scan


def write(path, text=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    return path


def write_manifest(directory, data):
    write(directory / "package.json", json.dumps(data))


class TestScan:
    def test_monorepo_layout(self, tmp_path):
        write_manifest(tmp_path, {
            "name": "root",
            "dependencies": {"react": "^18.0.0"},
            "devDependencies": {"typescript": "^5.0.0"},
            "optionalDependencies": {"fsevents": "*"},
            "repository": {"type": "git", "url": "https://example.com/acme/root.git"},
        })
        write(tmp_path / "src" / "index.ts")
        write_manifest(tmp_path / "packages" / "web", {"name": "web"})
        write(tmp_path / "packages" / "web" / "src" / "App.tsx")
        write(tmp_path / "packages" / "web" / "src" / "b.jsx")

        projects = scan(tmp_path)

        assert [p.metadata.name for p in projects] == ["root", "web"]
        root, web = projects
        assert root.files == [(tmp_path / "src" / "index.ts").resolve()]
        assert root.metadata.dependencies == {"react": "^18.0.0"}
        assert root.metadata.dev_dependencies == {"typescript": "^5.0.0"}
        assert root.metadata.optional_dependencies == {"fsevents": "*"}
        assert root.link == "https://example.com/acme/root.git"
        assert [f.name for f in web.files] == ["App.tsx", "b.jsx"]
        assert web.link == str((tmp_path / "packages" / "web").resolve())

    def test_excluded_and_non_source_files(self, tmp_path):
        write_manifest(tmp_path, {"name": "app"})
        write(tmp_path / "src" / "a.ts")
        write(tmp_path / "src" / "types.d.ts")
        write(tmp_path / "src" / "styles.css")
        write(tmp_path / "node_modules" / "lib" / "index.js")
        write(tmp_path / "generated" / "schema.ts")

        projects = scan(tmp_path, exclude_folders={"generated"})

        assert [f.name for f in projects[0].files] == ["a.ts"]

    def test_include_patterns(self, tmp_path):
        write_manifest(tmp_path, {"name": "app"})
        write(tmp_path / "src" / "a.tsx")
        write(tmp_path / "src" / "a.test.tsx")

        projects = scan(tmp_path, include_files=["src/*.tsx"])
        assert [f.name for f in projects[0].files] == ["a.test.tsx", "a.tsx"]

        projects = scan(tmp_path, include_files=lambda path: ".test." not in path.name)
        assert [f.name for f in projects[0].files] == ["a.tsx"]

    def test_root_without_manifest(self, tmp_path):
        write(tmp_path / "main.js")

        projects = scan(tmp_path)

        assert len(projects) == 1
        assert projects[0].metadata.name == tmp_path.name
        assert projects[0].metadata.dependencies == {}

    def test_empty_root_without_manifest_is_not_a_project(self, tmp_path):
        write_manifest(tmp_path / "app", {"name": "app"})
        write(tmp_path / "app" / "index.js")

        assert [p.metadata.name for p in scan(tmp_path)] == ["app"]
