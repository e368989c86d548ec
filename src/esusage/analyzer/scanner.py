"""Default file-system project discovery.

A project is any directory holding a package.json. Its files are the
JS/TS sources below it that don't belong to a nested project.
"""
import fnmatch
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set, Union

from .manifest import MANIFEST_NAME, load_manifest

SOURCE_EXTENSIONS = {'.js', '.jsx', '.mjs', '.cjs', '.ts', '.tsx', '.mts', '.cts'}

DEFAULT_EXCLUDE_FOLDERS = {
    'node_modules', '.git', '.hg', '.svn',
    'dist', 'build', 'out', 'coverage',
    '.next', '.nuxt', '.turbo', '.cache',
    '.venv', 'venv', '__pycache__',
}

FileFilter = Union[Callable[[Path], bool], Sequence[str], None]


@dataclass
class ProjectMetadata:
    name: str
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    optional_dependencies: Dict[str, str] = field(default_factory=dict)


@dataclass
class Project:
    metadata: ProjectMetadata
    files: List[Path]
    link: str  # repository URL if declared, else the project directory


def _dependency_map(manifest: dict, key: str) -> Dict[str, str]:
    value = manifest.get(key)
    if not isinstance(value, dict):
        return {}
    return {name: spec for name, spec in value.items() if isinstance(spec, str)}


def _repository_link(manifest: dict) -> Optional[str]:
    repository = manifest.get('repository')
    if isinstance(repository, str):
        return repository
    if isinstance(repository, dict) and isinstance(repository.get('url'), str):
        return repository['url']
    return None


def load_project_metadata(project_dir: Path) -> tuple[ProjectMetadata, str]:
    """Build project metadata and link from a directory's package.json."""
    manifest = load_manifest(project_dir / MANIFEST_NAME) or {}
    name = manifest.get('name')
    metadata = ProjectMetadata(
        name=name if isinstance(name, str) and name else project_dir.name,
        dependencies=_dependency_map(manifest, 'dependencies'),
        dev_dependencies=_dependency_map(manifest, 'devDependencies'),
        optional_dependencies=_dependency_map(manifest, 'optionalDependencies'),
    )
    return metadata, _repository_link(manifest) or str(project_dir)


def _is_source_file(path: Path) -> bool:
    if path.name.endswith(('.d.ts', '.d.mts', '.d.cts')):
        return False
    return path.suffix.lower() in SOURCE_EXTENSIONS


def _make_filter(include_files: FileFilter, root: Path) -> Callable[[Path], bool]:
    if include_files is None:
        return lambda path: True
    if callable(include_files):
        return include_files

    patterns = list(include_files)

    def matches(path: Path) -> bool:
        rel = path.relative_to(root).as_posix()
        return any(fnmatch.fnmatch(rel, pattern) for pattern in patterns)

    return matches


def scan(root: str | Path, exclude_folders: Optional[Set[str]] = None,
         include_files: FileFilter = None) -> List[Project]:
    """Discover projects and their source files under `root`.

    Args:
        root: Directory to scan
        exclude_folders: Folder names never entered, merged with defaults
        include_files: Callable filter or glob patterns (relative POSIX paths)

    Returns:
        Projects sorted by directory, each with sorted files
    """
    root = Path(root).resolve()
    excluded = DEFAULT_EXCLUDE_FOLDERS | set(exclude_folders or ())
    keep = _make_filter(include_files, root)

    project_files: Dict[Path, List[Path]] = {root: []}
    owners: Dict[Path, Path] = {}

    for dirpath, dirnames, filenames in os.walk(root):
        directory = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)

        if MANIFEST_NAME in filenames:
            owner = directory
            project_files.setdefault(owner, [])
        else:
            owner = owners.get(directory.parent, root) if directory != root else root
        owners[directory] = owner

        for filename in sorted(filenames):
            path = directory / filename
            if _is_source_file(path) and keep(path):
                project_files[owner].append(path)

    projects = []
    for project_dir in sorted(project_files):
        if (project_dir == root and not project_files[root]
                and not (root / MANIFEST_NAME).is_file()):
            continue
        metadata, link = load_project_metadata(project_dir)
        projects.append(Project(
            metadata=metadata,
            files=sorted(project_files[project_dir]),
            link=link,
        ))
    return projects
