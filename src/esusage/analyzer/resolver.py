from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .manifest import MANIFEST_NAME, find_nearest_manifest, load_manifest
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Node core modules never resolve to an installed package
NODE_BUILTINS = frozenset({
    'assert', 'async_hooks', 'buffer', 'child_process', 'cluster', 'console',
    'constants', 'crypto', 'dgram', 'diagnostics_channel', 'dns', 'domain',
    'events', 'fs', 'http', 'http2', 'https', 'inspector', 'module', 'net',
    'os', 'path', 'perf_hooks', 'process', 'punycode', 'querystring',
    'readline', 'repl', 'stream', 'string_decoder', 'sys', 'timers', 'tls',
    'trace_events', 'tty', 'url', 'util', 'v8', 'vm', 'wasi',
    'worker_threads', 'zlib',
})

JS_EXTENSIONS = ['.js', '.mjs', '.cjs', '.json', '.ts', '.tsx', '.d.ts', '.jsx']


def merge_dependencies(*sources: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Merge dependency maps; on key collision later sources win.

    Call as merge_dependencies(dev, optional, dependencies).
    """
    merged: Dict[str, str] = {}
    for source in sources:
        if source:
            merged.update(source)
    return merged


class PackageJsonStrategy:
    """
    Authoritative stage: resolves the module the way Node does from the
    importing file, then reads the version of the nearest manifest.
    """

    def __init__(self):
        self._cache: Dict[Tuple[str, Path], Optional[str]] = {}

    def resolve(self, module: str, from_file: Path, dependencies: Mapping[str, str]) -> Optional[str]:
        start_dir = Path(from_file).resolve().parent
        key = (module, start_dir)
        if key not in self._cache:
            self._cache[key] = self._lookup_version(module, start_dir)
        return self._cache[key]

    def _lookup_version(self, module: str, start_dir: Path) -> Optional[str]:
        resolved = self.resolve_module_path(module, start_dir)
        if resolved is None:
            return None

        manifest_path = find_nearest_manifest(resolved)
        if manifest_path is None:
            return None
        manifest = load_manifest(manifest_path) or {}
        version = manifest.get('version')
        return version if isinstance(version, str) and version else None

    def resolve_module_path(self, module: str, start_dir: Path) -> Optional[Path]:
        """
        Determines the on-disk location of a module specifier.

        Args:
            module: The import string (e.g., './Button', '@scope/ui/icons').
            start_dir: Directory of the importing file.
        """
        if not module or module.startswith('node:'):
            return None

        # Relative / absolute specifiers
        if module.startswith('.') or module.startswith('/'):
            return self._probe_js_path((start_dir / module).resolve())

        if module.split('/', 1)[0] in NODE_BUILTINS:
            return None

        # Bare specifiers: ascend through node_modules directories
        for directory in (start_dir, *start_dir.parents):
            if directory.name == 'node_modules':
                continue
            candidate = directory / 'node_modules' / module
            found = self._probe_js_path(candidate)
            if found is not None:
                return found
        return None

    def _probe_js_path(self, path: Path) -> Optional[Path]:
        """
        Probes for existence using JS resolution rules:
        1. Exact file, then with extensions
        2. Directory manifest
        3. Directory index files
        """
        if path.is_file():
            return path
        for ext in JS_EXTENSIONS:
            candidate = path.with_name(path.name + ext)
            if candidate.is_file():
                return candidate

        if path.is_dir():
            manifest = path / MANIFEST_NAME
            if manifest.is_file():
                return manifest
            for ext in JS_EXTENSIONS:
                index_file = path / f"index{ext}"
                if index_file.is_file():
                    return index_file

        return None


class DeclaredDependencyStrategy:
    """Fallback stage: the range declared in the project manifest, verbatim."""

    def resolve(self, module: str, from_file: Path, dependencies: Mapping[str, str]) -> Optional[str]:
        declared = dependencies.get(module)
        return declared if isinstance(declared, str) else None


class VersionResolver:
    """Runs resolution strategies in order; the first answer wins.

    Resolution is best-effort: a failing strategy counts as a miss and the
    final miss is reported as "".
    """

    def __init__(self, strategies: Optional[Iterable] = None):
        if strategies is None:
            strategies = [PackageJsonStrategy(), DeclaredDependencyStrategy()]
        self.strategies: List = list(strategies)

    def resolve(self, module: str, from_file: str | Path,
                dependencies: Optional[Mapping[str, str]] = None) -> str:
        dependencies = dependencies or {}
        for strategy in self.strategies:
            try:
                version = strategy.resolve(module, Path(from_file), dependencies)
            except Exception as e:
                logger.debug("%s failed for %r from %s: %s",
                             type(strategy).__name__, module, from_file, e)
                continue
            if version:
                return version

        logger.debug("No version for %r from %s", module, from_file)
        return ""
