"""Aggregation driver: scan projects, collect usage items in a stable order.

Output order is project order x file order x in-file encounter order,
whatever the degree of parallelism.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .item import Item, ItemMetadata, LocationInput, RawUsage, create_item
from .plugins import PluginRunner, ScanMetadata, ScanOutput
from .resolver import VersionResolver, merge_dependencies
from .scanner import Project, scan
from .usage_visitor import Engine, parse
from ..config import ScanOptions
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ProjectContext:
    """Read-only per-project state shared by every file of the project."""
    root: Path
    name: str
    link: str
    dependencies: Dict[str, str]


def split_plugins(plugins: Sequence, default_engine) -> Tuple[object, list]:
    """Separate parsing engines from observer plugins.

    The last engine in `plugins` wins over `default_engine`.
    """
    engine = default_engine
    observers = []
    for plugin in plugins:
        if isinstance(plugin, Engine):
            engine = plugin
        else:
            observers.append(plugin)
    return engine, observers


class UsageCollector:
    """Turns one file into finalized items."""

    def __init__(self, options: ScanOptions, resolver: VersionResolver, engine):
        self.include_modules = set(options.include_modules or ())
        self.resolver = resolver
        self.engine = engine

    def collect_file(self, context: ProjectContext, file: Path) -> List[Item]:
        with open(file, 'r', encoding='utf-8') as f:
            code = f.read()

        items: List[Item] = []

        def on_add(usage: RawUsage) -> None:
            if self.include_modules and usage.module not in self.include_modules:
                return

            version = self.resolver.resolve(usage.module, file, context.dependencies)
            is_spread = bool(usage.args and usage.args.is_spread)
            items.append(create_item(
                name=usage.name,
                module=usage.module,
                type=usage.type,
                version=version,
                location=LocationInput(
                    code=code,
                    file=file,
                    module=context.name,
                    offset=usage.offset,
                    path=context.root,
                ),
                args=usage.args,
                metadata=ItemMetadata(has_spread_operator=is_spread),
            ))

        parse(code, on_add, engine=self.engine, path=file)
        logger.debug("%s: %d item(s)", file, len(items))
        return items


def esusage(
    path: str | Path,
    options: Optional[ScanOptions] = None,
    scanner: Callable[..., List[Project]] = scan,
    resolver: Optional[VersionResolver] = None,
) -> List[Item]:
    """Collect usage items for every imported symbol under `path`.

    Args:
        path: Scan root; item locations are relative to it
        options: Scan options (module allow-list, plugins, scanner filters)
        scanner: Project discovery, called as scanner(path, exclude_folders=,
            include_files=)
        resolver: Version resolver, defaults to manifest lookup then declared
            dependency ranges

    Returns:
        Items in project x file x encounter order

    Raises:
        SourceParseError: On the first file that fails to parse
    """
    options = options or ScanOptions()
    root = Path(path)
    engine, observers = split_plugins(options.plugins, options.engine)
    runner = PluginRunner(observers)
    collector = UsageCollector(options, resolver or VersionResolver(), engine)

    created_at = datetime.now(timezone.utc).isoformat()
    runner.start(ScanMetadata(created_at=created_at, source=str(root)))

    projects = scanner(root, exclude_folders=options.exclude_folders,
                       include_files=options.include_files)
    logger.info("Scanning %d project(s) under %s", len(projects), root)

    items: List[Item] = []
    for project in projects:
        metadata = project.metadata
        context = ProjectContext(
            root=root,
            name=metadata.name,
            link=project.link,
            dependencies=merge_dependencies(
                metadata.dev_dependencies,
                metadata.optional_dependencies,
                metadata.dependencies,
            ),
        )

        for file_items in _collect_project(collector, context, project.files, options.max_workers):
            for item in file_items:
                items.append(item)
                runner.collect(item)

    logger.info("Collected %d item(s)", len(items))
    runner.end(ScanOutput(created_at=created_at, source=str(root), items=items))
    return items


def _collect_project(collector: UsageCollector, context: ProjectContext,
                     files: Sequence[Path], max_workers: int):
    """Yield per-file item lists in file order.

    With several workers, files are parsed concurrently but results are
    still yielded in file order; the first failure in that order is raised
    and pending work is cancelled.
    """
    if max_workers <= 1 or len(files) <= 1:
        for file in files:
            yield collector.collect_file(context, Path(file))
        return

    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = [executor.submit(collector.collect_file, context, Path(file)) for file in files]
        for future in futures:
            yield future.result()
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
