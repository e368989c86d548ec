"""Item records and the factory that finalizes raw usage events.

An item is the unit of output of a scan: one usage of an imported symbol,
with its location in the scanned tree and the version of its module.
"""
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

ITEM_TYPES = ('element', 'type', 'method', 'variable', 'unknown')


@dataclass
class UsageArgs:
    """Arguments a symbol was used with (JSX attributes for elements)."""
    data: Dict[str, Any] = field(default_factory=dict)
    is_spread: bool = False


@dataclass
class RawUsage:
    """A usage event as emitted by a parsing engine, before finalization."""
    offset: int  # character offset into the source text
    module: str
    name: str
    type: str
    args: Optional[UsageArgs] = None


@dataclass
class Location:
    file: str  # ./-prefixed, POSIX separators, relative to the scan root
    line: int  # 1-based
    column: int  # 0-based
    module: str  # enclosing project name


@dataclass
class ItemMetadata:
    has_spread_operator: bool = False


@dataclass
class LocationInput:
    code: str
    file: Union[str, Path]
    module: str
    offset: int
    path: Union[str, Path]  # scan root


@dataclass
class Item:
    name: str
    module: str
    version: str
    type: str
    location: Location
    args: UsageArgs = field(default_factory=UsageArgs)
    metadata: ItemMetadata = field(default_factory=ItemMetadata)
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'module': self.module,
            'version': self.version,
            'type': self.type,
            'args': {'data': dict(self.args.data), 'isSpread': self.args.is_spread},
            'location': {
                'file': self.location.file,
                'line': self.location.line,
                'column': self.location.column,
                'module': self.location.module,
            },
            'metadata': {'hasSpreadOperator': self.metadata.has_spread_operator},
            'createdAt': self.created_at,
        }


def get_location(code: str, offset: int) -> Tuple[int, int]:
    """Convert a character offset into a (line, column) pair.

    Lines are 1-based, columns 0-based. Only "\\n" starts a new line.
    """
    before = code[:offset]
    line = before.count('\n') + 1
    column = len(before) - (before.rfind('\n') + 1)
    return line, column


def relative_file(file: Union[str, Path], root: Union[str, Path]) -> str:
    """Path of `file` relative to `root`, with forward slashes and a ./ prefix."""
    rel = Path(os.path.relpath(os.path.realpath(file), os.path.realpath(root))).as_posix()
    if rel == '..' or rel.startswith('../'):
        return rel
    return f"./{rel}"


def create_location(location: LocationInput) -> Location:
    line, column = get_location(location.code, location.offset)
    return Location(
        file=relative_file(location.file, location.path),
        line=line,
        column=column,
        module=location.module,
    )


def create_item(
    name: str,
    module: str,
    type: str,
    version: str,
    location: LocationInput,
    args: Optional[UsageArgs] = None,
    metadata: Optional[ItemMetadata] = None,
) -> Item:
    """Aggregate factory that creates an item.

    Args:
        name: Imported symbol name
        module: Module specifier the symbol was imported from
        type: One of ITEM_TYPES
        version: Resolved version, "" when unresolved
        location: Raw location (source text, offset, file and scan root)
        args: Usage arguments; missing data defaults to {}
        metadata: Defaults to has_spread_operator=False

    Returns:
        Finalized Item

    Raises:
        ValueError: If name or module is empty, or type is unknown
    """
    if not name:
        raise ValueError("Item name must not be empty")
    if not module:
        raise ValueError("Item module must not be empty")
    if type not in ITEM_TYPES:
        raise ValueError(f"Unsupported item type: {type!r}")

    if args is None:
        args = UsageArgs()
    elif args.data is None:
        args = UsageArgs(data={}, is_spread=args.is_spread)

    return Item(
        name=name,
        module=module,
        version=version if version is not None else "",
        type=type,
        location=create_location(location),
        args=args,
        metadata=ItemMetadata(
            has_spread_operator=bool(metadata.has_spread_operator) if metadata else False
        ),
        created_at=datetime.now(timezone.utc).isoformat(),
    )
