"""Usage extraction from parsed syntax trees.

Extraction runs in two explicit passes over one file: the import tracker
builds the binding table first, then the usage visitor walks the rest of
the tree and emits raw usage events at type references and JSX opening
tags whose identifier is bound to an import.

The visitor dispatches on node kind. Each handler returns the children to
descend into, so supporting a new syntax kind means adding one entry to
the table.
"""
import html
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from tree_sitter import Node

from .import_tracker import ImportInfo, JSImportTracker
from .item import RawUsage, UsageArgs
from .parser import LanguageParser
from ..utils.logger import get_logger

logger = get_logger(__name__)

Primitive = Union[str, bool, int, float, None]


@dataclass
class ParserMethods:
    """Helpers handed to every engine so event and token shapes stay uniform."""
    create_item: Callable[..., RawUsage]
    create_fallback_token: Callable[[str], str]


def create_raw_usage(name: str, module: str, type: str, offset: int,
                     args: Optional[UsageArgs] = None) -> RawUsage:
    return RawUsage(offset=offset, module=module, name=name, type=type, args=args)


def create_fallback_token(kind: str) -> str:
    """Placeholder recorded for attribute values with no literal form."""
    return f"#{kind}"


DEFAULT_METHODS = ParserMethods(
    create_item=create_raw_usage,
    create_fallback_token=create_fallback_token,
)


class Engine:
    """Base class for parsing engines.

    Engines turn source text into raw usage events. They are looked up by
    `id` in the engine registry.
    """
    id: str = ""

    def parse(self, code: str, methods: ParserMethods,
              path: Optional[Union[str, Path]] = None) -> List[RawUsage]:
        raise NotImplementedError


# Node kinds whose `name` child declares a type rather than using one
TYPE_DECLARATIONS = {
    'type_alias_declaration',
    'interface_declaration',
    'class_declaration',
    'abstract_class_declaration',
    'class',
    'type_parameter',
}

_SIMPLE_ESCAPES = {
    'n': '\n', 't': '\t', 'r': '\r', 'b': '\b', 'f': '\f', 'v': '\v', '0': '\0',
}


class UsageVisitor:
    """Pass-2 visitor: emits raw usage events for bound identifiers."""

    def __init__(self, source_code: bytes, imports: Dict[str, ImportInfo], methods: ParserMethods):
        self.source_code = source_code
        self.imports = imports
        self.methods = methods
        self.events: List[RawUsage] = []
        self.handlers: Dict[str, Callable[[Node], Iterable[Node]]] = {
            'import_statement': self._skip,
            'type_identifier': self.visit_type_identifier,
            'generic_type': self.visit_generic_type,
            'lookup_type': self.visit_lookup_type,
            'nested_type_identifier': self._skip,
            'mapped_type_clause': self._skip_name,
            'infer_type': self._skip,
            'jsx_opening_element': self.visit_jsx_element,
            'jsx_self_closing_element': self.visit_jsx_element,
            'jsx_closing_element': self._skip,
        }
        for kind in TYPE_DECLARATIONS:
            self.handlers[kind] = self._skip_name

    def visit(self, root: Node) -> List[RawUsage]:
        """Pre-order walk from `root`, children left to right."""
        stack = [root]
        while stack:
            node = stack.pop()
            handler = self.handlers.get(node.type)
            children = handler(node) if handler else node.named_children
            stack.extend(reversed(list(children)))
        return self.events

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def get_text(self, node: Node) -> str:
        return self.source_code[node.start_byte:node.end_byte].decode('utf-8')

    def char_offset(self, node: Node) -> int:
        """Character offset of a node; tree-sitter reports byte offsets."""
        return len(self.source_code[:node.start_byte].decode('utf-8', errors='replace'))

    def emit(self, node: Node, info: ImportInfo, type: str, args: Optional[UsageArgs] = None):
        self.events.append(self.methods.create_item(
            name=info.original_name,
            module=info.source_module,
            type=type,
            offset=self.char_offset(node),
            args=args,
        ))

    def resolve_type_reference(self, node: Node) -> Optional[ImportInfo]:
        """Binding of a plain (possibly generic) type reference, if any."""
        if node.type == 'generic_type':
            node = node.child_by_field_name('name')
        if node is None or node.type != 'type_identifier':
            return None
        return self.imports.get(self.get_text(node))

    def _skip(self, node: Node) -> Iterable[Node]:
        return ()

    def _skip_name(self, node: Node) -> Iterable[Node]:
        name = node.child_by_field_name('name')
        if name is None:
            return node.named_children
        return [child for child in node.named_children if child != name]

    # ------------------------------------------------------------------
    # Type references
    # ------------------------------------------------------------------

    def visit_type_identifier(self, node: Node) -> Iterable[Node]:
        info = self.imports.get(self.get_text(node))
        if info:
            self.emit(node, info, 'type')
        return ()

    def visit_generic_type(self, node: Node) -> Iterable[Node]:
        info = self.resolve_type_reference(node)
        if info is None:
            return node.named_children
        self.emit(node, info, 'type')
        type_arguments = node.child_by_field_name('type_arguments')
        return [type_arguments] if type_arguments is not None else ()

    def visit_lookup_type(self, node: Node) -> Iterable[Node]:
        """Indexed access such as Imported["key"]."""
        children = node.named_children
        if not children:
            return ()
        info = self.resolve_type_reference(children[0])
        if info is None:
            return children
        self.emit(node, info, 'type')
        rest = children[1:]
        if children[0].type == 'generic_type':
            type_arguments = children[0].child_by_field_name('type_arguments')
            if type_arguments is not None:
                rest.insert(0, type_arguments)
        return rest

    # ------------------------------------------------------------------
    # JSX
    # ------------------------------------------------------------------

    def visit_jsx_element(self, node: Node) -> Iterable[Node]:
        name_node = node.child_by_field_name('name')
        rest = [child for child in node.named_children if child != name_node]
        if name_node is None or name_node.type != 'identifier':
            return rest

        info = self.imports.get(self.get_text(name_node))
        if info is None:
            return rest

        data: Dict[str, Any] = {}
        is_spread = False
        for attribute in node.named_children:
            if attribute.type == 'jsx_expression':
                if any(child.type == 'spread_element' for child in attribute.named_children):
                    is_spread = True
                continue
            if attribute.type != 'jsx_attribute' or not attribute.named_children:
                continue

            attr_name = attribute.named_children[0]
            if attr_name.type != 'property_identifier':
                continue
            value = attribute.named_children[1] if attribute.named_child_count > 1 else None
            data[self.get_text(attr_name)] = self.get_literal_value(value, jsx=True)

        self.emit(node, info, 'element', UsageArgs(data=data, is_spread=is_spread))
        return rest

    def get_literal_value(self, node: Optional[Node], jsx: bool = False) -> Primitive:
        """Literal value of an attribute; a placeholder token otherwise."""
        if node is None:
            return True

        kind = node.type
        if kind == 'jsx_expression':
            inner = [child for child in node.named_children if child.type != 'comment']
            if not inner:
                return self.methods.create_fallback_token('jsx_empty_expression')
            return self.get_literal_value(inner[0])
        if kind == 'string':
            if jsx:
                # JSX attribute strings have no escape sequences, only HTML entities
                return html.unescape(self.get_text(node)[1:-1])
            return self.decode_string(node)
        if kind == 'number':
            return self.parse_number(self.get_text(node))
        if kind == 'true':
            return True
        if kind == 'false':
            return False
        if kind == 'null':
            return None

        return self.methods.create_fallback_token(kind)

    def decode_string(self, node: Node) -> str:
        parts = []
        for child in node.named_children:
            text = self.get_text(child)
            if child.type == 'escape_sequence':
                parts.append(_decode_escape(text))
            else:
                parts.append(text)
        return ''.join(parts)

    def parse_number(self, text: str) -> Union[int, float, str]:
        literal = text.replace('_', '')
        if literal.endswith('n'):
            return int(literal[:-1], 0)
        if len(literal) > 1 and literal[0] == '0' and literal.isdigit():
            # legacy octal, or decimal when a digit is 8 or 9
            if any(digit in '89' for digit in literal):
                return int(literal, 10)
            return int(literal, 8)
        try:
            return int(literal, 0)
        except ValueError:
            pass
        try:
            return float(literal)
        except ValueError:
            return self.methods.create_fallback_token('number')


def _decode_escape(text: str) -> str:
    body = text[1:]
    if not body:
        return text
    if body[0] in _SIMPLE_ESCAPES and len(body) == 1:
        return _SIMPLE_ESCAPES[body[0]]
    if body[0] in 'xu':
        digits = body[1:].strip('{}')
        try:
            return chr(int(digits, 16))
        except ValueError:
            return text
    # line continuation
    if body in ('\n', '\r\n'):
        return ''
    return body


class TreeSitterEngine(Engine):
    """Default engine: tree-sitter JavaScript / TypeScript / TSX grammars."""
    id = "tree-sitter"

    def parse(self, code: str, methods: ParserMethods,
              path: Optional[Union[str, Path]] = None) -> List[RawUsage]:
        source_code = code.encode('utf-8')
        tree = LanguageParser.for_path(path).parse_source(source_code, path)

        imports = JSImportTracker().analyze_imports(tree.root_node, source_code)
        if not imports:
            return []

        return UsageVisitor(source_code, imports, methods).visit(tree.root_node)


_ENGINES: Dict[str, Engine] = {}


def register_engine(engine: Engine) -> Engine:
    """Register an engine under its id (replaces any previous one)."""
    if not engine.id:
        raise ValueError("Engine must define a non-empty id")
    _ENGINES[engine.id] = engine
    return engine


def get_engine(engine_id: str) -> Engine:
    """
    Raises:
        ValueError: If no engine is registered under `engine_id`
    """
    try:
        return _ENGINES[engine_id]
    except KeyError:
        known = ', '.join(sorted(_ENGINES)) or 'none'
        raise ValueError(f"Unknown parsing engine: {engine_id!r} (registered: {known})")


register_engine(TreeSitterEngine())


def parse(code: str, on_add: Callable[[RawUsage], None],
          engine: Union[str, Engine, None] = None,
          path: Optional[Union[str, Path]] = None) -> List[RawUsage]:
    """Parse one source text and report each usage event to `on_add`.

    Events are reported in source encounter order, and only after the whole
    file parsed successfully.

    Args:
        code: Source text
        on_add: Callback receiving each RawUsage
        engine: Engine instance or registered id (default "tree-sitter")
        path: Source path; selects the grammar and labels errors

    Returns:
        The emitted events

    Raises:
        SourceParseError: If the source is not valid syntax
        ValueError: If the engine id is unknown
    """
    if engine is None:
        engine = TreeSitterEngine.id
    if isinstance(engine, str):
        engine = get_engine(engine)

    events = engine.parse(code, DEFAULT_METHODS, path)
    logger.debug("%s: %d usage event(s) via %s", path or "<source>", len(events), engine.id)
    for event in events:
        on_add(event)
    return events
