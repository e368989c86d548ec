from dataclasses import dataclass
from typing import Dict, Union

from tree_sitter import Node


@dataclass
class ImportInfo:
    source_module: str
    original_name: str


class JSImportTracker:
    def analyze_imports(self, root_node: Node, source_code: Union[str, bytes]) -> Dict[str, ImportInfo]:
        """
        Maps every local identifier introduced by an ESM import declaration
        to the module it came from and the name it was exported under.

        Default and namespace imports have no exported name of their own, so
        the local identifier is used for both.
        """
        if isinstance(source_code, str):
            source_code = source_code.encode('utf-8')

        imports: Dict[str, ImportInfo] = {}

        def get_text(node: Node) -> str:
            return source_code[node.start_byte:node.end_byte].decode('utf-8')

        def strip_quotes(text: str) -> str:
            return text.strip('"\'`')

        stack = [root_node]

        while stack:
            node = stack.pop()

            if node.type == 'import_statement':
                source_node = node.child_by_field_name('source')
                if source_node is None:
                    continue
                module_name = strip_quotes(get_text(source_node))
                if not module_name:
                    continue

                for clause in node.named_children:
                    if clause.type != 'import_clause':
                        continue

                    # import x, { y } from 'mod' / import * as ns from 'mod'
                    for child in clause.named_children:
                        if child.type == 'identifier':
                            local_name = get_text(child)
                            imports[local_name] = ImportInfo(module_name, local_name)

                        elif child.type == 'namespace_import':
                            for ns_child in child.named_children:
                                if ns_child.type == 'identifier':
                                    local_name = get_text(ns_child)
                                    imports[local_name] = ImportInfo(module_name, local_name)

                        elif child.type == 'named_imports':
                            for specifier in child.named_children:
                                if specifier.type != 'import_specifier':
                                    continue
                                name_node = specifier.child_by_field_name('name')
                                alias_node = specifier.child_by_field_name('alias')
                                if name_node is None:
                                    continue

                                # import { "kebab-name" as alias } is legal ES2022
                                original = strip_quotes(get_text(name_node))
                                local_name = get_text(alias_node) if alias_node else original
                                imports[local_name] = ImportInfo(module_name, original or local_name)
                continue

            # Imports only live at program level or inside ambient module blocks
            stack.extend(reversed(node.named_children))

        return imports
