"""Tree-sitter powered dependency extraction and ES module rewriting."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from .base import TransformOptions, Transformer
from ..errors import ParseError, TransformError

try:  # pragma: no cover - optional dependency
    import tree_sitter_javascript
    from tree_sitter import Language, Parser

    TREE_SITTER_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    tree_sitter_javascript = None  # type: ignore[assignment]
    Language = None  # type: ignore[assignment]
    Parser = None  # type: ignore[assignment]
    TREE_SITTER_AVAILABLE = False


_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")

_ESCAPE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])")

_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}

_LINE_CONTINUATIONS = {"\n", "\r", "\r\n", "\u2028", "\u2029"}

_ES_MODULE_MARKER = 'Object.defineProperty(exports, "__esModule", { value: true });'

_INTEROP_HELPER = (
    "function _interopRequireDefault(obj) "
    "{ return obj && obj.__esModule ? obj : { default: obj }; }"
)

_WILDCARD_HELPER = (
    "function _interopRequireWildcard(obj) { "
    "if (obj && obj.__esModule) return obj; "
    "var ns = {}; "
    "if (obj != null) Object.keys(obj).forEach(function (key) { ns[key] = obj[key]; }); "
    "ns.default = obj; "
    "return ns; }"
)

_DECLARATION_TYPES = {"lexical_declaration", "variable_declaration"}

_NAMED_DECLARATIONS = {
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
}

_FUNCTION_EXPRESSIONS = {"function_expression", "function", "generator_function"}

_FUNCTION_SCOPES = _FUNCTION_EXPRESSIONS | {
    "function_declaration",
    "generator_function_declaration",
    "arrow_function",
    "method_definition",
}

_SCOPES = _FUNCTION_SCOPES | {
    "statement_block",
    "for_statement",
    "for_in_statement",
    "catch_clause",
    "switch_body",
}


@dataclass
class _Rewrite:
    """Accumulates edits for one module while its top-level statements are visited."""

    source: bytes
    path: str
    header: List[str] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)
    edits: List[Tuple[int, int, str]] = field(default_factory=list)
    bindings: Dict[str, str] = field(default_factory=dict)
    needs_interop: bool = False
    needs_wildcard: bool = False
    has_exports: bool = False
    _refs: int = 0
    _default_refs: Set[str] = field(default_factory=set)

    def module_ref(self) -> str:
        ref = f"_minipackDep{self._refs}"
        self._refs += 1
        return ref

    def default_ref(self, ref: str) -> str:
        """Name of the interop-wrapped view of ``ref`` whose ``.default`` is the default export."""
        wrapped = f"{ref}Default"
        if ref not in self._default_refs:
            self._default_refs.add(ref)
            self.needs_interop = True
            self.header.append(f"var {wrapped} = _interopRequireDefault({ref});")
        return wrapped

    def replace(self, node, replacement: str) -> None:  # type: ignore[no-untyped-def]
        self.edits.append((node.start_byte, node.end_byte, replacement))

    def replace_span(self, start: int, end: int, replacement: str) -> None:
        self.edits.append((start, end, replacement))

    def apply(self) -> str:
        output = self.source
        for start, end, replacement in sorted(self.edits, key=lambda edit: edit[0], reverse=True):
            output = output[:start] + replacement.encode("utf-8") + output[end:]
        return output.decode("utf-8")


class TreeSitterTransformer(Transformer):
    """Finds imports and rewrites ES module syntax using the tree-sitter JavaScript grammar.

    Imported bindings stay live: every reference to an imported name is rewritten
    to read through the required module's exports object, and local exports are
    published as getters before any ``require`` runs. Together with the loader's
    exports cache this lets function exports resolve across an import cycle.
    """

    def __init__(self, enabled: Optional[bool] = None) -> None:
        self._enabled = TREE_SITTER_AVAILABLE if enabled is None else enabled
        self._parser: Optional[Parser] = None

    def extract_dependencies(self, source: str, path: str) -> List[str]:
        source_bytes = source.encode("utf-8")
        root = self._parse(source_bytes, path)

        found: List[Tuple[int, str]] = []
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type in {"import_statement", "export_statement"}:
                source_node = node.child_by_field_name("source")
                if source_node is not None:
                    found.append(
                        (source_node.start_byte, self._string_value(source_node, source_bytes))
                    )
            elif node.type == "call_expression":
                specifier = self._require_specifier(node, source_bytes)
                if specifier is not None:
                    found.append((node.start_byte, specifier))
            stack.extend(node.children)

        found.sort(key=lambda item: item[0])
        return [specifier for _, specifier in found]

    def transform(self, source: str, options: TransformOptions, path: str) -> str:
        source_bytes = source.encode("utf-8")
        root = self._parse(source_bytes, path)
        rewrite = _Rewrite(source=source_bytes, path=path)

        # Imports first so export lists can name imported bindings.
        for node in root.children:
            if node.type == "hash_bang_line":
                rewrite.replace(node, "")
            elif node.type == "import_statement":
                self._rewrite_import(node, rewrite)
        for node in root.children:
            if node.type == "export_statement":
                self._rewrite_export(node, rewrite)
        self._rewrite_references(root, rewrite)

        prologue: List[str] = []
        if options.strict:
            prologue.append('"use strict";')
        if rewrite.has_exports:
            prologue.append(_ES_MODULE_MARKER)
        if rewrite.needs_interop:
            prologue.append(_INTEROP_HELPER)
        if rewrite.needs_wildcard:
            prologue.append(_WILDCARD_HELPER)
        prologue.extend(rewrite.exports)
        prologue.extend(rewrite.header)

        parts = ["\n".join(prologue), rewrite.apply().strip("\n")]
        return "\n".join(part for part in parts if part) + "\n"

    # ------------------------------------------------------------------
    # Parsing helpers

    def _get_parser(self) -> Parser:
        if not self._enabled:
            raise RuntimeError(
                "tree-sitter is required to parse modules. "
                "Install it with `pip install tree-sitter tree-sitter-javascript`."
            )
        if self._parser is None:
            self._parser = Parser(Language(tree_sitter_javascript.language()))
        return self._parser

    def _parse(self, source_bytes: bytes, path: str):  # type: ignore[no-untyped-def]
        tree = self._get_parser().parse(source_bytes)
        root = tree.root_node
        if root.has_error:
            bad = _first_error(root)
            node = bad if bad is not None else root
            line, column = _position(node)
            if bad is not None and bad.is_missing:
                message = f"missing {bad.type}"
            else:
                message = "unexpected syntax"
            raise ParseError(path, line, column, message)
        return root

    @staticmethod
    def _node_text(node, source_bytes) -> str:  # type: ignore[no-untyped-def]
        return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def _string_value(self, node, source_bytes) -> str:  # type: ignore[no-untyped-def]
        return _unescape(self._node_text(node, source_bytes)[1:-1])

    def _export_name(self, node, source_bytes) -> str:  # type: ignore[no-untyped-def]
        if node.type == "string":
            return self._string_value(node, source_bytes)
        return self._node_text(node, source_bytes)

    def _require_specifier(self, node, source_bytes) -> Optional[str]:  # type: ignore[no-untyped-def]
        function = node.child_by_field_name("function")
        if function is None or function.type != "identifier":
            return None
        if self._node_text(function, source_bytes) != "require":
            return None
        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            return None
        named = arguments.named_children
        if len(named) != 1 or named[0].type != "string":
            return None
        return self._string_value(named[0], source_bytes)

    # ------------------------------------------------------------------
    # Rewrites

    def _rewrite_import(self, node, rewrite: _Rewrite) -> None:  # type: ignore[no-untyped-def]
        src = rewrite.source
        specifier = self._string_value(node.child_by_field_name("source"), src)
        required = f"require({json.dumps(specifier)})"
        clause = _first_child(node, "import_clause")
        rewrite.replace(node, "")

        if clause is None:
            rewrite.header.append(f"{required};")
            return

        ref = rewrite.module_ref()
        rewrite.header.append(f"var {ref} = {required};")
        for part in clause.named_children:
            if part.type == "identifier":
                local = self._node_text(part, src)
                rewrite.bindings[local] = self._imported_value(ref, "default", rewrite)
            elif part.type == "namespace_import":
                rewrite.needs_wildcard = True
                local = self._node_text(part.named_children[0], src)
                rewrite.header.append(f"var {local} = _interopRequireWildcard({ref});")
            elif part.type == "named_imports":
                for spec in part.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name_node = spec.child_by_field_name("name")
                    alias_node = spec.child_by_field_name("alias")
                    imported = self._export_name(name_node, src)
                    local = self._node_text(alias_node or name_node, src)
                    rewrite.bindings[local] = self._imported_value(ref, imported, rewrite)

    def _rewrite_export(self, node, rewrite: _Rewrite) -> None:  # type: ignore[no-untyped-def]
        src = rewrite.source
        rewrite.has_exports = True
        source_node = node.child_by_field_name("source")
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")

        if source_node is not None:
            self._rewrite_reexport(node, self._string_value(source_node, src), rewrite)
            return

        if _first_child(node, "default") is not None:
            name_node = declaration.child_by_field_name("name") if declaration is not None else None
            if name_node is not None:
                # Hoisted declarations stay where they are; the getter reads the binding.
                rewrite.replace_span(node.start_byte, declaration.start_byte, "")
                rewrite.exports.append(_export_getter("default", self._node_text(name_node, src)))
                return
            body = declaration if declaration is not None else value
            if body is None:
                line, column = _position(node)
                raise TransformError(rewrite.path, line, column, "export default without a value")
            rewrite.replace_span(node.start_byte, body.start_byte, "exports.default = ")
            if declaration is not None:
                rewrite.replace_span(node.end_byte, node.end_byte, ";")
            return

        if declaration is not None:
            rewrite.replace_span(node.start_byte, declaration.start_byte, "")
            for name in self._declared_names(declaration, rewrite):
                rewrite.exports.append(_export_getter(name, name))
            return

        clause = _first_child(node, "export_clause")
        if clause is None:
            line, column = _position(node)
            raise TransformError(rewrite.path, line, column, "unsupported export statement")
        for spec in clause.named_children:
            if spec.type != "export_specifier":
                continue
            name_node = spec.child_by_field_name("name")
            alias_node = spec.child_by_field_name("alias")
            local = self._node_text(name_node, src)
            exported = self._export_name(alias_node, src) if alias_node is not None else local
            rewrite.exports.append(_export_getter(exported, rewrite.bindings.get(local, local)))
        rewrite.replace(node, "")

    def _rewrite_reexport(self, node, specifier: str, rewrite: _Rewrite) -> None:  # type: ignore[no-untyped-def]
        src = rewrite.source
        ref = rewrite.module_ref()
        rewrite.header.append(f"var {ref} = require({json.dumps(specifier)});")
        rewrite.replace(node, "")

        clause = _first_child(node, "export_clause")
        namespace = _first_child(node, "namespace_export")
        if clause is not None:
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                name_node = spec.child_by_field_name("name")
                alias_node = spec.child_by_field_name("alias")
                imported = self._export_name(name_node, src)
                exported = self._export_name(alias_node, src) if alias_node is not None else imported
                rewrite.header.append(
                    _export_getter(exported, self._imported_value(ref, imported, rewrite))
                )
        elif namespace is not None:
            rewrite.needs_wildcard = True
            exported = self._export_name(namespace.named_children[0], src)
            rewrite.header.append(f"exports{_member(exported)} = _interopRequireWildcard({ref});")
        else:
            rewrite.header.append(
                f"Object.keys({ref}).forEach(function (key) {{ "
                'if (key === "default" || key === "__esModule") return; '
                "if (Object.prototype.hasOwnProperty.call(exports, key)) return; "
                "Object.defineProperty(exports, key, "
                f"{{ enumerable: true, get: function () {{ return {ref}[key]; }} }}); "
                "});"
            )

    def _imported_value(self, ref: str, imported: str, rewrite: _Rewrite) -> str:
        if imported == "default":
            return f"{rewrite.default_ref(ref)}.default"
        return f"{ref}{_member(imported)}"

    def _declared_names(self, declaration, rewrite: _Rewrite) -> List[str]:  # type: ignore[no-untyped-def]
        src = rewrite.source
        if declaration.type in _DECLARATION_TYPES:
            names: List[str] = []
            for declarator in declaration.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is None or name_node.type != "identifier":
                    line, column = _position(declarator)
                    raise TransformError(
                        rewrite.path,
                        line,
                        column,
                        "destructuring patterns in exported declarations are not supported",
                    )
                names.append(self._node_text(name_node, src))
            return names

        name_node = declaration.child_by_field_name("name")
        if name_node is None:
            line, column = _position(declaration)
            raise TransformError(rewrite.path, line, column, "exported declaration has no name")
        return [self._node_text(name_node, src)]

    # ------------------------------------------------------------------
    # Imported binding references

    def _rewrite_references(self, root, rewrite: _Rewrite) -> None:  # type: ignore[no-untyped-def]
        """Point every unshadowed use of an imported name at the exporting module."""
        bindings = rewrite.bindings
        if not bindings:
            return
        src = rewrite.source
        stack = [(node, frozenset()) for node in reversed(root.children) if not _is_removed(node)]
        while stack:
            node, shadowed = stack.pop()
            if node.type in _SCOPES:
                hidden = self._scope_names(node, src) & bindings.keys()
                if hidden:
                    shadowed = shadowed | hidden
            if node.type in ("identifier", "shorthand_property_identifier"):
                name = self._node_text(node, src)
                if name in bindings and name not in shadowed:
                    rewrite.replace(node, _reference(node, name, bindings[name]))
                continue
            stack.extend((child, shadowed) for child in reversed(node.children))

    def _scope_names(self, scope, src) -> Set[str]:  # type: ignore[no-untyped-def]
        patterns = []
        if scope.type in _FUNCTION_SCOPES:
            patterns.append(scope.child_by_field_name("parameters"))
            patterns.append(scope.child_by_field_name("parameter"))
            if scope.type in _FUNCTION_EXPRESSIONS:
                patterns.append(scope.child_by_field_name("name"))
            body = scope.child_by_field_name("body")
            if body is not None:
                patterns.extend(_var_patterns(body))
        elif scope.type == "catch_clause":
            patterns.append(scope.child_by_field_name("parameter"))
        elif scope.type == "for_in_statement" and scope.child_by_field_name("kind") is not None:
            patterns.append(scope.child_by_field_name("left"))

        if scope.type == "switch_body":
            statements = [stmt for case in scope.named_children for stmt in case.named_children]
        elif scope.type == "for_statement":
            statements = [scope.child_by_field_name("initializer")]
        else:
            statements = scope.named_children
        for statement in statements:
            if statement is None:
                continue
            if statement.type == "lexical_declaration":
                patterns.extend(_declarator_names(statement))
            elif statement.type in _NAMED_DECLARATIONS:
                patterns.append(statement.child_by_field_name("name"))

        names: Set[str] = set()
        for pattern in patterns:
            if pattern is not None:
                names.update(self._pattern_names(pattern, src))
        return names

    def _pattern_names(self, node, src) -> List[str]:  # type: ignore[no-untyped-def]
        if node.type in ("identifier", "shorthand_property_identifier_pattern"):
            return [self._node_text(node, src)]
        if node.type in ("assignment_pattern", "object_assignment_pattern"):
            left = node.child_by_field_name("left")
            return self._pattern_names(left, src) if left is not None else []
        if node.type == "pair_pattern":
            value = node.child_by_field_name("value")
            return self._pattern_names(value, src) if value is not None else []
        if node.type in ("object_pattern", "array_pattern", "rest_pattern", "formal_parameters"):
            names: List[str] = []
            for child in node.named_children:
                names.extend(self._pattern_names(child, src))
            return names
        return []


def _unescape(text: str) -> str:
    """Decode JavaScript string escapes in the body of a string literal."""

    def replace(match: "re.Match[str]") -> str:
        escape = match.group(1)
        if escape[0] == "u" and len(escape) > 1:
            digits = escape[2:-1] if escape[1] == "{" else escape[1:]
            return chr(int(digits, 16))
        if escape[0] == "x" and len(escape) == 3:
            return chr(int(escape[1:], 16))
        if escape in _LINE_CONTINUATIONS:
            return ""
        return _SIMPLE_ESCAPES.get(escape, escape)

    decoded = _ESCAPE.sub(replace, text)
    # Join \uD83D\uDE00 style surrogate pairs into one code point.
    return decoded.encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def _export_getter(name: str, expression: str) -> str:
    return (
        f"Object.defineProperty(exports, {json.dumps(name)}, "
        f"{{ enumerable: true, get: function () {{ return {expression}; }} }});"
    )


def _reference(node, name: str, expression: str) -> str:  # type: ignore[no-untyped-def]
    if node.type == "shorthand_property_identifier":
        return f"{name}: {expression}"
    parent = node.parent
    if parent is not None and parent.type == "call_expression":
        callee = parent.child_by_field_name("function")
        span = (node.start_byte, node.end_byte)
        if callee is not None and (callee.start_byte, callee.end_byte) == span:
            # Call without binding ``this`` to the exports object.
            return f"(0, {expression})"
    return expression


def _is_removed(node) -> bool:  # type: ignore[no-untyped-def]
    if node.type == "import_statement":
        return True
    if node.type != "export_statement":
        return False
    if node.child_by_field_name("source") is not None:
        return True
    return _first_child(node, "export_clause") is not None


def _declarator_names(declaration):  # type: ignore[no-untyped-def]
    return [
        declarator.child_by_field_name("name")
        for declarator in declaration.named_children
        if declarator.type == "variable_declarator"
    ]


def _var_patterns(body):  # type: ignore[no-untyped-def]
    """Binding patterns of ``var`` declarations hoisted to the function owning ``body``."""
    patterns = []
    stack = [body]
    while stack:
        node = stack.pop()
        if node.type in _FUNCTION_SCOPES:
            continue
        if node.type == "variable_declaration":
            patterns.extend(_declarator_names(node))
        elif node.type == "for_in_statement":
            kind = node.child_by_field_name("kind")
            if kind is not None and kind.type == "var":
                patterns.append(node.child_by_field_name("left"))
        stack.extend(node.children)
    return patterns


def _first_child(node, node_type: str):  # type: ignore[no-untyped-def]
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def _first_error(root):  # type: ignore[no-untyped-def]
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


def _position(node) -> Tuple[int, int]:  # type: ignore[no-untyped-def]
    row, column = node.start_point[0], node.start_point[1]
    return row + 1, column + 1


def _member(name: str) -> str:
    if _IDENTIFIER.match(name):
        return f".{name}"
    return f"[{json.dumps(name)}]"


__all__ = ["TreeSitterTransformer", "TREE_SITTER_AVAILABLE"]
