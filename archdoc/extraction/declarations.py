"""Top-level declaration extraction for TypeScript and JavaScript sources.

Only statements directly under the program node are considered. Each one is
processed independently: a statement whose syntax subtree contains a parse
error is skipped with a diagnostic while the remaining statements of the file
are still extracted.
"""

from __future__ import annotations

import re
from dataclasses import replace
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Sequence, Tuple

from tree_sitter import Node

from ..logging import get_logger
from ..models import (
    CallableExport,
    ComponentEntity,
    Diagnostic,
    Entity,
    EnumEntity,
    EnumMember,
    FileExtraction,
    ImportReference,
    InterfaceEntity,
    Parameter,
    Property,
    SourceFile,
    SourceLocation,
    StatefulFunctionEntity,
    TypeAliasEntity,
    entity_id,
)
from .parser import (
    FUNCTION_NODES,
    annotation_text,
    annotation_type,
    column_of,
    field_text,
    has_token,
    is_broken,
    line_of,
    node_text,
    parse,
    string_value,
    walk,
)

HOOK_NAME = re.compile(r"^use[A-Z0-9]")

_JSX_NODES = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}
_CALLABLE_VALUES = {"arrow_function", "function_expression", "function", "generator_function"}
_WRAPPER_CALLS = {"memo", "forwardRef", "React.memo", "React.forwardRef"}
_COMPONENT_TYPES = {
    "FC",
    "FunctionComponent",
    "VFC",
    "React.FC",
    "React.FunctionComponent",
    "React.VFC",
}
_PROPS_WRAPPERS = {"PropsWithChildren", "React.PropsWithChildren", "Readonly"}

logger = get_logger("extraction")


class FileParseError(RuntimeError):
    """Raised when no part of a file could be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class DeclarationExtractor:
    """Extracts typed entities, imports and exports from a single file.

    Instances hold no per-file state, so one extractor can serve many
    threads at once.
    """

    def extract(self, source: SourceFile) -> FileExtraction:
        if source.text is None:
            raise FileParseError(source.path, "file is not valid UTF-8 text")
        tree = parse(source.text, source.path)
        return _FileVisitor(source.path, tree.root_node).run()


class _FileVisitor:
    def __init__(self, path: str, root: Node) -> None:
        self.path = path
        self.root = root
        self.entities: List[Entity] = []
        self.imports: List[ImportReference] = []
        self.callables: List[Tuple[CallableExport, bool]] = []
        self.exported: Dict[str, None] = {}
        self.aliases: List[Tuple[str, str]] = []
        self.default_export: Optional[str] = None
        self.diagnostics: List[Diagnostic] = []

    def run(self) -> FileExtraction:
        statements = self.root.named_children
        code = [node for node in statements if node.type != "comment"]
        if self.root.type == "ERROR" or (code and all(is_broken(node) for node in code)):
            raise FileParseError(self.path, "no top-level statement could be parsed")

        for index, node in enumerate(statements):
            if node.type == "comment":
                continue
            if is_broken(node):
                self._skip(node)
                continue
            self._visit_statement(node, _leading_comment(statements, index))

        return self._finish()

    def _finish(self) -> FileExtraction:
        if self.default_export:
            self.exported.setdefault(self.default_export, None)
        marked = set(self.exported)
        entities = tuple(
            replace(entity, exported=True)
            if not entity.exported and entity.name in marked
            else entity
            for entity in self.entities
        )
        callables = tuple(
            callable_ for callable_, exported in self.callables if exported or callable_.name in marked
        )
        return FileExtraction(
            path=self.path,
            entities=entities,
            imports=tuple(self.imports),
            callables=callables,
            exported_names=tuple(self.exported),
            export_aliases=tuple(self.aliases),
            default_export=self.default_export,
            diagnostics=tuple(self.diagnostics),
        )

    def _skip(self, node: Node) -> None:
        lines = node_text(node).strip().splitlines()
        snippet = lines[0][:60] if lines else node.type
        diagnostic = Diagnostic(
            path=self.path,
            line=line_of(node),
            message=f"Skipped malformed declaration: {snippet}",
        )
        self.diagnostics.append(diagnostic)
        logger.warning("%s", diagnostic)

    def _location(self, node: Node) -> SourceLocation:
        return SourceLocation(path=self.path, line=line_of(node), column=column_of(node))

    def _visit_statement(self, node: Node, doc: Optional[str]) -> None:
        if node.type == "import_statement":
            self._visit_import(node)
        elif node.type == "export_statement":
            self._visit_export(node, doc)
        else:
            self._visit_declaration(node, doc, exported=False, anchor=node)

    def _visit_import(self, node: Node) -> None:
        source = node.child_by_field_name("source")
        if source is None:
            return
        names: List[str] = []
        namespace = False
        for child in node.named_children:
            if child.type != "import_clause":
                continue
            for part in child.named_children:
                if part.type == "identifier":
                    names.append("default")
                elif part.type == "namespace_import":
                    namespace = True
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type == "import_specifier":
                            names.append(string_value(spec.child_by_field_name("name")))
        self.imports.append(
            ImportReference(
                specifier=string_value(source),
                names=tuple(names),
                namespace=namespace,
                line=line_of(node),
            )
        )

    def _visit_export(self, node: Node, doc: Optional[str]) -> None:
        source = node.child_by_field_name("source")
        if source is not None:
            self._visit_reexport(node, source)
            return

        is_default = has_token(node, "default")
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            name = self._visit_declaration(declaration, doc, exported=True, anchor=node)
            if is_default and name:
                self.default_export = name
            return

        value = node.child_by_field_name("value")
        if value is not None and is_default:
            self._visit_default_value(value, doc, node)
            return

        for child in node.named_children:
            if child.type != "export_clause":
                continue
            for spec in child.named_children:
                if spec.type != "export_specifier":
                    continue
                local = string_value(spec.child_by_field_name("name"))
                alias = string_value(spec.child_by_field_name("alias"))
                if not local:
                    continue
                self.exported.setdefault(local, None)
                if alias == "default":
                    self.default_export = local
                elif alias and alias != local:
                    self.aliases.append((alias, local))

    def _visit_reexport(self, node: Node, source: Node) -> None:
        names: List[str] = []
        namespace = has_token(node, "*")
        for child in node.named_children:
            if child.type == "namespace_export":
                namespace = True
            elif child.type == "export_clause":
                for spec in child.named_children:
                    if spec.type == "export_specifier":
                        names.append(string_value(spec.child_by_field_name("name")))
        self.imports.append(
            ImportReference(
                specifier=string_value(source),
                names=tuple(names),
                namespace=namespace,
                line=line_of(node),
                reexport=True,
            )
        )

    def _visit_default_value(self, value: Node, doc: Optional[str], anchor: Node) -> None:
        if value.type == "identifier":
            self.default_export = node_text(value)
            return
        fn, props = _unwrap_callable(value)
        if fn is None:
            wrapped = _wrapped_identifier(value)
            if wrapped:
                self.default_export = wrapped
            return
        name = field_text(fn, "name") or _default_name(self.path)
        self._add_callable(name, fn, doc, True, anchor, props)
        self.default_export = name

    def _visit_declaration(
        self, node: Node, doc: Optional[str], *, exported: bool, anchor: Node
    ) -> Optional[str]:
        kind = node.type
        if kind == "interface_declaration":
            return self._add_entity(_interface(node, doc), node, exported, anchor)
        if kind == "type_alias_declaration":
            return self._add_entity(_type_alias(node, doc), node, exported, anchor)
        if kind == "enum_declaration":
            return self._add_entity(_enum(node, doc), node, exported, anchor)
        if kind in ("function_declaration", "generator_function_declaration"):
            name = field_text(node, "name")
            if name:
                self._add_callable(name, node, doc, exported, anchor, None)
            return name or None
        if kind in ("lexical_declaration", "variable_declaration"):
            first: Optional[str] = None
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is None or name_node.type != "identifier":
                    continue
                name = node_text(name_node)
                first = first or name
                if exported:
                    self.exported.setdefault(name, None)
                value = declarator.child_by_field_name("value")
                fn, props = _unwrap_callable(value)
                if fn is None:
                    bound = _bound_handler(value)
                    if bound is not None:
                        self._record_callable(name, _wraps_async(bound), doc, exported, anchor)
                    continue
                props = props or _component_type_props(declarator.child_by_field_name("type"))
                self._add_callable(name, fn, doc, exported, anchor, props)
            return first
        return None

    def _add_entity(self, payload: dict, node: Node, exported: bool, anchor: Node) -> Optional[str]:
        name = field_text(node, "name")
        if not name:
            return None
        factory = payload.pop("factory")
        self.entities.append(
            factory(
                id=entity_id(self.path, name),
                name=name,
                exported=exported,
                location=self._location(anchor),
                **payload,
            )
        )
        if exported:
            self.exported.setdefault(name, None)
        return name

    def _record_callable(
        self, name: str, is_async: bool, doc: Optional[str], exported: bool, anchor: Node
    ) -> SourceLocation:
        location = self._location(anchor)
        self.callables.append(
            (
                CallableExport(
                    name=name,
                    line=location.line,
                    column=location.column,
                    is_async=is_async,
                    documentation=doc,
                ),
                exported,
            )
        )
        if exported:
            self.exported.setdefault(name, None)
        return location

    def _add_callable(
        self,
        name: str,
        fn: Node,
        doc: Optional[str],
        exported: bool,
        anchor: Node,
        props_hint: Optional[str],
    ) -> None:
        is_async = has_token(fn, "async")
        location = self._record_callable(name, is_async, doc, exported, anchor)

        common = dict(
            id=entity_id(self.path, name),
            name=name,
            exported=exported,
            location=location,
            documentation=doc,
        )
        if HOOK_NAME.match(name):
            self.entities.append(
                StatefulFunctionEntity(
                    **common,
                    parameters=_parameters(fn),
                    return_type=annotation_text(fn.child_by_field_name("return_type")) or "unknown",
                    is_async=is_async,
                )
            )
        elif name[:1].isupper() and _returns_view(fn):
            self.entities.append(
                ComponentEntity(
                    **common,
                    props_type=props_hint or _first_parameter_props(fn),
                    rendered=_rendered_components(fn),
                )
            )


def _interface(node: Node, doc: Optional[str]) -> dict:
    properties: List[Property] = []
    body = node.child_by_field_name("body")
    if body is not None:
        members = body.named_children
        for index, member in enumerate(members):
            if member.type == "property_signature":
                type_text = annotation_text(member.child_by_field_name("type")) or "any"
            elif member.type == "method_signature":
                params = field_text(member, "parameters") or "()"
                returns = annotation_text(member.child_by_field_name("return_type")) or "void"
                type_text = f"{params} => {returns}"
            else:
                continue
            properties.append(
                Property(
                    name=field_text(member, "name"),
                    type_text=type_text,
                    optional=has_token(member, "?"),
                    documentation=_leading_comment(members, index),
                )
            )

    extends: List[str] = []
    for child in node.named_children:
        if child.type == "extends_type_clause":
            extends.extend(
                _type_name(base) for base in child.named_children if base.type != "comment"
            )
    return {
        "factory": InterfaceEntity,
        "documentation": doc,
        "properties": tuple(properties),
        "extends": tuple(extends),
    }


def _type_alias(node: Node, doc: Optional[str]) -> dict:
    return {
        "factory": TypeAliasEntity,
        "documentation": doc,
        "type_text": field_text(node, "value").strip(),
    }


def _enum(node: Node, doc: Optional[str]) -> dict:
    members: List[EnumMember] = []
    body = node.child_by_field_name("body")
    if body is not None:
        for child in body.named_children:
            if child.type == "enum_assignment":
                members.append(
                    EnumMember(
                        name=string_value(child.child_by_field_name("name")),
                        value=field_text(child, "value") or None,
                    )
                )
            elif child.type in ("property_identifier", "string", "identifier"):
                members.append(EnumMember(name=string_value(child)))
    return {"factory": EnumEntity, "documentation": doc, "members": tuple(members)}


def _type_name(node: Node) -> str:
    if node.type == "generic_type":
        return field_text(node, "name")
    return node_text(node)


def _nominal_type(node: Optional[Node]) -> Optional[str]:
    """Name of a nominal type reference; None for inline or composite types."""
    if node is None:
        return None
    if node.type in ("type_identifier", "nested_type_identifier"):
        return node_text(node)
    if node.type == "generic_type":
        name = field_text(node, "name")
        if name in _PROPS_WRAPPERS:
            return _nominal_type(_first_type_argument(node))
        return name
    return None


def _first_type_argument(node: Node, position: int = 0) -> Optional[Node]:
    arguments = node.child_by_field_name("type_arguments")
    if arguments is None:
        for child in node.named_children:
            if child.type == "type_arguments":
                arguments = child
                break
    if arguments is None:
        return None
    named = [child for child in arguments.named_children if child.type != "comment"]
    return named[position] if len(named) > position else None


def _component_type_props(annotation: Optional[Node]) -> Optional[str]:
    """Props of `const X: React.FC<Props> = ...`."""
    type_node = annotation_type(annotation)
    if type_node is None or type_node.type != "generic_type":
        return None
    if field_text(type_node, "name") not in _COMPONENT_TYPES:
        return None
    return _nominal_type(_first_type_argument(type_node))


def _unwrap_callable(value: Optional[Node]) -> Tuple[Optional[Node], Optional[str]]:
    """Return the function node behind a declarator value and any props hint."""
    if value is None:
        return None, None
    if value.type in _CALLABLE_VALUES:
        return value, None
    if value.type in ("parenthesized_expression", "as_expression", "satisfies_expression"):
        named = value.named_children
        return _unwrap_callable(named[0] if named else None)
    if value.type == "call_expression":
        callee = field_text(value, "function")
        if callee not in _WRAPPER_CALLS:
            return None, None
        arguments = value.child_by_field_name("arguments")
        first = None
        if arguments is not None:
            first = next((arg for arg in arguments.named_children if arg.type != "comment"), None)
        fn, props = _unwrap_callable(first)
        if props is None and callee.endswith("forwardRef"):
            props = _nominal_type(_first_type_argument(value, 1))
        return fn, props
    return None, None


def _bound_handler(value: Optional[Node]) -> Optional[Node]:
    """The call or identifier behind `export const GET = withAuth(handler)` or `= handler`.

    Calls count only when some argument is a function, an identifier or a
    nested call, which is the shape of a higher-order wrapper.
    """
    if value is None:
        return None
    if value.type in ("parenthesized_expression", "as_expression", "satisfies_expression"):
        named = value.named_children
        return _bound_handler(named[0] if named else None)
    if value.type == "identifier":
        return value
    if value.type != "call_expression":
        return None
    arguments = value.child_by_field_name("arguments")
    if arguments is None:
        return None
    for arg in arguments.named_children:
        if arg.type in _CALLABLE_VALUES or arg.type in ("identifier", "call_expression"):
            return value
    return None


def _wraps_async(value: Node) -> bool:
    arguments = value.child_by_field_name("arguments")
    if arguments is None:
        return False
    return any(
        arg.type in _CALLABLE_VALUES and has_token(arg, "async") for arg in arguments.named_children
    )


def _wrapped_identifier(value: Node) -> Optional[str]:
    """`Foo` in `export default memo(Foo)`."""
    if value.type != "call_expression" or field_text(value, "function") not in _WRAPPER_CALLS:
        return None
    arguments = value.child_by_field_name("arguments")
    if arguments is None:
        return None
    for arg in arguments.named_children:
        if arg.type == "identifier":
            return node_text(arg)
        if arg.type == "call_expression":
            return _wrapped_identifier(arg)
    return None


def _default_name(path: str) -> str:
    posix = PurePosixPath(path)
    stem = posix.name.split(".", 1)[0]
    if stem == "index" and posix.parent.name:
        stem = posix.parent.name
    name = "".join(part[:1].upper() + part[1:] for part in re.split(r"[^A-Za-z0-9]+", stem) if part)
    if not name or name[0].isdigit():
        return "Default"
    return name


def _parameters(fn: Node) -> Tuple[Parameter, ...]:
    single = fn.child_by_field_name("parameter")
    if single is not None:
        return (Parameter(name=node_text(single)),)
    params = fn.child_by_field_name("parameters")
    if params is None:
        return ()
    result: List[Parameter] = []
    for param in params.named_children:
        if param.type not in ("required_parameter", "optional_parameter"):
            continue
        default = param.child_by_field_name("value")
        result.append(
            Parameter(
                name=field_text(param, "pattern"),
                type_text=annotation_text(param.child_by_field_name("type")),
                optional=param.type == "optional_parameter" or default is not None,
                default=node_text(default) or None,
            )
        )
    return tuple(result)


def _first_parameter_props(fn: Node) -> Optional[str]:
    if fn.child_by_field_name("parameter") is not None:
        return None
    params = fn.child_by_field_name("parameters")
    if params is None:
        return None
    for param in params.named_children:
        if param.type in ("required_parameter", "optional_parameter"):
            return _nominal_type(annotation_type(param.child_by_field_name("type")))
    return None


def _returns_view(fn: Node) -> bool:
    body = fn.child_by_field_name("body")
    if body is None:
        return False
    if body.type != "statement_block":
        return _is_view_expression(body)
    for node in walk(body, skip=FUNCTION_NODES | {"class_declaration", "class"}):
        if node.type in FUNCTION_NODES:
            continue
        if node.type == "return_statement" and any(
            _is_view_expression(child) for child in node.named_children
        ):
            return True
    return False


def _is_view_expression(node: Node) -> bool:
    if node.type in _JSX_NODES:
        return True
    if node.type in ("parenthesized_expression", "as_expression", "satisfies_expression"):
        return any(_is_view_expression(child) for child in node.named_children[:1])
    if node.type == "ternary_expression":
        return any(
            child is not None and _is_view_expression(child)
            for child in (
                node.child_by_field_name("consequence"),
                node.child_by_field_name("alternative"),
            )
        )
    if node.type == "binary_expression":
        return any(
            child is not None and _is_view_expression(child)
            for child in (node.child_by_field_name("left"), node.child_by_field_name("right"))
        )
    return False


def _rendered_components(fn: Node) -> Tuple[str, ...]:
    body = fn.child_by_field_name("body")
    if body is None:
        return ()
    seen: Dict[str, None] = {}
    for node in (body, *walk(body)):
        if node.type in ("jsx_opening_element", "jsx_self_closing_element"):
            name = field_text(node, "name")
            if name[:1].isupper():
                seen.setdefault(name, None)
    return tuple(seen)


def _leading_comment(siblings: Sequence[Node], index: int) -> Optional[str]:
    """Join the contiguous comment block that ends right above `siblings[index]`."""
    target_row = siblings[index].start_point[0]
    blocks: List[str] = []
    position = index - 1
    while position >= 0:
        comment = siblings[position]
        if comment.type != "comment" or comment.end_point[0] < target_row - 1:
            break
        previous = siblings[position - 1] if position > 0 else None
        if (
            previous is not None
            and previous.type != "comment"
            and previous.end_point[0] == comment.start_point[0]
        ):
            # Trailing comment of the previous statement.
            break
        blocks.insert(0, _clean_comment(node_text(comment)))
        target_row = comment.start_point[0]
        position -= 1
    text = "\n".join(block for block in blocks if block).strip()
    return text or None


def _clean_comment(text: str) -> str:
    text = text.strip()
    if text.startswith("//"):
        return text[2:].strip()
    if text.startswith("/*"):
        text = text[2:].lstrip("*")
    if text.endswith("*/"):
        text = text[:-2]
    lines = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith("*"):
            stripped = stripped[1:].strip()
        lines.append(stripped)
    return "\n".join(lines).strip()


__all__ = ["DeclarationExtractor", "FileParseError", "HOOK_NAME"]
