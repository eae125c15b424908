"""Entity and import/export extraction from TypeScript syntax trees."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from tree_sitter import Node, Tree

from .models import (
    Binding,
    ChangeDetection,
    Component,
    Directive,
    Entity,
    EntityKind,
    ExportForm,
    ExportRecord,
    FileFacts,
    ImportForm,
    ImportRecord,
    Method,
    NgModule,
    Parameter,
    Pipe,
    Service,
    TemplateSource,
)

LIFECYCLE_HOOKS = frozenset(
    {
        "ngOnInit",
        "ngOnDestroy",
        "ngOnChanges",
        "ngAfterViewInit",
        "ngAfterViewChecked",
        "ngAfterContentInit",
        "ngAfterContentChecked",
        "ngDoCheck",
    }
)

ENTITY_DECORATORS: Dict[str, EntityKind] = {
    "Component": EntityKind.COMPONENT,
    "Injectable": EntityKind.SERVICE,
    "NgModule": EntityKind.MODULE,
    "Pipe": EntityKind.PIPE,
    "Directive": EntityKind.DIRECTIVE,
}

_CLASS_TYPES = {"class_declaration", "abstract_class_declaration"}
_NAMED_DECLARATIONS = {
    "class_declaration",
    "abstract_class_declaration",
    "function_declaration",
    "generator_function_declaration",
    "function_signature",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
    "internal_module",
    "module",
}
_VARIABLE_DECLARATIONS = {"lexical_declaration", "variable_declaration"}
_TEMPLATE_KEYS = ("template", "templateUrl")
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


def _decode_escape(sequence: str) -> str:
    """Decode one ECMAScript escape sequence such as ``\\n``, ``\\x41`` or ``\\u{1F600}``."""
    body = sequence[1:]
    if not body:
        return sequence
    if body[0] in "ux" and len(body) > 1:
        digits = body[2:-1] if body.startswith("u{") else body[1:]
        try:
            return chr(int(digits, 16))
        except (ValueError, OverflowError):
            return sequence
    if body[0] in "\r\n\u2028\u2029":
        # line continuation
        return ""
    return _SIMPLE_ESCAPES.get(body, body)


@dataclass
class _Decorator:
    name: str
    arguments: List[Node]

    @property
    def options(self) -> Optional[Node]:
        """Return the first argument when it is an object literal."""
        if self.arguments and self.arguments[0].type == "object":
            return self.arguments[0]
        return None


@dataclass
class _ClassMembers:
    inputs: List[Binding] = field(default_factory=list)
    outputs: List[Binding] = field(default_factory=list)
    lifecycle_hooks: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    methods: List[Method] = field(default_factory=list)
    method_count: int = 0
    destroy_cleanup: bool = False

    @property
    def complexity(self) -> int:
        # Coarse proxy: one point per method on top of the class itself.
        return 1 + self.method_count


class EntityExtractor:
    """Turns one parsed file into at most one entity plus its import/export facts."""

    def extract(self, tree: Tree, source: bytes, file_id: str, file_path: str) -> FileFacts:
        walker = _FileWalker(source, file_id, file_path)
        root = tree.root_node
        return FileFacts(
            entity=walker.find_entity(root),
            imports=tuple(walker.collect_imports(root)),
            exports=tuple(walker.collect_exports(root)),
        )


class _FileWalker:
    def __init__(self, source: bytes, file_id: str, file_path: str) -> None:
        self.source = source
        self.file_id = file_id
        self.file_path = file_path

    # ------------------------------------------------------------------
    # Text helpers

    def text(self, node: Node | None) -> str:
        if node is None:
            return ""
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")

    def string_value(self, node: Node | None) -> Optional[str]:
        """Literal contents of a string or template node with escapes decoded."""
        if node is None or node.type not in {"string", "template_string"}:
            return None
        pieces: List[str] = []
        cursor = node.start_byte + 1
        for child in node.named_children:
            if child.type != "escape_sequence":
                continue
            pieces.append(self.source[cursor : child.start_byte].decode("utf-8", errors="ignore"))
            pieces.append(_decode_escape(self.text(child)))
            cursor = child.end_byte
        pieces.append(self.source[cursor : node.end_byte - 1].decode("utf-8", errors="ignore"))
        return "".join(pieces)

    def string_list(self, node: Node | None) -> List[str]:
        if node is None or node.type != "array":
            return []
        values = (self.string_value(child) for child in node.named_children)
        return [value for value in values if value is not None]

    def reference_list(self, node: Node | None) -> List[str]:
        """Names referenced in an array literal such as ``declarations: [A, B]``."""
        if node is None or node.type != "array":
            return []
        names: List[str] = []
        for element in node.named_children:
            name = self.reference_name(element)
            if name:
                names.append(name)
        return names

    def reference_name(self, node: Node) -> Optional[str]:
        if node.type in {"identifier", "member_expression"}:
            return self.text(node)
        if node.type == "call_expression":
            return self.text(node.child_by_field_name("function"))
        if node.type in {"string", "template_string"}:
            return self.string_value(node)
        if node.type == "object":
            provided = self.object_pairs(node).get("provide")
            return self.reference_name(provided) if provided is not None else None
        return None

    def property_key(self, node: Node | None) -> str:
        if node is None:
            return ""
        if node.type == "string":
            return self.string_value(node) or ""
        return self.text(node)

    def object_pairs(self, node: Node) -> Dict[str, Node]:
        pairs: Dict[str, Node] = {}
        for child in node.named_children:
            if child.type != "pair":
                continue
            key = self.property_key(child.child_by_field_name("key"))
            value = child.child_by_field_name("value")
            if key and value is not None and key not in pairs:
                pairs[key] = value
        return pairs

    @staticmethod
    def line(node: Node) -> int:
        return node.start_point[0] + 1

    # ------------------------------------------------------------------
    # Entities

    def find_entity(self, root: Node) -> Optional[Entity]:
        # Only the first recognised class becomes the file's entity.
        for class_node, decorators in self._top_level_classes(root):
            for decorator in decorators:
                kind = ENTITY_DECORATORS.get(decorator.name)
                if kind is not None:
                    return self._build_entity(kind, class_node, decorator)
        return None

    def _top_level_classes(self, root: Node) -> Iterator[Tuple[Node, List[_Decorator]]]:
        for node in root.named_children:
            if node.type in _CLASS_TYPES:
                yield node, self._decorators(node)
            elif node.type == "export_statement":
                declaration = node.child_by_field_name("declaration") or node.child_by_field_name("value")
                if declaration is None or declaration.type not in _CLASS_TYPES | {"class"}:
                    continue
                yield declaration, self._decorators(node) + self._decorators(declaration)

    def _decorators(self, node: Node) -> List[_Decorator]:
        return [
            decorator
            for decorator in (self._decorator(child) for child in node.children if child.type == "decorator")
            if decorator is not None
        ]

    def _decorator(self, node: Node) -> Optional[_Decorator]:
        expression = node.named_children[0] if node.named_children else None
        if expression is None:
            return None
        arguments: List[Node] = []
        target = expression
        if expression.type == "call_expression":
            target = expression.child_by_field_name("function")
            args = expression.child_by_field_name("arguments")
            if args is not None:
                arguments = [child for child in args.named_children if child.type != "comment"]
        if target is None:
            return None
        if target.type == "member_expression":
            name = self.text(target.child_by_field_name("property"))
        elif target.type == "identifier":
            name = self.text(target)
        else:
            return None
        return _Decorator(name=name, arguments=arguments)

    def _build_entity(self, kind: EntityKind, class_node: Node, decorator: _Decorator) -> Entity:
        name = self.text(class_node.child_by_field_name("name")) or "default"
        members = self._scan_members(class_node.child_by_field_name("body"))
        options = decorator.options
        pairs = self.object_pairs(options) if options is not None else {}

        if kind is EntityKind.COMPONENT:
            return self._component(name, members, options, pairs)
        if kind is EntityKind.SERVICE:
            return Service(
                name=name,
                file_id=self.file_id,
                file_path=self.file_path,
                provided_in=self._provided_in(pairs.get("providedIn")),
                dependencies=tuple(members.dependencies),
                methods=tuple(members.methods),
            )
        if kind is EntityKind.MODULE:
            return NgModule(
                name=name,
                file_id=self.file_id,
                file_path=self.file_path,
                declarations=tuple(self.reference_list(pairs.get("declarations"))),
                imports=tuple(self.reference_list(pairs.get("imports"))),
                exports=tuple(self.reference_list(pairs.get("exports"))),
                providers=tuple(self.reference_list(pairs.get("providers"))),
                bootstrap=tuple(self.reference_list(pairs.get("bootstrap"))),
            )
        if kind is EntityKind.PIPE:
            pure = pairs.get("pure")
            return Pipe(
                name=name,
                file_id=self.file_id,
                file_path=self.file_path,
                pipe_name=self.string_value(pairs.get("name")),
                pure=pure is None or pure.type != "false",
            )
        return Directive(
            name=name,
            file_id=self.file_id,
            file_path=self.file_path,
            selector=self.string_value(pairs.get("selector")),
            inputs=tuple(self._declared_bindings(pairs.get("inputs"), "any") + members.inputs),
            outputs=tuple(self._declared_bindings(pairs.get("outputs"), "EventEmitter") + members.outputs),
            dependencies=tuple(members.dependencies),
        )

    def _component(
        self,
        name: str,
        members: _ClassMembers,
        options: Optional[Node],
        pairs: Dict[str, Node],
    ) -> Component:
        template: Optional[TemplateSource] = None
        declared_keys: List[str] = []
        if options is not None:
            for child in options.named_children:
                if child.type != "pair":
                    continue
                key = self.property_key(child.child_by_field_name("key"))
                if key not in _TEMPLATE_KEYS:
                    continue
                declared_keys.append(key)
                value = self.string_value(child.child_by_field_name("value"))
                if template is None and value is not None:
                    template = TemplateSource(inline=value) if key == "template" else TemplateSource(url=value)

        style_urls = self.string_list(pairs.get("styleUrls"))
        style_url = self.string_value(pairs.get("styleUrl"))
        if style_url is not None:
            style_urls.append(style_url)

        change_detection = ChangeDetection.DEFAULT
        strategy = pairs.get("changeDetection")
        if strategy is not None and strategy.type == "member_expression":
            if self.text(strategy.child_by_field_name("property")) == "OnPush":
                change_detection = ChangeDetection.ON_PUSH

        return Component(
            name=name,
            file_id=self.file_id,
            file_path=self.file_path,
            selector=self.string_value(pairs.get("selector")),
            template=template,
            declared_template_keys=tuple(declared_keys),
            style_urls=tuple(style_urls),
            inputs=tuple(self._declared_bindings(pairs.get("inputs"), "any") + members.inputs),
            outputs=tuple(self._declared_bindings(pairs.get("outputs"), "EventEmitter") + members.outputs),
            lifecycle_hooks=tuple(members.lifecycle_hooks),
            dependencies=tuple(members.dependencies),
            complexity_score=members.complexity,
            change_detection=change_detection,
            cleans_up_on_destroy=members.destroy_cleanup,
        )

    def _provided_in(self, node: Optional[Node]) -> Optional[str]:
        if node is None:
            return None
        value = self.string_value(node)
        return value if value is not None else self.text(node)

    def _declared_bindings(self, node: Optional[Node], default_type: str) -> List[Binding]:
        """Bindings listed on the decorator, e.g. ``inputs: ['value', 'size: width']``."""
        bindings: List[Binding] = []
        for entry in self.string_list(node):
            prop, _, alias = entry.partition(":")
            prop = prop.strip()
            if prop:
                bindings.append(Binding(name=prop, alias=alias.strip() or None, type_name=default_type))
        return bindings

    # ------------------------------------------------------------------
    # Class members

    def _scan_members(self, body: Optional[Node]) -> _ClassMembers:
        members = _ClassMembers()
        if body is None:
            return members

        pending: List[_Decorator] = []
        for child in body.named_children:
            if child.type == "decorator":
                decorator = self._decorator(child)
                if decorator is not None:
                    pending.append(decorator)
                continue
            if child.type == "comment":
                continue
            if child.type == "method_definition":
                self._scan_method(child, pending, members)
            elif child.type == "public_field_definition":
                self._scan_field(child, pending + self._decorators(child), members)
            pending = []
        return members

    def _scan_method(self, node: Node, decorators: List[_Decorator], members: _ClassMembers) -> None:
        name = self.property_key(node.child_by_field_name("name"))
        parameters = node.child_by_field_name("parameters")

        if name == "constructor":
            for param in self._parameter_nodes(parameters):
                type_node = self._annotation_type(param)
                if type_node is not None:
                    members.dependencies.append(self._type_reference(type_node))
            return

        members.method_count += 1
        if name in LIFECYCLE_HOOKS:
            members.lifecycle_hooks.append(name)
        if name == "ngOnDestroy":
            members.destroy_cleanup = self._makes_call(node.child_by_field_name("body"))

        params = tuple(self._parameter(param) for param in self._parameter_nodes(parameters))
        for decorator in decorators:
            # Decorated setters such as ``@Input() set value(v: string)``.
            if decorator.name == "Input":
                type_name = params[0].type_name if params else "any"
                members.inputs.append(self._binding(name, decorator, type_name))
            elif decorator.name == "Output":
                members.outputs.append(self._binding(name, decorator, "EventEmitter"))

        if not name.startswith("ng"):
            return_type = node.child_by_field_name("return_type")
            members.methods.append(
                Method(
                    name=name,
                    parameters=params,
                    return_type=self._type_text(return_type) if return_type is not None else None,
                )
            )

    @staticmethod
    def _makes_call(body: Optional[Node]) -> bool:
        """True when a method body contains any call, e.g. ``this.sub.unsubscribe()``."""
        stack = [body] if body is not None else []
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                return True
            stack.extend(node.named_children)
        return False

    def _scan_field(self, node: Node, decorators: List[_Decorator], members: _ClassMembers) -> None:
        name = self.property_key(node.child_by_field_name("name"))
        annotation = node.child_by_field_name("type")
        for decorator in decorators:
            if decorator.name == "Input":
                type_name = self._type_text(annotation) if annotation is not None else "any"
                members.inputs.append(self._binding(name, decorator, type_name))
            elif decorator.name == "Output":
                members.outputs.append(self._binding(name, decorator, self._output_type(node, annotation)))

    def _binding(self, name: str, decorator: _Decorator, type_name: str) -> Binding:
        alias = self.string_value(decorator.arguments[0]) if decorator.arguments else None
        return Binding(name=name, alias=alias, type_name=type_name)

    def _output_type(self, node: Node, annotation: Optional[Node]) -> str:
        if annotation is not None:
            return self._type_text(annotation)
        value = node.child_by_field_name("value")
        if value is not None and value.type == "new_expression":
            constructor = value.child_by_field_name("constructor")
            if constructor is not None:
                return self.text(constructor)
        return "EventEmitter"

    @staticmethod
    def _parameter_nodes(parameters: Optional[Node]) -> Iterable[Node]:
        if parameters is None:
            return []
        return [
            child
            for child in parameters.named_children
            if child.type in {"required_parameter", "optional_parameter"}
        ]

    def _parameter(self, node: Node) -> Parameter:
        pattern = node.child_by_field_name("pattern")
        annotation = node.child_by_field_name("type")
        return Parameter(
            name=self.text(pattern) or "param",
            type_name=self._type_text(annotation) if annotation is not None else "any",
            optional=node.type == "optional_parameter",
        )

    @staticmethod
    def _annotation_type(node: Node) -> Optional[Node]:
        annotation = node.child_by_field_name("type")
        if annotation is None or not annotation.named_children:
            return None
        return annotation.named_children[0]

    def _type_text(self, annotation: Node) -> str:
        if annotation.type == "type_annotation" and annotation.named_children:
            return self.text(annotation.named_children[0])
        return self.text(annotation).lstrip(":").strip()

    def _type_reference(self, node: Node) -> str:
        if node.type in {"type_identifier", "nested_type_identifier"}:
            return self.text(node)
        if node.type == "generic_type":
            base = node.child_by_field_name("name")
            return self._type_reference(base) if base is not None else "unknown"
        return "unknown"

    # ------------------------------------------------------------------
    # Imports and exports

    def collect_imports(self, root: Node) -> Iterator[ImportRecord]:
        for node in root.named_children:
            if node.type == "import_statement":
                yield from self._import_statement(node)
        yield from self._dynamic_imports(root)

    def _import_statement(self, node: Node) -> Iterator[ImportRecord]:
        line = self.line(node)
        source = self.string_value(node.child_by_field_name("source"))
        clause = next((child for child in node.named_children if child.type == "import_clause"), None)
        require = next((child for child in node.named_children if child.type == "import_require_clause"), None)

        if require is not None:
            # import fs = require('fs')
            target = self.string_value(require.child_by_field_name("source"))
            alias = next((child for child in require.named_children if child.type == "identifier"), None)
            if target is not None:
                yield self._import(self.text(alias), target, ImportForm.DEFAULT, line)
            return
        if source is None:
            return
        if clause is None:
            yield self._import("", source, ImportForm.SIDE_EFFECT, line)
            return

        for child in clause.named_children:
            if child.type == "identifier":
                yield self._import(self.text(child), source, ImportForm.DEFAULT, line)
            elif child.type == "namespace_import":
                identifier = next((item for item in child.named_children if item.type == "identifier"), None)
                yield self._import(self.text(identifier), source, ImportForm.NAMESPACE, line)
            elif child.type == "named_imports":
                for specifier in child.named_children:
                    if specifier.type != "import_specifier":
                        continue
                    imported = self.property_key(specifier.child_by_field_name("name"))
                    yield self._import(imported, source, ImportForm.NAMED, line)

    def _dynamic_imports(self, root: Node) -> Iterator[ImportRecord]:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                function = node.child_by_field_name("function")
                arguments = node.child_by_field_name("arguments")
                if function is not None and function.type == "import" and arguments is not None:
                    first = arguments.named_children[0] if arguments.named_children else None
                    target = self.string_value(first)
                    if target is not None and "${" not in target:
                        yield self._import("", target, ImportForm.DYNAMIC, self.line(node))
            stack.extend(reversed(node.named_children))

    def _import(self, symbol: str, source: str, form: ImportForm, line: int) -> ImportRecord:
        return ImportRecord(file_id=self.file_id, symbol=symbol, source=source, form=form, line=line)

    def collect_exports(self, root: Node) -> Iterator[ExportRecord]:
        for node in root.named_children:
            if node.type == "export_statement":
                yield from self._export_statement(node)

    def _export_statement(self, node: Node) -> Iterator[ExportRecord]:
        line = self.line(node)
        source = self.string_value(node.child_by_field_name("source"))
        declaration = node.child_by_field_name("declaration")
        is_default = any(child.type == "default" for child in node.children)
        clause = next((child for child in node.named_children if child.type == "export_clause"), None)

        if source is not None:
            namespace = next((child for child in node.named_children if child.type == "namespace_export"), None)
            if clause is not None:
                for symbol in self._export_clause_names(clause):
                    yield self._export(symbol, ExportForm.REEXPORT, line, source)
            elif namespace is not None:
                names = [child for child in namespace.named_children]
                yield self._export(self.property_key(names[-1]) if names else "*", ExportForm.REEXPORT, line, source)
            else:
                yield self._export("*", ExportForm.REEXPORT, line, source)
            return

        if clause is not None:
            for symbol in self._export_clause_names(clause):
                yield self._export(symbol, ExportForm.NAMED, line)
            return

        form = ExportForm.DEFAULT if is_default else ExportForm.NAMED
        names = self._declaration_names(declaration) if declaration is not None else []
        value = node.child_by_field_name("value")
        if not names and value is not None and value.type in {"class", "function_expression", "function"}:
            # ``export default class Foo {}`` may surface as a named class expression.
            value_name = value.child_by_field_name("name")
            if value_name is not None:
                names = [self.text(value_name)]
        if names:
            for symbol in names:
                yield self._export(symbol, form, line)
        elif is_default or any(child.type == "=" for child in node.children):
            yield self._export("default", ExportForm.DEFAULT, line)

    def _export_clause_names(self, clause: Node) -> Iterator[str]:
        for specifier in clause.named_children:
            if specifier.type != "export_specifier":
                continue
            alias = specifier.child_by_field_name("alias")
            yield self.property_key(alias if alias is not None else specifier.child_by_field_name("name"))

    def _declaration_names(self, declaration: Node) -> List[str]:
        if declaration.type in _NAMED_DECLARATIONS:
            name = declaration.child_by_field_name("name")
            return [self.property_key(name)] if name is not None else []
        if declaration.type in _VARIABLE_DECLARATIONS:
            names = []
            for declarator in declaration.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name = declarator.child_by_field_name("name")
                if name is not None and name.type == "identifier":
                    names.append(self.text(name))
            return names
        if declaration.type == "ambient_declaration":
            names = []
            for child in declaration.named_children:
                names.extend(self._declaration_names(child))
            return names
        return []

    def _export(self, symbol: str, form: ExportForm, line: int, source: Optional[str] = None) -> ExportRecord:
        return ExportRecord(file_id=self.file_id, symbol=symbol, form=form, source=source, line=line)


__all__ = ["ENTITY_DECORATORS", "EntityExtractor", "LIFECYCLE_HOOKS"]
