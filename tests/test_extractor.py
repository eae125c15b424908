"""Tests for entity, import and export extraction."""

from __future__ import annotations

import textwrap

import pytest

from ngscope.extractor import EntityExtractor, _decode_escape
from ngscope.models import (
    ChangeDetection,
    Component,
    Directive,
    ExportForm,
    FileFacts,
    ImportForm,
    NgModule,
    Pipe,
    Service,
)
from ngscope.parsers import ParseError, TypeScriptParser


def _extract(source: str, path: str = "src/app/thing.ts") -> FileFacts:
    data = textwrap.dedent(source).lstrip("\n").encode("utf-8")
    tree = TypeScriptParser().parse(data, path)
    return EntityExtractor().extract(tree, data, "file_1", path)


def test_component_attributes_and_members() -> None:
    facts = _extract(
        """
        import { Component, Input, Output, EventEmitter, ChangeDetectionStrategy, OnInit } from '@angular/core';
        import { UserService } from './user.service';

        @Component({
          selector: 'app-user-card',
          templateUrl: './user-card.component.html',
          styleUrls: ['./user-card.component.css'],
          changeDetection: ChangeDetectionStrategy.OnPush,
        })
        export class UserCardComponent implements OnInit {
          @Input() user: User;
          @Input('size') width: number;
          @Output() selected = new EventEmitter<User>();

          constructor(private users: UserService, private store: Store<AppState>) {}

          ngOnInit(): void {}

          ngOnDestroy(): void {}

          select(): void {
            this.selected.emit(this.user);
          }
        }
        """
    )

    component = facts.entity
    assert isinstance(component, Component)
    assert component.name == "UserCardComponent"
    assert component.file_id == "file_1"
    assert component.selector == "app-user-card"
    assert component.template is not None
    assert component.template.url == "./user-card.component.html"
    assert component.template.inline is None
    assert component.style_urls == ("./user-card.component.css",)
    assert component.change_detection is ChangeDetection.ON_PUSH
    assert [(b.name, b.alias, b.type_name) for b in component.inputs] == [
        ("user", None, "User"),
        ("width", "size", "number"),
    ]
    assert [b.name for b in component.outputs] == ["selected"]
    assert component.outputs[0].type_name == "EventEmitter"
    assert component.lifecycle_hooks == ("ngOnInit", "ngOnDestroy")
    assert component.dependencies == ("UserService", "Store")
    assert component.complexity_score == 4


def test_inline_template_and_default_change_detection() -> None:
    facts = _extract(
        """
        import { Component } from '@angular/core';

        @Component({
          selector: 'app-hello',
          template: '<p>Hello</p>',
        })
        export class HelloComponent {}
        """
    )

    component = facts.entity
    assert isinstance(component, Component)
    assert component.template is not None
    assert component.template.inline == "<p>Hello</p>"
    assert component.change_detection is ChangeDetection.DEFAULT
    assert component.complexity_score == 1


def test_first_template_key_wins_and_both_are_recorded() -> None:
    facts = _extract(
        """
        @Component({
          template: '<div></div>',
          templateUrl: './x.html',
        })
        export class ConflictComponent {}
        """
    )

    component = facts.entity
    assert isinstance(component, Component)
    assert component.template is not None
    assert component.template.inline == "<div></div>"
    assert component.declared_template_keys == ("template", "templateUrl")


def test_decorator_without_arguments_yields_defaults() -> None:
    facts = _extract(
        """
        @Component()
        export class BareComponent {}
        """
    )

    component = facts.entity
    assert isinstance(component, Component)
    assert component.selector is None
    assert component.template is None
    assert component.inputs == ()


def test_service_methods_exclude_lifecycle_and_constructor() -> None:
    facts = _extract(
        """
        import { Injectable } from '@angular/core';
        import { HttpClient } from '@angular/common/http';

        @Injectable({ providedIn: 'root' })
        export class UserService {
          constructor(private http: HttpClient, private config: core.AppConfig) {}

          ngOnDestroy(): void {}

          load(id: string, force?: boolean): Observable<User> {
            return this.http.get<User>(`/users/${id}`);
          }
        }
        """
    )

    service = facts.entity
    assert isinstance(service, Service)
    assert service.provided_in == "root"
    assert service.dependencies == ("HttpClient", "core.AppConfig")
    assert [method.name for method in service.methods] == ["load"]
    load = service.methods[0]
    assert load.return_type == "Observable<User>"
    assert [(p.name, p.type_name, p.optional) for p in load.parameters] == [
        ("id", "string", False),
        ("force", "boolean", True),
    ]


def test_ngmodule_lists() -> None:
    facts = _extract(
        """
        @NgModule({
          declarations: [AppComponent, HeaderComponent],
          imports: [BrowserModule, RouterModule.forRoot(routes)],
          providers: [{ provide: API_URL, useValue: '/api' }, UserService],
          bootstrap: [AppComponent],
        })
        export class AppModule {}
        """
    )

    module = facts.entity
    assert isinstance(module, NgModule)
    assert module.declarations == ("AppComponent", "HeaderComponent")
    assert module.imports == ("BrowserModule", "RouterModule.forRoot")
    assert module.providers == ("API_URL", "UserService")
    assert module.bootstrap == ("AppComponent",)
    assert module.exports == ()


def test_pipe_and_directive() -> None:
    pipe = _extract(
        """
        @Pipe({ name: 'shorten', pure: false })
        export class ShortenPipe {
          transform(value: string): string { return value; }
        }
        """
    ).entity
    assert isinstance(pipe, Pipe)
    assert pipe.pipe_name == "shorten"
    assert pipe.pure is False

    directive = _extract(
        """
        @Directive({ selector: '[appHighlight]', inputs: ['color: appHighlight'] })
        export class HighlightDirective {
          @Output() changed = new EventEmitter<string>();
          constructor(private el: ElementRef) {}
        }
        """
    ).entity
    assert isinstance(directive, Directive)
    assert directive.selector == "[appHighlight]"
    assert [(b.name, b.alias) for b in directive.inputs] == [("color", "appHighlight")]
    assert [b.name for b in directive.outputs] == ["changed"]
    assert directive.dependencies == ("ElementRef",)


def test_member_decorator_name_and_setter_input() -> None:
    facts = _extract(
        """
        @core.Component({ selector: 'app-x', template: '' })
        export class XComponent {
          @Input()
          set value(v: string) {}
        }
        """
    )

    component = facts.entity
    assert isinstance(component, Component)
    assert [(b.name, b.type_name) for b in component.inputs] == [("value", "string")]


def test_undecorated_class_still_harvests_imports_and_exports() -> None:
    facts = _extract(
        """
        import { helper } from './helper';

        export class Plain {}
        """
    )

    assert facts.entity is None
    assert [(i.symbol, i.source) for i in facts.imports] == [("helper", "./helper")]
    assert [(e.symbol, e.form) for e in facts.exports] == [("Plain", ExportForm.NAMED)]


def test_only_first_decorated_class_becomes_entity() -> None:
    facts = _extract(
        """
        @Injectable()
        export class FirstService {}

        @Injectable()
        export class SecondService {}
        """
    )

    assert isinstance(facts.entity, Service)
    assert facts.entity.name == "FirstService"


def test_import_forms() -> None:
    facts = _extract(
        """
        import Default from './default';
        import * as utils from '../utils';
        import { a, b as c } from './named';
        import './side-effect';

        export function load() {
          return import('./lazy/lazy.module');
        }
        """
    )

    records = [(i.symbol, i.source, i.form) for i in facts.imports]
    assert records == [
        ("Default", "./default", ImportForm.DEFAULT),
        ("utils", "../utils", ImportForm.NAMESPACE),
        ("a", "./named", ImportForm.NAMED),
        ("b", "./named", ImportForm.NAMED),
        ("", "./side-effect", ImportForm.SIDE_EFFECT),
        ("", "./lazy/lazy.module", ImportForm.DYNAMIC),
    ]
    assert facts.imports[0].line == 1
    assert all(record.is_relative for record in facts.imports)


def test_export_forms() -> None:
    facts = _extract(
        """
        export const A = 1, B = 2;
        export interface Shape {}
        export type Id = string;
        export enum Color { Red }
        const hidden = 3;
        export { hidden as visible };
        export { Thing } from './thing';
        export * from './all';
        export default function main() {}
        """
    )

    records = [(e.symbol, e.form, e.source) for e in facts.exports]
    assert records == [
        ("A", ExportForm.NAMED, None),
        ("B", ExportForm.NAMED, None),
        ("Shape", ExportForm.NAMED, None),
        ("Id", ExportForm.NAMED, None),
        ("Color", ExportForm.NAMED, None),
        ("visible", ExportForm.NAMED, None),
        ("Thing", ExportForm.REEXPORT, "./thing"),
        ("*", ExportForm.REEXPORT, "./all"),
        ("main", ExportForm.DEFAULT, None),
    ]


def test_anonymous_default_export() -> None:
    facts = _extract("export default 42;\n")
    assert [(e.symbol, e.form) for e in facts.exports] == [("default", ExportForm.DEFAULT)]


def test_syntax_errors_raise_parse_error() -> None:
    with pytest.raises(ParseError):
        TypeScriptParser().parse(b"export class {{{ broken", "broken.ts")


def test_grammar_selection() -> None:
    assert TypeScriptParser.grammar_for("a/b.ts") == "typescript"
    assert TypeScriptParser.grammar_for("a/b.mts") == "typescript"
    assert TypeScriptParser.grammar_for("a/b.tsx") == "tsx"
    assert TypeScriptParser.grammar_for("a/b.js") == "tsx"


def test_string_literals_decode_escape_sequences() -> None:
    facts = _extract(
        r"""
        import { Component } from '@angular/core';

        @Component({
          'selector': "app-quote",
          template: 'It\'s \x41\u{1F600}\n',
          styleUrls: [`./ab.css`],
        })
        export class QuoteComponent {}
        """
    )

    component = facts.entity
    assert isinstance(component, Component)
    assert component.selector == "app-quote"
    assert component.template is not None
    assert component.template.inline == "It's A\U0001F600\n"
    assert component.style_urls == ("./ab.css",)


def test_ng_on_destroy_cleanup_is_recorded() -> None:
    source = """
        import {{ Component, OnDestroy, OnInit }} from '@angular/core';

        @Component({{ selector: 'app-feed', template: '' }})
        export class FeedComponent implements OnInit, OnDestroy {{
          ngOnInit(): void {{}}
          ngOnDestroy(): void {{ {body} }}
        }}
        """

    tidy = _extract(source.format(body="this.subscription.unsubscribe();")).entity
    idle = _extract(source.format(body="")).entity

    assert isinstance(tidy, Component) and isinstance(idle, Component)
    assert tidy.cleans_up_on_destroy is True
    assert idle.cleans_up_on_destroy is False
    assert idle.lifecycle_hooks == ("ngOnInit", "ngOnDestroy")


@pytest.mark.parametrize(
    ("sequence", "expected"),
    [
        ("\\t", "\t"),
        ("\\x41", "A"),
        ("\\u00e9", "é"),
        ("\\u{1F600}", "\U0001F600"),
        ("\\q", "q"),
        ("\\\n", ""),
        ("\\u{110000}", "\\u{110000}"),
    ],
)
def test_decode_escape(sequence: str, expected: str) -> None:
    assert _decode_escape(sequence) == expected
