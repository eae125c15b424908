"""Tests for ProjectModelBuilder and AnalysisContext."""

from __future__ import annotations

import pytest

from ngscope.models import Component, Service
from ngscope.project import AnalysisCancelled, AnalysisContext, ProjectModelBuilder
from tests._fixtures.repo_builder import RepoBuilder

_PROJECT = {
    "src/app/app.module.ts": """
        import { NgModule } from '@angular/core';
        import { AppComponent } from './app.component';

        @NgModule({ declarations: [AppComponent], bootstrap: [AppComponent] })
        export class AppModule {}
    """,
    "src/app/app.component.ts": """
        import { Component } from '@angular/core';
        import { DataService } from './data.service';

        @Component({ selector: 'app-root', template: '<main></main>' })
        export class AppComponent {
          constructor(private data: DataService) {}
        }
    """,
    "src/app/data.service.ts": """
        import { Injectable } from '@angular/core';

        @Injectable({ providedIn: 'root' })
        export class DataService {
          fetch(): string[] { return []; }
        }
    """,
    "src/app/util.ts": """
        export function clamp(value: number): number { return value; }
    """,
}


def test_build_collects_files_and_entities(repo_builder: RepoBuilder) -> None:
    repo_builder.write(_PROJECT)

    model = repo_builder.build()

    assert [source.relative_path for source in model.files] == [
        "src/app/app.component.ts",
        "src/app/app.module.ts",
        "src/app/data.service.ts",
        "src/app/util.ts",
    ]
    assert [source.id for source in model.files] == ["file_1", "file_2", "file_3", "file_4"]
    assert [component.name for component in model.components] == ["AppComponent"]
    assert isinstance(model.components[0], Component)
    assert [service.name for service in model.services] == ["DataService"]
    assert isinstance(model.services[0], Service)
    assert [module.name for module in model.modules] == ["AppModule"]
    assert model.components[0].file_path == "src/app/app.component.ts"
    assert model.skipped == ()
    assert model.file_by_id()["file_4"].exports == ("clamp",)
    assert {record.source for record in model.imports} == {
        "@angular/core",
        "./app.component",
        "./data.service",
    }


def test_build_is_idempotent_across_worker_counts(repo_builder: RepoBuilder) -> None:
    repo_builder.write(_PROJECT)

    first = repo_builder.build(workers=1)
    second = repo_builder.build(workers=4)

    assert first == second


def test_unparseable_file_is_skipped(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/good.ts": "export const ok = true;\n",
            "src/broken.ts": "export class {{{ nope\n",
        }
    )

    model = repo_builder.build()

    assert [source.relative_path for source in model.files] == ["src/good.ts"]
    assert model.skipped == ("src/broken.ts",)
    # Ids are assigned at discovery, so the surviving file keeps its slot.
    assert model.files[0].id == "file_2"


def test_undecodable_file_is_skipped(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/good.ts": "export const ok = true;\n"})
    (repo_builder.path() / "src" / "binary.ts").write_bytes(b"\xff\xfe\x00export")

    model = repo_builder.build()

    assert model.skipped == ("src/binary.ts",)


def test_should_continue_cancels(repo_builder: RepoBuilder) -> None:
    repo_builder.write(_PROJECT)

    with pytest.raises(AnalysisCancelled):
        ProjectModelBuilder(workers=1).build(repo_builder.path(), should_continue=lambda: False)


def test_missing_root_propagates(repo_builder: RepoBuilder) -> None:
    with pytest.raises(FileNotFoundError):
        ProjectModelBuilder().build(repo_builder.path() / "nope")


def test_analysis_context_ids_are_stable() -> None:
    context = AnalysisContext()

    assert context.register("a.ts") == "file_1"
    assert context.register("b.ts") == "file_2"
    assert context.register("a.ts") == "file_1"
    assert context.id_for("b.ts") == "file_2"
    assert context.id_for("c.ts") is None
    assert len(context) == 2
