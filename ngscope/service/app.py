"""FastAPI application entrypoint for ngscope service mode."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ConfigError
from ..orchestrator import AnalysisRun, Orchestrator
from ..report import render_search, report_data
from ..search import SearchEngine, SearchMode


class AnalyzeRequest(BaseModel):
    path: str
    profile: Optional[str] = None
    categories: Optional[List[str]] = None


class IssueModel(BaseModel):
    rule: str
    severity: str
    message: str
    file_path: str
    line: Optional[int] = None


class RecommendationModel(BaseModel):
    category: str
    title: str
    description: str
    priority: str


class AnalyzeResponse(BaseModel):
    root: str
    profile: str
    summary: Dict[str, int]
    issues: List[IssueModel]
    recommendations: List[RecommendationModel] = []


class GraphRequest(BaseModel):
    path: str
    top_n: Optional[int] = None


class GraphResponse(BaseModel):
    root: str
    graph: Dict[str, Any]
    analysis: Dict[str, Any]


class SearchRequest(BaseModel):
    path: str
    keyword: str
    mode: str = SearchMode.TEXT.value
    case_sensitive: bool = False
    context: int = 0
    file_types: List[str] = []


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing ngscope analyses."""

    app = FastAPI(title="ngscope Service", version="0.1.0")

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    async def _in_executor(func: Callable[[], AnalysisRun]) -> AnalysisRun:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze", response_model=AnalyzeResponse)
    async def analyze_project(
        payload: AnalyzeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> AnalyzeResponse:
        if payload.categories is None:
            run = await _in_executor(lambda: orchestrator.run(payload.path, profile=payload.profile))
        else:
            run = await _in_executor(
                lambda: orchestrator.run(payload.path, profile=payload.profile, categories=payload.categories)
            )
        data = report_data(run)
        return AnalyzeResponse(
            root=data["root"],
            profile=data["profile"],
            summary=data["summary"],
            issues=[
                IssueModel(
                    rule=issue.rule,
                    severity=issue.severity.value,
                    message=issue.message,
                    file_path=issue.file_path,
                    line=issue.line,
                )
                for issue in run.issues
            ],
            recommendations=[
                RecommendationModel(
                    category=item.category,
                    title=item.title,
                    description=item.description,
                    priority=item.priority.value,
                )
                for item in run.recommendations
            ],
        )

    @app.post("/graph", response_model=GraphResponse)
    async def graph_project(
        payload: GraphRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> GraphResponse:
        run = await _in_executor(
            lambda: orchestrator.run(payload.path, top_n=payload.top_n, with_rules=False)
        )
        data = report_data(run)
        return GraphResponse(root=data["root"], graph=data["graph"], analysis=data["analysis"])

    @app.post("/search")
    async def search_project(payload: SearchRequest) -> Dict[str, Any]:
        engine = SearchEngine(
            payload.keyword,
            SearchMode(payload.mode),
            case_sensitive=payload.case_sensitive,
            context=payload.context,
            file_types=payload.file_types,
        )
        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, engine.search, payload.path)
        return json.loads(render_search("json", report))

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(NotADirectoryError)
    async def not_a_directory_handler(_: Any, exc: NotADirectoryError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
