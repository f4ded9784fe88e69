"""FastAPI application entrypoint for codeindex service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ConfigError
from ..pipeline import ExtractionPipeline, ExtractionRun
from ..registry import RegistryError


class ExtractRequest(BaseModel):
    path: str
    extractors: Optional[List[str]] = None


class FailureModel(BaseModel):
    kind: str
    subject: str
    error: str


class ExtractResponse(BaseModel):
    root: str
    counts: Dict[str, int]
    units: List[Dict[str, Any]]
    failures: List[FailureModel]
    dependents: Dict[str, List[Dict[str, str]]]


class HealthResponse(BaseModel):
    status: str


def _default_pipeline() -> ExtractionPipeline:
    return ExtractionPipeline()


def _to_response(run: ExtractionRun) -> ExtractResponse:
    return ExtractResponse(
        root=str(run.root),
        counts=run.counts,
        units=[unit.to_dict() for unit in run.units],
        failures=[
            FailureModel(kind=error.kind, subject=error.subject, error=str(error.cause))
            for error in run.failures
        ],
        dependents=run.dependents,
    )


def create_app(
    pipeline_factory: Callable[[], ExtractionPipeline] = _default_pipeline,
) -> FastAPI:
    """Create the FastAPI application exposing extraction runs."""

    app = FastAPI(title="CodeIndex Service", version="1.0.0")

    async def get_pipeline() -> ExtractionPipeline:
        # Lazy-instantiate per request to keep state predictable.
        return pipeline_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/extract", response_model=ExtractResponse)
    async def extract(
        payload: ExtractRequest,
        pipeline: ExtractionPipeline = Depends(get_pipeline),
    ) -> ExtractResponse:
        root = Path(payload.path).expanduser()
        if not root.is_dir():
            raise FileNotFoundError(f"Application root not found: {payload.path}")

        def _run() -> ExtractionRun:
            return pipeline.run(root, enabled=payload.extractors)

        loop = asyncio.get_running_loop()
        run = await loop.run_in_executor(None, _run)
        return _to_response(run)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RegistryError)
    async def registry_error_handler(_: Any, exc: RegistryError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
