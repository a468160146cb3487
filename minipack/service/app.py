"""FastAPI application serving freshly built bundles."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

try:  # pragma: no cover - optional dependency
    from fastapi import Depends, FastAPI
    from fastapi.responses import JSONResponse, Response
    from pydantic import BaseModel

    _FASTAPI_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - service mode optional
    FastAPI = None  # type: ignore[assignment]
    Depends = None  # type: ignore[assignment]
    JSONResponse = None  # type: ignore[assignment]
    Response = None  # type: ignore[assignment]
    BaseModel = object  # type: ignore[assignment]
    _FASTAPI_AVAILABLE = False

from ..bundler import BundleOutcome, Bundler
from ..config import BundleConfig
from ..errors import BundleError, ReadError
from ..models import Graph, graph_to_dict


class AssetModel(BaseModel):
    identity: int
    path: str
    dependencies: List[str]
    mapping: Dict[str, int]


class GraphResponse(BaseModel):
    entry: str
    assets: List[AssetModel]


class HealthResponse(BaseModel):
    status: str


def create_app(
    entry: str,
    bundler_factory: Optional[Callable[[], Bundler]] = None,
    *,
    config: BundleConfig | None = None,
) -> FastAPI:
    """Create the FastAPI application serving the bundle for ``entry``."""

    if not _FASTAPI_AVAILABLE:  # pragma: no cover - validated via unit tests
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install fastapi uvicorn`."
        )

    def _default_bundler() -> Bundler:
        return Bundler(config)

    factory = bundler_factory or _default_bundler
    app = FastAPI(title="minipack dev server", version="1.0.0")

    async def get_bundler() -> Bundler:
        # A fresh pipeline per request keeps identities starting at 0.
        return factory()

    async def _in_executor(func: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/bundle.js")
    async def bundle_js(bundler: Bundler = Depends(get_bundler)) -> Response:
        def _run_bundle() -> BundleOutcome:
            return bundler.bundle(entry)

        outcome = await _in_executor(_run_bundle)
        return Response(
            content=outcome.code,
            media_type="application/javascript",
            headers={"Cache-Control": "no-store"},
        )

    @app.get("/graph", response_model=GraphResponse)
    async def graph(bundler: Bundler = Depends(get_bundler)) -> GraphResponse:
        def _run_graph() -> Graph:
            return bundler.build_graph(entry)

        result = await _in_executor(_run_graph)
        return GraphResponse(**graph_to_dict(result))

    @app.exception_handler(ReadError)
    async def read_error_handler(_: Any, exc: ReadError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(BundleError)
    async def bundle_error_handler(_: Any, exc: BundleError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    entry: str,
    config: BundleConfig | None = None,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:  # pragma: no cover - integration path
    if not _FASTAPI_AVAILABLE:
        raise RuntimeError(
            "FastAPI is required for service mode. Install it with `pip install fastapi uvicorn`."
        )

    try:
        import uvicorn
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    app = create_app(entry, config=config)
    uvicorn.run(app, host=host, port=port)
