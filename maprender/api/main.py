"""maprender API - FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..config import configure_logging, get_config
from ..services.png_service import PNGConverter
from ..services.svg_service import MapRenderer
from .routers import analyse, render

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    config = get_config()
    configure_logging(config.log_level)
    app.state.renderer = MapRenderer(PNGConverter.from_config(config), config.default_width)
    if app.state.renderer.png_converter is None:
        logger.info("No png conversion command configured, png output disabled")

    yield


app = FastAPI(
    title="maprender API",
    description="Renders choropleth maps from topojson and suggests natural breaks for csv data",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(render.router, tags=["render"])
app.include_router(analyse.router, tags=["analyse"])


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as 400 Bad Request."""
    errors = [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]
    return JSONResponse(status_code=400, content={"detail": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error processing %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    config = get_config()
    return {
        "status": "healthy",
        "version": "0.1.0",
        "png_enabled": bool(config.png_command),
    }
