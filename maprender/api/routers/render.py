"""Map rendering endpoint."""

import asyncio

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse
from pydantic import ValidationError

from ...config import get_config
from ...models.render_request import RenderRequest, RenderType
from ...services.html_service import render_html
from ...services.png_service import PNGConverter
from ...services.svg_service import MapRenderer

router = APIRouter()


def get_renderer(request: Request) -> MapRenderer:
    """Get the renderer created at startup, or build one from configuration."""
    renderer = getattr(request.app.state, "renderer", None)
    if renderer is None:
        config = get_config()
        renderer = MapRenderer(PNGConverter.from_config(config), config.default_width)
        request.app.state.renderer = renderer
    return renderer


@router.post("/render/{render_type}", response_class=HTMLResponse)
async def render_map(render_type: str, request: Request):
    """Render a map as an html figure containing svg (or png) images."""
    try:
        output = RenderType(render_type)
    except ValueError:
        raise HTTPException(status_code=404, detail="Unknown render type")

    body = await request.body()
    try:
        render_request = RenderRequest.model_validate_json(body)
    except ValidationError as e:
        errors = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
        raise HTTPException(status_code=400, detail=errors)

    html = await asyncio.to_thread(render_html, render_request, get_renderer(request), output)
    return HTMLResponse(content=html)
