from importlib import resources

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, HTMLResponse, Response

from webm_dash_live.const import DASH_MANIFEST_MEDIA_TYPE, WEBM_VIDEO_MIME_TYPE
from webm_dash_live.live.session import LiveSession
from webm_dash_live.routes.dependencies import get_session

dash_router = APIRouter()


@dash_router.get("/", response_class=HTMLResponse)
async def player_page(request: Request):
    """Minimal dash.js player pointed at the live manifest."""
    if request.app.state.settings.disable_player_page:
        raise HTTPException(status_code=404, detail="Not Found")
    page = resources.files("webm_dash_live").joinpath("static", "index.html").read_text(encoding="utf-8")
    return HTMLResponse(page)


@dash_router.get("/manifest.mpd")
async def manifest(session: LiveSession = Depends(get_session)):
    """The live manifest, rendered once when the session started."""
    if not session.manifest.rendered:
        raise HTTPException(status_code=404, detail="Stream has not started")
    return Response(content=session.manifest.render(), media_type=DASH_MANIFEST_MEDIA_TYPE)


@dash_router.get("/{filename}")
async def fragment(filename: str, session: LiveSession = Depends(get_session)):
    """Initialization and media fragments. The growing container itself is never served."""
    if not session.catalog.is_published_name(filename):
        raise HTTPException(status_code=404, detail="Not Found")
    return FileResponse(session.catalog.output_dir / filename, media_type=WEBM_VIDEO_MIME_TYPE)
