import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from lifedash.config import Settings
from lifedash.deps import get_settings, get_token_session
from lifedash.errors import UpstreamError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/{provider}")
async def login(provider: str, request: Request) -> Response:
    """Redirect the user to the provider's authorization URL."""
    session = get_token_session(request, provider)
    try:
        auth_url = session.authorization_url()
    except UpstreamError as exc:
        logger.error("%s authorize URL error: %s", session.display_name, exc)
        return JSONResponse({"error": f"Failed to authenticate with {session.display_name}"}, status_code=500)
    return RedirectResponse(auth_url)


@router.get("/{provider}/callback")
def callback(provider: str, request: Request, settings: Settings = Depends(get_settings)):
    """Handle the provider redirect, exchange the code and send the user back to the frontend."""
    session = get_token_session(request, provider)
    params = dict(request.query_params)
    error = params.get("error")
    if error:
        logger.warning("%s authorization denied: %s", session.display_name, error)
        return JSONResponse({"error": error}, status_code=400)

    code = params.get("code")
    if not code:
        return JSONResponse({"error": "Missing authorization code"}, status_code=400)

    try:
        session.exchange_code(code)
    except UpstreamError as exc:
        logger.error("%s auth error: %s", session.display_name, exc)
        return JSONResponse({"error": f"Failed to authenticate with {session.display_name}"}, status_code=500)

    query = urlencode({provider: "connected"})
    return RedirectResponse(f"{settings.frontend_url}?{query}", status_code=302)
