from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader, APIKeyQuery

from webm_dash_live.live.session import LiveSession

api_password_query = APIKeyQuery(name="api_password", auto_error=False)
api_password_header = APIKeyHeader(name="api_password", auto_error=False)


def get_session(request: Request) -> LiveSession:
    return request.app.state.session


async def verify_api_key(
    request: Request,
    api_key: str = Security(api_password_query),
    api_key_alt: str = Security(api_password_header),
):
    """
    Verifies the API key for the request.

    Args:
        request (Request): The incoming request, used to reach the app settings.
        api_key (str): The API key to validate.
        api_key_alt (str): The alternative API key to validate.

    Raises:
        HTTPException: If the API key is invalid.
    """
    api_password = request.app.state.settings.api_password
    if not api_password:
        return

    if api_key == api_password or api_key_alt == api_password:
        return

    raise HTTPException(status_code=403, detail="Could not validate credentials")
