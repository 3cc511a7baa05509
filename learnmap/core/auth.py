"""Authentication utilities.

There is no login yet. The acting user is taken from the ``X-User-Id``
header and falls back to ``DEFAULT_USER_ID`` so the app works out of the box
for a single local user. The resolved id is passed explicitly to every
service call, which is where ownership is enforced.
"""

from fastapi import Request

from learnmap.core.config import get_settings

USER_ID_HEADER = "X-User-Id"


def get_auth_user(request: Request) -> str:
    """Get the current user ID for HTTP requests.

    Args:
        request: HTTP request object (injected by FastAPI)

    Returns:
        User ID from the ``X-User-Id`` header, or the configured default
    """
    user_id = request.headers.get(USER_ID_HEADER, "").strip()
    return user_id or get_settings().DEFAULT_USER_ID
