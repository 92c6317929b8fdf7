"""FastAPI dependencies for wizard sessions and admin access.

Dependencies:
  session_pointer     → SessionPointer from the bearer session token (may be empty)
  require_session     → subject ID from the bearer token, or 401
  require_admin       → admin token claims, or 401/403
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth.jwt import decode_token, subject_id_from_session_token
from app.middleware.exceptions import SessionResolutionError
from app.services.wizard_machine import SessionPointer

bearer_scheme = HTTPBearer(auto_error=False)


def _token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    return credentials.credentials if credentials else None


async def session_pointer(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> SessionPointer:
    """Build the wizard's session pointer from the request.

    A missing or invalid token yields an empty pointer rather than an
    error: an unresolvable session simply means "start at identity".
    """
    return SessionPointer(subject_id_from_session_token(_token(credentials)))


async def require_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    subject_id = subject_id_from_session_token(_token(credentials))
    if not subject_id:
        raise SessionResolutionError()
    return subject_id


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    token = _token(credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if payload.get("type") != "admin" or payload.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return payload
