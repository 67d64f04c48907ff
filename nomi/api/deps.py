"""
FastAPI dependencies (DB session, authentication)
"""
from fastapi import Request, HTTPException, status

from nomi.infrastructure.db.session import get_db as _get_db


# Re-export get_db for convenience
get_db = _get_db


def get_current_user_id(request: Request) -> str:
    """
    Id of the signed-in user from the session cookie.

    Session issuing belongs to the external auth provider; this only reads it.

    Raises:
        HTTPException(401): if nobody is signed in
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return str(user_id)
