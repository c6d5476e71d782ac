"""
Shared FastAPI dependencies.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from storage.store import is_safe_name


def get_session(x_session_id: Optional[str] = Header(None, alias="X-Session-ID")) -> str:
    """
    Get session ID from the X-Session-ID header.

    Every tracker and flashcard record is stored under this identifier.

    Args:
        x_session_id: Session ID from X-Session-ID header

    Returns:
        Session ID string

    Raises:
        HTTPException 400: If session ID is not provided or has characters other than
            letters, digits, "_", "-" and "."
    """
    if not x_session_id or not x_session_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Session-ID header is required. Please provide a session identifier.",
            headers={"X-Session-ID": "required"},
        )
    session_id = x_session_id.strip()
    if not is_safe_name(session_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Session-ID may only contain letters, digits, '_', '-' and '.'.",
        )
    return session_id
