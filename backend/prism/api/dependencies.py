"""
Shared FastAPI dependencies.
"""

from fastapi import HTTPException, Request, status

from prism.context import AppContext


def get_app_context(request: Request) -> AppContext:
    """Return the AppContext stored on app.state by the application lifespan."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application context not initialized",
        )
    return context
