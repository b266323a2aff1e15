from .session import router as session_router
from .uploads import router as uploads_router

__all__ = ["session_router", "uploads_router"]
