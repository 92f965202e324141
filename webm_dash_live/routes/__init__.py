from .dash import dash_router
from .ingest import ingest_router
from .session import session_router

__all__ = ["dash_router", "ingest_router", "session_router"]
