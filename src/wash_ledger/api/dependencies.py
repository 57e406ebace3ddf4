"""FastAPI dependencies for dependency injection."""

from collections.abc import Callable, Generator
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session, sessionmaker

from wash_ledger.config import Settings, get_settings
from wash_ledger.database import init_db
from wash_ledger.services.wash_service import WashService


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """Session factory configured on the app, or the global one."""
    factory = getattr(request.app.state, "session_factory", None)
    if factory is None:
        _, factory = init_db()
        request.app.state.session_factory = factory
    return factory


def get_db_session(
    factory: Annotated[sessionmaker[Session], Depends(get_session_factory)],
) -> Generator[Session, None, None]:
    """Get database session dependency."""
    with factory() as session:
        try:
            yield session
        finally:
            session.close()


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_today(request: Request) -> Callable[[], date]:
    return getattr(request.app.state, "today", None) or date.today


def get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> UUID:
    """Extract the acting user's ID from header."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-ID header is required",
        )
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-User-ID format",
        )


def get_wash_service(
    request: Request,
    db: Annotated[Session, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    today: Annotated[Callable[[], date], Depends(get_today)],
) -> WashService:
    emitter = getattr(request.app.state, "emitter", None)
    return WashService(db, settings, emitter=emitter, today=today)


# Type aliases for cleaner dependency injection
DbSession = Annotated[Session, Depends(get_db_session)]
UserId = Annotated[UUID, Depends(get_user_id)]
Service = Annotated[WashService, Depends(get_wash_service)]
Today = Annotated[Callable[[], date], Depends(get_today)]
