# caseload_calendar/main.py
from fastapi import FastAPI

from caseload_calendar.api.routes import calendar, health, meetings, reports, sessions, templates
from caseload_calendar.core.config import get_settings
from caseload_calendar.core.logging import setup_logging
from caseload_calendar.db.session import init_db


def create_app() -> FastAPI:
    """
    Application factory for the Caseload Calendar service.
    """
    settings = get_settings()
    logger = setup_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Backend service that expands recurring therapy schedules into calendar\n"
            "occurrences, reconciles them with logged sessions, flags student\n"
            "conflicts and applies cancel / reschedule edits to the templates."
        ),
        version="0.1.0",
    )

    # Routers
    app.include_router(health.router)
    app.include_router(templates.router)
    app.include_router(sessions.router)
    app.include_router(meetings.router)
    app.include_router(calendar.router)
    app.include_router(reports.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        await init_db()
        logger.info("%s started (env=%s)", settings.APP_NAME, settings.APP_ENV)

    return app


app = create_app()
