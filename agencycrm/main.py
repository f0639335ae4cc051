# agencycrm/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import settings
from .errors import install_error_handlers
from .logging_config import configure_logging

from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.auth import router as auth_router

from .routers.agencies import router as agencies_router
from .routers.agency import router as agency_router
from .routers.users import router as users_router

from .routers.properties import router as properties_router
from .routers.clients import router as clients_router
from .routers.contracts import router as contracts_router
from .routers.mandates import router as mandates_router
from .routers.offers import router as offers_router
from .routers.payments import router as payments_router

from .routers.tasks import router as tasks_router
from .routers.appointments import router as appointments_router
from .routers.communications import router as communications_router
from .routers.documents import router as documents_router
from .routers.saved_searches import router as saved_searches_router

from .routers.analytics import router as analytics_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title=settings.app_name, version=settings.app_version)

    # added last runs first: request id wraps the access log line
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)

    # Tenancy + people
    app.include_router(agencies_router, prefix=API_PREFIX)
    app.include_router(agency_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)

    # Portfolio + deals
    app.include_router(properties_router, prefix=API_PREFIX)
    app.include_router(clients_router, prefix=API_PREFIX)
    app.include_router(contracts_router, prefix=API_PREFIX)
    app.include_router(mandates_router, prefix=API_PREFIX)
    app.include_router(offers_router, prefix=API_PREFIX)
    app.include_router(payments_router, prefix=API_PREFIX)

    # Day-to-day
    app.include_router(tasks_router, prefix=API_PREFIX)
    app.include_router(appointments_router, prefix=API_PREFIX)
    app.include_router(communications_router, prefix=API_PREFIX)
    app.include_router(documents_router, prefix=API_PREFIX)
    app.include_router(saved_searches_router, prefix=API_PREFIX)

    app.include_router(analytics_router, prefix=API_PREFIX)

    app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

    return app


app = create_app()
