# backend/portal/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .domain.errors import PortalError
from .logging_config import configure_logging

from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware

from .routers.health import router as health_router
from .routers.checklists import router as checklists_router
from .routers.condition_checklists import inspections_router, move_out_checklists_router
from .routers.compliance import router as compliance_router
from .routers.insurance import router as insurance_router
from .routers.tenant import router as tenant_router
from .routers.uploads import router as uploads_router

API_PREFIX = "/api"

log = logging.getLogger("portal.errors")


def _cors_origins() -> list[str]:
    val = getattr(settings, "cors_allow_origins", ["*"])
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s: %s", exc.code.value, exc.message)
    else:
        log.info(
            "%s %s -> %s %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.code.value,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.as_dict()})


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Tenant Compliance Portal", version=settings.app_version)

    # added last runs first: the request id is set before the access log line is written
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PortalError, portal_error_handler)

    # Core
    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(uploads_router, prefix=API_PREFIX)

    # Admin
    app.include_router(checklists_router, prefix=API_PREFIX)
    app.include_router(inspections_router, prefix=API_PREFIX)
    app.include_router(move_out_checklists_router, prefix=API_PREFIX)
    app.include_router(compliance_router, prefix=API_PREFIX)
    app.include_router(insurance_router, prefix=API_PREFIX)

    # Tenant
    app.include_router(tenant_router, prefix=API_PREFIX)

    return app


app = create_app()
