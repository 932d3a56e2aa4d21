import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ajl.config import Settings, settings
from ajl.core.errors import register_error_handlers
from ajl.core.middleware import AccessLogMiddleware, RequestIDMiddleware
from ajl.routers import advisor, backup, instances, sinking, templates, v1
from ajl.routers import settings as settings_router
from ajl.services import export_service
from ajl.services.ledger import Ledger
from ajl.store import Store, build_store, store_file

logger = logging.getLogger("ajl")


def create_app(app_settings: Settings = settings, store: Store | None = None) -> FastAPI:
    """Build the application around one injected Store."""

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        backend = store if store is not None else build_store(app_settings)
        ledger = Ledger(backend)
        if store is None and app_settings.daily_backup_enabled:
            export_service.ensure_daily_backup(
                store_file(app_settings), Path(app_settings.backup_dir), ledger.today()
            )
        await backend.initialize()
        application.state.ledger = ledger
        logger.info("Ledger ready store=%s", backend.backend_name)
        yield
        await backend.close()

    application = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
        lifespan=lifespan,
    )

    # last added = outermost; CORS wraps everything
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(AccessLogMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-request-id"],
    )

    register_error_handlers(application)

    application.include_router(templates.router)
    application.include_router(instances.router)
    application.include_router(sinking.router)
    application.include_router(settings_router.router)
    application.include_router(v1.router)
    application.include_router(backup.router)
    application.include_router(advisor.router)

    @application.get("/health")
    async def health_check():
        ledger = getattr(application.state, "ledger", None)
        return {
            "ok": True,
            "data": {
                "status": "ok",
                "app": app_settings.app_name,
                "version": app_settings.app_version,
                "store": ledger.store.backend_name if ledger else None,
            },
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    uvicorn.run("ajl.main:app", host=settings.host, port=settings.port)
