from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from mohs.api.routes import api_router
from mohs.core.config import get_settings
from mohs.core.errors import InvalidArgument, MohsError, NotFoundError, TransactionFailure
from mohs.core.logging import init_logging
from mohs.db.reference import seed_cpt_reference
from mohs.db.schema_compat import ensure_schema_compatibility
from mohs.db.session import Base, SessionLocal, engine

settings = get_settings()

_ERROR_STATUS = {
    NotFoundError: 404,
    InvalidArgument: 400,
    TransactionFailure: 500,
}


def _error_response(request: Request, exc: MohsError) -> JSONResponse:
    status_code = _ERROR_STATUS.get(type(exc), 500)
    if status_code >= 500:
        logger.error("{} {} failed: {!r}", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"detail": exc.message, "details": exc.details}),
    )


def create_app() -> FastAPI:
    init_logging()
    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(MohsError, _error_response)

    app.include_router(api_router)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    added = ensure_schema_compatibility(engine)
    if added:
        logger.info("Schema compatibility columns added: {}", ", ".join(added))
    db = SessionLocal()
    try:
        seed_cpt_reference(db)
    finally:
        db.close()
