import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from config import settings
from database import create_db_and_tables
from routers.cash import cash_router
from routers.compliance import compliance_router
from routers.forms import forms_router
from routers.verification import verification_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Compliance On-Ramp API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_event():
        # Refuse to start without an admin address
        settings.validate_startup()
        log.info("Creating database tables...")
        await create_db_and_tables()
        if not settings.telegram_configured:
            log.warning("Telegram credentials not configured; request notifications are disabled")
        log.info("Application ready")

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # malformed bodies are user-correctable, same as any other 400
        log.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid request body"})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(verification_router, prefix="/api")
    app.include_router(cash_router, prefix="/api")
    app.include_router(forms_router, prefix="/api")
    app.include_router(compliance_router, prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
