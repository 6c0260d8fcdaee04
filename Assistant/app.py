import logging
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from Assistant.services.errors import ChatValidationError, ConversationNotFoundError, ErrorKind, ServiceError
from Assistant.subapps.chat_routes import get_pipeline_settings, router as chat_router
from Assistant.subapps.news_routes import router as news_router


_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_ROOT / ".env", override=False)

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


_configure_logging()
get_pipeline_settings()

app = FastAPI(title="Smart Assistant API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(chat_router)
app.include_router(news_router)


@app.get("/api/health")
def health_check():
    return {"message": "Server is running", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.exception_handler(ChatValidationError)
async def validation_error_handler(request: Request, exc: ChatValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConversationNotFoundError)
async def not_found_handler(request: Request, exc: ConversationNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Conversation not found"})


# AI/search failures keep their category so the client can decide whether to retry
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.warning("service.error: service=%s kind=%s path=%s", exc.service, exc.kind.value, request.url.path)
    headers = {"Retry-After": "30"} if exc.kind is ErrorKind.RATE_LIMIT else None
    return JSONResponse(status_code=exc.http_status, content=exc.to_payload(), headers=headers)


# Internal error details are logged, never returned
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled.error: path=%s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
