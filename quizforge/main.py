"""
quizforge API: PDF upload, background processing and rotating Gemini quizzes
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import logging

from quizforge.config import settings
from quizforge.database import init_db
from quizforge.exceptions import QuizForgeError
from quizforge.api import documents, quizzes, analytics
from quizforge.api.errors import status_code_for
from quizforge.services.processing_queue import processing_queue

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

# The study frontend uploads and takes quizzes from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(error: str, message, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "status_code": status_code}
    )


@app.exception_handler(QuizForgeError)
async def quizforge_exception_handler(request: Request, exc: QuizForgeError):
    """Domain errors a router did not translate itself"""
    status_code = status_code_for(exc)
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {str(exc)}")
    return _error_body(type(exc).__name__, str(exc), status_code)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_body("http_error", exc.detail, exc.status_code)


@app.get("/health")
async def health_check():
    """Service status and number of documents waiting for processing"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "processing_queue": len(processing_queue),
    }


app.include_router(documents.router)
app.include_router(quizzes.router)
app.include_router(analytics.router)

# Uploaded PDFs and covers
app.mount("/files", StaticFiles(directory=settings.STORAGE_DIR, check_dir=False), name="files")


@app.on_event("startup")
async def startup_event():
    init_db()
    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set; quiz generation will fail until it is configured")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop background processing and drop queued documents"""
    await processing_queue.shutdown()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("quizforge.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
