"""
HTTP surface of the RAG server.

POST /chat          -> {reply, source}
GET  /vector-stats  -> index and knowledge-base counters
GET  /rag-files     -> files currently in the knowledge-base folder

Every error body is {"error": "..."}.
"""
import logging

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    RagFilesResponse,
    VectorStatsResponse,
)
from config import settings
from core.exceptions import UpstreamFailure, UpstreamTimeout
from services.factory import get_rag_service
from services.rag_service import RAGService

logger = logging.getLogger(settings.LOGGER_NAME)

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ---------- Chat ----------
@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat_endpoint(
    chat_request: ChatRequest,
    rag_service: RAGService = Depends(get_rag_service),
):
    message = chat_request.message or ""
    if not message.strip():
        return _error(400, "Message is required.")

    result = await rag_service.answer(message, use_retrieval=bool(chat_request.useRAG))
    return ChatResponse(reply=result.answer, source=result.strategy_used)


# ---------- Stats ----------
@router.get("/vector-stats", response_model=VectorStatsResponse)
async def vector_stats_endpoint(
    rag_service: RAGService = Depends(get_rag_service),
) -> VectorStatsResponse:
    return VectorStatsResponse(**await rag_service.vector_stats())


# ---------- Knowledge-base files ----------
@router.get(
    "/rag-files",
    response_model=RagFilesResponse,
    responses={500: {"model": ErrorResponse}},
)
async def rag_files_endpoint(
    rag_service: RAGService = Depends(get_rag_service),
):
    try:
        files = await rag_service.list_files()
    except OSError as e:
        logger.error(f"Failed to fetch RAG files: {e}")
        return _error(500, "Failed to fetch RAG files")
    return RagFilesResponse(totalFiles=len(files), files=files)


# ---------- Error mapping ----------
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
    return _error(400, "Invalid request body.")


async def _upstream_error_handler(request: Request, exc: UpstreamFailure) -> JSONResponse:
    status_code = 504 if isinstance(exc, UpstreamTimeout) else 502
    logger.error(f"{request.url.path} failed upstream: {exc}")
    return _error(status_code, exc.message)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return _error(500, str(exc) or exc.__class__.__name__)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(UpstreamFailure, _upstream_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
