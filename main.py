"""RAG server entry point: lifespan wiring, knowledge-base bootstrap, uvicorn."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from services.logger_config import setup_logging
from api.endpoints import register_exception_handlers, router
from services.factory import ServiceContainer, build_services
from services.knowledge_base import initialize_knowledge_base

logger = logging.getLogger(settings.LOGGER_NAME)


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the FastAPI app. With services=None the lifespan wires real
    services from settings; tests pass a container built around doubles.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info("Starting application...")
        container = services or build_services()
        app.state.services = container

        state = await initialize_knowledge_base(
            container.vector_index,
            container.pipeline,
            container.rag_service.public_folder,
            container.rag_service.supported_formats,
        )
        logger.info(
            f"Index {state.value}; embeddings: {settings.EMBEDDING_MODEL}, "
            f"LLM: {settings.LLM_MODEL}"
        )
        yield

        # Let in-flight chat-reply appends finish before exit
        logger.info("Waiting for background tasks...")
        await container.task_runner.drain()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.APP_TITLE,
        version=settings.APP_VERSION,
        lifespan=lifespan
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    register_exception_handlers(app)
    return app


setup_logging()
app = create_app()

if __name__ == "__main__":
    import uvicorn
    logger.info(f"🌐 Running at: http://{settings.HOST}:{settings.PORT}")
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level="info"
    )
