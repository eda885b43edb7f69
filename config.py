"""Application configuration loaded from environment / .env"""
from typing import List
from pydantic_settings import BaseSettings
from utils.common import get_log_file_path

class Settings(BaseSettings):
    """Application configuration"""

    # Logger configuration
    LOGGER_NAME: str = "knowledge_chat"
    LOG_FILE_PATH: str = get_log_file_path()
    LOG_LEVEL: str = "INFO"

    # Knowledge base
    PUBLIC_FOLDER: str = "./public"
    VECTOR_STORE_PATH: str = "./vector_store"
    SUPPORTED_FILE_FORMATS: str = ".pdf,.txt,.docx,.csv,.html,.md"
    BATCH_SIZE: int = 5

    # Chunking
    CHUNK_SIZE: int = 500
    CHUNK_OVERLAP: int = 50

    # Retrieval
    TOP_K: int = 5
    CONTEXT_PREVIEW_CHARS: int = 300

    # Model server (Ollama)
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    EMBEDDING_PROVIDER: str = "ollama"  # Options: ollama, sentence-transformers
    EMBEDDING_MODEL: str = "nomic-embed-text"
    LLM_MODEL: str = "llama3.1"
    LLM_TEMPERATURE: float = 0.7
    UPSTREAM_TIMEOUT_SECONDS: float = 60.0

    # Tool routing
    TOOL_ROUTING: str = "llm"  # Options: llm, fixed
    DEFAULT_TOOL: str = "default"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    CORS_ORIGINS: str = "*"

    # App metadata
    APP_TITLE: str = "Knowledge Chat RAG Server"
    APP_VERSION: str = "1.0.0"

    @property
    def supported_formats(self) -> List[str]:
        """Lowercase extensions with a leading dot, in configured order."""
        formats: List[str] = []
        for raw in self.SUPPORTED_FILE_FORMATS.split(","):
            ext = raw.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            if ext not in formats:
                formats.append(ext)
        return formats

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
