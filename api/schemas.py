from pydantic import BaseModel
from typing import List, Optional


class ChatRequest(BaseModel):
    # Optional so that a missing message is a 400, not a 422
    message: Optional[str] = None
    useRAG: Optional[bool] = False

class ChatResponse(BaseModel):
    reply: str
    source: str

class VectorStatsResponse(BaseModel):
    totalVectors: int
    files: int
    topK: int
    supportedFormats: List[str]

class RagFilesResponse(BaseModel):
    totalFiles: int
    files: List[str]

class ErrorResponse(BaseModel):
    error: str
