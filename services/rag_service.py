import asyncio
import logging
from typing import Any, Dict, List, Optional

from config import settings
from core.domain import CHAT_SOURCE, AnswerResult, ToolInput
from core.exceptions import IndexNotReady, RAGError
from core.interfaces import IResponseTool, IToolRouter, IVectorIndex
from infrastructure.file_discovery import discover_files
from services.async_processor import BackgroundTaskRunner
from services.tools import DEFAULT_TOOL_KEY
from utils.common import truncate_preview

logger = logging.getLogger(settings.LOGGER_NAME)


class RAGService:
    """
    Answer orchestrator: retrieve context, route to a strategy, call the LLM,
    then write the answer back into the index in the background.
    """

    def __init__(
        self,
        vector_index: IVectorIndex,
        tools: Dict[str, IResponseTool],
        router: IToolRouter,
        task_runner: BackgroundTaskRunner,
        top_k: int = settings.TOP_K,
        preview_chars: int = settings.CONTEXT_PREVIEW_CHARS,
        public_folder: str = settings.PUBLIC_FOLDER,
        supported_formats: Optional[List[str]] = None,
    ):
        if DEFAULT_TOOL_KEY not in tools:
            raise ValueError(f"Tool registry must contain '{DEFAULT_TOOL_KEY}'")
        self.vector_index = vector_index
        self.tools = tools
        self.router = router
        self.task_runner = task_runner
        self.top_k = top_k
        self.preview_chars = preview_chars
        self.public_folder = public_folder
        self.supported_formats = supported_formats or settings.supported_formats

    async def retrieve_context(self, question: str, use_retrieval: bool) -> str:
        """Joined previews of the top-k records, or "" when retrieval is off/unavailable."""
        if not use_retrieval:
            return ""
        try:
            results = await self.vector_index.query(question, self.top_k)
        except IndexNotReady:
            logger.info("Index not ready; answering without context.")
            return ""
        return "\n\n".join(
            truncate_preview(r.record.content, self.preview_chars) for r in results
        )

    async def answer(self, question: str, use_retrieval: bool = False) -> AnswerResult:
        """
        Raises:
            UpstreamFailure / UpstreamTimeout: embedding or LLM call failed
        """
        context = await self.retrieve_context(question, use_retrieval)

        key = await self.router.select(question, self.tools)
        tool = self.tools.get(key)
        if tool is None:
            logger.warning(f"Router returned unknown tool '{key}'; using '{DEFAULT_TOOL_KEY}'")
            key, tool = DEFAULT_TOOL_KEY, self.tools[DEFAULT_TOOL_KEY]

        reply = await tool.run(ToolInput(question=question, context=context))

        self.task_runner.submit(self._append_reply(reply), name="append-chat-reply")
        return AnswerResult(answer=reply, strategy_used=key)

    async def _append_reply(self, reply: str) -> None:
        """Best effort: failures are logged and never reach the caller."""
        try:
            added = await self.vector_index.append(reply, CHAT_SOURCE)
        except IndexNotReady:
            logger.debug("Index not ready; chat reply not stored.")
            return
        except RAGError as e:
            logger.warning(f"Could not store chat reply: {e}")
            return
        if added:
            logger.info("Chat reply added to the vector index.")

    async def list_files(self) -> List[str]:
        return await asyncio.to_thread(discover_files, self.public_folder, self.supported_formats)

    async def vector_stats(self) -> Dict[str, Any]:
        stats = self.vector_index.stats()
        files = await self.list_files()
        return {
            "totalVectors": stats.record_count,
            "files": len(files),
            "topK": stats.top_k,
            "supportedFormats": stats.supported_formats,
        }
