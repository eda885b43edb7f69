"""Routing policies: question text -> response strategy key"""
import logging
from typing import Dict

from langchain_core.prompts import PromptTemplate

from config import settings
from core.interfaces import ILLMService, IResponseTool, IToolRouter
from services.tools import DEFAULT_TOOL_KEY, resolve_tool_key

logger = logging.getLogger(settings.LOGGER_NAME)

ROUTER_PROMPT = PromptTemplate.from_template(
    """You are a tool router.
Decide which tool to use based on the question.

## Available tools:
{tool_list}

Question: {question}
Respond ONLY with the tool name."""
)


class FixedToolRouter(IToolRouter):
    """Always picks the same strategy."""

    def __init__(self, tool_key: str = DEFAULT_TOOL_KEY):
        self.tool_key = tool_key

    async def select(self, question: str, tools: Dict[str, IResponseTool]) -> str:
        return self.tool_key if self.tool_key in tools else DEFAULT_TOOL_KEY


class LLMToolRouter(IToolRouter):
    """
    Asks the LLM to classify the question into one of the registered tools.
    Replies that match no tool resolve to the fallback key.
    """

    def __init__(self, llm: ILLMService, fallback: str = DEFAULT_TOOL_KEY):
        self.llm = llm
        self.fallback = fallback

    async def select(self, question: str, tools: Dict[str, IResponseTool]) -> str:
        tool_list = "\n".join(f"- {key} -> {tool.description}" for key, tool in tools.items())
        prompt = ROUTER_PROMPT.format(tool_list=tool_list, question=question)
        reply = await self.llm.complete(prompt)

        key = resolve_tool_key(reply, tools, fallback="")
        if not key:
            # Chatty replies: take the first word that names a tool
            for word in reply.split():
                key = resolve_tool_key(word, tools, fallback="")
                if key:
                    break
        key = key or self.fallback
        logger.info(f"Router picked '{key}' (raw reply: {reply[:40]!r})")
        return key


def build_router(mode: str, llm: ILLMService, default_tool: str = DEFAULT_TOOL_KEY) -> IToolRouter:
    """Router for TOOL_ROUTING ('llm' or 'fixed')."""
    mode = (mode or "").lower()
    if mode == "llm":
        return LLMToolRouter(llm, fallback=default_tool)
    if mode == "fixed":
        return FixedToolRouter(default_tool)
    raise ValueError(f"Unknown tool routing mode: {mode}")
