"""Response strategies ("tools"): each turns (question, context) into an answer."""
import logging
import re
from typing import Dict, Iterable, List, Optional

from langchain_core.prompts import PromptTemplate

from config import settings
from core.domain import ToolInput
from core.interfaces import ILLMService, IResponseTool

logger = logging.getLogger(settings.LOGGER_NAME)

DEFAULT_TOOL_KEY = "default"
CODING_TOOL_KEY = "coding"

DEFAULT_PROMPT = PromptTemplate.from_template(
    """You are a highly capable AI assistant.

**Instructions:**
1. Analyze the user's question carefully.
2. Answer coding or programming questions with complete, working code.
3. Answer general questions clearly and concisely.
4. Use the provided context if available to improve your answer.

**Context:**
{context}

**User Question:**
{question}

Answer:"""
)

CODING_PROMPT = PromptTemplate.from_template(
    """You are an expert coding assistant.

{context}

**Rules:**
1. Analyze the user's question carefully.
2. Answer coding or programming questions with complete, working code.
3. Support all programming languages.
4. Add explanations before the code.
5. Include inline comments for clarity.

**User Question:**
{question}

Answer:"""
)


class PromptTool(IResponseTool):
    """Formats a strategy-specific template and delegates to the LLM."""

    def __init__(
        self,
        name: str,
        description: str,
        prompt: PromptTemplate,
        llm: ILLMService,
        aliases: Iterable[str] = (),
    ):
        self.name = name
        self.description = description
        self.prompt = prompt
        self.llm = llm
        self.aliases = tuple(aliases)

    async def run(self, tool_input: ToolInput) -> str:
        prompt = self.prompt.format(
            question=tool_input.question,
            context=tool_input.context or "",
        )
        return await self.llm.complete(prompt)


class DefaultTool(PromptTool):
    def __init__(self, llm: ILLMService):
        super().__init__(
            name=DEFAULT_TOOL_KEY,
            description="General questions, explanations, or reasoning.",
            prompt=DEFAULT_PROMPT,
            llm=llm,
            aliases=("defaulttool", "general"),
        )


class CodingTool(PromptTool):
    def __init__(self, llm: ILLMService):
        super().__init__(
            name=CODING_TOOL_KEY,
            description="Programming problems in any language: writing, debugging or explaining code.",
            prompt=CODING_PROMPT,
            llm=llm,
            aliases=("codingtool", "code"),
        )


def build_tool_registry(llm: ILLMService, extra: Optional[List[IResponseTool]] = None) -> Dict[str, IResponseTool]:
    """Registry mapping strategy key -> tool. Must contain DEFAULT_TOOL_KEY."""
    tools: List[IResponseTool] = [DefaultTool(llm), CodingTool(llm)] + list(extra or [])
    return {tool.name: tool for tool in tools}


def _normalize_key(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


def resolve_tool_key(choice: str, tools: Dict[str, IResponseTool], fallback: str = DEFAULT_TOOL_KEY) -> str:
    """
    Map a free-form choice ("codingTool", "Coding_Tool.", "`default`") to a
    registry key by case/punctuation-insensitive match on names and aliases.
    """
    wanted = _normalize_key(choice or "")
    if wanted:
        for key, tool in tools.items():
            names = [key, tool.name, *tool.aliases]
            if wanted in {_normalize_key(n) for n in names}:
                return key
    logger.debug(f"Unrecognised tool choice {choice!r}; using '{fallback}'")
    return fallback
