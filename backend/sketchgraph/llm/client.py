"""LangChain ChatAnthropic wrapper."""

from __future__ import annotations

from sketchgraph.config import settings
from sketchgraph.llm.model_router import get_model_for_task
from sketchgraph.llm.prompts import get_system_prompt


class LLMNotConfiguredError(RuntimeError):
    pass


def llm_configured() -> bool:
    return bool(settings.anthropic_api_key)


async def complete(prompt: str, task: str = "enhance", max_tokens: int = 1024) -> str:
    """Single-turn completion for ``task``; returns the raw response text."""
    if not llm_configured():
        raise LLMNotConfiguredError("LLM not configured — set ANTHROPIC_API_KEY in .env")

    from langchain_anthropic import ChatAnthropic
    from langchain_core.messages import HumanMessage, SystemMessage

    llm = ChatAnthropic(
        model=get_model_for_task(task),
        api_key=settings.anthropic_api_key,
        max_tokens=max_tokens,
        temperature=0.1,
    )
    messages: list = [SystemMessage(content=get_system_prompt(task)), HumanMessage(content=prompt)]

    response = await llm.ainvoke(messages)
    content = response.content
    if isinstance(content, list):
        return "".join(block.get("text", "") for block in content if isinstance(block, dict))
    return str(content)
