"""Knowledge base tool for the voice agent and the analysis chat.

This module provides the `searchKnowledgeBase` tool definition (OpenAI
function calling format), a handler that runs the search, and the formatting
helpers that turn search results into model-consumable text.
"""

from typing import Optional, Sequence

from knowledge_base.models.knowledge import DEFAULT_TOOL_SEARCH_LIMIT
from knowledge_base.models.search import SearchResult
from knowledge_base.services.knowledge_service import KnowledgeService
from knowledge_base.utils.logging import get_logger

logger = get_logger("tool_service")

NO_RESULTS_MESSAGE = "No relevant information found in the knowledge base."

KNOWLEDGE_BASE_TOOLS = [
    {
        "type": "function",
        "function": {
            "name": "searchKnowledgeBase",
            "description": (
                "Search the knowledge base for relevant information. Use this when you need to "
                "reference documentation, guidelines, or ground truth information to answer "
                "questions accurately."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The search query to find relevant information",
                    }
                },
                "required": ["query"],
            },
        },
    }
]


def _source_label(result: SearchResult) -> str:
    return result.metadata.title or result.metadata.source or "Unknown source"


def format_search_results(results: Sequence[SearchResult]) -> str:
    """Render results as the text the voice agent reads back to the model."""
    if not results:
        return NO_RESULTS_MESSAGE

    entries = [
        f"[{i}] {result.content}\n   Source: {_source_label(result)}"
        for i, result in enumerate(results, start=1)
    ]
    return f"Found {len(results)} relevant result(s):\n\n" + "\n\n".join(entries)


def format_search_error(details: str) -> str:
    return f"Error searching knowledge base: {details}"


def build_context_block(results: Sequence[SearchResult]) -> str:
    """
    Render results as a context section for a chat system prompt.

    Each entry is labelled with its source and chunk position so the model can
    cite it. An empty result set yields an explicit "nothing found" line.
    """
    if not results:
        return f"Knowledge base context:\n{NO_RESULTS_MESSAGE}"

    lines = ["Knowledge base context:"]
    for i, result in enumerate(results, start=1):
        meta = result.metadata
        lines.append(
            f"[{i}] ({_source_label(result)}, part {meta.chunk_index + 1}/{meta.total_chunks}, "
            f"score {result.score:.3f})\n{result.content}"
        )
    return "\n\n".join(lines)


class KnowledgeBaseToolHandler:
    """Runs `searchKnowledgeBase` tool calls and returns plain text for the model.

    A failed search is reported as an error line, never as "no results", so the
    agent does not mistake an outage for an empty knowledge base.
    """

    def __init__(self, knowledge_service: KnowledgeService):
        self.knowledge_service = knowledge_service

    async def search(self, query: str, limit: Optional[int] = None) -> str:
        outcome = await self.knowledge_service.search_knowledge_base(
            query, limit or DEFAULT_TOOL_SEARCH_LIMIT
        )
        if not outcome.success:
            logger.warning(f"Knowledge base tool search failed: {outcome.details}")
            return format_search_error(outcome.details or "unknown error")
        return format_search_results(outcome.results)
