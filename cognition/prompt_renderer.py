from __future__ import annotations

from typing import Dict, List, Sequence

SYSTEM_PROMPT = (
    "You are a helpful assistant that provides analysis of spreadsheet data. "
    "Format your responses using markdown where appropriate. Use tables for tabular data, "
    "code blocks for code or structured content, and headings for organization."
)

GROUNDING_RULES = (
    "Use the data provided above to answer the user's question. Format your response with "
    "markdown. If the answer isn't in the data, say you don't have that information and "
    "provide a general response."
)

UNGROUNDED_NOTE = (
    "I don't have specific data to reference for this query. I'll respond based on general "
    "knowledge. Format your response with markdown where appropriate."
)


def render_context_block(context: Sequence[str]) -> str:
    return "\n\n".join(context)


def render_chat_messages(prompt: str, context: Sequence[str] | None = None) -> List[Dict[str, str]]:
    messages: List[Dict[str, str]] = [{"role": "system", "content": SYSTEM_PROMPT}]

    if context:
        messages.append(
            {
                "role": "system",
                "content": "Here is the relevant data from the user's spreadsheets:\n\n"
                + render_context_block(context),
            }
        )
        messages.append({"role": "system", "content": GROUNDING_RULES})
    else:
        messages.append({"role": "system", "content": UNGROUNDED_NOTE})

    messages.append({"role": "user", "content": prompt})
    return messages
