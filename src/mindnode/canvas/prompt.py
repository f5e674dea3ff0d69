"""Prompt construction for AI branch generation.

Token counts are estimated with a fixed ratio of four characters per token,
rounded up. This is a deliberate approximation and not a tokenizer call;
budget calculations downstream depend on the exact ratio.
"""

import logging
import math
from collections.abc import Sequence

from pydantic import BaseModel, Field

from mindnode.canvas.exceptions import InvalidArgumentError
from mindnode.canvas.models import ContextEntry
from mindnode.canvas.prompts import (
    CONVERSATION_PATH_HEADER,
    INSTRUCTION,
    ROLE_LABELS,
    SELECTED_TEXT_HEADER,
    SELECTION_INSTRUCTION,
    SYSTEM_PROMPT,
    USER_QUESTION_HEADER,
)

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
DEFAULT_TOKEN_LIMIT = 8000

# Formatting overhead reserved alongside each prompt section.
FORMATTING_RESERVE = 100
SECTION_RESERVE = 50


class PromptOptions(BaseModel):
    token_limit: int = Field(default=DEFAULT_TOKEN_LIMIT, ge=0)
    system_prompt: str = SYSTEM_PROMPT


class PromptResult(BaseModel):
    """Result of prompt construction.

    Attributes:
        prompt: The prompt string, safe to log
        was_truncated: Whether context entries were dropped to fit the budget
        included_nodes: Number of context entries in the prompt
        total_nodes: Number of context entries supplied
    """

    prompt: str
    was_truncated: bool
    included_nodes: int
    total_nodes: int


def estimate_tokens(text: str) -> int:
    """Estimate the token count of ``text`` at four characters per token."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def format_context_entry(entry: ContextEntry) -> str:
    label = ROLE_LABELS.get(entry.type, "Root")
    text = f"{label}: {entry.content}"
    if entry.selection_source:
        text += f'\n[Selected text: "{entry.selection_source}"]'
    return text


def truncate_context_path(
    context_path: Sequence[ContextEntry],
    token_limit: int,
    reserved_tokens: int,
) -> list[ContextEntry]:
    """Drop middle entries of ``context_path`` until it fits the budget.

    The first entry is always kept. The remaining budget is filled from the
    most recent entry backwards, stopping at the first entry that does not
    fit. Kept entries stay in chronological order.
    """
    if not context_path:
        return []

    available = token_limit - reserved_tokens
    costs = [estimate_tokens(format_context_entry(e)) for e in context_path]

    if sum(costs) <= available:
        return list(context_path)

    used = costs[0]
    recent: list[ContextEntry] = []
    for entry, cost in zip(reversed(context_path[1:]), reversed(costs[1:])):
        if used + cost > available:
            break
        recent.append(entry)
        used += cost

    recent.reverse()
    return [context_path[0], *recent]


def build_prompt(
    context_path: Sequence[ContextEntry],
    user_message: str | None = None,
    selection_source: str | None = None,
    options: PromptOptions | None = None,
) -> PromptResult:
    """Build the AI prompt for a context path.

    The prompt is made of the system prompt, the conversation path, the
    text the user selected (when the branch was created from a selection),
    the user's question and a closing instruction.

    Args:
        context_path: Entries ordered from root to the current node
        user_message: Optional question from the user
        selection_source: Selected text that triggered the current branch
        options: Token budget and system prompt overrides

    Returns:
        PromptResult with the prompt and truncation details
    """
    options = options or PromptOptions()

    reserved = estimate_tokens(options.system_prompt) + FORMATTING_RESERVE
    if selection_source:
        reserved += estimate_tokens(selection_source) + SECTION_RESERVE
    if user_message:
        reserved += estimate_tokens(user_message) + SECTION_RESERVE

    kept = truncate_context_path(context_path, options.token_limit, reserved)
    was_truncated = len(kept) < len(context_path)
    if was_truncated:
        logger.debug(
            f"Truncated context path from {len(context_path)} to {len(kept)} entries"
        )

    parts = [options.system_prompt]

    context_section = "\n\n".join(format_context_entry(e) for e in kept)
    if context_section:
        parts.append(f"{CONVERSATION_PATH_HEADER}\n{context_section}")

    if selection_source:
        parts.append(f'{SELECTED_TEXT_HEADER}\n"{selection_source}"')

    if user_message:
        parts.append(f"{USER_QUESTION_HEADER}\n{user_message}")

    instruction = SELECTION_INSTRUCTION if selection_source else INSTRUCTION
    parts.append(f"Instruction: {instruction}")

    return PromptResult(
        prompt="\n\n".join(parts),
        was_truncated=was_truncated,
        included_nodes=len(kept),
        total_nodes=len(context_path),
    )


def build_selection_branch_prompt(
    context_path: Sequence[ContextEntry],
    selection_source: str,
    options: PromptOptions | None = None,
) -> PromptResult:
    """Build the prompt for a branch created from a text selection.

    Raises:
        InvalidArgumentError: If ``selection_source`` is empty or whitespace
    """
    if not selection_source or not selection_source.strip():
        raise InvalidArgumentError(
            "Selection source is required for selection branch prompts"
        )

    return build_prompt(context_path, None, selection_source, options)
