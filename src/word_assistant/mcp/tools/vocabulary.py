"""MCP tool handlers for the word collection and daily reviews.

Defines six tools:

- ``word_add`` -- look a word up in the dictionary and add it.
- ``word_archive`` -- archive or restore a word.
- ``review_due`` -- today's review batch.
- ``review_answer`` -- record whether a word was remembered.
- ``vocab_stats`` -- collection counts.
- ``word_history`` -- words added in a given week.

Mutations go through the ``WordStore``; the sync engine watches the
store, so every change is pushed after the debounce delay.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import mcp.types as types

from ...core.async_utils import run_sync
from ...scheduler import daily_batch, due_words
from ...vocabulary import (
    add_word,
    record_review,
    review_stats,
    set_archived,
    week_range,
    words_in_date_range,
)
from .errors import format_timestamp, format_word, text_result
from .registry import ToolSpec

if TYPE_CHECKING:
    from ..lifespan import AppContext

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

_WORD_PARAM = {
    "type": "string",
    "description": "The English word (case-insensitive)",
}

VOCABULARY_TOOLS: list[types.Tool] = [
    types.Tool(
        name="word_add",
        description=(
            "Look up an English word (definitions, phonetics, examples) "
            "and add it to the collection. Returns the existing entry if "
            "the word was already added."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {"word": _WORD_PARAM},
            "required": ["word"],
        },
    ),
    types.Tool(
        name="word_archive",
        description=(
            "Archive a word (excluded from reviews, still synced) or "
            "restore it with archived=false."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "word": _WORD_PARAM,
                "archived": {
                    "type": "boolean",
                    "default": True,
                    "description": "false restores an archived word",
                },
            },
            "required": ["word"],
        },
    ),
    types.Tool(
        name="review_due",
        description=(
            "List today's review batch: due words, weakest first, then "
            "most overdue."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 100,
                    "description": "Batch size (default from config)",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="review_answer",
        description=(
            "Record a review outcome. Remembered moves the word one "
            "memory stage up (max 5); forgot resets it to stage 0."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "word": _WORD_PARAM,
                "remembered": {
                    "type": "boolean",
                    "description": "Whether the word was recalled",
                },
            },
            "required": ["word", "remembered"],
        },
    ),
    types.Tool(
        name="vocab_stats",
        description=(
            "Show collection counts: total, active, archived, mastered "
            "and due today."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={"type": "object", "properties": {}, "required": []},
    ),
    types.Tool(
        name="word_history",
        description=(
            "List the words added in one calendar week (Monday to "
            "Sunday). offset_weeks=0 is the current week, -1 the "
            "previous one."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "offset_weeks": {
                    "type": "integer",
                    "maximum": 0,
                    "default": 0,
                    "description": "Weeks back from the current week",
                },
            },
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _require_word(args: dict[str, Any]) -> str:
    word = args.get("word")
    if not isinstance(word, str) or not word.strip():
        raise ValueError("word is required")
    return word


async def _handle_word_add(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    word = _require_word(args)
    existing = ctx.store.find_by_word(word)
    if existing is not None:
        return text_result(
            f"Already in collection:\n\n{format_word(existing)}",
            {"created": False, "word": existing.to_wire()},
        )

    lookup = await run_sync(ctx.dictionary.lookup, word)
    record, created = add_word(ctx.store, lookup)
    if created:
        logger.info("Added word '%s' (%s)", record.word, record.id)
    prefix = "Added" if created else "Already in collection"
    return text_result(
        f"{prefix}:\n\n{format_word(record)}",
        {"created": created, "word": record.to_wire()},
    )


async def _handle_word_archive(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    word = _require_word(args)
    archived = bool(args.get("archived", True))
    record = set_archived(ctx.store, word, archived)
    logger.info("Set archived=%s on '%s'", record.archived, record.word)
    state = "Archived" if record.archived else "Restored"
    return text_result(
        f"{state} '{record.word}'.",
        {"word": record.word, "archived": record.archived},
    )


async def _handle_review_due(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    limit = args.get("limit", ctx.config.daily_limit)
    if not isinstance(limit, int) or isinstance(limit, bool):
        raise ValueError(f"limit must be an integer, got {limit!r}")
    if not 1 <= limit <= 100:
        raise ValueError(f"limit must be between 1 and 100, got {limit}")

    due = due_words(ctx.store.get_all())
    batch = daily_batch(due, limit)
    if not batch:
        text = "No words due for review today."
    else:
        lines = [f"{len(batch)} of {len(due)} due words:"]
        for w in batch:
            lines.append(
                f"- {w.word} (stage {w.memory_stage}, "
                f"due {format_timestamp(w.next_review_date)})"
            )
        text = "\n".join(lines)
    return text_result(
        text,
        {"due": len(due), "batch": [w.to_wire() for w in batch]},
    )


async def _handle_review_answer(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    word = _require_word(args)
    remembered = args.get("remembered")
    if not isinstance(remembered, bool):
        raise ValueError("remembered must be true or false")
    record = record_review(ctx.store, word, remembered)
    logger.info(
        "Reviewed '%s': remembered=%s, stage %d",
        record.word,
        remembered,
        record.memory_stage,
    )
    return text_result(
        f"'{record.word}' is now at stage {record.memory_stage}; "
        f"next review {format_timestamp(record.next_review_date)}.",
        {
            "word": record.word,
            "memory_stage": record.memory_stage,
            "next_review_date": record.next_review_date.isoformat(),
            "review_count": record.review_count,
        },
    )


async def _handle_vocab_stats(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    stats = review_stats(ctx.store.get_all())
    text = "\n".join(f"{k.capitalize()}: {v}" for k, v in stats.items())
    return text_result(text, stats)


async def _handle_word_history(
    ctx: AppContext, args: dict[str, Any]
) -> types.CallToolResult:
    offset = args.get("offset_weeks", 0)
    if not isinstance(offset, int) or isinstance(offset, bool):
        raise ValueError(f"offset_weeks must be an integer, got {offset!r}")
    if offset > 0:
        raise ValueError("offset_weeks cannot point to a future week")

    start, end = week_range(offset)
    words = sorted(
        words_in_date_range(ctx.store.get_all(), start, end),
        key=lambda w: (w.date_added, w.word),
    )
    span = f"{format_timestamp(start)} to {format_timestamp(end)}"
    if not words:
        text = f"No words added {span}."
    else:
        lines = [f"{len(words)} words added {span}:"]
        lines.extend(
            f"- {w.word} ({format_timestamp(w.date_added)})" for w in words
        )
        text = "\n".join(lines)
    return text_result(
        text,
        {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "words": [w.to_wire() for w in words],
        },
    )


VOCABULARY_SPECS: list[ToolSpec] = [
    ToolSpec(tool=tool, handler=handler)
    for tool, handler in zip(
        VOCABULARY_TOOLS,
        [
            _handle_word_add,
            _handle_word_archive,
            _handle_review_due,
            _handle_review_answer,
            _handle_vocab_stats,
            _handle_word_history,
        ],
    )
]
