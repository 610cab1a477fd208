"""Error response builders and shared formatting for MCP tool handlers.

Errors carry a corrective action so an agent can recover without human
intervention.
"""

from datetime import date, datetime

import mcp.types as types

from ...models import WordRecord


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, validation_error,
            auth_error, offline, server_error, unknown_tool)
        message: Human-readable error description
        corrective_action: Specific action the agent can take

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "Word 'xyz' not found", "Check the spelling.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def text_result(
    text: str, structured: dict | None = None
) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


def format_timestamp(value: datetime | date | None) -> str:
    """Format a timestamp or date for display (``never`` for ``None``)."""
    match value:
        case None:
            return "never"
        case datetime() as dt:
            return dt.strftime("%Y-%m-%d %H:%M UTC")
        case date() as d:
            return d.isoformat()
        case _:
            return str(value)


def format_word(record: WordRecord) -> str:
    """Render a word as a short Markdown block."""
    header = f"**{record.word}**"
    if record.phonetic:
        header += f" {record.phonetic}"
    if record.part_of_speech:
        header += f" _{record.part_of_speech}_"
    lines = [header]
    lines.extend(f"- {d}" for d in record.definitions)
    lines.extend(f"  > {e}" for e in record.examples)
    lines.append(
        f"Stage {record.memory_stage}/5, reviewed {record.review_count}x, "
        f"next review {format_timestamp(record.next_review_date)}"
        + (" (archived)" if record.archived else "")
    )
    return "\n".join(lines)
