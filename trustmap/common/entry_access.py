"""Accessors over raw transcript records.

A LogEntry is a loosely structured dict: tool input may sit at the top level
(``entry["input"]``) or inside ``tool_use`` items of ``entry["message"]["content"]``.
Every reader in the package goes through these helpers so the search order stays
identical everywhere.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

from .schemas.session import LogEntry


def _message(entry: LogEntry) -> Dict[str, Any]:
    message = entry.get("message")
    return message if isinstance(message, dict) else {}


def message_role(entry: LogEntry) -> Optional[str]:
    """Role of the embedded message, if any."""
    role = _message(entry).get("role")
    return role if isinstance(role, str) else None


def message_content(entry: LogEntry) -> Any:
    """Raw ``message.content`` value (string, list, or None)."""
    return _message(entry).get("content")


def message_usage(entry: LogEntry) -> Dict[str, Any]:
    usage = _message(entry).get("usage")
    return usage if isinstance(usage, dict) else {}


def iter_content_items(entry: LogEntry, item_type: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """Yield dict items of a list-valued ``message.content``, optionally by type."""
    content = message_content(entry)
    if not isinstance(content, list):
        return
    for item in content:
        if not isinstance(item, dict):
            continue
        if item_type is None or item.get("type") == item_type:
            yield item


def iter_tool_uses(entry: LogEntry) -> Iterator[Dict[str, Any]]:
    """Yield nested ``tool_use`` items."""
    return iter_content_items(entry, "tool_use")


def has_tool_content(entry: LogEntry) -> bool:
    """True when message content carries a tool invocation or tool result."""
    return any(
        item.get("type") in ("tool_use", "tool_result")
        for item in iter_content_items(entry)
    )


def extract_tool_name(entry: LogEntry) -> Optional[str]:
    """First tool name: ``tool_name``, ``name``, then nested tool_use items."""
    for key in ("tool_name", "name"):
        value = entry.get(key)
        if value and isinstance(value, str):
            return value

    for item in iter_tool_uses(entry):
        name = item.get("name")
        if name and isinstance(name, str):
            return name

    return None


def extract_tool_names(entry: LogEntry) -> List[str]:
    """All tool names on an entry, top level first."""
    names = []
    for key in ("tool_name", "name"):
        value = entry.get(key)
        if value and isinstance(value, str):
            names.append(value)
            break

    for item in iter_tool_uses(entry):
        name = item.get("name")
        if name and isinstance(name, str):
            names.append(name)

    return names


def extract_tool_input(entry: LogEntry) -> Optional[Dict[str, Any]]:
    """First tool input dict: direct ``input``, then nested tool_use items."""
    direct = entry.get("input")
    if isinstance(direct, dict):
        return direct

    for item in iter_tool_uses(entry):
        tool_input = item.get("input")
        if isinstance(tool_input, dict):
            return tool_input

    return None


def extract_tool_inputs(entry: LogEntry) -> List[Dict[str, Any]]:
    """All tool input dicts on an entry, top level first."""
    inputs = []
    direct = entry.get("input")
    if isinstance(direct, dict):
        inputs.append(direct)

    for item in iter_tool_uses(entry):
        tool_input = item.get("input")
        if isinstance(tool_input, dict):
            inputs.append(tool_input)

    return inputs


def extract_bash_command(entry: LogEntry) -> Optional[str]:
    """
    Extract a shell command from a tool call entry.

    Search order:
    1. ``input.command``
    2. ``input.command`` of nested tool_use items
    3. top-level ``content`` string (tool results)
    4. ``message.content`` string
    """
    direct = entry.get("input")
    if isinstance(direct, dict):
        command = direct.get("command")
        if command and isinstance(command, str):
            return command

    for item in iter_tool_uses(entry):
        tool_input = item.get("input")
        if isinstance(tool_input, dict):
            command = tool_input.get("command")
            if command and isinstance(command, str):
                return command

    content = entry.get("content")
    if isinstance(content, str):
        return content

    msg_content = message_content(entry)
    if isinstance(msg_content, str):
        return msg_content

    return None


def extract_content(entry: LogEntry) -> Optional[str]:
    """
    Extract free text from an entry.

    Top-level ``content`` string, then ``message.content`` string, then the
    ``text`` fragments of a ``message.content`` list joined by newlines.
    """
    content = entry.get("content")
    if isinstance(content, str):
        return content

    msg_content = message_content(entry)
    if isinstance(msg_content, str):
        return msg_content

    if isinstance(msg_content, list):
        return "\n".join(
            str(item["text"])
            for item in msg_content
            if isinstance(item, dict) and "text" in item
        )

    return None


def extract_command_text(entry: LogEntry) -> Optional[str]:
    """Shell command if one is present, otherwise any free text."""
    return extract_bash_command(entry) or extract_content(entry)
