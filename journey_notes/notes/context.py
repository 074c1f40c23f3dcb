"""
Plain-text rendering of the notes tree for a chat assistant's context.

Notes are compressed: only the first plain paragraph, a handful of
headings (or one bullet) and a last-modified line are kept per note.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from journey_notes.models.folder import Folder
from journey_notes.models.note import Note

# Above this many key lines a note is summarised by counts instead
MAX_KEY_LINES = 10
# Only the first few key lines are scanned for headings
HEADING_SCAN_LINES = 5


def _format_timestamp(ms: int) -> str:
    dt = datetime.fromtimestamp(ms / 1000)
    return f"{dt:%b} {dt.day}, {dt:%Y %I:%M %p}"


def _first_paragraph(lines: List[str]) -> str:
    for line in lines:
        if line.strip() and not line.startswith(("#", "-", "*")):
            return line
    return ""


def _key_lines(lines: List[str]) -> List[str]:
    """Headings, bullet items and everything inside code fences."""
    key_lines = []
    in_code_block = False
    for raw in lines:
        line = raw.strip()
        if line.startswith("```"):
            in_code_block = not in_code_block
            key_lines.append(line)
        elif in_code_block or line.startswith(("#", "-", "*")):
            key_lines.append(line)
    return key_lines


def _format_note(note: Note, indent: str) -> List[str]:
    out = [f'{indent}  "{note.title}":']

    content = note.content or ""
    while "\n\n\n" in content:
        content = content.replace("\n\n\n", "\n\n")
    lines = content.split("\n")

    paragraph = _first_paragraph(lines)
    if paragraph:
        out.append(f"{indent}    {paragraph}")

    key_lines = _key_lines(lines)
    if len(key_lines) > MAX_KEY_LINES:
        headings = sum(1 for line in key_lines if line.startswith("#"))
        list_items = sum(1 for line in key_lines if line.startswith(("-", "*")))
        code_blocks = sum(1 for line in key_lines if line.startswith("```")) // 2
        out.append(
            f"{indent}    [Contains {headings} headings, {list_items} list items, "
            f"{code_blocks} code blocks]"
        )
    elif key_lines:
        headings = [line for line in key_lines[:HEADING_SCAN_LINES] if line.startswith("#")]
        out.extend(f"{indent}    {line}" for line in headings)
        if not headings:
            bullet = next((line for line in key_lines if line.startswith(("-", "*"))), None)
            if bullet:
                out.append(f"{indent}    {bullet} ...")

    if note.updated_at:
        out.append(f"{indent}    [Last modified: {_format_timestamp(note.updated_at)}]")
    out.append("")
    return out


def format_notes_context(folders: Iterable[Folder], notes: Iterable[Note]) -> str:
    """
    Render the folder hierarchy with compressed notes.

    Folders whose parent is unknown are rendered as roots. Notes whose
    folder is unknown are left out.

    Returns:
        Text starting with "NOTES:", or "NOTES: None" when there are no notes.
    """
    folders = list(folders)
    notes = list(notes)
    if not notes:
        return "NOTES: None\n"

    by_id: Dict[str, Folder] = {f.id: f for f in folders}
    children: Dict[Optional[str], List[Folder]] = {}
    roots: List[Folder] = []
    for folder in folders:
        if folder.parent_id is not None and folder.parent_id in by_id:
            children.setdefault(folder.parent_id, []).append(folder)
        else:
            roots.append(folder)

    notes_by_folder: Dict[str, List[Note]] = {}
    for note in notes:
        if note.folder_id in by_id:
            notes_by_folder.setdefault(note.folder_id, []).append(note)
    for group in notes_by_folder.values():
        group.sort(key=lambda n: n.updated_at, reverse=True)

    lines = ["NOTES:"]
    # (folder, depth) pairs; reversed so siblings come out in order
    stack = [(folder, 1) for folder in reversed(roots)]
    while stack:
        folder, depth = stack.pop()
        indent = "  " * depth
        lines.append(f"{indent}{folder.name}:")
        for note in notes_by_folder.get(folder.id, []):
            lines.extend(_format_note(note, indent))
        stack.extend((child, depth + 1) for child in reversed(children.get(folder.id, [])))

    return "\n".join(lines) + "\n"
