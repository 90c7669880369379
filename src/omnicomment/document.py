"""Section-slotted comment bodies.

A managed body is one outer marker followed by one slot per declared section,
in declared order::

    <!-- mskelton/omni-comment id="main" -->

    <!-- mskelton/omni-comment start="lint" -->
    ...rendered content...
    <!-- mskelton/omni-comment end="lint" -->

Writers only ever substitute the interior of their own slot, so the slot order
fixed when the comment was created never changes afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Final

from omnicomment.config import SectionConfig


MARKER_NAMESPACE: Final[str] = "mskelton/omni-comment"
DOCUMENT_ID: Final[str] = "main"
DOCUMENT_MARKER: Final[str] = f'<!-- {MARKER_NAMESPACE} id="{DOCUMENT_ID}" -->'
_START_MARKER_RE: Final[re.Pattern[str]] = re.compile(
    rf'<!-- {re.escape(MARKER_NAMESPACE)} start="([^"]*)" -->'
)


class DocumentError(ValueError):
    pass


class MalformedDocumentError(DocumentError):
    pass


class UnknownSectionError(DocumentError):
    def __init__(self, section_id: str) -> None:
        super().__init__(f"Section {section_id!r} has no slot in the comment")
        self.section_id = section_id


class SlotContentError(DocumentError):
    def __init__(self, section_id: str, marker: str) -> None:
        super().__init__(f"Content for section {section_id!r} must not contain {marker}")
        self.section_id = section_id
        self.marker = marker


@dataclass(frozen=True)
class Slot:
    section_id: str
    content: str


@dataclass(frozen=True)
class _SlotSpan:
    section_id: str
    # Offsets of the text strictly between the start and end markers.
    inner_start: int
    inner_end: int


def start_marker(section_id: str) -> str:
    return f'<!-- {MARKER_NAMESPACE} start="{section_id}" -->'


def end_marker(section_id: str) -> str:
    return f'<!-- {MARKER_NAMESPACE} end="{section_id}" -->'


def is_managed(body: str) -> bool:
    return DOCUMENT_MARKER in body


def render_section(content: str, title: str | None = None, collapsed: bool = False) -> str:
    """Render the block stored in a slot.

    Without a title the content is stored as-is. With a title it is wrapped in a
    ``<details>`` block that is open unless ``collapsed`` is set.
    """
    if not title:
        return content
    details_tag = "<details>" if collapsed else "<details open>"
    return f"{details_tag}\n<summary><h2>{title}</h2></summary>\n\n{content}\n\n</details>"


def blank_document(section_config: SectionConfig) -> str:
    blocks = [DOCUMENT_MARKER]
    if section_config.title:
        blocks.append(f"# {section_config.title}")
    if section_config.intro:
        blocks.append(section_config.intro.strip("\n"))
    blocks.extend(_render_slot(section_id, "") for section_id in section_config.sections)
    return "\n\n".join(blocks)


def parse_document(body: str) -> tuple[Slot, ...]:
    return tuple(
        Slot(section_id=span.section_id, content=_slot_content(body, span))
        for span in _scan_slots(body)
    )


def get_section_content(body: str, section_id: str) -> str | None:
    for span in _scan_slots(body):
        if span.section_id == section_id:
            return _slot_content(body, span)
    return None


def replace_section(body: str, section_id: str, new_content: str) -> str:
    for marker in (start_marker(section_id), end_marker(section_id)):
        if marker in new_content:
            raise SlotContentError(section_id, marker)
    for span in _scan_slots(body):
        if span.section_id != section_id:
            continue
        newline = _slot_newline(body[span.inner_start : span.inner_end])
        return (
            body[: span.inner_start]
            + newline
            + new_content
            + newline
            + body[span.inner_end :]
        )
    raise UnknownSectionError(section_id)


def _render_slot(section_id: str, content: str) -> str:
    return f"{start_marker(section_id)}\n{content}\n{end_marker(section_id)}"


def _scan_slots(body: str) -> list[_SlotSpan]:
    if not is_managed(body):
        raise MalformedDocumentError(f"Comment body is missing the {DOCUMENT_MARKER} marker")

    spans: list[_SlotSpan] = []
    seen: set[str] = set()
    position = 0
    while True:
        match = _START_MARKER_RE.search(body, position)
        if match is None:
            break
        section_id = match.group(1)
        end = body.find(end_marker(section_id), match.end())
        if end < 0:
            raise MalformedDocumentError(f"Section {section_id!r} has no end marker")
        if section_id in seen:
            raise MalformedDocumentError(f"Section {section_id!r} appears more than once")
        seen.add(section_id)
        spans.append(_SlotSpan(section_id=section_id, inner_start=match.end(), inner_end=end))
        position = end + len(end_marker(section_id))
    return spans


def _slot_newline(inner: str) -> str:
    # Bodies edited in the GitHub UI come back with CRLF line endings.
    return "\r\n" if inner.startswith("\r\n") else "\n"


def _slot_content(body: str, span: _SlotSpan) -> str:
    inner = body[span.inner_start : span.inner_end]
    newline = _slot_newline(inner)
    if inner.startswith(newline):
        inner = inner[len(newline) :]
    if inner.endswith(newline):
        inner = inner[: -len(newline)]
    return inner
