from __future__ import annotations

from collections.abc import Callable

from hypothesis import given, strategies as st
import pytest

from omnicomment.config import SectionConfig
from omnicomment.document import (
    DOCUMENT_MARKER,
    MalformedDocumentError,
    Slot,
    SlotContentError,
    UnknownSectionError,
    blank_document,
    end_marker,
    get_section_content,
    is_managed,
    parse_document,
    render_section,
    replace_section,
    start_marker,
)


_SECTION_IDS = st.from_regex(r"[a-z][a-z0-9_-]{0,11}", fullmatch=True)
_CONTENT = st.text(alphabet="abc XYZ012\n#*-_`|", max_size=40)


def test_render_section_without_title_returns_content() -> None:
    assert render_section("test message") == "test message"
    assert render_section("test message", None, True) == "test message"
    assert render_section("test message", "", False) == "test message"


def test_render_section_with_title_is_open_by_default() -> None:
    assert render_section("test message", "test title") == (
        "<details open>\n"
        "<summary><h2>test title</h2></summary>\n"
        "\n"
        "test message\n"
        "\n"
        "</details>"
    )


def test_render_section_collapsed_uses_closed_details() -> None:
    assert render_section("test message", "T", collapsed=True) == (
        "<details>\n<summary><h2>T</h2></summary>\n\ntest message\n\n</details>"
    )


def test_blank_document_has_one_empty_slot_per_section() -> None:
    body = blank_document(SectionConfig(sections=("test-section",)))

    assert body == (
        '<!-- mskelton/omni-comment id="main" -->\n'
        "\n"
        '<!-- mskelton/omni-comment start="test-section" -->\n'
        "\n"
        '<!-- mskelton/omni-comment end="test-section" -->'
    )


def test_blank_document_includes_title_and_intro() -> None:
    body = blank_document(
        SectionConfig(sections=("a", "b"), title="Build report", intro="Updated by CI.\n")
    )

    assert body == "\n\n".join(
        (
            DOCUMENT_MARKER,
            "# Build report",
            "Updated by CI.",
            f"{start_marker('a')}\n\n{end_marker('a')}",
            f"{start_marker('b')}\n\n{end_marker('b')}",
        )
    )


def test_replace_section_matches_created_comment_layout() -> None:
    body = blank_document(SectionConfig(sections=("test-section",)))

    assert replace_section(body, "test-section", "test message") == (
        '<!-- mskelton/omni-comment id="main" -->\n'
        "\n"
        '<!-- mskelton/omni-comment start="test-section" -->\n'
        "test message\n"
        '<!-- mskelton/omni-comment end="test-section" -->'
    )


def test_replace_section_leaves_siblings_untouched() -> None:
    body = blank_document(SectionConfig(sections=("a", "b", "c"), title="Report"))
    body = replace_section(body, "a", "alpha\n")
    body = replace_section(body, "c", "gamma")

    updated = replace_section(body, "b", "beta")

    assert get_section_content(updated, "a") == "alpha\n"
    assert get_section_content(updated, "b") == "beta"
    assert get_section_content(updated, "c") == "gamma"
    assert updated.replace(f"{start_marker('b')}\nbeta\n", f"{start_marker('b')}\n\n") == body


def test_replace_section_can_clear_content() -> None:
    body = replace_section(blank_document(SectionConfig(sections=("s",))), "s", "old")

    cleared = replace_section(body, "s", "")

    assert cleared == blank_document(SectionConfig(sections=("s",)))
    assert get_section_content(cleared, "s") == ""


def test_replace_section_rejects_unknown_section() -> None:
    body = blank_document(SectionConfig(sections=("a",)))

    with pytest.raises(UnknownSectionError, match="'missing'") as exc_info:
        replace_section(body, "missing", "x")
    assert exc_info.value.section_id == "missing"


@pytest.mark.parametrize("marker_for", [end_marker, start_marker])
def test_replace_section_rejects_content_holding_its_own_markers(
    marker_for: Callable[[str], str],
) -> None:
    body = blank_document(SectionConfig(sections=("a", "b")))
    content = f"x\n{marker_for('a')}\ntail"

    with pytest.raises(SlotContentError, match="'a'") as exc_info:
        replace_section(body, "a", content)
    assert exc_info.value.section_id == "a"
    assert exc_info.value.marker == marker_for("a")


def test_replace_section_accepts_other_sections_markers_as_text() -> None:
    body = blank_document(SectionConfig(sections=("a", "b")))
    content = f"see {end_marker('b')}"

    updated = replace_section(body, "a", content)

    assert get_section_content(updated, "a") == content
    assert get_section_content(updated, "b") == ""


def test_get_section_content_returns_none_for_missing_slot() -> None:
    body = blank_document(SectionConfig(sections=("a",)))
    assert get_section_content(body, "b") is None


def test_parse_document_round_trips_blank_document() -> None:
    body = blank_document(SectionConfig(sections=("z", "a", "m"), intro="hello"))

    assert parse_document(body) == (
        Slot(section_id="z", content=""),
        Slot(section_id="a", content=""),
        Slot(section_id="m", content=""),
    )


def test_parse_document_requires_outer_marker() -> None:
    body = f"{start_marker('a')}\nx\n{end_marker('a')}"

    assert not is_managed(body)
    with pytest.raises(MalformedDocumentError, match="missing"):
        parse_document(body)
    with pytest.raises(MalformedDocumentError):
        get_section_content(body, "a")
    with pytest.raises(MalformedDocumentError):
        replace_section(body, "a", "y")


def test_parse_document_rejects_unterminated_slot() -> None:
    body = f"{DOCUMENT_MARKER}\n\n{start_marker('a')}\nx\n{end_marker('b')}"

    with pytest.raises(MalformedDocumentError, match="no end marker"):
        parse_document(body)


def test_parse_document_rejects_duplicated_slot() -> None:
    slot = f"{start_marker('a')}\nx\n{end_marker('a')}"
    body = f"{DOCUMENT_MARKER}\n\n{slot}\n\n{slot}"

    with pytest.raises(MalformedDocumentError, match="more than once"):
        parse_document(body)


def test_parse_document_handles_crlf_bodies() -> None:
    body = (
        f"{DOCUMENT_MARKER}\r\n\r\n{start_marker('a')}\r\nold\r\n{end_marker('a')}\r\n\r\n"
        f"{start_marker('b')}\r\nkeep\r\n{end_marker('b')}"
    )

    assert get_section_content(body, "a") == "old"
    updated = replace_section(body, "a", "new")
    assert updated == body.replace("\r\nold\r\n", "\r\nnew\r\n")
    assert get_section_content(updated, "b") == "keep"


def test_parse_document_ignores_text_outside_slots() -> None:
    body = (
        f"{DOCUMENT_MARKER}\n\n# Title\n\nfree text\n\n"
        f"{start_marker('a')}\nx\n{end_marker('a')}\ntrailing"
    )

    assert parse_document(body) == (Slot(section_id="a", content="x"),)
    assert replace_section(body, "a", "y").endswith(
        f"{start_marker('a')}\ny\n{end_marker('a')}\ntrailing"
    )


@given(
    sections=st.lists(_SECTION_IDS, min_size=2, max_size=6, unique=True),
    data=st.data(),
)
def test_replace_section_commutes_for_distinct_sections(
    sections: list[str], data: st.DataObject
) -> None:
    first, second = data.draw(
        st.lists(st.sampled_from(sections), min_size=2, max_size=2, unique=True)
    )
    first_content = data.draw(_CONTENT)
    second_content = data.draw(_CONTENT)
    blank = blank_document(SectionConfig(sections=tuple(sections)))

    forward = replace_section(replace_section(blank, first, first_content), second, second_content)
    backward = replace_section(replace_section(blank, second, second_content), first, first_content)

    assert forward == backward
    assert get_section_content(forward, first) == first_content
    assert get_section_content(forward, second) == second_content
    assert [slot.section_id for slot in parse_document(forward)] == sections


@given(sections=st.lists(_SECTION_IDS, min_size=1, max_size=8, unique=True))
def test_parse_blank_document_yields_declared_order(sections: list[str]) -> None:
    slots = parse_document(blank_document(SectionConfig(sections=tuple(sections))))

    assert slots == tuple(Slot(section_id=section_id, content="") for section_id in sections)


@given(
    content=_CONTENT,
    title=st.one_of(st.none(), st.text(alphabet="abc T", min_size=1, max_size=10)),
    collapsed=st.booleans(),
)
def test_rendered_section_reads_back_unchanged(
    content: str, title: str | None, collapsed: bool
) -> None:
    rendered = render_section(content, title, collapsed)
    body = replace_section(blank_document(SectionConfig(sections=("s",))), "s", rendered)

    assert get_section_content(body, "s") == rendered
