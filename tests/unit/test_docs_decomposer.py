"""Unit tests for the document decomposer."""

import pytest

from backend.app.docs.decomposer import (
    DEFAULT_SECTION_TITLE,
    DecompositionError,
    Line,
    decompose,
    detect_heading,
    ensure_text,
    split_lines,
)
from backend.app.models.docs import Figure

SAMPLE = (
    "Preface text here.\n"
    "# Methods\n"
    "We measured leaves.\n"
    "Figure 2: Leaf cross section\n"
    "\f## Results\n"
    "Yields rose.\n"
)


def test_preamble_becomes_introduction_section() -> None:
    result = decompose("doc-1", SAMPLE)

    titles = [section.title for section in result.sections]
    assert titles == [DEFAULT_SECTION_TITLE, "Methods", "Results"]
    assert [section.order for section in result.sections] == [0, 1, 2]
    assert result.sections[0].content == "Preface text here.\n"


def test_sections_reconstruct_text_exactly() -> None:
    result = decompose("doc-1", SAMPLE)

    assert "".join(section.content for section in result.sections) == SAMPLE


def test_heading_levels_and_pages() -> None:
    result = decompose("doc-1", SAMPLE)

    methods, results = result.sections[1], result.sections[2]
    assert methods.level == 1
    assert results.level == 2
    assert (methods.page_start, methods.page_end) == (1, 1)
    assert (results.page_start, results.page_end) == (2, 2)
    assert result.page_count == 2


def test_chunks_belong_to_exactly_one_section() -> None:
    result = decompose("doc-1", SAMPLE)

    assert [chunk.order for chunk in result.chunks] == list(range(len(result.chunks)))
    for section in result.sections:
        owned = [c.content for c in result.chunks if c.section_order == section.order]
        assert "".join(owned) == section.content
    assert all(chunk.document_id == "doc-1" for chunk in result.chunks)


def test_figure_captions_are_detected() -> None:
    result = decompose("doc-1", SAMPLE)

    assert len(result.figures) == 1
    figure = result.figures[0]
    assert figure.kind == "figure"
    assert figure.page_number == 1
    assert figure.position == 3
    assert figure.caption == "Figure 2: Leaf cross section"
    assert figure.context == "Leaf cross section"


def test_table_caption_kind() -> None:
    result = decompose("doc-1", "Some text.\nTable 4\n")

    assert [(f.kind, f.context) for f in result.figures] == [("table", "Unclassified Figure")]


def test_blank_preamble_merges_into_first_heading() -> None:
    text = "\n\n# Title\nBody text."

    result = decompose("doc-1", text)

    assert len(result.sections) == 1
    assert result.sections[0].title == "Title"
    assert result.sections[0].content == text


def test_text_without_headings_is_one_section() -> None:
    text = "Just some plain text. Nothing else."

    result = decompose("doc-1", text)

    assert len(result.sections) == 1
    assert result.sections[0].title == DEFAULT_SECTION_TITLE
    assert result.sections[0].content == text
    assert len(result.chunks) == 1


def test_empty_text_yields_empty_section_and_no_chunks() -> None:
    result = decompose("doc-1", "")

    assert len(result.sections) == 1
    assert result.sections[0].content == ""
    assert result.chunks == []
    assert result.figures == []


def test_chunk_keywords_are_extracted() -> None:
    result = decompose("doc-1", "Photosynthesis photosynthesis uses light energy.")

    assert result.chunks[0].keywords == ["photosynthesis", "uses", "light", "energy"]


def test_small_chunk_target_splits_sections() -> None:
    text = "First sentence here. Second sentence here. Third sentence here."

    result = decompose("doc-1", text, target_chunk_chars=25)

    assert len(result.chunks) == 3
    assert all(chunk.section_order == 0 for chunk in result.chunks)


def test_failing_figure_extractor_does_not_abort() -> None:
    def broken(document_id: str, lines: list[Line]) -> list[Figure]:
        raise RuntimeError("vision backend down")

    result = decompose("doc-1", SAMPLE, figure_extractor=broken)

    assert result.figures == []
    assert len(result.sections) == 3


def test_decomposition_is_deterministic() -> None:
    assert decompose("doc-1", SAMPLE) == decompose("doc-1", SAMPLE)


def test_utf8_bytes_are_accepted() -> None:
    result = decompose("doc-1", "Café notes.".encode())

    assert result.sections[0].content == "Café notes."


@pytest.mark.parametrize(
    "raw",
    [
        b"\xff\xfe\xfa binary",
        "abc\x00def",
        "\x01\x02\x03abc",
    ],
)
def test_non_text_input_is_rejected(raw: str | bytes) -> None:
    with pytest.raises(DecompositionError):
        ensure_text(raw)


def test_split_lines_tracks_offsets_and_pages() -> None:
    lines = split_lines("one\ntwo\n\fthree")

    assert [(line.offset, line.page, line.text) for line in lines] == [
        (0, 1, "one"),
        (4, 1, "two"),
        (8, 2, "\fthree"),
    ]


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("# Overview", ("Overview", 1)),
        ("### Deep Dive", ("Deep Dive", 2)),
        ("1. Introduction", ("1. Introduction", 1)),
        ("2.1 Methods", ("2.1 Methods", 2)),
        ("Chapter 3 Growth", ("Chapter 3 Growth", 1)),
        ("ABSTRACT", ("ABSTRACT", 1)),
        ("This is a sentence.", None),
        ("Figure 1: A chart", None),
        ("FIG", None),
    ],
)
def test_detect_heading(line: str, expected: tuple[str, int] | None) -> None:
    assert detect_heading(line) == expected
