import pytest

from quizforge.utils.chunker import chunk_text, split_units


def test_short_text_is_one_chunk():
    assert list(chunk_text("First sentence. Second one.", 100)) == ["First sentence. Second one."]


def test_units_are_packed_greedily():
    text = "Alpha beta. Gamma delta. Epsilon zeta."
    assert list(chunk_text(text, 25)) == ["Alpha beta. Gamma delta.", "Epsilon zeta."]


def test_chunks_respect_size_and_keep_order():
    text = " ".join(f"Sentence number {i} is here." for i in range(40))
    chunks = list(chunk_text(text, 120))

    assert len(chunks) > 1
    assert all(len(chunk) <= 120 for chunk in chunks)
    assert " ".join(chunks) == text


def test_paragraph_and_sentence_breaks_on_chunk_edges_lose_no_text():
    text = "Overview\n\nAlpha one. Beta two.\n\nGamma three. Delta four.\n\nEpsilon five."
    chunks = list(chunk_text(text, 25))

    assert chunks == [
        "Overview\n\nAlpha one.",
        "Beta two.\n\nGamma three.",
        "Delta four.",
        "Epsilon five.",
    ]
    assert all(len(chunk) <= 25 for chunk in chunks)
    assert "".join("".join(chunks).split()) == "".join(text.split())


def test_oversized_unit_is_not_split():
    long_unit = "x" * 50 + "."
    assert list(chunk_text(long_unit + " Short.", 10)) == [long_unit, "Short."]


def test_paragraph_separator_is_kept_verbatim():
    text = "Para one\n\nPara two"
    assert list(chunk_text(text, 100)) == ["Para one\n\nPara two"]


def test_question_and_exclamation_marks_are_boundaries():
    units = [unit for unit, _ in split_units("Why? Because! Done.")]
    assert units == ["Why?", "Because!", "Done."]


def test_empty_and_whitespace_text():
    assert list(chunk_text("", 100)) == []
    assert list(chunk_text("   \n\n  ", 100)) == []


def test_invalid_size():
    with pytest.raises(ValueError):
        list(chunk_text("Some text.", 0))
