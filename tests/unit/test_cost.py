import pytest

from docvault.utils.cost import KIB, MIB, estimate_processing_cost, exceeds_safe_threshold


@pytest.mark.parametrize(
    "size, filename, pages, complexity",
    [
        (0, "empty.pdf", 1, "small"),
        (1, "tiny.pdf", 1, "small"),
        (9 * 50 * KIB, "nine.pdf", 9, "small"),
        (10 * 50 * KIB, "ten.pdf", 10, "medium"),
        (50 * 30 * KIB, "fifty.docx", 50, "large"),
        (30 * KIB + 1, "two.doc", 2, "small"),
        (100 * 20 * KIB, "hundred.txt", 100, "very_large"),
    ],
)
def test_estimate_pages_and_complexity(size, filename, pages, complexity):
    estimate = estimate_processing_cost(size, filename)
    assert estimate.estimated_pages == pages
    assert estimate.complexity == complexity


def test_large_documents_carry_a_message():
    small = estimate_processing_cost(KIB, "a.pdf")
    large = estimate_processing_cost(60 * 50 * KIB, "a.pdf")
    very_large = estimate_processing_cost(200 * 50 * KIB, "a.PDF")

    assert not small.is_large_document and small.processing_message is None
    assert large.is_large_document
    assert large.processing_message == "This document may take longer to process."
    assert very_large.processing_message == "This is a large document and may take longer to process."
    assert very_large.to_dict()["complexity"] == "very_large"


def test_safe_threshold():
    assert not exceeds_safe_threshold(50 * MIB)
    assert exceeds_safe_threshold(50 * MIB + 1)
