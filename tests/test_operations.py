import io

import pytest
from pypdf import PdfReader

from conftest import make_pdf, page_widths, upload
from pdfbatch.batch.document_engine import DocumentOpEngine
from pdfbatch.batch.errors import (
    DocumentLoadError,
    NoValidPagesError,
    RetryExhaustedError,
    SourceNotFoundError,
)
from pdfbatch.batch.instructions import (
    DeleteInstruction,
    MergeInstruction,
    PageRange,
    RenameInstruction,
    ReorderInstruction,
    SplitInstruction,
)
from pdfbatch.batch.operations.delete_pages import remaining_pages
from pdfbatch.batch.operations.rename import title_from_name
from pdfbatch.batch.operations.split import clamped_range


@pytest.fixture
def engine(ctx):
    return DocumentOpEngine(ctx)


# ─── Merge ────────────────────────────────────────────────

async def test_merge_concatenates_in_order(engine, uploads):
    upload(uploads, "a.pdf", make_pdf(2, base_width=100))
    upload(uploads, "b.pdf", make_pdf(1, base_width=200))

    outcome = await engine.execute(MergeInstruction(("b.pdf", "a.pdf"), "combined"))

    [output] = outcome.outputs
    assert output.name == "combined.pdf"
    assert page_widths(output.data) == [200, 100, 101]
    assert outcome.sub_errors == []


async def test_merge_with_missing_source_is_partial(engine, uploads):
    upload(uploads, "a.pdf", make_pdf(1))
    upload(uploads, "c.pdf", make_pdf(1))

    outcome = await engine.execute(MergeInstruction(("a.pdf", "b.pdf", "c.pdf"), "out.pdf"))

    assert len(page_widths(outcome.outputs[0].data)) == 2
    assert outcome.sub_errors == ["Output out.pdf: missing 1 file(s): b.pdf"]


async def test_merge_reports_oversized_source(ctx, uploads):
    ctx.max_file_size = 10_000
    upload(uploads, "big.pdf", make_pdf(1) + b"\0" * 20_000)
    upload(uploads, "ok.pdf", make_pdf(1))

    outcome = await DocumentOpEngine(ctx).execute(MergeInstruction(("big.pdf", "ok.pdf"), "m"))

    assert outcome.sub_errors == ["Output m.pdf: missing 1 file(s): big.pdf (exceeds size limit)"]


async def test_merge_skips_unreadable_source(engine, uploads):
    upload(uploads, "junk.pdf", b"not a pdf at all")
    upload(uploads, "ok.pdf", make_pdf(3))

    outcome = await engine.execute(MergeInstruction(("junk.pdf", "ok.pdf"), "m"))

    assert len(page_widths(outcome.outputs[0].data)) == 3
    assert "junk.pdf" in outcome.sub_errors[0]


async def test_merge_without_any_pages_fails(engine):
    with pytest.raises(NoValidPagesError):
        await engine.execute(MergeInstruction(("x.pdf", "y.pdf"), "m"))


async def test_merge_retries_transient_fetch_errors(engine, uploads):
    upload(uploads, "a.pdf", make_pdf(1))
    uploads.failures["user-1/a.pdf"] = 2

    outcome = await engine.execute(MergeInstruction(("a.pdf",), "m"))

    assert outcome.sub_errors == []
    assert uploads.fetch_calls.count("user-1/a.pdf") == 3


# ─── Delete ───────────────────────────────────────────────

def test_remaining_pages_removes_highest_first():
    assert remaining_pages(5, {2, 0, 4}) == [1, 3]
    assert remaining_pages(3, {7, -1}) == [0, 1, 2]


async def test_delete_pages(engine, uploads):
    upload(uploads, "doc.pdf", make_pdf(5))

    outcome = await engine.execute(DeleteInstruction("doc.pdf", frozenset({2, 0, 4}), "trimmed"))

    assert page_widths(outcome.outputs[0].data) == [101, 103]


async def test_delete_missing_source_is_hard_failure(engine):
    with pytest.raises(SourceNotFoundError, match="File not found: doc.pdf"):
        await engine.execute(DeleteInstruction("doc.pdf", frozenset({0}), "x"))


async def test_unreadable_source_is_hard_failure(engine, uploads):
    upload(uploads, "doc.pdf", b"%PDF-garbage")
    with pytest.raises(DocumentLoadError):
        await engine.execute(DeleteInstruction("doc.pdf", frozenset({0}), "x"))


async def test_fetch_exhaustion_is_hard_failure(engine, uploads):
    upload(uploads, "doc.pdf", make_pdf(1))
    uploads.failures["user-1/doc.pdf"] = 10
    with pytest.raises(RetryExhaustedError):
        await engine.execute(DeleteInstruction("doc.pdf", frozenset(), "x"))


# ─── Split ────────────────────────────────────────────────

async def test_split_ranges_and_out_of_bounds(engine, uploads):
    upload(uploads, "doc.pdf", make_pdf(4))

    outcome = await engine.execute(SplitInstruction(
        source_file="doc.pdf",
        page_ranges=(PageRange(0, 1), PageRange(3, 9), PageRange(10, 12)),
        output_names=("front.pdf",),
    ))

    names = [o.name for o in outcome.outputs]
    assert names == ["front.pdf", "doc.pdf_part2.pdf", "doc.pdf_part3.pdf"]
    assert page_widths(outcome.outputs[0].data) == [100, 101]
    assert page_widths(outcome.outputs[1].data) == [103]
    assert page_widths(outcome.outputs[2].data) == []
    assert outcome.sub_errors == []


async def test_split_isolates_failing_range(engine, uploads, monkeypatch):
    upload(uploads, "doc.pdf", make_pdf(3))
    from pdfbatch.batch import pdf
    real_serialize = pdf.serialize
    calls = 0

    def flaky_serialize(writer):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("write failed")
        return real_serialize(writer)

    monkeypatch.setattr(pdf, "serialize", flaky_serialize)

    outcome = await engine.execute(SplitInstruction(
        "doc.pdf", (PageRange(0, 0), PageRange(1, 2)), ("one.pdf", "two.pdf"),
    ))

    assert [o.name for o in outcome.outputs] == ["two.pdf"]
    assert outcome.sub_errors == ["Failed to build one.pdf: write failed"]


def test_clamped_range_bounds():
    assert list(clamped_range(PageRange(-3, 1), 4)) == [0, 1]
    assert list(clamped_range(PageRange(2, 2_147_483_647), 4)) == [2, 3]
    assert list(clamped_range(PageRange(5, 9), 4)) == []


async def test_split_huge_range_is_clamped_to_page_count(engine, uploads, monkeypatch):
    upload(uploads, "doc.pdf", make_pdf(2))
    visited = []
    from pdfbatch.batch import pdf
    real_is_valid = pdf.is_valid_index

    def counting_is_valid(index, count):
        visited.append(index)
        return real_is_valid(index, count)

    monkeypatch.setattr(pdf, "is_valid_index", counting_is_valid)

    outcome = await engine.execute(SplitInstruction(
        "doc.pdf", (PageRange(0, 2_147_483_647),), ("all.pdf",),
    ))

    assert page_widths(outcome.outputs[0].data) == [100, 101]
    assert visited == [0, 1]


# ─── Reorder ──────────────────────────────────────────────

async def test_reorder_with_duplicates_and_out_of_range(engine, uploads):
    upload(uploads, "doc.pdf", make_pdf(3))

    outcome = await engine.execute(ReorderInstruction("doc.pdf", (2, 0, 0, 5), "shuffled"))

    assert page_widths(outcome.outputs[0].data) == [102, 100, 100]


# ─── Rename ───────────────────────────────────────────────

def test_title_from_name():
    assert title_from_name(" Annual Report.pdf") == "Annual Report"
    assert title_from_name("notes") == "notes"


async def test_rename_copies_pages_and_sets_metadata(engine, uploads):
    upload(uploads, "old.pdf", make_pdf(3))

    outcome = await engine.execute(RenameInstruction("old.pdf", "Annual Report.pdf"))

    [output] = outcome.outputs
    assert output.name == "Annual_Report.pdf"
    assert page_widths(output.data) == [100, 101, 102]
    meta = PdfReader(io.BytesIO(output.data)).metadata
    assert meta.title == "Annual Report"
    assert meta.producer == "Bulk PDF Processor"
    assert meta.creator == "Bulk PDF Processor"


async def test_rename_is_idempotent_on_page_content(engine, uploads):
    upload(uploads, "a.pdf", make_pdf(2))
    first = await engine.execute(RenameInstruction("a.pdf", "b.pdf"))
    upload(uploads, "b.pdf", first.outputs[0].data)

    second = await engine.execute(RenameInstruction("b.pdf", "b.pdf"))

    assert page_widths(second.outputs[0].data) == page_widths(first.outputs[0].data) == [100, 101]


async def test_rename_survives_metadata_failure(engine, uploads, monkeypatch):
    upload(uploads, "a.pdf", make_pdf(1))
    from pdfbatch.batch import pdf

    def broken(*args, **kwargs):
        raise ValueError("bad metadata")

    monkeypatch.setattr(pdf, "set_metadata", broken)

    outcome = await engine.execute(RenameInstruction("a.pdf", "b.pdf"))
    assert page_widths(outcome.outputs[0].data) == [100]
