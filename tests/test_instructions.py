import pytest

from pdfbatch.batch.errors import MissingFieldError, SubmissionError
from pdfbatch.batch.instructions import (
    DeleteInstruction,
    MergeInstruction,
    PageRange,
    SplitInstruction,
    count_units,
    output_entry_name,
    parse_instructions,
    parse_operation,
    sanitize_filename,
    source_path,
)
from pdfbatch.core.constants import OperationKind


class TestSanitize:
    def test_keeps_safe_characters(self):
        assert sanitize_filename("report_2024-v1.pdf") == "report_2024-v1.pdf"

    def test_strips_traversal_and_replaces_unsafe(self):
        assert sanitize_filename("../etc/pass wd.pdf") == "_etc_pass_wd.pdf"

    def test_output_name_gets_pdf_extension(self):
        assert output_entry_name("summary") == "summary.pdf"
        assert output_entry_name("Summary.PDF") == "Summary.PDF"

    def test_source_path_is_user_scoped(self):
        assert source_path("u1", "my file.pdf") == "u1/my_file.pdf"


class TestParseOperation:
    def test_known(self):
        assert parse_operation("split") is OperationKind.SPLIT

    def test_unknown(self):
        with pytest.raises(SubmissionError, match="Unknown operation"):
            parse_operation("compress")


class TestParseInstructions:
    def test_merge(self):
        [ins] = parse_instructions("merge", [{"sourceFiles": ["a.pdf", "b.pdf"], "outputName": "ab"}])
        assert ins == MergeInstruction(source_files=("a.pdf", "b.pdf"), output_name="ab")
        assert ins.label == "ab"

    def test_delete_deduplicates_pages(self):
        [ins] = parse_instructions(
            "delete", [{"sourceFile": "a.pdf", "pagesToDelete": [2, 0, 2], "outputName": "out"}],
        )
        assert isinstance(ins, DeleteInstruction)
        assert ins.pages_to_delete == frozenset({0, 2})

    def test_split_synthesizes_missing_names(self):
        [ins] = parse_instructions("split", [{
            "sourceFile": "doc.pdf",
            "pageRanges": [{"start": 0, "end": 1}, {"start": 2, "end": 3}],
            "outputNames": ["first.pdf"],
        }])
        assert isinstance(ins, SplitInstruction)
        assert ins.page_ranges == (PageRange(0, 1), PageRange(2, 3))
        assert ins.output_name_for(0) == "first.pdf"
        assert ins.output_name_for(1) == "doc.pdf_part2.pdf"
        assert ins.label == "doc.pdf"

    def test_rename_label_is_new_name(self):
        [ins] = parse_instructions("rename", [{"oldName": "a.pdf", "newName": "b.pdf"}])
        assert ins.label == "b.pdf"

    @pytest.mark.parametrize("payload", [[], {}, "merge", None])
    def test_rejects_empty_or_non_list(self, payload):
        with pytest.raises(SubmissionError):
            parse_instructions("merge", payload)

    def test_missing_field(self):
        with pytest.raises(MissingFieldError) as info:
            parse_instructions("reorder", [{"sourceFile": "a.pdf", "outputName": "x"}])
        assert info.value.details["missingField"] == "newPageOrder"
        assert info.value.to_dict()["code"] == "MISSING_PARAMS"

    def test_wrong_type(self):
        with pytest.raises(SubmissionError):
            parse_instructions("delete", [{"sourceFile": "a.pdf", "pagesToDelete": ["1"], "outputName": "x"}])

    def test_bad_page_range(self):
        with pytest.raises(SubmissionError):
            parse_instructions("split", [{"sourceFile": "a.pdf", "pageRanges": [{"start": 0}]}])


def test_count_units_counts_merge_sources():
    merges = parse_instructions("merge", [
        {"sourceFiles": ["a", "b", "c"], "outputName": "x"},
        {"sourceFiles": ["d"], "outputName": "y"},
    ])
    renames = parse_instructions("rename", [{"oldName": "a", "newName": "b"}] * 3)
    assert count_units(merges) == 4
    assert count_units(renames) == 3
