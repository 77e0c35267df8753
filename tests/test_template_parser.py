"""
Unit Tests — Template Parser
============================
Metadata decoding, section partitioning, duplicate detection and
error reporting for parse_template().

Pure text in, Template out. No filesystem required.
"""
import pytest
from pydantic import ValidationError

from app.core.errors import DuplicateSectionError, MalformedMetadataError
from app.parser.template_parser import parse, parse_metadata, parse_sections, parse_template


BUG_REPORT = """---
name: "Bug report"
about: Create a report to help us improve
title: ''
labels: "bug"
assignees: ''
---

Preamble text that is not a section.

## Operating system
Which OS are you running?

## Rust version
Output of `rustc --version`

## Observed result or behaviour
What happened?

## Expected result or behaviour
What should have happened?
"""


def _doc(metadata: str, body: str = "## Section\nprompt\n") -> str:
    return f"---\n{metadata}\n---\n{body}"


# ===========================================================================
# 1. Metadata
# ===========================================================================
class TestMetadata:

    def test_bug_report_metadata(self):
        meta = parse_template(BUG_REPORT).metadata
        assert meta.name == "Bug report"
        assert meta.about == "Create a report to help us improve"
        assert meta.title == ""
        assert meta.labels == ("bug",)
        assert meta.assignees == ()

    def test_absent_optional_keys_default_to_empty(self):
        meta = parse_template(_doc("name: Minimal")).metadata
        assert meta.about == ""
        assert meta.title == ""
        assert meta.labels == ()
        assert meta.assignees == ()

    def test_flow_list_labels(self):
        meta = parse_template(_doc('name: x\nlabels: [bug, "needs triage"]')).metadata
        assert meta.labels == ("bug", "needs triage")

    def test_comma_separated_labels(self):
        meta = parse_template(_doc("name: x\nlabels: bug, triage ,\nassignees: alice,bob")).metadata
        assert meta.labels == ("bug", "triage")
        assert meta.assignees == ("alice", "bob")

    def test_block_list_labels(self):
        meta = parse_template(_doc("name: x\nlabels:\n  - bug\n  - triage\ntitle: T")).metadata
        assert meta.labels == ("bug", "triage")
        assert meta.title == "T"

    def test_unrecognized_keys_are_ignored(self):
        meta = parse_template(_doc("name: x\nprojects: [octo/1]\ntype: Bug")).metadata
        assert meta.name == "x"

    def test_comments_and_blank_lines_are_skipped(self):
        meta = parse_template(_doc("# chooser entry\n\nname: x\n")).metadata
        assert meta.name == "x"

    def test_unquoted_colon_in_value_is_text(self):
        meta = parse_template(_doc("name: x\nabout: Report: anything odd")).metadata
        assert meta.about == "Report: anything odd"

    def test_numeric_looking_title_keeps_spelling(self):
        meta = parse_template(_doc("name: x\ntitle: 2024")).metadata
        assert meta.title == "2024"

    def test_quoted_title_keeps_inner_text(self):
        meta = parse_template(_doc('name: x\ntitle: "[BUG] "')).metadata
        assert meta.title == "[BUG]"

    def test_parse_metadata_directly(self):
        meta = parse_metadata(["name: Feature request", "labels: enhancement"])
        assert meta.name == "Feature request"
        assert meta.labels == ("enhancement",)


# ===========================================================================
# 1b. Unrecognized keys with structured values
# ===========================================================================
class TestForwardCompatibleMetadata:

    def test_block_scalar_under_unrecognized_key(self):
        template = parse_template("---\nname: x\ndescription: |\n  multi line text\n---\n## A\n")
        assert template.metadata.name == "x"
        assert template.headings == ["A"]

    def test_repeated_sub_keys_under_different_parents(self):
        meta = parse_template(_doc("name: x\nowner:\n  team: a\nreviewer:\n  team: b")).metadata
        assert meta.name == "x"

    def test_folded_about(self):
        meta = parse_template(_doc("name: x\nabout: >\n  Report a\n  crash\nlabels: bug")).metadata
        assert meta.about == "Report a crash"
        assert meta.labels == ("bug",)

    def test_literal_about_keeps_line_breaks(self):
        meta = parse_template(_doc("name: x\nabout: |\n  first\n  second")).metadata
        assert meta.about == "first\nsecond"

    def test_repeated_unrecognized_key_is_ignored(self):
        meta = parse_template(_doc("name: x\ntype: a\ntype: b")).metadata
        assert meta.name == "x"

    def test_nested_structure_in_plain_text_block(self):
        # "Report: odd" is not valid YAML, so the line scanner reads this block
        doc = _doc("name: x\nabout: Report: odd\nowner:\n  team: a\n  team: b\nlabels: bug")
        meta = parse_template(doc).metadata
        assert meta.about == "Report: odd"
        assert meta.labels == ("bug",)

    def test_plain_text_block_continuation_line(self):
        meta = parse_template(_doc("name: x\nabout: Report: a\n  second line")).metadata
        assert meta.about == "Report: a second line"

    def test_mapping_for_recognized_key_raises(self):
        with pytest.raises(MalformedMetadataError) as exc:
            parse_template(_doc("name: x\nlabels:\n  kind: bug"))
        assert exc.value.key == "labels"


# ===========================================================================
# 2. Malformed metadata
# ===========================================================================
class TestMalformedMetadata:

    def test_missing_name_raises(self):
        with pytest.raises(MalformedMetadataError) as exc:
            parse_template(_doc("about: no name here\nlabels: bug"))
        assert exc.value.key == "name"

    def test_blank_name_raises(self):
        with pytest.raises(MalformedMetadataError):
            parse_template(_doc("name: ''"))

    def test_empty_name_raises(self):
        with pytest.raises(MalformedMetadataError):
            parse_template(_doc("name:"))

    def test_missing_metadata_block_raises(self):
        with pytest.raises(MalformedMetadataError, match="metadata block"):
            parse_template("## Section\nprompt\n")

    def test_empty_document_raises(self):
        with pytest.raises(MalformedMetadataError):
            parse_template("")

    def test_unterminated_metadata_block_raises(self):
        with pytest.raises(MalformedMetadataError, match="not terminated"):
            parse_template("---\nname: x\n## Section\n")

    def test_line_without_colon_reports_line_number(self):
        with pytest.raises(MalformedMetadataError) as exc:
            parse_template("---\nname: x\njust some text\n---\n")
        assert exc.value.line == 3

    def test_undecodable_quoted_value_names_key(self):
        with pytest.raises(MalformedMetadataError) as exc:
            parse_template(_doc('name: x\ntitle: "[BUG'))
        assert exc.value.key == "title"

    def test_duplicate_key_raises(self):
        with pytest.raises(MalformedMetadataError, match="twice") as exc:
            parse_template(_doc("name: x\nname: y"))
        assert exc.value.key == "name"
        assert exc.value.line == 3

    def test_list_item_without_key_raises(self):
        with pytest.raises(MalformedMetadataError):
            parse_template(_doc("- bug\nname: x"))

    def test_list_for_name_raises(self):
        with pytest.raises(MalformedMetadataError) as exc:
            parse_template(_doc("name: [a, b]"))
        assert exc.value.key == "name"

    def test_error_serializes_context(self):
        with pytest.raises(MalformedMetadataError) as exc:
            parse_template(_doc("about: x"))
        data = exc.value.to_dict()
        assert data["error"] == "malformed_metadata"
        assert data["key"] == "name"


# ===========================================================================
# 3. Sections
# ===========================================================================
class TestSections:

    def test_section_order_matches_document(self):
        template = parse_template(BUG_REPORT)
        assert template.headings == [
            "Operating system",
            "Rust version",
            "Observed result or behaviour",
            "Expected result or behaviour",
        ]
        assert [s.order for s in template.sections] == [0, 1, 2, 3]

    def test_prompts_are_collected(self):
        template = parse_template(BUG_REPORT)
        assert template.sections[0].prompt == "Which OS are you running?"
        assert template.sections[1].prompt == "Output of `rustc --version`"

    def test_preamble_is_discarded(self):
        template = parse_template(BUG_REPORT)
        assert all("Preamble" not in s.prompt for s in template.sections)

    def test_prompt_trims_outer_blank_lines_only(self):
        template = parse_template(_doc("name: x", "## A\n\n\nfirst\n\nsecond\n\n\n## B\n"))
        assert template.sections[0].prompt == "first\n\nsecond"
        assert template.sections[1].prompt == ""

    def test_third_level_headings_stay_in_prompt(self):
        template = parse_template(_doc("name: x", "## Requirements\n### Hard\n- one\n"))
        assert template.headings == ["Requirements"]
        assert template.sections[0].prompt == "### Hard\n- one"

    def test_headings_inside_code_fence_stay_in_prompt(self):
        body = "## Logs\n```\n## not a heading\n```\n## Next\n"
        template = parse_template(_doc("name: x", body))
        assert template.headings == ["Logs", "Next"]
        assert "## not a heading" in template.sections[0].prompt

    def test_closing_hashes_are_stripped(self):
        template = parse_template(_doc("name: x", "## Steps to reproduce ##\n1. run\n"))
        assert template.headings == ["Steps to reproduce"]

    def test_bare_marker_is_prompt_text(self):
        template = parse_template(_doc("name: x", "## A\n##\n"))
        assert template.headings == ["A"]
        assert template.sections[0].prompt == "##"

    def test_marker_without_space_is_prompt_text(self):
        template = parse_template(_doc("name: x", "## A\n##B\n"))
        assert template.headings == ["A"]
        assert template.sections[0].prompt == "##B"

    def test_no_headings_yields_no_sections(self):
        template = parse_template(_doc("name: x", "Only preamble here.\n"))
        assert template.sections == ()

    def test_crlf_document(self):
        template = parse_template(BUG_REPORT.replace("\n", "\r\n"))
        assert template.metadata.name == "Bug report"
        assert len(template.sections) == 4
        assert template.sections[0].prompt == "Which OS are you running?"

    def test_parse_sections_directly(self):
        sections = parse_sections(["intro", "## One", "a", "## Two", "b"])
        assert [(s.heading, s.prompt, s.order) for s in sections] == [("One", "a", 0), ("Two", "b", 1)]

    def test_section_lookup_ignores_case(self):
        template = parse_template(BUG_REPORT)
        assert template.section("  rust VERSION ").heading == "Rust version"
        assert template.section("Compiler") is None


# ===========================================================================
# 4. Duplicate sections
# ===========================================================================
class TestDuplicateSections:

    def test_case_variant_headings_raise(self):
        with pytest.raises(DuplicateSectionError) as exc:
            parse_template(_doc("name: x", "## Result\na\n## result\nb\n"))
        assert exc.value.heading == "result"
        assert exc.value.first_heading == "Result"

    def test_whitespace_variant_headings_raise(self):
        with pytest.raises(DuplicateSectionError):
            parse_template(_doc("name: x", "## Expected  result\n##   expected result   \n"))


# ===========================================================================
# 5. Template value semantics
# ===========================================================================
class TestTemplateValue:

    def test_template_is_immutable(self):
        template = parse_template(BUG_REPORT)
        with pytest.raises(ValidationError):
            template.source = "elsewhere"
        with pytest.raises(ValidationError):
            template.metadata.name = "Other"

    def test_parse_is_deterministic(self):
        assert parse_template(BUG_REPORT) == parse_template(BUG_REPORT)

    def test_source_is_recorded(self):
        assert parse_template(BUG_REPORT, source="bug.md").source == "bug.md"
        assert parse_template(BUG_REPORT).source == ""

    def test_parse_alias(self):
        assert parse(BUG_REPORT) == parse_template(BUG_REPORT)
