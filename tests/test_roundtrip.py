#!/usr/bin/env python3
# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Round-trip tests: markup -> Loro document -> markup.

Well-formed markup written back after a build must match the input once
whitespace between tags is collapsed.
"""

import re

import loro
import pytest

from markup_loro import EMPTY_DOC, build, write


def collapse_whitespace(markup: str) -> str:
    return re.sub(r">\s+<", "><", re.sub(r"\s+", " ", markup)).strip()


def page(main: str, metadata: str = "") -> str:
    return f"<body><header></header><main>{main}</main><footer></footer>{metadata}</body>"


def roundtrip(markup) -> str:
    doc = loro.LoroDoc()
    build(markup, doc)
    return write(doc)


ROUNDTRIP_FIXTURES = [
    pytest.param("<div><p>Hi</p><p>Test</p></div>", id="paragraphs"),
    pytest.param("<div><h1>Title</h1><h2>Sub</h2><h6>Small</h6></div>", id="headings"),
    pytest.param("<div><p>Line 1<br>Line 2</p></div>", id="line-break"),
    pytest.param("<div><p>E = mc<sup>2</sup> and H<sub>2</sub>O</p></div>", id="sup-sub"),
    pytest.param("<div><p><em>Hello <strong>World</strong></em></p></div>", id="nested-marks"),
    pytest.param("<div><p><s>gone</s> <u>under</u> <code>x = 1</code></p></div>", id="more-marks"),
    pytest.param(
        '<div><p>See <a href="https://example.com" title="Ex">the <strong>site</strong></a>.</p></div>',
        id="link",
    ),
    pytest.param("<div><p>a &lt; b &amp; c &gt; d</p></div>", id="escaped-text"),
    pytest.param("<div><ul><li>One</li><li><p>Two</p><ul><li>Nested</li></ul></li></ul></div>", id="lists"),
    pytest.param('<div><ol start="3"><li>Three</li><li>Four</li></ol></div>', id="ordered-start"),
    pytest.param("<div><blockquote><p>Quote</p></blockquote></div>", id="blockquote"),
    pytest.param("<div><pre><code>line 1\n  line 2</code></pre></div>", id="code-block"),
    pytest.param("<div><p>First</p></div><div><p>Second</p></div>", id="sections"),
    pytest.param(
        '<div><div class="cards dark"><div><div>Plain</div><div><p>Para</p></div></div>'
        "<div><div>Second row</div></div></div></div>",
        id="block",
    ),
    pytest.param('<div><div class=""><div><div>x</div></div></div></div>', id="unnamed-block"),
    pytest.param(
        '<div><div class="cards" data-id="blk-1"><div data-id="row-1"><div data-id="cell-1">'
        '<p data-id="p-1">x</p></div></div></div></div>',
        id="data-ids",
    ),
    pytest.param(
        '<div><p><a href="https://example.com/page" title="Go"><picture><source srcset="./media_1.png">'
        '<source srcset="./media_1.png" media="(min-width: 600px)">'
        '<img src="./media_1.png" alt="Alt" loading="lazy"></picture></a></p></div>',
        id="linked-image",
    ),
    pytest.param(
        '<div><picture><source srcset="./a.png"><source srcset="./a.png" media="(min-width: 600px)">'
        '<img src="./a.png" alt=""></picture></div>',
        id="standalone-image",
    ),
    pytest.param(
        '<div><p da-diff-added="">New</p><da-diff-deleted data-mdast="ignore"><p>Old 1</p><p>Old 2</p>'
        "</da-diff-deleted><p>Kept</p></div>",
        id="regional-edits",
    ),
    pytest.param(
        '<div><div class="hero block-group-start" da-diff-added=""><div><div>A</div></div></div>'
        '<div class="cards"><div><div>B</div></div></div>'
        '<div class="footer block-group-end" da-diff-added=""><div><div>C</div></div></div></div>',
        id="added-block-group",
    ),
    pytest.param(
        '<div><da-diff-deleted data-mdast="ignore"><div class="a block-group-start"><div><div>A</div></div></div>'
        '<div class="b block-group-end"><div><div>B</div></div></div></da-diff-deleted></div>',
        id="deleted-block-group",
    ),
    pytest.param(
        '<div><div class="cards"><div><div>Kept</div></div><da-diff-deleted data-mdast="ignore">'
        '<div><div>Removed</div></div></da-diff-deleted><div da-diff-added=""><div>Added</div></div></div></div>',
        id="block-row-edits",
    ),
]


class TestRoundTrip:
    """Markup survives build followed by write"""

    @pytest.mark.parametrize("main", ROUNDTRIP_FIXTURES)
    def test_fixture_roundtrips(self, main):
        markup = page(main)
        assert collapse_whitespace(roundtrip(markup)) == collapse_whitespace(markup)

    def test_hi_test_document_roundtrips_unchanged(self):
        markup = "<body><header></header><main><div><p>Hi</p><p>Test</p></div></main><footer></footer></body>"
        assert collapse_whitespace(roundtrip(markup)) == markup

    def test_indented_markup_roundtrips(self):
        markup = """
        <body>
          <header></header>
          <main>
            <div>
              <p>Some   text
                 over lines</p>
            </div>
          </main>
          <footer></footer>
        </body>
        """
        result = roundtrip(markup)
        assert "<p>Some text over lines</p>" in result

    def test_lists_with_diff_edits(self):
        markup = collapse_whitespace("""
        <body>
          <header></header>
          <main>
            <div>
              <h1>List Test</h1>
              <ul>
                <da-diff-deleted data-mdast="ignore">
                  <li>Item 3</li>
                </da-diff-deleted>
                <li da-diff-added="">
                  <p>Item 3 - Modified</p>
                  <p>Blah blah blah</p>
                </li>
                <li>No change here</li>
                <da-diff-deleted data-mdast="ignore">
                  <li>Item 4</li>
                </da-diff-deleted>
                <li da-diff-added="">Item 5 - New</li>
              </ul>
              <p>Some text after the list</p>
            </div>
          </main>
          <footer></footer>
        </body>""")
        assert collapse_whitespace(roundtrip(markup)) == markup

    def test_rowspan_in_nested_table(self):
        markup = page(
            '<div><div class="table r1-primary-header compact"><div><div><table>'
            "<thead><tr><th>CONTRACT</th><th>Code</th><th>Month</th></tr></thead>"
            '<tbody><tr><td rowspan="6">GOLD FUTURES</td><td rowspan="6">GCT</td><td>February</td></tr>'
            "<tr><td>April</td></tr><tr><td>June</td></tr><tr><td>August</td></tr>"
            "<tr><td>October</td></tr><tr><td>December</td></tr></tbody>"
            "</table></div></div></div></div>"
        )
        result = roundtrip(markup)
        assert collapse_whitespace(result) == collapse_whitespace(markup)
        assert result.count('rowspan="6"') == 2

    def test_metadata_roundtrips(self):
        metadata = (
            '<div class="da-metadata"><div><div>delHashes</div><div>hash1,hash2</div></div>'
            "<div><div>da-loc-keys</div><div>k1,k2</div></div></div>"
        )
        markup = page("<div><p>Body</p></div>", metadata)
        assert collapse_whitespace(roundtrip(markup)) == collapse_whitespace(markup)


class TestEmptyDocument:
    """The canonical empty document is a fixed point"""

    @pytest.mark.parametrize("markup", [None, ""])
    def test_empty_input_builds_empty_document(self, markup):
        assert roundtrip(markup) == EMPTY_DOC

    def test_empty_doc_is_fixed_point(self):
        assert roundtrip(EMPTY_DOC) == EMPTY_DOC
        assert roundtrip(roundtrip(EMPTY_DOC)) == EMPTY_DOC

    def test_fresh_document_writes_empty_doc(self):
        assert write(loro.LoroDoc()) == EMPTY_DOC


class TestScenarios:
    """Behaviors that change the markup on purpose"""

    def test_section_break_splits_sections(self):
        result = roundtrip(page("<div><p>ABC</p><p>---</p><p>DEF</p></div>"))
        assert "<main><div><p>ABC</p></div><div><p>DEF</p></div></main>" in result

    def test_hr_splits_sections(self):
        result = roundtrip(page("<div><p>ABC</p><hr><p>DEF</p></div>"))
        assert "<main><div><p>ABC</p></div><div><p>DEF</p></div></main>" in result

    def test_content_without_main_is_folded_into_main(self):
        result = roundtrip("<p>ABC</p><p>DEF</p>")
        assert collapse_whitespace(result) == page("<div><p>ABC</p><p>DEF</p></div>")

    def test_unknown_tag_becomes_escaped_text(self):
        result = roundtrip(page("<div><p>Hello <foo>bar</foo></p></div>"))
        assert "<p>Hello &lt;foo&gt;bar</p>" in result

    def test_unknown_tag_attributes_become_pseudo_markup(self):
        result = roundtrip(page('<div><p><hello blurb="yes">there</hello></p></div>'))
        assert '<p>&lt;hello blurb="yes"&gt;there</p>' in result

    def test_legacy_diff_tags_are_written_in_current_spelling(self):
        result = roundtrip(page("<div><da-loc-added><p>New</p></da-loc-added><da-loc-deleted><p>Old</p></da-loc-deleted></div>"))
        assert '<p da-diff-added="">New</p>' in result
        assert '<da-diff-deleted data-mdast="ignore"><p>Old</p></da-diff-deleted>' in result
        assert "da-loc" not in result

    def test_comments_are_dropped(self):
        result = roundtrip(page("<div><!-- note --><p>Text<!-- inline --></p></div>"))
        assert "note" not in result
        assert "<p>Text</p>" in result

    def test_bold_and_italic_aliases(self):
        result = roundtrip(page("<div><p><b>bold</b> <i>italic</i></p></div>"))
        assert "<p><strong>bold</strong> <em>italic</em></p>" in result

    def test_stray_text_in_section_becomes_paragraph(self):
        result = roundtrip(page("<div>Loose <strong>text</strong></div>"))
        assert "<div><p>Loose <strong>text</strong></p></div>" in result

    def test_empty_metadata_value_is_not_written(self):
        metadata = '<div class="da-metadata"><div><div>delHashes</div><div></div></div></div>'
        result = roundtrip(page("<div><p>Body</p></div>", metadata))
        assert "da-metadata" not in result
