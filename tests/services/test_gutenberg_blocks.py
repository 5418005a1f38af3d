"""
Tests for GutenbergBuilder.

Tests: headings, paragraphs, lists, quotes, tables, inline markdown,
full article template with image and video covers.
"""

from contentfactory.services.gutenberg_builder import GutenbergBuilder


class TestMarkdownToBlocks:

    def setup_method(self):
        self.builder = GutenbergBuilder()

    def test_headings(self):
        blocks = self.builder.markdown_to_blocks("# Title\n## Section\n### Sub")
        assert '<!-- wp:heading {"level":1} --><h1>Title</h1><!-- /wp:heading -->' in blocks
        assert "<h2>Section</h2>" in blocks
        assert "<h3>Sub</h3>" in blocks

    def test_paragraph_joins_consecutive_lines(self):
        blocks = self.builder.markdown_to_blocks("first line\nsecond line\n\nnext")
        assert blocks.count("<!-- wp:paragraph -->") == 2

    def test_bullet_and_numbered_lists(self):
        blocks = self.builder.markdown_to_blocks("- a\n- b\n\n1. one\n2. two")
        assert "<!-- wp:list --><ul><li>a</li><li>b</li></ul><!-- /wp:list -->" in blocks
        assert '<!-- wp:list {"ordered":true} --><ol><li>one</li><li>two</li></ol>' in blocks

    def test_quote(self):
        blocks = self.builder.markdown_to_blocks("> File on time\n> every year")
        assert '<blockquote class="wp-block-quote"><p>File on time every year</p></blockquote>' in blocks

    def test_table(self):
        blocks = self.builder.markdown_to_blocks("| Form | Due |\n|---|---|\n| FBAR | April 15 |")
        assert "<th>Form</th><th>Due</th>" in blocks
        assert "<td>FBAR</td><td>April 15</td>" in blocks

    def test_inline_markdown(self):
        html = self.builder.convert_inline_markdown("**bold** *it* `code` [IRS](https://irs.gov)")
        assert "<strong>bold</strong>" in html
        assert "<em>it</em>" in html
        assert "<code>code</code>" in html
        assert '<a href="https://irs.gov">IRS</a>' in html

    def test_empty_markdown(self):
        assert self.builder.markdown_to_blocks("") == ""


class TestBuildArticle:

    def test_image_cover_and_columns(self):
        html = GutenbergBuilder().build_article("## Hi", "https://cdn/x.png", is_video=False)
        assert '<!-- wp:image {"url":"https://cdn/x.png"' in html
        assert '<div class="wp-block-column" style="flex-basis:75%">' in html
        assert "<h2>Hi</h2>" in html

    def test_video_cover(self):
        html = GutenbergBuilder().build_article("text", "https://cdn/x.mp4")
        assert "<video src=\"https://cdn/x.mp4\" autoplay muted loop playsinline>" in html
