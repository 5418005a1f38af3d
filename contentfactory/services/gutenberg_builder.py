"""
Gutenberg Block Builder - Converts markdown articles into WordPress blocks.

Handles headings, paragraphs, bullet and numbered lists, blockquotes,
tables, and inline links/bold/italic/code. build_article() wraps the body
in a full-width media cover and a 75/25 column layout with a recent-posts
sidebar.
"""

import re
from typing import List

LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
BOLD_PATTERNS = (re.compile(r"\*\*([^*]+)\*\*"), re.compile(r"__([^_]+)__"))
ITALIC_PATTERNS = (re.compile(r"(?<!\*)\*([^*]+)\*(?!\*)"), re.compile(r"(?<!_)_([^_]+)_(?!_)"))
CODE_PATTERN = re.compile(r"`([^`]+)`")
TABLE_SEPARATOR_PATTERN = re.compile(r"^\|?\s*[-:]+\s*\|")
ORDERED_ITEM_PATTERN = re.compile(r"^\d+\.\s")


class GutenbergBuilder:
    """Builds Gutenberg block markup from markdown."""

    def build_article(self, content_markdown: str, media_url: str, is_video: bool = True) -> str:
        """
        Convert a whole article into a Gutenberg template.

        Args:
            content_markdown: Article body in markdown
            media_url: Cover image or video URL (may be empty)
            is_video: Render the cover media as an autoplaying video

        Returns:
            Gutenberg block markup
        """
        media_block = self.build_media_cover(media_url, is_video)
        content_blocks = self.markdown_to_blocks(content_markdown)

        return f"""
<!-- wp:cover {{"url":"{media_url}","dimRatio":50,"overlayColor":"black","minHeight":400,"minHeightUnit":"px","align":"full"}} -->
<div class="wp-block-cover alignfull"><span aria-hidden="true" class="wp-block-cover__background has-black-background-color has-background-dim-50 has-background-dim"></span>
{media_block}
</div>
<!-- /wp:cover -->

<!-- wp:columns -->
<div class="wp-block-columns">
  <!-- wp:column {{"width":"75%"}} -->
  <div class="wp-block-column" style="flex-basis:75%">
    {content_blocks}
  </div>
  <!-- /wp:column -->

  <!-- wp:column {{"width":"25%"}} -->
  <div class="wp-block-column" style="flex-basis:25%">
    <!-- wp:query {{"query":{{"perPage":5,"pages":0,"offset":0,"postType":"post","order":"desc","orderBy":"date","inherit":false}}}} -->
    <div class="wp-block-query">
      <!-- wp:post-template -->
      <!-- wp:post-title {{"isLink":true}} /-->
      <!-- /wp:post-template -->
    </div>
    <!-- /wp:query -->
  </div>
  <!-- /wp:column -->
</div>
<!-- /wp:columns -->
"""

    def build_media_cover(self, url: str, is_video: bool) -> str:
        if is_video:
            return (
                f'<!-- wp:video {{"url":"{url}","autoplay":true,"muted":true,"loop":true,"playsInline":true,"controls":false}} -->\n'
                f'<figure class="wp-block-video"><video src="{url}" autoplay muted loop playsinline></video></figure>\n'
                f'<!-- /wp:video -->'
            )
        return (
            f'<!-- wp:image {{"url":"{url}","sizeSlug":"full","linkDestination":"none"}} -->\n'
            f'<figure class="wp-block-image size-full"><img src="{url}" alt=""/></figure>\n'
            f'<!-- /wp:image -->'
        )

    def convert_inline_markdown(self, text: str) -> str:
        """Convert links, bold, italic and inline code to HTML."""
        text = LINK_PATTERN.sub(r'<a href="\2">\1</a>', text)
        for pattern in BOLD_PATTERNS:
            text = pattern.sub(r"<strong>\1</strong>", text)
        for pattern in ITALIC_PATTERNS:
            text = pattern.sub(r"<em>\1</em>", text)
        return CODE_PATTERN.sub(r"<code>\1</code>", text)

    def convert_table(self, table_block: str) -> str:
        lines = [line for line in table_block.split("\n") if line.strip()]
        if len(lines) < 2:
            return self.wrap_paragraph(table_block)

        def parse_row(line: str) -> List[str]:
            return [cell.strip() for cell in line.split("|") if cell.strip()]

        # lines[1] is the ---|--- separator
        html = '<!-- wp:table -->\n<figure class="wp-block-table"><table><thead><tr>'
        for cell in parse_row(lines[0]):
            html += f"<th>{self.convert_inline_markdown(cell)}</th>"
        html += "</tr></thead><tbody>"

        for line in lines[2:]:
            html += "<tr>"
            for cell in parse_row(line):
                html += f"<td>{self.convert_inline_markdown(cell)}</td>"
            html += "</tr>"

        html += "</tbody></table></figure>\n<!-- /wp:table -->"
        return html

    def wrap_paragraph(self, text: str) -> str:
        return f"<!-- wp:paragraph --><p>{self.convert_inline_markdown(text)}</p><!-- /wp:paragraph -->"

    @staticmethod
    def _is_table_start(lines: List[str], i: int) -> bool:
        return (
            "|" in lines[i]
            and i + 1 < len(lines)
            and bool(TABLE_SEPARATOR_PATTERN.match(lines[i + 1].strip()))
        )

    def markdown_to_blocks(self, markdown: str) -> str:
        lines = (markdown or "").split("\n")
        blocks: List[str] = []
        i = 0

        while i < len(lines):
            line = lines[i].strip()

            if not line:
                i += 1
                continue

            heading_level = 0
            for level, prefix in ((3, "### "), (2, "## "), (1, "# ")):
                if line.startswith(prefix):
                    heading_level = level
                    break
            if heading_level:
                text = self.convert_inline_markdown(line[heading_level + 1:])
                blocks.append(
                    f'<!-- wp:heading {{"level":{heading_level}}} -->'
                    f"<h{heading_level}>{text}</h{heading_level}><!-- /wp:heading -->"
                )
                i += 1
                continue

            if self._is_table_start(lines, i):
                table_lines = [line]
                i += 1
                while i < len(lines) and "|" in lines[i].strip():
                    table_lines.append(lines[i].strip())
                    i += 1
                blocks.append(self.convert_table("\n".join(table_lines)))
                continue

            if line.startswith(("- ", "* ")):
                items = []
                while i < len(lines) and lines[i].strip().startswith(("- ", "* ")):
                    items.append(f"<li>{self.convert_inline_markdown(lines[i].strip()[2:])}</li>")
                    i += 1
                blocks.append(f"<!-- wp:list --><ul>{''.join(items)}</ul><!-- /wp:list -->")
                continue

            if ORDERED_ITEM_PATTERN.match(line):
                items = []
                while i < len(lines) and ORDERED_ITEM_PATTERN.match(lines[i].strip()):
                    item_text = ORDERED_ITEM_PATTERN.sub("", lines[i].strip(), count=1)
                    items.append(f"<li>{self.convert_inline_markdown(item_text)}</li>")
                    i += 1
                blocks.append(
                    f'<!-- wp:list {{"ordered":true}} --><ol>{"".join(items)}</ol><!-- /wp:list -->'
                )
                continue

            if line.startswith("> "):
                quote_lines = []
                while i < len(lines) and lines[i].strip().startswith("> "):
                    quote_lines.append(lines[i].strip()[2:])
                    i += 1
                quote = self.convert_inline_markdown(" ".join(quote_lines))
                blocks.append(
                    f'<!-- wp:quote --><blockquote class="wp-block-quote"><p>{quote}</p></blockquote><!-- /wp:quote -->'
                )
                continue

            # Paragraph: consecutive lines until a blank or a block starter
            paragraph = [line]
            i += 1
            while i < len(lines):
                next_line = lines[i].strip()
                if (
                    not next_line
                    or next_line.startswith(("#", "- ", "* ", "> "))
                    or ORDERED_ITEM_PATTERN.match(next_line)
                    or self._is_table_start(lines, i)
                ):
                    break
                paragraph.append(next_line)
                i += 1
            blocks.append(self.wrap_paragraph(" ".join(paragraph)))

        return "\n".join(blocks)
