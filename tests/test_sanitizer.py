"""Tests for the README content sanitizer."""

import pytest

from plugindex.sanitizer import ContentSanitizer, process_readme, split_lines, strip_html_tags


@pytest.fixture
def sanitizer():
    return ContentSanitizer()


class TestSplitLines:
    """Tests for split_lines."""

    def test_splits_on_newline(self):
        assert split_lines("a\nb\n") == ["a", "b", ""]

    def test_tolerates_crlf(self):
        assert split_lines("a\r\nb") == ["a", "b"]


class TestStripHtmlTags:
    """Tests for strip_html_tags."""

    def test_keeps_text_between_tags(self):
        assert strip_html_tags('<p align="center">Hello <b>world</b></p>') == "Hello world"

    def test_leading_markdown_link_untouched(self):
        line = "[docs](https://example.com) <br>"
        assert strip_html_tags(line) == line

    def test_ascii_art_untouched(self):
        line = "+--|--+--|--+"
        assert strip_html_tags(line) == line


class TestContentSanitizer:
    """Tests for ContentSanitizer.process."""

    def test_strips_tags(self, sanitizer):
        """Tags are removed and whitespace collapsed."""
        assert sanitizer.process(['<div>  Fast   <i>plugin</i> </div>']) == ["Fast plugin"]

    def test_image_line_becomes_blank(self, sanitizer):
        """Standalone images are dropped like blank lines."""
        lines = ["# Title", "![logo](./logo.png)", "", "Text"]
        assert sanitizer.process(lines) == ["# Title", "", "Text"]

    def test_blank_lines_collapse(self, sanitizer):
        """Runs of blank lines collapse to one."""
        lines = ["a", "", "   ", "", "b"]
        assert sanitizer.process(lines) == ["a", "", "b"]

    def test_emptied_lines_collapse(self, sanitizer):
        """Lines emptied by tag stripping collapse with blanks."""
        lines = ["a", "", "<p>", "</p>", "", "b"]
        assert sanitizer.process(lines) == ["a", "", "b"]

    def test_image_inside_tags_becomes_blank(self, sanitizer):
        """An image revealed by stripping is dropped."""
        lines = ["a", '<p>![badge](https://img.shields.io/x.svg)</p>', "b"]
        assert sanitizer.process(lines) == ["a", "", "b"]

    def test_fence_preserves_html(self, sanitizer):
        """Code inside fences is never touched."""
        lines = split_lines("```lua\n<b>not html</b>\n```")
        assert sanitizer.process(lines) == ["```lua", "<b>not html</b>", "```"]

    def test_fence_preserves_whitespace_and_blanks(self, sanitizer):
        """Indentation and blank lines inside fences survive."""
        lines = ["  ```lua", "  local x = 1", "", "", "    return x", "```"]
        assert sanitizer.process(lines) == [
            "```lua", "  local x = 1", "", "", "    return x", "```"]

    def test_fence_preserves_images(self, sanitizer):
        """Image syntax inside fences is kept."""
        lines = ["```md", "![alt](src)", "```"]
        assert sanitizer.process(lines) == lines

    def test_text_after_fence_is_sanitized(self, sanitizer):
        """Sanitizing resumes after the closing fence."""
        lines = ["```", "<b>x</b>", "```", "<b>y</b>"]
        assert sanitizer.process(lines) == ["```", "<b>x</b>", "```", "y"]

    def test_markdown_kept(self, sanitizer):
        """Plain markdown passes through trimmed."""
        lines = ["# lazy.nvim  ", "", "- item", "[link](url)"]
        assert sanitizer.process(lines) == ["# lazy.nvim", "", "- item", "[link](url)"]

    def test_angle_bracket_without_tag(self, sanitizer):
        """A lone '<' that is not a tag leaves the line alone."""
        assert sanitizer.process(["a < b"]) == ["a < b"]

    def test_process_readme_helper(self):
        assert process_readme(["<b>x</b>"]) == ["x"]

    @pytest.mark.parametrize("lines", [
        ["", "", "# Title", "<p align='center'>", "  <img src='x.png'>", "</p>", ""],
        ["```lua", "<b>not html</b>", "```", "", "", "![img](x)", "text <br/> more"],
        ["<p>```</p>", "<b>inside?</b>", "```", "after"],
        ["+--|--+", "<p>+--|--+</p>", "[link](x) <b>bold</b>", "   spaced    out   "],
        ["unterminated", "```", "<i>still code</i>", "   "],
        ["<p><img src='a.png'></p>", "<p>![x](y)</p>", "", "<br>", "end"],
    ])
    def test_idempotent(self, sanitizer, lines):
        """Sanitized output is a fixed point."""
        once = sanitizer.process(lines)
        assert sanitizer.process(once) == once
