"""
README content sanitizer for plugindex.

Turns raw markdown lines into display lines in a single left-to-right pass:
- fenced code blocks pass through untouched
- standalone image lines are dropped
- HTML tags are stripped (text between tags is kept)
- runs of blank lines collapse to one

The output is a fixed point: sanitizing it again returns it unchanged.
"""

import re
from typing import Iterable, List

FENCE_RE = re.compile(r'^\s*```')
IMAGE_LINE_RE = re.compile(r'^!\[[^\]]*\]\(.*\)$')
TAG_RE = re.compile(r'<\s*[^>]*>')
LEADING_LINK_RE = re.compile(r'^\s*\[[^\]]*\]\(.*?\)')
SPECIAL_CHAR_RE = re.compile(r'[^\w\s]')
WHITESPACE_RE = re.compile(r'\s+')

# Lines with more special characters than this are treated as ASCII art
ASCII_ART_RATIO = 0.4


def split_lines(text: str) -> List[str]:
    """Split decoded README text on newlines, tolerating CRLF."""
    return [line[:-1] if line.endswith('\r') else line for line in text.split('\n')]


def strip_html_tags(content: str) -> str:
    """
    Remove HTML tags from a line while keeping the text between them.

    Lines starting with a markdown link, and ASCII-art lines without angle
    brackets, are returned unchanged.
    """
    if content.startswith('```'):
        return content
    if LEADING_LINK_RE.match(content):
        return content

    if content and '<' not in content and '>' not in content:
        special = len(SPECIAL_CHAR_RE.findall(content))
        if special / len(content) > ASCII_ART_RATIO:
            return content

    cleaned = TAG_RE.sub('', content)
    return WHITESPACE_RE.sub(' ', cleaned).strip()


class ContentSanitizer:
    """
    Stateless README processing pipeline.

    Example:
        lines = ContentSanitizer().process(raw_text.split("\\n"))
    """

    def process(self, raw_lines: Iterable[str]) -> List[str]:
        processed: List[str] = []
        prev_was_empty = False
        in_fence = False

        for line in raw_lines:
            if FENCE_RE.match(line):
                in_fence = not in_fence
                processed.append(line.strip())
                prev_was_empty = False
                continue

            if in_fence:
                processed.append(line)
                prev_was_empty = False
                continue

            text = line.strip()
            if text and not IMAGE_LINE_RE.match(text):
                # Cheap '<' check before the regex search
                if '<' in text and TAG_RE.search(text):
                    text = strip_html_tags(text)
                    if IMAGE_LINE_RE.match(text):
                        text = ''
                    elif FENCE_RE.match(text):
                        # A fence revealed by stripping opens a block on re-read too
                        in_fence = not in_fence
            else:
                text = ''

            if not text:
                if not prev_was_empty:
                    processed.append('')
                prev_was_empty = True
                continue

            processed.append(text)
            prev_was_empty = False

        return processed


_default = ContentSanitizer()


def process_readme(raw_lines: Iterable[str]) -> List[str]:
    """Sanitize README lines with a shared pipeline instance."""
    return _default.process(raw_lines)
