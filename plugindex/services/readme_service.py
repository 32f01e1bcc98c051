"""
README service for plugindex.

Fetches a plugin's README, decodes it, runs it through the content
sanitizer and caches the sanitized lines, so repeated reads never re-run
the pipeline.
"""

import base64
import binascii
import re
from typing import Dict, List, Optional
import logging

from ..config import READMES_FROM_API
from ..context import StoreContext
from ..domain import Result
from ..exit_codes import ParseError, StoreError, ValidationError
from ..sanitizer import ContentSanitizer, split_lines

logger = logging.getLogger(__name__)

REPO_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$')
DEFAULT_README_REF = "HEAD/README.md"


def validate_repo_name(owner_repo: str) -> Optional[ValidationError]:
    """Return an error unless ``owner_repo`` looks like ``owner/name``."""
    if (not isinstance(owner_repo, str) or not REPO_PATTERN.match(owner_repo)
            or any(set(part) == {"."} for part in owner_repo.split("/"))):
        return ValidationError(f"Invalid repository name {owner_repo!r}, expected 'owner/name'")
    return None


def decode_api_readme(data: object) -> str:
    """
    Decode the body of the GitHub ``/repos/{owner}/{name}/readme`` endpoint.

    Raises:
        ParseError: when ``content`` is missing or not valid base64 text
    """
    if not isinstance(data, dict) or not isinstance(data.get('content'), str):
        raise ParseError("README response has no 'content'")
    encoding = data.get('encoding', 'base64')
    if encoding != 'base64':
        raise ParseError(f"Unsupported README encoding: {encoding}")
    # GitHub wraps the base64 payload every 60 characters
    content = data['content'].replace('\n', '')
    try:
        return base64.b64decode(content, validate=True).decode('utf-8', errors='replace')
    except (binascii.Error, ValueError) as e:
        raise ParseError(f"README content is not valid base64: {e}")


class ReadmeFetcher:
    """
    Fetches sanitized README lines for plugins.

    Example:
        fetcher = ReadmeFetcher(context)
        result = fetcher.fetch("folke/lazy.nvim")
        if result.ok:
            print("\\n".join(result.value))
    """

    def __init__(self, context: StoreContext, sanitizer: Optional[ContentSanitizer] = None):
        self.context = context
        self.config = context.config
        self.http = context.http
        self.cache = context.readme_cache
        self.sanitizer = sanitizer or ContentSanitizer()

    def fetch(self, owner_repo: str, force_refresh: bool = False,
              readme_ref: Optional[str] = None) -> Result[List[str]]:
        """
        Get the sanitized README of a repository.

        Args:
            owner_repo: Repository as ``owner/name``
            force_refresh: Skip the cache; the fresh copy is written through
            readme_ref: ``branch/path`` of the README, used by the raw source

        Returns:
            Result with display lines, or ValidationError for a malformed
            name (checked before any I/O)
        """
        error = validate_repo_name(owner_repo)
        if error is not None:
            return Result.failure(error)

        if force_refresh:
            self.cache.clear(owner_repo)
        else:
            hit = self.cache.get(owner_repo)
            if hit.valid:
                return Result.success(hit.payload)

        try:
            text = self._download(owner_repo, readme_ref)
        except StoreError as e:
            logger.debug(f"README fetch for {owner_repo} failed: {e}")
            return Result.failure(e)

        lines = self.sanitizer.process(split_lines(text))
        self.cache.put(owner_repo, lines)
        logger.debug(f"README fetched: {owner_repo} ({len(lines)} lines)")
        return Result.success(lines)

    def readme_url(self, owner_repo: str, readme_ref: Optional[str] = None) -> str:
        if self.config.readme_source == READMES_FROM_API:
            return f"{self.config.github_api_url.rstrip('/')}/repos/{owner_repo}/readme"
        ref = (readme_ref or DEFAULT_README_REF).lstrip('/')
        return f"{self.config.raw_content_url.rstrip('/')}/{owner_repo}/{ref}"

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/vnd.github.v3+json'}
        if self.config.github_token:
            headers['Authorization'] = f"Bearer {self.config.github_token}"
        return headers

    def _download(self, owner_repo: str, readme_ref: Optional[str]) -> str:
        url = self.readme_url(owner_repo, readme_ref)
        if self.config.readme_source == READMES_FROM_API:
            return decode_api_readme(self.http.get(url, headers=self._headers()).json())
        return self.http.get(url).text

    def clear(self, owner_repo: Optional[str] = None) -> bool:
        return self.cache.clear(owner_repo)
