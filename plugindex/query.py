"""
Query language for filtering the plugin catalogue.

A query is a ``;``-separated list of criteria. Each criterion is either a
bare term, which searches ``full_name``, or a ``field:value`` pair over a
closed set of fields. All criteria must match. A ``tags`` value may list
several comma-separated alternatives, any of which may match.

Examples:
    telescope
    author:folke;tags:ui,colorscheme
    description:git;homepage:github.io
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple
import logging

from .domain import Plugin, Result
from .exit_codes import ValidationError

logger = logging.getLogger(__name__)

Predicate = Callable[[Plugin], bool]


class Field(Enum):
    """Filterable plugin fields."""
    FULL_NAME = "full_name"
    AUTHOR = "author"
    NAME = "name"
    DESCRIPTION = "description"
    TAGS = "tags"
    HOMEPAGE = "homepage"

    @classmethod
    def lookup(cls, name: str) -> Optional['Field']:
        name = name.strip().lower()
        for member in cls:
            if member.value == name:
                return member
        return None


VALID_FIELDS: Tuple[str, ...] = tuple(f.value for f in Field)


class QueryErrorKind(Enum):
    INVALID_FIELD = "invalid_field"
    EMPTY_FIELD = "empty_field"
    EMPTY_VALUE = "empty_value"


class QueryError(ValidationError):
    """A query string could not be parsed."""
    def __init__(self, kind: QueryErrorKind, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.field = field
        self.valid_fields = VALID_FIELDS


@dataclass(frozen=True)
class Criterion:
    """One parsed query condition."""
    field: Field
    value: str
    matcher: Predicate

    def __call__(self, plugin: Plugin) -> bool:
        return self.matcher(plugin)


def _substring(getter: Callable[[Plugin], Optional[str]], needle: str) -> Predicate:
    def match(plugin: Plugin) -> bool:
        haystack = getter(plugin)
        return haystack is not None and needle in haystack
    return match


def _tags_matcher(value: str) -> Predicate:
    needles = tuple(term.strip().lower() for term in value.split(',') if term.strip())

    def match(plugin: Plugin) -> bool:
        tags = plugin.folded.tags
        for needle in needles:
            for tag in tags:
                if needle in tag:
                    return True
        return False
    return match


def create_field_matcher(field: Field, value: str) -> Predicate:
    """
    Create a matcher for a validated field and non-empty value.

    Matching is a case-insensitive substring test against the record's
    pre-folded fields. Missing optional fields never match.
    """
    needle = value.lower()

    if field is Field.FULL_NAME:
        return _substring(lambda p: p.folded.full_name, needle)
    if field is Field.AUTHOR:
        return _substring(lambda p: p.folded.author, needle)
    if field is Field.NAME:
        return _substring(lambda p: p.folded.name, needle)
    if field is Field.DESCRIPTION:
        return _substring(lambda p: p.folded.description, needle)
    if field is Field.HOMEPAGE:
        return _substring(lambda p: p.folded.homepage, needle)
    if field is Field.TAGS:
        return _tags_matcher(value)

    raise AssertionError(f"Unhandled field: {field!r}")


def parse_query(query_str: Optional[str]) -> Result[List[Criterion]]:
    """
    Parse a query string into criteria.

    Args:
        query_str: Query such as ``"foo;author:bar;tags:one,two"``

    Returns:
        Result holding the ordered criteria, or a QueryError
    """
    criteria: List[Criterion] = []
    if not query_str:
        return Result.success(criteria)

    for part in query_str.split(';'):
        trimmed = part.strip()
        if not trimmed:
            continue

        if ':' not in trimmed:
            criteria.append(Criterion(Field.FULL_NAME, trimmed,
                                      create_field_matcher(Field.FULL_NAME, trimmed)))
            continue

        raw_field, _, raw_value = trimmed.partition(':')
        field_name = raw_field.strip().lower()
        value = raw_value.strip()

        if not field_name:
            return Result.failure(QueryError(
                QueryErrorKind.EMPTY_FIELD,
                f"Empty field name in query: '{part}'",
            ))
        if not value:
            return Result.failure(QueryError(
                QueryErrorKind.EMPTY_VALUE,
                f"Empty value for field '{field_name}' in query: '{part}'",
                field=field_name,
            ))

        field = Field.lookup(field_name)
        if field is None:
            return Result.failure(QueryError(
                QueryErrorKind.INVALID_FIELD,
                f"Unknown field '{field_name}'. Valid fields: {', '.join(VALID_FIELDS)}",
                field=field_name,
            ))

        criteria.append(Criterion(field, value, create_field_matcher(field, value)))

    logger.debug(f"Parsed query {query_str!r} into {len(criteria)} criteria")
    return Result.success(criteria)


def _match_all(plugin: Plugin) -> bool:
    return True


def compile_filter(query_str: Optional[str]) -> Result[Predicate]:
    """
    Build a single predicate that ANDs every criterion of a query.

    An empty query yields a predicate that matches everything.
    """
    parsed = parse_query(query_str)
    if not parsed.ok:
        return Result.failure(parsed.error)  # type: ignore[arg-type]

    criteria = tuple(parsed.value or ())
    if not criteria:
        return Result.success(_match_all)

    matchers = tuple(c.matcher for c in criteria)

    def predicate(plugin: Plugin) -> bool:
        for matcher in matchers:
            if not matcher(plugin):
                return False
        return True

    return Result.success(predicate)
