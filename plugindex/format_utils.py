"""
Output format utilities for plugindex CLI commands.

Provides JSON Lines (the default), JSON, YAML and CSV output, plus compact
number formatting for tables.
"""

import csv
import io
import json
import os
from typing import Any, Dict, Iterable, Iterator, List, Optional

import yaml

FORMATS = ('jsonl', 'json', 'yaml', 'csv')


def format_output(data: Iterable[Dict[str, Any]], format: str,
                  fields: Optional[List[str]] = None) -> Iterator[str]:
    """
    Format records in the requested output format.

    Args:
        data: Records to format
        format: One of jsonl, json, yaml, csv
        fields: Columns to keep (every format honours this)

    Yields:
        Output chunks, one per line for jsonl
    """
    if fields:
        data = ({k: item.get(k) for k in fields} for item in data)

    if format == "jsonl":
        for item in data:
            yield json.dumps(item, ensure_ascii=False)
    elif format == "json":
        yield json.dumps(list(data), ensure_ascii=False, indent=2)
    elif format == "yaml":
        yield yaml.safe_dump(list(data), default_flow_style=False,
                             allow_unicode=True, sort_keys=False).rstrip("\n")
    elif format == "csv":
        yield from format_csv(data)
    else:
        raise ValueError(f"Unknown format: {format}")


def format_csv(data: Iterable[Dict[str, Any]]) -> Iterator[str]:
    """Format records as CSV, nested values flattened to dotted columns."""
    rows = [flatten_dict(item) for item in data]
    if not rows:
        return
    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=columns, extrasaction='ignore')
    writer.writeheader()
    writer.writerows(rows)
    yield output.getvalue().rstrip("\r\n")


def flatten_dict(d: Dict[str, Any], parent_key: str = '', sep: str = '.') -> Dict[str, Any]:
    """
    Flatten a nested dictionary.

    Example:
        {'pretty': {'stars': '1.2k'}, 'tags': ['ui', 'git']}
        -> {'pretty.stars': '1.2k', 'tags': 'ui, git'}
    """
    items: Dict[str, Any] = {}
    for k, v in d.items():
        key = f"{parent_key}{sep}{k}" if parent_key else k
        if isinstance(v, dict):
            items.update(flatten_dict(v, key, sep=sep))
        elif isinstance(v, list):
            items[key] = ', '.join(str(item) for item in v)
        else:
            items[key] = v
    return items


def get_format_from_env(default: str = 'jsonl') -> str:
    """Output format from PLUGINDEX_FORMAT, falling back to ``default``."""
    format = os.environ.get('PLUGINDEX_FORMAT', default).lower()
    if format not in FORMATS:
        return default
    return format


def format_number(value: int) -> str:
    """
    Compact display form of a count.

    Example:
        format_number(950)      -> "950"
        format_number(1234)     -> "1.2k"
        format_number(3400000)  -> "3.4M"
    """
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}k"
    return str(value)
