"""
DamAudit Report Writers

Writes asset lists as CSV, JSON or plain-text reports.
"""

import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

FORMATS = ('csv', 'json', 'txt')

Row = Dict[str, str]


def timestamp(now: Optional[datetime] = None) -> str:
    """Compact UTC timestamp used in output file names, e.g. 20240131_142501."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d_%H%M%S")


def output_filename(base_name: str, suffix: Optional[str] = None, fmt: str = 'csv',
                    output_dir: Union[str, Path] = "output",
                    now: Optional[datetime] = None) -> Path:
    """Build ``<output_dir>/<base>[_<suffix>]_<timestamp>.<fmt>``."""
    parts = [base_name]
    if suffix:
        parts.append(suffix)
    parts.append(timestamp(now))
    return Path(output_dir) / f"{'_'.join(parts)}.{fmt}"


def write_report(rows: List[Row], output_file: Union[str, Path], fmt: str = 'csv',
                 title: str = 'Assets') -> Path:
    """
    Write ``rows`` to ``output_file`` in the given format.

    Empty inputs still produce a file so every run leaves a complete set of
    reports behind.

    Raises:
        ValueError: unsupported format
    """
    fmt = fmt.lower()
    if fmt not in FORMATS:
        raise ValueError(f"Unsupported output format '{fmt}'. Supported: {', '.join(FORMATS)}")

    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    if fmt == 'csv':
        content = render_csv(rows)
    elif fmt == 'json':
        content = render_json(rows)
    else:
        content = render_text(rows, title)

    output_file.write_text(content, encoding='utf-8')
    return output_file


def render_csv(rows: List[Row]) -> str:
    """CSV with the sorted union of all keys as header."""
    if not rows:
        return "No assets found,\n"

    all_keys = set()
    for row in rows:
        all_keys.update(row.keys())
    sorted_keys = sorted(all_keys)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=sorted_keys, lineterminator='\n',
                            restval='')
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def render_json(rows: List[Row], indent: int = 2) -> str:
    return json.dumps(rows, indent=indent)


def render_text(rows: List[Row], title: str = 'Assets',
                generated: Optional[datetime] = None) -> str:
    """Titled report with one indented block per row."""
    generated = generated or datetime.now(timezone.utc)
    lines = [
        f"{title} Report",
        f"Generated: {generated.isoformat()}",
        f"Total {title.lower()}: {len(rows)}",
        "",
    ]

    if not rows:
        lines.append(f"No {title.lower()} found.")
        return "\n".join(lines)

    singular = title[:-1] if title.endswith('s') else title
    for i, row in enumerate(rows, 1):
        lines.append(f"{singular} {i}:")
        for key, value in row.items():
            lines.append(f"  {key}: {value}")
        lines.append("")

    return "\n".join(lines)

