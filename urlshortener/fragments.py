from html import escape
from typing import Iterable

from .schemas import URLStat


def truncate(text: str, max_length: int = 30) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."

def result_fragment(short_url: str) -> str:
    url = escape(short_url)
    return f"""
<div id="result" class="result-container">
    <p>Your shortened URL:</p>
    <a href="{url}" target="_blank">{url}</a>
    <button class="copy-btn" data-url="{url}" onclick="copyToClipBoard(this.dataset.url)">Copy</button>
</div>
"""

def stats_table(rows: Iterable[URLStat], base: str) -> str:
    parts = [
        "<table>",
        "<thead><tr>"
        "<th>Original URL</th><th>Short URL</th><th>Created</th><th>Visits</th>"
        "</tr></thead>",
        "<tbody>",
    ]
    for row in rows:
        short_url = escape(f"{base}/{row.short_code}")
        parts.append(
            "<tr>"
            f'<td><a href="{escape(row.original_url)}" target="_blank">'
            f"{escape(truncate(row.original_url, 30))}</a></td>"
            f'<td><a href="{short_url}" target="_blank">{short_url}</a></td>'
            f"<td>{row.created_at:%Y-%m-%d}</td>"
            f"<td>{row.visits}</td>"
            "</tr>"
        )
    parts.append("</tbody></table>")
    return "\n".join(parts)
