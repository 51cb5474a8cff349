"""
Log renderer: formats classifier output into the readable transcript.

The "[MM:SS] action: details flags" line format is what the LLM prompt
quotes back, so it must stay stable.
"""

from typing import Iterable, List, Sequence, Tuple
from urllib.parse import urlparse

from .metrics import SemanticLog


def format_duration(ms: int) -> str:
    """Session-relative milliseconds as zero-padded MM:SS."""
    seconds = max(0, int(ms)) // 1000
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_time(ms: int) -> str:
    return f"[{format_duration(ms)}]"


def render_log_line(log: SemanticLog) -> str:
    line = f"{log.timestamp} {log.action}"
    if log.details:
        line += f": {log.details}"
    if log.flags:
        line += " " + " ".join(log.flags)
    return line


def render_transcript(logs: Iterable[SemanticLog]) -> str:
    return "\n".join(render_log_line(log) for log in logs)


def _host(url: str) -> str:
    url = str(url)
    try:
        return urlparse(url).hostname or url
    except ValueError:
        return url


def render_logs(
    drafts: Sequence,
    start_time: int,
    page_url: str = "",
    page_title: str = "",
) -> Tuple[SemanticLog, ...]:
    """
    Convert classifier log drafts into SemanticLogs.

    A "Session Started" context line is prepended when the page URL is
    known and there is at least one interaction to describe.
    """
    logs: List[SemanticLog] = []
    if drafts and page_url:
        details = f"on {_host(page_url)}"
        if page_title:
            details += f' - "{page_title}"'
        logs.append(SemanticLog(format_time(0), "Session Started", details, (), start_time))

    for draft in drafts:
        logs.append(SemanticLog(
            timestamp=format_time(draft.timestamp - start_time),
            action=draft.action,
            details=draft.details,
            flags=tuple(draft.flags),
            raw_timestamp=draft.timestamp,
        ))
    return tuple(logs)
