"""
Answer extraction from raw LLM text
Pulls an embedded chart JSON object out of free text and redacts ticket IDs
"""

import re
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Union

from pydantic import ValidationError

from rancho_assistant.intent import TICKET_ID_PATTERN
from rancho_assistant.schemas import ChartPayload

logger = logging.getLogger(__name__)

CHART_MARKER = re.compile(r'"type"\s*:\s*"chart"')
CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
REDACTION_MARKER = "[REDACTED]"


@dataclass
class BalancedSpan:
    """Location of a brace-balanced object; end is None when the object never closes"""
    start: int
    end: Optional[int]
    raw: str


@dataclass
class ExtractedAnswer:
    text: str
    chart: Optional[Dict[str, Any]] = None


def _find_open_brace(text: str, marker: Pattern[str]) -> Optional[int]:
    """Opening brace of the innermost object enclosing the first marker hit.

    Scans forward keeping a stack of open braces. Quotes are tracked only inside
    an object, so prose before the JSON may contain stray quote characters while
    braces inside JSON string values never count.
    """
    stack: List[int] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == "{":
            stack.append(i)
        elif ch == "}":
            if stack:
                stack.pop()
        elif ch == '"' and stack:
            if marker.match(text, i):
                return stack[-1]
            in_string = True
    return None


def _find_close_brace(text: str, start: int) -> Optional[int]:
    """Forward scan from an opening brace; braces inside JSON strings do not count"""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def extract_balanced_json(text: str, start_marker: Union[str, Pattern[str]]) -> Optional[BalancedSpan]:
    """Find the object enclosing the first start_marker match.

    Locates the enclosing opening brace, then scans forward counting brace
    depth until it returns to zero. Braces inside JSON strings are ignored.
    """
    if not text:
        return None
    marker = re.compile(re.escape(start_marker)) if isinstance(start_marker, str) else start_marker
    start = _find_open_brace(text, marker)
    if start is None:
        return None
    end = _find_close_brace(text, start)
    if end is None:
        return BalancedSpan(start=start, end=None, raw=text[start:])
    return BalancedSpan(start=start, end=end, raw=text[start:end + 1])


def _strip_span(text: str, span: BalancedSpan) -> str:
    tail = "" if span.end is None else text[span.end + 1:]
    cleaned = text[:span.start] + tail
    return CODE_FENCE.sub("", cleaned).strip()


def _validate_chart(parsed: Any) -> bool:
    if not isinstance(parsed, dict):
        return False
    try:
        ChartPayload.model_validate(parsed)
    except ValidationError as e:
        logger.info(f"Discarding chart payload: {e.error_count()} validation error(s)")
        return False
    return True


def extract_answer(raw_text: str) -> ExtractedAnswer:
    """Split raw LLM output into visible text and an optional chart object"""
    raw_text = raw_text or ""
    span = extract_balanced_json(raw_text, CHART_MARKER)
    if span is None:
        return ExtractedAnswer(text=raw_text, chart=None)
    if span.end is None:
        logger.info("Chart JSON is unterminated; falling back to plain text")
        return ExtractedAnswer(text=_strip_span(raw_text, span), chart=None)
    try:
        parsed = json.loads(span.raw)
    except ValueError:
        logger.info("Chart JSON failed to parse; falling back to plain text")
        return ExtractedAnswer(text=_strip_span(raw_text, span), chart=None)
    if not _validate_chart(parsed):
        return ExtractedAnswer(text=_strip_span(raw_text, span), chart=None)
    text = parsed.get("explanation") or parsed.get("title") or ""
    return ExtractedAnswer(text=text, chart=parsed)


def redact_ticket_ids(text: str) -> str:
    return TICKET_ID_PATTERN.sub(REDACTION_MARKER, text or "")


def render_answer(raw_text: str) -> ExtractedAnswer:
    """Extract the chart, then redact record identifiers from the visible text"""
    extracted = extract_answer(raw_text)
    extracted.text = redact_ticket_ids(extracted.text).strip()
    return extracted
