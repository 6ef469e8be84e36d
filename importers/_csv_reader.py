# importers/_csv_reader.py
"""
_csv_reader.py
--------------
Tolerant CSV tokenizer for marketplace settlement exports.

Marketplace exports arrive with whatever delimiter the store's back office
picked (comma, semicolon, tab or pipe), sometimes with a BOM and Windows line
endings. We sniff the delimiter from the first few lines and split each line
quote-aware.

Returns:
  ParsedCsv(headers, rows) -- rows are raw strings, never coerced
"""

from __future__ import annotations

from dataclasses import dataclass, field

from importers._errors import CsvParseError

DELIMITER_CANDIDATES = (",", ";", "\t", "|")
SAMPLE_LINES = 5
FALLBACK_ENCODINGS = ("utf-8-sig", "cp949")


@dataclass
class ParsedCsv:
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.headers


def split_line_quote_safe(line: str, delimiter: str) -> list[str]:
    """Split one line on ``delimiter`` while honouring double quotes."""
    out: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
            i += 1
            continue

        if not in_quotes and ch == delimiter:
            out.append("".join(current).strip())
            current = []
            i += 1
            continue

        current.append(ch)
        i += 1

    out.append("".join(current).strip())
    return [_strip_outer_quotes(value) for value in out]


def _strip_outer_quotes(value: str) -> str:
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value.strip()


def detect_delimiter(lines: list[str]) -> str:
    """
    Pick the delimiter that yields the most columns with the least variance.

    score = 10 * max_cols - (max_cols - min_cols); ties keep the earlier
    candidate, so comma wins when nothing is better.
    """
    sample = lines[:SAMPLE_LINES]
    if not sample:
        return DELIMITER_CANDIDATES[0]

    best = DELIMITER_CANDIDATES[0]
    best_score = None
    for delimiter in DELIMITER_CANDIDATES:
        counts = [len(split_line_quote_safe(line, delimiter)) for line in sample]
        max_cols = max(counts)
        min_cols = min(counts)
        score = max_cols * 10 - (max_cols - min_cols)
        if best_score is None or score > best_score:
            best_score = score
            best = delimiter
    return best


def _normalize_lines(text: str) -> list[str]:
    text = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    lines = []
    for raw in text.split("\n"):
        line = raw.lstrip("\ufeff").rstrip()
        if line.strip():
            lines.append(line)
    return lines


def parse_csv_text(text: str) -> ParsedCsv:
    """Parse raw CSV text into headers and raw string rows."""
    lines = _normalize_lines(text)
    if not lines:
        return ParsedCsv()

    delimiter = detect_delimiter(lines)
    headers = [h.strip() for h in split_line_quote_safe(lines[0], delimiter)]
    rows = [split_line_quote_safe(line, delimiter) for line in lines[1:]]
    return ParsedCsv(headers=headers, rows=rows)


def cell(row: list[str], index: int | None) -> str:
    """Return a trimmed cell, tolerating short rows and unmapped columns."""
    if index is None or index < 0 or index >= len(row):
        return ""
    return (row[index] or "").strip()


def decode_csv_bytes(payload: bytes) -> str:
    """Decode upload bytes as UTF-8 (BOM tolerant), falling back to CP949."""
    for encoding in FALLBACK_ENCODINGS:
        try:
            return payload.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise CsvParseError("CSV 파일 인코딩을 읽을 수 없습니다. (UTF-8 또는 CP949)")


def read_upload_text(uploaded_file) -> str:
    """Read a Django UploadedFile (or any binary file-like) into text."""
    try:
        payload = uploaded_file.read()
    except OSError as exc:
        raise CsvParseError(f"CSV 읽기 실패: {exc}") from exc
    if isinstance(payload, str):
        return payload
    return decode_csv_bytes(payload or b"")
