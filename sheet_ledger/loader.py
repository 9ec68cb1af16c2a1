"""
loader.py: file loader behind the local Row Source

Supports: .csv .tsv .txt .xlsx .xlsm .json .jsonl

Public API:
    rows   = load_rows("path/to/orders.csv")
    result = load_file("path/to/book.xlsx", sheet_name="orders_raw")
    df     = result["dataframe"]

Result dict keys:
    dataframe         : pandas DataFrame, every cell read as text
    detected_format   : "csv", "xlsx", "json", etc.
    detected_encoding : encoding name for text files; None for workbooks
    delimiter         : delimiter char for text files; None otherwise
    sheet_name        : active sheet name for workbooks; None otherwise
    sheet_names       : all available sheet names for workbooks; None otherwise
    warnings          : list of warning strings
"""

from __future__ import annotations

import csv
import io
import json as _json
import re
from collections import Counter
from pathlib import Path
from typing import Any, Optional

import chardet
import pandas as pd

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS  = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xlsm"}
JSON_FORMATS  = {".json"}
JSONL_FORMATS = {".jsonl"}
ALL_FORMATS   = TEXT_FORMATS | EXCEL_FORMATS | JSON_FORMATS | JSONL_FORMATS

UNNAMED_COLUMN_RE = re.compile(r"^Unnamed: (\d+)$")


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw)
    detected = result.get("encoding") or ""
    return detected or "utf-8"


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line:
      1. Try UTF-8
      2. Try preferred_encoding (chardet result)
      3. Try latin-1
      4. CP1252 with replace (never crashes)

    Also strips embedded null bytes and a leading BOM.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc:
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines).lstrip("\ufeff")


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITER DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_delimiter(text: str) -> str:
    """
    Infer CSV delimiter from sample lines.

    Uses csv.Sniffer first; falls back to scoring each candidate delimiter by
    column-count consistency and column width.
    """
    sample_lines = [l for l in text.splitlines() if l.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            sniffed = csv.Sniffer().sniff(sample, delimiters=",;\t|")
            return sniffed.delimiter
        except csv.Error:
            pass

    best_delim = ","
    best_score = float("-inf")
    for delim in [",", ";", "\t", "|"]:
        rows = [
            row
            for row in csv.reader(io.StringIO("\n".join(sample_lines)), delimiter=delim)
            if any(cell.strip() for cell in row)
        ]
        if len(rows) < 2:
            continue
        widths = Counter(len(row) for row in rows)
        mode_width, mode_count = widths.most_common(1)[0]
        score = (mode_width * 2.0) + (mode_count / len(rows)) * mode_width
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_score = score
            best_delim = delim
    return best_delim


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _load_text(path: Path, suffix: str) -> dict:
    """Load .csv, .tsv, or .txt file into a pandas DataFrame."""
    raw  = path.read_bytes()
    enc  = _detect_encoding(raw)
    text = _read_text_safely(raw, enc)

    if not text.strip():
        return {
            "dataframe":         pd.DataFrame(),
            "detected_format":   suffix.lstrip("."),
            "detected_encoding": enc,
            "delimiter":         None,
            "sheet_name":        None,
            "sheet_names":       None,
            "warnings":          ["File is empty"],
        }

    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)
    sep = r"\|" if delimiter == "|" else delimiter
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            on_bad_lines="skip",
            sep=sep,
            engine="python",
        )
    except Exception as exc:
        raise ValueError(f"Could not parse {suffix} file: {exc}") from exc

    return {
        "dataframe":         df,
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": enc,
        "delimiter":         delimiter,
        "sheet_name":        None,
        "sheet_names":       None,
        "warnings":          [],
    }


def workbook_sheet_names(path: "str | Path") -> list[str]:
    try:
        with pd.ExcelFile(path, engine="openpyxl") as xf:
            return list(xf.sheet_names)
    except Exception as exc:
        raise ValueError(f"Could not open workbook: {exc}") from exc


def _load_excel(path: Path, suffix: str, sheet_name: Optional[str] = None) -> dict:
    """
    Load one sheet of an .xlsx/.xlsm workbook.

    Without a sheet_name the first sheet is used and the others are listed
    in the warnings.
    """
    warnings: list[str] = []
    all_sheets = workbook_sheet_names(path)
    if not all_sheets:
        raise ValueError("Workbook has no sheets")

    if sheet_name is None:
        chosen_name = all_sheets[0]
        if len(all_sheets) > 1:
            warnings.append(
                f"Multiple sheets found ({len(all_sheets)} total); "
                f"used '{chosen_name}'. Ignored: {all_sheets[1:]}"
            )
    elif sheet_name not in all_sheets:
        raise ValueError(f"Sheet '{sheet_name}' not found. Available: {all_sheets}")
    else:
        chosen_name = sheet_name

    try:
        df = pd.read_excel(path, sheet_name=chosen_name, dtype=str, engine="openpyxl")
    except Exception as exc:
        raise ValueError(f"Could not load sheet '{chosen_name}': {exc}") from exc

    return {
        "dataframe":         df,
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": None,
        "delimiter":         None,
        "sheet_name":        chosen_name,
        "sheet_names":       all_sheets,
        "warnings":          warnings,
    }


def _load_json(path: Path) -> dict:
    """
    Load a .json file containing either an array of objects or a nested dict.

    Arrays → directly converted to a DataFrame.
    Dicts  → uses the first top-level list value; otherwise the whole dict
             becomes a single-row table.
    """
    raw  = path.read_bytes()
    enc  = _detect_encoding(raw)
    text = raw.decode(enc, errors="replace").lstrip("\ufeff")

    try:
        data = _json.loads(text)
    except _json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc}") from exc

    warnings: list[str] = []
    if isinstance(data, list):
        records = data
    elif isinstance(data, dict):
        list_keys = [k for k, v in data.items() if isinstance(v, list)]
        if list_keys:
            key     = list_keys[0]
            records = data[key]
            warnings.append(f"Nested JSON: used array at top-level key '{key}'")
        else:
            records = [data]
            warnings.append("JSON is a single object; treated as a one-row table")
    else:
        raise ValueError(f"JSON root must be an array or object, got {type(data).__name__}")

    try:
        df = pd.json_normalize(records) if records else pd.DataFrame()
    except Exception as exc:
        raise ValueError(f"Could not flatten JSON records: {exc}") from exc

    return {
        "dataframe":         df,
        "detected_format":   "json",
        "detected_encoding": enc,
        "delimiter":         None,
        "sheet_name":        None,
        "sheet_names":       None,
        "warnings":          warnings,
    }


def _load_jsonl(path: Path) -> dict:
    """
    Load a .jsonl (JSON Lines) file, one JSON object per line.

    Blank lines, parse errors and lines that are not JSON objects are
    skipped with a warning.
    """
    raw  = path.read_bytes()
    enc  = _detect_encoding(raw)
    text = raw.decode(enc, errors="replace").lstrip("\ufeff")

    records: list[dict] = []
    parse_errors: list[str] = []
    for line_num, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            record = _json.loads(line)
        except _json.JSONDecodeError as exc:
            parse_errors.append(f"line {line_num}: {exc}")
            continue
        if not isinstance(record, dict):
            parse_errors.append(f"line {line_num}: expected an object, got {type(record).__name__}")
            continue
        records.append(record)

    warnings: list[str] = []
    if parse_errors:
        sample = "; ".join(parse_errors[:3])
        extra  = f" (+{len(parse_errors) - 3} more)" if len(parse_errors) > 3 else ""
        warnings.append(f"{len(parse_errors)} lines could not be parsed: {sample}{extra}")

    try:
        df = pd.json_normalize(records) if records else pd.DataFrame()
    except Exception as exc:
        raise ValueError(f"Could not flatten JSON records: {exc}") from exc

    return {
        "dataframe":         df,
        "detected_format":   "jsonl",
        "detected_encoding": enc,
        "delimiter":         None,
        "sheet_name":        None,
        "sheet_names":       None,
        "warnings":          warnings,
    }


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def load_file(path: "str | Path", sheet_name: Optional[str] = None) -> dict:
    """
    Load any supported file into a pandas DataFrame.

    Raises:
        FileNotFoundError  if the file does not exist.
        ValueError         if the format is unsupported or unreadable.
    """
    path   = Path(path)
    suffix = path.suffix.lower()

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

    if suffix in TEXT_FORMATS:
        return _load_text(path, suffix)
    if suffix in EXCEL_FORMATS:
        return _load_excel(path, suffix, sheet_name)
    if suffix in JSON_FORMATS:
        return _load_json(path)
    return _load_jsonl(path)


def column_label(column: Any) -> str:
    """Sheet-style label for a DataFrame column; unnamed columns become ColumnN."""
    text = str(column).strip()
    match = UNNAMED_COLUMN_RE.match(text)
    if match:
        return f"Column{int(match.group(1)) + 1}"
    return text or "Column"


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and not value.strip()


def dataframe_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    """
    Convert a DataFrame into raw rows.

    Blank cells become "" and rows whose cells are all blank are skipped.
    """
    labels = [column_label(column) for column in df.columns]
    rows: list[dict[str, Any]] = []
    for values in df.itertuples(index=False, name=None):
        if all(_blank(value) for value in values):
            continue
        rows.append({label: ("" if _blank(value) else value) for label, value in zip(labels, values)})
    return rows


def load_rows(path: "str | Path", sheet_name: Optional[str] = None) -> list[dict[str, Any]]:
    return dataframe_to_rows(load_file(path, sheet_name=sheet_name)["dataframe"])
