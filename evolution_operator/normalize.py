"""Helpers for turning free-text number lists into candidate sets."""
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from .models import CandidateSet

PathLike = Union[str, Path]

_DELIMITER = re.compile(r"\n|,")
_TEXT_SUFFIXES = {".txt", ""}
_CSV_SUFFIXES = {".csv", ".tsv"}
_EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
_COLUMN_SYNONYMS = ("number", "numbers", "phone", "phone_number", "whatsapp", "mobile")


class NoCandidatesError(ValueError):
    """Raised when the input contains no usable recipient identifiers."""

    def __init__(self, message: str = "No numbers provided") -> None:
        super().__init__(message)


def split_numbers(text: Optional[str]) -> List[str]:
    """Split on newlines or commas, trim and drop blanks; duplicates are kept."""

    tokens = [token.strip() for token in _DELIMITER.split(text or "")]
    return [token for token in tokens if token]


def parse_candidates(text: Optional[str]) -> CandidateSet:
    """Like :func:`split_numbers`, then deduplicate keeping the first occurrence."""

    tokens = split_numbers(text)

    seen: dict[str, None] = {}
    for token in tokens:
        seen.setdefault(token, None)

    unique = tuple(seen)
    return CandidateSet(identifiers=unique, duplicates=len(tokens) - len(unique))


def require_candidates(text: Optional[str]) -> CandidateSet:
    candidates = parse_candidates(text)
    if not candidates:
        raise NoCandidatesError()
    return candidates


def load_numbers_file(path: PathLike, *, column: Optional[str] = None) -> str:
    """Read identifiers from a text, CSV or Excel file and return them newline separated.

    Text files are returned as-is. For spreadsheets the ``column`` argument
    selects the column; otherwise the first column whose header looks like a
    phone column is used, falling back to the first column.
    """

    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(file_path)

    suffix = file_path.suffix.lower()
    if suffix in _TEXT_SUFFIXES:
        return file_path.read_text(encoding="utf-8-sig")

    if suffix in _CSV_SUFFIXES:
        separator = "\t" if suffix == ".tsv" else ","
        dataframe = pd.read_csv(file_path, dtype=str, sep=separator, keep_default_na=False)
    elif suffix in _EXCEL_SUFFIXES:
        dataframe = pd.read_excel(file_path, dtype=str).fillna("")
    else:
        raise ValueError(f"Unsupported numbers file type: {file_path.suffix}")

    if dataframe.empty or not len(dataframe.columns):
        return ""

    selected = _select_column(list(dataframe.columns), column)
    values: List[str] = [str(value).strip() for value in dataframe[selected].tolist()]
    return "\n".join(value for value in values if value)


def _select_column(columns: List[str], requested: Optional[str]) -> str:
    if requested:
        if requested not in columns:
            raise ValueError(f"Column '{requested}' not found. Available columns: {columns}")
        return requested

    for column in columns:
        normalised = str(column).strip().lower().replace(" ", "_")
        if normalised in _COLUMN_SYNONYMS:
            return column
    return columns[0]


__all__ = ["NoCandidatesError", "load_numbers_file", "parse_candidates", "require_candidates", "split_numbers"]
