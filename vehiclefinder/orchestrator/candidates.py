"""
Plate / stock-ID candidate extraction from raw OCR text.

Two tiers:
  1. plate pattern (UK format, then a looser letters-digits-letters shape)
  2. generic stock ID: any 3-15 char alphanumeric run, longest first

Plate matches rank above generic ones. Dedup is by exact string, so a plate
and a fragment of it (AB12CDE / CDE) are both returned.
"""
import re

PLATE_RE = re.compile(r"[A-Z]{2}[0-9]{2}\s?[A-Z]{3}|[A-Z]{1,3}[0-9]{1,4}[A-Z]{0,3}")
STOCK_ID_RE = re.compile(r"[A-Z0-9]{3,15}")

PLATE_LEN = (5, 12)
STOCK_ID_LEN = (3, 15)

_WS_RE = re.compile(r"\s")


def _normalize(match: str) -> str:
    return _WS_RE.sub("", match)


def _in_range(value: str, bounds: tuple[int, int]) -> bool:
    lo, hi = bounds
    return lo <= len(value) <= hi


def extract_candidates(text) -> list[str]:
    if not text or not isinstance(text, str):
        return []
    t = text.upper().strip()
    if not t:
        return []

    seen: set[str] = set()
    results: list[str] = []

    def _add(value: str):
        if value not in seen:
            seen.add(value)
            results.append(value)

    plates = [_normalize(m) for m in PLATE_RE.findall(t)]
    for p in plates:
        if _in_range(p, PLATE_LEN):
            _add(p)

    stock_ids = [_normalize(m) for m in STOCK_ID_RE.findall(t)]
    stock_ids = [s for s in stock_ids if _in_range(s, STOCK_ID_LEN)]
    # sorted() is stable: equal lengths keep their order in the text
    for s in sorted(stock_ids, key=len, reverse=True):
        _add(s)

    return results


def extract_best(text) -> str | None:
    found = extract_candidates(text)
    return found[0] if found else None
