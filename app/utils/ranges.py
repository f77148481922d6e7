from typing import Optional, Tuple

from app.core.errors import RangeNotSatisfiableError


def parse_range_header(header: Optional[str], size: int) -> Optional[Tuple[int, int]]:
    """
    Interprète un en-tête HTTP Range ("bytes=start-end", "bytes=start-", "bytes=-suffix").
    Retourne (start, end) inclusifs, ou None si pas d'en-tête (fichier complet).
    Un seul intervalle est supporté. Lève RangeNotSatisfiableError sinon.
    """
    if not header:
        return None
    unit, _, spec = header.strip().partition("=")
    if unit.strip().lower() != "bytes" or not spec or "," in spec:
        raise RangeNotSatisfiableError(size)

    start_s, sep, end_s = spec.strip().partition("-")
    if not sep:
        raise RangeNotSatisfiableError(size)
    try:
        if start_s == "":
            # suffixe : les N derniers octets
            suffix = int(end_s)
            if suffix <= 0 or size == 0:
                raise RangeNotSatisfiableError(size)
            return max(size - suffix, 0), size - 1
        start = int(start_s)
        end = int(end_s) if end_s else size - 1
    except ValueError:
        raise RangeNotSatisfiableError(size)

    if start < 0 or start >= size or end < start:
        raise RangeNotSatisfiableError(size)
    return start, min(end, size - 1)
