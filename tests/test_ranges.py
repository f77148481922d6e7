import pytest

from app.core.errors import RangeNotSatisfiableError
from app.utils.ranges import parse_range_header


@pytest.mark.parametrize(
    "header, expected",
    [
        (None, None),
        ("", None),
        ("bytes=0-9", (0, 9)),
        ("bytes=10-", (10, 99)),
        ("bytes=-20", (80, 99)),
        ("bytes=90-500", (90, 99)),
        ("bytes=-500", (0, 99)),
    ],
)
def test_parse_range(header, expected):
    assert parse_range_header(header, 100) == expected


@pytest.mark.parametrize(
    "header",
    ["bytes=100-", "bytes=50-10", "items=0-1", "bytes=0-1,5-6", "bytes=a-b", "bytes=-0", "bytes=5"],
)
def test_unsatisfiable_range(header):
    with pytest.raises(RangeNotSatisfiableError) as exc:
        parse_range_header(header, 100)
    assert exc.value.size == 100
