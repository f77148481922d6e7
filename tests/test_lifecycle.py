import pytest

from app.core.errors import ConflictError
from app.domain.lifecycle import can_transition, ensure_transition


@pytest.mark.parametrize(
    "current, target",
    [
        ("uploading", "processing"),
        ("processing", "ready"),
        ("processing", "flagged"),
        ("processing", "failed"),
        ("ready", "flagged"),
        ("flagged", "ready"),
        ("failed", "processing"),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize(
    "current, target",
    [
        ("uploading", "ready"),
        ("ready", "uploading"),
        ("failed", "ready"),
        ("flagged", "failed"),
    ],
)
def test_forbidden_transitions(current, target):
    with pytest.raises(ConflictError):
        ensure_transition(current, target)
