"""Pytest configuration and fixtures for api-request tests.

This file provides:
- Shared data objects built from tests.request_fixtures
- write_yaml: a helper fixture for endpoint tables and settings files
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from tests.request_fixtures import Direction, PullFilter, Sort, State


@pytest.fixture
def pull_filter() -> PullFilter:
    """A PullFilter with every field set."""
    return PullFilter(
        owner="apache",
        repo="orange",
        state=State.CLOSED,
        head="cabeza",
        base="orange",
        sort=Sort.POPULARITY,
        direction=Direction.DESC,
        link="http://bar.example.com/",
        draft=True,
    )


@pytest.fixture
def write_yaml(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write data as YAML into tmp_path and return the file path.

    Strings are written verbatim, anything else through yaml.safe_dump.
    """

    def _write(filename: str, data: Any) -> Path:
        path = tmp_path / filename
        text = data if isinstance(data, str) else yaml.safe_dump(data, sort_keys=False)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
