import json
import logging

import pytest


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test."""
    logger = logging.getLogger("covdiff")

    original_handlers = logger.handlers[:]
    original_propagate = logger.propagate
    original_level = logger.level

    logger.handlers.clear()
    logger.propagate = True

    yield

    logger.handlers = original_handlers
    logger.propagate = original_propagate
    logger.setLevel(original_level)


def metric_data(pct: float, total: int = 100) -> dict:
    return {
        "total": total,
        "covered": round(total * pct / 100),
        "skipped": 0,
        "pct": pct,
    }


def file_data(pct: float, total: int = 100) -> dict:
    return {
        "lines": metric_data(pct, total),
        "statements": metric_data(pct, total),
        "functions": metric_data(pct, total),
        "branches": metric_data(pct, total),
    }


@pytest.fixture
def make_summary():
    """Build an Istanbul coverage-summary dict from ``{path: pct}``."""

    def _make(files: dict[str, float], total_pct: float = 80.0) -> dict:
        data = {"total": file_data(total_pct, total=1234)}
        for path, pct in files.items():
            data[path] = file_data(pct)
        return data

    return _make


@pytest.fixture
def write_summary(tmp_path):
    def _write(name: str, data: dict):
        path = tmp_path / name
        path.write_text(json.dumps(data))
        return path

    return _write
