"""Pytest configuration: fast-by-default TDD setup.

Slow tests (real Tesseract OCR) are skipped unless --slow is passed.
Run the full suite:   pytest --slow
Run fast tests only:  pytest          (default)
"""
import cv2
import numpy as np
import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Run slow tests that call the real Tesseract binary",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--slow"):
        return  # run everything
    skip_slow = pytest.mark.skip(reason="slow test skipped, pass --slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def make_page(width=320, height=240, seed=0):
    """Synthetic faint document: pale paper with an illumination gradient
    and a few rows of dark "text" blocks."""
    rng = np.random.default_rng(seed)
    gradient = np.linspace(170, 220, width, dtype=np.float32)
    page = np.tile(gradient, (height, 1))
    page += rng.normal(0, 3, size=(height, width)).astype(np.float32)
    for top in range(30, height - 30, 30):
        for left in range(20, width - 30, 24):
            page[top:top + 12, left:left + 14] -= 60
    return np.clip(page, 0, 255).astype(np.uint8)


@pytest.fixture
def page():
    return make_page()


@pytest.fixture
def rgb_page():
    return cv2.cvtColor(make_page(), cv2.COLOR_GRAY2RGB)


@pytest.fixture
def page_file(tmp_path):
    """A synthetic RGB page on disk, with a white border for trimming."""
    img = np.full((280, 360), 255, dtype=np.uint8)
    img[20:260, 20:340] = make_page()
    path = tmp_path / "input" / "scan.jpg"
    path.parent.mkdir()
    cv2.imwrite(str(path), cv2.cvtColor(img, cv2.COLOR_GRAY2BGR))
    return path
