"""Shared fixtures: in-memory page surfaces, a tiny PDF, sample responses."""

import json

import fitz
import numpy as np
import pytest

from pageoverlay.models import PageInfo
from pageoverlay.pages import PageMetadataStore
from pageoverlay.surface import PageSurface, SurfaceSet


def blank_surface(page_number: int, width: int, height: int) -> PageSurface:
    return PageSurface(page_number, np.full((height, width, 3), 255, dtype=np.uint8))


@pytest.fixture
def make_surface():
    return blank_surface


@pytest.fixture
def pages():
    """Two US-letter-ish pages of 600x800 document units."""
    return PageMetadataStore([
        PageInfo(page_number=1, width=600.0, height=800.0),
        PageInfo(page_number=2, width=600.0, height=800.0),
    ])


@pytest.fixture
def surfaces():
    """Both pages rendered at 1.5x: 900x1200 pixels."""
    return SurfaceSet({
        1: blank_surface(1, 900, 1200),
        2: blank_surface(2, 900, 1200),
    })


@pytest.fixture
def sample_payload():
    return {
        "pages": [
            {"page_height": 800.0, "page_width": 600.0},
            {"page_height": 800.0, "page_width": 600.0},
        ],
        "formulas": [
            {"id": "formula_1", "pos": [{"p": 1, "x": 100, "y": 300, "w": 200, "h": 20}]},
        ],
        "formulaMarkers": [
            {"id": "formula_1", "p": 1, "x": 50, "y": 500, "w": 10, "h": 8},
        ],
        "figures": [
            {"id": "fig_0", "pos": [
                {"p": 2, "x": 300, "y": 100, "w": 100, "h": 50},
                {"p": 2, "x": 100, "y": 200, "w": 50, "h": 50},
                {"p": 2, "x": 200, "y": 50, "w": 20, "h": 20},
            ]},
        ],
        "figureMarkers": [
            {"id": "fig_0", "p": 1, "x": 60, "y": 520, "w": 12, "h": 8},
            {"id": "fig_9", "p": 1, "x": 80, "y": 520, "w": 12, "h": 8},
        ],
        "tables": [],
        "refBibs": [
            {"id": "b1", "pos": [
                {"p": 1, "x": 10, "y": 100, "w": 50, "h": 10},
                {"p": 1, "x": 15, "y": 150, "w": 60, "h": 12},
            ]},
            {"id": "b2", "url": "https://doi.org/10.1000/xyz", "pos": [
                {"p": 2, "x": 10, "y": 600, "w": 80, "h": 10},
            ]},
            {"pos": [{"p": 2, "x": 10, "y": 700, "w": 80, "h": 10}]},
        ],
        "refMarkers": [
            {"id": "b1", "p": 1, "x": 5, "y": 20, "w": 8, "h": 8},
            {"p": 1, "x": 25, "y": 20, "w": 8, "h": 8},
        ],
    }


@pytest.fixture
def sample_pdf(tmp_path):
    """A two-page 600x800 PDF."""
    path = tmp_path / "paper.pdf"
    doc = fitz.open()
    for i in range(2):
        page = doc.new_page(width=600, height=800)
        page.insert_text((72, 72), f"Page {i + 1}")
    doc.save(path)
    doc.close()
    return path


@pytest.fixture
def sample_response_file(tmp_path, sample_payload):
    path = tmp_path / "response.json"
    path.write_text(json.dumps(sample_payload))
    return path
