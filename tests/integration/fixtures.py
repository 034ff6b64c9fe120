"""
Integration Test Fixtures

Explicit, deterministic fixtures for running the editor against the
in-memory development API. No random data.
"""

from typing import Tuple

from fastapi import FastAPI
from fastapi.testclient import TestClient

from editor.devserver import InMemoryStore, create_app
from editor.figures import FigureUpload
from editor.models.entities import AbstractGroup, Conference
from editor.transport.client import EditorApiClient


CONFERENCE_ID = "conf-1"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


# =============================================================================
# SERVER FIXTURES
# =============================================================================

def create_store() -> InMemoryStore:
    """Store holding one open conference with two groups."""
    store = InMemoryStore()
    store.add_conference(Conference(
        uuid=CONFERENCE_ID,
        name="Bernstein Conference",
        short="BC",
        is_open=True,
        groups=[
            AbstractGroup(prefix=1, name="Neurons", short="N"),
            AbstractGroup(prefix=2, name="Networks", short="W"),
        ]
    ))
    return store


def create_api(store: InMemoryStore) -> Tuple[FastAPI, EditorApiClient]:
    """App plus an editor client talking to it in-process."""
    app = create_app(store)
    http = TestClient(app, base_url="http://testserver/api")
    return app, EditorApiClient(http)


# =============================================================================
# RECORD FIXTURES
# =============================================================================

def create_abstract_record() -> dict:
    """Abstract that validates without errors or warnings."""
    return {
        "title": "Place cells remap in darkness",
        "topic": "Neurons",
        "text": "We recorded place cells.\nThey remapped.",
        "acknowledgements": "Funded by the BMBF.",
        "authors": [
            {"first_name": "Santiago", "last_name": "Ramon y Cajal", "affiliations": [0]},
            {"first_name": "Camillo", "last_name": "Golgi", "affiliations": [0, 1]},
        ],
        "affiliations": [
            {"name": "Instituto Cajal", "country": "Spain"},
            {"name": "University of Pavia", "country": "Italy"},
        ],
        "references": [
            {"authors": "O'Keefe J", "title": "Place units", "year": "1976"},
        ],
    }


def create_figure(name: str = "figure.png", caption: str = "Remapping") -> FigureUpload:
    return FigureUpload(filename=name, payload=PNG_BYTES, caption=caption, content_type="image/png")
