"""
Abstracts Development Server
============================

In-memory stand-in for the conference backend, speaking the same wire
format as the real API. Used for local development and integration tests.

Endpoints (all under /api):
- GET    /conferences/{id}              -> conference record
- GET    /abstracts/{id}                -> abstract record
- POST   /conferences/{id}/abstracts    -> create abstract
- PUT    /abstracts/{id}                -> update abstract
- POST   /abstracts/{id}/figures        -> upload figure (multipart)
- DELETE /figures/{id}                  -> delete figure
- GET    /figures/{id}/image            -> stored figure bytes

The server enforces the same transition table as the editor, so an
illegal save is refused here too (409).

Usage:
    uvicorn editor.devserver:app --reload
"""

from __future__ import annotations
from typing import Any, Dict, Optional
import logging
import uuid

from fastapi import APIRouter, Body, Depends, FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from .contracts.base import AbstractState
from .figures import FigureUpload, check_figure
from .models.entities import Abstract, AbstractGroup, Conference, Figure
from .models.marshaller import Marshaller, MarshallingError
from .transport.contracts import Record
from .workflow.state_machine import is_transition_legal

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


# =============================================================================
# STORE
# =============================================================================

class StoreError(Exception):
    """Base class for store failures."""


class NotFoundError(StoreError):
    pass


class ConflictError(StoreError):
    """Request is well formed but not acceptable in the current state."""


def _new_id() -> str:
    return uuid.uuid4().hex


class InMemoryStore:
    """
    Conferences, abstracts and figures kept as entities in plain dicts.

    The store owns the opaque fields: owner locators, figure lists and
    figure file URLs are always set here, never taken from a request.
    """

    def __init__(self, marshaller: Optional[Marshaller] = None):
        self._marshaller = marshaller or Marshaller()
        self.conferences: Dict[str, Conference] = {}
        self.abstracts: Dict[str, Abstract] = {}
        self.figures: Dict[str, Figure] = {}
        self._abstract_conference: Dict[str, str] = {}
        self._figure_abstract: Dict[str, str] = {}
        self._figure_files: Dict[str, FigureUpload] = {}

    # -------------------------------------------------------------------------
    # Conferences
    # -------------------------------------------------------------------------

    def add_conference(self, conference: Conference) -> Conference:
        conference = conference.clone()
        if conference.uuid is None:
            conference.assign_identity(_new_id())
        conference.owners = f"{API_PREFIX}/conferences/{conference.uuid}/owners"
        conference.abstracts = f"{API_PREFIX}/conferences/{conference.uuid}/abstracts"
        self.conferences[conference.uuid] = conference
        return conference

    def get_conference(self, conference_id: str) -> Conference:
        try:
            return self.conferences[conference_id]
        except KeyError:
            raise NotFoundError(f"conference {conference_id} not found")

    # -------------------------------------------------------------------------
    # Abstracts
    # -------------------------------------------------------------------------

    def get_abstract(self, abstract_id: str) -> Abstract:
        try:
            return self.abstracts[abstract_id]
        except KeyError:
            raise NotFoundError(f"abstract {abstract_id} not found")

    def create_abstract(self, conference_id: str, record: Record) -> Abstract:
        self.get_conference(conference_id)
        abstract = self._marshaller.decode(Abstract.SCHEMA, record)

        if abstract.uuid is not None:
            raise ConflictError("a new abstract must not carry an identity")
        if not is_transition_legal(False, None, abstract.state):
            raise ConflictError(f"a new abstract cannot start in state {abstract.state}")

        abstract.assign_identity(_new_id())
        abstract.owners = f"{API_PREFIX}/abstracts/{abstract.uuid}/owners"
        abstract.figures = []

        self.abstracts[abstract.uuid] = abstract
        self._abstract_conference[abstract.uuid] = conference_id
        logger.info("Created abstract %s in conference %s", abstract.uuid, conference_id)
        return abstract

    def update_abstract(self, abstract_id: str, record: Record) -> Abstract:
        current = self.get_abstract(abstract_id)
        candidate = self._marshaller.decode(Abstract.SCHEMA, record)

        if candidate.uuid not in (None, abstract_id):
            raise ConflictError(f"record identity {candidate.uuid} does not match {abstract_id}")
        if not is_transition_legal(True, current.state, candidate.state):
            raise ConflictError(f"illegal state change {current.state} -> {candidate.state}")

        candidate.uuid = abstract_id
        candidate.owners = current.owners
        candidate.figures = current.figures

        self.abstracts[abstract_id] = candidate
        logger.info("Updated abstract %s (%s -> %s)", abstract_id, current.state, candidate.state)
        return candidate

    def set_state(self, abstract_id: str, state: AbstractState) -> Abstract:
        """Change state outside the editor workflow, as reviewers do."""
        abstract = self.get_abstract(abstract_id)
        abstract.state = state
        return abstract

    # -------------------------------------------------------------------------
    # Figures
    # -------------------------------------------------------------------------

    def add_figure(self, abstract_id: str, upload: FigureUpload) -> Figure:
        abstract = self.get_abstract(abstract_id)

        figure = Figure(name=upload.filename, caption=upload.caption)
        figure.assign_identity(_new_id())
        figure.file = f"{API_PREFIX}/figures/{figure.uuid}/image"

        abstract.figures.append(figure)
        self.figures[figure.uuid] = figure
        self._figure_abstract[figure.uuid] = abstract_id
        self._figure_files[figure.uuid] = upload
        return figure

    def delete_figure(self, figure_id: str) -> Figure:
        if figure_id not in self.figures:
            raise NotFoundError(f"figure {figure_id} not found")

        figure = self.figures.pop(figure_id)
        abstract = self.abstracts[self._figure_abstract.pop(figure_id)]
        abstract.figures = [item for item in abstract.figures if item.uuid != figure_id]
        del self._figure_files[figure_id]
        return figure

    def figure_file(self, figure_id: str) -> FigureUpload:
        try:
            return self._figure_files[figure_id]
        except KeyError:
            raise NotFoundError(f"figure {figure_id} not found")

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def record(self, entity) -> Record:
        """Wire record including the server-owned opaque fields."""
        record = self._marshaller.encode(entity)
        if isinstance(entity, Abstract):
            record["owners"] = entity.owners
            record["figures"] = self._marshaller.encode_many(entity.figures)
        elif isinstance(entity, Conference):
            record["owners"] = entity.owners
            record["abstracts"] = entity.abstracts
        return record


def demo_store() -> InMemoryStore:
    """Store with one open conference, for trying the editor locally."""
    store = InMemoryStore()
    store.add_conference(Conference(
        uuid="demo",
        name="Demo Neuroscience Conference",
        short="DNC",
        is_open=True,
        groups=[
            AbstractGroup(prefix=1, name="Cellular Neuroscience", short="C"),
            AbstractGroup(prefix=2, name="Systems Neuroscience", short="S"),
        ]
    ))
    return store


# =============================================================================
# ROUTES
# =============================================================================

class FigureForm(BaseModel):
    """JSON metadata sent alongside a figure file."""
    caption: Optional[str] = None


router = APIRouter(prefix=API_PREFIX)


def get_store(request: Request) -> InMemoryStore:
    return request.app.state.store


def _not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


@router.get("/conferences/{conference_id}")
async def get_conference(conference_id: str, store: InMemoryStore = Depends(get_store)):
    try:
        return store.record(store.get_conference(conference_id))
    except NotFoundError as e:
        raise _not_found(e)


@router.get("/abstracts/{abstract_id}")
async def get_abstract(abstract_id: str, store: InMemoryStore = Depends(get_store)):
    try:
        return store.record(store.get_abstract(abstract_id))
    except NotFoundError as e:
        raise _not_found(e)


@router.post("/conferences/{conference_id}/abstracts", status_code=201)
async def create_abstract(
    conference_id: str,
    record: Dict[str, Any] = Body(...),
    store: InMemoryStore = Depends(get_store)
):
    try:
        return store.record(store.create_abstract(conference_id, record))
    except NotFoundError as e:
        raise _not_found(e)
    except MarshallingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.put("/abstracts/{abstract_id}")
async def update_abstract(
    abstract_id: str,
    record: Dict[str, Any] = Body(...),
    store: InMemoryStore = Depends(get_store)
):
    try:
        return store.record(store.update_abstract(abstract_id, record))
    except NotFoundError as e:
        raise _not_found(e)
    except MarshallingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/abstracts/{abstract_id}/figures", status_code=201)
async def upload_figure(
    abstract_id: str,
    file: UploadFile = File(...),
    figure: Optional[str] = Form(None),
    store: InMemoryStore = Depends(get_store)
):
    try:
        form = FigureForm.model_validate_json(figure) if figure else FigureForm()
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"invalid figure metadata: {e}")

    upload = FigureUpload(
        filename=file.filename or "figure",
        payload=await file.read(),
        caption=form.caption,
        content_type=file.content_type or "application/octet-stream"
    )

    problem = check_figure(upload)
    if problem is not None:
        raise HTTPException(status_code=415, detail=problem.message)

    try:
        return store.record(store.add_figure(abstract_id, upload))
    except NotFoundError as e:
        raise _not_found(e)


@router.delete("/figures/{figure_id}", status_code=204)
async def delete_figure(figure_id: str, store: InMemoryStore = Depends(get_store)):
    try:
        store.delete_figure(figure_id)
    except NotFoundError as e:
        raise _not_found(e)
    return Response(status_code=204)


@router.get("/figures/{figure_id}/image")
async def get_figure_image(figure_id: str, store: InMemoryStore = Depends(get_store)):
    try:
        upload = store.figure_file(figure_id)
    except NotFoundError as e:
        raise _not_found(e)
    return Response(content=upload.payload, media_type=upload.content_type)


# =============================================================================
# APPLICATION
# =============================================================================

def create_app(store: Optional[InMemoryStore] = None) -> FastAPI:
    app = FastAPI(
        title="Abstract Editor Development API",
        version="0.1.0",
        description="In-memory conference and abstract store"
    )
    app.state.store = store if store is not None else InMemoryStore()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        return {"status": "online", "abstracts": len(app.state.store.abstracts)}

    app.include_router(router)
    return app


app = create_app(demo_store())
