"""
FastAPI control surface for the translator.

Lets external tooling drive the orchestrator over HTTP: switch language,
cancel, clear the cache and read status.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from uilingo import __version__
from uilingo.config import configure_logging, get_settings
from uilingo.core.events import Event, EventBus, EventTypes, get_event_bus
from uilingo.i18n import (
    AllProvidersFailedError,
    InMemoryHost,
    TranslationOrchestrator,
    UnknownLanguageError,
    load_source_dictionary,
)

logger = logging.getLogger(__name__)


# =============================================================================
# App State
# =============================================================================


class AppState:
    """Application state - initialized at startup."""

    host: InMemoryHost
    bus: EventBus
    orchestrator: TranslationOrchestrator


state = AppState()


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings = get_settings()
    configure_logging(settings.log_level)

    from uilingo.integrations.sentry import init_sentry
    if init_sentry():
        logger.info("Sentry error tracking enabled")

    source: dict[str, str] = {}
    if settings.source_path:
        source = load_source_dictionary(settings.source_path)
        logger.info(f"Loaded {len(source)} source strings from {settings.source_path}")

    state.host = InMemoryHost({settings.source_language: source}, source_code=settings.source_language)
    state.bus = get_event_bus()
    state.orchestrator = TranslationOrchestrator.from_settings(state.host, settings, bus=state.bus)
    state.orchestrator.attach()
    await state.orchestrator.start()

    logger.info(f"uilingo API starting in {settings.environment} mode")

    yield

    await state.orchestrator.close()
    logger.info("uilingo API shutting down")


# =============================================================================
# App Setup
# =============================================================================


app = FastAPI(
    title="uilingo API",
    description="Control surface for on-demand UI translation",
    version=__version__,
    lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Dependencies
# =============================================================================


def get_orchestrator() -> TranslationOrchestrator:
    return state.orchestrator


# =============================================================================
# Response Models
# =============================================================================


class LanguageResponse(BaseModel):
    code: str
    label: str
    flag: str
    builtin: bool
    cached: bool
    active: bool


class StatusResponse(BaseModel):
    plugin: str
    version: str
    active: str
    langs: list[str]
    cached: list[str]
    translating: str | None = None
    progress: float | None = None


class TranslateResponse(BaseModel):
    code: str
    status: str
    source: str | None = None


class CancelResponse(BaseModel):
    cancelled: bool


class EventAcceptedResponse(BaseModel):
    id: str
    type: str


# =============================================================================
# Routes
# =============================================================================


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "uilingo-api"}


@app.get("/languages", response_model=list[LanguageResponse])
async def list_languages(orchestrator: TranslationOrchestrator = Depends(get_orchestrator)):
    """The roster, with cached and active flags."""
    return await orchestrator.languages()


@app.get("/status", response_model=StatusResponse)
async def get_status(orchestrator: TranslationOrchestrator = Depends(get_orchestrator)):
    status: dict[str, Any] = await orchestrator.status()
    session = orchestrator.session
    if session is not None:
        status["translating"] = session.code
        status["progress"] = session.progress
    return status


@app.post("/translate/{code}", response_model=TranslateResponse)
async def translate(code: str, orchestrator: TranslationOrchestrator = Depends(get_orchestrator)):
    """Switch to a language, translating it first if needed."""
    try:
        outcome = await orchestrator.translate(code)
    except UnknownLanguageError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AllProvidersFailedError as e:
        raise HTTPException(status_code=502, detail=f"Translation failed: {e}")
    return outcome.to_dict()


@app.post("/cancel", response_model=CancelResponse)
async def cancel(orchestrator: TranslationOrchestrator = Depends(get_orchestrator)):
    return {"cancelled": orchestrator.cancel()}


@app.delete("/cache")
async def clear_cache(orchestrator: TranslationOrchestrator = Depends(get_orchestrator)):
    await orchestrator.clear_cache()
    return {"cleared": True}


@app.get("/strings/{code}")
async def get_strings(code: str, orchestrator: TranslationOrchestrator = Depends(get_orchestrator)):
    """The host's dictionary for a language, once it has one."""
    strings = orchestrator.host.dictionaries.get(code)
    if strings is None:
        raise HTTPException(status_code=404, detail=f"No strings for {code}")
    return strings


CONTROL_EVENTS = (EventTypes.TRANSLATE, EventTypes.CLEAR_CACHE, EventTypes.GET_STATUS)


@app.post("/events", response_model=EventAcceptedResponse)
async def post_event(
    data: dict[str, Any],
    orchestrator: TranslationOrchestrator = Depends(get_orchestrator),
):
    """
    Publish a control message in its flat wire shape, e.g.
    {"type": "translate", "code": "de"}. Replies show up on the bus.
    """
    if orchestrator.bus is None:
        raise HTTPException(status_code=503, detail="No event bus attached")
    try:
        event = Event.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Malformed event: {e}")
    if event.event_type not in CONTROL_EVENTS:
        raise HTTPException(status_code=422, detail=f"Not a control message: {event.event_type}")

    await orchestrator.bus.publish(event)
    return {"id": event.id, "type": event.event_type}
