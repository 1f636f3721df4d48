"""FastAPI application exposing clip planning and speaker assignment.

WHY: Editing front-ends and automation (n8n, curl, the video engine) need
an HTTP API to plan a clip from a transcript edit, extract speaker
snippets, drive the speaker-to-face assignment flow across several
requests, and check exported preload scripts. FastAPI provides request
validation and automatic OpenAPI documentation.

HOW: A single FastAPI app with endpoints grouped by tags. Clip planning,
snippet extraction and preload validation are synchronous pure
computations answered in the request. Assignment flows are stateful and
kept in an AssignmentSessionStore; a lifespan task expires idle sessions.

RULES:
- All endpoints have OpenAPI descriptions on every response
- Error responses use a consistent ErrorResponse schema
- 404 for unknown session ids, 409 for invalid assignment transitions,
  422 for edits that produce no clip, 429 when the session store is full
- The session store is a module-level singleton
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import Response

from clip_refiner import __version__
from clip_refiner.config import LOG_LEVEL, MIN_CLIP_DURATION_SECONDS
from clip_refiner.core.preload import PreloadScriptError, parse_preload_script
from clip_refiner.formatters import FORMATTERS
from clip_refiner.pipeline import ClipPlan, refine_clip
from clip_refiner.server.models import (
    AssignmentBeginRequest,
    AssignmentResponse,
    CaptionCueModel,
    ErrorResponse,
    FaceModel,
    FaceSelectionRequest,
    FormatInfo,
    HealthResponse,
    KeepRangeModel,
    PreloadValidationResponse,
    RangeMappingModel,
    RefinementRequest,
    RefinementResponse,
    SnippetRequest,
    SnippetResponse,
    SpeakerSnippetModel,
    WordModel,
)
from clip_refiner.server.sessions import AssignmentSessionStore, SessionRecord
from clip_refiner.speakers.assignment import (
    AssignmentError,
    AwaitingConfirmation,
    Resolved,
    resolve_assigned_faces,
)
from clip_refiner.speakers.snippets import build_speaker_snippets, count_speakers

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

session_store = AssignmentSessionStore()


async def _periodic_cleanup() -> None:
    """Expire idle assignment sessions every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        session_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Clip Refiner API",
    description=(
        "REST API for turning an AI transcript edit into a playable clip: "
        "keep ranges on the source media, a compressed output timeline, "
        "caption cues, speaker snippets and speaker-to-face assignment."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _plan_to_response(plan: ClipPlan, format_keys: List[str]) -> RefinementResponse:
    """Convert a ClipPlan to a RefinementResponse, rendering requested outputs."""
    outputs: Dict[str, str] = {}
    for key in format_keys:
        for output in FORMATTERS[key]().format(plan):
            outputs[output.suffix] = output.content

    refinement = plan.refinement
    return RefinementResponse(
        words=[WordModel.from_word(w) for w in plan.words],
        keep_ranges=[
            KeepRangeModel(start=r.start, end=r.end, speaker_id=speaker)
            for r, speaker in zip(plan.keep_ranges, plan.range_speakers)
        ],
        mappings=[
            RangeMappingModel(start=m.start, end=m.end, timeline_start=m.timeline_start)
            for m in plan.mappings
        ],
        captions=[
            CaptionCueModel(text=c.text, start=c.start, duration=c.duration)
            for c in plan.captions
        ],
        total_duration=plan.total_duration,
        output_duration=plan.output_duration,
        hook=plan.hook,
        default_concept_id=refinement.default_concept_id if refinement else None,
        outputs=outputs,
    )


def _record_to_response(record: SessionRecord) -> AssignmentResponse:
    """Convert a stored assignment session to an AssignmentResponse."""
    state = record.session.state
    response = AssignmentResponse(id=record.id, state=state.name)

    if isinstance(state, AwaitingConfirmation):
        response.queue = list(state.queue)
        response.available_slots = list(state.available_slots)
        response.active_speaker = state.active_speaker
        response.assignment = state.assignment_dict()
    elif isinstance(state, Resolved):
        assignment = state.assignment_dict()
        faces = resolve_assigned_faces(
            assignment,
            record.faces_by_speaker,
            speaker_ids=[s.id for s in record.snippets],
        )
        response.assignment = assignment
        response.faces = {sid: FaceModel.from_face(face) for sid, face in faces.items()}
    return response


def _get_record_or_404(session_id: str) -> SessionRecord:
    record = session_store.get(session_id)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail="Assignment session not found: {}".format(session_id),
        )
    return record


# ---------------------------------------------------------------------------
# Endpoints: Refinements
# ---------------------------------------------------------------------------


@app.post(
    "/refinements",
    response_model=RefinementResponse,
    tags=["refinements"],
    summary="Plan a clip from a transcript edit",
    description=(
        "Reconcile an edit (freeform edited text, or an edit service payload) "
        "with the time-coded source transcript. Returns keep ranges on the "
        "source, their placement on the output timeline and caption cues. "
        "Requested output formats are rendered inline, keyed by file suffix."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid edit or caption preset"},
        422: {"model": ErrorResponse, "description": "The edit produced no clip"},
    },
)
async def create_refinement(request: RefinementRequest) -> RefinementResponse:
    if (request.edit_text is None) == (request.refinement is None):
        raise HTTPException(
            status_code=400,
            detail="Exactly one of 'edit_text' or 'refinement' is required",
        )

    words = sorted((w.to_word() for w in request.words), key=lambda w: w.start)
    total_duration = request.total_duration or words[-1].end
    min_duration = (
        request.min_clip_duration
        if request.min_clip_duration is not None
        else MIN_CLIP_DURATION_SECONDS
    )
    edit: Any = request.edit_text if request.edit_text is not None else request.refinement

    try:
        plan = refine_clip(
            words,
            edit,
            total_duration,
            min_range_duration=min_duration,
            caption_preset=request.caption_preset,
        )
    except ValueError as exc:
        logger.warning("Refinement rejected: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))

    if plan.is_empty:
        logger.info("Refinement produced no clip (%d source words)", len(words))
        raise HTTPException(
            status_code=422,
            detail="No clips generated: the edit did not match the transcript",
        )

    format_keys = [f.value for f in request.output_formats or []]
    return _plan_to_response(plan, format_keys)


# ---------------------------------------------------------------------------
# Endpoints: Speakers
# ---------------------------------------------------------------------------


@app.post(
    "/speaker-snippets",
    response_model=SnippetResponse,
    tags=["speakers"],
    summary="Extract one snippet per speaker",
    description=(
        "Pick a representative speaking window for every diarized speaker, "
        "used to show the person who is talking during face assignment."
    ),
)
async def create_speaker_snippets(request: SnippetRequest) -> SnippetResponse:
    words = sorted((w.to_word() for w in request.words), key=lambda w: w.start)
    snippets = build_speaker_snippets(words, request.total_duration)
    return SnippetResponse(
        speaker_count=count_speakers(words),
        snippets=[SpeakerSnippetModel.from_snippet(s) for s in snippets],
    )


# ---------------------------------------------------------------------------
# Endpoints: Assignments
# ---------------------------------------------------------------------------


@app.post(
    "/assignments",
    response_model=AssignmentResponse,
    status_code=201,
    tags=["assignments"],
    summary="Start a speaker-to-face assignment",
    description=(
        "Begin the assignment flow. Resolves immediately when there is at "
        "most one speaker or one face slot; otherwise asks for a face slot "
        "for the first speaker. Poll or answer via the returned id."
    ),
    responses={
        429: {"model": ErrorResponse, "description": "Too many open assignment sessions"},
    },
)
async def create_assignment(request: AssignmentBeginRequest) -> AssignmentResponse:
    snippets = [s.to_snippet() for s in request.snippets]
    faces = {
        speaker_id: [f.to_face() for f in entries]
        for speaker_id, entries in request.faces_by_speaker.items()
    }
    try:
        record = session_store.create(snippets, faces)
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    return _record_to_response(record)


@app.get(
    "/assignments/{session_id}",
    response_model=AssignmentResponse,
    tags=["assignments"],
    summary="Get assignment state",
    description="Returns the current state of an assignment flow.",
    responses={
        404: {"model": ErrorResponse, "description": "Assignment session not found"},
    },
)
async def get_assignment(session_id: str) -> AssignmentResponse:
    return _record_to_response(_get_record_or_404(session_id))


@app.post(
    "/assignments/{session_id}/selections",
    response_model=AssignmentResponse,
    tags=["assignments"],
    summary="Pick a face slot for the active speaker",
    description=(
        "Assign a free face slot to the speaker currently being asked about. "
        "When a single speaker and a single slot remain they are paired "
        "automatically and the flow resolves."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Assignment session not found"},
        409: {"model": ErrorResponse, "description": "Flow already resolved or slot not available"},
    },
)
async def select_face_slot(session_id: str, request: FaceSelectionRequest) -> AssignmentResponse:
    record = _get_record_or_404(session_id)
    try:
        session_store.select(session_id, request.slot_index)
    except AssignmentError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _record_to_response(record)


@app.delete(
    "/assignments/{session_id}",
    status_code=204,
    tags=["assignments"],
    summary="Discard an assignment session",
    description="Delete an assignment flow, finished or not.",
    responses={
        404: {"model": ErrorResponse, "description": "Assignment session not found"},
    },
)
async def delete_assignment(session_id: str) -> Response:
    if not session_store.delete(session_id):
        raise HTTPException(
            status_code=404,
            detail="Assignment session not found: {}".format(session_id),
        )
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Preload scripts
# ---------------------------------------------------------------------------


@app.post(
    "/preload-scripts/validate",
    response_model=PreloadValidationResponse,
    tags=["preload-scripts"],
    summary="Validate a preload script",
    description=(
        "Check an exported preload script (version 1) and summarise it. "
        "Invalid documents return 400 with the offending field path."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid preload script"},
    },
)
async def validate_preload(payload: Any = Body(...)) -> PreloadValidationResponse:
    try:
        script = parse_preload_script(payload)
    except PreloadScriptError as exc:
        logger.warning("Preload script rejected: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))
    return PreloadValidationResponse(
        valid=True,
        word_count=len(script.words),
        speaker_count=len(script.speaker_snippets),
        thumbnail_count=len(script.thumbnails),
        primary_speaker_id=script.primary_speaker_id,
        max_faces=script.max_faces,
    )


# ---------------------------------------------------------------------------
# Endpoints: Formats
# ---------------------------------------------------------------------------


@app.get(
    "/formats",
    response_model=List[FormatInfo],
    tags=["formats"],
    summary="List available output formats",
    description="Returns all supported output formats with their identifiers and names.",
)
async def list_formats() -> List[FormatInfo]:
    return [
        FormatInfo(key=key, name=formatter_cls().name)
        for key, formatter_cls in sorted(FORMATTERS.items())
    ]


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness and readiness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api():
    """Entry point for the clip-refiner-api console script."""
    import uvicorn
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
