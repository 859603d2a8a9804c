"""Challenge endpoints: registration, submission, polling and rankings.

Submission is fire-and-forget. ``POST /challenge/submit-audio`` stores the
upload, schedules the evaluation pipeline and answers 202 right away;
clients then poll ``GET /challenge/evaluation/{participant_id}``.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from app.config.settings import settings
from app.controllers.dependencies import EvaluationServiceDep
from app.models.evaluation_record import EvaluationRecord
from app.services.evaluation import InvalidSubmission, SubmissionRejected
from app.services.record_store import DuplicateContact, RecordNotFound, RecordSort
from app.services.storage import (
    StorageError,
    UploadTooLarge,
    check_upload,
    discard_submission_audio,
    save_submission_audio,
)
from app.views import (
    ContactCheckResponse,
    EvaluationStatusResponse,
    FeedbackView,
    LeaderboardEntryView,
    LeaderboardResponse,
    ParticipantDetailResponse,
    ParticipantDetailView,
    ParticipantListResponse,
    RegisterRequest,
    RegisterResponse,
    ScoresView,
    StatisticsResponse,
    StatisticsView,
    SubmitResponse,
)

router = APIRouter(prefix="/challenge", tags=["challenge"])

logger = logging.getLogger(__name__)

_PARTICIPANT_ID_FORM = Form(...)
_DURATION_FORM = Form(None)
_AUDIO_FILE_UPLOAD = File(...)


def _not_found(participant_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Participant {participant_id} not found",
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    service: EvaluationServiceDep,
) -> RegisterResponse:
    """Create the participant record; one per mobile number."""

    try:
        participant_id = await service.register(payload.name, payload.mobile)
    except InvalidSubmission as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    except DuplicateContact as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You have already submitted your response.",
        ) from exc

    return RegisterResponse(participant_id=str(participant_id))


@router.get("/check-contact/{mobile}")
async def check_contact(mobile: str, service: EvaluationServiceDep) -> ContactCheckResponse:
    return ContactCheckResponse(exists=await service.contact_exists(mobile))


@router.post("/submit-audio", status_code=status.HTTP_202_ACCEPTED)
async def submit_audio(
    service: EvaluationServiceDep,
    participant_id: UUID = _PARTICIPANT_ID_FORM,
    duration_seconds: Optional[float] = _DURATION_FORM,
    audio: UploadFile = _AUDIO_FILE_UPLOAD,
) -> SubmitResponse:
    """Store the recording and start the evaluation in the background."""

    # One byte past the limit is enough to tell an oversized upload apart.
    audio_bytes = await audio.read(settings.pipeline.max_upload_bytes + 1)
    audio_reference: Optional[str] = None
    try:
        check_upload(audio_bytes, audio.content_type)
        await service.ensure_submittable(participant_id)
        audio_reference = await save_submission_audio(
            participant_id,
            audio_bytes,
            filename=audio.filename,
        )
        await service.submit(participant_id, audio_reference, duration_seconds)
    except UploadTooLarge as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(exc),
        ) from exc
    except (InvalidSubmission, StorageError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except RecordNotFound as exc:
        raise _not_found(participant_id) from exc
    except SubmissionRejected as exc:
        if audio_reference is not None:
            await discard_submission_audio(audio_reference)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc

    return SubmitResponse()


@router.get("/evaluation/{participant_id}")
async def get_evaluation(
    participant_id: UUID,
    service: EvaluationServiceDep,
) -> EvaluationStatusResponse:
    """Current evaluation state; poll until ``evaluationComplete`` is true."""

    try:
        snapshot = await service.get_status(participant_id)
    except RecordNotFound as exc:
        raise _not_found(participant_id) from exc

    return EvaluationStatusResponse(
        evaluation_complete=snapshot.evaluation_complete,
        evaluation_failed=snapshot.evaluation_failed,
        scores=ScoresView(**snapshot.scores.model_dump()) if snapshot.scores else None,
        feedback=FeedbackView(**snapshot.feedback.model_dump()) if snapshot.feedback else None,
        transcript=snapshot.transcript,
    )


def _detail_view(record: EvaluationRecord) -> ParticipantDetailView:
    scores = record.score_map()
    feedback = None
    if record.has_feedback():
        feedback = FeedbackView(
            detailed=record.feedback_detailed or "",
            strengths=record.feedback_strengths or [],
            areas_to_improve=record.feedback_areas_to_improve or [],
            improvement_tips=record.feedback_improvement_tips or [],
        )
    return ParticipantDetailView(
        participant_id=str(record.id),
        name=record.participant_name,
        mobile=record.participant_contact,
        audio_reference=record.audio_reference,
        transcript=record.transcript,
        scores=ScoresView(**scores) if scores is not None else None,
        feedback=feedback,
        evaluation_complete=bool(record.evaluation_complete),
        evaluation_failed=bool(record.evaluation_failed),
        submitted_at=record.submitted_at,
        evaluated_at=record.evaluated_at,
    )


@router.get("/admin/participants")
async def list_participants(
    service: EvaluationServiceDep,
    completed: Optional[bool] = Query(None),
    sort: RecordSort = Query(RecordSort.RANKING),
) -> ParticipantListResponse:
    """Every record for the judge view, ranked by default."""

    records = await service.list_participants(completed=completed, sort=sort)
    return ParticipantListResponse(
        participants=[_detail_view(record) for record in records],
        total=len(records),
    )


@router.get("/admin/participant/{participant_id}")
async def get_participant_details(
    participant_id: UUID,
    service: EvaluationServiceDep,
) -> ParticipantDetailResponse:
    try:
        record = await service.participant_details(participant_id)
    except RecordNotFound as exc:
        raise _not_found(participant_id) from exc
    return ParticipantDetailResponse(participant=_detail_view(record))


@router.get("/leaderboard")
async def get_leaderboard(
    service: EvaluationServiceDep,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> LeaderboardResponse:
    page = await service.leaderboard(limit, offset)
    return LeaderboardResponse(
        participants=[
            LeaderboardEntryView(
                rank=entry.rank,
                participant_id=str(entry.participant_id),
                name=entry.name,
                mobile=entry.masked_contact,
                overall=entry.overall,
                fluency=entry.fluency,
                confidence=entry.confidence,
                submitted_at=entry.submitted_at,
            )
            for entry in page.entries
        ],
        total=page.total,
        page=page.page,
        total_pages=page.total_pages,
    )


@router.get("/stats")
async def get_stats(service: EvaluationServiceDep) -> StatisticsResponse:
    stats = await service.statistics()
    return StatisticsResponse(
        stats=StatisticsView(
            total_participants=stats.total_count,
            evaluated_count=stats.evaluated_count,
            pending_evaluation=stats.pending_count,
            average_scores=stats.averages,
        )
    )


@router.get("/export")
async def export_results(service: EvaluationServiceDep) -> Response:
    csv_text = await service.export_csv()
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={
            "Content-Disposition": 'attachment; filename="speakwise-challenge-results.csv"'
        },
    )
