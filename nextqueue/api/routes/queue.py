from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from nextqueue.dependencies.queue import AnnouncerDep, QueueEngineDep
from nextqueue.queueing import (
    Outcome,
    OutcomeStatus,
    QueueEngine,
    QueueEngineError,
    RejectionReason,
    ServiceStage,
    Workstation,
)

router = APIRouter(prefix="/queue", tags=["queue"])


class TicketCreateRequest(BaseModel):
    is_priority: bool = False


class TicketMoveRequest(BaseModel):
    from_stage_id: UUID | None = None
    to_stage_id: UUID | None = None


class TicketTransferRequest(BaseModel):
    to_stage_id: UUID


class StageCreateRequest(BaseModel):
    name: str = Field(..., max_length=120)
    workstation_type: str | None = Field(default=None, max_length=60)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    number: str
    is_priority: bool
    created_at: datetime


class WorkstationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    current_ticket: TicketResponse | None


class StageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    workstation_type: str
    workstations: list[WorkstationResponse]
    waiting_tickets: list[TicketResponse]


class CalledTicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket_number: str
    stage_name: str
    workstation_name: str
    called_at: datetime


class QueueSnapshotResponse(BaseModel):
    auto_forward_enabled: bool
    waiting_queue: list[TicketResponse]
    stages: list[StageResponse]
    history: list[CalledTicketResponse]


class OutcomeResponse(BaseModel):
    status: OutcomeStatus
    reason: RejectionReason | None = None
    ticket: TicketResponse | None = None


def _snapshot(engine: QueueEngine) -> QueueSnapshotResponse:
    return QueueSnapshotResponse(
        auto_forward_enabled=engine.auto_forward_enabled,
        waiting_queue=[TicketResponse.model_validate(ticket) for ticket in engine.waiting_queue],
        stages=[StageResponse.model_validate(stage) for stage in engine.stages],
        history=[CalledTicketResponse.model_validate(entry) for entry in engine.history],
    )


def _to_response(outcome: Outcome) -> OutcomeResponse:
    if outcome.status is OutcomeStatus.REJECTED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=outcome.reason.value)
    ticket = TicketResponse.model_validate(outcome.ticket) if outcome.ticket is not None else None
    return OutcomeResponse(status=outcome.status, reason=outcome.reason, ticket=ticket)


def _stage(engine: QueueEngine, stage_id: UUID | None) -> ServiceStage | None:
    if stage_id is None:
        return None
    try:
        return engine.get_stage(stage_id)
    except QueueEngineError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _workstation(engine: QueueEngine, stage_id: UUID, workstation_id: UUID) -> tuple[ServiceStage, Workstation]:
    stage = _stage(engine, stage_id)
    try:
        return stage, engine.get_workstation(stage, workstation_id)
    except QueueEngineError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("", response_model=QueueSnapshotResponse)
async def get_queue(engine: QueueEngineDep) -> QueueSnapshotResponse:
    return _snapshot(engine)


@router.post("/tickets", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def generate_ticket(payload: TicketCreateRequest, engine: QueueEngineDep) -> TicketResponse:
    outcome = engine.generate_ticket(payload.is_priority)
    return TicketResponse.model_validate(outcome.ticket)


@router.post("/tickets/{ticket_id}/move", response_model=OutcomeResponse)
async def move_ticket(ticket_id: UUID, payload: TicketMoveRequest, engine: QueueEngineDep) -> OutcomeResponse:
    try:
        ticket, _, _ = engine.locate_ticket(ticket_id)
    except QueueEngineError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    from_stage = _stage(engine, payload.from_stage_id)
    to_stage = _stage(engine, payload.to_stage_id)
    return _to_response(engine.move_ticket(ticket, from_stage, to_stage))


@router.post("/auto-forward/toggle", response_model=QueueSnapshotResponse)
async def toggle_auto_forward(engine: QueueEngineDep) -> QueueSnapshotResponse:
    engine.toggle_auto_forward()
    return _snapshot(engine)


@router.post("/stages", response_model=StageResponse, status_code=status.HTTP_201_CREATED)
async def add_stage(payload: StageCreateRequest, engine: QueueEngineDep) -> StageResponse:
    outcome = engine.add_stage(payload.name, payload.workstation_type)
    _to_response(outcome)
    return StageResponse.model_validate(outcome.stage)


@router.delete("/stages/{stage_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_stage(stage_id: UUID, engine: QueueEngineDep) -> None:
    _to_response(engine.remove_stage(_stage(engine, stage_id)))


@router.post("/stages/{stage_id}/workstations", response_model=StageResponse)
async def increment_workstation(stage_id: UUID, engine: QueueEngineDep) -> StageResponse:
    stage = _stage(engine, stage_id)
    _to_response(engine.increment_workstation(stage))
    return StageResponse.model_validate(stage)


@router.delete("/stages/{stage_id}/workstations", response_model=OutcomeResponse)
async def decrement_workstation(stage_id: UUID, engine: QueueEngineDep) -> OutcomeResponse:
    return _to_response(engine.decrement_workstation(_stage(engine, stage_id)))


@router.post("/stages/{stage_id}/workstations/{workstation_id}/call", response_model=OutcomeResponse)
async def call_next(
    stage_id: UUID,
    workstation_id: UUID,
    engine: QueueEngineDep,
    announcer: AnnouncerDep,
) -> OutcomeResponse:
    stage = _stage(engine, stage_id)
    outcome = engine.call_next_in_stage(stage, workstation_id)
    response = _to_response(outcome)
    if outcome:
        announcer.announce_call(engine.history[0])
    return response


@router.post("/stages/{stage_id}/workstations/{workstation_id}/finish", response_model=OutcomeResponse)
async def finish_ticket(stage_id: UUID, workstation_id: UUID, engine: QueueEngineDep) -> OutcomeResponse:
    _, workstation = _workstation(engine, stage_id, workstation_id)
    return _to_response(engine.finish_ticket(workstation))


@router.post("/stages/{stage_id}/workstations/{workstation_id}/transfer", response_model=OutcomeResponse)
async def transfer_ticket(
    stage_id: UUID,
    workstation_id: UUID,
    payload: TicketTransferRequest,
    engine: QueueEngineDep,
) -> OutcomeResponse:
    _, workstation = _workstation(engine, stage_id, workstation_id)
    to_stage = _stage(engine, payload.to_stage_id)
    return _to_response(engine.move_ticket_from_workstation(workstation, workstation.current_ticket, to_stage))
