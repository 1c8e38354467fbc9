from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status

from wilayah.core.config import get_settings
from wilayah.domain.hierarchy import Level, LevelName, SelectionError
from wilayah.schemas.sessions import (
    PostalChoiceRequest,
    SelectionRequest,
    SessionSnapshot,
)
from wilayah.services.postal_code import CandidateNotFoundError
from wilayah.services.session import (
    AddressSession,
    SessionService,
    get_session_service,
)


router = APIRouter()


def get_service() -> SessionService:
    return get_session_service(get_settings())


async def _require_session(session_id: UUID, service: SessionService) -> AddressSession:
    session = await service.get_session(session_id)
    if session is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Session not found")
    return session


async def _snapshot(session: AddressSession, wait: bool) -> SessionSnapshot:
    if wait:
        await session.settle()
    return session.snapshot()


@router.post(
    "",
    response_model=SessionSnapshot,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    wait: bool = True,
    service: SessionService = Depends(get_service),
) -> SessionSnapshot:
    session = await service.create_session()
    return await _snapshot(session, wait)


@router.get("/{session_id}", response_model=SessionSnapshot)
async def get_session(
    session_id: UUID,
    wait: bool = True,
    service: SessionService = Depends(get_service),
) -> SessionSnapshot:
    session = await _require_session(session_id, service)
    return await _snapshot(session, wait)


@router.put("/{session_id}/selection", response_model=SessionSnapshot)
async def update_selection(
    session_id: UUID,
    payload: SelectionRequest,
    wait: bool = True,
    service: SessionService = Depends(get_service),
) -> SessionSnapshot:
    session = await _require_session(session_id, service)
    try:
        session.select(Level.from_slug(payload.level), payload.region_id)
    except SelectionError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, str(exc)) from exc
    return await _snapshot(session, wait)


@router.post("/{session_id}/levels/{level}/refresh", response_model=SessionSnapshot)
async def refresh_level(
    session_id: UUID,
    level: LevelName,
    wait: bool = True,
    service: SessionService = Depends(get_service),
) -> SessionSnapshot:
    session = await _require_session(session_id, service)
    session.refresh(Level.from_slug(level))
    return await _snapshot(session, wait)


@router.post("/{session_id}/postal-code/choice", response_model=SessionSnapshot)
async def choose_postal_code(
    session_id: UUID,
    payload: PostalChoiceRequest,
    wait: bool = True,
    service: SessionService = Depends(get_service),
) -> SessionSnapshot:
    session = await _require_session(session_id, service)
    if wait:
        await session.settle()
    try:
        session.choose_postal_code(payload.code)
    except CandidateNotFoundError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, str(exc)) from exc
    return session.snapshot()


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: UUID,
    service: SessionService = Depends(get_service),
) -> Response:
    if not await service.delete_session(session_id):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Session not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
