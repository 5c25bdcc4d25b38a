"""
Troubleshooting session routes.

Endpoints used by technicians walking an issue's decision graph.
"""

import hashlib
from typing import Optional

from fastapi import APIRouter, Request, status
import structlog

from troubleshooter.api.dependencies import SessionServiceDep
from troubleshooter.api.schemas import StartSessionRequest, SubmitAnswerRequest
from troubleshooter.domain.models.session import (
    ClientMetadata,
    SessionHistory,
    SessionSnapshot,
    StartedSession,
)

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/troubleshoot", tags=["troubleshoot"])


def client_ip(request: Request) -> Optional[str]:
    """First proxy-reported address, else the peer host."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return request.client.host if request.client else None


def hash_ip(ip: Optional[str]) -> Optional[str]:
    if not ip:
        return None
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()


@router.post(
    "/start",
    response_model=StartedSession,
    status_code=status.HTTP_201_CREATED,
)
async def start_session(
    body: StartSessionRequest,
    request: Request,
    service: SessionServiceDep,
):
    """Start a session in a category, or at the issue menu when none is given."""
    client = ClientMetadata(
        tech_identifier=body.tech_identifier,
        client_site=body.client_site,
        ip_hash=hash_ip(client_ip(request)),
        user_agent=request.headers.get("user-agent"),
    )
    return await service.start_session(category=body.category, client=client)


@router.get("/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str, service: SessionServiceDep):
    """Current node and options of a session, derived from its step log."""
    return await service.get_session(session_id)


@router.post("/{session_id}/answer", response_model=SessionSnapshot)
async def submit_answer(
    session_id: str,
    body: SubmitAnswerRequest,
    service: SessionServiceDep,
):
    return await service.submit_answer(session_id, body.connection_id)


@router.get("/{session_id}/history", response_model=SessionHistory)
async def get_session_history(session_id: str, service: SessionServiceDep):
    return await service.get_session_history(session_id)
