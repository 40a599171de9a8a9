"""
Router for conversation messaging endpoints.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import PaginationLimitMessages, PaginationPage, page_to_skip
from helpers.rate_limiter import limiter
from models.config import settings
from repositories.database import get_db
from services.message_service import MessageService
from services.report_service import ReportService
from services.safety_analyzer import SafetyAnalysis

router = APIRouter(tags=["messaging"])

BLOCKED_DETAIL = "Message blocked due to safety concerns"


def _message_view(
    message: db_models.Message, sender: db_models.User, include_safety: bool
) -> schemas.MessageResponse:
    fields = {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "sender_name": sender.display_name,
        "content": message.content,
        "message_type": message.message_type,
        "is_blocked": message.is_blocked,
        "parent_message_id": message.parent_message_id,
        "created_at": message.created_at,
    }
    if include_safety:
        fields.update(
            safety_score=message.safety_score,
            flagged_terms=message.flagged_terms or [],
            moderation_status=message.moderation_status,
        )
    return schemas.MessageResponse(**fields)


def _safety_info(
    message: db_models.Message, analysis: SafetyAnalysis
) -> schemas.SafetyInfo:
    return schemas.SafetyInfo(
        is_blocked=analysis.is_blocked,
        safety_score=analysis.score,
        moderation_status=message.moderation_status,
        violations=(
            [schemas.ViolationResponse(**v.to_dict()) for v in analysis.violations]
            if analysis.violations
            else None
        ),
    )


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=schemas.MessageSendResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": schemas.MessageSendResponse}},
)
@limiter.limit(settings.MESSAGE_RATE_LIMIT)
def send_message(
    request: Request,
    conversation_id: int,
    message_data: schemas.MessageCreate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.MessageSendResponse | JSONResponse:
    """
    Send a message after safety analysis.

    Blocked messages are stored for review but only the block notice is
    returned (400, messageData null).
    """
    message, analysis = MessageService.send_message(
        db,
        conversation_id=conversation_id,
        sender_id=current_user.id,
        content=message_data.content,
        message_type=message_data.message_type,
        parent_message_id=message_data.parent_message_id,
    )
    safety_info = _safety_info(message, analysis)

    if analysis.is_blocked:
        blocked = schemas.MessageSendResponse(
            message_data=None, safety_info=safety_info, detail=BLOCKED_DETAIL
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=blocked.model_dump(mode="json", by_alias=True),
        )

    return schemas.MessageSendResponse(
        message_data=_message_view(message, current_user, include_safety=False),
        safety_info=safety_info,
    )


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=list[schemas.MessageResponse],
    response_model_exclude_unset=True,
)
def get_messages(
    conversation_id: int,
    page: PaginationPage = 1,
    limit: PaginationLimitMessages = 50,
    since: Optional[datetime] = Query(
        None, description="Only messages created after this time"
    ),
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> list[schemas.MessageResponse]:
    """
    Get conversation messages.

    Blocked messages are only shown to their sender; safety fields are
    only included for moderators.
    """
    rows = MessageService.get_messages(
        db,
        conversation_id,
        current_user,
        since=since,
        skip=page_to_skip(page, limit),
        limit=limit,
    )
    return [
        _message_view(message, sender, include_safety=current_user.is_moderator)
        for message, sender in rows
    ]


@router.post(
    "/messages/{message_id}/report",
    response_model=schemas.ReportResponse,
    status_code=status.HTTP_201_CREATED,
)
def report_message(
    message_id: int,
    report_data: schemas.ReportCreate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> db_models.MessageReport:
    """Report a message for moderator review."""
    return ReportService.report_message(
        db,
        message_id=message_id,
        reporter_id=current_user.id,
        report_type=report_data.report_type,
        description=report_data.description,
    )
