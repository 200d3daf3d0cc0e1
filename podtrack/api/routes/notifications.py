"""Notifications for the authenticated recipient."""

from fastapi import APIRouter, Query

from podtrack.api.schemas.requests import NotificationIdsRequest
from podtrack.api.schemas.responses import NotificationOut, NotificationsResponse, OkResponse
from podtrack.api.services import repo
from podtrack.api.services.actor_context import ActorDep
from podtrack.api.services.pagination import PageRequest

router = APIRouter()


@router.get("", response_model=NotificationsResponse)
def list_notifications(
    actor: ActorDep,
    page: str | None = Query(None),
    page_size: str | None = Query(None),
) -> NotificationsResponse:
    result, unread = repo.list_notifications(actor, PageRequest.from_raw(page, page_size))
    return NotificationsResponse(
        notifications=[NotificationOut(**n) for n in result.rows],
        total_count=result.total_count,
        unread_count=unread,
        total_pages=result.total_pages,
        current_page=result.current_page,
    )


@router.post("/mark-read", response_model=OkResponse)
def mark_read(body: NotificationIdsRequest, actor: ActorDep) -> OkResponse:
    updated = repo.mark_notifications_read(actor, body.ids)
    return OkResponse(message=f"{updated} notification(s) marked as read")


@router.post("/{notification_id}/read", response_model=OkResponse)
def mark_one_read(notification_id: str, actor: ActorDep) -> OkResponse:
    repo.mark_notification_read(actor, notification_id)
    return OkResponse()
