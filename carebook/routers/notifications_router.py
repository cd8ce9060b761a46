from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ..application.models import SessionContext
from ..application.services.notifications_service import NotificationsService
from ..dependencies import get_current_session, get_notifications_service
from ..exceptions import CareBookError
from ..schemas.common.common import ERROR_RESPONSES, MessageResponse
from ..schemas.notifications.notification import NotificationCreate, NotificationResponse, UnreadCountResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"], responses=ERROR_RESPONSES)


@router.get("/", response_model=List[NotificationResponse])
def get_notifications(
    type: Optional[str] = Query(None),
    read: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: SessionContext = Depends(get_current_session),
    service: NotificationsService = Depends(get_notifications_service),
):
    items = service.list_for_session(session, type=type, read=read, limit=limit, offset=offset)
    return [NotificationResponse.from_entity(n) for n in items]


@router.get("/unread-count", response_model=UnreadCountResponse)
def get_unread_count(
    session: SessionContext = Depends(get_current_session),
    service: NotificationsService = Depends(get_notifications_service),
):
    return UnreadCountResponse(unread=service.unread_count(session))


@router.put("/read-all")
def mark_all_notifications_read(
    session: SessionContext = Depends(get_current_session),
    service: NotificationsService = Depends(get_notifications_service),
):
    try:
        updated = service.mark_all_read(session)
        return {"success": True, "message": "All notifications marked as read", "updated_count": updated}
    except CareBookError:
        raise
    except Exception as e:
        logger.error(f"Error marking all notifications as read: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to mark notifications as read")


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: str,
    session: SessionContext = Depends(get_current_session),
    service: NotificationsService = Depends(get_notifications_service),
):
    return NotificationResponse.from_entity(service.mark_read(session, notification_id))


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(
    notification_id: str,
    session: SessionContext = Depends(get_current_session),
    service: NotificationsService = Depends(get_notifications_service),
):
    service.delete(session, notification_id)
    return MessageResponse(message="Notification deleted successfully")


@router.post("/", response_model=NotificationResponse, status_code=201)
def create_notification(
    notification_data: NotificationCreate,
    session: SessionContext = Depends(get_current_session),
    service: NotificationsService = Depends(get_notifications_service),
):
    n = service.create(
        session,
        notification_data.recipient_role,
        notification_data.recipient_id,
        notification_data.title,
        notification_data.message,
        type=notification_data.type,
        appointment_id=notification_data.appointment_id,
    )
    return NotificationResponse.from_entity(n)
