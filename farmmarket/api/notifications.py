from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from farmmarket.auth.security import get_current_active_user
from farmmarket.db.session import get_db
from farmmarket.models.notification import Notification
from farmmarket.models.user import User
from farmmarket.schemas.base import MessageResponse
from farmmarket.schemas.notification import NotificationMark, NotificationPage, NotificationUpdateResult
from farmmarket.schemas.pagination import paginate

router = APIRouter()


def _unread_count(db: Session, user_id: int) -> int:
    return db.query(Notification).filter(Notification.user_id == user_id, Notification.read.is_(False)).count()


@router.get(
    "",
    response_model=NotificationPage,
    summary="List my notifications",
    description="Newest first, with the number of unread notifications.",
)
def read_notifications(
    page: int = Query(1, ge=1, description="Page number starting from 1"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page (1-100)"),
    unread_only: bool = Query(False, description="Only unread notifications"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    - **page** / **per_page**: Pagination
    - **unread_only**: Hide notifications already read
    """
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())

    result = paginate(query, page, per_page)
    result["unread_count"] = _unread_count(db, current_user.id)
    return result


@router.patch(
    "",
    response_model=NotificationUpdateResult,
    summary="Mark notifications read or unread",
)
def mark_notifications(
    body: NotificationMark,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    - **notification_ids**: IDs to change; IDs belonging to other users are ignored
    - **mark_as_read**: true to mark read, false to mark unread
    """
    updated = (
        db.query(Notification)
        .filter(Notification.id.in_(body.notification_ids), Notification.user_id == current_user.id)
        .update({"read": body.mark_as_read}, synchronize_session=False)
    )
    db.commit()
    return {"updated": updated}


@router.post("/read-all", response_model=NotificationUpdateResult, summary="Mark all notifications read")
def mark_all_read(db: Session = Depends(get_db), current_user: User = Depends(get_current_active_user)):
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.read.is_(False))
        .update({"read": True}, synchronize_session=False)
    )
    db.commit()
    return {"updated": updated}


@router.delete("/{notification_id}", response_model=MessageResponse, summary="Delete a notification")
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id, Notification.user_id == current_user.id
    ).first()
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    db.delete(notification)
    db.commit()
    return {"message": "Notification deleted"}
