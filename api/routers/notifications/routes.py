from fastapi import APIRouter, Depends, status
from services.notifier import LineNotifier, dispatch_notification, get_notifier
from .schemas import NewSellerNotice, NoticeAccepted, ProfileCompletedNotice

router = APIRouter()


@router.post(
        "/new-seller",
        response_model=NoticeAccepted,
        status_code=status.HTTP_202_ACCEPTED,
        summary="Notify admins about a new seller"
        )
async def notify_new_seller(dto: NewSellerNotice, notifier: LineNotifier = Depends(get_notifier)):
    """
    Queues a LINE push to the admin chat and returns right away. Delivery
    failures are logged and never reach the caller.
    """
    if not notifier.is_configured:
        return NoticeAccepted(queued=False)
    dispatch_notification(
        notifier.new_seller_registered(dto.email, dto.full_name, dto.registration_method),
        name=f"new-seller:{dto.email}",
    )
    return NoticeAccepted(queued=True)


@router.post(
        "/profile-completed",
        response_model=NoticeAccepted,
        status_code=status.HTTP_202_ACCEPTED,
        summary="Notify admins about a completed seller profile"
        )
async def notify_profile_completed(dto: ProfileCompletedNotice, notifier: LineNotifier = Depends(get_notifier)):
    if not notifier.is_configured:
        return NoticeAccepted(queued=False)
    dispatch_notification(
        notifier.profile_completed(dto.email, dto.full_name, dto.phone),
        name=f"profile-completed:{dto.email}",
    )
    return NoticeAccepted(queued=True)
