"""LINE webhook receiver and the cron-triggered LINE jobs (gated by X-Cron-Secret)."""
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from gomeal.config import Settings, get_settings
from gomeal.database import get_db
from gomeal.dependencies import require_cron_secret
from gomeal.models.group_meal import GroupMealMode
from gomeal.notifications.dispatcher import LineNotifier, get_notifier
from gomeal.schemas.line import AutoGroupMealsOut, DispatchOut
from gomeal.services import line_webhook_service, notification_service
from gomeal.services.auto_group_meal_service import create_auto_group_meals
from gomeal.services.membership_service import get_default_community

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/webhook")
async def line_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: LineNotifier = Depends(get_notifier),
):
    """Signature-checked postback receiver. Always 200 once the signature is valid."""
    raw_body = await request.body()
    signature = request.headers.get("x-line-signature")
    if not line_webhook_service.verify_signature(settings.LINE_MESSAGING_CHANNEL_SECRET, raw_body, signature):
        logger.warning("Rejected LINE webhook with invalid signature")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")

    try:
        body = json.loads(raw_body or b"{}")
    except ValueError:
        logger.warning("LINE webhook body is not JSON")
        return Response(status_code=status.HTTP_200_OK)
    events = body.get("events") if isinstance(body, dict) else None
    if isinstance(events, list):
        handled = await run_in_threadpool(line_webhook_service.handle_events, db, events, notifier)
        logger.info("Handled %d of %d LINE event(s)", handled, len(events))
    return Response(status_code=status.HTTP_200_OK)


def _ensure_messaging_configured(notifier: LineNotifier) -> None:
    if not notifier.is_configured:
        raise HTTPException(status_code=500, detail="LINE channel access token is not configured")


@router.post("/daily-availability-push", response_model=DispatchOut, dependencies=[Depends(require_cron_secret)])
def daily_availability_push(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: LineNotifier = Depends(get_notifier),
):
    if not settings.ENABLE_LINE_DAILY_AVAILABILITY_PUSH:
        logger.info("Daily availability push is disabled")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    _ensure_messaging_configured(notifier)
    community = get_default_community(db, settings)
    if community is None:
        raise HTTPException(status_code=500, detail="Default community not found")
    requests = notification_service.daily_availability_requests(db, community)
    result = notifier.send_many(requests)
    logger.info("Daily availability push: %d sent, %d failed", result.sent, result.failed)
    return DispatchOut(sent=result.sent, failed=result.failed, target=len(requests))


@router.post("/group-meal-reminders", response_model=DispatchOut, dependencies=[Depends(require_cron_secret)])
def group_meal_reminders(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: LineNotifier = Depends(get_notifier),
):
    if not settings.ENABLE_LINE_GROUPMEAL_REMINDER:
        logger.info("Group meal reminders are disabled")
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    _ensure_messaging_configured(notifier)
    requests = notification_service.reminder_requests(db)
    result = notifier.send_many(requests)
    logger.info("Group meal reminders: %d sent, %d failed", result.sent, result.failed)
    return DispatchOut(sent=result.sent, failed=result.failed, target=len(requests))


def _auto_group(db: Session, mode: GroupMealMode, settings: Settings, notifier: LineNotifier) -> AutoGroupMealsOut:
    meals, requests = create_auto_group_meals(db, mode, settings.FRONTEND_URL)
    result = notifier.send_many(requests)
    return AutoGroupMealsOut(
        group_meal_ids=[m.group_meal_id for m in meals],
        notified=result.sent,
        failed=result.failed,
    )


@router.post("/auto-group-meals/real", response_model=AutoGroupMealsOut, dependencies=[Depends(require_cron_secret)])
def auto_group_real(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: LineNotifier = Depends(get_notifier),
):
    return _auto_group(db, GroupMealMode.REAL, settings, notifier)


@router.post("/auto-group-meals/meet", response_model=AutoGroupMealsOut, dependencies=[Depends(require_cron_secret)])
def auto_group_meet(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: LineNotifier = Depends(get_notifier),
):
    return _auto_group(db, GroupMealMode.MEET, settings, notifier)
