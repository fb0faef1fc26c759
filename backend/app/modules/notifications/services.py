"""
Notification derivation and inbox management.

Alert state is a function of the current ledger state: every evaluation
looks at a budget's spend ratio or a goal's percentage right now and
creates or retracts notifications to match. Creation is de-duplicated on
(owner, type, related id, related type) over NOTIFICATION_DEDUP_HOURS.

The refresh_* helpers run after the ledger mutation has committed, in
their own commit, and never raise.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError
from app.core.timezone import format_datetime_for_api, local_today, utcnow
from app.modules.budgets.models import Budget
from app.modules.budgets.services import budgets_covering, compute_budget_progress
from app.modules.notifications.models import (
    BUDGET_EXCEEDED,
    BUDGET_WARNING,
    DEADLINE_REMINDER,
    RELATED_BUDGET,
    RELATED_SAVINGS_GOAL,
    SAVINGS_COMPLETED,
    SAVINGS_MILESTONE,
    Notification,
)
from app.modules.savings.models import SavingsGoal

logger = logging.getLogger(__name__)

MILESTONES = (75, 50)


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "related_id": notification.related_id,
        "related_type": notification.related_type,
        "data": notification.data or {},
        "is_read": notification.is_read,
        "expires_at": format_datetime_for_api(notification.expires_at),
        "created_at": format_datetime_for_api(notification.created_at),
    }


# -----------------------------------------------------------------------------
# Primitives
# -----------------------------------------------------------------------------

def create_notification(
    db: Session,
    owner_id: int,
    type_: str,
    title: str,
    message: str,
    related_id: int,
    related_type: str,
    data: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Notification:
    """Insert a notification unless an identical one exists in the dedup window."""
    now = now or utcnow()
    window_start = now - timedelta(hours=settings.NOTIFICATION_DEDUP_HOURS)

    existing = db.query(Notification).filter(
        Notification.owner_id == owner_id,
        Notification.type == type_,
        Notification.related_id == related_id,
        Notification.related_type == related_type,
        Notification.created_at >= window_start,
    ).order_by(Notification.created_at.desc()).first()
    if existing is not None:
        return existing

    notification = Notification(
        owner_id=owner_id,
        type=type_,
        title=title,
        message=message,
        related_id=related_id,
        related_type=related_type,
        data=data or {},
        is_read=False,
        created_at=now,
        updated_at=now,
        expires_at=now + timedelta(days=settings.NOTIFICATION_TTL_DAYS),
    )
    db.add(notification)
    db.flush()
    logger.debug(f"Notification {type_} for {related_type} {related_id} (user {owner_id})")
    return notification


def remove_notifications(
    db: Session,
    owner_id: int,
    types: Iterable[str],
    related_id: int,
    related_type: str,
) -> int:
    removed = db.query(Notification).filter(
        Notification.owner_id == owner_id,
        Notification.type.in_(list(types)),
        Notification.related_id == related_id,
        Notification.related_type == related_type,
    ).delete(synchronize_session=False)
    if removed:
        logger.debug(f"Retracted {removed} notification(s) for {related_type} {related_id}")
    return removed


def _live(query, now: datetime):
    return query.filter(Notification.expires_at > now)


# -----------------------------------------------------------------------------
# Budgets
# -----------------------------------------------------------------------------

def evaluate_budget(db: Session, budget: Budget, now: Optional[datetime] = None) -> Optional[Notification]:
    """
    Bring a budget's WARNING / EXCEEDED notifications in line with its spend.

    Below the warning threshold both are retracted. At or above 100% an
    EXCEEDED alert is upserted, otherwise a WARNING.
    """
    progress = compute_budget_progress(db, budget)
    pct = progress.percentage
    category_name = budget.category.name if budget.category is not None else ""

    if not progress.is_warning:
        remove_notifications(db, budget.owner_id, (BUDGET_WARNING, BUDGET_EXCEEDED), budget.id, RELATED_BUDGET)
        return None

    data = {
        "budget_id": budget.id,
        "category_name": category_name,
        "percentage": pct,
        "spent": float(progress.spent),
        "amount": float(budget.amount),
    }

    if progress.is_exceeded:
        return create_notification(
            db, budget.owner_id, BUDGET_EXCEEDED,
            "🚨 Vượt ngân sách",
            f'Ngân sách "{category_name}" đã vượt quá {round(pct)}%',
            budget.id, RELATED_BUDGET, data, now=now,
        )

    data["warning_threshold"] = budget.warning_threshold
    return create_notification(
        db, budget.owner_id, BUDGET_WARNING,
        "⚠️ Cảnh báo ngân sách",
        f'Ngân sách "{category_name}" đã đạt {round(pct)}%',
        budget.id, RELATED_BUDGET, data, now=now,
    )


def check_budget_notifications(db: Session, owner_id: int, category_id: Optional[int], on_date: date):
    """Evaluate every budget of the category whose period contains on_date."""
    if category_id is None:
        return
    for budget in budgets_covering(db, owner_id, category_id, on_date):
        evaluate_budget(db, budget)


# -----------------------------------------------------------------------------
# Savings goals
# -----------------------------------------------------------------------------

def evaluate_savings_goal(db: Session, goal: SavingsGoal, now: Optional[datetime] = None) -> Optional[Notification]:
    """
    Bring a goal's MILESTONE / COMPLETED notifications in line with its
    current percentage.

    < 50 retracts both; >= 100 keeps only COMPLETED; otherwise the single
    live milestone must carry the current level (75 or 50), and a
    milestone at another level is retracted first.
    """
    pct = goal.percentage

    if pct < 50:
        remove_notifications(db, goal.owner_id, (SAVINGS_MILESTONE, SAVINGS_COMPLETED), goal.id, RELATED_SAVINGS_GOAL)
        return None

    if pct >= 100:
        remove_notifications(db, goal.owner_id, (SAVINGS_MILESTONE,), goal.id, RELATED_SAVINGS_GOAL)
        return create_notification(
            db, goal.owner_id, SAVINGS_COMPLETED,
            "🏆 Hoàn thành mục tiêu",
            f'Chúc mừng! Bạn đã hoàn thành mục tiêu "{goal.name}"',
            goal.id, RELATED_SAVINGS_GOAL,
            {
                "goal_id": goal.id,
                "goal_name": goal.name,
                "target_amount": float(goal.target_amount),
                "current_amount": float(goal.current_amount),
                "percentage": pct,
            },
            now=now,
        )

    remove_notifications(db, goal.owner_id, (SAVINGS_COMPLETED,), goal.id, RELATED_SAVINGS_GOAL)
    level = next(m for m in MILESTONES if pct >= m)

    stale = db.query(Notification).filter(
        Notification.owner_id == goal.owner_id,
        Notification.type == SAVINGS_MILESTONE,
        Notification.related_id == goal.id,
        Notification.related_type == RELATED_SAVINGS_GOAL,
    ).all()
    for notification in stale:
        if (notification.data or {}).get("milestone") != level:
            db.delete(notification)
    db.flush()

    if level == 75:
        title = "🎊 Sắp hoàn thành mục tiêu"
        message = f'Mục tiêu "{goal.name}" đã đạt 75%, sắp hoàn thành rồi!'
    else:
        title = "🎉 Đạt nửa chặng đường"
        message = f'Mục tiêu "{goal.name}" đã đạt 50%, tiếp tục phát huy nhé!'

    return create_notification(
        db, goal.owner_id, SAVINGS_MILESTONE, title, message,
        goal.id, RELATED_SAVINGS_GOAL,
        {
            "goal_id": goal.id,
            "goal_name": goal.name,
            "milestone": level,
            "percentage": pct,
            "remaining": float(goal.remaining),
        },
        now=now,
    )


# -----------------------------------------------------------------------------
# Scheduled sweeps
# -----------------------------------------------------------------------------

def check_deadline_reminders(db: Session, today: Optional[date] = None) -> int:
    """
    Remind owners of budgets ending within BUDGET_REMINDER_DAYS and active
    goals due within GOAL_REMINDER_DAYS. Returns the number of reminders
    touched (new or de-duplicated).
    """
    today = today or local_today()
    count = 0

    budget_horizon = today + timedelta(days=settings.BUDGET_REMINDER_DAYS)
    budgets = db.query(Budget).filter(
        Budget.end_date >= today,
        Budget.end_date <= budget_horizon,
    ).all()
    for budget in budgets:
        days_left = (budget.end_date - today).days
        category_name = budget.category.name if budget.category is not None else ""
        create_notification(
            db, budget.owner_id, DEADLINE_REMINDER,
            "📅 Ngân sách sắp kết thúc",
            f'Ngân sách "{category_name}" sẽ kết thúc trong {days_left} ngày',
            budget.id, RELATED_BUDGET,
            {
                "budget_id": budget.id,
                "category_name": category_name,
                "end_date": budget.end_date.isoformat(),
                "days_left": days_left,
            },
        )
        count += 1

    goal_horizon = today + timedelta(days=settings.GOAL_REMINDER_DAYS)
    goals = db.query(SavingsGoal).filter(
        SavingsGoal.status == "active",
        SavingsGoal.deadline.isnot(None),
        SavingsGoal.deadline >= today,
        SavingsGoal.deadline <= goal_horizon,
    ).all()
    for goal in goals:
        days_left = (goal.deadline - today).days
        create_notification(
            db, goal.owner_id, DEADLINE_REMINDER,
            "⏰ Mục tiêu sắp đến hạn",
            f'Mục tiêu "{goal.name}" sẽ đến hạn trong {days_left} ngày',
            goal.id, RELATED_SAVINGS_GOAL,
            {
                "goal_id": goal.id,
                "goal_name": goal.name,
                "deadline": goal.deadline.isoformat(),
                "days_left": days_left,
                "remaining": float(goal.remaining),
            },
        )
        count += 1

    return count


def purge_expired_notifications(db: Session, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    return db.query(Notification).filter(
        Notification.expires_at <= now,
    ).delete(synchronize_session=False)


# -----------------------------------------------------------------------------
# Post-commit refresh
# -----------------------------------------------------------------------------

def refresh_budget_notifications(db: Session, owner_id: int, category_id: Optional[int], on_date: date):
    try:
        check_budget_notifications(db, owner_id, category_id, on_date)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to refresh budget notifications for user {owner_id}: {e}", exc_info=True)


def refresh_budget(db: Session, budget: Budget):
    try:
        evaluate_budget(db, budget)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to refresh notifications for budget {budget.id}: {e}", exc_info=True)


def refresh_savings_notifications(db: Session, goal: SavingsGoal):
    try:
        evaluate_savings_goal(db, goal)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to refresh notifications for goal {goal.id}: {e}", exc_info=True)


# -----------------------------------------------------------------------------
# Inbox
# -----------------------------------------------------------------------------

def list_notifications(db: Session, owner_id: int, limit: Optional[int] = None) -> List[Notification]:
    query = _live(db.query(Notification).filter(Notification.owner_id == owner_id), utcnow())
    return (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit or settings.NOTIFICATION_LIST_LIMIT)
        .all()
    )


def unread_count(db: Session, owner_id: int) -> int:
    return _live(db.query(Notification).filter(
        Notification.owner_id == owner_id,
        Notification.is_read.is_(False),
    ), utcnow()).count()


def mark_read(db: Session, owner_id: int, notification_id: int) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.owner_id == owner_id,
    ).first()
    if notification is None:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    return notification


def mark_all_read(db: Session, owner_id: int) -> int:
    return db.query(Notification).filter(
        Notification.owner_id == owner_id,
        Notification.is_read.is_(False),
    ).update({Notification.is_read: True}, synchronize_session=False)


def delete_notification(db: Session, owner_id: int, notification_id: int):
    deleted = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.owner_id == owner_id,
    ).delete(synchronize_session=False)
    if not deleted:
        raise NotFoundError("Notification not found")


def delete_read_notifications(db: Session, owner_id: int) -> int:
    return db.query(Notification).filter(
        Notification.owner_id == owner_id,
        Notification.is_read.is_(True),
    ).delete(synchronize_session=False)
