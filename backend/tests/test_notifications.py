"""
Notification derivation tests: dedup, budget alerts, savings milestones,
deadline reminders and expiry.

Run with: pytest tests/test_notifications.py -v
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import at, d, make_category, make_goal, make_wallet

from app.core.timezone import utcnow
from app.modules.budgets.services import create_budget
from app.modules.ledger.services import contribute, create_transaction, delete_transaction, withdraw
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
from app.modules.notifications.services import (
    check_budget_notifications,
    check_deadline_reminders,
    create_notification,
    delete_read_notifications,
    evaluate_savings_goal,
    list_notifications,
    mark_all_read,
    purge_expired_notifications,
    unread_count,
)


def notifications_for(db, related_id, related_type):
    return db.query(Notification).filter(
        Notification.related_id == related_id,
        Notification.related_type == related_type,
    ).all()


class TestDedup:

    def test_same_key_within_window_returns_existing(self, db, owner):
        now = utcnow()
        first = create_notification(db, owner, BUDGET_WARNING, "t", "m", 7, RELATED_BUDGET, now=now)
        second = create_notification(db, owner, BUDGET_WARNING, "t2", "m2", 7, RELATED_BUDGET,
                                     now=now + timedelta(hours=23))

        assert first.id == second.id
        assert db.query(Notification).count() == 1

    def test_same_key_after_window_creates_new_row(self, db, owner):
        now = utcnow()
        create_notification(db, owner, BUDGET_WARNING, "t", "m", 7, RELATED_BUDGET, now=now - timedelta(hours=25))
        create_notification(db, owner, BUDGET_WARNING, "t", "m", 7, RELATED_BUDGET, now=now)

        assert db.query(Notification).count() == 2

    @pytest.mark.parametrize("type_,related_id,related_type", [
        (BUDGET_EXCEEDED, 7, RELATED_BUDGET),
        (BUDGET_WARNING, 8, RELATED_BUDGET),
        (BUDGET_WARNING, 7, RELATED_SAVINGS_GOAL),
    ])
    def test_different_key_creates_new_row(self, db, owner, type_, related_id, related_type):
        create_notification(db, owner, BUDGET_WARNING, "t", "m", 7, RELATED_BUDGET)
        create_notification(db, owner, type_, "t", "m", related_id, related_type)

        assert db.query(Notification).count() == 2

    def test_expiry_is_thirty_days(self, db, owner):
        now = utcnow()
        notification = create_notification(db, owner, BUDGET_WARNING, "t", "m", 1, RELATED_BUDGET, now=now)
        assert notification.expires_at == now + timedelta(days=30)


# (expenses, threshold, expected notification type or None)
BUDGET_SCENARIOS = [
    ("below threshold", ["700"], 80, None),
    ("at threshold", ["800"], 80, BUDGET_WARNING),
    ("between", ["500", "450"], 80, BUDGET_WARNING),
    ("exactly full", ["1000"], 80, BUDGET_EXCEEDED),
    ("over", ["1500"], 80, BUDGET_EXCEEDED),
    ("low threshold", ["100"], 10, BUDGET_WARNING),
]


class TestBudgetAlerts:

    @pytest.mark.parametrize("name,expenses,threshold,expected", BUDGET_SCENARIOS,
                             ids=[s[0] for s in BUDGET_SCENARIOS])
    def test_alert_matches_spend(self, db, owner, name, expenses, threshold, expected):
        wallet = make_wallet(db, owner, balance="10000")
        food = make_category(db, owner, "Food", "out")
        budget = create_budget(db, owner, food.id, Decimal("1000"), d(2026, 3, 1), warning_threshold=threshold)

        for amount in expenses:
            create_transaction(db, owner, food.id, wallet.id, Decimal(amount), at(2026, 3, 10))
        check_budget_notifications(db, owner, food.id, d(2026, 3, 10))

        types = [n.type for n in notifications_for(db, budget.id, RELATED_BUDGET)]
        assert types == ([expected] if expected else [])

    def test_dropping_below_threshold_retracts(self, db, owner):
        wallet = make_wallet(db, owner, balance="10000")
        food = make_category(db, owner, "Food", "out")
        budget = create_budget(db, owner, food.id, Decimal("1000"), d(2026, 3, 1))
        tx = create_transaction(db, owner, food.id, wallet.id, Decimal("900"), at(2026, 3, 10))
        check_budget_notifications(db, owner, food.id, d(2026, 3, 10))
        assert len(notifications_for(db, budget.id, RELATED_BUDGET)) == 1

        delete_transaction(db, owner, tx.id)
        check_budget_notifications(db, owner, food.id, d(2026, 3, 10))

        assert notifications_for(db, budget.id, RELATED_BUDGET) == []

    def test_budget_outside_date_is_not_evaluated(self, db, owner):
        wallet = make_wallet(db, owner, balance="10000")
        food = make_category(db, owner, "Food", "out")
        budget = create_budget(db, owner, food.id, Decimal("100"), d(2026, 3, 1))
        create_transaction(db, owner, food.id, wallet.id, Decimal("500"), at(2026, 4, 2))

        check_budget_notifications(db, owner, food.id, d(2026, 4, 2))

        assert notifications_for(db, budget.id, RELATED_BUDGET) == []


# (contributed, withdrawn, expected types, expected milestone level)
SAVINGS_SCENARIOS = [
    ("below half", "400", "0", [], None),
    ("half", "500", "0", [SAVINGS_MILESTONE], 50),
    ("three quarters", "800", "0", [SAVINGS_MILESTONE], 75),
    ("completed", "1000", "0", [SAVINGS_COMPLETED], None),
    ("back to half", "800", "250", [SAVINGS_MILESTONE], 50),
    ("back below half", "1000", "600", [], None),
]


class TestSavingsMilestones:

    @pytest.mark.parametrize("name,contributed,withdrawn,expected,level", SAVINGS_SCENARIOS,
                             ids=[s[0] for s in SAVINGS_SCENARIOS])
    def test_state_follows_percentage(self, db, owner, name, contributed, withdrawn, expected, level):
        wallet = make_wallet(db, owner, balance="5000")
        goal = make_goal(db, owner, target="1000")

        contribute(db, owner, goal.id, wallet.id, Decimal(contributed))
        evaluate_savings_goal(db, goal)
        if withdrawn != "0":
            withdraw(db, owner, goal.id, wallet.id, Decimal(withdrawn))
            evaluate_savings_goal(db, goal)

        rows = notifications_for(db, goal.id, RELATED_SAVINGS_GOAL)
        assert sorted(n.type for n in rows) == expected
        if level is not None:
            assert rows[0].data["milestone"] == level

    def test_repeat_evaluation_keeps_one_row(self, db, owner):
        wallet = make_wallet(db, owner, balance="5000")
        goal = make_goal(db, owner, target="1000")
        contribute(db, owner, goal.id, wallet.id, Decimal("600"))

        evaluate_savings_goal(db, goal)
        evaluate_savings_goal(db, goal)

        assert len(notifications_for(db, goal.id, RELATED_SAVINGS_GOAL)) == 1


class TestDeadlineReminders:

    def test_budgets_and_goals_in_horizon(self, db, owner):
        food = make_category(db, owner, "Food", "out")
        today = d(2026, 3, 28)
        ending = create_budget(db, owner, food.id, Decimal("100"), d(2026, 3, 1), end_date=d(2026, 3, 31))
        later = create_budget(db, owner, food.id, Decimal("100"), d(2026, 4, 1), end_date=d(2026, 4, 30))
        due = make_goal(db, owner, name="Trip", deadline=d(2026, 4, 4))
        far = make_goal(db, owner, name="House", deadline=d(2026, 6, 1))

        count = check_deadline_reminders(db, today)

        assert count == 2
        budget_reminder = notifications_for(db, ending.id, RELATED_BUDGET)
        assert [n.type for n in budget_reminder] == [DEADLINE_REMINDER]
        assert budget_reminder[0].data["days_left"] == 3
        goal_reminder = notifications_for(db, due.id, RELATED_SAVINGS_GOAL)
        assert goal_reminder[0].data["days_left"] == 7
        assert notifications_for(db, later.id, RELATED_BUDGET) == []
        assert notifications_for(db, far.id, RELATED_SAVINGS_GOAL) == []

    def test_completed_goals_are_skipped(self, db, owner):
        wallet = make_wallet(db, owner, balance="100000")
        goal = make_goal(db, owner, target="100", deadline=d(2026, 4, 1))
        contribute(db, owner, goal.id, wallet.id, Decimal("100"))

        assert check_deadline_reminders(db, d(2026, 3, 30)) == 0

    def test_sweep_is_deduplicated(self, db, owner):
        make_goal(db, owner, deadline=d(2026, 4, 1))

        check_deadline_reminders(db, d(2026, 3, 30))
        check_deadline_reminders(db, d(2026, 3, 30))

        assert db.query(Notification).count() == 1


class TestInbox:

    def test_expired_rows_hidden_and_purged(self, db, owner):
        old = utcnow() - timedelta(days=31)
        create_notification(db, owner, BUDGET_WARNING, "old", "m", 1, RELATED_BUDGET, now=old)
        create_notification(db, owner, BUDGET_WARNING, "new", "m", 2, RELATED_BUDGET)

        assert [n.title for n in list_notifications(db, owner)] == ["new"]
        assert unread_count(db, owner) == 1

        assert purge_expired_notifications(db) == 1
        assert db.query(Notification).count() == 1

    def test_read_all_then_delete_read(self, db, owner, other_owner):
        create_notification(db, owner, BUDGET_WARNING, "a", "m", 1, RELATED_BUDGET)
        create_notification(db, other_owner, BUDGET_WARNING, "b", "m", 1, RELATED_BUDGET)

        assert mark_all_read(db, owner) == 1
        assert unread_count(db, owner) == 0
        assert unread_count(db, other_owner) == 1

        assert delete_read_notifications(db, owner) == 1
        assert db.query(Notification).count() == 1

    def test_list_is_capped(self, db, owner):
        for related_id in range(20):
            create_notification(db, owner, BUDGET_WARNING, "t", "m", related_id, RELATED_BUDGET)

        assert len(list_notifications(db, owner)) == 15
