from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from database import Base, build_engine
from errors import NotFoundError, ValidationError
from models import AccountType, BudgetPeriod, TransactionType
from schemas import AccountIn, BudgetIn, BudgetUpdate, CategoryIn, TransactionIn
from services import (
    AccountService,
    BudgetService,
    CategoryService,
    TransactionService,
    UserService,
)


def _engine():
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return engine


def _spend(session: Session, user_id: int, account_id: int, amount: str, **kwargs) -> None:
    TransactionService(session, user_id).create(
        TransactionIn(
            account_id=account_id,
            amount=Decimal(amount),
            type=kwargs.pop("type", TransactionType.expense),
            description="Purchase",
            date=kwargs.pop("date", date(2024, 1, 10)),
            **kwargs,
        )
    )


def _setup(session: Session):
    user = UserService(session).get_or_create("ana@example.com")
    account = AccountService(session, user.id).create(
        AccountIn(name="Checking", type=AccountType.checking)
    )
    return user.id, account.id


def _budget(name: str, amount: str, category_id=None, **kwargs) -> BudgetIn:
    return BudgetIn(
        name=name,
        amount=Decimal(amount),
        period=kwargs.pop("period", BudgetPeriod.monthly),
        start_date=date(2024, 1, 1),
        end_date=kwargs.pop("end_date", date(2024, 1, 31)),
        category_id=category_id,
        **kwargs,
    )


def test_category_budget_progress() -> None:
    with Session(_engine()) as session:
        user_id, account_id = _setup(session)
        food = CategoryService(session, user_id).create(
            CategoryIn(name="Food & Dining", type=TransactionType.expense)
        )
        _spend(session, user_id, account_id, "45.99", category_id=food.id)
        _spend(session, user_id, account_id, "120.50")
        service = BudgetService(session, user_id)
        budget = service.create(_budget("Food", "500", food.id))

        progress = service.get(budget.id)

        assert progress.spent_cents == 4599
        assert progress.remaining_cents == 45401
        assert progress.percentage_used == pytest.approx(9.198)
        assert progress.is_over_budget is False
        assert progress.remaining_cents + progress.spent_cents == budget.amount_cents


def test_spending_ignores_income_out_of_range_and_other_owners() -> None:
    with Session(_engine()) as session:
        user_id, account_id = _setup(session)
        _spend(session, user_id, account_id, "10")
        _spend(session, user_id, account_id, "99", type=TransactionType.income)
        _spend(session, user_id, account_id, "7", date=date(2024, 2, 1))
        _spend(session, user_id, account_id, "8", type=TransactionType.transfer)
        other = UserService(session).get_or_create("bo@example.com")
        other_account = AccountService(session, other.id).create(
            AccountIn(name="Other", type=AccountType.checking)
        )
        _spend(session, other.id, other_account.id, "50")

        service = BudgetService(session, user_id)
        bounded = service.create(_budget("Everything", "100"))
        open_ended = service.create(_budget("Open", "100", end_date=None))

        assert service.calculate_spending(bounded) == 1000
        assert service.calculate_spending(open_ended) == 1700


def test_alert_reports_usage_above_threshold() -> None:
    with Session(_engine()) as session:
        user_id, account_id = _setup(session)
        shopping = CategoryService(session, user_id).create(
            CategoryIn(name="Shopping", type=TransactionType.expense)
        )
        _spend(session, user_id, account_id, "260", category_id=shopping.id)
        service = BudgetService(session, user_id)
        service.create(_budget("Shopping", "300", shopping.id, alert_threshold=80))
        service.create(_budget("Quiet", "300", shopping.id, alert_enabled=False))

        alerts = service.alerts()

        assert [a.message for a in alerts] == ["You've used 86.67% of your Shopping budget"]


def test_over_budget_message_takes_precedence() -> None:
    with Session(_engine()) as session:
        user_id, account_id = _setup(session)
        _spend(session, user_id, account_id, "320.50")
        service = BudgetService(session, user_id)
        service.create(_budget("Shopping", "300"))
        service.create(_budget("Travel", "1000"))

        alerts = service.alerts()

        assert len(alerts) == 1
        assert alerts[0].progress.is_over_budget
        assert alerts[0].message == "You've exceeded your Shopping budget by $20.50"


def test_foreign_category_and_budget_are_not_found() -> None:
    with Session(_engine()) as session:
        user_id, _ = _setup(session)
        other = UserService(session).get_or_create("bo@example.com")
        private = CategoryService(session, other.id).create(
            CategoryIn(name="Hobby", type=TransactionType.expense)
        )
        theirs = BudgetService(session, other.id).create(_budget("Theirs", "50"))
        service = BudgetService(session, user_id)

        with pytest.raises(NotFoundError, match="Category not found"):
            service.create(_budget("Hobby", "50", private.id))
        with pytest.raises(NotFoundError, match="Budget not found"):
            service.get(theirs.id)
        with pytest.raises(NotFoundError):
            service.delete(theirs.id)


def test_list_filters_by_period_and_update_validates_dates() -> None:
    with Session(_engine()) as session:
        user_id, _ = _setup(session)
        service = BudgetService(session, user_id)
        monthly = service.create(_budget("Groceries", "400"))
        service.create(_budget("Holidays", "2000", period=BudgetPeriod.yearly, end_date=None))

        assert [p.budget.name for p in service.list(BudgetPeriod.monthly)] == ["Groceries"]
        assert len(service.list()) == 2

        updated = service.update(monthly.id, BudgetUpdate(amount=Decimal("450.25")))
        assert updated.amount_cents == 45025

        with pytest.raises(ValidationError):
            service.update(monthly.id, BudgetUpdate(end_date=date(2023, 12, 1)))
