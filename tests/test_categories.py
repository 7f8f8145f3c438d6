from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from database import Base, build_engine
from errors import ConflictError, NotFoundError, ValidationError
from models import AccountType, BudgetPeriod, Category, TransactionType
from schemas import AccountIn, BudgetIn, CategoryIn, CategoryUpdate, TransactionIn
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


def test_list_shows_system_and_own_categories_with_children() -> None:
    with Session(_engine()) as session:
        session.add(Category(user_id=None, name="Salary", type=TransactionType.income))
        session.commit()
        ana = UserService(session).get_or_create("ana@example.com")
        bo = UserService(session).get_or_create("bo@example.com")
        service = CategoryService(session, ana.id)
        home = service.create(CategoryIn(name="Home", type=TransactionType.expense))
        service.create(
            CategoryIn(name="Garden", type=TransactionType.expense, parent_id=home.id)
        )
        CategoryService(session, bo.id).create(
            CategoryIn(name="Boats", type=TransactionType.expense)
        )

        categories = service.list_all()

        assert [c.name for c in categories] == ["Garden", "Home", "Salary"]
        home_row = next(c for c in categories if c.name == "Home")
        assert [c.name for c in home_row.children] == ["Garden"]
        assert next(c for c in categories if c.name == "Salary").is_system


def test_duplicate_names_conflict_case_insensitively() -> None:
    with Session(_engine()) as session:
        user = UserService(session).get_or_create("ana@example.com")
        service = CategoryService(session, user.id)
        service.create(CategoryIn(name="Pets", type=TransactionType.expense))

        with pytest.raises(ConflictError):
            service.create(CategoryIn(name=" pets ", type=TransactionType.expense))


def test_nesting_is_limited_to_one_level() -> None:
    with Session(_engine()) as session:
        user = UserService(session).get_or_create("ana@example.com")
        service = CategoryService(session, user.id)
        top = service.create(CategoryIn(name="Home", type=TransactionType.expense))
        child = service.create(
            CategoryIn(name="Garden", type=TransactionType.expense, parent_id=top.id)
        )

        with pytest.raises(ValidationError):
            service.create(
                CategoryIn(name="Seeds", type=TransactionType.expense, parent_id=child.id)
            )
        with pytest.raises(ValidationError):
            service.update(top.id, CategoryUpdate(parent_id=top.id))


def test_system_categories_cannot_be_edited_by_users() -> None:
    with Session(_engine()) as session:
        system = Category(user_id=None, name="Travel", type=TransactionType.expense)
        session.add(system)
        session.commit()
        user = UserService(session).get_or_create("ana@example.com")

        with pytest.raises(NotFoundError):
            CategoryService(session, user.id).update(system.id, CategoryUpdate(name="Trips"))
        with pytest.raises(NotFoundError):
            CategoryService(session, user.id).delete(system.id)


def test_deleting_category_uncategorizes_its_transactions() -> None:
    with Session(_engine()) as session:
        user = UserService(session).get_or_create("ana@example.com")
        account = AccountService(session, user.id).create(
            AccountIn(name="Checking", type=AccountType.checking)
        )
        service = CategoryService(session, user.id)
        pets = service.create(CategoryIn(name="Pets", type=TransactionType.expense))
        txn = TransactionService(session, user.id).create(
            TransactionIn(
                account_id=account.id,
                amount=Decimal("19.99"),
                type=TransactionType.expense,
                description="Food bowl",
                category_id=pets.id,
                date=date(2024, 1, 3),
            )
        )

        service.delete(pets.id)
        session.expire_all()

        reloaded = TransactionService(session, user.id).get(txn.id)
        assert reloaded.category_id is None
        assert reloaded.category is None


def test_category_with_children_cannot_be_nested() -> None:
    with Session(_engine()) as session:
        user = UserService(session).get_or_create("ana@example.com")
        service = CategoryService(session, user.id)
        home = service.create(CategoryIn(name="Home", type=TransactionType.expense))
        service.create(
            CategoryIn(name="Garden", type=TransactionType.expense, parent_id=home.id)
        )
        top = service.create(CategoryIn(name="Living", type=TransactionType.expense))

        with pytest.raises(ValidationError, match="one level deep"):
            service.update(home.id, CategoryUpdate(parent_id=top.id))
        assert service.get_owned(home.id).parent_id is None


def test_type_change_is_rejected_while_transactions_disagree() -> None:
    with Session(_engine()) as session:
        user = UserService(session).get_or_create("ana@example.com")
        account = AccountService(session, user.id).create(
            AccountIn(name="Checking", type=AccountType.checking)
        )
        service = CategoryService(session, user.id)
        food = service.create(CategoryIn(name="Food", type=TransactionType.expense))
        TransactionService(session, user.id).create(
            TransactionIn(
                account_id=account.id,
                amount=Decimal("8"),
                type=TransactionType.expense,
                description="Lunch",
                category_id=food.id,
                date=date(2024, 1, 3),
            )
        )
        empty = service.create(CategoryIn(name="Misc", type=TransactionType.expense))

        with pytest.raises(ValidationError, match="Category type mismatch"):
            service.update(food.id, CategoryUpdate(type=TransactionType.income))
        assert service.get_owned(food.id).type == TransactionType.expense
        assert service.update(empty.id, CategoryUpdate(type=TransactionType.income)).type == (
            TransactionType.income
        )


def test_category_used_by_budget_cannot_be_deleted() -> None:
    with Session(_engine()) as session:
        user = UserService(session).get_or_create("ana@example.com")
        service = CategoryService(session, user.id)
        food = service.create(CategoryIn(name="Food", type=TransactionType.expense))
        budgets = BudgetService(session, user.id)
        budget = budgets.create(
            BudgetIn(
                name="Food",
                amount=Decimal("300"),
                period=BudgetPeriod.monthly,
                start_date=date(2024, 1, 1),
                category_id=food.id,
            )
        )

        with pytest.raises(ConflictError):
            service.delete(food.id)
        assert budgets.get(budget.id).budget.category_id == food.id

        food_id = food.id
        budgets.delete(budget.id)
        service.delete(food_id)
        with pytest.raises(NotFoundError):
            service.get_owned(food_id)
