from sqlalchemy import func, select
from sqlalchemy.orm import Session

from database import Base, build_engine
from models import Account, Category, Transaction
from seed import DEMO_EMAIL, SYSTEM_CATEGORIES, seed_demo_data, seed_system_categories
from services import BudgetService, UserService


def test_seed_is_idempotent_and_balances_come_from_transactions() -> None:
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        for _ in range(2):
            categories = seed_system_categories(session)
            user_id = seed_demo_data(session, categories)

        assert session.scalar(
            select(func.count(Category.id)).where(Category.user_id.is_(None))
        ) == len(SYSTEM_CATEGORIES)
        assert session.scalar(select(func.count(Transaction.id))) == 4
        assert UserService(session).get(user_id).email == DEMO_EMAIL

        checking = session.scalar(select(Account).where(Account.name == "Main Checking"))
        assert checking.balance_cents == 329851

        food = next(
            p for p in BudgetService(session, user_id).list()
            if p.budget.name == "Food & Dining Budget"
        )
        assert food.remaining_cents == 45401
