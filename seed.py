import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from auth import issue_access_token
from database import create_schema, session_scope
from models import AccountType, BudgetPeriod, Category, TransactionType
from schemas import AccountIn, BudgetIn, TransactionIn
from services import AccountService, BudgetService, TransactionService, UserService

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@financeflow.com"

SYSTEM_CATEGORIES = [
    ("Food & Dining", "🍔", "#FF6B6B", TransactionType.expense),
    ("Shopping", "🛍️", "#4ECDC4", TransactionType.expense),
    ("Transportation", "🚗", "#45B7D1", TransactionType.expense),
    ("Bills & Utilities", "💡", "#F7B731", TransactionType.expense),
    ("Entertainment", "🎬", "#5F27CD", TransactionType.expense),
    ("Healthcare", "⚕️", "#00D2D3", TransactionType.expense),
    ("Personal Care", "💇", "#FD79A8", TransactionType.expense),
    ("Education", "📚", "#6C5CE7", TransactionType.expense),
    ("Travel", "✈️", "#FF7675", TransactionType.expense),
    ("Housing", "🏠", "#2D3436", TransactionType.expense),
    ("Insurance", "🛡️", "#0984E3", TransactionType.expense),
    ("Subscriptions", "📱", "#74B9FF", TransactionType.expense),
    ("Salary", "💰", "#00B894", TransactionType.income),
    ("Freelance", "💼", "#00CEC9", TransactionType.income),
    ("Investments", "📈", "#FDCB6E", TransactionType.income),
    ("Refunds", "↩️", "#A29BFE", TransactionType.income),
    ("Gifts", "🎁", "#FF7675", TransactionType.income),
    ("Other Income", "💵", "#55EFC4", TransactionType.income),
]


def seed_system_categories(session: Session) -> dict[str, Category]:
    existing = {
        c.name: c
        for c in session.scalars(select(Category).where(Category.user_id.is_(None)))
    }
    for name, icon, color, txn_type in SYSTEM_CATEGORIES:
        if name in existing:
            continue
        category = Category(user_id=None, name=name, icon=icon, color=color, type=txn_type)
        session.add(category)
        existing[name] = category
    session.commit()
    return existing


def seed_demo_data(session: Session, categories: dict[str, Category]) -> int:
    """Create the demo user with accounts, transactions and budgets; returns its id."""
    user = UserService(session).get_or_create(DEMO_EMAIL, name="Demo User")
    accounts = AccountService(session, user.id)
    if accounts.list_all():
        return user.id

    checking = accounts.create(
        AccountIn(name="Main Checking", type=AccountType.checking, institution="Demo Bank")
    )
    accounts.create(
        AccountIn(name="Savings Account", type=AccountType.savings, institution="Demo Bank")
    )
    accounts.create(
        AccountIn(
            name="Credit Card",
            type=AccountType.credit_card,
            institution="Demo Credit Union",
        )
    )

    transactions = TransactionService(session, user.id)
    for amount, txn_type, description, merchant, category, day in [
        ("3500", TransactionType.income, "Monthly Salary", None, "Salary", 1),
        ("45.99", TransactionType.expense, "Grocery Store", "Whole Foods", "Food & Dining", 5),
        ("120.50", TransactionType.expense, "Shopping", "Amazon", "Shopping", 8),
        ("35.00", TransactionType.expense, "Gas Station", "Shell", "Transportation", 10),
    ]:
        transactions.create(
            TransactionIn(
                account_id=checking.id,
                amount=Decimal(amount),
                type=txn_type,
                description=description,
                merchant_name=merchant,
                category_id=categories[category].id,
                date=date(2024, 1, day),
            )
        )

    budgets = BudgetService(session, user.id)
    for name, amount, category in [
        ("Food & Dining Budget", "500", "Food & Dining"),
        ("Shopping Budget", "300", "Shopping"),
    ]:
        budgets.create(
            BudgetIn(
                name=name,
                amount=Decimal(amount),
                period=BudgetPeriod.monthly,
                category_id=categories[category].id,
                start_date=date(2024, 1, 1),
                end_date=date(2024, 1, 31),
            )
        )
    logger.info(f"demo_seeded: user_id={user.id} account_id={checking.id}")
    return user.id


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    create_schema()
    with session_scope() as session:
        categories = seed_system_categories(session)
        user_id = seed_demo_data(session, categories)
    logger.info(f"seed_complete: system_categories={len(SYSTEM_CATEGORIES)}")
    logger.info(f"demo_token: {issue_access_token(user_id)}")


if __name__ == "__main__":
    main()
