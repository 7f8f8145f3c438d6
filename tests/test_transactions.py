from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from database import Base, build_engine
from models import AccountType, TransactionStatus, TransactionType
from schemas import AccountIn, TransactionIn, TransactionQuery, TransactionUpdate
from services import AccountService, TransactionService, UserService


def _engine():
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return engine


def _seed(session: Session):
    user = UserService(session).get_or_create("ana@example.com")
    account = AccountService(session, user.id).create(
        AccountIn(name="Checking", type=AccountType.checking)
    )
    return TransactionService(session, user.id), account


def test_tags_are_deduplicated_and_filterable() -> None:
    with Session(_engine()) as session:
        service, account = _seed(session)
        lunch = service.create(
            TransactionIn(
                account_id=account.id,
                amount=Decimal("9.50"),
                type=TransactionType.expense,
                description="Team lunch",
                date=date(2024, 3, 4),
                tags=["Lunch", " Lunch ", "Work"],
            )
        )
        service.create(
            TransactionIn(
                account_id=account.id,
                amount=Decimal("3"),
                type=TransactionType.expense,
                description="Coffee",
                date=date(2024, 3, 5),
                tags=["Coffee"],
            )
        )

        assert sorted(t.name for t in lunch.tags) == ["Lunch", "Work"]

        page = service.list(TransactionQuery(tags=["Work"]))
        assert page.total == 1
        assert [t.description for t in page.transactions] == ["Team lunch"]


def test_search_matches_description_merchant_and_notes() -> None:
    with Session(_engine()) as session:
        service, account = _seed(session)
        for description, merchant, notes in [
            ("Groceries", "Corner Market", None),
            ("Snacks", None, "market stall"),
            ("Fuel", "Shell", None),
        ]:
            service.create(
                TransactionIn(
                    account_id=account.id,
                    amount=Decimal("5"),
                    type=TransactionType.expense,
                    description=description,
                    merchant_name=merchant,
                    notes=notes,
                    date=date(2024, 3, 1),
                )
            )

        page = service.list(TransactionQuery(search="MARKET", sort_by="description", sort_order="asc"))

        assert [t.description for t in page.transactions] == ["Groceries", "Snacks"]


def test_pagination_and_sorting() -> None:
    with Session(_engine()) as session:
        service, account = _seed(session)
        for day, amount in [(1, "40"), (2, "10"), (3, "30"), (4, "20"), (5, "50")]:
            service.create(
                TransactionIn(
                    account_id=account.id,
                    amount=Decimal(amount),
                    type=TransactionType.expense,
                    description=f"Day {day}",
                    date=date(2024, 2, day),
                )
            )

        newest = service.list(TransactionQuery(limit=2))
        assert newest.total == 5
        assert [t.description for t in newest.transactions] == ["Day 5", "Day 4"]

        last_page = service.list(TransactionQuery(limit=2, page=3))
        assert [t.description for t in last_page.transactions] == ["Day 1"]

        cheapest = service.list(TransactionQuery(sort_by="amount", sort_order="asc", limit=3))
        assert [t.amount_cents for t in cheapest.transactions] == [1000, 2000, 3000]

        window = service.list(
            TransactionQuery(start_date=date(2024, 2, 2), end_date=date(2024, 2, 3))
        )
        assert window.total == 2


def test_statistics_count_posted_transactions_only() -> None:
    with Session(_engine()) as session:
        service, account = _seed(session)
        for amount, txn_type in [
            ("100", TransactionType.income),
            ("30", TransactionType.expense),
            ("20", TransactionType.expense),
        ]:
            service.create(
                TransactionIn(
                    account_id=account.id,
                    amount=Decimal(amount),
                    type=txn_type,
                    description="Entry",
                    date=date(2024, 4, 2),
                )
            )
        pending = service.create(
            TransactionIn(
                account_id=account.id,
                amount=Decimal("999"),
                type=TransactionType.expense,
                description="Held",
                date=date(2024, 4, 3),
            )
        )
        service.update(pending.id, TransactionUpdate(status=TransactionStatus.pending))

        stats = service.statistics(date(2024, 4, 1), date(2024, 4, 30))

        assert stats.income_cents == 10000
        assert stats.expense_cents == 5000
        assert stats.count == 3
        assert stats.average_cents == 5000

        assert service.statistics(date(2024, 5, 1), date(2024, 5, 31)).average_cents == 0


def test_update_can_clear_optional_fields() -> None:
    with Session(_engine()) as session:
        service, account = _seed(session)
        txn = service.create(
            TransactionIn(
                account_id=account.id,
                amount=Decimal("12"),
                type=TransactionType.expense,
                description="Books",
                merchant_name="Bookshop",
                notes="gift",
                date=date(2024, 4, 2),
            )
        )

        updated = service.update(
            txn.id, TransactionUpdate(merchant_name=None, description=None, notes="mine")
        )

        assert updated.merchant_name is None
        assert updated.description == "Books"
        assert updated.notes == "mine"
