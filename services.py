from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from errors import ConflictError, NotFoundError, ValidationError
from models import (
    Account,
    Budget,
    BudgetPeriod,
    Category,
    Tag,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
)
from money import to_cents
from periods import (
    Period,
    add_months,
    days_between,
    month_end,
    month_period,
    months_between,
    resolve_trend_period,
)
from schemas import (
    AccountIn,
    AccountUpdate,
    BudgetIn,
    BudgetUpdate,
    CategoryIn,
    CategoryUpdate,
    TransactionIn,
    TransactionQuery,
    TransactionUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_ALERT_THRESHOLD = 80
UNCATEGORIZED = "Uncategorized"


def percent_change(current: int, previous: int) -> float:
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100


def savings_rate(income: int, expenses: int) -> float:
    if income <= 0:
        return 0.0
    return (income - expenses) / income * 100


def _commit(session: Session) -> None:
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError("A record with this value already exists") from exc


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def exists(self, user_id: int) -> bool:
        return self.session.get(User, user_id) is not None

    def get_or_create(self, email: str, name: Optional[str] = None) -> User:
        user = self.session.scalar(select(User).where(User.email == email))
        if user:
            return user
        user = User(email=email, name=name)
        self.session.add(user)
        _commit(self.session)
        self.session.refresh(user)
        return user

    def all_ids(self) -> list[int]:
        return list(self.session.scalars(select(User.id).order_by(User.id)))


class TagService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def get_or_create(self, name: str) -> Tag:
        clean = name.strip()
        if not clean:
            raise ValidationError("Tag name cannot be empty")
        tag = self.session.scalar(
            select(Tag).where(Tag.user_id == self.user_id, Tag.name == clean)
        )
        if tag:
            return tag
        tag = Tag(user_id=self.user_id, name=clean)
        self.session.add(tag)
        self.session.flush()
        return tag

    def resolve(self, names: list[str]) -> list[Tag]:
        tags: list[Tag] = []
        tag_ids: set[int] = set()
        for name in names:
            tag = self.get_or_create(name)
            if tag.id not in tag_ids:
                tags.append(tag)
                tag_ids.add(tag.id)
        return tags


class CategoryService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def _visible(self):
        return or_(Category.user_id == self.user_id, Category.user_id.is_(None))

    def list_all(self) -> list[Category]:
        stmt = (
            select(Category)
            .options(selectinload(Category.children))
            .where(self._visible(), Category.is_active.is_(True))
            .order_by(Category.name.asc(), Category.id.asc())
        )
        return list(self.session.scalars(stmt))

    def get_visible(self, category_id: int) -> Category:
        """Own or system category, as usable by transactions and budgets."""
        category = self.session.scalar(
            select(Category).where(Category.id == category_id, self._visible())
        )
        if not category:
            raise NotFoundError("Category not found")
        return category

    def get_owned(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if not category or category.user_id != self.user_id:
            raise NotFoundError("Category not found")
        return category

    def _check_parent(self, parent_id: Optional[int], category_id: Optional[int] = None) -> None:
        if parent_id is None:
            return
        if parent_id == category_id:
            raise ValidationError("A category cannot be its own parent")
        parent = self.get_visible(parent_id)
        if parent.parent_id is not None:
            raise ValidationError("Categories can only be nested one level deep")

    def create(self, data: CategoryIn) -> Category:
        self._check_parent(data.parent_id)
        name = data.name.strip()
        exists = self.session.scalar(
            select(Category.id).where(
                Category.user_id == self.user_id,
                func.lower(Category.name) == name.lower(),
            )
        )
        if exists:
            raise ConflictError("Category with this name already exists")
        category = Category(
            user_id=self.user_id,
            name=name,
            type=data.type,
            icon=data.icon,
            color=data.color,
            parent_id=data.parent_id,
        )
        self.session.add(category)
        _commit(self.session)
        self.session.refresh(category)
        return category

    def update(self, category_id: int, data: CategoryUpdate) -> Category:
        category = self.get_owned(category_id)
        changes = data.model_dump(exclude_unset=True)
        if "parent_id" in changes:
            self._check_parent(changes["parent_id"], category.id)
            if changes["parent_id"] is not None and self._has_children(category.id):
                raise ValidationError("Categories can only be nested one level deep")
        new_type = changes.get("type")
        if new_type is not None and new_type != category.type:
            mismatched = self.session.scalar(
                select(Transaction.id)
                .where(
                    Transaction.category_id == category.id,
                    Transaction.type != new_type,
                )
                .limit(1)
            )
            if mismatched is not None:
                raise ValidationError("Category type mismatch")
        for field, value in changes.items():
            if value is None and field in {"name", "type", "is_active"}:
                continue
            if field == "name":
                value = value.strip()
            setattr(category, field, value)
        _commit(self.session)
        self.session.refresh(category)
        return category

    def _has_children(self, category_id: int) -> bool:
        child = self.session.scalar(
            select(Category.id).where(Category.parent_id == category_id).limit(1)
        )
        return child is not None

    def delete(self, category_id: int) -> None:
        category = self.get_owned(category_id)
        # Budgets keep their category scope; they must be removed first.
        budget_id = self.session.scalar(
            select(Budget.id).where(Budget.category_id == category.id).limit(1)
        )
        if budget_id is not None:
            raise ConflictError("Category is used by a budget")
        self.session.execute(
            update(Transaction)
            .where(Transaction.category_id == category.id)
            .values(category_id=None)
        )
        self.session.execute(
            update(Category).where(Category.parent_id == category.id).values(parent_id=None)
        )
        self.session.delete(category)
        _commit(self.session)


class AccountService:
    """Account store plus the balance recalculator.

    Balances are never adjusted incrementally: every recalculation re-sums
    the account's posted income and expenses in one UPDATE statement, run in
    the same database transaction as the mutation that triggered it.
    Transfers are left out of both sums.
    """

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[Account]:
        stmt = (
            select(Account)
            .where(Account.user_id == self.user_id)
            .order_by(Account.created_at.desc(), Account.id.desc())
        )
        return list(self.session.scalars(stmt))

    def get(self, account_id: int) -> Account:
        account = self.session.get(Account, account_id)
        if not account or account.user_id != self.user_id:
            raise NotFoundError("Account not found")
        return account

    def create(self, data: AccountIn) -> Account:
        account = Account(
            user_id=self.user_id,
            name=data.name.strip(),
            type=data.type,
            currency=data.currency.upper(),
            institution=data.institution,
            is_active=data.is_active,
            balance_cents=0,
        )
        self.session.add(account)
        _commit(self.session)
        self.session.refresh(account)
        return account

    def update(self, account_id: int, data: AccountUpdate) -> Account:
        account = self.get(account_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "currency" and value is not None:
                value = value.upper()
            setattr(account, field, value)
        _commit(self.session)
        self.session.refresh(account)
        return account

    def delete(self, account_id: int) -> None:
        account = self.get(account_id)
        self.session.delete(account)
        _commit(self.session)

    @staticmethod
    def _balance_subquery(account_id: int):
        signed = case(
            (Transaction.type == TransactionType.income, Transaction.amount_cents),
            (Transaction.type == TransactionType.expense, -Transaction.amount_cents),
            else_=0,
        )
        return (
            select(func.coalesce(func.sum(signed), 0))
            .where(
                Transaction.account_id == account_id,
                Transaction.status == TransactionStatus.posted,
            )
            .scalar_subquery()
        )

    def recalculate_balance(self, account_id: int) -> int:
        """Overwrite the cached balance with income minus expenses; does not commit."""
        account = self.get(account_id)
        self.session.flush()
        self.session.execute(
            update(Account)
            .where(Account.id == account.id, Account.user_id == self.user_id)
            .values(balance_cents=self._balance_subquery(account.id))
            .execution_options(synchronize_session=False)
        )
        self.session.refresh(account)
        logger.info(
            f"balance_recalculated: account_id={account.id} balance_cents={account.balance_cents}"
        )
        return account.balance_cents

    def recalculate_all(self) -> int:
        """Recompute every account of the owner and return how many balances changed."""
        changed = 0
        for account in self.list_all():
            before = account.balance_cents
            if self.recalculate_balance(account.id) != before:
                changed += 1
        self.session.commit()
        return changed


@dataclass
class TransactionPage:
    transactions: list[Transaction]
    total: int
    page: int
    limit: int


@dataclass(frozen=True)
class TransactionStatistics:
    income_cents: int
    expense_cents: int
    count: int

    @property
    def average_cents(self) -> float:
        if not self.count:
            return 0.0
        return (self.income_cents + self.expense_cents) / self.count


class TransactionService:
    SORT_COLUMNS = {
        "date": Transaction.date,
        "amount": Transaction.amount_cents,
        "description": Transaction.description,
        "created_at": Transaction.created_at,
    }
    NULLABLE_FIELDS = {"merchant_name", "notes", "receipt_url", "tax_category"}

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self.accounts = AccountService(session, user_id)
        self.categories = CategoryService(session, user_id)

    def _check_category(
        self, category_id: Optional[int], txn_type: TransactionType
    ) -> Optional[Category]:
        if category_id is None:
            return None
        category = self.categories.get_visible(category_id)
        if category.type != txn_type:
            raise ValidationError("Category type mismatch")
        return category

    def create(self, data: TransactionIn) -> Transaction:
        account = self.accounts.get(data.account_id)
        self._check_category(data.category_id, data.type)
        txn = Transaction(
            user_id=self.user_id,
            account_id=account.id,
            amount_cents=to_cents(data.amount),
            currency=data.currency.upper(),
            type=data.type,
            status=TransactionStatus.posted,
            description=data.description.strip(),
            merchant_name=data.merchant_name,
            category_id=data.category_id,
            date=data.date,
            notes=data.notes,
            receipt_url=data.receipt_url,
            tax_deductible=data.tax_deductible,
            tax_category=data.tax_category,
        )
        if data.tags:
            txn.tags = TagService(self.session, self.user_id).resolve(data.tags)
        self.session.add(txn)
        self.session.flush()
        self.accounts.recalculate_balance(account.id)
        _commit(self.session)
        return self.get(txn.id)

    def get(self, transaction_id: int) -> Transaction:
        stmt = (
            select(Transaction)
            .options(
                joinedload(Transaction.category),
                joinedload(Transaction.account),
                selectinload(Transaction.tags),
            )
            .where(
                Transaction.user_id == self.user_id, Transaction.id == transaction_id
            )
        )
        txn = self.session.scalar(stmt)
        if not txn:
            raise NotFoundError("Transaction not found")
        return txn

    def update(self, transaction_id: int, data: TransactionUpdate) -> Transaction:
        txn = self.get(transaction_id)
        changes = data.model_dump(exclude_unset=True)
        old_account_id = txn.account_id

        if changes.pop("account_id", None) is not None:
            txn.account = self.accounts.get(data.account_id)
        new_type = changes.get("type") or txn.type
        if "category_id" in changes or "type" in changes:
            category_id = changes.pop("category_id", txn.category_id)
            txn.category = self._check_category(category_id, new_type)
        if "tags" in changes:
            txn.tags = TagService(self.session, self.user_id).resolve(
                changes.pop("tags") or []
            )
        amount = changes.pop("amount", None)
        if amount is not None:
            txn.amount_cents = to_cents(amount)

        for field, value in changes.items():
            if value is None and field not in self.NULLABLE_FIELDS:
                continue
            if field == "currency":
                value = value.upper()
            setattr(txn, field, value)

        self.session.flush()
        self.accounts.recalculate_balance(txn.account_id)
        if txn.account_id != old_account_id:
            self.accounts.recalculate_balance(old_account_id)
        _commit(self.session)
        self.session.expire(txn)
        return self.get(transaction_id)

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        account_id = txn.account_id
        self.session.delete(txn)
        self.session.flush()
        self.accounts.recalculate_balance(account_id)
        _commit(self.session)

    def list(self, query: TransactionQuery) -> TransactionPage:
        conditions = [Transaction.user_id == self.user_id]
        if query.account_id:
            conditions.append(Transaction.account_id == query.account_id)
        if query.category_id:
            conditions.append(Transaction.category_id == query.category_id)
        if query.type:
            conditions.append(Transaction.type == query.type)
        if query.start_date:
            conditions.append(Transaction.date >= query.start_date)
        if query.end_date:
            conditions.append(Transaction.date <= query.end_date)
        if query.search:
            like = f"%{query.search.lower()}%"
            conditions.append(
                or_(
                    func.lower(Transaction.description).like(like),
                    func.lower(func.coalesce(Transaction.merchant_name, "")).like(like),
                    func.lower(func.coalesce(Transaction.notes, "")).like(like),
                )
            )
        if query.tags:
            conditions.append(Transaction.tags.any(Tag.name.in_(query.tags)))

        column = self.SORT_COLUMNS[query.sort_by]
        ordering = column.asc() if query.sort_order == "asc" else column.desc()
        id_ordering = (
            Transaction.id.asc() if query.sort_order == "asc" else Transaction.id.desc()
        )
        stmt = (
            select(Transaction)
            .options(
                joinedload(Transaction.category),
                joinedload(Transaction.account),
                selectinload(Transaction.tags),
            )
            .where(*conditions)
            .order_by(ordering, id_ordering)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        total = int(
            self.session.execute(
                select(func.count(Transaction.id)).where(*conditions)
            ).scalar_one()
        )
        return TransactionPage(
            transactions=list(self.session.scalars(stmt).unique()),
            total=total,
            page=query.page,
            limit=query.limit,
        )

    def statistics(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> TransactionStatistics:
        conditions = [
            Transaction.user_id == self.user_id,
            Transaction.status == TransactionStatus.posted,
        ]
        if start:
            conditions.append(Transaction.date >= start)
        if end:
            conditions.append(Transaction.date <= end)

        def total_for(txn_type: TransactionType) -> int:
            return int(
                self.session.execute(
                    select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
                        *conditions, Transaction.type == txn_type
                    )
                ).scalar_one()
                or 0
            )

        count = int(
            self.session.execute(
                select(func.count(Transaction.id)).where(*conditions)
            ).scalar_one()
        )
        return TransactionStatistics(
            income_cents=total_for(TransactionType.income),
            expense_cents=total_for(TransactionType.expense),
            count=count,
        )


@dataclass(frozen=True)
class BudgetProgress:
    budget: Budget
    spent_cents: int

    @property
    def remaining_cents(self) -> int:
        return self.budget.amount_cents - self.spent_cents

    @property
    def percentage_used(self) -> float:
        if not self.budget.amount_cents:
            return 0.0
        return self.spent_cents / self.budget.amount_cents * 100

    @property
    def is_over_budget(self) -> bool:
        return self.spent_cents > self.budget.amount_cents


@dataclass(frozen=True)
class BudgetAlert:
    progress: BudgetProgress
    message: str


class BudgetService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id
        self.categories = CategoryService(session, user_id)

    @staticmethod
    def _check_dates(start: date, end: Optional[date]) -> None:
        if end is not None and end < start:
            raise ValidationError("End date must not be before start date")

    def create(self, data: BudgetIn) -> Budget:
        if data.category_id is not None:
            self.categories.get_visible(data.category_id)
        self._check_dates(data.start_date, data.end_date)
        budget = Budget(
            user_id=self.user_id,
            name=data.name.strip(),
            amount_cents=to_cents(data.amount),
            period=data.period,
            start_date=data.start_date,
            end_date=data.end_date,
            category_id=data.category_id,
            rollover=data.rollover,
            alert_enabled=data.alert_enabled,
            alert_threshold=data.alert_threshold,
        )
        self.session.add(budget)
        _commit(self.session)
        self.session.refresh(budget)
        return budget

    def _get_model(self, budget_id: int) -> Budget:
        budget = self.session.scalar(
            select(Budget)
            .options(joinedload(Budget.category))
            .where(Budget.id == budget_id, Budget.user_id == self.user_id)
        )
        if not budget:
            raise NotFoundError("Budget not found")
        return budget

    def update(self, budget_id: int, data: BudgetUpdate) -> Budget:
        budget = self._get_model(budget_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("category_id") is not None:
            self.categories.get_visible(changes["category_id"])
        self._check_dates(
            changes.get("start_date") or budget.start_date,
            changes.get("end_date", budget.end_date),
        )
        for field, value in changes.items():
            if field == "amount":
                if value is not None:
                    budget.amount_cents = to_cents(value)
                continue
            if value is None and field not in {"end_date", "category_id"}:
                continue
            setattr(budget, field, value)
        _commit(self.session)
        self.session.refresh(budget)
        return budget

    def delete(self, budget_id: int) -> None:
        budget = self._get_model(budget_id)
        self.session.delete(budget)
        _commit(self.session)

    def calculate_spending(self, budget: Budget) -> int:
        conditions = [
            Transaction.user_id == self.user_id,
            Transaction.type == TransactionType.expense,
            Transaction.status == TransactionStatus.posted,
            Transaction.date >= budget.start_date,
        ]
        if budget.end_date is not None:
            conditions.append(Transaction.date <= budget.end_date)
        if budget.category_id is not None:
            conditions.append(Transaction.category_id == budget.category_id)
        return int(
            self.session.execute(
                select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
                    *conditions
                )
            ).scalar_one()
            or 0
        )

    def progress(self, budget: Budget) -> BudgetProgress:
        return BudgetProgress(budget=budget, spent_cents=self.calculate_spending(budget))

    def list(self, period: Optional[BudgetPeriod] = None) -> list[BudgetProgress]:
        stmt = (
            select(Budget)
            .options(joinedload(Budget.category))
            .where(Budget.user_id == self.user_id)
            .order_by(Budget.created_at.desc(), Budget.id.desc())
        )
        if period:
            stmt = stmt.where(Budget.period == period)
        return [self.progress(budget) for budget in self.session.scalars(stmt)]

    def get(self, budget_id: int) -> BudgetProgress:
        return self.progress(self._get_model(budget_id))

    def alerts(self) -> list[BudgetAlert]:
        alerts: list[BudgetAlert] = []
        for progress in self.list():
            budget = progress.budget
            if not budget.alert_enabled:
                continue
            threshold = budget.alert_threshold or DEFAULT_ALERT_THRESHOLD
            if progress.is_over_budget:
                overage = abs(progress.remaining_cents) / 100
                message = (
                    f"You've exceeded your {budget.name} budget by ${overage:.2f}"
                )
            elif progress.percentage_used >= threshold:
                message = (
                    f"You've used {progress.percentage_used:.2f}% "
                    f"of your {budget.name} budget"
                )
            else:
                continue
            logger.info(
                f"budget_alert: budget_id={budget.id} over_budget={progress.is_over_budget} "
                f"percentage_used={progress.percentage_used:.2f}"
            )
            alerts.append(BudgetAlert(progress=progress, message=message))
        return alerts


@dataclass(frozen=True)
class DashboardOverview:
    total_balance_cents: int
    income_cents: int
    expense_cents: int
    last_income_cents: int
    last_expense_cents: int

    @property
    def income_change(self) -> float:
        return percent_change(self.income_cents, self.last_income_cents)

    @property
    def expense_change(self) -> float:
        return percent_change(self.expense_cents, self.last_expense_cents)

    @property
    def savings_rate(self) -> float:
        # Spending more than earning is shown as 0, not as a negative rate.
        return max(0.0, savings_rate(self.income_cents, self.expense_cents))


@dataclass(frozen=True)
class CategorySpending:
    category: str
    amount_cents: int
    percentage: float
    count: int


@dataclass(frozen=True)
class TrendPoint:
    label: str
    start: date
    end: date
    income_cents: int
    expense_cents: int

    @property
    def net_cents(self) -> int:
        return self.income_cents - self.expense_cents


@dataclass(frozen=True)
class MonthlySummary:
    month: date
    income_cents: int
    expense_cents: int
    transaction_count: int
    category_breakdown: list[CategorySpending]

    @property
    def label(self) -> str:
        return self.month.strftime("%B %Y")

    @property
    def net_cents(self) -> int:
        return self.income_cents - self.expense_cents

    @property
    def savings_rate(self) -> float:
        return savings_rate(self.income_cents, self.expense_cents)

    @property
    def top_categories(self) -> list[CategorySpending]:
        return self.category_breakdown[:5]


@dataclass(frozen=True)
class YearToDateSummary:
    year: int
    months: list[MonthlySummary]

    @property
    def income_cents(self) -> int:
        return sum(m.income_cents for m in self.months)

    @property
    def expense_cents(self) -> int:
        return sum(m.expense_cents for m in self.months)

    @property
    def average_income_cents(self) -> float:
        return self.income_cents / len(self.months) if self.months else 0.0

    @property
    def average_expense_cents(self) -> float:
        return self.expense_cents / len(self.months) if self.months else 0.0


class AnalyticsService:
    """Dashboard aggregates, recomputed from posted transactions on every call."""

    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def _posted(self):
        return (
            Transaction.user_id == self.user_id,
            Transaction.status == TransactionStatus.posted,
        )

    def total_by_type(self, txn_type: TransactionType, period: Period) -> int:
        return int(
            self.session.execute(
                select(func.coalesce(func.sum(Transaction.amount_cents), 0)).where(
                    *self._posted(),
                    Transaction.type == txn_type,
                    Transaction.date.between(period.start, period.end),
                )
            ).scalar_one()
            or 0
        )

    def total_balance(self) -> int:
        return int(
            self.session.execute(
                select(func.coalesce(func.sum(Account.balance_cents), 0)).where(
                    Account.user_id == self.user_id, Account.is_active.is_(True)
                )
            ).scalar_one()
            or 0
        )

    def dashboard_overview(self, today: Optional[date] = None) -> DashboardOverview:
        today = today or date.today()
        this_month = month_period(today)
        last_month = month_period(add_months(today, -1))
        return DashboardOverview(
            total_balance_cents=self.total_balance(),
            income_cents=self.total_by_type(TransactionType.income, this_month),
            expense_cents=self.total_by_type(TransactionType.expense, this_month),
            last_income_cents=self.total_by_type(TransactionType.income, last_month),
            last_expense_cents=self.total_by_type(TransactionType.expense, last_month),
        )

    def spending_by_category(self, start: date, end: date) -> list[CategorySpending]:
        if start > end:
            raise ValidationError("Start date must be before end date")
        stmt = (
            select(Transaction.amount_cents, Category.name)
            .outerjoin(Category, Category.id == Transaction.category_id)
            .where(
                *self._posted(),
                Transaction.type == TransactionType.expense,
                Transaction.date.between(start, end),
            )
            .order_by(Transaction.date.asc(), Transaction.id.asc())
        )
        # dicts keep first-occurrence order, which the stable sort below preserves on ties
        buckets: dict[str, list[int]] = {}
        total = 0
        for amount, name in self.session.execute(stmt):
            bucket = buckets.setdefault(name or UNCATEGORIZED, [0, 0])
            bucket[0] += amount
            bucket[1] += 1
            total += amount

        rows = [
            CategorySpending(
                category=name,
                amount_cents=amount,
                percentage=(amount / total * 100) if total else 0.0,
                count=count,
            )
            for name, (amount, count) in buckets.items()
        ]
        rows.sort(key=lambda r: r.amount_cents, reverse=True)
        return rows

    def spending_trends(
        self, period: str, today: Optional[date] = None
    ) -> list[TrendPoint]:
        window = resolve_trend_period(period, today=today)
        if window.slug == "year":
            intervals = [
                (Period("month", m, month_end(m)), m.strftime("%b %Y"))
                for m in months_between(window.start, window.end)
            ]
        else:
            intervals = [
                (Period("day", d, d), d.strftime("%b %d"))
                for d in days_between(window.start, window.end)
            ]

        rows = self.session.execute(
            select(Transaction.date, Transaction.type, Transaction.amount_cents).where(
                *self._posted(),
                Transaction.date.between(window.start, window.end),
            )
        ).all()

        points: list[TrendPoint] = []
        for interval, label in intervals:
            income = 0
            expenses = 0
            for txn_date, txn_type, amount in rows:
                if not interval.contains(txn_date):
                    continue
                if txn_type == TransactionType.income:
                    income += amount
                elif txn_type == TransactionType.expense:
                    expenses += amount
            points.append(
                TrendPoint(
                    label=label,
                    start=interval.start,
                    end=interval.end,
                    income_cents=income,
                    expense_cents=expenses,
                )
            )
        return points

    def monthly_summary(self, month: date) -> MonthlySummary:
        period = month_period(month)
        count = int(
            self.session.execute(
                select(func.count(Transaction.id)).where(
                    *self._posted(),
                    Transaction.date.between(period.start, period.end),
                )
            ).scalar_one()
        )
        return MonthlySummary(
            month=period.start,
            income_cents=self.total_by_type(TransactionType.income, period),
            expense_cents=self.total_by_type(TransactionType.expense, period),
            transaction_count=count,
            category_breakdown=self.spending_by_category(period.start, period.end),
        )

    def year_to_date_summary(self, today: Optional[date] = None) -> YearToDateSummary:
        today = today or date.today()
        months = months_between(date(today.year, 1, 1), today)
        return YearToDateSummary(
            year=today.year,
            months=[self.monthly_summary(m) for m in months],
        )

    def recent_transactions(self, limit: int = 10) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .options(
                joinedload(Transaction.category),
                joinedload(Transaction.account),
                selectinload(Transaction.tags),
            )
            .where(*self._posted())
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

