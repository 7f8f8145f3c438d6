from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models import (
    Account,
    AccountType,
    Budget,
    BudgetPeriod,
    Category,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from money import from_cents

if TYPE_CHECKING:  # pragma: no cover
    from services import (
        BudgetAlert,
        BudgetProgress,
        CategorySpending,
        DashboardOverview,
        MonthlySummary,
        TransactionPage,
        TransactionStatistics,
        TrendPoint,
        YearToDateSummary,
    )


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request bodies


class AccountIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    type: AccountType
    currency: str = Field(default="USD", min_length=3, max_length=3)
    institution: Optional[str] = Field(default=None, max_length=120)
    is_active: bool = True


class AccountUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    type: Optional[AccountType] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    institution: Optional[str] = Field(default=None, max_length=120)
    is_active: Optional[bool] = None


class CategoryIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    icon: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, max_length=7)
    parent_id: Optional[int] = None


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[TransactionType] = None
    icon: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, max_length=7)
    parent_id: Optional[int] = None
    is_active: Optional[bool] = None


class TransactionIn(CamelModel):
    account_id: int
    amount: Decimal = Field(..., ge=Decimal("0.01"), decimal_places=2)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    type: TransactionType
    description: str = Field(..., min_length=1, max_length=255)
    date: dt.date
    category_id: Optional[int] = None
    merchant_name: Optional[str] = Field(default=None, max_length=120)
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    receipt_url: Optional[str] = Field(
        default=None, max_length=500, pattern=r"^https?://\S+$"
    )
    tax_deductible: bool = False
    tax_category: Optional[str] = Field(default=None, max_length=100)


class TransactionUpdate(CamelModel):
    account_id: Optional[int] = None
    amount: Optional[Decimal] = Field(
        default=None, ge=Decimal("0.01"), decimal_places=2
    )
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    type: Optional[TransactionType] = None
    status: Optional[TransactionStatus] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    date: Optional[dt.date] = None
    category_id: Optional[int] = None
    merchant_name: Optional[str] = Field(default=None, max_length=120)
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    receipt_url: Optional[str] = Field(
        default=None, max_length=500, pattern=r"^https?://\S+$"
    )
    tax_deductible: Optional[bool] = None
    tax_category: Optional[str] = Field(default=None, max_length=100)


class BudgetIn(CamelModel):
    name: str = Field(..., min_length=1, max_length=120)
    amount: Decimal = Field(..., ge=Decimal("0.01"), decimal_places=2)
    period: BudgetPeriod
    start_date: dt.date
    end_date: Optional[dt.date] = None
    category_id: Optional[int] = None
    rollover: bool = False
    alert_enabled: bool = True
    alert_threshold: int = Field(default=80, ge=1, le=100)


class BudgetUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    amount: Optional[Decimal] = Field(
        default=None, ge=Decimal("0.01"), decimal_places=2
    )
    period: Optional[BudgetPeriod] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    category_id: Optional[int] = None
    rollover: Optional[bool] = None
    alert_enabled: Optional[bool] = None
    alert_threshold: Optional[int] = Field(default=None, ge=1, le=100)


class TransactionQuery(CamelModel):
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    type: Optional[TransactionType] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    search: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: Literal["date", "amount", "description", "created_at"] = "date"
    sort_order: Literal["asc", "desc"] = "desc"


# Responses


class AccountOut(CamelModel):
    id: int
    name: str
    type: AccountType
    balance: float
    currency: str
    institution: Optional[str]
    is_active: bool
    created_at: dt.datetime

    @classmethod
    def from_model(cls, account: Account) -> "AccountOut":
        return cls(
            id=account.id,
            name=account.name,
            type=account.type,
            balance=from_cents(account.balance_cents),
            currency=account.currency,
            institution=account.institution,
            is_active=account.is_active,
            created_at=account.created_at,
        )


class AccountSummaryOut(CamelModel):
    id: int
    name: str
    type: AccountType


class CategoryOut(CamelModel):
    id: int
    name: str
    type: TransactionType
    icon: Optional[str]
    color: Optional[str]
    parent_id: Optional[int]
    is_system: bool
    is_active: bool
    children: list["CategoryOut"] = Field(default_factory=list)

    @classmethod
    def from_model(cls, category: Category, *, with_children: bool = False) -> "CategoryOut":
        children = []
        if with_children:
            children = [
                cls.from_model(child) for child in category.children if child.is_active
            ]
        return cls(
            id=category.id,
            name=category.name,
            type=category.type,
            icon=category.icon,
            color=category.color,
            parent_id=category.parent_id,
            is_system=category.is_system,
            is_active=category.is_active,
            children=children,
        )


class TransactionOut(CamelModel):
    id: int
    account_id: int
    amount: float
    currency: str
    type: TransactionType
    status: TransactionStatus
    description: str
    merchant_name: Optional[str]
    category_id: Optional[int]
    date: dt.date
    notes: Optional[str]
    tags: list[str]
    receipt_url: Optional[str]
    tax_deductible: bool
    tax_category: Optional[str]
    account: Optional[AccountSummaryOut] = None
    category: Optional[CategoryOut] = None

    @classmethod
    def from_model(cls, txn: Transaction) -> "TransactionOut":
        return cls(
            id=txn.id,
            account_id=txn.account_id,
            amount=from_cents(txn.amount_cents),
            currency=txn.currency,
            type=txn.type,
            status=txn.status,
            description=txn.description,
            merchant_name=txn.merchant_name,
            category_id=txn.category_id,
            date=txn.date,
            notes=txn.notes,
            tags=sorted(tag.name for tag in txn.tags),
            receipt_url=txn.receipt_url,
            tax_deductible=txn.tax_deductible,
            tax_category=txn.tax_category,
            account=AccountSummaryOut(
                id=txn.account.id, name=txn.account.name, type=txn.account.type
            )
            if txn.account
            else None,
            category=CategoryOut.from_model(txn.category) if txn.category else None,
        )


class TransactionPageOut(CamelModel):
    transactions: list[TransactionOut]
    total: int
    page: int
    limit: int

    @classmethod
    def from_page(cls, page: "TransactionPage") -> "TransactionPageOut":
        return cls(
            transactions=[TransactionOut.from_model(t) for t in page.transactions],
            total=page.total,
            page=page.page,
            limit=page.limit,
        )


class TransactionStatisticsOut(CamelModel):
    total_income: float
    total_expenses: float
    net_amount: float
    transaction_count: int
    average_transaction: float

    @classmethod
    def from_statistics(cls, stats: "TransactionStatistics") -> "TransactionStatisticsOut":
        return cls(
            total_income=from_cents(stats.income_cents),
            total_expenses=from_cents(stats.expense_cents),
            net_amount=from_cents(stats.income_cents - stats.expense_cents),
            transaction_count=stats.count,
            average_transaction=from_cents(stats.average_cents),
        )


class BudgetOut(CamelModel):
    id: int
    name: str
    amount: float
    period: BudgetPeriod
    start_date: dt.date
    end_date: Optional[dt.date]
    category_id: Optional[int]
    category: Optional[CategoryOut]
    rollover: bool
    alert_enabled: bool
    alert_threshold: int
    created_at: dt.datetime
    spent: Optional[float] = None
    remaining: Optional[float] = None
    percentage_used: Optional[float] = None
    is_over_budget: Optional[bool] = None

    @classmethod
    def from_model(cls, budget: Budget) -> "BudgetOut":
        return cls(
            id=budget.id,
            name=budget.name,
            amount=from_cents(budget.amount_cents),
            period=budget.period,
            start_date=budget.start_date,
            end_date=budget.end_date,
            category_id=budget.category_id,
            category=CategoryOut.from_model(budget.category) if budget.category else None,
            rollover=budget.rollover,
            alert_enabled=budget.alert_enabled,
            alert_threshold=budget.alert_threshold,
            created_at=budget.created_at,
        )

    @classmethod
    def from_progress(cls, progress: "BudgetProgress") -> "BudgetOut":
        out = cls.from_model(progress.budget)
        out.spent = from_cents(progress.spent_cents)
        out.remaining = from_cents(progress.remaining_cents)
        out.percentage_used = progress.percentage_used
        out.is_over_budget = progress.is_over_budget
        return out


class BudgetAlertOut(CamelModel):
    budget: BudgetOut
    message: str

    @classmethod
    def from_alert(cls, alert: "BudgetAlert") -> "BudgetAlertOut":
        return cls(budget=BudgetOut.from_progress(alert.progress), message=alert.message)


class MonthComparisonOut(CamelModel):
    income: float
    expenses: float


class DashboardOut(CamelModel):
    total_balance: float
    monthly_income: float
    monthly_expenses: float
    savings_rate: float
    net_worth: float
    last_month_comparison: MonthComparisonOut

    @classmethod
    def from_overview(cls, overview: "DashboardOverview") -> "DashboardOut":
        return cls(
            total_balance=from_cents(overview.total_balance_cents),
            monthly_income=from_cents(overview.income_cents),
            monthly_expenses=from_cents(overview.expense_cents),
            savings_rate=overview.savings_rate,
            net_worth=from_cents(overview.total_balance_cents),
            last_month_comparison=MonthComparisonOut(
                income=overview.income_change, expenses=overview.expense_change
            ),
        )


class CategorySpendingOut(CamelModel):
    category: str
    amount: float
    percentage: float
    count: int

    @classmethod
    def from_row(cls, row: "CategorySpending") -> "CategorySpendingOut":
        return cls(
            category=row.category,
            amount=from_cents(row.amount_cents),
            percentage=row.percentage,
            count=row.count,
        )


class TrendPointOut(CamelModel):
    date: str
    income: float
    expenses: float
    net: float

    @classmethod
    def from_point(cls, point: "TrendPoint") -> "TrendPointOut":
        return cls(
            date=point.label,
            income=from_cents(point.income_cents),
            expenses=from_cents(point.expense_cents),
            net=from_cents(point.income_cents - point.expense_cents),
        )


class MonthlySummaryOut(CamelModel):
    month: str
    income: float
    expenses: float
    net: float
    savings_rate: float
    transaction_count: int
    category_breakdown: list[CategorySpendingOut]
    top_categories: list[CategorySpendingOut]

    @classmethod
    def from_summary(cls, summary: "MonthlySummary") -> "MonthlySummaryOut":
        breakdown = [CategorySpendingOut.from_row(r) for r in summary.category_breakdown]
        return cls(
            month=summary.label,
            income=from_cents(summary.income_cents),
            expenses=from_cents(summary.expense_cents),
            net=from_cents(summary.income_cents - summary.expense_cents),
            savings_rate=summary.savings_rate,
            transaction_count=summary.transaction_count,
            category_breakdown=breakdown,
            top_categories=breakdown[:5],
        )


class YearToDateOut(CamelModel):
    year: str
    total_income: float
    total_expenses: float
    net: float
    average_monthly_income: float
    average_monthly_expenses: float
    monthly_summaries: list[MonthlySummaryOut]

    @classmethod
    def from_summary(cls, summary: "YearToDateSummary") -> "YearToDateOut":
        return cls(
            year=str(summary.year),
            total_income=from_cents(summary.income_cents),
            total_expenses=from_cents(summary.expense_cents),
            net=from_cents(summary.income_cents - summary.expense_cents),
            average_monthly_income=from_cents(summary.average_income_cents),
            average_monthly_expenses=from_cents(summary.average_expense_cents),
            monthly_summaries=[
                MonthlySummaryOut.from_summary(m) for m in summary.months
            ],
        )


class HealthOut(BaseModel):
    status: str
    database: str
