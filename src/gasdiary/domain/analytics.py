"""Rolling aggregates over the merged diary streams."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Optional, Sequence

from gasdiary.domain.entities import (
    CategoryTotal,
    DiaryAnalytics,
    ExpenseEntry,
    PaymentMethodTotal,
    PaymentStatus,
    ProductTotal,
    SaleEntry,
)
from gasdiary.utils.date_parser import get_diary_windows

TOP_N = 5
ZERO = Decimal("0")


def growth_rate(current: Decimal, previous: Decimal) -> float:
    """Percentage change from ``previous``; exactly 0.0 when previous is 0."""
    if previous == 0:
        return 0.0
    return float((current - previous) / previous * 100)


def margin(profit: Decimal, income: Decimal) -> float:
    if income == 0:
        return 0.0
    return float(profit / income * 100)


@dataclass
class _Totals:
    today: Decimal = ZERO
    week: Decimal = ZERO
    month: Decimal = ZERO
    year: Decimal = ZERO
    last_month: Decimal = ZERO


@dataclass
class _CategoryAccumulator:
    amount: Decimal = ZERO
    icon: str = ""
    color: str = ""


@dataclass
class _ProductAccumulator:
    amount: Decimal = ZERO
    count: int = 0


@dataclass
class _Accumulators:
    income: _Totals = field(default_factory=_Totals)
    expenses: _Totals = field(default_factory=_Totals)
    products: dict[str, _ProductAccumulator] = field(default_factory=dict)
    categories: dict[str, _CategoryAccumulator] = field(default_factory=dict)
    payments: dict[str, Decimal] = field(default_factory=dict)


def compute_analytics(
    sales: Sequence[SaleEntry],
    expenses: Sequence[ExpenseEntry],
    today: date,
) -> DiaryAnalytics:
    """Aggregate both streams in a single pass each.

    Windows are calendar periods around ``today`` (weeks start on Sunday).
    Top products, top categories and the payment breakdown cover this month.
    """
    windows = get_diary_windows(today)
    acc = _Accumulators()

    for sale in sales:
        day = sale.date
        if day in windows.last_month:
            acc.income.last_month += sale.total_amount
        # Weeks can straddle New Year; each window is checked on its own
        if day in windows.this_year:
            acc.income.year += sale.total_amount
        if day in windows.this_week:
            acc.income.week += sale.total_amount
        if day in windows.today:
            acc.income.today += sale.total_amount
        if day in windows.this_month:
            acc.income.month += sale.total_amount
            product = acc.products.setdefault(sale.product_name, _ProductAccumulator())
            product.amount += sale.total_amount
            product.count += sale.quantity
            if sale.payment_status == PaymentStatus.PAID:
                acc.payments[sale.payment_method] = (
                    acc.payments.get(sale.payment_method, ZERO) + sale.total_amount
                )

    for expense in expenses:
        day = expense.date
        if day in windows.last_month:
            acc.expenses.last_month += expense.amount
        if day in windows.this_year:
            acc.expenses.year += expense.amount
        if day in windows.this_week:
            acc.expenses.week += expense.amount
        if day in windows.today:
            acc.expenses.today += expense.amount
        if day in windows.this_month:
            acc.expenses.month += expense.amount
            category = acc.categories.setdefault(expense.category, _CategoryAccumulator())
            category.amount += expense.amount
            category.icon = expense.category_icon
            category.color = expense.category_color

    income, spent = acc.income, acc.expenses
    monthly_profit = income.month - spent.month

    top_products = sorted(
        (ProductTotal(name, p.amount, p.count) for name, p in acc.products.items()),
        key=lambda p: p.amount,
        reverse=True,
    )[:TOP_N]
    top_categories = sorted(
        (CategoryTotal(name, c.amount, c.icon, c.color) for name, c in acc.categories.items()),
        key=lambda c: c.amount,
        reverse=True,
    )[:TOP_N]
    payment_breakdown = sorted(
        (PaymentMethodTotal(method, amount) for method, amount in acc.payments.items()),
        key=lambda p: p.amount,
        reverse=True,
    )

    return DiaryAnalytics(
        today_income=income.today,
        today_expenses=spent.today,
        today_profit=income.today - spent.today,
        weekly_income=income.week,
        weekly_expenses=spent.week,
        weekly_profit=income.week - spent.week,
        monthly_income=income.month,
        monthly_expenses=spent.month,
        monthly_profit=monthly_profit,
        yearly_income=income.year,
        yearly_expenses=spent.year,
        yearly_profit=income.year - spent.year,
        last_month_income=income.last_month,
        last_month_expenses=spent.last_month,
        income_growth=growth_rate(income.month, income.last_month),
        expense_growth=growth_rate(spent.month, spent.last_month),
        profit_margin=margin(monthly_profit, income.month),
        top_products=tuple(top_products),
        top_expense_categories=tuple(top_categories),
        payment_breakdown=tuple(payment_breakdown),
    )


class AnalyticsEngine:
    """Memoized ``compute_analytics`` over the current streams.

    The result is reused while the same stream objects are passed on the
    same day; a merge always produces new stream objects.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self.today = today
        self._inputs: Optional[tuple] = None
        self._result: Optional[DiaryAnalytics] = None

    def compute(
        self,
        sales: Sequence[SaleEntry],
        expenses: Sequence[ExpenseEntry],
        today: Optional[date] = None,
    ) -> DiaryAnalytics:
        day = today or self.today()
        if self._inputs is not None and self._result is not None:
            last_sales, last_expenses, last_day = self._inputs
            if last_sales is sales and last_expenses is expenses and last_day == day:
                return self._result
        self._result = compute_analytics(sales, expenses, day)
        self._inputs = (sales, expenses, day)
        return self._result
