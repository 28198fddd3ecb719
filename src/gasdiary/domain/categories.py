"""Expense category table.

Every category the diary knows about has a fixed icon and colour. Names
outside the table resolve to ``ExpenseCategory.OTHER``.
"""

from enum import Enum


class ExpenseCategory(Enum):
    """Known expense categories as (name, icon, colour)."""

    LPG_PURCHASE = ("LPG Purchase", "🛢️", "#3b82f6")
    GAS_STOVE_PURCHASE = ("Gas Stove Purchase", "🔥", "#f97316")
    REGULATOR_PURCHASE = ("Regulator Purchase", "⚙️", "#8b5cf6")
    TRANSPORT = ("Transport", "🚛", "#8b5cf6")
    STAFF = ("Staff", "👥", "#22c55e")
    STAFF_SALARY = ("Staff Salary", "👥", "#22c55e")
    STAFF_ADVANCE = ("Staff Advance", "💵", "#10b981")
    STAFF_BONUS = ("Staff Bonus", "🎁", "#6366f1")
    UTILITIES = ("Utilities", "💡", "#eab308")
    MAINTENANCE = ("Maintenance", "🔧", "#f97316")
    RENT = ("Rent", "🏠", "#ec4899")
    MARKETING = ("Marketing", "📢", "#06b6d4")
    VEHICLE = ("Vehicle", "🚗", "#10b981")
    VEHICLE_FUEL = ("Vehicle Fuel", "⛽", "#f59e0b")
    VEHICLE_MAINTENANCE = ("Vehicle Maintenance", "🔧", "#ef4444")
    LOADING = ("Loading", "👷", "#a855f7")
    ENTERTAINMENT = ("Entertainment", "☕", "#f472b6")
    BANK = ("Bank", "🏦", "#0ea5e9")
    OTHER = ("Other", "📦", "#6b7280")

    def __init__(self, label: str, icon: str, color: str):
        self.label = label
        self.icon = icon
        self.color = color

    @classmethod
    def lookup(cls, name: str | None) -> "ExpenseCategory":
        """Resolve a category name, falling back to OTHER."""
        for category in cls:
            if category.label == name:
                return category
        return cls.OTHER


# POB product type -> purchase category
POB_PRODUCT_CATEGORIES = {
    "lpg_cylinder": ExpenseCategory.LPG_PURCHASE,
    "stove": ExpenseCategory.GAS_STOVE_PURCHASE,
    "regulator": ExpenseCategory.REGULATOR_PURCHASE,
}

# Manual expense category -> rationale shown in the diary
WHY_SPENT_BY_CATEGORY = {
    ExpenseCategory.UTILITIES.label: "Utility bill payment",
    ExpenseCategory.RENT.label: "Shop rent payment",
    ExpenseCategory.LOADING.label: "Loading/labor cost",
    ExpenseCategory.ENTERTAINMENT.label: "Business entertainment",
}
DEFAULT_WHY_SPENT = "General expense"


def pob_category(product_type: str | None) -> ExpenseCategory:
    """Category for a purchase based on its first item's product type."""
    return POB_PRODUCT_CATEGORIES.get(product_type or "", ExpenseCategory.OTHER)


def vehicle_category(cost_type: str | None) -> ExpenseCategory:
    """Fuel costs are tracked apart from every other vehicle cost."""
    if cost_type == "fuel":
        return ExpenseCategory.VEHICLE_FUEL
    return ExpenseCategory.VEHICLE_MAINTENANCE
