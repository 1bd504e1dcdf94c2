"""
Category trees seeded into every new family

Asset categories are exactly two levels deep. The four top-level names double
as the statistics buckets, so renaming them detaches assets from their bucket.
"""

# Transaction category types
CATEGORY_TYPE_INCOME = "income"
CATEGORY_TYPE_EXPENSE = "expense"

# Statistics buckets
BUCKET_FIXED = "fixed"
BUCKET_LIQUID = "liquid"
BUCKET_INVESTMENT = "investment"
BUCKET_LIABILITY = "liability"

TOP_LEVEL_FIXED = "Fixed Assets"
TOP_LEVEL_LIQUID = "Liquid Assets"
TOP_LEVEL_INVESTMENT = "Investment Assets"
TOP_LEVEL_LIABILITIES = "Liabilities"

BUCKET_BY_TOP_LEVEL_NAME = {
    TOP_LEVEL_FIXED: BUCKET_FIXED,
    TOP_LEVEL_LIQUID: BUCKET_LIQUID,
    TOP_LEVEL_INVESTMENT: BUCKET_INVESTMENT,
    TOP_LEVEL_LIABILITIES: BUCKET_LIABILITY,
}

DEFAULT_ASSET_CATEGORIES = [
    {
        "name": TOP_LEVEL_FIXED, "icon": "🏠", "color": "#8B5CF6",
        "children": [
            {"name": "Real Estate", "icon": "🏢"},
            {"name": "Vehicles", "icon": "🚗"},
            {"name": "Valuables", "icon": "💎"},
        ],
    },
    {
        "name": TOP_LEVEL_LIQUID, "icon": "💰", "color": "#10B981",
        "children": [
            {"name": "Cash", "icon": "💵"},
            {"name": "Bank Deposits", "icon": "🏦"},
            {"name": "Money Market Funds", "icon": "🪙"},
        ],
    },
    {
        "name": TOP_LEVEL_INVESTMENT, "icon": "📈", "color": "#F59E0B",
        "children": [
            {"name": "Stocks & Funds", "icon": "📊"},
            {"name": "Insurance", "icon": "🛡️"},
            {"name": "Bonds", "icon": "📜"},
            {"name": "Crypto", "icon": "₿"},
        ],
    },
    {
        "name": TOP_LEVEL_LIABILITIES, "icon": "📉", "color": "#EF4444",
        "children": [
            {"name": "Mortgage", "icon": "🏠"},
            {"name": "Car Loan", "icon": "🚗"},
            {"name": "Credit Card Debt", "icon": "💳"},
            {"name": "Other Loans", "icon": "📝"},
        ],
    },
]

DEFAULT_INCOME_CATEGORIES = [
    {"name": "Salary", "icon": "💼"},
    {"name": "Bonus", "icon": "🎁"},
    {"name": "Investment Income", "icon": "📈"},
    {"name": "Side Income", "icon": "💰"},
    {"name": "Other Income", "icon": "📥"},
]

DEFAULT_EXPENSE_CATEGORIES = [
    {"name": "Food", "icon": "🍜"},
    {"name": "Transport", "icon": "🚗"},
    {"name": "Shopping", "icon": "🛍️"},
    {"name": "Entertainment", "icon": "🎮"},
    {"name": "Medical", "icon": "💊"},
    {"name": "Education", "icon": "📚"},
    {"name": "Housing", "icon": "🏠"},
    {"name": "Telecom", "icon": "📱"},
    {"name": "Other Expenses", "icon": "📤"},
]

INCOME_COLOR = "#10B981"
EXPENSE_COLOR = "#F59E0B"


def bucket_for_top_level(name: str | None) -> str | None:
    """Statistics bucket for a top-level category name (None if unknown)"""
    if name is None:
        return None
    return BUCKET_BY_TOP_LEVEL_NAME.get(name)
