"""textile-exports — Rank and chart Dutch textile-waste export destinations."""

__version__ = "0.1.0"

# HS classification codes (WITS "By-HS6Product" sheet)
HS_USED_CLOTHING: str = "630900"
HS_RAGS_SUBCODES: tuple[str, ...] = ("631010", "631090")
HS_RAGS_ROOT: str = "6310"
ALL_HS_CODES: tuple[str, ...] = (HS_USED_CLOTHING, *HS_RAGS_SUBCODES)

# Source header -> canonical column name, in output order.
SOURCE_COLUMNS: dict[str, str] = {
    "ProductCode": "hs_code",
    "Year": "year",
    "Partner": "exportbestemming",
    "Trade Value 1000USD": "trade_value_1000usd",
    "Quantity": "quantity_kg",
}
