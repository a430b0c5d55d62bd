"""CSV export of persisted commission distributions, one row per policy."""
from decimal import Decimal

import pandas as pd

# (attribute, column header). External reports key off these headers.
EXPORT_COLUMNS = [
    ("policy_id", "Policy ID"),
    ("policy_number", "Policy Number"),
    ("customer_name", "Customer Name"),
    ("product_type", "Product Type"),
    ("provider", "Provider"),
    ("premium_amount", "Premium Amount"),
    ("source_type", "Source Type"),
    ("source_name", "Source Name"),
    ("base_rate", "Base Rate (%)"),
    ("reward_rate", "Reward Rate (%)"),
    ("bonus_rate", "Bonus Rate (%)"),
    ("total_rate", "Total Rate (%)"),
    ("insurer_commission", "Insurer Commission"),
    ("agent_commission", "Agent Commission"),
    ("misp_commission", "MISP Commission"),
    ("employee_commission", "Employee Commission"),
    ("broker_share", "Broker Share"),
    ("grid_id", "Grid ID"),
    ("grid_table", "Grid Table"),
    ("tier_name", "Tier Name"),
    ("override_used", "Override Used"),
    ("commission_status", "Commission Status"),
    ("calc_date", "Calculation Date"),
]


def _format(value):
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def distributions_to_csv(rows) -> str:
    records = [
        {header: _format(getattr(row, attr)) for attr, header in EXPORT_COLUMNS}
        for row in rows
    ]
    df = pd.DataFrame(records, columns=[header for _, header in EXPORT_COLUMNS])
    return df.to_csv(index=False)
