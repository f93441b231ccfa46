"""Order status rules, identifiers and line grouping.

Orders are stored one row per product line. Everything here is pure:
the services fetch and persist rows, these helpers decide what is
allowed and how rows aggregate into a customer-facing order.
"""

import re
import secrets
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable

from src.api.middleware.error_handler import InvalidStateError, ValidationError
from src.models.order import OrderStatus

STATUS_SEQUENCE: tuple[OrderStatus, ...] = (
    OrderStatus.RECEIVED,
    OrderStatus.PREPARING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

STATUS_DETAILS: dict[OrderStatus, dict[str, str]] = {
    OrderStatus.RECEIVED: {
        "label": "Order Received",
        "description": "Your order has been received and confirmed",
    },
    OrderStatus.PREPARING: {
        "label": "Preparing Juice",
        "description": "Fresh juice is being prepared just for you",
    },
    OrderStatus.OUT_FOR_DELIVERY: {
        "label": "Out for Delivery",
        "description": "Your order is on the way",
    },
    OrderStatus.DELIVERED: {
        "label": "Delivered",
        "description": "Order delivered successfully. Enjoy!",
    },
}

PERIOD_DAYS: dict[str, int] = {"week": 7, "month": 30, "year": 365}

ORDER_ID_DIGITS = 6
PHONE_PATTERN = re.compile(r"^\d{10}$")


def status_index(status: OrderStatus) -> int:
    """Position of a status in the delivery lifecycle."""
    return STATUS_SEQUENCE.index(status)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Transitions only move forward; skipping ahead is allowed."""
    return status_index(target) > status_index(current)


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise InvalidStateError unless ``current -> target`` moves forward."""
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Cannot move order from {current.value} to {target.value}",
            details=[
                {
                    "loc": ["status"],
                    "msg": f"allowed: {[s.value for s in STATUS_SEQUENCE[status_index(current) + 1:]]}",
                    "type": "invalid_transition",
                }
            ],
        )


def can_cancel(status: OrderStatus) -> bool:
    """Customers may cancel only before preparation starts."""
    return status == OrderStatus.RECEIVED


def progress_steps(status: OrderStatus) -> list[dict[str, Any]]:
    """Build the tracking timeline for an order in ``status``."""
    current = status_index(status)
    return [
        {
            "status": step,
            "label": STATUS_DETAILS[step]["label"],
            "description": STATUS_DETAILS[step]["description"],
            "completed": index <= current,
            "current": index == current,
        }
        for index, step in enumerate(STATUS_SEQUENCE)
    ]


def generate_order_id(prefix: str = "OJ-") -> str:
    """Generate a human-readable order id such as ``OJ-042317``."""
    return f"{prefix}{secrets.randbelow(10**ORDER_ID_DIGITS):0{ORDER_ID_DIGITS}d}"


def is_valid_order_id(order_id: str, prefix: str = "OJ-") -> bool:
    """Check ``order_id`` is the prefix followed by exactly six digits."""
    if not order_id.startswith(prefix):
        return False
    suffix = order_id[len(prefix):]
    return len(suffix) == ORDER_ID_DIGITS and suffix.isdigit()


def normalize_phone(phone: str) -> str:
    """Strip whitespace; the result must be exactly 10 digits."""
    cleaned = re.sub(r"\s", "", phone or "")
    if not PHONE_PATTERN.match(cleaned):
        raise ValidationError(
            "Please enter a valid 10-digit phone number",
            details=[{"loc": ["phone"], "msg": "must be exactly 10 digits", "type": "value_error"}],
        )
    return cleaned


def to_decimal(value: Any) -> Decimal:
    """Convert a stored numeric (float, int or string) to Decimal without float drift."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_timestamp(value: Any) -> datetime:
    """Parse a PostgREST timestamp into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def period_start(period: str, now: datetime | None = None) -> datetime:
    """Start of a named reporting window (``week``, ``month``, ``year``)."""
    if period not in PERIOD_DAYS:
        raise ValidationError(f"Unknown period '{period}'. Expected one of {sorted(PERIOD_DAYS)}")
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=PERIOD_DAYS[period])


def group_order_lines(rows: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Aggregate line rows into order groups, newest first.

    Header fields are taken from the first line seen for each order id;
    every line of a batch is written with identical header values.
    """
    groups: dict[str, dict[str, Any]] = {}

    for row in rows:
        order_id = row["order_id"]
        created_at = parse_timestamp(row["created_at"])
        updated_at = parse_timestamp(row.get("updated_at") or row["created_at"])
        group = groups.get(order_id)
        if group is None:
            group = {
                "order_id": order_id,
                "customer_name": row["customer_name"],
                "customer_email": row.get("customer_email"),
                "phone": row["phone"],
                "address": row["address"],
                "payment_mode": row["payment_mode"],
                "payment_status": row["payment_status"],
                "payment_reference": row.get("payment_reference"),
                "status": OrderStatus(row["status"]),
                "products": [],
                "total": Decimal("0"),
                "total_units": 0,
                "created_at": created_at,
                "updated_at": updated_at,
            }
            groups[order_id] = group

        line_total = to_decimal(row["line_total"])
        group["products"].append(
            {
                "line_id": str(row["id"]),
                "product_id": str(row["product_id"]),
                "product_name": row["product_name"],
                "quantity": int(row["quantity"]),
                "unit_price": to_decimal(row["unit_price"]),
                "line_total": line_total,
            }
        )
        group["total"] += line_total
        group["total_units"] += int(row["quantity"])
        group["created_at"] = min(group["created_at"], created_at)
        group["updated_at"] = max(group["updated_at"], updated_at)

    return sorted(groups.values(), key=lambda g: g["created_at"], reverse=True)


def matches_search(group: dict[str, Any], query: str) -> bool:
    """Case-insensitive match on order id, customer name, phone or product names."""
    needle = query.strip().lower()
    if not needle:
        return True
    if needle in group["order_id"].lower() or needle in group["customer_name"].lower():
        return True
    if needle in group["phone"]:
        return True
    return any(needle in product["product_name"].lower() for product in group["products"])
