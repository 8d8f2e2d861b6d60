from typing import Any, Dict, Iterable, Optional

from app.core.exceptions import ValidationError


def normalize_email(email: Optional[str]) -> str:
    """
    Trims and lower-cases a customer email.
    Customers are identified by email everywhere (history, waitlist, notifications).
    """
    if email is None:
        raise ValidationError("customer_email is required")

    clean_email = email.strip().lower()
    if not clean_email:
        raise ValidationError("customer_email is required")

    return clean_email


def clean_customer_name(name: Optional[str]) -> str:
    if name is None:
        raise ValidationError("customer_name is required")

    clean_name = name.strip()
    if not clean_name:
        raise ValidationError("customer_name is required")

    return clean_name


def normalize_equipment_request(items: Iterable[Any]) -> Dict[int, int]:
    """
    Equipment request -> {equipment_type_id: quantity} sorted by type id.
    Negative quantities count as 0, zero lines are dropped and repeated
    type ids are summed.
    """
    merged: Dict[int, int] = {}
    for item in items or []:
        quantity = max(0, int(item.quantity))
        if quantity == 0:
            continue
        merged[item.equipment_type_id] = merged.get(item.equipment_type_id, 0) + quantity

    return dict(sorted(merged.items()))
