from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import or_

from app.crm.modules.customers.models import Customer

PER_PAGE = 50
_EDITABLE_FIELDS = ("custname", "address", "payterm")


class DuplicateCustomerError(ValueError):
    pass


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


@dataclass(frozen=True)
class CustomerPage:
    customers: list[Customer]
    total: int
    page: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page * PER_PAGE < self.total


def _clean(val: Any) -> str | None:
    if val is None:
        return None
    return str(val).strip() or None


def get_customer_by_custno(s, custno: str) -> Customer | None:
    return s.query(Customer).filter(Customer.custno == (custno or "").strip()).one_or_none()


def validate_customer_payload(payload: dict[str, Any]) -> list[ValidationError]:
    errs: list[ValidationError] = []
    if not _clean(payload.get("custno")):
        errs.append(ValidationError("custno", "Customer number is required."))
    for field in ("custno", *_EDITABLE_FIELDS):
        val = payload.get(field)
        if val is not None and not isinstance(val, (str, int)):
            errs.append(ValidationError(field, "Must be text."))
    return errs


def create_customer(s, payload: dict[str, Any]) -> Customer:
    """
    Insert a new customer. Customer numbers are unique; an existing number is rejected, never updated.
    Caller commits.
    """
    custno = _clean(payload.get("custno"))
    if not custno:
        raise ValueError("custno is required")
    if get_customer_by_custno(s, custno) is not None:
        raise DuplicateCustomerError("Customer number already exists")
    now = datetime.utcnow()
    c = Customer(
        custno=custno,
        custname=_clean(payload.get("custname")),
        address=_clean(payload.get("address")),
        payterm=_clean(payload.get("payterm")),
        created_at=now,
        updated_at=now,
    )
    s.add(c)
    s.flush()
    return c


def update_customer(s, c: Customer, payload: dict[str, Any]) -> Customer:
    changed = False
    for field in _EDITABLE_FIELDS:
        if field not in payload:
            continue
        val = _clean(payload.get(field))
        if getattr(c, field) != val:
            setattr(c, field, val)
            changed = True
    if changed:
        c.updated_at = datetime.utcnow()
    return c


def search_customers(s, *, q: str = "", page: int = 1) -> CustomerPage:
    page = max(1, page)
    query = s.query(Customer)
    q = (q or "").strip()
    if q:
        like = f"%{q}%"
        query = query.filter(
            or_(Customer.custno.ilike(like), Customer.custname.ilike(like), Customer.address.ilike(like))
        )
    total = query.count()
    customers = (
        query.order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset((page - 1) * PER_PAGE)
        .limit(PER_PAGE)
        .all()
    )
    return CustomerPage(customers=customers, total=total, page=page)
