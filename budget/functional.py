"""Result types and strict validation of raw form input.

Form values arrive as strings. Each validator either returns ``Right`` with a
typed draft ready for the store, or ``Left`` with an error dict
``{"error", "field", "message"}``. Nothing unvalidated reaches the engine.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Generic, Iterable, Mapping, Optional, TypeVar

from budget.domain import Category, IncomeFrequency, Priority
from budget.errors import ValidationError

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Some(f(self._value))

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    def is_left(self) -> bool:
        return not self.is_right()

    @abstractmethod
    def get_error(self) -> E:
        pass


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Left(self._error)

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return Left(self._error)

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


# --- validated drafts handed to the store

@dataclass(frozen=True)
class PurchaseDraft:
    name: str
    amount: Decimal
    date: date
    category_id: str
    notes: str = ""


@dataclass(frozen=True)
class CategoryDraft:
    name: str
    percentage: Decimal
    color: str
    icon: Optional[str] = None


@dataclass(frozen=True)
class ProfileDraft:
    income_amount: Decimal
    income_frequency: IncomeFrequency
    currency: str
    display_name: Optional[str] = None


@dataclass(frozen=True)
class WishlistDraft:
    name: str
    amount: Decimal
    category_id: str
    priority: Priority = Priority.MEDIUM
    notes: str = ""


def unwrap(result: Either[dict, T]) -> T:
    """Value of a ``Right``; a ``Left`` is raised as ``ValidationError``."""
    if result.is_left():
        raise ValidationError(result.get_error())
    return result.get_or_else(None)


def _invalid(field: str, error: str, message: str) -> Left:
    return Left({"error": error, "field": field, "message": message})


def find_category(cats: Iterable[Category], cat_id: str) -> Maybe[Category]:
    for cat in cats:
        if cat.id == cat_id and cat.is_active:
            return Some(cat)
    return Nothing()


def parse_amount(raw, field: str = "amount") -> Either[dict, Decimal]:
    text = str(raw if raw is not None else "").strip().replace("$", "").replace(",", "")
    if not text:
        return _invalid(field, "missing_value", f"{field} is required")
    try:
        value = Decimal(text)
    except InvalidOperation:
        return _invalid(field, "not_a_number", f"{field} must be a number, got {raw!r}")
    if not value.is_finite():
        return _invalid(field, "not_a_number", f"{field} must be a finite number")
    if value < 0:
        return _invalid(field, "out_of_range", f"{field} cannot be negative")
    return Right(value)


def parse_percentage(raw) -> Either[dict, Decimal]:
    return parse_amount(raw, "percentage").bind(
        lambda v: Right(v) if v <= 100 else _invalid(
            "percentage", "out_of_range", "percentage must be between 0 and 100"
        )
    )


def parse_date(raw, field: str = "date") -> Either[dict, date]:
    if isinstance(raw, date):
        return Right(raw)
    try:
        return Right(date.fromisoformat(str(raw).strip()))
    except ValueError:
        return _invalid(field, "invalid_date", f"{field} must be YYYY-MM-DD, got {raw!r}")


def require_text(raw, field: str) -> Either[dict, str]:
    text = str(raw or "").strip()
    if not text:
        return _invalid(field, "missing_value", f"{field} is required")
    return Right(text)


def require_category(cats: Iterable[Category], cat_id) -> Either[dict, str]:
    found = find_category(cats, str(cat_id or ""))
    if found.is_none():
        return _invalid(
            "category_id", "category_not_found", f"Category with ID {cat_id} does not exist"
        )
    return Right(found.get_or_else(None).id)


def parse_enum(raw, enum_type, field: str):
    try:
        return Right(enum_type(str(raw).strip().lower()))
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        return _invalid(field, "invalid_choice", f"{field} must be one of: {allowed}")


def _collect(results: Mapping[str, Either]) -> Either[dict, dict]:
    """First ``Left`` wins; otherwise a dict of unwrapped values."""
    for result in results.values():
        if result.is_left():
            return result
    return Right({k: r.get_or_else(None) for k, r in results.items()})


def validate_purchase_input(data: Mapping, cats: Iterable[Category]) -> Either[dict, PurchaseDraft]:
    return _collect({
        "name": require_text(data.get("name"), "name"),
        "amount": parse_amount(data.get("amount")),
        "date": parse_date(data.get("date")),
        "category_id": require_category(cats, data.get("category_id")),
    }).map(lambda v: PurchaseDraft(notes=str(data.get("notes") or "").strip(), **v))


def validate_category_input(data: Mapping) -> Either[dict, CategoryDraft]:
    return _collect({
        "name": require_text(data.get("name"), "name"),
        "percentage": parse_percentage(data.get("percentage")),
    }).map(lambda v: CategoryDraft(
        color=str(data.get("color") or "#22c55e"),
        icon=data.get("icon") or None,
        **v,
    ))


def validate_profile_input(data: Mapping) -> Either[dict, ProfileDraft]:
    currency = str(data.get("currency") or "USD").strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        return _invalid("currency", "invalid_currency", "currency must be a 3-letter code")
    return _collect({
        "income_amount": parse_amount(data.get("income_amount"), "income_amount"),
        "income_frequency": parse_enum(
            data.get("income_frequency"), IncomeFrequency, "income_frequency"
        ),
    }).map(lambda v: ProfileDraft(
        currency=currency,
        display_name=str(data.get("display_name") or "").strip() or None,
        **v,
    ))


def validate_wishlist_input(data: Mapping, cats: Iterable[Category]) -> Either[dict, WishlistDraft]:
    return _collect({
        "name": require_text(data.get("name"), "name"),
        "amount": parse_amount(data.get("amount")),
        "category_id": require_category(cats, data.get("category_id")),
        "priority": parse_enum(data.get("priority") or "medium", Priority, "priority"),
    }).map(lambda v: WishlistDraft(notes=str(data.get("notes") or "").strip(), **v))
