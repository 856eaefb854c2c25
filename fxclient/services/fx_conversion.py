"""Shared utilities for FX rate extraction and amount conversion."""

from __future__ import annotations

from collections.abc import Mapping

from fxclient.fx.errors import UnsupportedCurrencyError

CURRENCY_CODE_LENGTH = 3


def normalize_currency(code: str) -> str:
    """Normalize a currency code to canonical uppercase form.

    Raises:
        UnsupportedCurrencyError: For blank, non-ASCII or non-alphabetic codes.
    """

    if code is None or not str(code).strip():
        raise UnsupportedCurrencyError(str(code))
    normalized = str(code).strip().upper()
    if (
        not normalized.isascii()
        or not normalized.isalpha()
        or len(normalized) != CURRENCY_CODE_LENGTH
    ):
        raise UnsupportedCurrencyError(str(code))
    return normalized


def same_currency(first: str, second: str) -> bool:
    """Case-insensitive match on the raw codes; any code converts to itself."""

    return str(first).strip().upper() == str(second).strip().upper()


def extract_rate(from_currency: str, to_currency: str, base: str, rates: Mapping[str, float]) -> float | None:
    """Return the ``from -> to`` rate using rates quoted against ``base``.

    Returns ``None`` when a required rate is missing (or zero when it would be
    a divisor); callers must treat that as "conversion not possible".
    """

    if from_currency == to_currency:
        return 1.0

    if from_currency == base:
        rate = rates.get(to_currency)
        return float(rate) if rate is not None else None

    from_rate = rates.get(from_currency)
    if from_rate is None or from_rate == 0:
        return None

    if to_currency == base:
        return 1.0 / float(from_rate)

    to_rate = rates.get(to_currency)
    if to_rate is None:
        return None
    # Cross rate through the shared base.
    return float(to_rate) / float(from_rate)


def convert_amount(amount: float, rate: float) -> float:
    return float(amount) * float(rate)
