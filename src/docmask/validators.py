"""Checksum and structure validators used to score candidate matches.

None of these gate acceptance on their own: detectors use the result to
pick a confidence.
"""

from __future__ import annotations
import ipaddress


# IBAN lengths for the countries we see most often.  Unknown countries
# fall back to the generic 15–34 range.
IBAN_LENGTHS: dict[str, int] = {
    "AE": 23, "AT": 20, "BE": 16, "BH": 22, "CH": 21, "CY": 28, "CZ": 24,
    "DE": 22, "DK": 18, "EE": 20, "EG": 29, "ES": 24, "FI": 18, "FR": 27,
    "GB": 22, "GR": 27, "HR": 21, "HU": 28, "IE": 22, "IL": 23, "IT": 27,
    "JO": 30, "KW": 30, "LB": 28, "LT": 20, "LU": 20, "LV": 21, "MT": 31,
    "NL": 18, "NO": 15, "OM": 23, "PK": 24, "PL": 28, "PT": 25, "QA": 29,
    "RO": 24, "SA": 24, "SE": 24, "SI": 19, "SK": 24, "TR": 26,
}

# (prefix, lengths) pairs for the common card brands
_CARD_PREFIXES: tuple[tuple[tuple[str, ...], tuple[int, ...]], ...] = (
    (("4",), (13, 16, 19)),                                   # Visa
    (("51", "52", "53", "54", "55"), (16,)),                  # Mastercard
    (tuple(str(p) for p in range(22, 28)), (16,)),            # Mastercard 2-series
    (("34", "37"), (15,)),                                    # Amex
    (("6011", "65") + tuple(str(p) for p in range(644, 650)), (16, 19)),  # Discover
    (("35",), (16, 19)),                                      # JCB
    (("300", "301", "302", "303", "304", "305", "36", "38"), (14,)),  # Diners
)


def digits_of(value: str) -> str:
    return "".join(c for c in value if c.isdigit())


def luhn_check(value: str) -> bool:
    """Mod-10 check over the digits of *value* (separators ignored)."""
    digits = digits_of(value)
    if len(digits) < 2:
        return False
    total = 0
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def has_card_prefix(digits: str) -> bool:
    """True if *digits* starts with a known brand prefix at a valid length."""
    for prefixes, lengths in _CARD_PREFIXES:
        if len(digits) in lengths and digits.startswith(prefixes):
            return True
    return False


def iban_compact(value: str) -> str:
    return "".join(value.split()).upper()


def iban_expected_length(country: str) -> int | None:
    return IBAN_LENGTHS.get(country.upper())


def iban_mod97(value: str) -> bool:
    """ISO 13616 check: rotate, expand letters to numbers, remainder must be 1."""
    iban = iban_compact(value)
    if len(iban) < 5 or not iban.isalnum():
        return False
    rearranged = iban[4:] + iban[:4]
    remainder = 0
    for ch in rearranged:
        if ch.isdigit():
            remainder = (remainder * 10 + int(ch)) % 97
        elif "A" <= ch <= "Z":
            remainder = (remainder * 100 + ord(ch) - 55) % 97
        else:
            return False
    return remainder == 1


def saudi_id_check(value: str) -> bool:
    """Saudi national ID / Iqama: 10 digits, leading 1 or 2, Luhn-style sum."""
    digits = digits_of(value)
    if len(digits) != 10 or digits[0] not in "12":
        return False
    total = 0
    for i, ch in enumerate(digits):
        d = int(ch)
        if i % 2 == 0:
            d *= 2
            total += d // 10 + d % 10
        else:
            total += d
    return total % 10 == 0


def ssn_is_plausible(value: str) -> bool:
    """Structural rules for US SSNs (no checksum exists)."""
    digits = digits_of(value)
    if len(digits) != 9:
        return False
    area, group, serial = digits[:3], digits[3:5], digits[5:]
    if area in ("000", "666") or area[0] == "9":
        return False
    return group != "00" and serial != "0000"


def ipv4_octets(value: str) -> list[int] | None:
    parts = value.split(".")
    if len(parts) != 4 or not all(p.isdigit() for p in parts):
        return None
    return [int(p) for p in parts]


def is_ipv6(value: str) -> bool:
    try:
        ipaddress.IPv6Address(value)
    except ValueError:
        return False
    return True
