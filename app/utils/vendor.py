import re

_WHITESPACE = re.compile(r"\s+")

# "... at DIGITALOCEAN.COM." / "... at GRAB *GRABFOOD on 08/02/26"
_VENDOR_AT = re.compile(
    r"\bat\s+([A-Z][A-Z0-9 .*\-]+?)(?:(?:\.\s)|(?:,\s)|\s+(?:for|on|If)\b|\.?$)",
    re.IGNORECASE | re.MULTILINE,
)
# OCBC PayNow style: "... to NTUC FAIRPRICE on ..."
_VENDOR_TO = re.compile(
    r"\bto\s+([A-Z][A-Z0-9 .*\-]+?)(?:(?:\.\s)|(?:,\s)|\s+(?:for|on|If)\b|\.?$)",
    re.IGNORECASE | re.MULTILINE,
)


def normalize_vendor_name(name: str) -> str:
    """
    Canonical vendor-cache key: trimmed, uppercased, inner whitespace collapsed.

    Punctuation and corporate suffixes are left alone; bank alerts print the
    same merchant string every time (e.g. "GRAB *GRABFOOD").
    """
    return _WHITESPACE.sub(" ", name.strip().upper())


def _clean(match: re.Match) -> str:
    return match.group(1).strip().upper().rstrip(".")


def extract_rough_vendor(text: str) -> str | None:
    if not text:
        return None

    for pattern in (_VENDOR_AT, _VENDOR_TO):
        match = pattern.search(text)
        if match:
            vendor = _clean(match)
            if vendor:
                return vendor
    return None
