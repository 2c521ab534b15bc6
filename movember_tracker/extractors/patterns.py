"""
Regex and selector tables for donation page scraping.

Ordered most specific first. Every pattern is compiled once at import.
Each table is a tuple so the cascade order is plain data.
"""

import re

_I = re.IGNORECASE

# Number with thousands separators and optional decimals
AMOUNT = r"([\d,]+(?:\.\d+)?)"
CURRENCY_MARK = r"[$€£¥]"

# ─── URLs ─────────────────────────────────────────────────────────────────────

SUBDOMAIN_URL_PATTERN = re.compile(r"https?://([^.]+)\.movember\.com", _I)

# ─── Tier 1: structured selectors ─────────────────────────────────────────────

RAISED_SELECTORS = (
    ".donationProgress--amount__raised",
    "[class*='donationProgress--amount__raised']",
)

TARGET_SELECTORS = (
    ".donationProgress--amount__target",
    "[class*='donationProgress--amount__target']",
)

# data-amount is left to the embedded tier; donate buttons carry preset amounts in it
RAISED_DATA_ATTRIBUTES = ("data-raised",)
TARGET_DATA_ATTRIBUTES = ("data-target", "data-goal")

CURRENCY_CODE = r"\b(?:USD|EUR|GBP|AUD|CAD|NZD|ZAR|CZK|SEK|DKK)\s*"

# First currency-marked amount inside element text
ELEMENT_TEXT_AMOUNT = re.compile(rf"(?:{CURRENCY_MARK}|{CURRENCY_CODE}){AMOUNT}")

# Whole attribute value must be an amount ("3,210", "$9,000")
DATA_ATTRIBUTE_AMOUNT = re.compile(rf"\s*{CURRENCY_MARK}?{AMOUNT}\s*")

# ─── Tier 2: embedded data (page source, then <script> payloads) ──────────────

EMBEDDED_RAISED_PATTERNS = (
    re.compile(rf'"AmountRaised"[^}}]*"(?:convertedAmount|originalAmount)"["\s:]*["\']{AMOUNT}', _I),
    re.compile(rf'"(?:raised|raisedAmount|currentAmount)"[:\s]*["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
    re.compile(rf'data-(?:raised|amount)=["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
)

EMBEDDED_TARGET_PATTERNS = (
    re.compile(rf'"target"[^}}]*"fundraising"[^}}]*"value"["\s:]*["\']{AMOUNT}', _I),
    re.compile(rf'"(?:target|targetAmount|goal)"[:\s]*["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
    re.compile(rf'data-(?:target|goal)=["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
)

SCRIPT_RAISED_PATTERNS = (
    re.compile(rf'"AmountRaised"[^}}]*"(?:convertedAmount|originalAmount)"["\s:]*["\']{AMOUNT}', _I),
    re.compile(rf'"(?:raised|raisedAmount|currentAmount|donationAmount|amount)"[:\s]*["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
    re.compile(rf'raised[:\s]*["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
)

SCRIPT_TARGET_PATTERNS = (
    re.compile(rf'"target"[^}}]*"fundraising"[^}}]*"value"["\s:]*["\']{AMOUNT}', _I),
    re.compile(rf'"(?:target|targetAmount|goal)"[:\s]*["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
    re.compile(rf'(?:target|goal)[:\s]*["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
)

# ─── Tier 3: generic keyword adjacency ────────────────────────────────────────

GENERIC_RAISED_PATTERNS = (
    re.compile(rf"{CURRENCY_MARK}{AMOUNT}\s*(?:raised|donated|collected)", _I),
    re.compile(rf"(?:raised|donated|collected)[:\s]*{CURRENCY_MARK}{AMOUNT}", _I),
    re.compile(rf'<[^>]+class="[^"]*(?:amount|raised|donation|progress)[^"]*"[^>]*>\s*{CURRENCY_MARK}?{AMOUNT}', _I),
    re.compile(rf'data-[^=]*amount[^=]*=["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
    re.compile(rf"{CURRENCY_MARK}{AMOUNT}\s*(?:of|out of)", _I),
    re.compile(rf"raised[:\s=]+{CURRENCY_MARK}?{AMOUNT}", _I),
    re.compile(rf"amount[:\s=]+{CURRENCY_MARK}?{AMOUNT}", _I),
)

GENERIC_TARGET_PATTERNS = (
    re.compile(rf"{CURRENCY_MARK}{AMOUNT}\s*(?:target|goal)", _I),
    re.compile(rf"(?:target|goal)[:\s]*{CURRENCY_MARK}{AMOUNT}", _I),
    re.compile(rf'<[^>]+class="[^"]*(?:target|goal)[^"]*"[^>]*>\s*{CURRENCY_MARK}?{AMOUNT}', _I),
    re.compile(rf'data-[^=]*(?:target|goal)[^=]*=["\']?{CURRENCY_MARK}?{AMOUNT}', _I),
    re.compile(rf"{CURRENCY_MARK}{AMOUNT}\s*(?:of|out of)\s*{CURRENCY_MARK}{AMOUNT}", _I),
    re.compile(rf"target[:\s=]+{CURRENCY_MARK}?{AMOUNT}", _I),
    re.compile(rf"goal[:\s=]+{CURRENCY_MARK}?{AMOUNT}", _I),
)

# ─── Tier 4: context scoring ──────────────────────────────────────────────────

CURRENCY_AMOUNT_PATTERN = re.compile(rf"{CURRENCY_MARK}{AMOUNT}")
POTENTIAL_AMOUNT_PATTERN = re.compile(r"[\d,]{3,}(?:\.\d+)?")

# (pattern, points) searched in the text window around each amount
RAISED_CONTEXT_RULES = (
    (re.compile(r"raised|donated|collected|current|funds?|progress|amount\s*(?:raised|donated)", _I), 10),
    (re.compile(r"has\s+raised|has\s+donated|has\s+collected|currently\s+raised", _I), 5),
)

TARGET_CONTEXT_RULES = (
    (re.compile(r"target|goal|aim|objective|of\s+[$€£¥]", _I), 10),
    (re.compile(r"(?:target|goal|aim)\s+(?:of|is)", _I), 5),
)

# (pattern, points) matched right after the amount itself ("$2,500 raised")
RAISED_TRAILING_RULE = (re.compile(r"\s*(?:raised|donated|collected)\b", _I), 8)
TARGET_TRAILING_RULE = (re.compile(r"\s*(?:target|goal)\b", _I), 8)

# ─── HTML currency heuristic ──────────────────────────────────────────────────

POUND_PATTERN = re.compile(r"£|&pound;|&#163;")
EURO_PATTERN = re.compile(r"€|&euro;|&#8364;")
DOLLAR_AMOUNT_PATTERN = re.compile(r"\$[\d,]+")

# (subdomain, pattern); None subdomain means "pick a euro country"
CURRENCY_CODE_PATTERNS = (
    ("uk", re.compile(r"\bGBP\b[\s:]*[\d,]+|[\d,]+[\s:]*\bGBP\b|British\s+Pound", _I)),
    (None, re.compile(r"\bEUR\b[\s:]*[\d,]+|[\d,]+[\s:]*\bEUR\b|Euro[\s:]*[\d,]+", _I)),
    ("us", re.compile(r"\bUSD\b[\s:]*[\d,]+|[\d,]+[\s:]*\bUSD\b|US\s+Dollar", _I)),
    ("au", re.compile(r"\bAUD\b[\s:]*[\d,]+|[\d,]+[\s:]*\bAUD\b|Australian\s+Dollar", _I)),
    ("ca", re.compile(r"\bCAD\b[\s:]*[\d,]+|[\d,]+[\s:]*\bCAD\b|Canadian\s+Dollar", _I)),
    ("nz", re.compile(r"\bNZD\b[\s:]*[\d,]+|[\d,]+[\s:]*\bNZD\b|New\s+Zealand\s+Dollar", _I)),
    ("za", re.compile(r"\bZAR\b[\s:]*[\d,]+|[\d,]+[\s:]*\bZAR\b|South\s+African\s+Rand", _I)),
    ("cz", re.compile(r"\bCZK\b[\s:]*[\d,]+|[\d,]+[\s:]*\bCZK\b|Czech\s+Koruna|Kč[\d,]+", _I)),
    ("se", re.compile(r"\bSEK\b[\s:]*[\d,]+|[\d,]+[\s:]*\bSEK\b|Swedish\s+Krona", _I)),
    ("dk", re.compile(r"\bDKK\b[\s:]*[\d,]+|[\d,]+[\s:]*\bDKK\b|Danish\s+Krone", _I)),
)

EURO_COUNTRY_PATTERNS = (
    ("ie", re.compile(r"Ireland|Irish", _I)),
    ("nl", re.compile(r"Netherlands|Dutch", _I)),
    ("de", re.compile(r"Germany|German", _I)),
    ("fr", re.compile(r"France|French", _I)),
    ("es", re.compile(r"Spain|Spanish", _I)),
    ("it", re.compile(r"Italy|Italian", _I)),
)
DEFAULT_EURO_SUBDOMAIN = "ie"

DOLLAR_COUNTRY_PATTERNS = (
    ("us", re.compile(r"United\s+States|US\s+Dollar", _I)),
    ("ca", re.compile(r"Canada|Canadian", _I)),
    ("nz", re.compile(r"New\s+Zealand", _I)),
    ("au", re.compile(r"Australia|Australian", _I)),
)
