"""
Validation utilities for form input and record integrity checks.
"""

import re
from datetime import date, datetime
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from app.models.airdrop import AirdropStatus, Priority
from app.models.asset import AssetType
from app.models.option_trade import OptionStatus, OptionType

WEB_SCHEMES = ("http", "https")

_HOST_PATTERN = re.compile(
    r"^(?:(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,24}|\d{1,3}(?:\.\d{1,3}){3})$"
)

_SECRET_PATTERNS = [
    (re.compile(r"gh[pousr]_[A-Za-z0-9]{20,}"), "[TOKEN_REDACTED]"),
    (re.compile(r"github_pat_[A-Za-z0-9_]{20,}"), "[TOKEN_REDACTED]"),
    (re.compile(r"""token["\s]*[:=]["\s]*["']?[a-zA-Z0-9+/=_-]{10,}["']?""", re.IGNORECASE), "[TOKEN_REDACTED]"),
    (re.compile(r"key=[A-Za-z0-9_-]{10,}", re.IGNORECASE), "key=[API_KEY_REDACTED]"),
]

# Everything below space except newline and tab
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f]")


class ValidationError(Exception):
    """A form field holds a value the record cannot accept."""
    pass


class DataValidator:
    """Utility class for validation of user-entered record fields."""

    @staticmethod
    def validate_string(value: Any, field_name: str, min_length: int = 1, max_length: Optional[int] = None) -> str:
        """Strip ``value`` and check its length."""
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be text")

        value = value.strip()
        if len(value) < min_length:
            raise ValidationError(f"{field_name} needs at least {min_length} character(s)")
        if max_length and len(value) > max_length:
            raise ValidationError(f"{field_name} allows at most {max_length} characters")
        return value

    @staticmethod
    def validate_optional_string(value: Any, field_name: str, max_length: Optional[int] = None) -> Optional[str]:
        """Validate an optional free-text field; blank strings become None."""
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be text")
        value = value.strip()
        if not value:
            return None
        if max_length and len(value) > max_length:
            raise ValidationError(f"{field_name} allows at most {max_length} characters")
        return value

    @staticmethod
    def validate_number(value: Any, field_name: str, min_value: Optional[float] = None,
                        max_value: Optional[float] = None) -> float:
        """Validate numeric field with range constraints."""
        if isinstance(value, bool):
            raise ValidationError(f"{field_name} must be a number, got bool")

        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                raise ValidationError(f"{field_name} cannot be converted to a number")

        if not isinstance(value, (int, float)):
            raise ValidationError(f"{field_name} must be a number, got {type(value)}")

        if value != value:
            raise ValidationError(f"{field_name} must not be NaN")

        if min_value is not None and value < min_value:
            raise ValidationError(f"{field_name} must be at least {min_value}")

        if max_value is not None and value > max_value:
            raise ValidationError(f"{field_name} must be at most {max_value}")

        return float(value)

    @staticmethod
    def validate_enum(value: Any, enum_class: type, field_name: str):
        """Coerce a select-box value (member or its string value) to ``enum_class``."""
        if isinstance(value, enum_class):
            return value
        try:
            return enum_class(value)
        except ValueError:
            choices = ", ".join(member.value for member in enum_class)
            raise ValidationError(f"{field_name} must be one of: {choices} (got {value!r})")

    @staticmethod
    def validate_date(value: Any, field_name: str, required: bool = True) -> str:
        """Validate a calendar date and return it as an ISO string (YYYY-MM-DD)."""
        if value is None or value == "":
            if required:
                raise ValidationError(f"{field_name} is required")
            return ""

        if isinstance(value, datetime):
            return value.date().isoformat()

        if isinstance(value, date):
            return value.isoformat()

        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip()[:10]).isoformat()
            except ValueError:
                raise ValidationError(f"{field_name} must be an ISO date (YYYY-MM-DD)")

        raise ValidationError(f"{field_name} must be a date, got {type(value)}")

    @staticmethod
    def validate_month(value: Any, field_name: str = "month") -> str:
        """Validate a month in YYYY-MM form. Dates are truncated to their month."""
        if isinstance(value, (date, datetime)):
            return value.strftime("%Y-%m")

        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string, got {type(value)}")

        value = value.strip()[:7]
        if not re.match(r"^\d{4}-(0[1-9]|1[0-2])$", value):
            raise ValidationError(f"{field_name} must be in YYYY-MM format")

        return value

    @staticmethod
    def validate_url(url: str, field_name: str = "url") -> str:
        """
        Check a project link such as a Twitter/X profile.

        Only absolute http(s) URLs with a dotted host (or localhost) pass.
        """
        if not isinstance(url, str) or not url.strip():
            raise ValidationError(f"{field_name} is empty")

        url = url.strip()
        if "://" not in url:
            raise ValidationError(f"{field_name} is missing scheme (use https://...)")

        try:
            parsed = urlparse(url)
            host = parsed.hostname or ""
        except ValueError:
            raise ValidationError(f"{field_name} is not a valid web address")
        if parsed.scheme.lower() not in WEB_SCHEMES:
            raise ValidationError(f"{field_name} scheme must be http or https")

        if not (host == "localhost" or _HOST_PATTERN.match(host)) or any(c.isspace() for c in url):
            raise ValidationError(f"{field_name} is not a valid web address")
        return url

    @staticmethod
    def validate_asset_form(data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate asset form input.

        The ticker falls back to the uppercased name when left blank.
        """
        validated = {}
        validated['name'] = DataValidator.validate_string(data.get('name'), 'name', max_length=100)
        ticker = DataValidator.validate_optional_string(data.get('ticker'), 'ticker', max_length=20)
        validated['ticker'] = (ticker or validated['name']).upper()
        validated['type'] = DataValidator.validate_enum(data.get('type', AssetType.STOCK), AssetType, 'type')
        validated['quantity'] = DataValidator.validate_number(data.get('quantity'), 'quantity', min_value=0)
        if validated['quantity'] == 0:
            raise ValidationError("quantity must be greater than 0")
        validated['current_price'] = DataValidator.validate_number(
            data.get('current_price', 0), 'current_price', min_value=0
        )
        currency = DataValidator.validate_optional_string(data.get('currency'), 'currency', max_length=10)
        validated['currency'] = (currency or 'USD').upper()
        return validated

    @staticmethod
    def validate_trade_form(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate option trade form input."""
        validated = {}
        validated['ticker'] = DataValidator.validate_string(data.get('ticker'), 'ticker', max_length=20).upper()
        validated['type'] = DataValidator.validate_enum(data.get('type', OptionType.SHORT_PUT), OptionType, 'type')
        validated['status'] = DataValidator.validate_enum(data.get('status', OptionStatus.OPEN), OptionStatus, 'status')
        validated['open_date'] = DataValidator.validate_date(data.get('open_date'), 'open_date')
        validated['expiry_date'] = DataValidator.validate_date(data.get('expiry_date'), 'expiry_date', required=False)
        validated['strike_price'] = DataValidator.validate_number(data.get('strike_price'), 'strike_price', min_value=0)
        if validated['strike_price'] == 0:
            raise ValidationError("strike_price must be greater than 0")
        validated['premium'] = DataValidator.validate_number(data.get('premium', 0), 'premium', min_value=0)
        validated['collateral_or_cost'] = DataValidator.validate_number(
            data.get('collateral_or_cost', 0), 'collateral_or_cost', min_value=0
        )
        close_price = data.get('close_price')
        if close_price is None or close_price == "":
            validated['close_price'] = None
        else:
            validated['close_price'] = DataValidator.validate_number(close_price, 'close_price', min_value=0)
        validated['notes'] = DataValidator.validate_optional_string(data.get('notes'), 'notes', max_length=2000)
        return validated

    @staticmethod
    def validate_airdrop_form(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate airdrop project form input."""
        validated = {}
        validated['name'] = DataValidator.validate_string(data.get('name'), 'name', max_length=100)
        twitter_url = DataValidator.validate_optional_string(data.get('twitter_url'), 'twitter_url', max_length=500)
        # Handles and bare links like "x.com/foo" are kept as typed
        if twitter_url and "://" in twitter_url:
            twitter_url = DataValidator.validate_url(twitter_url, 'twitter_url')
        validated['twitter_url'] = twitter_url
        validated['status'] = DataValidator.validate_enum(data.get('status', AirdropStatus.NEW), AirdropStatus, 'status')
        validated['priority'] = DataValidator.validate_enum(data.get('priority', Priority.MEDIUM), Priority, 'priority')
        validated['notes'] = DataValidator.validate_optional_string(data.get('notes'), 'notes', max_length=2000)
        return validated

    @staticmethod
    def validate_pnl_form(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate manual P&L entry form input."""
        validated = {}
        validated['month'] = DataValidator.validate_month(data.get('month'))
        validated['amount'] = DataValidator.validate_number(data.get('amount'), 'amount')
        validated['description'] = DataValidator.validate_optional_string(
            data.get('description'), 'description', max_length=500
        )
        return validated

    @staticmethod
    def sanitize_for_logging(text: Any, max_length: int = 200) -> str:
        """
        Mask GitHub tokens and Gemini API keys, drop control characters and
        cap the length, so ``text`` can go into a log line.
        """
        cleaned = str(text)
        for pattern, mask in _SECRET_PATTERNS:
            cleaned = pattern.sub(mask, cleaned)
        cleaned = _CONTROL_CHARS.sub("", cleaned)
        if len(cleaned) > max_length:
            return cleaned[:max_length] + "..."
        return cleaned
