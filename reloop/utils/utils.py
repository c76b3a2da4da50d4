import math
import re
import uuid
from datetime import datetime, timezone
from urllib.parse import quote

QUANTITY_NUMBER_PATTERN = re.compile(r"(\d+\.?\d*)")
PLACEHOLDER_IMAGE_URL = "https://picsum.photos/seed/{seed}/800/600"


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def clamp(lower: float, upper: float, value: float) -> float:
    return max(lower, min(upper, value))


def parse_quantity_number(quantity: str, default: float = 10.0) -> float:
    """Extract the leading number from a quantity string such as '15 tons/month'."""
    match = QUANTITY_NUMBER_PATTERN.search(quantity or "")
    return float(match.group(1)) if match else default


def placeholder_image_url(idea_name: str) -> str:
    return PLACEHOLDER_IMAGE_URL.format(seed=quote(idea_name or "idea", safe=""))
