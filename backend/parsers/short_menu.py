import html as html_lib
import re
from bisect import bisect_left
from datetime import date
from urllib.parse import unquote

import structlog

from core.config import settings
from models.types import DayMenu, MealType, MenuItem
from parsers.extract import first_match, strategy
from parsers.icons import parse_allergens, parse_dietary_tags

logger = structlog.get_logger()

DEFAULT_STATION = "General"

_MEAL_HEADER_RE = re.compile(r'<h3 class="shortmenumeals">', re.IGNORECASE)
_MEAL_NAME_RE = re.compile(r"^\s*(\w+)", re.IGNORECASE)
_STATION_RE = re.compile(r'<div class="shortmenucats">\s*--\s*(.+?)\s*--\s*</div>', re.IGNORECASE)
_ITEM_WRAPPER_RE = re.compile(
    r'<div class="menuItemWrapper">(.*?)</div>\s*</td>', re.IGNORECASE | re.DOTALL
)
_ITEM_ID_RE = re.compile(r"RecNumAndPort=([^&'\"]+)", re.IGNORECASE)

_ITEM_LINK_STRATEGIES = [
    strategy("single_quoted_href", r"<a href='(label\.aspx\?[^']+)'[^>]*>\s*([^<]+?)\s*</a>"),
    strategy("double_quoted_href", r'<a href="(label\.aspx\?[^"]+)"[^>]*>\s*([^<]+?)\s*</a>'),
]


def extract_item_id(label_path: str) -> str:
    match = _ITEM_ID_RE.search(html_lib.unescape(label_path))
    return unquote(match.group(1)) if match else ""


def station_for(offset: int, station_offsets: list[int], station_names: list[str]) -> str:
    """Name of the last station marker strictly before ``offset``."""
    index = bisect_left(station_offsets, offset) - 1
    return station_names[index] if index >= 0 else DEFAULT_STATION


def _parse_meal_section(section: str, base_url: str) -> list[MenuItem]:
    station_offsets: list[int] = []
    station_names: list[str] = []
    for match in _STATION_RE.finditer(section):
        station_offsets.append(match.start())
        station_names.append(html_lib.unescape(match.group(1).strip()))

    items: list[MenuItem] = []
    for wrapper in _ITEM_WRAPPER_RE.finditer(section):
        fragment = wrapper.group(1)
        link = first_match(fragment, _ITEM_LINK_STRATEGIES)
        if link is None:
            continue

        label_path = html_lib.unescape(link.group(1))
        name = html_lib.unescape(link.group(2)).strip()
        item_id = extract_item_id(label_path)
        if not item_id or not name:
            continue

        items.append(
            MenuItem(
                id=item_id,
                name=name,
                station=station_for(wrapper.start(), station_offsets, station_names),
                dietary_tags=parse_dietary_tags(fragment),
                allergens=parse_allergens(fragment),
                label_url=f"{base_url}/{label_path}",
            )
        )
    return items


def parse_short_menu(
    html: str,
    location_id: str,
    location_name: str,
    menu_date: date,
    base_url: str | None = None,
) -> DayMenu:
    """Parse a FoodPro short menu page into items grouped by meal and station."""
    base_url = (base_url or settings.vendor_base_url).rstrip("/")
    meals: dict[MealType, list[MenuItem]] = {}

    # The first chunk is the page header before any meal section.
    for section in _MEAL_HEADER_RE.split(html)[1:]:
        header = _MEAL_NAME_RE.match(section)
        if header is None:
            continue
        try:
            meal = MealType(header.group(1).lower())
        except ValueError:
            logger.debug("Skipping unknown meal section", header=header.group(1))
            continue

        items = _parse_meal_section(section, base_url)
        if items:
            meals.setdefault(meal, []).extend(items)

    return DayMenu(
        location_id=location_id,
        location_name=location_name,
        date=menu_date,
        meals=meals,
    )
