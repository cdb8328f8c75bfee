import html as html_lib
import re

import structlog

from models.types import FoodDetail, Ingredient, NutrientAmount, Nutrition
from parsers.extract import Strategy, first_match, parse_number, strategy
from parsers.icons import parse_allergens, parse_dietary_tags
from parsers.ingredients import clean_text, parse_ingredient_list, parse_ingredient_text

logger = structlog.get_logger()

UNKNOWN_NAME = "Unknown"

# Markup that may sit between a nutrient label, its amount and its %DV.
_GAP = r"(?:\s|&nbsp;|<[^>]*>)*"
_NUM = r"(\d+(?:\.\d+)?)"

_NAME_STRATEGIES = [
    strategy("label_recipe_div", r'<div class="labelrecipe">\s*([^<]+?)\s*</div>'),
    strategy(
        "content_wrapper_heading",
        r'class="content-wrapper"[^>]*>.*?<h[1-3][^>]*>\s*([^<]+?)\s*</h[1-3]>',
        re.IGNORECASE | re.DOTALL,
    ),
    strategy("page_title", r"<title>\s*(?:[^<]*?\s[-|]\s)?([^<]+?)\s*</title>"),
]

_INGREDIENT_BLOCK_STRATEGIES = [
    strategy("ingredients_value", r'class="labelingredientsvalue"[^>]*>'),
    strategy("ingredients_list", r'class="ingred-list"[^>]*>'),
    strategy("ingredients_paragraph_block", r'class="ingred-paragraph"[^>]*>'),
]

_INGREDIENT_TEXT_STRATEGIES = [
    strategy(
        "ingredients_paragraph",
        r'<div class="ingred-paragraph">\s*<p>(.*?)</p>',
        re.IGNORECASE | re.DOTALL,
    ),
    strategy("ingredients_value_text", r'class="labelingredientsvalue"[^>]*>\s*([^<]+)'),
]

_LIST_BOUNDARY_RE = re.compile(r"<(/?)(?:ul|ol)\b[^>]*>", re.IGNORECASE)
_BLOCK_END_RE = re.compile(r"</div>", re.IGNORECASE)

_SERVING_SIZE_STRATEGIES = [
    strategy("serving_size_span", r"Serving Size[^<]*</span>\s*([^<]+?)\s*<"),
    strategy("serving_size_right_value", r'<div class="nf-right-value">\s*([^<]+?)\s*</div>'),
    strategy("serving_size_inline", r"Serving Size:?" + _GAP + r"([^<]+?)\s*<"),
]

_CALORIE_STRATEGIES = [
    strategy("calories_count_span", r'<span class="nf-calories-count">\s*' + _NUM),
    strategy("calorie_count_div", r'<div class="nf-calorie-count">\s*' + _NUM),
    strategy("calories_inline", r"Calories(?!\s*from)" + _GAP + _NUM),
]


def _amount_strategies(name: str, label: str, unit: str) -> list[Strategy]:
    """Amount with %DV first, then amount alone; group 1 amount, group 2 %DV."""
    label = rf"\b{label}"
    return [
        strategy(
            f"{name}_with_dv",
            label + _GAP + _NUM + rf"\s*{unit}\b" + _GAP + _NUM + r"\s*%",
        ),
        strategy(f"{name}_amount", label + _GAP + _NUM + rf"\s*{unit}\b"),
    ]


_AMOUNT_NUTRIENTS: dict[str, list[Strategy]] = {
    "total_fat": _amount_strategies("total_fat", "Total Fat", "g"),
    "saturated_fat": _amount_strategies("saturated_fat", "Saturated Fat", "g"),
    "cholesterol": _amount_strategies("cholesterol", "Cholesterol", "mg"),
    "sodium": _amount_strategies("sodium", "Sodium", "mg"),
    "total_carbs": _amount_strategies("total_carbs", r"Total Carbohydrates?\.?", "g"),
    "fiber": _amount_strategies("fiber", "Dietary Fiber", "g"),
    "added_sugars": [
        strategy(
            "includes_added_sugars",
            r"Includes" + _GAP + _NUM + r"\s*g\b" + _GAP + r"Added Sugars" + _GAP + _NUM + r"\s*%",
        ),
        *_amount_strategies("added_sugars", "Added Sugars", "g"),
    ],
    "vitamin_d": _amount_strategies("vitamin_d", r"(?:Vitamin|Vit\.?)\s*D", "mcg"),
    "calcium": _amount_strategies("calcium", "Calcium", "mg"),
    "iron": _amount_strategies("iron", "Iron", "mg"),
    "potassium": _amount_strategies("potassium", "Potassium", "mg"),
}

_SCALAR_NUTRIENTS: dict[str, list[Strategy]] = {
    "trans_fat": [
        strategy("trans_fat", r"Trans(?:\s|<[^>]*>)*Fat" + _GAP + _NUM + r"\s*g\b"),
    ],
    "total_sugars": [
        strategy("total_sugars", r"Total Sugars?" + _GAP + _NUM + r"\s*g\b"),
    ],
    "protein": [
        strategy("protein", r"Protein" + _GAP + _NUM + r"\s*g\b"),
    ],
}


def parse_name(html: str) -> str:
    match = first_match(html, _NAME_STRATEGIES)
    if match is None:
        return UNKNOWN_NAME
    return html_lib.unescape(match.group(1)).strip() or UNKNOWN_NAME


def _outer_list(html: str, start: int) -> str | None:
    """The first list opened after ``start`` up to its matching close tag.

    Returns None when the ingredient block ends before any list opens.
    """
    block_end = _BLOCK_END_RE.search(html, start)
    depth = 0
    list_start: int | None = None
    for match in _LIST_BOUNDARY_RE.finditer(html, start):
        closing = bool(match.group(1))
        if list_start is None:
            if closing:
                continue
            if block_end is not None and match.start() > block_end.start():
                return None
            list_start = match.start()
        depth += -1 if closing else 1
        if depth == 0:
            return html[list_start : match.end()]
    return html[list_start:] if list_start is not None else None


def parse_ingredients(html: str) -> list[Ingredient]:
    block = first_match(html, _INGREDIENT_BLOCK_STRATEGIES)
    if block is not None:
        markup = _outer_list(html, block.end())
        if markup is not None:
            ingredients = parse_ingredient_list(markup)
            if ingredients:
                return ingredients

    paragraph = first_match(html, _INGREDIENT_TEXT_STRATEGIES)
    if paragraph is None:
        return []
    return parse_ingredient_text(clean_text(paragraph.group(1)))


def parse_nutrition(html: str) -> Nutrition:
    """Extract each nutrient on its own; an unmatched nutrient stays zero."""
    fields: dict[str, object] = {}

    serving = first_match(html, _SERVING_SIZE_STRATEGIES)
    if serving is not None and clean_text(serving.group(1)):
        fields["serving_size"] = clean_text(serving.group(1))

    calories = first_match(html, _CALORIE_STRATEGIES)
    fields["calories"] = parse_number(calories.group(1) if calories else None)

    for field_name, strategies in _AMOUNT_NUTRIENTS.items():
        match = first_match(html, strategies)
        if match is None:
            logger.debug("Nutrient not found", nutrient=field_name)
            continue
        dv = match.group(2) if match.re.groups >= 2 else None
        fields[field_name] = NutrientAmount(
            amount=parse_number(match.group(1)),
            daily_value_percent=parse_number(dv),
        )

    for field_name, strategies in _SCALAR_NUTRIENTS.items():
        match = first_match(html, strategies)
        if match is None:
            logger.debug("Nutrient not found", nutrient=field_name)
            continue
        fields[field_name] = parse_number(match.group(1))

    return Nutrition(**fields)


def parse_label_page(html: str, item_id: str) -> FoodDetail:
    """Parse a FoodPro label page into nutrition facts and an ingredient tree."""
    return FoodDetail(
        id=item_id,
        name=parse_name(html),
        dietary_tags=parse_dietary_tags(html),
        allergens=parse_allergens(html),
        nutrition=parse_nutrition(html),
        ingredients=parse_ingredients(html),
    )
