import re

from models.types import Allergen, DietaryTag

ALLERGEN_ICONS: dict[str, Allergen] = {
    "milk.png": Allergen.MILK,
    "eggs.png": Allergen.EGGS,
    "fish.png": Allergen.FISH,
    "crustacean_shellfish.png": Allergen.SHELLFISH,
    "tree_nuts.png": Allergen.TREE_NUTS,
    "peanuts.png": Allergen.PEANUTS,
    "wheat.png": Allergen.WHEAT,
    "soybeans.png": Allergen.SOYBEANS,
    "sesame.png": Allergen.SESAME,
}

DIETARY_ICONS: dict[str, DietaryTag] = {
    "vgn_.png": DietaryTag.VEGAN,
    "veg_.png": DietaryTag.VEGETARIAN,
    "gf_.png": DietaryTag.GLUTEN_FREE,
}

_ALLERGEN_IMAGE_RE = re.compile(r"AllergenImages/([^\"'\s>]+)", re.IGNORECASE)
_LEGEND_IMAGE_RE = re.compile(r"LegendImages/([^\"'\s>]+)", re.IGNORECASE)


def parse_allergens(html: str) -> list[Allergen]:
    """Allergens referenced by icon filename, de-duplicated in first-seen order."""
    found = (ALLERGEN_ICONS.get(name.lower()) for name in _ALLERGEN_IMAGE_RE.findall(html))
    return list(dict.fromkeys(a for a in found if a is not None))


def parse_dietary_tags(html: str) -> list[DietaryTag]:
    found = (DIETARY_ICONS.get(name.lower()) for name in _LEGEND_IMAGE_RE.findall(html))
    return list(dict.fromkeys(t for t in found if t is not None))
