from models.types import DayMenu, DietaryTag, MenuFilters, MenuItem, MenuSearchHit, SpicyStatus


def search_menu_items(menu: DayMenu, query: str) -> list[MenuSearchHit]:
    """Case-insensitive substring match on item names across all meals."""
    needle = query.strip().lower()
    if not needle:
        return []
    return [
        MenuSearchHit(**item.model_dump(), meal=meal)
        for meal, items in menu.meals.items()
        for item in items
        if needle in item.name.lower()
    ]


def _matches(item: MenuItem, filters: MenuFilters) -> bool:
    required = {
        DietaryTag.VEGAN: filters.vegan,
        DietaryTag.VEGETARIAN: filters.vegetarian,
        DietaryTag.GLUTEN_FREE: filters.gluten_free,
    }
    if any(wanted and tag not in item.dietary_tags for tag, wanted in required.items()):
        return False
    if any(allergen in item.allergens for allergen in filters.exclude_allergens):
        return False
    # Unknown items stay visible until enrichment says otherwise.
    return not (filters.exclude_spicy and item.is_spicy == SpicyStatus.SPICY)


def filter_menu(menu: DayMenu, filters: MenuFilters) -> DayMenu:
    """Copy of the menu keeping matching items; meals left empty are dropped."""
    meals = {}
    for meal, items in menu.meals.items():
        kept = [item for item in items if _matches(item, filters)]
        if kept:
            meals[meal] = kept
    return menu.model_copy(update={"meals": meals})
