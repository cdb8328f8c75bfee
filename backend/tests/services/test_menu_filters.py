from models.types import Allergen, MealType, MenuFilters, SpicyStatus
from services.menu_filters import filter_menu, search_menu_items
from tests.factories import make_day_menu, make_menu_item


def _names(menu) -> list[str]:
    return [item.name for item in menu.all_items()]


class TestSearchMenuItems:
    def test_case_insensitive_substring(self):
        hits = search_menu_items(make_day_menu(), "TACO")
        assert [h.name for h in hits] == ["Spicy Chicken Tinga Tacos"]
        assert hits[0].meal == MealType.LUNCH
        assert hits[0].station == "Grill"

    def test_matches_across_meals(self):
        menu = make_day_menu(
            meals={
                MealType.BREAKFAST: [make_menu_item(id="1*1", name="Breakfast Burrito")],
                MealType.DINNER: [make_menu_item(id="2*1", name="Bean Burrito")],
            }
        )
        hits = search_menu_items(menu, "burrito")
        assert [(h.meal, h.name) for h in hits] == [
            (MealType.BREAKFAST, "Breakfast Burrito"),
            (MealType.DINNER, "Bean Burrito"),
        ]

    def test_blank_query_matches_nothing(self):
        assert search_menu_items(make_day_menu(), "   ") == []

    def test_no_match(self):
        assert search_menu_items(make_day_menu(), "sushi") == []


class TestFilterMenu:
    def test_no_filters_keeps_everything(self):
        menu = make_day_menu()
        assert _names(filter_menu(menu, MenuFilters())) == _names(menu)

    def test_vegan(self):
        assert _names(filter_menu(make_day_menu(), MenuFilters(vegan=True))) == [
            "Cilantro Lime Rice"
        ]

    def test_gluten_free(self):
        assert _names(filter_menu(make_day_menu(), MenuFilters(gluten_free=True))) == [
            "Spicy Chicken Tinga Tacos"
        ]

    def test_excluded_allergens(self):
        filtered = filter_menu(make_day_menu(), MenuFilters(exclude_allergens=[Allergen.MILK]))
        assert _names(filtered) == ["Cilantro Lime Rice"]

    def test_exclude_spicy_removes_only_confirmed_spicy(self):
        menu = make_day_menu()
        assert len(filter_menu(menu, MenuFilters(exclude_spicy=True)).all_items()) == 2

        menu.meals[MealType.LUNCH][0].is_spicy = SpicyStatus.SPICY
        assert _names(filter_menu(menu, MenuFilters(exclude_spicy=True))) == ["Cilantro Lime Rice"]

    def test_empty_meals_are_dropped(self):
        menu = make_day_menu()
        filtered = filter_menu(menu, MenuFilters(vegan=True, gluten_free=True))
        assert filtered.meals == {}

    def test_input_menu_is_untouched(self):
        menu = make_day_menu()
        filter_menu(menu, MenuFilters(vegan=True))
        assert len(menu.all_items()) == 2
