from datetime import date
from enum import StrEnum

from pydantic import BaseModel


class MealType(StrEnum):
    BREAKFAST = "breakfast"
    BRUNCH = "brunch"
    LUNCH = "lunch"
    DINNER = "dinner"


class DietaryTag(StrEnum):
    VEGAN = "vegan"
    VEGETARIAN = "vegetarian"
    GLUTEN_FREE = "gluten-free"


class Allergen(StrEnum):
    MILK = "milk"
    EGGS = "eggs"
    FISH = "fish"
    SHELLFISH = "shellfish"
    TREE_NUTS = "tree-nuts"
    PEANUTS = "peanuts"
    WHEAT = "wheat"
    SOYBEANS = "soybeans"
    SESAME = "sesame"


class SpicyStatus(StrEnum):
    UNKNOWN = "unknown"
    SPICY = "spicy"
    NOT_SPICY = "not_spicy"

    @classmethod
    def from_bool(cls, spicy: bool) -> "SpicyStatus":
        return cls.SPICY if spicy else cls.NOT_SPICY


class Location(BaseModel):
    id: str  # locationNum on FoodPro
    name: str  # locationName on FoodPro


LOCATIONS: list[Location] = [
    Location(id="02", name="Lothian"),
    Location(id="03", name="Glasgow"),
]


# --- Menu types ---


class MenuItem(BaseModel):
    id: str  # RecNumAndPort from the label URL
    name: str
    station: str
    dietary_tags: list[DietaryTag] = []
    allergens: list[Allergen] = []
    label_url: str
    is_spicy: SpicyStatus = SpicyStatus.UNKNOWN


class DayMenu(BaseModel):
    location_id: str
    location_name: str
    date: date
    meals: dict[MealType, list[MenuItem]] = {}

    def all_items(self) -> list[MenuItem]:
        return [item for items in self.meals.values() for item in items]

    def item_count(self) -> int:
        return sum(len(items) for items in self.meals.values())


class DateBounds(BaseModel):
    min_date: date
    max_date: date


# --- Label page types ---


class Ingredient(BaseModel):
    name: str
    is_note: bool = False
    children: list["Ingredient"] | None = None


class NutrientAmount(BaseModel):
    amount: float = 0.0
    daily_value_percent: float = 0.0


class Nutrition(BaseModel):
    """Nutrition facts from a label page.

    Units: fats, carbs, fiber, sugars and protein in grams; cholesterol,
    sodium, calcium, iron and potassium in milligrams; vitamin D in micrograms.
    """

    serving_size: str = "1 serving"
    calories: float = 0.0
    total_fat: NutrientAmount = NutrientAmount()
    saturated_fat: NutrientAmount = NutrientAmount()
    trans_fat: float = 0.0
    cholesterol: NutrientAmount = NutrientAmount()
    sodium: NutrientAmount = NutrientAmount()
    total_carbs: NutrientAmount = NutrientAmount()
    fiber: NutrientAmount = NutrientAmount()
    total_sugars: float = 0.0
    added_sugars: NutrientAmount = NutrientAmount()
    protein: float = 0.0
    vitamin_d: NutrientAmount = NutrientAmount()
    calcium: NutrientAmount = NutrientAmount()
    iron: NutrientAmount = NutrientAmount()
    potassium: NutrientAmount = NutrientAmount()


class FoodDetail(BaseModel):
    id: str
    name: str
    dietary_tags: list[DietaryTag] = []
    allergens: list[Allergen] = []
    nutrition: Nutrition = Nutrition()
    ingredients: list[Ingredient] = []


# --- Query types ---


class MenuFilters(BaseModel):
    vegan: bool = False
    vegetarian: bool = False
    gluten_free: bool = False
    exclude_allergens: list[Allergen] = []
    exclude_spicy: bool = False


class MenuSearchHit(MenuItem):
    meal: MealType


class MealHours(BaseModel):
    start: str  # e.g. "7:30 AM"
    end: str


class MealStatus(StrEnum):
    OPEN = "open"
    UPCOMING = "upcoming"
    CLOSED = "closed"


class MealSchedule(BaseModel):
    meal: MealType
    hours: MealHours | None
    status: MealStatus
    menu_key: MealType  # meal the items are listed under on FoodPro
