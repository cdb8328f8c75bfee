from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.deps import get_enrichment_queue, get_menu_service
from models.types import Allergen, MenuFilters
from providers.vendor.foodpro_adapter import build_label_url, is_label_url
from services.meal_hours import get_current_or_next_meal, is_location_closed, meal_schedule
from services.menu_filters import filter_menu, search_menu_items
from services.menu_service import MenuService
from workers.handlers.enrich_menu import enrich_menu_with_spiciness
from workers.queue import EnrichmentQueue

router = APIRouter(prefix="/menu", tags=["menu"])


def _require_location(menus: MenuService, location_id: str) -> None:
    if menus.get_location(location_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown location: {location_id}",
        )


@router.get("/locations")
async def list_locations(
    menus: MenuService = Depends(get_menu_service),  # noqa: B008
) -> list[dict[str, Any]]:
    return [loc.model_dump() for loc in menus.get_locations()]


@router.get("/food/{item_id}")
async def get_food_detail(
    item_id: str,
    label_url: str | None = Query(None),
    location_id: str | None = Query(None),
    menu_date: date | None = Query(None, alias="date"),
    menus: MenuService = Depends(get_menu_service),  # noqa: B008
) -> dict[str, Any] | None:
    """Label page detail. Pass ``label_url`` from a menu item, or the location and date."""
    if label_url is None:
        if location_id is None or menu_date is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Provide label_url, or both location_id and date",
            )
        location = menus.get_location(location_id)
        if location is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown location: {location_id}",
            )
        label_url = build_label_url(location, menu_date, item_id)
    elif not is_label_url(label_url, item_id):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="label_url must be a FoodPro label page for this item",
        )

    detail = await menus.get_food_detail(item_id, label_url)
    return detail.model_dump(mode="json") if detail else None


@router.get("/{location_id}/bounds")
async def get_date_bounds(
    location_id: str,
    menus: MenuService = Depends(get_menu_service),  # noqa: B008
) -> dict[str, Any] | None:
    _require_location(menus, location_id)
    bounds = await menus.get_date_bounds(location_id)
    return bounds.model_dump(mode="json") if bounds else None


@router.get("/{location_id}/range")
async def get_menu_range(
    location_id: str,
    start: date,
    days: int = Query(7, ge=1, le=14),
    menus: MenuService = Depends(get_menu_service),  # noqa: B008
) -> list[dict[str, Any] | None]:
    """Consecutive days from ``start``; a day that could not be fetched is null."""
    results = await menus.get_menus_for_date_range(location_id, start, days)
    return [menu.model_dump(mode="json") if menu else None for menu in results]


@router.get("/{location_id}/{menu_date}")
async def get_menu(
    location_id: str,
    menu_date: date,
    menus: MenuService = Depends(get_menu_service),  # noqa: B008
    queue: EnrichmentQueue = Depends(get_enrichment_queue),  # noqa: B008
) -> dict[str, Any] | None:
    """Menu for one day. Items not yet classified are queued for spicy enrichment."""
    menu = await menus.get_menu(location_id, menu_date)
    if menu is None:
        return None
    enrich_menu_with_spiciness(menu, queue)
    return menu.model_dump(mode="json")


@router.get("/{location_id}/{menu_date}/search")
async def search_menu(
    location_id: str,
    menu_date: date,
    q: str = Query(..., min_length=1),
    menus: MenuService = Depends(get_menu_service),  # noqa: B008
) -> list[dict[str, Any]]:
    menu = await menus.get_menu(location_id, menu_date)
    if menu is None:
        return []
    return [hit.model_dump(mode="json") for hit in search_menu_items(menu, q)]


@router.get("/{location_id}/{menu_date}/filtered")
async def get_filtered_menu(
    location_id: str,
    menu_date: date,
    vegan: bool = False,
    vegetarian: bool = False,
    gluten_free: bool = False,
    exclude_allergens: list[Allergen] = Query([]),  # noqa: B008
    exclude_spicy: bool = False,
    menus: MenuService = Depends(get_menu_service),  # noqa: B008
) -> dict[str, Any] | None:
    menu = await menus.get_menu(location_id, menu_date)
    if menu is None:
        return None
    filters = MenuFilters(
        vegan=vegan,
        vegetarian=vegetarian,
        gluten_free=gluten_free,
        exclude_allergens=exclude_allergens,
        exclude_spicy=exclude_spicy,
    )
    return filter_menu(menu, filters).model_dump(mode="json")


@router.get("/{location_id}/{menu_date}/hours")
async def get_hours(
    location_id: str,
    menu_date: date,
    menus: MenuService = Depends(get_menu_service),  # noqa: B008
) -> dict[str, Any]:
    _require_location(menus, location_id)
    closed = is_location_closed(location_id, menu_date)
    return {
        "closed": closed,
        "current_meal": None if closed else get_current_or_next_meal(location_id, menu_date),
        "meals": [entry.model_dump(mode="json") for entry in meal_schedule(location_id, menu_date)],
    }


@router.post("/{location_id}/{menu_date}/enrich", status_code=status.HTTP_202_ACCEPTED)
async def enrich_menu(
    location_id: str,
    menu_date: date,
    menus: MenuService = Depends(get_menu_service),  # noqa: B008
    queue: EnrichmentQueue = Depends(get_enrichment_queue),  # noqa: B008
) -> dict[str, bool]:
    menu = await menus.get_menu(location_id, menu_date)
    if menu is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No menu for {location_id} on {menu_date.isoformat()}",
        )
    return {"queued": enrich_menu_with_spiciness(menu, queue)}
