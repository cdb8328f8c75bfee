import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from models.types import MealType, SpicyStatus
from services.menu_service import MenuService, menu_cache_key
from services.spicy_service import SpicyEnrichmentService, parse_spicy_reply, spicy_cache_key
from tests.factories import make_day_menu, make_label_html, make_menu_item

TACO_ID = "161006*3"
RICE_ID = "210330*1"


@pytest.fixture
def menu_service(cache, mock_vendor):
    return MenuService(cache=cache, vendor=mock_vendor)


@pytest.fixture
def service(cache, menu_service, mock_llm):
    return SpicyEnrichmentService(
        cache=cache,
        menu_service=menu_service,
        llm=mock_llm,
        batch_size=5,
        llm_timeout_seconds=1,
    )


@pytest.fixture(autouse=True)
def label_pages(mock_vendor):
    async def fetch(label_url):
        if TACO_ID in label_url:
            return make_label_html("Spicy Chicken Tinga Tacos", "Chicken Thigh, Chipotle Peppers")
        return make_label_html("Cilantro Lime Rice", "Rice, Cilantro, Lime Juice")

    mock_vendor.fetch_label_page.side_effect = fetch


@pytest.fixture(autouse=True)
def model_replies(mock_llm):
    async def classify(food_name, ingredients):
        return '{"spicy": true}' if "Chipotle" in ingredients else '{"spicy": false}'

    mock_llm.classify_spicy.side_effect = classify


def _statuses(menu) -> dict[str, SpicyStatus]:
    return {item.id: item.is_spicy for item in menu.all_items()}


class TestEnrichMenu:
    async def test_classifies_unknown_items_and_saves_menu(self, service, menu_service, mock_llm):
        menu = make_day_menu()

        await service.enrich_menu(menu)

        assert _statuses(menu) == {TACO_ID: SpicyStatus.SPICY, RICE_ID: SpicyStatus.NOT_SPICY}
        assert mock_llm.classify_spicy.call_count == 2
        saved = await menu_service.get_menu("02", menu.date)
        assert _statuses(saved) == _statuses(menu)

    async def test_sends_name_and_flattened_ingredients(self, service, mock_llm):
        await service.enrich_menu(make_day_menu())

        calls = {c.args[0]: c.args[1] for c in mock_llm.classify_spicy.call_args_list}
        assert calls["Spicy Chicken Tinga Tacos"] == "Chicken Thigh, Chipotle Peppers"

    async def test_enriched_menu_needs_no_writes_or_model_calls(self, service, cache, mock_llm):
        menu = make_day_menu()
        await service.enrich_menu(menu)
        calls = mock_llm.classify_spicy.call_count

        with (
            patch.object(cache, "put", new=AsyncMock()) as put,
            patch.object(cache, "add", new=AsyncMock()) as add,
        ):
            await service.enrich_menu(menu)

        put.assert_not_called()
        add.assert_not_called()
        assert mock_llm.classify_spicy.call_count == calls

    async def test_cached_verdicts_skip_the_model(self, service, mock_llm, mock_vendor):
        await service.cache_verdict(TACO_ID, True)
        await service.cache_verdict(RICE_ID, False)
        menu = make_day_menu()

        await service.enrich_menu(menu)

        assert _statuses(menu) == {TACO_ID: SpicyStatus.SPICY, RICE_ID: SpicyStatus.NOT_SPICY}
        mock_llm.classify_spicy.assert_not_called()
        mock_vendor.fetch_label_page.assert_not_called()

    async def test_cached_lookups_run_concurrently(self, service, mock_llm):
        await service.cache_verdict(TACO_ID, True)
        await service.cache_verdict(RICE_ID, False)
        lookup = service.get_cached_verdict
        active = 0
        peak = 0

        async def slow_lookup(item_id):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await lookup(item_id)

        menu = make_day_menu()
        with patch.object(service, "get_cached_verdict", side_effect=slow_lookup):
            await service.enrich_menu(menu)

        assert peak == 2
        mock_llm.classify_spicy.assert_not_called()

    async def test_verdicts_are_reused_across_menus(self, service, mock_llm):
        await service.enrich_menu(make_day_menu())
        other_day = make_day_menu(date=make_day_menu().date.replace(day=11))

        await service.enrich_menu(other_day)

        assert mock_llm.classify_spicy.call_count == 2
        assert _statuses(other_day)[TACO_ID] == SpicyStatus.SPICY

    async def test_no_ingredients_is_a_permanent_not_spicy(
        self, service, cache, clock, mock_vendor, mock_llm
    ):
        mock_vendor.fetch_label_page.side_effect = None
        mock_vendor.fetch_label_page.return_value = make_label_html("Water", ingredients="")
        menu = make_day_menu()

        await service.enrich_menu(menu)

        assert set(_statuses(menu).values()) == {SpicyStatus.NOT_SPICY}
        mock_llm.classify_spicy.assert_not_called()
        clock.advance(10 * 365 * 86400)
        assert await service.get_cached_verdict(TACO_ID) is False

    async def test_model_failure_leaves_item_unknown(self, service, cache, mock_llm):
        mock_llm.classify_spicy.side_effect = RuntimeError("overloaded")
        menu = make_day_menu()

        await service.enrich_menu(menu)

        assert set(_statuses(menu).values()) == {SpicyStatus.UNKNOWN}
        assert await cache.get(spicy_cache_key(TACO_ID)) is None
        # nothing resolved, so the menu document is not rewritten
        assert await cache.get(menu_cache_key("02", menu.date)) is None

    async def test_unparseable_reply_leaves_item_unknown(self, service, mock_llm):
        mock_llm.classify_spicy.side_effect = None
        mock_llm.classify_spicy.return_value = "I cannot tell."
        menu = make_day_menu()

        await service.enrich_menu(menu)

        assert set(_statuses(menu).values()) == {SpicyStatus.UNKNOWN}
        assert await service.get_cached_verdict(TACO_ID) is None

    async def test_slow_model_call_times_out(self, cache, menu_service, mock_llm):
        async def slow(food_name, ingredients):
            await asyncio.sleep(5)
            return '{"spicy": true}'

        mock_llm.classify_spicy.side_effect = slow
        service = SpicyEnrichmentService(
            cache=cache, menu_service=menu_service, llm=mock_llm, llm_timeout_seconds=0.01
        )
        menu = make_day_menu()

        await service.enrich_menu(menu)

        assert set(_statuses(menu).values()) == {SpicyStatus.UNKNOWN}

    async def test_missing_label_page_leaves_item_unknown(self, service, mock_vendor, mock_llm):
        mock_vendor.fetch_label_page.side_effect = None
        mock_vendor.fetch_label_page.return_value = None
        menu = make_day_menu()

        await service.enrich_menu(menu)

        assert set(_statuses(menu).values()) == {SpicyStatus.UNKNOWN}
        mock_llm.classify_spicy.assert_not_called()

    async def test_one_failure_does_not_block_the_rest(self, service, mock_llm):
        async def classify(food_name, ingredients):
            if "Chipotle" in ingredients:
                raise RuntimeError("overloaded")
            return '{"spicy": false}'

        mock_llm.classify_spicy.side_effect = classify
        menu = make_day_menu()

        await service.enrich_menu(menu)

        assert _statuses(menu) == {TACO_ID: SpicyStatus.UNKNOWN, RICE_ID: SpicyStatus.NOT_SPICY}

    async def test_model_calls_run_in_bounded_batches(self, cache, menu_service, mock_llm):
        active = 0
        peak = 0

        async def classify(food_name, ingredients):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return '{"spicy": false}'

        mock_llm.classify_spicy.side_effect = classify
        items = [
            make_menu_item(id=f"{i}*1", name=f"Dish {i}", label_url=f"https://foodpro.test/{i}")
            for i in range(5)
        ]
        menu = make_day_menu(meals={MealType.DINNER: items})
        service = SpicyEnrichmentService(
            cache=cache, menu_service=menu_service, llm=mock_llm, batch_size=2
        )

        await service.enrich_menu(menu)

        assert mock_llm.classify_spicy.call_count == 5
        assert peak == 2
        assert set(_statuses(menu).values()) == {SpicyStatus.NOT_SPICY}


class TestVerdictsAreWriteOnce:
    async def test_same_item_in_two_meals_is_classified_once(self, service, cache, mock_llm):
        replies = iter(['{"spicy": true}', '{"spicy": false}'])

        async def classify(food_name, ingredients):
            return next(replies)

        mock_llm.classify_spicy.side_effect = classify
        taco = make_menu_item()
        menu = make_day_menu(meals={MealType.LUNCH: [taco], MealType.DINNER: [make_menu_item()]})

        await service.enrich_menu(menu)

        assert mock_llm.classify_spicy.call_count == 1
        assert [item.is_spicy for item in menu.all_items()] == [SpicyStatus.SPICY] * 2
        assert await cache.get(spicy_cache_key(TACO_ID)) is True

    async def test_concurrent_menus_share_one_classification(self, service, mock_llm):
        async def classify(food_name, ingredients):
            await asyncio.sleep(0.01)
            return '{"spicy": true}'

        mock_llm.classify_spicy.side_effect = classify
        lothian = make_day_menu(meals={MealType.LUNCH: [make_menu_item()]})
        glasgow = make_day_menu(
            location_id="03",
            location_name="Glasgow",
            meals={MealType.DINNER: [make_menu_item()]},
        )

        await asyncio.gather(service.enrich_menu(lothian), service.enrich_menu(glasgow))

        assert mock_llm.classify_spicy.call_count == 1
        assert _statuses(lothian) == _statuses(glasgow) == {TACO_ID: SpicyStatus.SPICY}

    async def test_cache_verdict_keeps_the_first_answer(self, service):
        assert await service.cache_verdict(TACO_ID, True) is True
        assert await service.cache_verdict(TACO_ID, False) is True
        assert await service.get_cached_verdict(TACO_ID) is True

    async def test_verdict_written_elsewhere_mid_batch_wins(self, service, mock_llm, mock_vendor):
        async def fetch(label_url):
            # another worker stores its answer while this one reads the label
            await service.cache_verdict(TACO_ID, False)
            return make_label_html("Spicy Chicken Tinga Tacos", "Chicken Thigh, Chipotle Peppers")

        mock_vendor.fetch_label_page.side_effect = fetch
        menu = make_day_menu(meals={MealType.LUNCH: [make_menu_item()]})

        await service.enrich_menu(menu)

        assert _statuses(menu) == {TACO_ID: SpicyStatus.NOT_SPICY}


class TestParseSpicyReply:
    @pytest.mark.parametrize(
        ("reply", "expected"),
        [
            ('{"spicy": true}', True),
            ('{"spicy": false}', False),
            ('```json\n{"spicy":true}\n```', True),
            ('Sure! {"Spicy" : FALSE}', False),
        ],
    )
    def test_reads_verdict(self, reply, expected):
        assert parse_spicy_reply(reply) is expected

    def test_no_verdict_raises(self):
        with pytest.raises(ValueError):
            parse_spicy_reply("It depends on the salsa.")
