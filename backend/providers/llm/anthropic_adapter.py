from anthropic import AsyncAnthropic

SPICY_SYSTEM_PROMPT = (
    "You are a food classification assistant. Given a food name and its ingredients, "
    "determine if the dish is spicy. A dish is spicy if it contains ingredients that "
    "produce heat or spiciness such as: chili peppers, jalapeños, habaneros, cayenne, "
    "hot sauce, sriracha, crushed red pepper, pepper flakes, chipotle, wasabi, "
    "horseradish, gochujang, sambal, or similar spicy ingredients. "
    "Mildly flavored items with just black pepper or paprika are NOT considered spicy. "
    'Respond with ONLY valid JSON: {"spicy": true} or {"spicy": false}'
)


class AnthropicLLMAdapter:
    def __init__(self, api_key: str, model: str, timeout: float = 20.0):
        self._client = AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=1)
        self._model = model

    async def classify_spicy(self, food_name: str, ingredients: str) -> str:
        response = await self._client.messages.create(
            model=self._model,
            max_tokens=20,
            system=SPICY_SYSTEM_PROMPT,
            messages=[
                {
                    "role": "user",
                    "content": f"Food: {food_name}\nIngredients: {ingredients}",
                }
            ],
        )
        return self._extract_text(response)

    @staticmethod
    def _extract_text(response) -> str:
        return "".join(block.text for block in response.content if block.type == "text")
