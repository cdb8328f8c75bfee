from typing import Protocol


class LLMProvider(Protocol):
    async def classify_spicy(self, food_name: str, ingredients: str) -> str:
        """Ask whether a dish is spicy. Returns the model's raw reply text."""
        ...
