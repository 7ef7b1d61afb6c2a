"""Joke corpus backing the catalog's tools and resources."""

from __future__ import annotations

import random
from typing import Sequence

from .mcp.errors import OutOfRangeError

DAD_JOKES: tuple[str, ...] = (
    "I'm reading a book about anti-gravity. It's impossible to put down.",
    "Why don't skeletons fight each other? They don't have the guts.",
    "I used to hate facial hair, but then it grew on me.",
    "What do you call a fake noodle? An impasta.",
    "Why did the scarecrow win an award? Because he was outstanding in his field.",
    "I only know 25 letters of the alphabet. I don't know y.",
    "What do you call a fish with no eyes? A fsh.",
    "Why don't eggs tell jokes? They'd crack each other up.",
    "How does a penguin build its house? Igloos it together.",
    "I'm afraid for the calendar. Its days are numbered.",
    "Why couldn't the bicycle stand up by itself? It was two tired.",
    "What do you call cheese that isn't yours? Nacho cheese.",
    "How do you organize a space party? You planet.",
    "Why did the math book look so sad? Because it had too many problems.",
    "What did the ocean say to the beach? Nothing, it just waved.",
    "I would avoid the sushi if I were you. It's a little fishy.",
    "Want to hear a joke about construction? I'm still working on it.",
    "Why do seagulls fly over the sea? Because if they flew over the bay they'd be bagels.",
    "What time did the man go to the dentist? Tooth hurt-y.",
    "Did you hear about the restaurant on the moon? Great food, no atmosphere.",
    "How do you make a tissue dance? Put a little boogie in it.",
    "Why did the coffee file a police report? It got mugged.",
    "What do you call a bear with no teeth? A gummy bear.",
    "I told my wife she was drawing her eyebrows too high. She looked surprised.",
    "Why can't you hear a pterodactyl go to the bathroom? Because the P is silent.",
)


class JokeProvider:
    """Finite, immutable, indexable joke collection."""

    def __init__(self, jokes: Sequence[str], *, rng: random.Random | None = None):
        self._jokes = tuple(jokes)
        self._rng = rng or random.Random()

    def count(self) -> int:
        return len(self._jokes)

    def get(self, index: int) -> str:
        """Return the joke at ``index``; negative indices are out of range."""
        if isinstance(index, bool) or not isinstance(index, int):
            raise OutOfRangeError(
                f"joke index must be an integer, got {type(index).__name__}",
                details={"index": repr(index)},
            )
        if not 0 <= index < len(self._jokes):
            raise OutOfRangeError(
                f"joke index {index} outside 0..{len(self._jokes) - 1}",
                details={"index": index, "count": len(self._jokes)},
            )
        return self._jokes[index]

    def random(self) -> str:
        if not self._jokes:
            raise OutOfRangeError("no jokes available", details={"count": 0})
        return self._rng.choice(self._jokes)

    def all(self) -> tuple[str, ...]:
        return self._jokes


def default_provider() -> JokeProvider:
    return JokeProvider(DAD_JOKES)
