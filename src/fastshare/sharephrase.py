"""Random share code generation."""

import secrets
from functools import lru_cache
from importlib import resources
from typing import Tuple

DEFAULT_NUM_WORDS = 3
NUMBER_LIMIT = 1000


@lru_cache(maxsize=1)
def load_words() -> Tuple[str, ...]:
    """Load the bundled word list, one word per line."""
    text = resources.files(__package__).joinpath("words.txt").read_text(encoding="utf-8")
    return tuple(line.strip() for line in text.splitlines() if line.strip())


def generate_share_code(num_words: int = DEFAULT_NUM_WORDS, include_number: bool = True) -> str:
    """
    Generate a random share code such as ``BluePenguinBouncer417``.

    Args:
        num_words: Number of capitalised words to join
        include_number: Whether to append a number below 1000

    Returns:
        The share code
    """
    if num_words < 1:
        raise ValueError(f"num_words must be at least 1, got {num_words}")

    words = load_words()
    code = "".join(secrets.choice(words).capitalize() for _ in range(num_words))
    if include_number:
        code += str(secrets.randbelow(NUMBER_LIMIT))
    return code
