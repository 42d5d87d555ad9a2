"""Random, DNS-safe host names like ``peaceful-hopper4``."""

from __future__ import annotations

import random

_ADJECTIVES = (
    "admiring", "agitated", "bold", "brave", "busy", "clever", "cool", "dazzling",
    "eager", "elastic", "festive", "focused", "gifted", "happy", "hopeful", "jolly",
    "keen", "loving", "modest", "nifty", "peaceful", "quirky", "relaxed", "serene",
    "sharp", "stoic", "tender", "upbeat", "vibrant", "wizardly", "youthful", "zealous",
)

_SURNAMES = (
    "albattani", "babbage", "bardeen", "curie", "darwin", "diffie", "einstein",
    "euclid", "feynman", "galileo", "goldberg", "hopper", "hypatia", "kalam",
    "knuth", "lamarr", "lovelace", "mayer", "mccarthy", "noether", "pascal",
    "ritchie", "shannon", "tesla", "thompson", "turing", "wilson", "wozniak",
)


def random_name(rng: random.Random | None = None) -> str:
    r = rng or random.SystemRandom()
    return f"{r.choice(_ADJECTIVES)}-{r.choice(_SURNAMES)}{r.randint(0, 9)}"
