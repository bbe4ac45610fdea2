"""Built-in system default equivalencies.

Each key may be satisfied by any of its listed variations. Seed these into
the system tier of a writable store with :func:`seed_system_defaults`;
households shadow any of them with their own rules.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.9

DEFAULT_EQUIVALENCIES: dict[str, list[str]] = {
    # Salt
    "salt": [
        "sea salt", "table salt", "kosher salt", "himalayan salt", "pink salt",
        "rock salt", "fine salt", "coarse salt", "celtic salt", "fleur de sel",
    ],
    # Eggs
    "eggs": [
        "egg", "large eggs", "medium eggs", "extra large eggs", "farm eggs",
        "free range eggs", "organic eggs", "brown eggs", "white eggs",
    ],
    "egg whites": ["eggs", "egg white", "liquid egg whites"],
    "egg yolks": ["eggs", "egg yolk"],
    # Sugar
    "sugar": [
        "granulated sugar", "white sugar", "cane sugar", "beet sugar",
        "superfine sugar", "caster sugar",
    ],
    "brown sugar": [
        "light brown sugar", "dark brown sugar", "muscovado sugar",
        "turbinado sugar", "demerara sugar",
    ],
    "powdered sugar": ["confectioners sugar", "icing sugar", "10x sugar"],
    # Flour
    "flour": [
        "all purpose flour", "plain flour", "white flour", "wheat flour",
    ],
    "bread flour": ["strong flour", "high gluten flour"],
    "cake flour": ["soft flour", "pastry flour"],
    # Dairy
    "butter": [
        "unsalted butter", "salted butter", "sweet cream butter",
        "european butter", "cultured butter",
    ],
    "milk": [
        "whole milk", "2 milk", "1 milk", "skim milk", "fat free milk",
        "reduced fat milk",
    ],
    "heavy cream": ["heavy whipping cream", "whipping cream", "double cream"],
    "half and half": ["single cream"],
    "parmesan": ["parmesan cheese", "parmigiano reggiano", "grated parmesan"],
    "mozzarella": [
        "mozzarella cheese", "fresh mozzarella", "shredded mozzarella",
    ],
    # Oils and vinegars
    "oil": ["vegetable oil", "cooking oil", "neutral oil"],
    "olive oil": [
        "extra virgin olive oil", "virgin olive oil", "light olive oil", "evoo",
    ],
    "vinegar": ["white vinegar", "distilled vinegar"],
    "apple cider vinegar": ["cider vinegar", "acv"],
    # Alliums
    "onion": ["yellow onion", "white onion", "brown onion", "spanish onion"],
    "green onions": ["scallions", "spring onions", "green onion"],
    "garlic": ["fresh garlic", "garlic cloves", "garlic bulb", "minced garlic"],
    "garlic powder": ["granulated garlic", "powdered garlic"],
    # Pepper
    "pepper": ["black pepper", "ground pepper", "peppercorns"],
    "black pepper": ["ground black pepper", "cracked black pepper"],
    # Tomatoes
    "tomatoes": ["fresh tomatoes", "ripe tomatoes", "tomato"],
    "canned tomatoes": [
        "diced tomatoes", "crushed tomatoes", "whole tomatoes", "tinned tomatoes",
    ],
    "tomato sauce": ["marinara sauce", "pasta sauce", "passata"],
    # Proteins
    "chicken breast": [
        "boneless chicken breast", "skinless chicken breast", "chicken breasts",
    ],
    "chicken thighs": ["boneless chicken thighs", "chicken thigh"],
    "ground beef": ["hamburger", "minced beef", "beef mince", "ground chuck"],
    "bacon": ["sliced bacon", "thick cut bacon", "smoked bacon"],
    # Grains
    "rice": ["white rice", "long grain rice", "jasmine rice", "basmati rice"],
    "pasta": ["spaghetti", "penne", "rigatoni", "fusilli", "macaroni"],
    # Broths
    "chicken broth": ["chicken stock", "chicken bouillon", "chicken bone broth"],
    "beef broth": ["beef stock", "beef bouillon"],
    "vegetable broth": ["vegetable stock", "veggie broth"],
    # Herbs and spices
    "basil": ["fresh basil", "sweet basil", "dried basil"],
    "parsley": ["fresh parsley", "flat leaf parsley", "curly parsley"],
    "cilantro": ["fresh cilantro", "coriander leaves"],
    "cinnamon": ["ground cinnamon", "cinnamon powder", "ceylon cinnamon"],
    "paprika": ["sweet paprika", "smoked paprika", "hungarian paprika"],
    "cumin": ["ground cumin", "cumin powder"],
    # Baking
    "baking soda": ["sodium bicarbonate", "bicarbonate of soda"],
    "vanilla": ["vanilla extract", "pure vanilla extract", "vanilla essence"],
}


class _WritableStore(Protocol):
    def add_system_edge(
        self,
        subject_name: str,
        equivalent_name: str,
        *,
        confidence: float = ...,
        substitution_ratio: str = ...,
        bidirectional: bool = ...,
        notes: str = ...,
        overwrite: bool = ...,
    ) -> object:
        ...


def seed_system_defaults(
    store: _WritableStore,
    table: dict[str, list[str]] | None = None,
    confidence: float = DEFAULT_CONFIDENCE,
) -> int:
    """Write the default table into a store's system tier.

    Pairs that already exist are left untouched, so re-seeding never undoes
    an administrator's edit of a default rule.

    Returns:
        Number of edges written.
    """
    table = DEFAULT_EQUIVALENCIES if table is None else table
    count = 0
    for subject, variations in table.items():
        for variation in variations:
            written = store.add_system_edge(
                subject,
                variation,
                confidence=confidence,
                substitution_ratio="1:1",
                bidirectional=False,
                notes="built-in default",
                overwrite=False,
            )
            if written is not None:
                count += 1
    logger.info("Seeded %d default equivalencies", count)
    return count
