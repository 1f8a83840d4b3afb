"""
Game enumerations: rarities, mutations and traits of brainrots
"""

# name -> display order, embed colour, emoji
RARITIES = {
    'Common': {'order': 1, 'color': 0x808080, 'emoji': '⚪'},
    'Uncommon': {'order': 2, 'color': 0x00FF00, 'emoji': '🟢'},
    'Rare': {'order': 3, 'color': 0x0099FF, 'emoji': '🔵'},
    'Epic': {'order': 4, 'color': 0x9933FF, 'emoji': '🟣'},
    'Legendary': {'order': 5, 'color': 0xFFAA00, 'emoji': '🟠'},
    'Mythical': {'order': 6, 'color': 0xFF0000, 'emoji': '🔴'},
    'Brainrot God': {'order': 7, 'color': 0xFF00FF, 'emoji': '🌟'},
    'Secret': {'order': 8, 'color': 0x000000, 'emoji': '⚫'},
    'OG': {'order': 9, 'color': 0xFFD700, 'emoji': '👑'},
}

DEFAULT_MUTATION = 'Default'

MUTATIONS = {
    'Default': '⚪',
    'Gold': '🟡',
    'Diamond': '💎',
    'Rainbow': '🌈',
    'Lava': '🌋',
    'Bloodrot': '🩸',
    'Celestial': '✨',
    'Candy': '🍬',
    'Galaxy': '🌌',
    'Yin-Yang': '☯️',
    'Radioactive': '☢️',
}

TRAITS = [
    'Nyan', 'Fire', 'Taco', 'Glitch', 'Bubblegum', 'Rain', 'Snow', 'Starfall',
    'Shark Fin', 'Zombie', 'Matteo Hat', 'Sombrero', 'Crab Claw', 'Fireworks',
    'Witch Hat', 'Lightning', 'Strawberry', 'Meowl', 'Paint', 'Galactic',
    'Explosive', 'Tie', 'Sleepy', 'Brazil', 'UFO', 'Spider', 'Cometstruck',
    'Disco', 'Extinct', 'Skeleton', 'Jackolantern',
]

_RARITY_LOOKUP = {name.casefold(): name for name in RARITIES}
_MUTATION_LOOKUP = {name.casefold(): name for name in MUTATIONS}
_TRAIT_LOOKUP = {name.casefold(): name for name in TRAITS}


def normalize_rarity(value):
    """Canonical rarity name for a case-insensitive input, or None"""
    if value is None:
        return None
    return _RARITY_LOOKUP.get(str(value).strip().casefold())


def normalize_mutation(value):
    if value is None or not str(value).strip():
        return DEFAULT_MUTATION
    return _MUTATION_LOOKUP.get(str(value).strip().casefold())


def normalize_trait(value):
    if value is None:
        return None
    return _TRAIT_LOOKUP.get(str(value).strip().casefold())


def is_valid_rarity(value):
    return normalize_rarity(value) is not None


def is_valid_mutation(value):
    return normalize_mutation(value) is not None


def is_valid_trait(value):
    return normalize_trait(value) is not None


def get_rarity_color(rarity):
    info = RARITIES.get(normalize_rarity(rarity))
    return info['color'] if info else 0x808080


def rarity_order(rarity):
    info = RARITIES.get(normalize_rarity(rarity))
    return info['order'] if info else 0
