"""Alias tables for resolving user words to timer areas, sub-areas and counts."""

# Area synonyms -> area
AREA_ALIASES = {
    # Seasonal Garden
    "sg": "sg",
    "seasonal": "sg",
    "season": "sg",
    "garden": "sg",
    # Forbidden Grove
    "fg": "fg",
    "grove": "fg",
    "gate": "fg",
    "ar": "fg",
    "acolyte": "fg",
    "ripper": "fg",
    "realm": "fg",
    # Game reset
    "reset": "reset",
    "game": "reset",
    "midnight": "reset",
    # Relic Hunter
    "rh": "relic_hunter",
    "rhm": "relic_hunter",
    "relic": "relic_hunter",
    # Balack's Cove
    "cove": "cove",
    "balack": "cove",
    "tide": "cove",
    # Toxic Spill
    "spill": "spill",
    "toxic": "spill",
    "ts": "spill",
}

# Sub-area synonyms -> (area, sub_area)
SUB_AREA_ALIASES = {
    # Seasonal Garden seasons
    "fall": ("sg", "autumn"),
    "autumn": ("sg", "autumn"),
    "spring": ("sg", "spring"),
    "summer": ("sg", "summer"),
    "winter": ("sg", "winter"),
    # Forbidden Grove gate state
    "open": ("fg", "open"),
    "opens": ("fg", "open"),
    "opened": ("fg", "open"),
    "opening": ("fg", "open"),
    "close": ("fg", "close"),
    "closed": ("fg", "close"),
    "closing": ("fg", "close"),
    "shut": ("fg", "close"),
    # Balack's Cove tides
    "low-tide": ("cove", "low"),
    "lowtide": ("cove", "low"),
    "low": ("cove", "low"),
    "mid-tide": ("cove", "mid"),
    "midtide": ("cove", "mid"),
    "mid": ("cove", "mid"),
    "high-tide": ("cove", "high"),
    "hightide": ("cove", "high"),
    "high": ("cove", "high"),
    # Toxic Spill severity ranks
    "archduke": ("spill", "arch"),
    "ad": ("spill", "arch"),
    "archduchess": ("spill", "arch"),
    "aardwolf": ("spill", "arch"),
    "arch": ("spill", "arch"),
    "grandduke": ("spill", "grand"),
    "gd": ("spill", "grand"),
    "grandduchess": ("spill", "grand"),
    "grand": ("spill", "grand"),
    "duchess": ("spill", "duke"),
    "duke": ("spill", "duke"),
    "countess": ("spill", "count"),
    "count": ("spill", "count"),
    "baronness": ("spill", "baron"),
    "baron": ("spill", "baron"),
    "lady": ("spill", "lord"),
    "lord": ("spill", "lord"),
    "heroine": ("spill", "hero"),
    "hero": ("spill", "hero"),
}

# Count words -> repeat count (-1 is unlimited, 0 turns a reminder off)
COUNT_WORDS = {
    "once": 1,
    "one": 1,
    "twice": 2,
    "two": 2,
    "thrice": 3,
    "three": 3,
    "always": -1,
    "forever": -1,
    "unlimited": -1,
    "inf": -1,
    "infinity": -1,
    "never": 0,
    "end": 0,
    "forget": 0,
    "quit": 0,
    "stop": 0,
}

# Shorthands for the remote database time filters (-e <filter>)
FILTER_SHORTHANDS = {
    "3": "3_days",
    "3d": "3_days",
}

# Time filter used for "-e current" when no event is running
DEFAULT_CURRENT_FILTER = "1_month"
