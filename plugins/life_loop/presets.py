"""
Universe Presets

Each preset is a grid size, a B/S rule, and a starting density known to
give a lively soup. "classic" matches the default 64x64 Conway universe.
"""

from .universe import Universe

PRESETS = {
    "classic": {
        "name": "Conway's Life",
        "description": "B3/S23 on a 64x64 torus, half the cells alive",
        "width": 64, "height": 64,
        "rule": "B3/S23", "density": 0.5,
    },
    "small": {
        "name": "Conway (small)",
        "description": "32x32 Conway soup, fits any terminal",
        "width": 32, "height": 32,
        "rule": "B3/S23", "density": 0.35,
    },
    "highlife": {
        "name": "HighLife",
        "description": "Self-replicating patterns (B36/S23)",
        "width": 64, "height": 64,
        "rule": "B36/S23", "density": 0.35,
    },
    "day_night": {
        "name": "Day & Night",
        "description": "Symmetric rule, dense blobs (B3678/S34678)",
        "width": 64, "height": 64,
        "rule": "B3678/S34678", "density": 0.5,
    },
    "seeds": {
        "name": "Seeds",
        "description": "Explosive growth, nothing survives (B2/S)",
        "width": 64, "height": 64,
        "rule": "B2/S", "density": 0.05,
    },
}

PRESET_ORDER = ["classic", "small", "highlife", "day_night", "seeds"]


def get_preset(name):
    """Get a preset by name. Returns None if not found."""
    return PRESETS.get(name)


def list_presets():
    """Return list of (key, name, description) for presets."""
    return [(k, PRESETS[k]["name"], PRESETS[k]["description"])
            for k in PRESET_ORDER if k in PRESETS]


def build_universe(name, width=None, height=None, rng=None):
    """Create a seeded Universe from a preset, optionally resized."""
    p = get_preset(name)
    if p is None:
        raise ValueError(f"Unknown preset: {name}")
    return Universe.new(
        width=width or p["width"],
        height=height or p["height"],
        density=p["density"],
        rule=p["rule"],
        rng=rng,
    )
