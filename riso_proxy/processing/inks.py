from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import DEFAULT_ANGLES
from .color import RGB, hex_to_rgb, rgb_to_hex


@dataclass(frozen=True)
class Ink:
    name: str
    rgb: RGB
    angle: Optional[float] = None

    @classmethod
    def from_hex(cls, name: str, value: str, angle: Optional[float] = None) -> "Ink":
        return cls(name=name, rgb=hex_to_rgb(value), angle=angle)

    @property
    def hex(self) -> str:
        return rgb_to_hex(*self.rgb)


def resolve_angle(ink: Ink, index: int) -> float:
    if ink.angle is not None:
        return float(ink.angle)
    return float(DEFAULT_ANGLES[index % len(DEFAULT_ANGLES)])


# Published drum colors for common riso inks.
RISO_INKS: Dict[str, Ink] = {
    "black": Ink.from_hex("Black", "#000000"),
    "burgundy": Ink.from_hex("Burgundy", "#914e72"),
    "blue": Ink.from_hex("Blue", "#0078bf"),
    "green": Ink.from_hex("Green", "#00a95c"),
    "medium_blue": Ink.from_hex("Medium Blue", "#3255a4"),
    "bright_red": Ink.from_hex("Bright Red", "#f15060"),
    "federal_blue": Ink.from_hex("Federal Blue", "#3d5588"),
    "purple": Ink.from_hex("Purple", "#765ba7"),
    "teal": Ink.from_hex("Teal", "#00838a"),
    "flat_gold": Ink.from_hex("Flat Gold", "#bb8b41"),
    "hunter_green": Ink.from_hex("Hunter Green", "#407060"),
    "red": Ink.from_hex("Red", "#ff665e"),
    "brown": Ink.from_hex("Brown", "#925f52"),
    "yellow": Ink.from_hex("Yellow", "#ffe800"),
    "marine_red": Ink.from_hex("Marine Red", "#d2515e"),
    "orange": Ink.from_hex("Orange", "#ff6c2f"),
    "fluorescent_pink": Ink.from_hex("Fluorescent Pink", "#ff48b0"),
    "light_gray": Ink.from_hex("Light Gray", "#88898a"),
    "cornflower": Ink.from_hex("Cornflower", "#62a8e5"),
    "aqua": Ink.from_hex("Aqua", "#5ec8e5"),
    "white": Ink.from_hex("White", "#ffffff"),
    # Process inks used by the CMYK preset.
    "cyan": Ink.from_hex("Cyan", "#00aeef"),
    "magenta": Ink.from_hex("Magenta", "#ec008c"),
}


PRESETS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "cmyk": ("CMYK", ("cyan", "magenta", "yellow", "black")),
    "duotone": ("Duotone", ("fluorescent_pink", "teal")),
    "tritone": ("Tritone", ("bright_red", "yellow", "medium_blue")),
    "fluoro": ("Fluoro", ("fluorescent_pink", "orange", "blue")),
    "monochrome": ("Monochrome", ("black",)),
}


def preset_inks(key: str) -> List[Ink]:
    try:
        _, keys = PRESETS[key]
    except KeyError as exc:
        raise ValueError(f"Unknown preset: {key}") from exc
    return [RISO_INKS[name] for name in keys]


def parse_inks(spec: str) -> List[Ink]:
    """Resolve an ink description into ``Ink`` values.

    ``spec`` is either a preset name (``"cmyk"``) or a comma separated list
    mixing catalog keys and hex colors, e.g. ``"black,#ff48b0@45"``. A trailing
    ``@angle`` pins the screen angle for that ink. An empty string yields no
    inks.
    """

    spec = spec.strip()
    if not spec:
        return []
    if spec.lower() in PRESETS:
        return preset_inks(spec.lower())

    inks: List[Ink] = []
    for raw in spec.split(","):
        token = raw.strip()
        if not token:
            continue
        angle: Optional[float] = None
        if "@" in token:
            token, raw_angle = token.split("@", 1)
            try:
                angle = float(raw_angle)
            except ValueError as exc:
                raise ValueError(f"Invalid screen angle in {raw!r}") from exc
        key = token.strip().lower()
        if key in RISO_INKS:
            base = RISO_INKS[key]
            inks.append(Ink(name=base.name, rgb=base.rgb, angle=angle))
        elif key.startswith("#"):
            inks.append(Ink.from_hex(key, key, angle=angle))
        else:
            raise ValueError(f"Unknown ink: {token}")
    return inks


def catalog() -> Dict[str, object]:
    return {
        "inks": {key: {"name": ink.name, "color": ink.hex} for key, ink in RISO_INKS.items()},
        "presets": {
            key: {"name": name, "inks": list(keys)} for key, (name, keys) in PRESETS.items()
        },
    }


def ink_rgbs(inks: Sequence[Ink]) -> List[RGB]:
    return [ink.rgb for ink in inks]
