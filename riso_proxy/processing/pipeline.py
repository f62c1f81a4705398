from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import List, Mapping, Optional

import numpy as np
from PIL import Image

from ..config import DEFAULT_PAPER, SETTINGS, SimulatorSettings
from .buffer import PixelBuffer
from .color import RGB, hex_to_rgb
from .compositor import CompositionMode, composite
from .decompose import separate_inks
from .halftone import HalftoneMode, HalftoneOptions, apply_halftone
from .inks import Ink, ink_rgbs, parse_inks, resolve_angle
from .noise import apply_grain, apply_scuff
from .separation import SeparationMode, separate

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StencilOptions:
    inks: List[Ink] = field(default_factory=list)
    dot_size: float = 2.0
    misregistration: float = 0.0
    grain: float = 0.0
    density: float = 1.0
    ink_opacity: float = 0.85
    paper: RGB = DEFAULT_PAPER
    halftone_mode: HalftoneMode = HalftoneMode.AM
    separation_mode: SeparationMode = SeparationMode.NATURAL
    noise: float = 0.0
    transparent_background: bool = False
    invert: bool = False
    composition: Optional[CompositionMode] = None

    def validate(self) -> "StencilOptions":
        if self.dot_size <= 0:
            raise ValueError(f"dot_size must be positive, got {self.dot_size}")
        for name in ("misregistration", "grain", "noise"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if not 0.0 <= self.ink_opacity <= 1.0:
            raise ValueError(f"ink_opacity must be within [0, 1], got {self.ink_opacity}")
        return self

    def composition_mode(self) -> CompositionMode:
        if self.composition is not None:
            return self.composition
        if self.transparent_background:
            return CompositionMode.TRANSPARENT
        return CompositionMode.PAPER


def density_maps(buffer: PixelBuffer, options: StencilOptions) -> List[np.ndarray]:
    source = buffer.inverted() if options.invert else buffer
    maps = separate_inks(source, ink_rgbs(options.inks))
    return separate(maps, options.separation_mode)


def ink_layers(buffer: PixelBuffer, options: StencilOptions, rng: np.random.Generator) -> List[np.ndarray]:
    layers: List[np.ndarray] = []
    for index, (ink, density) in enumerate(zip(options.inks, density_maps(buffer, options))):
        screen = HalftoneOptions(
            dot_size=options.dot_size,
            angle=resolve_angle(ink, index),
            density=options.density,
            mode=options.halftone_mode,
        )
        opacity = apply_halftone(density, buffer.width, buffer.height, screen)
        opacity = apply_scuff(
            opacity,
            buffer.width,
            buffer.height,
            dot_size=options.dot_size,
            noise=options.noise,
            ink_index=index,
        )
        layers.append(apply_grain(opacity, options.grain, rng))
    return layers


def compute_stencil(
    buffer: PixelBuffer,
    options: StencilOptions,
    rng: Optional[np.random.Generator] = None,
) -> PixelBuffer:
    """Render ``buffer`` as a multi-ink stencil print.

    ``rng`` drives the plate misregistration and grain; pass a seeded
    generator for reproducible output.
    """

    options.validate()
    rng = rng if rng is not None else np.random.default_rng()
    started = time.perf_counter()

    layers = ink_layers(buffer, options, rng)
    out = composite(
        layers,
        ink_rgbs(options.inks),
        buffer.width,
        buffer.height,
        misregistration=options.misregistration,
        ink_opacity=options.ink_opacity,
        paper=options.paper,
        mode=options.composition_mode(),
        rng=rng,
    )
    log.debug(
        "Rendered %dx%d with %d inks (%s, %s) in %.3fs",
        buffer.width,
        buffer.height,
        len(options.inks),
        options.halftone_mode.value,
        options.composition_mode().value,
        time.perf_counter() - started,
    )
    return out


def render_image(
    img: Image.Image,
    options: StencilOptions,
    rng: Optional[np.random.Generator] = None,
) -> Image.Image:
    out = compute_stencil(PixelBuffer.from_image(img), options, rng)
    mode = "RGBA" if options.composition_mode() is CompositionMode.TRANSPARENT else "RGB"
    return out.to_image(mode)


def fit_width(img: Image.Image, max_width: int) -> Image.Image:
    if max_width <= 0 or img.width <= max_width:
        return img
    height = max(1, round(img.height * max_width / img.width))
    return img.resize((max_width, height), Image.LANCZOS)


def separation_preview(img: Image.Image, options: StencilOptions) -> Image.Image:
    """Strip of the continuous density maps, one tinted panel per ink."""

    buffer = PixelBuffer.from_image(img)
    maps = density_maps(buffer, options)
    width, height = buffer.width, buffer.height
    strip = Image.new("RGB", (max(1, width * len(maps)), height), options.paper)
    for index, (ink, density) in enumerate(zip(options.inks, maps)):
        panel = composite(
            [density],
            [ink.rgb],
            width,
            height,
            ink_opacity=1.0,
            paper=options.paper,
            mode=CompositionMode.PAPER,
        )
        strip.paste(panel.to_image("RGB"), (index * width, 0))
    return strip


def _parse_flag(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _parse_color(value: object) -> RGB:
    if isinstance(value, tuple):
        return value
    return hex_to_rgb(str(value))


def options_from_settings(
    settings: SimulatorSettings = SETTINGS,
    overrides: Optional[Mapping[str, object]] = None,
) -> StencilOptions:
    """Build pipeline options from ``settings`` plus request-style overrides.

    Override values may be strings (query parameters); they are parsed the
    same way as the matching environment variables. Raises ``ValueError`` on
    anything that does not parse.
    """

    overrides = overrides or {}

    def pick(key: str, default: object) -> object:
        value = overrides.get(key)
        return default if value is None or value == "" else value

    try:
        halftone_mode = HalftoneMode(str(pick("halftone", settings.halftone_mode)).lower())
        separation_mode = SeparationMode(str(pick("separation", settings.color_mode)).lower())
        options = StencilOptions(
            inks=parse_inks(str(pick("inks", settings.inks))),
            dot_size=float(pick("dot_size", settings.dot_size)),
            misregistration=float(pick("misregistration", settings.misregistration)),
            grain=float(pick("grain", settings.grain)),
            density=float(pick("density", settings.density)),
            ink_opacity=float(pick("ink_opacity", settings.ink_opacity)),
            paper=_parse_color(pick("paper", settings.paper_color)),
            halftone_mode=halftone_mode,
            separation_mode=separation_mode,
            noise=float(pick("noise", settings.noise)),
            transparent_background=_parse_flag(pick("transparent", settings.transparent_background)),
            invert=_parse_flag(pick("invert", settings.invert)),
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(str(exc)) from exc

    composition = overrides.get("composition")
    if composition:
        options = replace(options, composition=CompositionMode(str(composition).lower()))
    return options.validate()


def seeded_rng(settings: SimulatorSettings = SETTINGS, seed: Optional[object] = None) -> np.random.Generator:
    value = settings.seed if seed in (None, "") else int(seed)
    return np.random.default_rng(value if value >= 0 else None)
