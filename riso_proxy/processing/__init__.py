"""Stencil print simulation pipeline components."""

from .buffer import PixelBuffer
from .color import hex_to_rgb, luminance, multiply_blend, rgb_to_hex
from .compositor import CompositionMode, composite
from .decompose import decompose, separate_inks
from .halftone import HalftoneMode, HalftoneOptions, apply_halftone, cell_hash
from .inks import PRESETS, RISO_INKS, Ink, parse_inks, resolve_angle
from .noise import apply_grain, apply_scuff
from .pipeline import (
    StencilOptions,
    compute_stencil,
    options_from_settings,
    render_image,
    separation_preview,
)
from .separation import SeparationMode, apply_bold, separate

__all__ = [
    "PixelBuffer",
    "hex_to_rgb",
    "luminance",
    "multiply_blend",
    "rgb_to_hex",
    "CompositionMode",
    "composite",
    "decompose",
    "separate_inks",
    "HalftoneMode",
    "HalftoneOptions",
    "apply_halftone",
    "cell_hash",
    "PRESETS",
    "RISO_INKS",
    "Ink",
    "parse_inks",
    "resolve_angle",
    "apply_grain",
    "apply_scuff",
    "StencilOptions",
    "compute_stencil",
    "options_from_settings",
    "render_image",
    "separation_preview",
    "SeparationMode",
    "apply_bold",
    "separate",
]
