import numpy as np
import pytest
from PIL import Image

from riso_proxy.config import SimulatorSettings
from riso_proxy.processing.buffer import PixelBuffer
from riso_proxy.processing.compositor import CompositionMode
from riso_proxy.processing.halftone import HalftoneMode
from riso_proxy.processing.inks import Ink, parse_inks
from riso_proxy.processing.pipeline import (
    StencilOptions,
    compute_stencil,
    density_maps,
    fit_width,
    options_from_settings,
    render_image,
    separation_preview,
)
from riso_proxy.processing.separation import SeparationMode

PAPER = (245, 240, 232)
BLACK = Ink("Black", (0, 0, 0), angle=0)


def _clean(**kwargs):
    base = dict(misregistration=0.0, grain=0.0, noise=0.0, ink_opacity=1.0, paper=(255, 255, 255))
    base.update(kwargs)
    return StencilOptions(**base)


def test_no_inks_gives_paper_fill(random_buffer):
    out = compute_stencil(random_buffer, StencilOptions(paper=PAPER, misregistration=2, grain=0.3))

    assert (out.width, out.height) == (random_buffer.width, random_buffer.height)
    assert np.all(out.pixels() == PAPER + (255,))


def test_no_inks_transparent_gives_zero_alpha(random_buffer):
    out = compute_stencil(random_buffer, StencilOptions(transparent_background=True))

    assert not out.pixels()[:, 3].any()


def test_transparent_source_prints_nothing():
    buffer = PixelBuffer.blank(12, 12, (20, 40, 60, 0))
    options = _clean(inks=parse_inks("cmyk"), paper=PAPER)

    out = compute_stencil(buffer, options)

    assert np.all(out.pixels() == PAPER + (255,))


def test_white_source_prints_nothing_with_black_ink():
    buffer = PixelBuffer.blank(16, 16, (255, 255, 255, 255))

    out = compute_stencil(buffer, _clean(inks=[BLACK], density=2.0))

    assert np.all(out.pixels() == 255)


def test_black_ink_reproduces_inverted_luminance_in_density():
    grays = np.repeat(np.linspace(0, 255, 16).astype(np.uint8), 4)
    data = np.stack([grays, grays, grays, np.full_like(grays, 255)], axis=1)
    buffer = PixelBuffer(data, 8, 8)

    (density,) = density_maps(buffer, _clean(inks=[BLACK]))

    np.testing.assert_allclose(density, 1.0 - grays / 255.0, atol=1e-5)


@pytest.mark.parametrize("level", [204, 128, 51])
def test_black_ink_print_tracks_inverted_luminance(level):
    size = 60
    buffer = PixelBuffer.blank(size, size, (level, level, level, 255))

    out = compute_stencil(buffer, _clean(inks=[BLACK], dot_size=4))

    # Round dots inscribed in their screen cells cover at most pi/4 of it.
    coverage = 1.0 - out.pixels()[:, 0].mean() / 255.0
    assert coverage == pytest.approx(np.pi / 4 * (1.0 - level / 255.0), abs=0.05)


def test_black_ink_prints_solid_dot_centres_on_black():
    buffer = PixelBuffer.blank(24, 24, (0, 0, 0, 255))

    out = compute_stencil(buffer, _clean(inks=[BLACK], dot_size=4, density=2.0))

    rgba = out.pixels().reshape(24, 24, 4)
    # AM cells are dot_size + 2 wide, so centres sit at 3, 9, 15.
    assert tuple(rgba[9, 9]) == (0, 0, 0, 255)
    assert rgba[..., 0].mean() < 80


def test_darker_sources_print_darker():
    means = []
    for level in (230, 160, 90, 20):
        buffer = PixelBuffer.blank(36, 36, (level, level, level, 255))
        out = compute_stencil(buffer, _clean(inks=[BLACK], dot_size=4))
        means.append(out.pixels()[:, 0].mean())

    assert means == sorted(means, reverse=True)


def test_invert_flips_tones_before_separation():
    buffer = PixelBuffer.blank(4, 4, (255, 255, 255, 255))

    (density,) = density_maps(buffer, _clean(inks=[BLACK], invert=True))

    np.testing.assert_allclose(density, 1.0)


def test_transparent_mode_full_coverage_keeps_ink_color():
    ink = Ink("Teal", (0, 131, 138), angle=0)
    buffer = PixelBuffer.blank(24, 24, ink.rgb + (255,))

    out = compute_stencil(buffer, _clean(inks=[ink], dot_size=4, transparent_background=True))

    rgba = out.pixels().reshape(24, 24, 4)
    assert tuple(rgba[9, 9]) == ink.rgb + (255,)
    assert rgba[0, 0, 3] == 0


def test_seeded_runs_are_byte_identical(random_buffer):
    options = StencilOptions(
        inks=parse_inks("tritone"),
        misregistration=2.0,
        grain=0.2,
        noise=0.2,
        halftone_mode=HalftoneMode.FM,
        separation_mode=SeparationMode.BOLD,
    )

    first = compute_stencil(random_buffer, options, np.random.default_rng(99))
    second = compute_stencil(random_buffer, options, np.random.default_rng(99))

    np.testing.assert_array_equal(first.data, second.data)


@pytest.mark.parametrize("halftone", list(HalftoneMode))
@pytest.mark.parametrize("separation", list(SeparationMode))
@pytest.mark.parametrize("composition", list(CompositionMode))
def test_every_mode_combination_renders(random_buffer, halftone, separation, composition):
    options = StencilOptions(
        inks=parse_inks("cmyk"),
        halftone_mode=halftone,
        separation_mode=separation,
        composition=composition,
        misregistration=1.0,
        grain=0.1,
        noise=0.1,
    )

    out = compute_stencil(random_buffer, options, np.random.default_rng(1))

    assert out.data.dtype == np.uint8
    assert out.data.size == random_buffer.data.size


def test_composition_mode_resolution():
    assert StencilOptions().composition_mode() is CompositionMode.PAPER
    assert StencilOptions(transparent_background=True).composition_mode() is CompositionMode.TRANSPARENT
    explicit = StencilOptions(transparent_background=True, composition=CompositionMode.MULTIPLY)
    assert explicit.composition_mode() is CompositionMode.MULTIPLY


@pytest.mark.parametrize(
    "kwargs",
    [
        {"dot_size": 0},
        {"misregistration": -1},
        {"grain": -0.1},
        {"noise": -0.1},
        {"ink_opacity": 1.5},
    ],
)
def test_invalid_options_are_rejected(random_buffer, kwargs):
    with pytest.raises(ValueError):
        compute_stencil(random_buffer, StencilOptions(**kwargs))


def test_render_image_accepts_rgba_source():
    rgba_source = Image.new("RGBA", (6, 6), color=(120, 140, 200, 180))

    result = render_image(rgba_source, StencilOptions(inks=parse_inks("duotone")))

    assert result.mode == "RGB"
    assert result.size == rgba_source.size


def test_render_image_accepts_palette_source():
    palette_source = Image.new("P", (4, 4))

    result = render_image(palette_source, StencilOptions(inks=parse_inks("cmyk"), transparent_background=True))

    assert result.mode == "RGBA"
    assert result.size == palette_source.size


def test_fit_width_keeps_aspect_ratio():
    img = Image.new("RGB", (400, 200))

    assert fit_width(img, 0) is img
    assert fit_width(img, 500) is img
    assert fit_width(img, 100).size == (100, 50)


def test_separation_preview_has_one_panel_per_ink():
    img = Image.new("RGB", (10, 6), color=(200, 30, 60))
    options = StencilOptions(inks=parse_inks("tritone"))

    preview = separation_preview(img, options)

    assert preview.size == (30, 6)
    assert preview.mode == "RGB"


def _settings(**overrides):
    settings = SimulatorSettings.from_env()
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


def test_options_from_settings_uses_settings_defaults():
    settings = _settings(inks="duotone", dot_size=3.0, paper_color="#ffffff", halftone_mode="fm")

    options = options_from_settings(settings)

    assert [ink.name for ink in options.inks] == ["Fluorescent Pink", "Teal"]
    assert options.dot_size == 3.0
    assert options.paper == (255, 255, 255)
    assert options.halftone_mode is HalftoneMode.FM


def test_options_from_settings_parses_string_overrides():
    options = options_from_settings(
        _settings(),
        {
            "inks": "black,#ff48b0",
            "dot_size": "5",
            "paper": "#000000",
            "separation": "BOLD",
            "transparent": "1",
            "invert": "false",
            "composition": "multiply",
            "noise": "",
        },
    )

    assert len(options.inks) == 2
    assert options.dot_size == 5.0
    assert options.paper == (0, 0, 0)
    assert options.separation_mode is SeparationMode.BOLD
    assert options.transparent_background is True
    assert options.invert is False
    assert options.composition is CompositionMode.MULTIPLY


@pytest.mark.parametrize(
    "overrides",
    [
        {"dot_size": "big"},
        {"halftone": "stochastic"},
        {"inks": "mauve"},
        {"paper": "#12"},
        {"ink_opacity": "2"},
        {"composition": "overlay"},
    ],
)
def test_options_from_settings_rejects_bad_overrides(overrides):
    with pytest.raises(ValueError):
        options_from_settings(_settings(), overrides)
