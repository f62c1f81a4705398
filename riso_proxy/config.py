import logging
import os
from dataclasses import dataclass
from typing import Tuple


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class SimulatorSettings:
    source_url: str
    port: int
    inks: str
    dot_size: float
    misregistration: float
    grain: float
    density: float
    ink_opacity: float
    paper_color: str
    halftone_mode: str
    color_mode: str
    noise: float
    transparent_background: bool
    invert: bool
    seed: int
    max_width: int
    timeout: float
    retries: int
    cache_ttl: float
    log_level: str

    @classmethod
    def from_env(cls) -> "SimulatorSettings":
        return cls(
            source_url=os.getenv("SOURCE_URL", "http://127.0.0.1:8000/image.png"),
            port=int(os.getenv("PORT", "5600")),
            inks=os.getenv("INKS", "cmyk"),
            dot_size=float(os.getenv("DOT_SIZE", "2")),
            misregistration=float(os.getenv("MISREGISTRATION", "1.5")),
            grain=float(os.getenv("GRAIN", "0.15")),
            density=float(os.getenv("DENSITY", "1.0")),
            ink_opacity=float(os.getenv("INK_OPACITY", "0.85")),
            paper_color=os.getenv("PAPER_COLOR", "#f5f0e8"),
            halftone_mode=os.getenv("HALFTONE_MODE", "am").lower(),
            color_mode=os.getenv("COLOR_MODE", "natural").lower(),
            noise=float(os.getenv("SCUFF_NOISE", "0")),
            transparent_background=_env_flag("TRANSPARENT_BG"),
            invert=_env_flag("INVERT"),
            seed=int(os.getenv("SEED", "-1")),
            max_width=int(os.getenv("MAX_WIDTH", "0")),
            timeout=float(os.getenv("SOURCE_TIMEOUT", "10.0")),
            retries=int(os.getenv("SOURCE_RETRIES", "2")),
            cache_ttl=float(os.getenv("CACHE_TTL", "5")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


SETTINGS = SimulatorSettings.from_env()


# Cream stock used when no paper color is configured.
DEFAULT_PAPER: Tuple[int, int, int] = (245, 240, 232)

WHITE: Tuple[int, int, int] = (255, 255, 255)

# Screen angles handed out by ink position when an ink has none of its own.
DEFAULT_ANGLES: Tuple[float, ...] = (15, 75, 0, 45, 30, 60, 90, 105)


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=SETTINGS.log_level)
    return logging.getLogger("riso-proxy")
