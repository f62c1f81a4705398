from __future__ import annotations

import logging
from dataclasses import asdict, fields, replace

from flask import Flask, jsonify, request

from .config import SETTINGS, configure_logging
from .infrastructure.cache import CACHE, last_good_png, remember_last_good, render_key
from .infrastructure.network import FETCHER, decode_image, resolve_source_url
from .infrastructure.responses import encode_png, send_png_bytes
from .processing.inks import catalog
from .processing.pipeline import (
    fit_width,
    options_from_settings,
    render_image,
    seeded_rng,
    separation_preview,
)

APP_VERSION = "1.0.0"

RENDER_PARAMS = (
    "inks",
    "dot_size",
    "misregistration",
    "grain",
    "density",
    "ink_opacity",
    "paper",
    "halftone",
    "separation",
    "noise",
    "transparent",
    "invert",
    "composition",
)

log = logging.getLogger("riso-proxy")

__all__ = ["APP_VERSION", "app", "application", "create_app", "resolve_source_url"]


def _render_overrides(args) -> dict:
    return {key: args[key] for key in RENDER_PARAMS if args.get(key) not in (None, "")}


def _coerce(field_type, raw_value):
    if field_type in (bool, "bool"):
        if isinstance(raw_value, bool):
            return raw_value
        return str(raw_value).strip().lower() in {"1", "true", "yes", "on"}
    if field_type in (int, "int"):
        return int(raw_value)
    if field_type in (float, "float"):
        return float(raw_value)
    return str(raw_value)


def create_app() -> Flask:
    configure_logging()
    app = Flask(__name__)

    def render_png(src, overrides: dict, seed) -> bytes:
        options = options_from_settings(SETTINGS, overrides)
        out = render_image(fit_width(src, SETTINGS.max_width), options, seeded_rng(SETTINGS, seed))
        data = encode_png(out)
        remember_last_good(data)
        return data

    @app.route("/riso-image", methods=["GET"])
    def riso_image():
        overrides = _render_overrides(request.args)
        seed = request.args.get("seed")
        try:
            options_from_settings(SETTINGS, overrides)
            seeded_rng(SETTINGS, seed)
            source_url = resolve_source_url(request.args)
        except ValueError as exc:
            return (f"Bad request: {exc}", 400)

        # Only seeded renders are reproducible, so only those are cached.
        resolved_seed = SETTINGS.seed if seed in (None, "") else int(seed)
        key = None
        if resolved_seed >= 0:
            key = render_key(source_url, {**overrides, "seed": resolved_seed})
            cached = CACHE.get(key)
            if cached:
                return send_png_bytes(cached)

        try:
            src = FETCHER.fetch_source(source_url=source_url)
        except RuntimeError as exc:
            log.warning("Source unavailable: %s", exc)
            cached = last_good_png()
            if cached:
                return send_png_bytes(cached)
            return (f"Source Error: {exc}", 500)

        data = render_png(src, overrides, seed)
        if key:
            CACHE.put(key, data)
        return send_png_bytes(data)

    @app.route("/riso-image", methods=["POST"])
    def riso_image_upload():
        upload = request.files.get("image")
        data = upload.read() if upload else request.get_data()
        if not data:
            return ("Bad request: no image supplied", 400)
        try:
            src = decode_image(data)
            return send_png_bytes(render_png(src, _render_overrides(request.args), request.args.get("seed")))
        except ValueError as exc:
            return (f"Bad request: {exc}", 400)

    @app.route("/raw")
    def raw():
        try:
            src = FETCHER.fetch_source(source_url=resolve_source_url(request.args))
        except (RuntimeError, ValueError) as exc:
            return (str(exc), 500)
        # The untouched source must not become the print fallback.
        return send_png_bytes(encode_png(src))

    @app.route("/separations")
    def separations():
        try:
            options = options_from_settings(SETTINGS, _render_overrides(request.args))
            src = FETCHER.fetch_source(source_url=resolve_source_url(request.args))
        except ValueError as exc:
            return (f"Bad request: {exc}", 400)
        except RuntimeError as exc:
            return (f"Source Error: {exc}", 500)
        return send_png_bytes(encode_png(separation_preview(fit_width(src, SETTINGS.max_width), options)))

    @app.route("/inks")
    def inks():
        return jsonify(catalog())

    @app.route("/health")
    def health():
        return jsonify(
            ok=True,
            version=APP_VERSION,
            inks=SETTINGS.inks,
            halftone_mode=SETTINGS.halftone_mode,
            color_mode=SETTINGS.color_mode,
        )

    @app.route("/settings", methods=["GET", "PATCH"])
    def settings_view():
        if request.method == "GET":
            return jsonify(asdict(SETTINGS))

        payload = request.get_json(silent=True) or {}
        errors: dict[str, str] = {}
        applied: dict[str, object] = {}

        for field in fields(SETTINGS):
            if field.name not in payload:
                continue
            try:
                coerced = _coerce(field.type, payload[field.name])
            except (TypeError, ValueError):
                errors[field.name] = f"Expected {getattr(field.type, '__name__', field.type)}"
                continue
            if field.name in ("halftone_mode", "color_mode"):
                coerced = str(coerced).lower()
            applied[field.name] = coerced

        candidate = replace(SETTINGS, **applied)
        try:
            options_from_settings(candidate)
        except ValueError as exc:
            errors["options"] = str(exc)

        if errors:
            return (
                jsonify(updated={}, errors=errors, settings=asdict(SETTINGS)),
                400,
            )

        for name, value in applied.items():
            setattr(SETTINGS, name, value)
        return jsonify(updated=applied, errors=errors, settings=asdict(SETTINGS))

    @app.route("/")
    def index():
        return jsonify(
            name="riso-proxy",
            version=APP_VERSION,
            endpoints={
                "/riso-image": "Stencil print of the source image (GET) or an uploaded image (POST)",
                "/raw": "Original upstream image",
                "/separations": "Per-ink density maps before halftoning",
                "/inks": "Ink catalog and presets",
                "/settings": "Current settings (GET) or update them (PATCH)",
                "/health": "Service status",
            },
            parameters=list(RENDER_PARAMS) + ["seed", "source_url", "source_base", "source_path"],
        )

    return app


# Module-level application for WSGI servers (``riso_proxy.app:app`` or ``application``).
app = create_app()
application = app
