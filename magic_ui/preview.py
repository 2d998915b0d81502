from __future__ import annotations

import base64
import html as html_lib
import logging
import os
import re
from pathlib import Path
from typing import Optional, Union

from magic_ui.models import GeneratedCode, PreviewData, StyleVariant, utc_timestamp

log = logging.getLogger(__name__)

PREVIEWS_DIR = Path(os.getenv("PREVIEWS_DIR", "previews"))

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_STYLESHEET_LINK_RE = re.compile(r"<link[^>]+href=[\"']styles\.css[\"'][^>]*>", re.IGNORECASE)
_SCRIPT_SRC_RE = re.compile(r"<script[^>]+src=[\"']script\.js[\"'][^>]*>\s*</script>", re.IGNORECASE)
_HEX_RE = re.compile(r"#(?:[0-9a-fA-F]{3}){1,2}\b")


def is_safe_preview_id(variant_id: str) -> bool:
    return bool(variant_id) and bool(_SAFE_ID_RE.match(variant_id))


def inline_assets(page_html: str, css: str, js: str) -> str:
    """Swap the styles.css / script.js references for inline tags (append when absent)."""
    style_tag = f"<style>\n{css}\n</style>"
    script_tag = f"<script>\n{js}\n</script>"
    out = page_html or ""

    if _STYLESHEET_LINK_RE.search(out):
        out = _STYLESHEET_LINK_RE.sub(lambda _m: style_tag, out, count=1)
    elif css.strip():
        if re.search(r"</head>", out, re.IGNORECASE):
            out = re.sub(r"</head>", lambda _m: style_tag + "\n</head>", out, count=1, flags=re.IGNORECASE)
        else:
            out = style_tag + "\n" + out

    if _SCRIPT_SRC_RE.search(out):
        out = _SCRIPT_SRC_RE.sub(lambda _m: script_tag, out, count=1)
    elif js.strip():
        if re.search(r"</body>", out, re.IGNORECASE):
            out = re.sub(r"</body>", lambda _m: script_tag + "\n</body>", out, count=1, flags=re.IGNORECASE)
        else:
            out = out + "\n" + script_tag
    return out


def preview_url(variant_id: str) -> str:
    return f"/preview?variant={variant_id}"


def preview_dir(variant_id: str, base_dir: Union[str, Path, None] = None) -> Path:
    return Path(base_dir or PREVIEWS_DIR) / variant_id


def materialize(code: GeneratedCode, variant_id: str, base_dir: Union[str, Path, None] = None) -> PreviewData:
    """Write the variant's files for iframe preview and return a ready (or error) handle."""
    url = preview_url(variant_id)
    if not is_safe_preview_id(variant_id):
        log.warning("preview.materialize: rejected unsafe variant id %r", variant_id)
        return PreviewData(id=variant_id, url=url, status="error", lastUpdated=utc_timestamp())
    target = preview_dir(variant_id, base_dir)
    try:
        target.mkdir(parents=True, exist_ok=True)
        (target / "index.html").write_text(inline_assets(code.html, code.css, code.js), encoding="utf-8")
        (target / "styles.css").write_text(code.css, encoding="utf-8")
        (target / "script.js").write_text(code.js, encoding="utf-8")
    except OSError as e:
        log.error("preview.materialize: failed to write preview for %s: %r", variant_id, e)
        return PreviewData(id=variant_id, url=url, status="error", lastUpdated=utc_timestamp())
    log.info("preview.materialize: wrote %s", target)
    return PreviewData(id=variant_id, url=url, status="ready", lastUpdated=utc_timestamp())


def read_preview(variant_id: str, base_dir: Union[str, Path, None] = None) -> Optional[str]:
    if not is_safe_preview_id(variant_id):
        return None
    path = preview_dir(variant_id, base_dir) / "index.html"
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8")


def _first_hex(value: Optional[str], default: str) -> str:
    if not value:
        return default
    m = _HEX_RE.search(value)
    return m.group(0) if m else default


def _relative_luminance(hex_color: str) -> float:
    h = hex_color.lstrip("#")
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    channels = []
    for i in (0, 2, 4):
        c = int(h[i : i + 2], 16) / 255.0
        channels.append(c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4)
    r, g, b = channels
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def thumbnail_svg(style: StyleVariant, width: int = 200, height: int = 150) -> str:
    """Deterministic SVG card (background, accent bar, theme name) as a data URI."""
    colors = style.colors or {}
    background = _first_hex(colors.get("background"), "#ffffff")
    primary = _first_hex(colors.get("primary"), "#2563eb")
    secondary = _first_hex(colors.get("secondary") or colors.get("accent"), primary)
    text_color = "#ffffff" if _relative_luminance(background) < 0.4 else "#111827"
    label = html_lib.escape(style.name[:24])
    svg = (
        f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">'
        f'<defs><linearGradient id="g" x1="0%" y1="0%" x2="100%" y2="0%">'
        f'<stop offset="0%" stop-color="{primary}"/><stop offset="100%" stop-color="{secondary}"/>'
        f"</linearGradient></defs>"
        f'<rect width="{width}" height="{height}" fill="{background}"/>'
        f'<rect x="16" y="16" width="{width - 32}" height="12" rx="6" fill="url(#g)"/>'
        f'<text x="{width // 2}" y="{height // 2 + 6}" fill="{text_color}" text-anchor="middle" '
        f'font-family="system-ui, sans-serif" font-size="16">{label}</text>'
        f"</svg>"
    )
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"
