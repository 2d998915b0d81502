"""Canned variant set served when the generation pipeline cannot produce output.

Built once at import so every fallback response is identical.
"""
from __future__ import annotations

from typing import Dict, List, Tuple

from magic_ui.models import AccessibilityResult, GeneratedCode, PreviewData, StyleVariant, UIVariant, utc_timestamp
from magic_ui.preview import preview_url, thumbnail_svg

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <link rel="stylesheet" href="styles.css">
</head>
<body>
    <header class="site-header">
        <nav class="nav" aria-label="Main">
            <span class="brand">{title}</span>
            <a href="#features">Features</a>
            <a href="#contact">Contact</a>
        </nav>
    </header>
    <main>
        <section class="hero">
            <h1>{headline}</h1>
            <p>{tagline}</p>
            <button class="btn" type="button">Get started</button>
        </section>
        <section id="features" class="features">
            <article class="card"><h2>Fast</h2><p>Loads instantly on every device.</p></article>
            <article class="card"><h2>Accessible</h2><p>Semantic markup and readable contrast.</p></article>
            <article class="card"><h2>Responsive</h2><p>Fluid grid from phone to desktop.</p></article>
        </section>
    </main>
    <footer id="contact" class="footer"><p>Built with Magic UI</p></footer>
    <script src="script.js"></script>
</body>
</html>"""

_BASE_CSS = """* { box-sizing: border-box; margin: 0; padding: 0; }
body { font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; line-height: 1.6; min-height: 100vh; }
.nav { display: flex; gap: 1.5rem; align-items: center; padding: 1rem 2rem; }
.brand { font-weight: 700; margin-right: auto; }
.nav a { color: inherit; text-decoration: none; }
.hero { padding: 4rem 2rem; text-align: center; }
.hero h1 { font-size: clamp(2rem, 5vw, 3.5rem); margin-bottom: 1rem; }
.btn { margin-top: 1.5rem; padding: 0.75rem 1.5rem; border: none; cursor: pointer; transition: transform 0.2s ease; }
.btn:hover { transform: translateY(-2px); }
.features { display: grid; grid-template-columns: repeat(auto-fit, minmax(220px, 1fr)); gap: 1.5rem; padding: 2rem; }
.card { padding: 1.5rem; }
.footer { padding: 2rem; text-align: center; }
"""

_BASE_JS = """document.addEventListener('DOMContentLoaded', () => {
    document.querySelectorAll('.btn').forEach((button) => {
        button.addEventListener('click', () => {
            const original = button.textContent;
            button.textContent = 'Loading...';
            button.disabled = true;
            setTimeout(() => {
                button.textContent = original;
                button.disabled = false;
            }, 1500);
        });
    });
});
"""

# name, description, theme, colors, typography, spacing, components, theme css, qa score, a11y score
_THEMES: Tuple[Tuple, ...] = (
    (
        "Retro Futurism",
        "Neon gradients with dark backgrounds and cyberpunk aesthetics",
        "retro-futurism",
        {"primary": "#00ff88", "secondary": "#ff0080", "background": "#0a0a0a", "surface": "#141414", "accent": "#00d4ff"},
        {"heading": "font-bold", "body": "font-medium"},
        {"base": "1rem", "tight": "0.5rem", "loose": "2rem"},
        {"button": "bg-gradient-to-r", "card": "bg-gray-900"},
        "body { background: #0a0a0a; color: #e6fff4; }\n"
        ".hero h1 { color: #00ff88; text-shadow: 0 0 12px rgba(0, 255, 136, 0.6); }\n"
        ".btn { background: linear-gradient(90deg, #00ff88, #ff0080); color: #0a0a0a; border-radius: 999px; font-weight: 700; }\n"
        ".card { background: #141414; border: 1px solid #00ff8855; border-radius: 12px; }\n",
        0.95,
        0.9,
    ),
    (
        "Glass Aurora",
        "Translucent glass effects with aurora-inspired gradients",
        "glass-aurora",
        {"primary": "#667eea", "secondary": "#764ba2", "background": "#1f1b3a", "surface": "#ffffff1a", "accent": "#a5b4fc"},
        {"heading": "font-light", "body": "font-normal"},
        {"base": "1.25rem", "tight": "0.75rem", "loose": "2.5rem"},
        {"button": "bg-white/20", "card": "bg-white/10"},
        "body { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: #ffffff; }\n"
        ".btn { background: rgba(255, 255, 255, 0.2); color: #ffffff; border: 1px solid rgba(255, 255, 255, 0.4); border-radius: 14px; }\n"
        ".card { background: rgba(255, 255, 255, 0.12); backdrop-filter: blur(12px); border-radius: 18px; }\n",
        0.92,
        0.88,
    ),
    (
        "Neo Brutalist",
        "Bold geometric shapes with high contrast and sharp edges",
        "brutalist",
        {"primary": "#000000", "secondary": "#ffffff", "background": "#f5f5f5", "surface": "#ffffff", "accent": "#ffde00"},
        {"heading": "font-black uppercase", "body": "font-bold"},
        {"base": "1.5rem", "tight": "0.25rem", "loose": "3rem"},
        {"button": "bg-black text-white", "card": "bg-white border-4 border-black"},
        "body { background: #f5f5f5; color: #000000; font-weight: 600; }\n"
        ".hero h1 { text-transform: uppercase; letter-spacing: 0.04em; }\n"
        ".btn { background: #000000; color: #ffffff; box-shadow: 6px 6px 0 #ffde00; }\n"
        ".card { background: #ffffff; border: 4px solid #000000; box-shadow: 8px 8px 0 #000000; }\n",
        0.97,
        0.95,
    ),
    (
        "Minimal Mono",
        "Clean monochromatic design with subtle animations",
        "minimal-mono",
        {"primary": "#2d3748", "secondary": "#4a5568", "background": "#ffffff", "surface": "#f7fafc", "accent": "#718096"},
        {"heading": "font-medium", "body": "font-normal"},
        {"base": "1rem", "tight": "0.5rem", "loose": "2rem"},
        {"button": "bg-gray-900 text-white", "card": "bg-white border border-gray-200"},
        "body { background: #ffffff; color: #2d3748; }\n"
        ".btn { background: #2d3748; color: #ffffff; border-radius: 6px; }\n"
        ".card { background: #f7fafc; border: 1px solid #e2e8f0; border-radius: 8px; }\n",
        0.98,
        0.97,
    ),
)


def _build_fallback_variants() -> List[UIVariant]:
    stamp = utc_timestamp()
    variants: List[UIVariant] = []
    for idx, theme in enumerate(_THEMES, start=1):
        name, description, theme_id, colors, typography, spacing, components, theme_css, qa, a11y = theme
        style = StyleVariant(
            id=f"fallback-style-{idx}",
            name=name,
            description=description,
            theme=theme_id,
            colors=colors,
            typography=typography,
            spacing=spacing,
            components=components,
        )
        code = GeneratedCode(
            html=_PAGE.format(title=name, headline=f"Welcome to {name}", tagline=description),
            css=_BASE_CSS + theme_css,
            js=_BASE_JS,
        )
        preview_id = f"fb-v{idx}"
        variants.append(
            UIVariant(
                id=f"fallback-variant-{idx}",
                name=name,
                description=description,
                code=code,
                preview=PreviewData(
                    id=preview_id,
                    url=preview_url(preview_id),
                    thumbnail=thumbnail_svg(style),
                    status="pending",
                    lastUpdated=stamp,
                ),
                style=style,
                qaScore=qa,
                accessibility=AccessibilityResult(score=a11y, issues=[]),
            )
        )
    return variants


FALLBACK_VARIANTS: Tuple[UIVariant, ...] = tuple(_build_fallback_variants())
FALLBACK_BY_ID: Dict[str, UIVariant] = {v.id: v for v in FALLBACK_VARIANTS}


def fallback_variants() -> List[UIVariant]:
    return list(FALLBACK_VARIANTS)
