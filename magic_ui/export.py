from __future__ import annotations

import io
import json
import logging
import os
import re
import zipfile
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from magic_ui.models import ExportOptions, ExportResult, UIVariant

log = logging.getLogger(__name__)

# Jinja environment over the bundled export templates
_env = Environment(
    loader=FileSystemLoader(os.path.join(os.path.dirname(__file__), "templates", "export")),
    autoescape=select_autoescape(["html", "xml"]),
    keep_trailing_newline=True,
)

_BODY_RE = re.compile(r"<body[^>]*>([\s\S]*)</body>", re.IGNORECASE)
_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_SELF_CLOSING_RE = re.compile(r"<(\w+)([^>]*?)\s*/>")
_VOID_TAG_RE = re.compile(
    r"<(area|base|br|col|embed|hr|img|input|link|meta|source|track|wbr)\b([^>]*?)\s*(?<!/)>",
    re.IGNORECASE,
)
_SCRIPT_BLOCK_RE = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_ASSET_SCRIPT_RE = re.compile(r"\s*<script[^>]+src=[\"']script\.js[\"'][^>]*>\s*</script>", re.IGNORECASE)


@dataclass
class ExportArchive:
    filename: str
    data: bytes
    files: List[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.data)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    return slug or "variant"


def extract_body(page_html: str) -> str:
    m = _BODY_RE.search(page_html or "")
    return m.group(1) if m else (page_html or "")


def html_to_jsx(markup: str) -> str:
    """Rough HTML -> JSX conversion; enough for static generated markup."""
    out = _SCRIPT_BLOCK_RE.sub("", markup)
    out = _COMMENT_RE.sub("", out)
    out = re.sub(r"\bclass=", "className=", out)
    out = re.sub(r"\bfor=", "htmlFor=", out)
    out = _SELF_CLOSING_RE.sub(r"<\1\2 />", out)
    out = _VOID_TAG_RE.sub(r"<\1\2 />", out)
    return out.strip()


def _package_json(slug: str, variant: UIVariant, framework: str) -> str:
    if framework == "react":
        doc = {
            "name": slug,
            "version": "0.1.0",
            "private": True,
            "dependencies": {"react": "^18.2.0", "react-dom": "^18.2.0", "react-scripts": "5.0.1"},
            "scripts": {
                "start": "react-scripts start",
                "build": "react-scripts build",
                "test": "react-scripts test",
                "eject": "react-scripts eject",
            },
        }
    elif framework == "vue":
        doc = {
            "name": slug,
            "version": "0.0.0",
            "private": True,
            "scripts": {"dev": "vite", "build": "vite build", "preview": "vite preview"},
            "dependencies": {"vue": "^3.3.0"},
            "devDependencies": {"@vitejs/plugin-vue": "^4.4.0", "vite": "^4.4.5"},
        }
    elif framework == "next":
        doc = {
            "name": slug,
            "version": "0.1.0",
            "private": True,
            "scripts": {"dev": "next dev", "build": "next build", "start": "next start", "lint": "next lint"},
            "dependencies": {"next": "14.0.0", "react": "^18", "react-dom": "^18"},
            "devDependencies": {"eslint": "^8", "eslint-config-next": "14.0.0"},
        }
    else:
        doc = {
            "name": slug,
            "version": "1.0.0",
            "description": variant.description,
            "main": "index.html",
            "scripts": {
                "start": "npx serve .",
                "dev": "npx live-server .",
                "build": 'echo "Static build complete"',
                "deploy": "vercel --prod",
            },
            "keywords": ["ui", "frontend", "magic-ui", variant.style.theme or slug],
            "author": "Magic UI",
            "license": "MIT",
            "devDependencies": {"live-server": "^1.2.2", "serve": "^14.2.0"},
        }
    return json.dumps(doc, indent=2) + "\n"


def _framework_files(variant: UIVariant, options: ExportOptions) -> List[Tuple[str, str]]:
    code = variant.code
    body = extract_body(code.html)
    title = options.title or variant.name
    description = options.description or variant.description
    if options.framework == "react":
        return [
            ("src/App.jsx", _env.get_template("App.jsx").render(jsx=html_to_jsx(body))),
            ("src/index.js", _env.get_template("react_index.js").render()),
            ("src/App.css", code.css),
        ]
    if options.framework == "vue":
        return [
            ("src/App.vue", _env.get_template("App.vue").render(body=_SCRIPT_BLOCK_RE.sub("", body).strip(), js=code.js, css=code.css)),
            ("src/main.js", _env.get_template("vue_main.js").render()),
            ("vite.config.js", _env.get_template("vite.config.js").render()),
        ]
    if options.framework == "next":
        return [
            (
                "pages/index.js",
                _env.get_template("next_index.js").render(title=title, description=description, jsx=html_to_jsx(body)),
            ),
            ("pages/_app.js", _env.get_template("next_app.js").render()),
            ("styles/globals.css", code.css),
            ("next.config.js", _env.get_template("next.config.js").render()),
        ]
    return []


def project_files(variant: UIVariant, options: Optional[ExportOptions] = None) -> Dict[str, str]:
    """Return the exported project as an ordered {path: text} mapping."""
    options = options or ExportOptions()
    slug = slugify(variant.name)
    title = options.title or variant.name
    description = options.description or variant.description

    files: Dict[str, str] = {}
    files["index.html"] = _env.get_template("index.html").render(
        title=title,
        description=description,
        body=_ASSET_SCRIPT_RE.sub("", extract_body(variant.code.html)).rstrip().lstrip("\n"),
    )
    files["styles.css"] = variant.code.css
    files["script.js"] = variant.code.js
    files["README.md"] = ""  # rendered last so it can list every file
    if options.include_package_json or options.framework != "vanilla":
        files["package.json"] = _package_json(slug, variant, options.framework)
    for path, text in _framework_files(variant, options):
        files[path] = text
    if options.include_deployment:
        vercel = {"version": 2, "builds": [{"src": "package.json", "use": "@vercel/static-build"}]}
        files["vercel.json"] = json.dumps(vercel, indent=2) + "\n"
        files[".gitignore"] = _env.get_template("gitignore").render()
    if options.include_dev:
        eslint = {"extends": ["eslint:recommended"], "rules": {"no-unused-vars": "warn", "no-console": "warn"}}
        if options.framework == "next":
            eslint["extends"] = ["next/core-web-vitals"]
        files[".eslintrc.json"] = json.dumps(eslint, indent=2) + "\n"
        files["prettier.config.js"] = _env.get_template("prettier.config.js").render()

    files["README.md"] = _env.get_template("README.md").render(
        name=variant.name,
        description=description,
        slug=slug,
        files=list(files),
        style=variant.style,
        framework=options.framework,
        qa_score=variant.qa_score,
        issues=variant.accessibility.issues,
    )
    return files


def _zip(entries: Iterable[Tuple[str, str]]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path, text in entries:
            zf.writestr(path, text)
    return buf.getvalue()


def build_archive(variant: UIVariant, options: Optional[ExportOptions] = None) -> ExportArchive:
    files = project_files(variant, options)
    data = _zip(files.items())
    return ExportArchive(filename=f"{slugify(variant.name)}-export.zip", data=data, files=list(files))


def export_variant(
    variant: UIVariant,
    options: Optional[ExportOptions] = None,
    download_base: str = "/exports",
) -> Tuple[ExportResult, Optional[ExportArchive]]:
    """Build the archive and describe it; failures come back as success=False."""
    try:
        archive = build_archive(variant, options)
    except Exception as e:
        log.exception("export: failed to build archive for %s", variant.id)
        return ExportResult(success=False, error=f"Export failed: {e}"), None
    log.info("export: built %s (%d bytes, %d files)", archive.filename, archive.size, len(archive.files))
    result = ExportResult(
        success=True,
        downloadUrl=f"{download_base.rstrip('/')}/{archive.filename}",
        filename=archive.filename,
        size=archive.size,
        files=archive.files,
    )
    return result, archive


def export_many(variants: Iterable[UIVariant]) -> ExportArchive:
    """Bundle several variants into one archive, one folder per variant."""
    entries: List[Tuple[str, str]] = []
    names: List[str] = []
    for variant in variants:
        folder = slugify(variant.name)
        names.append(variant.name)
        basic = ExportOptions(includePackageJson=False, includeDeployment=False, includeDev=False)
        for path, text in project_files(variant, basic).items():
            entries.append((f"{folder}/{path}", text))
    return ExportArchive(filename="magic-ui-variants.zip", data=_zip(entries), files=names)


def export_variants(
    variants: Iterable[UIVariant],
    download_base: str = "/exports",
) -> Tuple[ExportResult, Optional[ExportArchive]]:
    """Like export_variant, for the multi-variant archive; ``files`` lists variant names."""
    try:
        archive = export_many(variants)
    except Exception as e:
        log.exception("export: failed to build multi-variant archive")
        return ExportResult(success=False, error=f"Multi-variant export failed: {e}"), None
    log.info("export: built %s (%d bytes, %d variants)", archive.filename, archive.size, len(archive.files))
    result = ExportResult(
        success=True,
        downloadUrl=f"{download_base.rstrip('/')}/{archive.filename}",
        filename=archive.filename,
        size=archive.size,
        files=archive.files,
    )
    return result, archive
