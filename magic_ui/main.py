import json
import logging
import os
import threading
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, Field

from magic_ui import completion_client, preview
from magic_ui.agents import default_registry
from magic_ui.chat import SUGGESTIONS, ChatHandler
from magic_ui.export import ExportArchive, export_variant, export_variants
from magic_ui.fallback_variants import FALLBACK_BY_ID
from magic_ui.models import ChatReply, ExportOptions, UIBrief, UIVariant
from magic_ui.workflow import WorkflowOrchestrator

llm_complete = completion_client.complete
llm_stream_complete = completion_client.stream_complete
llm_status = completion_client.status
llm_probe = completion_client.probe


if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

REGISTRY = default_registry()

_MAX_ARCHIVES = 64
_STORE_LOCK = threading.Lock()
_VARIANTS: Dict[str, UIVariant] = dict(FALLBACK_BY_ID)
_ARCHIVES: Dict[str, ExportArchive] = {}


app = FastAPI(title="Magic UI")

allow_origins = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    content: Dict[str, Any] = {"error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(RequestValidationError)
async def _invalid_request(request: Request, exc: RequestValidationError):
    parts = []
    for e in exc.errors():
        loc = ".".join(str(p) for p in e.get("loc", []) if p != "body") or "(body)"
        parts.append(f"{loc}: {e.get('msg', 'invalid')}")
    return _error(400, "Invalid request body", "; ".join(parts))


@app.exception_handler(Exception)
async def _unexpected(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error", str(exc) or exc.__class__.__name__)


class GenerateRequest(BaseModel):
    description: Optional[str] = Field(default=None, description="What the UI should be")
    type: Optional[str] = Field(default=None, description="Optional UI category, e.g. dashboard")
    requirements: Optional[List[str]] = Field(default=None, description="Optional extra requirements")


class ChatRequest(BaseModel):
    message: Optional[str] = None
    agent: Optional[str] = None
    variantId: Optional[str] = None


class ExportRequest(BaseModel):
    variantId: Optional[str] = None
    options: Optional[ExportOptions] = None


class ExportManyRequest(BaseModel):
    variantIds: Optional[List[str]] = None


class PreviewRequest(BaseModel):
    variantId: Optional[str] = None


def _workflow() -> WorkflowOrchestrator:
    return WorkflowOrchestrator(REGISTRY, llm_complete)


def _chat() -> ChatHandler:
    return ChatHandler(REGISTRY, llm_complete, llm_stream_complete)


def _remember_variants(variants: Iterable[UIVariant]) -> None:
    with _STORE_LOCK:
        for v in variants:
            _VARIANTS[v.id] = v


def _find_variant(variant_id: str) -> Optional[UIVariant]:
    with _STORE_LOCK:
        return _VARIANTS.get(variant_id)


def _variant_context(variant_id: Optional[str]) -> Optional[str]:
    """Describe the selected variant for the chat agent; None when unknown."""
    if not variant_id:
        return None
    variant = _find_variant(variant_id)
    if variant is None:
        log.info("chat: unknown variantId %r; replying without variant context", variant_id)
        return None
    colors = ", ".join(f"{k} {v}" for k, v in variant.style.colors.items())
    context = f"The user is refining the \"{variant.name}\" variant ({variant.style.theme}): {variant.description.rstrip('.')}."
    if colors:
        context += f" Palette: {colors}."
    return context


def _remember_archive(archive: ExportArchive) -> None:
    with _STORE_LOCK:
        _ARCHIVES.pop(archive.filename, None)
        _ARCHIVES[archive.filename] = archive
        while len(_ARCHIVES) > _MAX_ARCHIVES:
            _ARCHIVES.pop(next(iter(_ARCHIVES)))


@app.get("/", response_class=HTMLResponse)
def root() -> str:
    return (
        "<!doctype html><html><body><h1>Magic UI</h1>"
        "<p>POST a description to <code>/generate</code> to get design variants.</p></body></html>"
    )


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/llm/status")
def llm_status_endpoint() -> Dict[str, Any]:
    return llm_status()


@app.get("/llm/probe")
def llm_probe_endpoint() -> Dict[str, Any]:
    return llm_probe()


@app.get("/generate")
def generate_info() -> Dict[str, Any]:
    return {
        "message": "Magic UI Generation API",
        "endpoints": {
            "POST": "Generate UI variants from description",
            "body": {
                "description": "string (required)",
                "type": "string (optional)",
                "requirements": "string[] (optional)",
            },
        },
    }


@app.post("/generate")
def generate_endpoint(req: GenerateRequest):
    description = (req.description or "").strip()
    if not description:
        return _error(400, "Description is required")

    brief = UIBrief(description=description, type=req.type or "general", requirements=req.requirements or [])
    log.info("generate: type=%s requirements=%d", brief.type, len(brief.requirements))
    variants = _workflow().run(brief)
    _remember_variants(variants)
    return JSONResponse(
        {
            "success": True,
            "variants": [v.to_wire() for v in variants],
            "message": f"Generated {len(variants)} UI variants successfully",
        }
    )


@app.get("/chat")
def chat_info() -> Dict[str, Any]:
    agents = []
    for name in REGISTRY.names():
        agent = REGISTRY.lookup(name)
        agents.append({"name": agent.name, "role": agent.role, "goal": agent.goal})
    return {"message": "Magic UI Agent Chat API", "agents": agents}


@app.post("/chat")
def chat_endpoint(req: ChatRequest):
    message = (req.message or "").strip()
    if not message:
        return _error(400, "Message is required")
    text = _chat().reply(message, req.agent, _variant_context(req.variantId))
    reply = ChatReply(message=text, suggestions=list(SUGGESTIONS))
    return JSONResponse({"success": True, "response": reply.to_wire()})


@app.post("/chat/stream")
def chat_stream(req: ChatRequest, request: Request):
    """NDJSON streaming chat: meta, then chunk events, then done."""
    message = (req.message or "").strip()
    if not message:
        return _error(400, "Message is required")
    handler = _chat()
    agent = handler.resolve_agent(message, req.agent)
    context = _variant_context(req.variantId)

    def _iter() -> Iterable[str]:
        meta = {"event": "meta", "request_id": getattr(request.state, "request_id", None), "agent": agent.name}
        yield json.dumps(meta) + "\n"
        try:
            for chunk in handler.stream(message, agent.name, context):
                yield json.dumps({"event": "chunk", "data": chunk}) + "\n"
        except Exception as e:
            log.exception("chat.stream failure")
            yield json.dumps({"event": "error", "data": {"error": str(e)}}) + "\n"
            return
        yield json.dumps({"event": "done", "data": {"suggestions": list(SUGGESTIONS)}}) + "\n"

    return StreamingResponse(_iter(), media_type="application/x-ndjson")


@app.get("/export")
def export_info() -> Dict[str, Any]:
    return {
        "message": "Magic UI Export API",
        "options": {
            "framework": ["vanilla", "react", "vue", "next"],
            "includePackageJson": "boolean (default: true)",
            "includeDeployment": "boolean (default: true)",
            "includeDev": "boolean (default: true)",
        },
        "multi": "POST /export/zip {variantIds: string[]} bundles several variants",
    }


@app.post("/export")
def export_endpoint(req: ExportRequest):
    variant_id = (req.variantId or "").strip()
    if not variant_id:
        return _error(400, "Variant ID is required")
    variant = _find_variant(variant_id)
    if variant is None:
        return _error(404, "Variant not found")

    result, archive = export_variant(variant, req.options or ExportOptions())
    if archive is not None:
        _remember_archive(archive)
    return JSONResponse({"success": result.success, "result": result.to_wire()})


@app.post("/export/zip")
def export_many_endpoint(req: ExportManyRequest):
    """Bundle several stored variants into one archive, one folder per variant."""
    ids = [i.strip() for i in (req.variantIds or []) if i and i.strip()]
    if not ids:
        return _error(400, "Variant IDs are required")
    variants = []
    for variant_id in ids:
        variant = _find_variant(variant_id)
        if variant is None:
            return _error(404, "Variant not found", variant_id)
        variants.append(variant)

    result, archive = export_variants(variants)
    if archive is not None:
        _remember_archive(archive)
    return JSONResponse({"success": result.success, "result": result.to_wire()})


@app.get("/exports/{filename}")
def download_export(filename: str):
    with _STORE_LOCK:
        archive = _ARCHIVES.get(filename)
    if archive is None:
        return _error(404, "Export not found")
    return Response(
        content=archive.data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{archive.filename}"'},
    )


@app.post("/preview")
def create_preview(req: PreviewRequest):
    """Write a stored variant's files to the previews directory."""
    variant_id = (req.variantId or "").strip()
    if not variant_id:
        return _error(400, "Variant ID is required")
    variant = _find_variant(variant_id)
    if variant is None:
        return _error(404, "Variant not found")

    handle = preview.materialize(variant.code, variant.preview.id)
    handle = handle.model_copy(update={"thumbnail": preview.thumbnail_svg(variant.style)})
    _remember_variants([variant.model_copy(update={"preview": handle})])
    status_code = 200 if handle.status == "ready" else 500
    return JSONResponse(status_code=status_code, content={"success": handle.status == "ready", "preview": handle.to_wire()})


@app.get("/preview", response_class=HTMLResponse)
def get_preview(variant: str = "v1"):
    content = preview.read_preview(variant)
    if content is None:
        return JSONResponse(status_code=404, content={"error": "Preview not found", "variant": variant})
    return HTMLResponse(content, headers={"Cache-Control": "no-cache"})
