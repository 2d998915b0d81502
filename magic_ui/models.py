from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Framework = Literal["vanilla", "react", "vue", "svelte", "next"]
ExportFramework = Literal["vanilla", "react", "vue", "next"]
PreviewStatus = Literal["pending", "generating", "ready", "error"]


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class _Record(BaseModel):
    # Immutable once built; wire format uses camelCase aliases
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_wire(self) -> Dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class UIBrief(_Record):
    description: str
    type: Optional[str] = None
    requirements: List[str] = Field(default_factory=list)


class StyleVariant(_Record):
    id: str
    name: str
    description: str = ""
    theme: str = ""
    colors: Dict[str, str] = Field(default_factory=dict)
    typography: Dict[str, str] = Field(default_factory=dict)
    spacing: Dict[str, str] = Field(default_factory=dict)
    components: Dict[str, str] = Field(default_factory=dict)
    animations: Optional[List[str]] = None
    responsive: Optional[Dict[str, str]] = None


class GeneratedCode(_Record):
    html: str
    css: str = ""
    js: str = ""
    framework: Framework = "vanilla"
    dependencies: List[str] = Field(default_factory=list)
    assets: List[str] = Field(default_factory=list)


class QAOutcome(_Record):
    theme_name: str = Field(alias="themeName")
    qa_score: float = Field(alias="qaScore", ge=0.0, le=1.0)
    accessibility_issues: List[str] = Field(default_factory=list, alias="accessibilityIssues")


class AccessibilityResult(_Record):
    score: float = Field(ge=0.0, le=1.0)
    issues: List[str] = Field(default_factory=list)


class PreviewData(_Record):
    id: str
    url: str
    thumbnail: str = ""
    status: PreviewStatus = "pending"
    last_updated: str = Field(default_factory=utc_timestamp, alias="lastUpdated")


class UIVariant(_Record):
    id: str
    name: str
    description: str = ""
    code: GeneratedCode
    preview: PreviewData
    style: StyleVariant
    qa_score: float = Field(alias="qaScore", ge=0.0, le=1.0)
    accessibility: AccessibilityResult


class ExportOptions(_Record):
    framework: ExportFramework = "vanilla"
    include_package_json: bool = Field(default=True, alias="includePackageJson")
    include_deployment: bool = Field(default=True, alias="includeDeployment")
    include_dev: bool = Field(default=True, alias="includeDev")
    title: Optional[str] = None
    description: Optional[str] = None


class ExportResult(_Record):
    success: bool
    download_url: str = Field(default="", alias="downloadUrl")
    filename: str = ""
    size: int = 0
    files: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class ChatReply(_Record):
    message: str
    suggestions: List[str] = Field(default_factory=list)
