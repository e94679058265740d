import time
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProjectMetadata(BaseModel):
    version: int = Field(1, description="Schema version")
    id: str = Field(..., description="Project identifier (UUID)")
    title: str = Field(..., min_length=1)
    author: str = Field("")
    created: datetime = Field(default_factory=datetime.now)
    modified: datetime = Field(default_factory=datetime.now)

    publication_date: Optional[str] = None
    notes: Optional[str] = None
    total_pages: int = Field(0, ge=0)
    source_type: Optional[Literal["PDF", "Images"]] = None
    preprocessed: bool = False
    ocr_engine: Optional[str] = None
    enhanced: bool = False
    custom: Dict[str, Any] = Field(default_factory=dict)

    def mark_modified(self) -> None:
        self.modified = datetime.now()

    @property
    def display_info(self) -> str:
        info = f"{self.title} by {self.author}"
        if self.publication_date:
            info += f" ({self.publication_date})"
        if self.total_pages:
            info += f" - {self.total_pages} pages"
        return info


class OCRResultMetadata(BaseModel):
    """Sidecar written next to each ocr/<engine>/page_NNN.txt."""
    model_config = ConfigDict(populate_by_name=True)

    confidence: float = Field(0.0, ge=0.0, le=1.0)
    language: str = "unknown"
    processing_time: float = Field(0.0, ge=0.0, alias="processingTime")
    engine: str
    regions_count: int = Field(0, ge=0, alias="regionsCount")
    timestamp: float = Field(default_factory=time.time)


class PageSelection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index: int = Field(..., ge=0)
    selected_engine: Optional[str] = Field(None, alias="selectedEngine")
    enhanced: bool = False


class PageSelections(BaseModel):
    """Per-page choices that cannot be derived from artifact files."""
    version: int = Field(1, description="Schema version")
    pages: List[PageSelection] = Field(default_factory=list)

    def by_index(self) -> Dict[int, PageSelection]:
        return {p.index: p for p in self.pages}
