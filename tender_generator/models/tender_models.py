from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Callable, Dict, List, Literal, Optional

Priority = Literal["high", "medium", "low"]
SectionStatus = Literal["draft", "review", "approved"]


class Requirement(BaseModel):
    id: str = Field(description="Run-local identifier, e.g. 'req-1' or 'req-default-1'")
    description: str = Field(description="The requirement text")
    priority: Priority = Field(default="medium")
    category: str = Field(default="general", description="Topical category, lower case")

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value):
        if isinstance(value, str) and value.strip().lower() in ("high", "medium", "low"):
            return value.strip().lower()
        return "medium"

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        if not isinstance(value, str) or not value.strip():
            return "general"
        return value.strip().lower()


class PlanSection(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(description="Section heading")
    description: str = Field(default="", description="What the section should cover")
    requirements: List[str] = Field(default_factory=list, description="Requirement descriptions assigned to this section")
    relevant_documents: List[str] = Field(default_factory=list, alias="relevantDocuments",
                                          description="Ids of documents to draw context from")
    query: Optional[str] = Field(default=None, description="Retrieval query; defaults to title and description")

    @property
    def search_query(self) -> str:
        if self.query:
            return self.query
        return f"{self.title}. {self.description}".strip()


class TenderPlan(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sections: List[PlanSection] = Field(description="Ordered list of sections to draft")
    requirements: List[Requirement] = Field(default_factory=list)
    evaluation_criteria: List[str] = Field(default_factory=list, alias="evaluationCriteria")


class TenderSection(BaseModel):
    id: str
    title: str
    content: str = ""
    requirements: List[str] = Field(default_factory=list)
    status: SectionStatus = "draft"


class ComplianceChecklist(BaseModel):
    requirements: List[str] = Field(default_factory=list)
    checklist: Dict[str, bool] = Field(default_factory=dict)

    def register(self, descriptions: List[str]) -> None:
        for description in descriptions:
            if description not in self.checklist:
                self.requirements.append(description)
                self.checklist[description] = False

    def mark_satisfied(self, description: str) -> None:
        # Entries only ever move from False to True.
        if description in self.checklist:
            self.checklist[description] = True


class TenderDocument(BaseModel):
    id: str
    title: str
    sections: List[TenderSection] = Field(default_factory=list)
    compliance: ComplianceChecklist = Field(default_factory=ComplianceChecklist)


class ComplianceResult(BaseModel):
    passed: bool
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class CompanyInfo(BaseModel):
    name: str = "Your Company"
    acronym: str = "YC"
    profile: str = ""


class SectionOutline(BaseModel):
    title: str
    query: Optional[str] = None
    requirements: Optional[List[str]] = None


class GenerationOptions(BaseModel):
    title: str = Field(description="Title of the tender response")
    prompt: Optional[str] = Field(default=None, description="Free-form instructions from the user")
    sections: Optional[List[SectionOutline]] = Field(default=None, description="Caller-supplied outline; skips planning")
    company_context: Optional[str] = None
    additional_context: Optional[str] = None
    max_iterations: int = Field(default=2, ge=1)
    on_progress: Optional[Callable[[str], None]] = Field(default=None, exclude=True)


class GenerationState(str, Enum):
    IDLE = "idle"
    RETRIEVING = "retrieving"
    ANALYZING = "analyzing"
    PLANNING = "planning"
    DRAFTING = "drafting"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


class GenerationStats(BaseModel):
    total_time_ms: int = 0
    agent_calls: Dict[str, int] = Field(default_factory=dict)
    iterations: Dict[str, int] = Field(default_factory=dict)


class GenerationResult(BaseModel):
    success: bool
    tender: Optional[TenderDocument] = None
    message: Optional[str] = None
    error: Optional[str] = Field(default=None, description="Exception class name for failed runs")
    state: GenerationState = GenerationState.COMPLETED
    stats: GenerationStats = Field(default_factory=GenerationStats)
