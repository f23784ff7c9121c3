import logging
import re
from typing import List, Optional, Sequence, Tuple

from .base_agent import AgentBase
from ..models.document_models import Attachment, SourceDocument
from ..models.tender_models import Requirement

logger = logging.getLogger(__name__)

# Lines mentioning any of these are treated as requirements by the heuristic scan.
REQUIREMENT_INDICATORS = [
    "must ", "shall ", "should ", "required ", "requirement ",
    "needs to ", "mandatory ", "essential ", "critical ",
]
HIGH_PRIORITY_WORDS = ("critical", "essential", "mandatory")
LOW_PRIORITY_WORDS = ("should", "preferred")
CATEGORY_KEYWORDS = [
    ("technical", ("technical", "technology", "system")),
    ("compliance", ("compliance", "regulation", "legal")),
    ("timeline", ("delivery", "timeline", "deadline")),
    ("financial", ("cost", "budget", "price")),
]
MIN_LINE_LENGTH = 15

_BLOCK_FIELD = r"(?:ID|DESCRIPTION|PRIORITY|CATEGORY)\s*:"
_ID_RE = re.compile(r"^\s*ID\s*:\s*(.+)$", re.MULTILINE)
_DESCRIPTION_RE = re.compile(r"DESCRIPTION\s*:\s*(.*?)(?=\n\s*" + _BLOCK_FIELD + r"|\Z)", re.DOTALL)
_PRIORITY_RE = re.compile(r"^\s*PRIORITY\s*:\s*(.+)$", re.MULTILINE)
_CATEGORY_RE = re.compile(r"^\s*CATEGORY\s*:\s*(.+)$", re.MULTILINE)
_BULLET_RE = re.compile(r"^(?:[-*•]\s+)+")


def default_requirements(documents: Sequence[SourceDocument] = ()) -> List[Requirement]:
    """The five requirements every tender response is assumed to need."""
    titles = ", ".join(doc.title or "Untitled" for doc in documents)
    first = (f"Provide a comprehensive solution addressing the requirements outlined in {titles}"
             if titles else "Provide a comprehensive solution that meets industry standards")
    return [
        Requirement(id="req-default-1", description=first, priority="high", category="general"),
        Requirement(id="req-default-2", description="Demonstrate relevant experience and qualifications",
                    priority="high", category="qualification"),
        Requirement(id="req-default-3", description="Include a detailed project timeline and delivery schedule",
                    priority="medium", category="timeline"),
        Requirement(id="req-default-4", description="Present a clear cost breakdown and budget allocation",
                    priority="medium", category="financial"),
        Requirement(id="req-default-5", description="Outline the approach to quality assurance and risk management",
                    priority="medium", category="methodology"),
    ]


def _next_free_id(used: set, counter: List[int]) -> str:
    while True:
        counter[0] += 1
        candidate = f"req-{counter[0]}"
        if candidate not in used:
            return candidate


def parse_requirement_blocks(response: str) -> List[Requirement]:
    """
    Parses ``REQ_START ... REQ_END`` blocks. Blocks without a description are
    dropped; missing priority/category default to medium/general.
    """
    blocks = [part.split("REQ_END")[0].strip()
              for part in response.split("REQ_START") if "REQ_END" in part]
    logger.debug(f"Found {len(blocks)} requirement blocks")

    requirements: List[Requirement] = []
    used_ids: set = set()
    counter = [0]
    for block in blocks:
        description_match = _DESCRIPTION_RE.search(block)
        description = " ".join(description_match.group(1).split()) if description_match else ""
        if not description:
            logger.debug("Skipping requirement block without a description")
            continue

        id_match = _ID_RE.search(block)
        req_id = id_match.group(1).strip() if id_match else ""
        if not req_id or req_id in used_ids:
            req_id = _next_free_id(used_ids, counter)
        used_ids.add(req_id)

        priority_match = _PRIORITY_RE.search(block)
        category_match = _CATEGORY_RE.search(block)
        requirements.append(Requirement(
            id=req_id,
            description=description,
            priority=priority_match.group(1) if priority_match else "medium",
            category=category_match.group(1) if category_match else "general",
        ))
    return requirements


def _classify_priority(lowered: str) -> str:
    if any(word in lowered for word in HIGH_PRIORITY_WORDS):
        return "high"
    if any(word in lowered for word in LOW_PRIORITY_WORDS):
        return "low"
    return "medium"


def _classify_category(lowered: str) -> str:
    for category, keywords in CATEGORY_KEYWORDS:
        if any(word in lowered for word in keywords):
            return category
    return "general"


def extract_requirements_from_text(text: str) -> List[Requirement]:
    """Keyword scan used when the model gives nothing usable."""
    requirements: List[Requirement] = []
    seen = set()
    for line in text.splitlines():
        trimmed = _BULLET_RE.sub("", line.strip())
        if len(trimmed) < MIN_LINE_LENGTH or trimmed in seen:
            continue
        lowered = trimmed.lower()
        if not any(indicator in lowered for indicator in REQUIREMENT_INDICATORS):
            continue
        seen.add(trimmed)
        requirements.append(Requirement(
            id=f"req-{len(requirements) + 1}",
            description=trimmed,
            priority=_classify_priority(lowered),
            category=_classify_category(lowered),
        ))
    return requirements


class RequirementExtractor(AgentBase):
    agent_name = "RequirementExtractor"
    MAX_DOCUMENT_CHARS = 10000

    DEFAULT_PROMPTS = {
        "requirement_extraction": """I need to extract requirements from tender documents. For each requirement you find, respond with:
REQ_START
ID: req-[number]
DESCRIPTION: [the requirement text]
PRIORITY: [high, medium, or low]
CATEGORY: [general, technical, compliance, timeline, financial, etc.]
REQ_END

Analyze these documents carefully:

{documents}

Extract at least 5 requirements. If you can't find any, create plausible requirements based on the document type.
DO NOT include any other text or explanations in your response, ONLY the REQ_START/REQ_END blocks."""
    }

    def _build_request(self, documents: Sequence[SourceDocument]) -> Tuple[str, List[Attachment]]:
        sections = []
        attachments: List[Attachment] = []
        for index, doc in enumerate(documents, start=1):
            title = doc.title or "Untitled"
            if doc.binary_data:
                attachments.append(Attachment(data=doc.binary_data, media_type=doc.media_type, name=title))
                sections.append(f"Document {index}: {title}\n[Full document attached as {doc.media_type}]")
                continue
            text = doc.content or "No content available"
            if len(text) > self.MAX_DOCUMENT_CHARS:
                logger.info(f"{self.agent_name}: Truncating '{title}' from {len(text)} to {self.MAX_DOCUMENT_CHARS} chars.")
                text = text[:self.MAX_DOCUMENT_CHARS] + f"\n[Content truncated. Original size: {len(doc.content)} characters]"
            sections.append(f"Document {index}: {title}\n{text}")
        prompt = self._render("requirement_extraction", documents="\n\n".join(sections))
        return prompt, attachments

    async def extract(self, documents: Optional[Sequence[SourceDocument]]) -> List[Requirement]:
        """
        Turns source documents into requirements. Never raises and never
        returns an empty list: model output, then a keyword scan, then defaults.
        """
        documents = list(documents or [])
        if not documents:
            logger.info(f"{self.agent_name}: No documents provided; using default requirements.")
            return default_requirements()

        prompt, attachments = self._build_request(documents)
        requirements: List[Requirement] = []
        try:
            response = await self._generate(prompt, attachments)
            requirements = parse_requirement_blocks(response)
            if not requirements:
                logger.warning(f"{self.agent_name}: Model response held no parsable requirement blocks.")
        except Exception as e:
            logger.warning(f"{self.agent_name}: Requirement extraction call failed ({e.__class__.__name__}: {e}).")

        if requirements:
            logger.info(f"{self.agent_name}: Extracted {len(requirements)} requirements from {len(documents)} documents.")
            return requirements

        combined_text = "\n".join(doc.content for doc in documents if doc.content)
        requirements = extract_requirements_from_text(combined_text)
        if requirements:
            logger.warning(f"{self.agent_name}: Using {len(requirements)} requirements found by keyword scan.")
            return requirements

        logger.warning(f"{self.agent_name}: No requirements found; using defaults.")
        return default_requirements(documents)
