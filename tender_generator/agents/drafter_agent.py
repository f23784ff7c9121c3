import logging
import re
from typing import List, Optional, Sequence

from .base_agent import AgentBase
from ..models.document_models import MEDIA_TYPES, Attachment, CompanyDocument, SearchResult
from ..models.tender_models import CompanyInfo, ComplianceResult, PlanSection

logger = logging.getLogger(__name__)

MAX_EXCERPTS = 7
EXCERPT_CHARS = 1500
PROFILE_CHARS = 2000

_NAME_PATTERNS = [
    re.compile(r"company\s+name[\s:]+([^\n]+)", re.IGNORECASE),
    re.compile(r"name[\s:]+([^\n]+)", re.IGNORECASE),
    re.compile(r"^(.+?)(?:\n|$)"),
]


def extract_company_info(company_docs: Sequence[CompanyDocument]) -> CompanyInfo:
    """
    Derives the company name, acronym and profile text from company documents.

    A document titled like a profile ('profile', 'about', 'company') is
    preferred over the first document.
    """
    if not company_docs:
        logger.info("No company documents available, using default company info")
        return CompanyInfo()

    profile_doc = next(
        (doc for doc in company_docs
         if any(word in doc.title.lower() for word in ("profile", "about", "company"))),
        company_docs[0],
    )
    profile = profile_doc.content or ""
    info = CompanyInfo(profile=profile)

    for pattern in _NAME_PATTERNS:
        match = pattern.search(profile)
        if match and match.group(1).strip():
            name = match.group(1).strip()
            acronym = "".join(word[0] for word in name.split()).upper()
            if len(acronym) < 2:
                acronym = name[:3].upper()
            info = CompanyInfo(name=name, acronym=acronym, profile=profile)
            break

    logger.info(f"Extracted company info - Name: {info.name}, Acronym: {info.acronym}")
    return info


def fallback_content(title: str) -> str:
    return f"# {title}\n\nUnable to generate content due to an error. Please try again."


class DrafterAgent(AgentBase):
    agent_name = "DrafterAgent"

    DEFAULT_PROMPTS = {
        "section_draft": """Write a comprehensive tender section titled "{title}" based on the following information.
{description}
{documents}
{requirements}
{company}{company_context}{additional_context}{previous_draft}{feedback}
Guidelines:
1. The section should be well-structured, professional, and persuasive
2. Address all the requirements relevant to this section
3. Use specific details from the documents as evidence
4. Highlight capabilities, experiences, and qualifications
5. Use strong, clear language appropriate for a formal tender
6. Format the output in markdown with appropriate headings, lists, and emphasis
7. Ensure the content is substantive and detailed (minimum 400 words)
{revision_guideline}
Write the section in a way that would impress evaluators and demonstrate a clear understanding of the requirements.""",
        "section_creative": """Write a professional and persuasive tender section titled "{title}".
{description}
Since no specific details are available, create plausible content for this section that would:
1. Demonstrate understanding of standard tender requirements in this area
2. Highlight generic company strengths and capabilities
3. Include professional language and formatting appropriate for formal tenders
4. Suggest specific approaches, methodologies, or solutions
5. Format the output in markdown with proper headings, lists, and structure

The section should be detailed enough to be convincing (at least 300-500 words) but must not include made-up specific facts or claims.""",
    }

    @staticmethod
    def _is_creative(section: PlanSection, company_info: Optional[CompanyInfo], company_context: Optional[str],
                     additional_context: Optional[str], relevant_docs: Sequence[SearchResult],
                     previous_content: Optional[str]) -> bool:
        has_profile = bool(company_info and company_info.profile)
        return not (relevant_docs or section.requirements or has_profile or company_context
                    or additional_context or previous_content)

    @staticmethod
    def _order_excerpts(relevant_docs: Sequence[SearchResult]) -> List[SearchResult]:
        company = [d for d in relevant_docs if d.metadata.get("category") == "company"]
        others = [d for d in relevant_docs if d.metadata.get("category") != "company"]
        return (company + others)[:MAX_EXCERPTS]

    def _build_standard_prompt(self, section: PlanSection, company_info: Optional[CompanyInfo],
                               company_context: Optional[str], additional_context: Optional[str],
                               relevant_docs: Sequence[SearchResult], previous_content: Optional[str],
                               previous_feedback: Optional[ComplianceResult]):
        attachments: List[Attachment] = []
        excerpts = []
        for index, doc in enumerate(self._order_excerpts(relevant_docs), start=1):
            if doc.binary_data:
                media_type = MEDIA_TYPES.get(str(doc.metadata.get("file_type", "pdf")).lower(), "application/pdf")
                attachments.append(Attachment(data=doc.binary_data, media_type=media_type, name=doc.title))
            text = doc.content[:EXCERPT_CHARS] + ("..." if len(doc.content) > EXCERPT_CHARS else "")
            excerpts.append(f"Document {index}: {doc.title} (Relevance: {doc.score:.2f}):\n{text}")

        requirements = ""
        if section.requirements:
            requirements = "Requirements:\n" + "\n".join(
                f"{i}. {req}" for i, req in enumerate(section.requirements, start=1))

        company = ""
        if company_info:
            company = f"\nCompany: {company_info.name} ({company_info.acronym})\n"
            if company_info.profile:
                profile = company_info.profile[:PROFILE_CHARS]
                company += f"Company Profile Summary:\n{profile}\n"

        feedback = ""
        if previous_feedback:
            feedback = "\nPrevious Feedback (these issues must be corrected):\n" + "\n".join(
                f"- {issue}" for issue in previous_feedback.issues)
            feedback += "\n\nSuggestions:\n" + "\n".join(f"- {s}" for s in previous_feedback.suggestions) + "\n"

        prompt = self._render(
            "section_draft",
            title=section.title,
            description=f"Section Description: {section.description}\n" if section.description else "",
            documents="\n\n".join(excerpts),
            requirements=requirements,
            company=company,
            company_context=f"\nCompany Context:\n{company_context}\n" if company_context else "",
            additional_context=f"\nAdditional Context:\n{additional_context}\n" if additional_context else "",
            previous_draft=f"\nPrevious Draft:\n{previous_content}\n" if previous_content else "",
            feedback=feedback,
            revision_guideline="8. Improve upon the previous draft, addressing all feedback\n" if previous_content else "",
        )
        return prompt, attachments

    async def draft_section(self, section: PlanSection, company_info: Optional[CompanyInfo] = None,
                            company_context: Optional[str] = None, additional_context: Optional[str] = None,
                            relevant_docs: Sequence[SearchResult] = (),
                            previous_content: Optional[str] = None,
                            previous_feedback: Optional[ComplianceResult] = None) -> str:
        """
        Drafts Markdown content for one plan section. Never raises: once the
        retries are spent a placeholder section is returned instead.
        """
        if self._is_creative(section, company_info, company_context, additional_context,
                             relevant_docs, previous_content):
            logger.info(f"{self.agent_name}: Minimal input for section '{section.title}', using creative generation.")
            prompt = self._render(
                "section_creative",
                title=section.title,
                description=f"Section Description: {section.description}\n" if section.description else "",
            )
            attachments = []
        else:
            prompt, attachments = self._build_standard_prompt(
                section, company_info, company_context, additional_context,
                relevant_docs, previous_content, previous_feedback,
            )

        try:
            content = await self._generate(prompt, attachments)
            if not isinstance(content, str):
                raise TypeError(f"expected text from the model, got {type(content).__name__}")
        except Exception as e:
            logger.error(f"{self.agent_name}: Failed to draft '{section.title}' ({e.__class__.__name__}: {e}). Using placeholder.")
            return fallback_content(section.title)

        logger.info(f"{self.agent_name}: Drafted '{section.title}' ({len(content)} chars).")
        return content
