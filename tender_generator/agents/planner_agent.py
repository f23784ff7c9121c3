import logging
import re
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from .base_agent import AgentBase
from ..models.tender_models import PlanSection, Requirement, SectionOutline, TenderPlan
from ..utils.exceptions import ParseError
from ..utils.parsing import extract_json_object

logger = logging.getLogger(__name__)

DEFAULT_EVALUATION_CRITERIA = [
    "Technical merit",
    "Past performance",
    "Cost effectiveness",
    "Quality management",
    "Timeline feasibility",
]
COMPANY_CONTEXT_LIMIT = 1000
MIN_SECTIONS = 3

STANDARD_SECTIONS = [
    ("Executive Summary", "Overview of your proposal highlighting key strengths and benefits"),
    ("Company Profile", "History, qualifications, and relevant experience of your organization"),
    ("Technical Proposal", "Technical details of your proposed solution or approach"),
    ("Project Timeline", "Proposed schedule, milestones, and delivery dates"),
    ("Cost Proposal", "Detailed pricing, cost breakdown, and payment terms"),
    ("Quality Assurance", "Approach to quality control and risk management"),
]


def format_category_title(category: str) -> str:
    """'risk_management' / 'riskManagement' -> 'Risk Management'."""
    spaced = re.sub(r"[_-]", " ", category)
    spaced = re.sub(r"([A-Z])", r" \1", spaced)
    return " ".join(word[:1].upper() + word[1:].lower() for word in spaced.split())


def _custom_section(prompt: str) -> PlanSection:
    return PlanSection(
        title="Custom Requirements",
        description=f"Addressing specific requirements from the prompt: {prompt}",
    )


def default_plan(prompt: Optional[str] = None) -> TenderPlan:
    """Plan used when there are no requirements at all."""
    sections = [PlanSection(title=title, description=description) for title, description in STANDARD_SECTIONS]
    if prompt:
        sections.append(_custom_section(prompt))
    return TenderPlan(sections=sections, requirements=[], evaluation_criteria=DEFAULT_EVALUATION_CRITERIA)


def derived_plan(requirements: Sequence[Requirement], prompt: Optional[str] = None) -> TenderPlan:
    """
    One section per requirement category, in first-seen order, topped up with
    standard sections when fewer than three result.
    """
    by_category: Dict[str, List[str]] = {}
    for requirement in requirements:
        by_category.setdefault(requirement.category, []).append(requirement.description)

    sections = [
        PlanSection(
            title=format_category_title(category),
            description=f"This section addresses requirements related to {category}",
            requirements=descriptions,
        )
        for category, descriptions in by_category.items()
    ]
    if len(sections) < MIN_SECTIONS:
        sections += [
            PlanSection(title="Executive Summary",
                        description="Overview of your proposal highlighting key strengths and benefits"),
            PlanSection(title="Technical Approach",
                        description="Details of the proposed technical solution",
                        requirements=[r.description for r in requirements]),
            PlanSection(title="Experience and Qualifications",
                        description="Company experience, qualifications, and past performance"),
        ]
    if prompt:
        sections.append(_custom_section(prompt))
    return TenderPlan(sections=sections, requirements=list(requirements),
                      evaluation_criteria=DEFAULT_EVALUATION_CRITERIA)


def plan_from_outline(outline: Sequence[SectionOutline], requirements: Sequence[Requirement]) -> TenderPlan:
    """Builds a plan from a caller-supplied outline without asking the model."""
    all_descriptions = [r.description for r in requirements]
    sections = [
        PlanSection(
            title=item.title,
            description=item.query or "",
            requirements=item.requirements if item.requirements is not None else all_descriptions,
            query=item.query,
        )
        for item in outline
    ]
    return TenderPlan(sections=sections, requirements=list(requirements),
                      evaluation_criteria=DEFAULT_EVALUATION_CRITERIA)


class PlannerAgent(AgentBase):
    agent_name = "PlannerAgent"

    DEFAULT_PROMPTS = {
        "plan_generation": """Create a detailed plan for a tender document based on the following information:
{user_prompt}
Requirements:
{requirements}
{company_context}{additional_context}
Guidelines:
1. Create 3-7 main sections that would make a complete, winning tender
2. For each section, provide a title and brief description
3. Assign relevant requirements to each section
4. Identify evaluation criteria that will be used to judge this tender

Return your response as a JSON object with a "sections" array of objects containing "title", "description",
"requirements" (array of requirement IDs) and "relevantDocuments" (empty array), and an "evaluationCriteria"
array listing criteria that will be used to evaluate the tender. Example format:
{{
  "plan": {{
    "sections": [
      {{
        "title": "Executive Summary",
        "description": "Overview of the proposed solution and key benefits",
        "requirements": ["req-1", "req-2"],
        "relevantDocuments": []
      }}
    ],
    "evaluationCriteria": ["Technical merit (40%)", "Past performance (30%)", "Cost (30%)"]
  }}
}}"""
    }

    def _build_prompt(self, prompt: Optional[str], requirements: Sequence[Requirement],
                      company_context: Optional[str], additional_context: Optional[str]) -> str:
        requirement_lines = "\n".join(
            f"{i}. ({r.id}) [{r.priority.upper()}] [{r.category}] {r.description}"
            for i, r in enumerate(requirements, start=1)
        )
        company_summary = ""
        if company_context:
            limited = company_context[:COMPANY_CONTEXT_LIMIT]
            if len(company_context) > COMPANY_CONTEXT_LIMIT:
                limited += "..."
            company_summary = f"\nCompany information summary: {limited}\n"
        return self._render(
            "plan_generation",
            user_prompt=f"User's Prompt: {prompt}\n" if prompt else "",
            requirements=requirement_lines,
            company_context=company_summary,
            additional_context=f"\nAdditional Context:\n{additional_context}\n" if additional_context else "",
        )

    def _parse_plan(self, response: str, requirements: Sequence[Requirement]) -> TenderPlan:
        data = extract_json_object(response)
        if isinstance(data.get("plan"), dict):
            data = data["plan"]
        if not isinstance(data.get("sections"), list) or not data["sections"]:
            raise ParseError("Plan has no sections.", raw_output=response)

        by_id = {r.id: r.description for r in requirements}
        sections = []
        try:
            for raw in data["sections"]:
                section = PlanSection.model_validate(raw)
                resolved = [by_id.get(ref, ref) for ref in section.requirements]
                sections.append(section.model_copy(update={"requirements": resolved}))
            criteria = data.get("evaluationCriteria") or data.get("evaluation_criteria") or DEFAULT_EVALUATION_CRITERIA
            return TenderPlan(sections=sections, requirements=list(requirements), evaluation_criteria=criteria)
        except ValidationError as e:
            raise ParseError(f"Plan failed validation: {e.error_count()} errors.", raw_output=response) from e

    async def create_plan(self, prompt: Optional[str], requirements: Sequence[Requirement],
                          company_context: Optional[str] = None,
                          additional_context: Optional[str] = None) -> TenderPlan:
        """Never raises; falls back to the default or derived plan."""
        if not requirements:
            logger.info(f"{self.agent_name}: No requirements available; using the default plan.")
            return default_plan(prompt)

        planning_prompt = self._build_prompt(prompt, requirements, company_context, additional_context)
        try:
            response = await self._generate(planning_prompt)
            plan = self._parse_plan(response, requirements)
            logger.info(f"{self.agent_name}: Created plan with {len(plan.sections)} sections.")
            return plan
        except ParseError as e:
            logger.warning(f"{self.agent_name}: Could not use planner output ({e}); deriving plan from requirements.")
        except Exception as e:
            logger.warning(f"{self.agent_name}: Plan generation failed ({e.__class__.__name__}: {e}); deriving plan from requirements.")
        return derived_plan(requirements, prompt)
