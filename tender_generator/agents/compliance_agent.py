import logging
from typing import Sequence

from pydantic import ValidationError

from .base_agent import AgentBase
from ..models.tender_models import ComplianceResult
from ..utils.exceptions import ParseError
from ..utils.parsing import extract_json_object

logger = logging.getLogger(__name__)

MANUAL_REVIEW = "Review content manually"


class ComplianceAgent(AgentBase):
    """Checks a drafted section against the requirements assigned to it."""
    agent_name = "ComplianceAgent"

    DEFAULT_PROMPTS = {
        "compliance_check": """Evaluate if the following tender section meets these compliance requirements:

SECTION TITLE: {section_title}

REQUIREMENTS:
{requirements}

SECTION CONTENT:
{content}

For each requirement, determine if the section properly addresses it.
Format your response as a JSON object with:
1. An overall "passed" boolean indicating if all requirements are met
2. An "issues" array listing any requirements that aren't properly addressed, explaining why each fails
3. A "suggestions" array with specific recommendations for improving the content

Example format:
{{
  "passed": false,
  "issues": ["Requirement #2: The section does not mention the required ISO certification"],
  "suggestions": ["Add details about the company's ISO 9001 certification in the Quality Assurance paragraph"]
}}"""
    }

    async def check(self, section_title: str, content: str, requirements: Sequence[str]) -> ComplianceResult:
        """
        Returns the verdict for one section. A section with no requirements
        passes without a model call. Never raises.
        """
        if not requirements:
            return ComplianceResult(passed=True, issues=[], suggestions=[])

        prompt = self._render(
            "compliance_check",
            section_title=section_title,
            requirements="\n".join(f"{i}. {req}" for i, req in enumerate(requirements, start=1)),
            content=content,
        )
        try:
            response = await self._generate(prompt)
        except Exception as e:
            logger.error(f"{self.agent_name}: Error checking compliance for '{section_title}': {e}")
            return ComplianceResult(passed=False, issues=[f"Error evaluating compliance: {e}"],
                                    suggestions=[MANUAL_REVIEW])

        try:
            result = ComplianceResult.model_validate(extract_json_object(response))
        except (ParseError, ValidationError) as e:
            logger.warning(f"{self.agent_name}: Could not parse compliance verdict for '{section_title}' ({e.__class__.__name__}).")
            return ComplianceResult(passed=False,
                                    issues=[f"Failed to parse compliance check results (parse failure: {e.__class__.__name__})"],
                                    suggestions=[MANUAL_REVIEW])

        logger.info(f"{self.agent_name}: '{section_title}' passed={result.passed} with {len(result.issues)} issues.")
        return result
