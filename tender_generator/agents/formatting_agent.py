from ..models.tender_models import TenderDocument, TenderSection
from typing import Optional

STATUS_LABELS = {
    "approved": "Approved",
    "review": "Needs review",
    "draft": "Draft",
}


class FormattingAgent:
    def __init__(self, include_checklist: bool = True):
        # No LLM needed for this agent
        self.include_checklist = include_checklist

    @staticmethod
    def _strip_leading_heading(content: str, title: str) -> str:
        # Drafts often repeat the section title as their own first heading.
        lines = content.strip().splitlines()
        if lines and lines[0].lstrip("#").strip().lower() == title.strip().lower() and lines[0].startswith("#"):
            return "\n".join(lines[1:]).strip()
        return content.strip()

    def _format_section(self, section: TenderSection) -> Optional[str]:
        body = self._strip_leading_heading(section.content or "", section.title)
        if not body:
            return None
        status = STATUS_LABELS.get(section.status, section.status)
        return f"## {section.title}\n\n*Status: {status}*\n\n{body}\n"

    def format_tender_to_markdown(self, tender: TenderDocument) -> str:
        '''
        Formats a TenderDocument into a Markdown string: title, one block per
        section in plan order and, optionally, the compliance checklist.
        '''
        markdown_output = [f"# {tender.title}\n", "---\n"]

        for section in tender.sections:
            formatted = self._format_section(section)
            if formatted:
                markdown_output.append(formatted)

        if self.include_checklist and tender.compliance.requirements:
            satisfied = sum(1 for done in tender.compliance.checklist.values() if done)
            markdown_output.append("## Compliance Checklist\n")
            markdown_output.append(f"{satisfied} of {len(tender.compliance.requirements)} requirements addressed.\n")
            for requirement in tender.compliance.requirements:
                mark = "x" if tender.compliance.checklist.get(requirement) else " "
                markdown_output.append(f"- [{mark}] {requirement}")
            markdown_output.append("")

        return "\n".join(markdown_output)
