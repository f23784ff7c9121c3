import asyncio
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from .agents.compliance_agent import ComplianceAgent
from .agents.drafter_agent import DrafterAgent, extract_company_info
from .agents.planner_agent import PlannerAgent, plan_from_outline
from .agents.requirement_extractor import RequirementExtractor
from .clients.interfaces import DocumentStore, EmbeddingClient, TextGenerationClient, VectorSearchClient
from .models.document_models import CompanyDocument, SourceDocument
from .models.tender_models import (
    CompanyInfo, GenerationOptions, GenerationResult, GenerationState, GenerationStats,
    PlanSection, TenderDocument, TenderPlan, TenderSection,
)
from .retrieval.retriever import Retriever
from .utils.config_loader import GeneratorSettings
from .utils.exceptions import ConcurrentRunError, NoSourceDocumentsError, TenderGenerationError
from .utils.retry import call_with_retry

logger = logging.getLogger(__name__)


class RunContext:
    """State owned by a single generate() call."""

    def __init__(self, options: GenerationOptions):
        self.options = options
        self.state = GenerationState.IDLE
        self.started = time.monotonic()
        self.tender: Optional[TenderDocument] = None
        self.section_slots: List[Optional[TenderSection]] = []
        self.passed: List[bool] = []
        self.agent_calls: Dict[str, int] = {}
        self.iterations: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def count_call(self, agent: str) -> None:
        async with self._lock:
            self.agent_calls[agent] = self.agent_calls.get(agent, 0) + 1

    async def record_iteration(self, key: str, iteration: int) -> None:
        async with self._lock:
            self.iterations[key] = iteration

    def assemble(self) -> Optional[TenderDocument]:
        """Copies finished sections into the tender in plan order."""
        if self.tender is None:
            return None
        self.tender.sections = [section for section in self.section_slots if section is not None]
        return self.tender

    def stats(self) -> GenerationStats:
        return GenerationStats(
            total_time_ms=int((time.monotonic() - self.started) * 1000),
            agent_calls=dict(self.agent_calls),
            iterations=dict(self.iterations),
        )


def iteration_keys(sections: Sequence[PlanSection]) -> List[str]:
    """Section titles, suffixed with ' (2)', ' (3)' ... when a title repeats."""
    seen: Dict[str, int] = {}
    keys = []
    for section in sections:
        count = seen.get(section.title, 0) + 1
        seen[section.title] = count
        keys.append(section.title if count == 1 else f"{section.title} ({count})")
    return keys


class TenderOrchestrator:
    """
    Runs the tender pipeline: documents, requirements, plan, then every plan
    section drafted and checked concurrently.

    Only one run may be active per instance; everything else about a run
    lives in its RunContext.
    """

    def __init__(self, document_store: DocumentStore, llm_client: TextGenerationClient,
                 embedding_client: Optional[EmbeddingClient] = None,
                 vector_client: Optional[VectorSearchClient] = None,
                 settings: Optional[GeneratorSettings] = None,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
                 extractor: Optional[RequirementExtractor] = None,
                 planner: Optional[PlannerAgent] = None,
                 drafter: Optional[DrafterAgent] = None,
                 compliance_agent: Optional[ComplianceAgent] = None,
                 retriever: Optional[Retriever] = None):
        self.document_store = document_store
        self.settings = settings or GeneratorSettings()
        self.sleep = sleep

        agent_options = dict(
            retry_attempts=self.settings.retry_attempts,
            retry_delay=self.settings.retry_delay,
            sleep=sleep,
            prompts_file_path=self.settings.prompts_file,
        )
        self.extractor = extractor or RequirementExtractor(llm_client, **agent_options)
        self.planner = planner or PlannerAgent(llm_client, **agent_options)
        self.drafter = drafter or DrafterAgent(llm_client, **agent_options)
        self.compliance_agent = compliance_agent or ComplianceAgent(llm_client, **agent_options)
        self.retriever = retriever or Retriever(
            embedding_client, vector_client,
            retry_attempts=self.settings.retry_attempts, retry_delay=self.settings.retry_delay, sleep=sleep,
        )
        self._is_generating = False

    @property
    def is_generating(self) -> bool:
        return self._is_generating

    def _report(self, ctx: RunContext, message: str) -> None:
        logger.info(f"TenderOrchestrator: {message}")
        if ctx.options.on_progress is None:
            return
        try:
            ctx.options.on_progress(message)
        except Exception as e:
            logger.warning(f"TenderOrchestrator: progress callback raised {e.__class__.__name__}: {e}; ignoring.")

    def _set_state(self, ctx: RunContext, state: GenerationState, message: str) -> None:
        logger.debug(f"TenderOrchestrator: {ctx.state.value} -> {state.value}")
        ctx.state = state
        self._report(ctx, message)

    async def _store_call(self, func):
        return await call_with_retry(func, attempts=self.settings.retry_attempts,
                                     delay=self.settings.retry_delay, sleep=self.sleep)

    async def _load_documents(self):
        try:
            source_docs: List[SourceDocument] = list(await self._store_call(self.document_store.get_source_documents))
        except Exception as e:
            logger.error(f"TenderOrchestrator: could not load source documents: {e}")
            source_docs = []
        try:
            company_docs: List[CompanyDocument] = list(await self._store_call(self.document_store.get_company_documents))
        except Exception as e:
            logger.warning(f"TenderOrchestrator: could not load company documents ({e}); continuing without them.")
            company_docs = []
        return source_docs, company_docs

    async def generate(self, options: GenerationOptions) -> GenerationResult:
        """
        Produces a tender for ``options``.

        Raises:
            ConcurrentRunError: If another run is in progress on this instance.
        """
        if self._is_generating:
            raise ConcurrentRunError()
        self._is_generating = True
        ctx = RunContext(options)
        try:
            return await self._run(ctx)
        except NoSourceDocumentsError as e:
            ctx.state = GenerationState.FAILED
            self._report(ctx, str(e))
            return GenerationResult(success=False, tender=None, message=str(e), error=type(e).__name__,
                                    state=GenerationState.FAILED, stats=ctx.stats())
        except Exception as e:
            err = TenderGenerationError("Unexpected error during tender generation",
                                        stage=ctx.state.value, original_exception=e)
            logger.error(str(err), exc_info=True)
            ctx.state = GenerationState.FAILED
            return GenerationResult(success=False, tender=ctx.assemble(), message=str(err),
                                    error=type(e).__name__, state=GenerationState.FAILED, stats=ctx.stats())
        finally:
            self._is_generating = False

    async def _run(self, ctx: RunContext) -> GenerationResult:
        options = ctx.options

        self._set_state(ctx, GenerationState.RETRIEVING, "Loading source and company documents...")
        source_docs, company_docs = await self._load_documents()
        if not source_docs:
            raise NoSourceDocumentsError()

        self._set_state(ctx, GenerationState.ANALYZING,
                        f"Analyzing {len(source_docs)} source documents for requirements...")
        await ctx.count_call("analyzer")
        requirements = await self.extractor.extract(source_docs)
        ctx.tender = TenderDocument(id=str(uuid.uuid4()), title=options.title)
        ctx.tender.compliance.register([r.description for r in requirements])

        self._set_state(ctx, GenerationState.PLANNING, f"Planning tender from {len(requirements)} requirements...")
        plan = await self._plan(ctx, requirements, company_docs)

        self._set_state(ctx, GenerationState.DRAFTING, f"Drafting {len(plan.sections)} sections...")
        await self._draft_all(ctx, plan, source_docs, company_docs)

        self._set_state(ctx, GenerationState.FINALIZING, "Finalizing tender document...")
        tender = ctx.assemble()
        for section, passed in zip(ctx.section_slots, ctx.passed):
            if section is not None and passed:
                for requirement in section.requirements:
                    tender.compliance.mark_satisfied(requirement)

        ctx.state = GenerationState.COMPLETED
        message = f"Generated tender '{tender.title}' with {len(tender.sections)} sections."
        self._report(ctx, message)
        return GenerationResult(success=True, tender=tender, message=message,
                                state=GenerationState.COMPLETED, stats=ctx.stats())

    async def _plan(self, ctx: RunContext, requirements, company_docs: Sequence[CompanyDocument]) -> TenderPlan:
        options = ctx.options
        if options.sections:
            logger.info(f"TenderOrchestrator: using caller-supplied outline of {len(options.sections)} sections.")
            return plan_from_outline(options.sections, requirements)

        company_context = options.company_context or "\n\n".join(doc.content for doc in company_docs if doc.content)
        await ctx.count_call("planner")
        return await self.planner.create_plan(options.prompt, requirements, company_context,
                                              options.additional_context)

    async def _draft_all(self, ctx: RunContext, plan: TenderPlan, source_docs: Sequence[SourceDocument],
                         company_docs: Sequence[CompanyDocument]) -> None:
        company_info = extract_company_info(company_docs)
        keys = iteration_keys(plan.sections)
        ctx.section_slots = [None] * len(plan.sections)
        ctx.passed = [False] * len(plan.sections)

        limit = self.settings.max_concurrent_sections
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def run_section(index: int):
            args = (ctx, index, keys[index], plan.sections[index], source_docs, company_docs, company_info)
            if semaphore is None:
                return await self._generate_section(*args)
            async with semaphore:
                return await self._generate_section(*args)

        tasks = [asyncio.ensure_future(run_section(index)) for index in range(len(plan.sections))]
        try:
            await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            raise

    async def _generate_section(self, ctx: RunContext, index: int, key: str, plan_section: PlanSection,
                                source_docs: Sequence[SourceDocument], company_docs: Sequence[CompanyDocument],
                                company_info: CompanyInfo) -> None:
        options = ctx.options
        total = len(ctx.section_slots)
        self._report(ctx, f"Drafting section {index + 1}/{total}: {plan_section.title}")

        relevant_docs = await self.retriever.retrieve(plan_section, source_docs, company_docs)
        section = TenderSection(id=str(uuid.uuid4()), title=plan_section.title,
                                requirements=list(plan_section.requirements))

        content = None
        verdict = None
        for iteration in range(1, options.max_iterations + 1):
            await ctx.count_call("drafter")
            content = await self.drafter.draft_section(
                plan_section, company_info, options.company_context, options.additional_context,
                relevant_docs, previous_content=content, previous_feedback=verdict,
            )
            await ctx.record_iteration(key, iteration)

            await ctx.count_call("compliance")
            verdict = await self.compliance_agent.check(plan_section.title, content, plan_section.requirements)
            if verdict.passed:
                break
            if iteration < options.max_iterations:
                self._report(ctx, f"Revising section '{plan_section.title}' ({len(verdict.issues)} issues)")

        section.content = content
        section.status = "approved" if verdict.passed else "review"
        ctx.section_slots[index] = section
        ctx.passed[index] = verdict.passed
        self._report(ctx, f"Section '{plan_section.title}' {'approved' if verdict.passed else 'needs review'}")
