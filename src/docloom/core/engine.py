"""Engine: sequences ingestion, analysis, validated generation and rendering."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from pathlib import Path

from docloom.agents.cache import ArtifactCache
from docloom.agents.executor import AgentExecutor
from docloom.agents.registry import AgentRegistry, default_search_paths
from docloom.core.config import load_settings
from docloom.core.loop import AnalysisLoop
from docloom.core.repair import RepairLoop, RepairResult
from docloom.errors import AgentExecutionError, AnalysisError, PreconditionError
from docloom.ingest.ingester import DEFAULT_EXTENSIONS, Ingester
from docloom.prompts.builder import build_analysis_user_prompt, build_generation_prompt, estimate_tokens
from docloom.render.renderer import render_html, sidecar_path, write_document
from docloom.templates.registry import TemplateRegistry
from docloom.types.agents import AgentDef
from docloom.types.config import GenerateRequest, Settings
from docloom.types.documents import GenerationAttempt, Template
from docloom.types.messages import AnalysisOutcome, AnalysisStatus, GenerationResult, Message, SystemEvent
from docloom.types.providers import ProviderAdapter
from docloom.validate.validator import validate

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 2000


async def generate(
    request: GenerateRequest,
    *,
    settings: Settings | None = None,
    templates: TemplateRegistry | None = None,
    agents: AgentRegistry | None = None,
    cache: ArtifactCache | None = None,
    executor: AgentExecutor | None = None,
    cwd: str | None = None,
    _provider: ProviderAdapter | None = None,
) -> AsyncIterator[Message]:
    """Generate one document.

    This is the primary SDK entry point.  It yields progress events
    (:class:`SystemEvent`, and ``ToolUse``/``ToolResult`` during agent
    analysis) and finishes with a :class:`GenerationResult`.

    Args:
        request: What to generate and where to write it.
        settings: Resolved settings; loaded from config/env when omitted.
        templates: Template registry; built-ins plus configured directories by default.
        agents: Agent registry; project and user agent directories by default.
        cache: Artifact cache for agent runs; rooted at ``settings.cache_dir`` by default.
        executor: Agent execution engine; built from *agents* and *cache* by default.
        cwd: Project directory used for config and agent discovery.
        _provider: Injected provider for testing (private).

    Raises:
        PreconditionError: Bad request, existing output without ``force``,
            unknown template or agent.
        AnalysisError: The agent analysis ended without a usable answer.
        RepairExhaustedError: No schema-conformant document within the repair budget.
        TransportError: The model could not be reached.
    """
    settings = settings or load_settings(cwd)
    _check_request(request)

    if templates is None:
        templates = TemplateRegistry()
        for directory in settings.template_dirs:
            templates.load_directory(directory)
    template = templates.get(request.template)

    agent: AgentDef | None = None
    if request.agent:
        if agents is None:
            agents = AgentRegistry([*default_search_paths(cwd), *settings.agent_dirs])
        agent = agents.get(request.agent)
        if agent.has_tools and not template.supports_analysis:
            raise PreconditionError(
                f"Template {template.name!r} has no analysis prompts; it cannot drive agent {agent.name!r}"
            )

    cache = cache or ArtifactCache(settings.cache_dir)
    executor = executor or AgentExecutor(agents or AgentRegistry([]), cache)
    adapter = _provider if _provider is not None else _create_provider(settings)

    yield SystemEvent(type="generation_start", data={
        "template": template.name,
        "agent": agent.name if agent else None,
        "model": adapter.model_id,
        "output": str(request.output),
        "dry_run": request.dry_run,
    })

    try:
        outcome: AnalysisOutcome | None = None
        if agent is not None and agent.has_tools:
            async for msg in _analyze(adapter, executor, agent, template, request, settings, cache):
                if isinstance(msg, AnalysisOutcome):
                    outcome = msg
                yield msg
            if outcome is None or outcome.fields is None:
                raise AnalysisError(outcome or AnalysisOutcome(
                    status=AnalysisStatus.FATAL, error="Analysis ended without an outcome",
                ))
            repaired = await _revalidate(adapter, template, request, settings, outcome)
            prompt_tokens = 0
        else:
            sources: list[str | Path] = list(request.sources)
            extensions = DEFAULT_EXTENSIONS
            if agent is not None:
                run = await executor.run(agent, request.sources[0], request.params)
                if not run.ok:
                    raise AgentExecutionError(f"Agent {agent.name!r} {run.error}")
                yield SystemEvent(type="agent_run", data={"agent": agent.name, "output": str(run.output_path)})
                sources = [run.output_path]
                extensions = (*DEFAULT_EXTENSIONS, ".json")

            content = await asyncio.to_thread(Ingester(extensions).ingest, sources)
            prompt = build_generation_prompt(content, template)
            prompt_tokens = estimate_tokens(prompt)
            yield SystemEvent(type="prompt_built", data={
                "tokens": prompt_tokens,
                "characters": len(prompt),
                "preview": prompt[:PREVIEW_CHARS] if request.dry_run else None,
            })
            repaired = await RepairLoop(
                adapter, max_repairs=request.max_repairs, max_tokens=settings.max_tokens,
            ).run(prompt, template.schema)

        for attempt in repaired.attempts:
            yield SystemEvent(type="attempt", data={
                "index": attempt.index,
                "valid": attempt.valid,
                "violations": [v.describe() for v in attempt.violations],
            })

        html = render_html(template.html, repaired.fields)
        sidecar = sidecar_path(request.output)
        if request.dry_run:
            logger.info("Dry run: not writing %s", request.output)
        else:
            sidecar = write_document(html, repaired.fields, request.output)

        yield GenerationResult(
            template=template.name,
            fields=repaired.fields,
            html=html,
            output_path=request.output,
            sidecar_path=sidecar,
            dry_run=request.dry_run,
            written=not request.dry_run,
            agent=agent.name if agent else None,
            attempts=repaired.attempts,
            turns=outcome.turns if outcome else 0,
            tool_calls=outcome.tool_calls if outcome else 0,
            prompt_tokens=prompt_tokens,
        )
    finally:
        try:
            cache.clean()
        except OSError as exc:
            logger.debug("Cache cleanup failed: %s", exc)


def _check_request(request: GenerateRequest) -> None:
    if not request.template:
        raise PreconditionError("A template name is required")
    if not request.sources:
        raise PreconditionError("At least one source is required")
    if not str(request.output):
        raise PreconditionError("An output path is required")
    if request.output.suffix.lower() == ".json":
        raise PreconditionError("Output path must not end in .json; that name is reserved for the field sidecar")
    if request.max_repairs < 0:
        raise PreconditionError("max_repairs must be >= 0")
    if request.max_turns < 0:
        raise PreconditionError("max_turns must be >= 0")
    if request.output.exists() and not request.force:
        raise PreconditionError(f"Output {request.output} already exists; use force to overwrite")


async def _analyze(
    adapter: ProviderAdapter,
    executor: AgentExecutor,
    agent: AgentDef,
    template: Template,
    request: GenerateRequest,
    settings: Settings,
    cache: ArtifactCache,
) -> AsyncIterator[Message]:
    """Run the analysis loop; a non-success outcome raises after its transcript is saved."""
    loop = AnalysisLoop(
        adapter,
        executor,
        agent,
        template,
        max_turns=request.max_turns,
        max_tokens=settings.max_tokens,
        params=request.params,
    )
    async for msg in loop.run(request.sources[0]):
        yield msg
        if isinstance(msg, AnalysisOutcome) and not msg.ok:
            if loop.session is not None:
                transcript = cache.create_run_directory(f"{agent.name}-transcript").path / "transcript.jsonl"
                loop.session.dump_jsonl(transcript)
                logger.info("Analysis transcript saved to %s", transcript)
            raise AnalysisError(msg)


async def _revalidate(
    adapter: ProviderAdapter,
    template: Template,
    request: GenerateRequest,
    settings: Settings,
    outcome: AnalysisOutcome,
) -> RepairResult:
    """Validate the analysis answer again; hand a failing draft to the repair loop."""
    fields = outcome.fields or {}
    draft = outcome.draft or json.dumps(fields)
    if not validate(fields, template.schema):
        return RepairResult(
            fields=fields,
            attempts=(GenerationAttempt(index=0, draft=draft, fields=fields),),
        )
    logger.warning("Analysis answer failed re-validation; repairing")
    prompt = build_analysis_user_prompt(template, request.sources[0])
    return await RepairLoop(
        adapter, max_repairs=request.max_repairs, max_tokens=settings.max_tokens,
    ).run(prompt, template.schema, initial_draft=json.dumps(fields))


def _create_provider(settings: Settings) -> ProviderAdapter:
    from docloom.core.config import resolve_api_key
    from docloom.providers.registry import PROVIDERS, create_provider, infer_provider

    name = settings.provider or infer_provider(settings.model)
    if name not in PROVIDERS:
        raise PreconditionError(f"Unknown provider: {name!r}. Available: {', '.join(PROVIDERS)}")
    if not resolve_api_key(name, settings.api_key):
        raise PreconditionError(
            f"No API key for provider {name!r}; set DOCLOOM_API_KEY or pass --api-key"
        )
    return create_provider(
        settings.model,
        provider=name,
        api_key=settings.api_key,
        base_url=settings.base_url,
        temperature=settings.temperature,
        max_retries=settings.max_retries,
    )
