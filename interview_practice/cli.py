"""CLI interface for the Interview Practice core."""
import asyncio
import sys
import traceback
from pathlib import Path
from typing import Awaitable, List, Optional

import click
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from .agents.comparison_agent import ComparisonAgent
from .agents.orchestrator_agent import InterviewOrchestrator, build_default_agents
from .models.enums import ContentType, RotationStrategy
from .models.interview import ComparisonResult, ConversationTurn, InterviewContext
from .models.knowledge import BootstrapProgress
from .providers.siliconflow_provider import SiliconFlowClient
from .services.configuration_manager import ConfigurationManager
from .services.knowledge_bootstrap import KnowledgeBootstrap
from .services.knowledge_import import import_file
from .services.llm_manager import LLMManager
from .services.rag_service import RagService
from .services.state_machine import InterviewStateMachine
from .utils.exceptions import InterviewPracticeError
from .utils.logging import get_logger, setup_logging


console = Console()
logger = get_logger("cli")


@click.group()
@click.version_option(version="0.1.0")
@click.option("--config", "-c", type=click.Path(exists=True, file_okay=False), help="Configuration directory")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool):
    """Interview Practice - knowledge-backed mock interviews with multiple interviewers."""
    ctx.ensure_object(dict)

    try:
        config_manager = ConfigurationManager(config or "config")
        config_manager.initialize()
    except InterviewPracticeError as e:
        console.print(f"[red]Failed to load configuration: {e}[/red]")
        sys.exit(1)

    log_config = config_manager.get_config().logging
    setup_logging(
        "DEBUG" if verbose else log_config.level,
        log_file=log_config.file_path,
        enable_console=verbose or log_config.console_output,
        enable_file=log_config.file_output,
        structured=log_config.format == "json",
        max_file_size=log_config.max_file_size,
        backup_count=log_config.backup_count,
    )
    ctx.obj["config_manager"] = config_manager
    logger.info("CLI initialized successfully")


def _build_rag_service(config_manager: ConfigurationManager) -> RagService:
    rag_config = config_manager.get_config().rag
    return RagService(rag_config.db_path, rag_config.model_dir, init_timeout=rag_config.init_timeout)


def _build_client(config_manager: ConfigurationManager) -> SiliconFlowClient:
    provider = config_manager.get_llm_provider_config("siliconflow")
    if provider is None:
        return SiliconFlowClient.from_env()
    return SiliconFlowClient.from_config(provider.model_dump())


def _fail(message: str, error: Exception) -> None:
    console.print(f"[red]{message}: {error}[/red]")
    logger.error(f"{message}: {error}")
    sys.exit(1)


@cli.group()
def knowledge():
    """Manage the interview knowledge base."""


@knowledge.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def knowledge_import(ctx: click.Context, file: str):
    """Import questions and answers from a .json or .txt FILE."""
    rag_service = _build_rag_service(ctx.obj["config_manager"])

    async def run():
        await rag_service.ensure_initialized()
        result = await import_file(file, rag_service)
        index_size = await rag_service.rebuild_index()
        return result, index_size

    try:
        with console.status(f"Importing {Path(file).name}..."):
            result, index_size = asyncio.run(run())
    except InterviewPracticeError as e:
        _fail("Import failed", e)
    finally:
        rag_service.close()

    lines = [
        f"Imported: {result.success_count}",
        f"Failed: {result.fail_count}",
        f"Index size: {index_size}",
    ]
    if result.errors:
        lines.append("")
        lines.extend(f"[yellow]{error}[/yellow]" for error in result.errors)
    console.print(Panel("\n".join(lines), title="Import Result", border_style="green" if not result.fail_count else "yellow"))


@knowledge.command("status")
@click.pass_context
def knowledge_status(ctx: click.Context):
    """Show knowledge base counts."""
    rag_service = _build_rag_service(ctx.obj["config_manager"])
    try:
        stats = asyncio.run(rag_service.get_stats())
    except InterviewPracticeError as e:
        _fail("Failed to read knowledge base", e)
    finally:
        rag_service.close()

    table = Table(title="Knowledge Base")
    table.add_column("Content type")
    table.add_column("Count", justify="right")
    table.add_row(ContentType.QUESTION.value, str(stats.question_count))
    table.add_row(ContentType.ANSWER.value, str(stats.answer_count))
    table.add_row(ContentType.JD.value, str(stats.jd_count))
    table.add_row("[bold]total[/bold]", f"[bold]{stats.total_vectors}[/bold]")
    console.print(table)
    if stats.total_vectors == 0:
        console.print("[yellow]Knowledge base is empty. Run 'knowledge bootstrap' or 'knowledge import'.[/yellow]")


@knowledge.command("rebuild")
@click.pass_context
def knowledge_rebuild(ctx: click.Context):
    """Rebuild the similarity index from stored vectors."""
    rag_service = _build_rag_service(ctx.obj["config_manager"])
    try:
        with console.status("Building vector index..."):
            index_size = asyncio.run(rag_service.rebuild_index())
    except InterviewPracticeError as e:
        _fail("Index rebuild failed", e)
    finally:
        rag_service.close()
    console.print(f"[green]Index rebuilt with {index_size} vectors.[/green]")


@knowledge.command("bootstrap")
@click.option("--per-category", type=click.IntRange(1, 50), default=10, help="Questions generated per job template")
@click.pass_context
def knowledge_bootstrap(ctx: click.Context, per_category: int):
    """Seed the knowledge base with generated questions and answers."""
    config_manager = ctx.obj["config_manager"]
    rag_service = _build_rag_service(config_manager)

    async def run(progress: Progress):
        client = _build_client(config_manager)
        task = progress.add_task("Starting...", total=None)

        def on_progress(update: BootstrapProgress) -> None:
            progress.update(task, description=update.status, completed=update.current, total=update.total)

        try:
            bootstrapper = KnowledgeBootstrap(
                rag_service,
                client,
                retry_policy=config_manager.get_retry_policy(),
                questions_per_category=per_category,
            )
            return await bootstrapper.bootstrap(on_progress)
        finally:
            await client.close()

    try:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      TextColumn("{task.completed}/{task.total}"), console=console) as progress:
            result = asyncio.run(run(progress))
    except InterviewPracticeError as e:
        _fail("Bootstrap failed", e)
    finally:
        rag_service.close()

    content = result.message
    if result.failed_items:
        content += "\n\nFailed items:\n- " + "\n- ".join(result.failed_items)
    console.print(Panel(content, title="Bootstrap Result", border_style="green" if result.success else "yellow"))


@knowledge.command("search")
@click.argument("query")
@click.option("--type", "content_type", type=click.Choice([c.value for c in ContentType]),
              default=None, help="Restrict results to one content type")
@click.option("--top-k", "-k", type=click.IntRange(1, 50), default=None, help="Number of results")
@click.option("--as-context", is_flag=True, help="Print results as the prompt context block")
@click.pass_context
def knowledge_search(ctx: click.Context, query: str, content_type: Optional[str], top_k: Optional[int],
                     as_context: bool):
    """Find knowledge entries similar to QUERY."""
    config_manager = ctx.obj["config_manager"]
    rag_service = _build_rag_service(config_manager)
    k = top_k or config_manager.get_config().rag.top_k
    try:
        results = asyncio.run(rag_service.retrieve_similar(content_type, query, k))
    except InterviewPracticeError as e:
        _fail("Search failed", e)
    finally:
        rag_service.close()

    if not results:
        console.print("[yellow]No matching entries.[/yellow]")
        return
    if as_context:
        max_length = config_manager.get_config().rag.context_max_length
        console.print(Panel(RagService.build_context(results, max_length=max_length), title="Context"))
        return
    table = Table(title=f"Results for: {query}")
    table.add_column("#", justify="right")
    table.add_column("Type")
    table.add_column("Similarity", justify="right")
    table.add_column("Content")
    for idx, result in enumerate(results, start=1):
        table.add_row(str(idx), result.content_type, f"{result.similarity:.3f}", result.content)
    console.print(table)


@cli.command()
@click.option("--resume", "-r", type=click.Path(exists=True, dir_okay=False), required=True, help="Path to resume file")
@click.option("--job-desc", "-j", type=click.Path(exists=True, dir_okay=False), required=True,
              help="Path to job description file")
@click.option("--strategy", "-s", type=click.Choice(["phase_based", "fixed_order", "random"]), default=None,
              help="Interviewer rotation strategy")
@click.pass_context
def interview(ctx: click.Context, resume: str, job_desc: str, strategy: Optional[str]):
    """Start an interactive interview session."""
    config_manager = ctx.obj["config_manager"]
    rotation = RotationStrategy(strategy) if strategy else config_manager.get_rotation_strategy()

    welcome_content = "\n".join([
        "Welcome to Interview Practice!",
        f"Resume: {Path(resume).name}",
        f"Job Description: {Path(job_desc).name}",
        f"Rotation: {rotation.name.lower()}",
        "",
        "Type your answer and press Enter. Type 'quit' to end the session.",
    ])
    console.clear()
    console.print(Panel(welcome_content, title="Interview Session Setup", border_style="blue"))

    try:
        asyncio.run(_run_interview(config_manager, resume, job_desc, rotation))
    except InterviewPracticeError as e:
        console.print(f"[red]Interview failed: {e}[/red]")
        logger.error(f"Interview execution failed: {e}")
        logger.debug(f"Stack trace:\n{traceback.format_exc()}")
        sys.exit(1)


async def _run_interview(config_manager: ConfigurationManager, resume_path: str, job_desc_path: str,
                         strategy: RotationStrategy) -> None:
    """Run the interview session."""
    config = config_manager.get_config()
    context = InterviewContext(
        resume=Path(resume_path).read_text(encoding="utf-8"),
        job_description=Path(job_desc_path).read_text(encoding="utf-8"),
    )

    rag_service = _build_rag_service(config_manager)
    llm_manager = LLMManager(_build_client(config_manager), retry_policy=config_manager.get_retry_policy())
    try:
        agents = build_default_agents(
            llm_manager,
            rag_service=rag_service,
            model=config.interview.agent_model,
            temperature=config.interview.agent_temperature,
        )
        orchestrator = InterviewOrchestrator(
            agents,
            context,
            strategy=strategy,
            state_machine=InterviewStateMachine(advance_score=config.interview.advance_score),
            comparison_agent=ComparisonAgent(
                llm_manager,
                model=config.interview.agent_model,
                temperature=config.interview.agent_temperature,
            ),
            rag_service=rag_service,
        )
        await _interview_loop(orchestrator)
    finally:
        await llm_manager.close()
        rag_service.close()


async def _interview_loop(orchestrator: InterviewOrchestrator) -> None:
    """Main interview loop."""
    while not orchestrator.is_completed:
        turn = await _with_loading(
            orchestrator.next_question(),
            "Generating Question",
            [
                "The interviewer is reading your resume and the job description...",
                "Choosing the next topic for this phase...",
                "Almost ready with your next question...",
            ],
        )
        _show_question(orchestrator, turn)

        answer = _read_answer()
        if answer is None:
            break

        feedback = await _with_loading(
            orchestrator.submit_answer(answer),
            "Analyzing Answer",
            [
                "The interviewer is reviewing your answer...",
                "Weighing strengths and gaps...",
                "Preparing feedback...",
            ],
        )
        analysis = feedback.analysis
        lines = [f"[bold]Summary:[/bold] {analysis.summary}" if analysis.summary else "[bold]Summary:[/bold] -"]
        if analysis.strengths:
            lines.append("\n[bold]Strengths:[/bold]\n- " + "\n- ".join(analysis.strengths))
        if analysis.improvements:
            lines.append("\n[bold]Improvements:[/bold]\n- " + "\n- ".join(analysis.improvements))
        if feedback.follow_up:
            lines.append("\n[italic]The interviewer may dig deeper into this topic.[/italic]")
        if feedback.new_phase is not None:
            lines.append(f"\n[green]Moving on to the {feedback.new_phase.name.replace('_', ' ').title()} phase.[/green]")
        console.print(Panel("\n".join(lines), title=f"Analysis | Score: {analysis.score:.1f}/10", border_style="cyan"))

        try:
            comparison = await _with_loading(
                orchestrator.compare_with_best_answer(),
                "Comparing With Best Answer",
                ["Looking up a reference answer...", "Comparing point by point..."],
            )
        except InterviewPracticeError as e:
            logger.warning(f"Answer comparison failed: {e}")
            comparison = None
        if comparison is not None:
            _show_comparison(comparison)

    _show_report(orchestrator)


def _show_question(orchestrator: InterviewOrchestrator, turn: ConversationTurn) -> None:
    progress = orchestrator.progress()
    phase = orchestrator.context.current_phase
    title = (
        f"{turn.role_name} | Phase: {phase.name.replace('_', ' ').title()} "
        f"| Question {progress.total_question_count}"
    )
    console.print(Panel(turn.question, title=title, border_style="green"))


def _read_answer() -> Optional[str]:
    """Prompt until a non-empty answer is given; None ends the session."""
    while True:
        console.print("\n[bold yellow]Your answer (or 'quit'):[/bold yellow]")
        answer = input("> ").strip()
        if answer.lower() in ("quit", "exit"):
            return None
        if answer:
            return answer
        console.print("[yellow]Please enter an answer.[/yellow]")


def _show_comparison(comparison: ComparisonResult) -> None:
    table = Table(title=f"Compared With Best Answer | Match: {comparison.overall_match:.0%}")
    table.add_column("Aspect")
    table.add_column("Status")
    table.add_column("Suggestion")
    for point in comparison.comparisons:
        table.add_row(point.aspect, point.match_status.value, point.suggestion or "-")
    console.print(table)
    if comparison.missing_points:
        console.print("[yellow]Missing:[/yellow] " + "; ".join(comparison.missing_points))


def _show_report(orchestrator: InterviewOrchestrator) -> None:
    context = orchestrator.context
    answered = context.answered_turns()
    average = context.average_score()

    table = Table(title="Interview Summary")
    table.add_column("#", justify="right")
    table.add_column("Interviewer")
    table.add_column("Score", justify="right")
    for idx, turn in enumerate(answered, start=1):
        score = f"{turn.analysis.score:.1f}" if turn.analysis is not None else "-"
        table.add_row(str(idx), turn.role_name, score)

    console.print(Panel(
        f"Questions answered: {len(answered)}\n"
        f"Average score: {average:.1f}/10" if average is not None else f"Questions answered: {len(answered)}",
        title="Interview session completed" if orchestrator.is_completed else "Interview session ended",
        border_style="blue",
    ))
    if answered:
        console.print(table)


async def _with_loading(operation: Awaitable, title: str, messages: List[str]):
    """Await an operation while cycling loading messages in a live panel."""
    task = asyncio.ensure_future(operation)

    def panel(message: str) -> Panel:
        return Panel(Text(message, style="cyan"), title=title, border_style="blue")

    with Live(panel(messages[0]), console=console, refresh_per_second=4, transient=True) as live:
        index = 0
        while not task.done():
            await asyncio.wait({task}, timeout=1.5)
            index += 1
            live.update(panel(messages[index % len(messages)]))

    return task.result()


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interview interrupted by user.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
