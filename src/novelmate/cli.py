"""Main CLI entry point for novelmate."""

import asyncio
from pathlib import Path
from typing import Optional

import click
import structlog
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from novelmate import __version__
from novelmate.config import AppConfig, get_config, set_config
from novelmate.errors import NovelmateError
from novelmate.storage.library import NovelLibrary
from novelmate.storage.models import Chapter

logger = structlog.get_logger()
console = Console()


def setup_config(env_file: Optional[Path] = None) -> None:
    """Load configuration from environment."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    config = AppConfig.load(env_file)
    set_config(config)


def _library() -> NovelLibrary:
    return NovelLibrary(get_config().novels_dir)


def _find_chapter(library: NovelLibrary, novel_id: str, number: int) -> Chapter:
    try:
        chapter = library.get_novel(novel_id).get_chapter_by_number(number)
    except NovelmateError as e:
        logger.error("novel_not_found", novel_id=novel_id, error=str(e))
        raise SystemExit(1)
    if chapter is None:
        logger.error("chapter_not_found", novel_id=novel_id, number=number)
        raise SystemExit(1)
    return chapter


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output")
@click.option("--log-file", type=click.Path(), help="Write JSON logs to file")
@click.option("--env-file", type=click.Path(exists=True), help="Path to .env file")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, verbose: bool, quiet: bool, log_file: Optional[str], env_file: Optional[str]) -> None:
    """Korean and Japanese novel translation tool.

    Keeps character and place names consistent across chapters with a
    per-novel name dictionary.
    """
    from novelmate.log import configure_logging

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    # Setup configuration first so LOG_LEVEL is known
    setup_config(Path(env_file) if env_file else None)

    verbosity = 1 if verbose else (-1 if quiet else 0)
    log_path = Path(log_file) if log_file else None
    configure_logging(verbosity=verbosity, log_file=log_path, level_name=get_config().log_level)


# =============================================================================
# Server and configuration
# =============================================================================


@cli.command()
@click.option("--port", default=8000, type=int, help="API server port")
@click.option("--host", default="127.0.0.1", help="API server host")
def serve(port: int, host: str) -> None:
    """Run the HTTP API server."""
    import uvicorn

    from novelmate.api.server import create_app

    config = get_config()
    app = create_app(novels_dir=config.novels_dir.resolve(), config=config)

    click.echo(f"API: http://{host}:{port}/api/docs")
    uvicorn.run(app, host=host, port=port, log_level="info")


@cli.command("config")
@click.option("--check", is_flag=True, help="Send a trivial prompt to each configured model")
def show_config(check: bool) -> None:
    """Show the effective LLM configuration."""
    from novelmate.config import log_llm_config_summary
    from novelmate.translator.llm import check_llm_connection

    log_llm_config_summary()
    if not check:
        return

    async def run() -> dict[str, bool]:
        return {
            task: await check_llm_connection(task=task)
            for task in ("extract", "translate", "summarize")
        }

    results = asyncio.run(run())
    for task, ok in results.items():
        click.echo(f"  {task}: {'ok' if ok else 'FAILED'}")
    if not all(results.values()):
        raise SystemExit(1)


# =============================================================================
# Novel and chapter commands
# =============================================================================


@cli.group()
def novel():
    """Manage novels."""
    pass


@novel.command("add")
@click.option("--title", required=True, help="Novel title")
@click.option("--author", default="", help="Author")
@click.option(
    "--language", "source_language", default="ko", type=click.Choice(["ko", "ja"]),
    help="Source language",
)
@click.option("--description", default="", help="Short description")
def novel_add(title: str, author: str, source_language: str, description: str) -> None:
    """Create a novel."""
    from novelmate.services.novel_service import NovelService

    created = NovelService(_library()).create_novel(
        title=title, author=author, source_language=source_language, description=description
    )
    click.echo(f"Created novel {created.id}: {created.title}")


@novel.command("list")
def novel_list() -> None:
    """List novels with chapter progress."""
    from novelmate.services.novel_service import NovelService

    novels = NovelService(_library()).list_novels()
    if not novels:
        click.echo("No novels yet")
        return

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Lang")
    table.add_column("Chapters", justify="right")
    table.add_column("Review", justify="right", style="yellow")
    table.add_column("Done", justify="right", style="green")
    for n in novels:
        table.add_row(
            n["id"],
            n["title"],
            n["source_language"],
            str(n["total_chapters"]),
            str(n["review_chapters"]),
            str(n["translated_chapters"] + n["completed_chapters"]),
        )
    console.print(table)


@cli.group()
def chapter():
    """Manage chapters."""
    pass


@chapter.command("add")
@click.option("--novel", "novel_id", required=True, help="Novel ID")
@click.option("--number", required=True, type=int, help="Chapter number")
@click.option("--title", default="", help="Chapter title")
@click.option("--file", "source_file", required=True, type=click.Path(exists=True),
              help="UTF-8 text file with the source chapter")
def chapter_add(novel_id: str, number: int, title: str, source_file: str) -> None:
    """Add a chapter from a text file."""
    from novelmate.services.novel_service import NovelService

    text = Path(source_file).read_text(encoding="utf-8")
    try:
        created = NovelService(_library()).create_chapter(novel_id, number, title, text)
    except NovelmateError as e:
        logger.error("chapter_add_failed", error=str(e))
        raise SystemExit(1)
    click.echo(f"Added chapter {created.number} ({created.id})")


# =============================================================================
# Translation
# =============================================================================


@cli.command()
@click.option("--novel", "novel_id", required=True, help="Novel ID")
@click.option("--chapter", "number", required=True, type=int, help="Chapter number")
@click.option("--output", "-o", type=click.Path(), help="Also write the translation to a file")
def translate(novel_id: str, number: int, output: Optional[str]) -> None:
    """Translate one chapter, enforcing the name dictionary."""
    from novelmate.translator.engine import TranslationOrchestrator
    from novelmate.translator.llm import build_capabilities

    library = _library()
    target = _find_chapter(library, novel_id, number)
    orchestrator = TranslationOrchestrator(library, build_capabilities())

    try:
        result = asyncio.run(orchestrator.translate_chapter(novel_id, target.id))
    except (NovelmateError, ValueError) as e:
        logger.error("translate_failed", chapter=number, error=str(e))
        raise SystemExit(1)

    if output:
        Path(output).write_text(result.processed_translation, encoding="utf-8")
        logger.info("translation_written", path=output)
    else:
        click.echo(result.processed_translation)

    if result.needs_review:
        click.echo(
            f"\n{len(result.new_names)} new name(s) detected. "
            f"Run 'novelmate review --novel {novel_id} --chapter {number}'"
        )


# =============================================================================
# Name dictionary commands
# =============================================================================


@cli.group()
def names():
    """Manage a novel's name dictionary."""
    pass


@names.command("show")
@click.option("--novel", "novel_id", required=True, help="Novel ID")
@click.option("--limit", default=50, help="Maximum entries to show")
def names_show(novel_id: str, limit: int) -> None:
    """Display dictionary contents."""
    from novelmate.services.name_service import NameService

    try:
        entries = NameService(_library()).list_names(novel_id)
    except NovelmateError as e:
        logger.error("names_show_failed", error=str(e))
        raise SystemExit(1)
    if not entries:
        click.echo(f"No names recorded for {novel_id}")
        return

    table = Table(show_header=True, header_style="bold blue", title=f"Names ({len(entries)})")
    table.add_column("Original", style="cyan")
    table.add_column("Translation", style="green")
    table.add_column("Type")
    for entry in entries[:limit]:
        table.add_row(entry.original_name, entry.translated_name, entry.type.value)
    console.print(table)

    if len(entries) > limit:
        click.echo(f"  ... and {len(entries) - limit} more")


@names.command("add")
@click.option("--novel", "novel_id", required=True, help="Novel ID")
@click.option("--original", required=True, help="Name as written in the source")
@click.option("--translation", required=True, help="Name to use in translations")
@click.option("--type", "name_type", default="character", help="Name type")
def names_add(novel_id: str, original: str, translation: str, name_type: str) -> None:
    """Add a name mapping."""
    from novelmate.services.name_service import NameService

    try:
        NameService(_library()).create_name(novel_id, original, translation, name_type)
    except (NovelmateError, ValueError) as e:
        logger.error("name_add_failed", error=str(e))
        raise SystemExit(1)
    click.echo(f"{original} → {translation}")


@names.command("export")
@click.option("--novel", "novel_id", required=True, help="Novel ID")
@click.option("--output", "-o", required=True, type=click.Path(), help="Output CSV path")
def names_export(novel_id: str, output: str) -> None:
    """Export the dictionary to a CSV file."""
    from novelmate.services.name_service import NameService

    try:
        csv_text = NameService(_library()).export_csv(novel_id)
    except NovelmateError as e:
        logger.error("names_export_failed", error=str(e))
        raise SystemExit(1)
    Path(output).write_text(csv_text, encoding="utf-8")
    click.echo(f"Exported names to {output}")


@names.command("import")
@click.option("--novel", "novel_id", required=True, help="Novel ID")
@click.option("--input", "-i", "input_file", required=True, type=click.Path(exists=True),
              help="Input CSV file")
def names_import(novel_id: str, input_file: str) -> None:
    """Import names from a CSV file; existing names are kept."""
    from novelmate.services.name_service import NameService

    text = Path(input_file).read_text(encoding="utf-8-sig")
    try:
        result = NameService(_library()).import_csv(novel_id, text)
    except NovelmateError as e:
        logger.error("names_import_failed", error=str(e))
        raise SystemExit(1)
    click.echo(
        f"Imported {result['imported']} names, skipped {result['skipped']} "
        f"(total: {result['total']})"
    )


# =============================================================================
# Review
# =============================================================================


@cli.command()
@click.option("--novel", "novel_id", required=True, help="Novel ID")
@click.option("--chapter", "number", required=True, type=int, help="Chapter number")
def review(novel_id: str, number: int) -> None:
    """Show detected names awaiting review for a chapter."""
    from novelmate.services.name_service import NameService

    library = _library()
    target = _find_chapter(library, novel_id, number)
    pending = NameService(library).list_detected_names(novel_id, target.id)
    if not pending:
        click.echo(f"Chapter {number}: nothing to review ({target.status.value})")
        return

    table = Table(show_header=True, header_style="bold blue", title=f"Chapter {number}")
    table.add_column("ID", style="dim")
    table.add_column("Original", style="cyan")
    table.add_column("Suggested", style="green")
    table.add_column("Type")
    table.add_column("Context", style="dim", max_width=40)
    for d in pending:
        table.add_row(d.id, d.original_text, d.suggested_translation, d.type, d.context or "")
    console.print(table)


@cli.command()
@click.option("--novel", "novel_id", required=True, help="Novel ID")
@click.option("--chapter", "number", required=True, type=int, help="Chapter number")
@click.option("--add", "adds", multiple=True, metavar="ID[=TRANSLATION]",
              help="Add a detected name, optionally overriding the suggestion")
@click.option("--ignore", "ignores", multiple=True, metavar="ID", help="Ignore a detected name")
def resolve(novel_id: str, number: int, adds: tuple[str, ...], ignores: tuple[str, ...]) -> None:
    """Add or ignore detected names of a chapter."""
    from novelmate.services.name_service import NameResolution, NameService

    resolutions = []
    for item in adds:
        detected_id, _, translated = item.partition("=")
        resolutions.append(
            NameResolution(
                detected_name_id=detected_id, action="add", translated_name=translated or None
            )
        )
    resolutions.extend(
        NameResolution(detected_name_id=detected_id, action="ignore") for detected_id in ignores
    )
    if not resolutions:
        click.echo("Nothing to resolve; pass --add or --ignore")
        return

    library = _library()
    target = _find_chapter(library, novel_id, number)
    result = NameService(library).resolve_names(novel_id, target.id, resolutions)

    for outcome in result.results:
        if outcome.success:
            click.echo(f"  {outcome.id}: {outcome.action}")
        else:
            click.echo(f"  {outcome.id}: failed ({outcome.message})")
    click.echo(
        f"{result.remaining_pending} name(s) still pending; "
        f"chapter is {result.chapter_status.value}"
    )


if __name__ == "__main__":
    cli()
