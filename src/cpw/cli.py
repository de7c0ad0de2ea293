"""CLI entry point for Content Prep Wizard."""

import json
import logging
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.tree import Tree

from .config import load_config
from .errors import CPWError
from .models import ContentPlan, ContextItem, PlanSection, approve

console = Console()


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Content Prep Wizard - turn documents and webpages into page plans."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _get_config(ctx) -> dict:
    return load_config(ctx.obj.get("config_path"))


def _fail(ctx, error: Exception | str) -> None:
    console.print(f"[red]{error}[/]")
    ctx.exit(1)


def _load_plan(ctx, path: str) -> ContentPlan:
    try:
        return ContentPlan.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
    except (KeyError, TypeError, ValueError, json.JSONDecodeError) as e:
        _fail(ctx, f"Invalid plan file {path}: {e}")


def _save_plan(plan: ContentPlan, path: str) -> None:
    Path(path).write_text(json.dumps(plan.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")


def _load_contexts(path: str | None) -> list[ContextItem]:
    if not path:
        return []
    with open(path) as f:
        raw = yaml.safe_load(f) or []
    return [
        ContextItem(
            label=str(item.get("label", f"Context {i + 1}")),
            content=str(item.get("content", "")),
            type=str(item.get("type", "note")),
            priority=int(item.get("priority", 0)),
            enabled=bool(item.get("enabled", True)),
        )
        for i, item in enumerate(raw)
    ]


@cli.command()
@click.pass_context
def processors(ctx):
    """List document converters and whether they can run here."""
    from .converters import build_registry

    registry = build_registry(_get_config(ctx))

    table = Table(title="Document Converters")
    table.add_column("ID", style="cyan")
    table.add_column("Extensions")
    table.add_column("Weight", justify="right")
    table.add_column("Status")
    for info in registry.summary():
        status = "[green]available[/]" if info["available"] else f"[red]{'; '.join(info['errors'])}[/]"
        table.add_row(info["id"], ", ".join(info["extensions"]), str(info["weight"]), status)
    console.print(table)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", "-o", default=None, help="Write Markdown to this file")
@click.pass_context
def convert(ctx, file, out):
    """Convert a document to Markdown."""
    from .converters import build_registry
    from .ingest.processor import process_file, validate_file

    config = _get_config(ctx)
    registry = build_registry(config)
    path = Path(file)

    problems = validate_file(path, registry, config)
    if problems:
        for problem in problems:
            console.print(f"[red]{problem}[/]")
        ctx.exit(1)

    try:
        doc = process_file(path, registry)
    except CPWError as e:
        _fail(ctx, e)
        return

    if out:
        Path(out).write_text(doc.markdown_content, encoding="utf-8")
        console.print(f"[green]✓ Converted {path.name} with {doc.processor_id} → {out}[/]")
    else:
        click.echo(doc.markdown_content)


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("--out-dir", "-o", default=None, help="Write one Markdown file per page here")
@click.pass_context
def scrape(ctx, urls, out_dir):
    """Fetch webpages and convert their main content to Markdown."""
    from .ingest.webpage import WebpageProcessor, title_from_url

    processor = WebpageProcessor.from_config(_get_config(ctx))
    pages = processor.process_urls(list(urls))

    if not pages:
        console.print("[yellow]No pages could be processed.[/]")
        ctx.exit(1)

    skipped = len(urls) - len(pages)
    if out_dir:
        target = Path(out_dir)
        target.mkdir(parents=True, exist_ok=True)
        for page in pages:
            name = title_from_url(page.source_identifier).lower()
            name = "".join(c if c.isalnum() else "-" for c in name).strip("-") or page.id
            path = target / f"{name[:80]}.md"
            path.write_text(page.markdown_content, encoding="utf-8")
            console.print(f"  → {path}")
    else:
        for page in pages:
            click.echo(page.markdown_content)
            click.echo()

    console.print(f"[green]✓ Processed {len(pages)} page(s)[/]")
    if skipped:
        console.print(f"  [dim]({skipped} failed URL(s) skipped)[/]")


@cli.command()
@click.argument("sources", nargs=-1, type=click.Path(exists=True))
@click.option("--url", "urls", multiple=True, help="Webpage to include (repeatable)")
@click.option("--template", "template_id", default=None, help="Template id from the component catalog")
@click.option("--tone", default=None, help="Writing tone, e.g. 'friendly'")
@click.option("--max-sections", type=int, default=None, help="Upper bound on top-level sections")
@click.option("--audience", default=None, help="Target audience")
@click.option("--context-file", default=None, type=click.Path(exists=True), help="YAML list of context items")
@click.option("--out", "-o", default="plan.json", show_default=True, help="Where to write the plan")
@click.pass_context
def plan(ctx, sources, urls, template_id, tone, max_sections, audience, context_file, out):
    """Generate a content plan from documents and webpages."""
    from .converters import build_registry
    from .ingest.processor import process_directory, process_file
    from .ingest.webpage import WebpageProcessor
    from .planning.catalog import load_catalog
    from .planning.chat import get_chat_provider
    from .planning.synthesizer import PlanSynthesizer

    config = _get_config(ctx)
    registry = build_registry(config)

    try:
        contents = []
        for source in sources:
            path = Path(source)
            if path.is_dir():
                contents.extend(process_directory(path, registry))
            else:
                contents.append(process_file(path, registry))
        if urls:
            contents.extend(WebpageProcessor.from_config(config).process_urls(list(urls)))

        console.print(f"[blue]Planning from {len(contents)} source(s)...[/]")
        synthesizer = PlanSynthesizer(
            get_chat_provider(config),
            catalog=load_catalog(config.get("catalog_path")),
            config=config,
        )
        options = {"tone": tone, "max_sections": max_sections, "target_audience": audience}
        result = synthesizer.generate(contents, _load_contexts(context_file), template_id, options)
    except CPWError as e:
        _fail(ctx, e)
        return

    _save_plan(result, out)
    console.print(f"[green]✓ Plan '{result.title}' with {result.section_count()} section(s) → {out}[/]")


@cli.command()
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("instructions")
@click.option("--out", "-o", default=None, help="Write the refined plan here (default: overwrite)")
@click.pass_context
def refine(ctx, plan_file, instructions, out):
    """Refine a plan with free-text instructions."""
    from .planning.catalog import load_catalog
    from .planning.chat import get_chat_provider
    from .planning.refiner import PlanRefiner
    from .planning.synthesizer import PlanSynthesizer

    config = _get_config(ctx)
    provider = get_chat_provider(config)
    synthesizer = PlanSynthesizer(provider, catalog=load_catalog(config.get("catalog_path")), config=config)
    refiner = PlanRefiner(provider, synthesizer=synthesizer, config=config)

    try:
        refined = refiner.refine(_load_plan(ctx, plan_file), instructions)
    except CPWError as e:
        _fail(ctx, e)
        return

    _save_plan(refined, out or plan_file)
    entry = refined.refinement_history[-1]
    console.print(f"[green]✓ {entry.response_summary}[/]")
    if entry.affected_sections:
        console.print(f"  Affected: {', '.join(sorted(entry.affected_sections))}")
    console.print(f"  [dim]Refinements used: {refined.refinement_count}/{refiner.max_iterations}[/]")


@cli.command("approve")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def approve_cmd(ctx, plan_file):
    """Mark a draft plan as approved."""
    try:
        approved = approve(_load_plan(ctx, plan_file))
    except CPWError as e:
        _fail(ctx, e)
        return
    _save_plan(approved, plan_file)
    console.print(f"[green]✓ Plan '{approved.title}' approved[/]")


@cli.command("map")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", "-o", default=None, help="Write the component tree JSON here")
@click.pass_context
def map_cmd(ctx, plan_file, out):
    """Map a plan's sections to a page-builder component tree."""
    from .planning.catalog import load_catalog
    from .planning.mapper import ComponentMapper

    config = _get_config(ctx)
    mapper = ComponentMapper(load_catalog(config.get("catalog_path")), config=config)
    tree = mapper.to_component_tree(_load_plan(ctx, plan_file))

    text = json.dumps(tree, indent=2, ensure_ascii=False)
    if out:
        Path(out).write_text(text, encoding="utf-8")
        console.print(f"[green]✓ {len(tree)} component(s) → {out}[/]")
    else:
        click.echo(text)


@cli.command()
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def show(ctx, plan_file):
    """Print a plan's section tree."""
    content_plan = _load_plan(ctx, plan_file)

    root = Tree(f"[bold]{content_plan.title}[/] [dim]({content_plan.status.value})[/]")

    def add(node: Tree, section: PlanSection) -> None:
        branch = node.add(f"[cyan]{section.title}[/] [dim]{section.component_type} · {section.id}[/]")
        for child in sorted(section.children, key=lambda c: c.order):
            add(branch, child)

    for section in sorted(content_plan.sections, key=lambda s: s.order):
        add(root, section)

    console.print(root)
    console.print(f"\n{content_plan.summary}")
    console.print(
        f"[dim]Audience: {content_plan.target_audience} · "
        f"~{content_plan.estimated_read_time} min · "
        f"{content_plan.total_word_count()} words · "
        f"{content_plan.refinement_count} refinement(s)[/]"
    )


if __name__ == "__main__":
    cli()
