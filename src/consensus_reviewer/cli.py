"""Command-line interface for Consensus Reviewer."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from consensus_reviewer import __version__
from consensus_reviewer.call_log import CallLog
from consensus_reviewer.config import Config, load_config, missing_api_keys, validate_config
from consensus_reviewer.extraction import load_extracted_findings
from consensus_reviewer.gating import PassThreshold, evaluate_job, update_readme_badge
from consensus_reviewer.models.job import ModelReviewResult, ModelSpec, OrchestrationResult
from consensus_reviewer.orchestrator import (
    FindingAggregator,
    ReportSynthesizer,
    ReviewOrchestrator,
    read_results_json,
    write_report_json,
    write_results_json,
)
from consensus_reviewer.prompts import PackagedCodebase, ReviewType, build_review_prompt
from consensus_reviewer.providers import get_provider_class, list_providers

console = Console()

_STATUS_STYLES = {
    "passed": "green",
    "warnings": "yellow",
    "failed": "red",
    "error": "red",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """Consensus Reviewer - cross-model code review with agreement analysis."""
    setup_logging(verbose)


@cli.command("review")
@click.argument("prompt_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    type=click.Path(),
    default="review_results.json",
    show_default=True,
    help="Where to write raw results (a directory gets a timestamped name)",
)
@click.option("--model", "models", multiple=True, help="provider/model to run (repeatable)")
@click.option(
    "--review-type",
    type=click.Choice([t.value for t in ReviewType]),
    help="Wrap the packaged codebase in this review template",
)
@click.option("--raw", is_flag=True, help="Send PROMPT_FILE as-is without a review template")
@click.option("--prompt-tokens", type=int, help="Token count reported by the packager")
@click.option("--fail-on-error", is_flag=True, help="Exit nonzero if any backend fails")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def review(
    prompt_file: str,
    output: str,
    models: tuple[str, ...],
    review_type: str | None,
    raw: bool,
    prompt_tokens: int | None,
    fail_on_error: bool,
    config_path: str | None,
) -> None:
    """Send PROMPT_FILE to every configured backend and record the results."""
    config = load_config(Path(config_path) if config_path else None)
    if models:
        config.models = list(models)
    if fail_on_error:
        config.review.fail_on_error = True

    # A backend without a key fails on its own as an authentication error
    missing_keys = missing_api_keys(config)
    errors = [e for e in validate_config(config) if e not in missing_keys]
    if config.review.fail_on_error:
        errors.extend(missing_keys)
    else:
        for warning in missing_keys:
            console.print(f"[yellow]⚠️  {warning}[/yellow]")
    if errors:
        for error in errors:
            console.print(f"[red]Config error:[/red] {error}")
        sys.exit(1)

    text = Path(prompt_file).read_text(encoding="utf-8")
    if raw:
        prompt = text
    else:
        packaged = PackagedCodebase(prompt_ready_text=text, token_count=prompt_tokens or 0)
        prompt = build_review_prompt(
            packaged, ReviewType.parse(review_type or config.review.review_type)
        )

    outcome = asyncio.run(review_async(config, prompt, prompt_tokens))

    path = write_results_json(outcome.results, output)
    _print_results_table(outcome.results)
    console.print(f"📝 Results written to {path}")

    if not outcome.successful:
        console.print(f"[red]❌ All {len(outcome.results)} backends failed![/red]")
    elif outcome.failed:
        failed = ", ".join(str(r.model) for r in outcome.failed)
        console.print(
            f"[yellow]⚠️  {len(outcome.failed)}/{len(outcome.results)} backends failed: "
            f"{failed}[/yellow]"
        )

    if outcome.should_exit_nonzero:
        sys.exit(1)


async def review_async(
    config: Config, prompt: str, prompt_tokens: int | None = None
) -> OrchestrationResult:
    """Run the configured backends for one prompt."""
    call_log = CallLog(config.logging.call_log_path)
    orchestrator = ReviewOrchestrator(
        retry=config.retry_executor(),
        call_log=call_log,
        provider_settings=config.provider_settings(),
        cost_rates=config.costs,
    )
    try:
        return await orchestrator.run(config.build_job(prompt, prompt_tokens))
    finally:
        await orchestrator.close()


def _print_results_table(results: list[ModelReviewResult]) -> None:
    table = Table(title="Backend Results")
    table.add_column("Model")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Error")

    for result in results:
        status = "[green]success[/green]" if result.succeeded else "[red]error[/red]"
        error = ""
        if result.error_category:
            error = f"{result.error_category.value}: {result.error_message or ''}"
        table.add_row(
            str(result.model),
            status,
            f"{result.latency_ms / 1000:.1f}s",
            str(result.usage.total_tokens),
            f"${result.cost:.4f}",
            error,
        )

    console.print(table)


@cli.command("report")
@click.argument("results_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("findings_json", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    type=click.Path(),
    default=".",
    show_default=True,
    help="Report path (a directory gets a timestamped name)",
)
@click.option(
    "--pass-threshold",
    type=click.Choice([t.value for t in PassThreshold]),
    help="Override the configured pass threshold",
)
@click.option("--fail-on-error", is_flag=True, help="Exit nonzero if any backend failed")
@click.option("--readme", type=click.Path(dir_okay=False), help="README to embed the badge in")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def report(
    results_json: str,
    findings_json: str,
    output: str,
    pass_threshold: str | None,
    fail_on_error: bool,
    readme: str | None,
    config_path: str | None,
) -> None:
    """Aggregate extracted findings into a report and evaluate the pass threshold."""
    config = load_config(Path(config_path) if config_path else None)
    if pass_threshold:
        config.review.pass_threshold = pass_threshold
    if fail_on_error:
        config.review.fail_on_error = True

    try:
        results = read_results_json(results_json)
        extracted = load_extracted_findings(findings_json)
    except (ValueError, KeyError) as e:
        console.print(f"[red]Error reading input:[/red] {e}")
        sys.exit(1)

    successful_models = [str(r.model) for r in results if r.succeeded]
    aggregated = FindingAggregator().aggregate_extracted(extracted, successful_models)
    code_review = ReportSynthesizer(config.review.project_name).build(aggregated, results)

    job = config.build_job(prompt="")
    job.model_specs = [r.model for r in results]
    decision = evaluate_job(code_review, results, job)

    path = write_report_json(code_review, output)
    console.print(f"📝 Report written to {path}")

    style = _STATUS_STYLES.get(decision.status.value, "white")
    console.print(
        f"Badge: [{style}]{decision.status.value}[/{style}] ({decision.badge.summary})"
    )
    verdict = "[green]passed[/green]" if decision.review_passed else "[red]failed[/red]"
    console.print(f"Pass threshold '{job.pass_threshold}': {verdict}")

    if readme:
        if update_readme_badge(readme, decision.badge):
            console.print(f"🏷️  Updated badge in {readme}")

    sys.exit(decision.exit_code)


@cli.group("config")
def config_group() -> None:
    """Configuration commands."""
    pass


@config_group.command("validate")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def config_validate(config_path: str | None) -> None:
    """Validate configuration file."""
    try:
        config = load_config(Path(config_path) if config_path else None)
        errors = validate_config(config)

        if errors:
            console.print("[red]Configuration is invalid:[/red]")
            for error in errors:
                console.print(f"  • {error}")
            sys.exit(1)
        else:
            console.print("[green]✓ Configuration is valid[/green]")
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        sys.exit(1)


@config_group.command("show")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def config_show(config_path: str | None) -> None:
    """Show current configuration."""
    config = load_config(Path(config_path) if config_path else None)

    console.print("\n[bold]Current Configuration[/bold]\n")

    table = Table(title="Configured Models")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("API Key")

    for model in config.models:
        try:
            spec = ModelSpec.parse(model)
        except ValueError as e:
            table.add_row(model, "[red]invalid[/red]", str(e))
            continue
        provider = config.providers.get(spec.provider)
        has_key = bool(provider and provider.api_key)
        table.add_row(spec.provider, spec.model, "✓" if has_key else "[red]missing[/red]")

    console.print(table)

    console.print(
        f"\n[bold]Retry:[/bold] {config.retry.max_retries} retries, "
        f"{config.retry.timeout_seconds}s per attempt, "
        f"{config.retry.backoff_base_seconds}s base backoff"
    )
    console.print(
        f"[bold]Review:[/bold] token limit {config.review.token_limit}, "
        f"pass threshold {config.review.pass_threshold}, "
        f"fail on error {config.review.fail_on_error}"
    )


@cli.command("providers")
def providers() -> None:
    """List registered model providers."""
    table = Table(title="Providers")
    table.add_column("Name")
    table.add_column("Default Model")
    table.add_column("API Key Variable")

    for name in list_providers():
        adapter_cls = get_provider_class(name)
        table.add_row(name, adapter_cls.DEFAULT_MODEL, adapter_cls.API_KEY_ENV)

    console.print(table)


if __name__ == "__main__":
    cli()
