import asyncio
import sys
from pathlib import Path

import click

from .config import Settings, get_feed_metadata, get_settings, validate_config
from .curator import Curator
from .errors import ConfigurationError, NoRelevantContent
from .feeds import FeedMetadataTable
from .ingest.items import CandidateItem, load_items
from .logging import PerformanceLogger, PipelineStage, get_logger, log_processing_stage, setup_logging
from .models.llm_client import CompletionService, create_completion_client
from .processing.buckets import BucketAssembler, DigestSelection
from .processing.classifier import classify_items
from .processing.dedupe import TitleDeduplicator
from .processing.relevance import TermScorer, apply_hybrid_scores
from .processing.scoring import HeuristicScorer
from .render import render_digest
from .ui import FriendlyUI, init_ui

logger = get_logger(__name__)


async def run_pipeline(
    items: list[CandidateItem],
    settings: Settings,
    completion: CompletionService,
    feed_metadata: FeedMetadataTable | None = None,
    ui: FriendlyUI | None = None,
) -> DigestSelection:
    """Run the curation pipeline over candidate items.

    Args:
        items: Candidate items for this run.
        settings: The application settings.
        completion: Text-completion service used by the curator.
        feed_metadata: Feed metadata table (defaults to the configured one).
        ui: Optional friendly UI instance.

    Returns:
        The bucketed selection.

    Raises:
        NoRelevantContent: If every bucket is empty after thresholding.
    """
    if feed_metadata is None:
        feed_metadata = get_feed_metadata(settings)

    with PerformanceLogger(PipelineStage.PIPELINE, logger, item_count=len(items)):
        # Stage 1: classification
        classified = classify_items(items)
        logger.info(
            "Classification complete",
            **log_processing_stage(PipelineStage.CLASSIFY, len(items), len(classified)),
        )

        # Stage 2: independent heuristic and term scoring
        with PerformanceLogger(PipelineStage.SCORING, logger, item_count=len(classified)) as perf:
            scored_items = HeuristicScorer().score_items(classified)
            term_scores = TermScorer().score_items(scored_items)
        logger.info(
            "Scoring complete",
            **log_processing_stage(PipelineStage.SCORING, len(classified), len(scored_items), perf.duration),
        )
        if ui:
            ui.verbose_log(
                f"Heuristic scores attached; {sum(1 for r in term_scores.values() if r.matched_terms)} "
                f"items matched domain terms"
            )

        # Stage 3: LLM curation
        curator = Curator.from_settings(settings, completion)
        if ui:
            with ui.stage("Curating with LLM"):
                curated = await curator.curate(scored_items)
            ui.record_stage("curation", len(scored_items), len(curated))
        else:
            curated = await curator.curate(scored_items)

        # Stage 4: optional hybrid blend
        if settings.hybrid_scoring:
            rated_count = len(curated)
            curated = apply_hybrid_scores(
                curated, settings.min_include_threshold, term_scores=term_scores,
            )
            if ui:
                ui.record_stage("hybrid", rated_count, len(curated))

        # Stage 5: dedupe
        unique, groups = TitleDeduplicator(settings.dedupe_threshold).deduplicate(curated)
        if ui:
            ui.record_stage("dedupe", len(curated), len(unique), details=f"{len(groups)} duplicate groups")

        # Stage 6: bucket assembly
        assembler = BucketAssembler(
            feed_metadata=feed_metadata,
            thresholds=settings.bucket_thresholds,
            competitors=settings.competitors,
            internal_exclusions=settings.internal_exclusions,
        )
        selection = assembler.assemble(unique)
        if ui:
            ui.record_stage("assemble", len(unique), selection.total_items)

    if selection.is_empty:
        raise NoRelevantContent(len(items))

    return selection


@click.command()
@click.argument("items_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--mock", is_flag=True, help="Use the offline mock completion client")
@click.option("--model", help="Completion model to use (e.g. 'gpt-4o-mini')")
@click.option("--batch-size", type=click.IntRange(min=1), help="Items per completion request")
@click.option("--concurrency", type=click.IntRange(min=1), help="Concurrent completion requests")
@click.option("--hybrid", is_flag=True, help="Blend LLM ratings with the term score")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["markdown", "json"]),
    default="markdown",
    help="Output format",
)
@click.option(
    "--output",
    "-o",
    type=click.File("w"),
    default="-",
    help="Output file (default: stdout)",
)
@click.option("--log-level", default="ERROR", help="Log level")
@click.option("--verbose", is_flag=True, help="Show detailed progress information")
@click.option(
    "--validate-config",
    "validate_config_flag",
    is_flag=True,
    help="Validate configuration and exit",
)
def cli(
    items_file,
    mock,
    model,
    batch_size,
    concurrency,
    hybrid,
    output_format,
    output,
    log_level,
    verbose,
    validate_config_flag,
):
    """Digest Curator - curate candidate items into a bucketed digest."""
    actual_log_level = "INFO" if verbose else log_level
    setup_logging(log_level=actual_log_level, json_logging=False, quiet_libraries=not verbose)

    ui = init_ui(verbose=verbose)
    ui.show_banner()

    settings = get_settings()
    if mock:
        settings.mock = True
    if model:
        settings.llm_model_override = model
    if batch_size:
        settings.batch_size = batch_size
    if concurrency:
        settings.max_concurrency = concurrency
    if hybrid:
        settings.hybrid_scoring = True

    if validate_config_flag:
        if validate_config(settings):
            ui.success("Configuration is valid")
            sys.exit(0)
        ui.error("Configuration validation failed")
        sys.exit(1)

    if not validate_config(settings):
        ui.error("Configuration validation failed. Use --validate-config for details.")
        sys.exit(1)

    try:
        completion = create_completion_client(settings)
        items = load_items(items_file)
        ui.info(f"Loaded {len(items)} candidate items from {items_file}")
        if not settings.mock:
            ui.show_model_info(settings.model_name)

        selection = asyncio.run(run_pipeline(items, settings, completion, ui=ui))

    except ConfigurationError as e:
        ui.error(str(e))
        sys.exit(1)
    except NoRelevantContent as e:
        logger.info("Empty selection", error=str(e))
        ui.warning("No relevant content found.")
        click.echo("No relevant content found.")
        return
    except Exception as e:
        logger.error("CLI execution failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    output.write(render_digest(selection, settings, output_format=output_format))

    stages = ui.stage_results
    ui.show_final_summary(
        total_items=len(items),
        curated_items=stages["curation"].output_count if "curation" in stages else 0,
        unique_items=stages["dedupe"].output_count if "dedupe" in stages else 0,
        selected_items=selection.total_items,
        model_used="mock" if settings.mock else settings.model_name,
        output_file=None if output.name == "<stdout>" else output.name,
    )


if __name__ == "__main__":
    cli()
