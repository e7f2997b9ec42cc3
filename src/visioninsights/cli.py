import json
import sys

import click

from visioninsights.ai.pipeline import VideoAnalysisPipeline
from visioninsights.base import progress
from visioninsights.base.description import AnalysisReport
from visioninsights.exceptions import ConfigError
from visioninsights.utils.logger import setup_logging


@click.group(help="Analyze videos frame by frame and summarize what happens in them.")
@click.option("--log-level", default=None, help="Logging level, overrides the LOG_LEVEL environment variable.")
def main(log_level: str | None) -> None:
    setup_logging(log_level)


@main.command(help="Analyze a video URL or local file and print the JSON report.")
@click.argument("video", type=str)
@click.option(
    "-o",
    "--output",
    default=None,
    help="File to write the report to. Defaults to stdout.",
    type=click.Path(dir_okay=False, writable=True),
)
@click.option(
    "--vision-url",
    envvar="VISION_API_URL",
    default=None,
    help="Vision workflow endpoint. Overrides [vision] api_url.",
    type=str,
)
@click.option("--progress/--no-progress", "show_progress", default=False, help="Show a progress bar over batches.")
def analyze(video: str, output: str | None, vision_url: str | None, show_progress: bool) -> None:
    progress.configure(progress=show_progress)
    try:
        pipeline = VideoAnalysisPipeline.from_settings(vision_api_url=vision_url)
    except ConfigError as e:
        raise click.ClickException(str(e))

    report = pipeline.run_analysis(video)

    if output:
        report.save(output)
        click.echo(f"Report written to {output}", err=True)
    else:
        click.echo(report.to_json())

    if not report.success:
        sys.exit(1)


@main.command(help="Score crowd, behavioral and environmental diversity of a video summary.")
@click.option("-s", "--summary", default=None, help="Summary text to score.", type=str)
@click.option(
    "-r",
    "--report",
    "report_path",
    default=None,
    help="Analysis report JSON whose summary should be scored.",
    type=click.Path(exists=True, dir_okay=False),
)
def score(summary: str | None, report_path: str | None) -> None:
    if (summary is None) == (report_path is None):
        raise click.UsageError("Pass exactly one of --summary or --report.")

    if report_path is not None:
        report = AnalysisReport.load(report_path)
        if report.summary_report is None or report.summary_report.summary is None:
            raise click.ClickException(f"Report {report_path} has no summary to score.")
        summary = report.summary_report.summary
    assert summary is not None

    try:
        pipeline = VideoAnalysisPipeline.from_settings(with_analyzer=False)
    except ConfigError as e:
        raise click.ClickException(str(e))

    scores = pipeline.score_diversity(summary)
    click.echo(json.dumps(scores.to_dict(), indent=2))


if __name__ == "__main__":
    main()
