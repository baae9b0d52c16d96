"""
cloudcompose CLI entry point.
"""
import sys
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cloudcompose import __version__
from cloudcompose.composers.queue import QueueComposer
from cloudcompose.composers.queue_trigger import QueueTriggerComposer
from cloudcompose.config import load_options
from cloudcompose.errors import ConfigurationError
from cloudcompose.models.resource import ResourceGraph
from cloudcompose.template import dump, merge


def _output_options(fn):
    """Options shared by every compose command."""
    fn = click.option("--no-color", is_flag=True, default=False,
                      help="Disable rich terminal color output.")(fn)
    fn = click.option("--summary", is_flag=True, default=False,
                      help="Print the resource table only, do not write the template.")(fn)
    fn = click.option("--output", "-o", type=click.Path(), default=None,
                      help="Write the template to this file (default: stdout).")(fn)
    fn = click.option("--format", "output_format",
                      type=click.Choice(["json", "yaml"], case_sensitive=False),
                      default="json", show_default=True, help="Template format.")(fn)
    fn = click.option("--condition", default=None,
                      help="Template condition that controls every created resource.")(fn)
    fn = click.option("--options", "options_file", type=click.Path(exists=True, dir_okay=False),
                      default=None, help="YAML or JSON file with composer options.")(fn)
    return fn


def _build_options(options_file: Optional[str], logical_name: str, **overrides: Any) -> Dict[str, Any]:
    options = load_options(options_file) if options_file else {}
    options["LogicalName"] = logical_name
    options.update({k: v for k, v in overrides.items() if v is not None})
    return options


def _print_summary_table(graph: ResourceGraph, no_color: bool) -> None:
    tbl = Table(title="Composed Resources", show_header=True, header_style="bold")
    tbl.add_column("Logical name", style="cyan" if not no_color else "")
    tbl.add_column("Type")
    tbl.add_column("Condition", style="dim")
    tbl.add_column("DependsOn", style="dim")

    for name, resource in graph.items():
        depends_on = resource.depends_on
        if isinstance(depends_on, list):
            depends_on = ", ".join(depends_on)
        tbl.add_row(name, resource.resource_type, resource.condition or "", depends_on or "")

    Console(stderr=True, no_color=no_color).print(tbl)


def _emit(
    graph: ResourceGraph,
    output_format: str,
    output: Optional[str],
    summary: bool,
    no_color: bool,
) -> None:
    stderr = Console(stderr=True, no_color=no_color)
    stderr.print(f"Composed [bold]{len(graph)}[/bold] resources.")

    if summary or output:
        _print_summary_table(graph, no_color)
    if summary:
        return

    content = dump(merge(graph), output_format)
    if output:
        try:
            with open(output, "w", encoding="utf-8", newline="\n") as fh:
                fh.write(content)
        except OSError as exc:
            _fail(f"Cannot write {output}: {exc}", no_color)
        stderr.print(f"Template written to [bold]{output}[/bold]")
    else:
        click.echo(content)


def _fail(message: Any, no_color: bool) -> None:
    Console(stderr=True, no_color=no_color).print(f"[red]Error:[/red] {escape(str(message))}")
    sys.exit(2)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__)
@click.pass_context
def cli(ctx):
    """cloudcompose — compose CloudFormation resource graphs from a few options."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.command()
@click.argument("logical_name")
@click.option("--fifo", is_flag=True, default=False,
              help="Create a FIFO queue (no SNS topic or subscription).")
@click.option("--existing-topic-arn", default=None,
              help="Subscribe the queue to this SNS topic instead of creating one.")
@click.option("--topic-name", default=None, help="Name of the created SNS topic.")
@click.option("--queue-name", default=None, help="Physical queue name.")
@_output_options
def queue(
    logical_name: str,
    fifo: bool,
    existing_topic_arn: Optional[str],
    topic_name: Optional[str],
    queue_name: Optional[str],
    options_file: Optional[str],
    condition: Optional[str],
    output_format: str,
    output: Optional[str],
    summary: bool,
    no_color: bool,
) -> None:
    """
    Compose an SQS queue with its dead-letter queue.

    Standard queues also get an SNS topic (or a subscription to an existing
    one) and the queue policy that lets the topic deliver.
    """
    try:
        options = _build_options(
            options_file,
            logical_name,
            FifoQueue=True if fifo else None,
            ExistingTopicArn=existing_topic_arn,
            TopicName=topic_name,
            QueueName=queue_name,
            Condition=condition,
        )
        graph = QueueComposer().compose(options)
    except ConfigurationError as exc:
        _fail(exc, no_color)

    _emit(graph, output_format, output, summary, no_color)


@cli.command("queue-trigger")
@click.argument("logical_name")
@click.option("--event-source-arn", default=None, help="ARN of the queue to consume from.")
@click.option("--reserved-concurrency", "reserved", type=int, default=None,
              help="ReservedConcurrentExecutions for the function.")
@click.option("--batch-size", type=int, default=None, help="Messages per invocation (default 1).")
@click.option("--code-bucket", default=None, help="S3 bucket holding the function code.")
@click.option("--code-key", default=None, help="S3 key of the function code bundle.")
@click.option("--role-arn", default=None, help="Use this execution role instead of generating one.")
@_output_options
def queue_trigger(
    logical_name: str,
    event_source_arn: Optional[str],
    reserved: Optional[int],
    batch_size: Optional[int],
    code_bucket: Optional[str],
    code_key: Optional[str],
    role_arn: Optional[str],
    options_file: Optional[str],
    condition: Optional[str],
    output_format: str,
    output: Optional[str],
    summary: bool,
    no_color: bool,
) -> None:
    """Compose a Lambda function triggered by messages in an SQS queue."""
    try:
        code = None
        if code_bucket or code_key:
            if not (code_bucket and code_key):
                raise ConfigurationError("--code-bucket and --code-key must be given together")
            code = {"S3Bucket": code_bucket, "S3Key": code_key}
        options = _build_options(
            options_file,
            logical_name,
            EventSourceArn=event_source_arn,
            ReservedConcurrentExecutions=reserved,
            BatchSize=batch_size,
            Code=code,
            RoleArn=role_arn,
            Condition=condition,
        )
        graph = QueueTriggerComposer().compose(options)
    except ConfigurationError as exc:
        _fail(exc, no_color)

    _emit(graph, output_format, output, summary, no_color)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
