"""CLI interface for workshop-setup"""

import logging
from pathlib import Path
from typing import Optional

import click

from workshop_setup.application.setup_service import SetupError, WorkshopSetupService
from workshop_setup.domain.config.app import AppConfig
from workshop_setup.domain.models.setup_report import SetupReport
from workshop_setup.infrastructure.aws.cloudformation import StackOutputReader
from workshop_setup.infrastructure.aws.dynamodb import TableCleaner
from workshop_setup.infrastructure.aws.rds import RdsClient
from workshop_setup.infrastructure.aws.secrets import SecretsClient
from workshop_setup.infrastructure.aws.session import AwsClients
from workshop_setup.infrastructure.config.config_manager import ConfigManager, ConfigurationError
from workshop_setup.infrastructure.profile_writer import PSQL_FUNCTIONS, ProfileWriter
from workshop_setup.infrastructure.retry import OutputSlot, log_attempts, retry_with_backoff

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)
    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _load_config(
    ctx: click.Context,
    stack_name: Optional[str] = None,
    region: Optional[str] = None,
) -> AppConfig:
    """Load configuration and apply CLI overrides"""
    verbose = ctx.obj.get("verbose", False)
    try:
        config = ConfigManager(config_path=ctx.obj.get("config_path")).config
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    if stack_name:
        config.stack.name = stack_name
    if region:
        config.stack.region = region
    if not config.stack.name:
        _die("WORKSHOP_STACK_NAME not set. Pass --stack-name or set stack.name in config.")
    return config


def _create_service(config: AppConfig) -> WorkshopSetupService:
    """Wire the setup service with boto3-backed collaborators"""
    clients = AwsClients(config.stack.region)
    return WorkshopSetupService(
        config=config,
        stack_reader=StackOutputReader(clients.client("cloudformation")),
        secrets=SecretsClient(clients.client("secretsmanager")),
        rds=RdsClient(clients.client("rds")),
        table_cleaner=TableCleaner(clients.client("dynamodb")),
        profile_writer=ProfileWriter(config.profile),
    )


def _output_report(report: SetupReport, config: AppConfig) -> None:
    click.echo("\n" + "=" * 80)
    click.echo("Setup Summary")
    click.echo("=" * 80)
    click.echo(f"Stack: {config.stack.name} ({config.stack.region})")
    for step in report.steps:
        line = f"  [{step.status:>7}] {step.name}"
        if step.detail:
            line += f" - {step.detail}"
        click.echo(line)

    warnings = report.warnings
    if warnings:
        click.echo(f"\nCompleted with {len(warnings)} warning(s)", err=True)
    else:
        click.echo("\nWorkshop setup completed successfully!")

    click.echo("\nAvailable commands (after re-login or `source` of the profile):")
    for function, database, description in PSQL_FUNCTIONS:
        # Functions are only written for databases whose credentials were fetched
        step = report.get(f"{database}_credentials")
        if step is not None and step.succeeded:
            click.echo(f"  {function:<16}: {description}")
    for name in config.profile.aliases:
        click.echo(f"  {name}")
    click.echo("  workshop-env    : Show all environment variables")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .workshop-setup.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """workshop-setup - Bootstrap a workshop environment from its CloudFormation stack"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option("--stack-name", type=str, help="Workshop stack name. Overrides WORKSHOP_STACK_NAME.")
@click.option("--region", type=str, help="AWS region. Overrides AWS_REGION.")
@click.option("--skip-pgbench", is_flag=True, help="Don't seed the IDR instance with pgbench")
@click.option("--skip-performance-insights", is_flag=True, help="Don't enable Performance Insights")
@click.option("--skip-cleanup", is_flag=True, help="Don't truncate the incident table")
@click.pass_context
def run(
    ctx,
    stack_name: str,
    region: str,
    skip_pgbench: bool,
    skip_performance_insights: bool,
    skip_cleanup: bool,
):
    """Run the complete workshop setup."""
    verbose = ctx.obj.get("verbose", False)
    config = _load_config(ctx, stack_name, region)
    if skip_pgbench:
        config.pgbench.enabled = False
    if skip_performance_insights:
        config.performance_insights.enabled = False
    if skip_cleanup:
        config.cleanup.enabled = False

    try:
        service = _create_service(config)
        report = service.run()
    except SetupError as e:
        _die(f"Setup failed: {e}", verbose=verbose, exc=e)
    except click.ClickException:
        raise
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)

    _output_report(report, config)


@cli.command()
@click.option("--stack-name", type=str, help="Workshop stack name. Overrides WORKSHOP_STACK_NAME.")
@click.option("--region", type=str, help="AWS region. Overrides AWS_REGION.")
@click.pass_context
def outputs(ctx, stack_name: str, region: str):
    """Print the outputs of the workshop stack."""
    verbose = ctx.obj.get("verbose", False)
    config = _load_config(ctx, stack_name, region)
    try:
        stack_outputs = _create_service(config).read_stack_outputs()
    except SetupError as e:
        _die(str(e), verbose=verbose, exc=e)

    for key, value in stack_outputs.as_dict().items():
        click.echo(f"{key}: {value if value is not None else '-'}")


@cli.command()
@click.option("--stack-name", type=str, help="Workshop stack name. Overrides WORKSHOP_STACK_NAME.")
@click.option("--region", type=str, help="AWS region. Overrides AWS_REGION.")
@click.pass_context
def profile(ctx, stack_name: str, region: str):
    """Print the profile block without writing it."""
    verbose = ctx.obj.get("verbose", False)
    config = _load_config(ctx, stack_name, region)
    try:
        service = _create_service(config)
        env = service.build_environment()
    except SetupError as e:
        _die(str(e), verbose=verbose, exc=e)

    click.echo(service.profile_writer.render(env), nl=False)


@cli.command("truncate-table")
@click.argument("table_name", required=False)
@click.option("--stack-name", type=str, help="Workshop stack name. Overrides WORKSHOP_STACK_NAME.")
@click.option("--region", type=str, help="AWS region. Overrides AWS_REGION.")
@click.pass_context
def truncate_table(ctx, table_name: Optional[str], stack_name: str, region: str):
    """Delete every item of a DynamoDB table.

    TABLE_NAME: Table to empty (default: the stack's incident table)
    """
    verbose = ctx.obj.get("verbose", False)
    if table_name:
        try:
            config = ConfigManager(config_path=ctx.obj.get("config_path")).config
        except ConfigurationError as e:
            _die(str(e), verbose=verbose, exc=e)
        if region:
            config.stack.region = region
    else:
        config = _load_config(ctx, stack_name, region)

    try:
        service = _create_service(config)
        if not table_name:
            table_name = service.read_stack_outputs().incident_table
            if not table_name:
                _die(f"Stack {config.stack.name} has no incident table output")
    except SetupError as e:
        _die(str(e), verbose=verbose, exc=e)

    deleted: OutputSlot[int] = OutputSlot()
    succeeded = retry_with_backoff(
        deleted.capture(lambda: service.table_cleaner.truncate(table_name)),
        config.retry.policy_for("truncate_table"),
        on_attempt=log_attempts(logger, f"truncate {table_name}"),
    )
    if not succeeded:
        _die(f"Failed to truncate {table_name}")
    click.echo(f"Deleted {deleted.value} items from {table_name}")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
