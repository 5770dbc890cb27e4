"""Service that bootstraps the workshop environment"""

import logging
import time
from typing import Any, Callable, Optional

from workshop_setup.domain.config.app import AppConfig
from workshop_setup.domain.models.credentials import DatabaseCredentials
from workshop_setup.domain.models.setup_report import SetupReport, StepResult
from workshop_setup.domain.models.stack_outputs import StackOutputs
from workshop_setup.infrastructure.aws.cloudformation import StackOutputReader
from workshop_setup.infrastructure.aws.dynamodb import TableCleaner
from workshop_setup.infrastructure.aws.rds import RdsClient, instance_id_from_endpoint
from workshop_setup.infrastructure.aws.secrets import SecretsClient
from workshop_setup.infrastructure.pgbench import PgbenchRunner
from workshop_setup.infrastructure.profile_writer import ProfileWriter, WorkshopEnvironment
from workshop_setup.infrastructure.retry import (
    Operation,
    OutputSlot,
    log_attempts,
    retry_with_backoff,
)

logger = logging.getLogger(__name__)


class SetupError(Exception):
    """A required setup step failed."""

    pass


class WorkshopSetupService:
    """Runs the workshop setup steps in order

    Every fallible external call goes through the retry driver with the policy
    named after the step. Required steps abort the run when their retries are
    exhausted; optional steps are logged as warnings and the run continues.
    """

    def __init__(
        self,
        config: AppConfig,
        stack_reader: StackOutputReader,
        secrets: SecretsClient,
        rds: RdsClient,
        table_cleaner: TableCleaner,
        profile_writer: ProfileWriter,
        pgbench: Optional[PgbenchRunner] = None,
        sleep: Optional[Callable[[float], Any]] = None,
    ):
        """Initialize setup service

        Args:
            config: Application configuration (stack name must be set)
            stack_reader: CloudFormation output reader
            secrets: Secrets Manager client
            rds: RDS client
            table_cleaner: DynamoDB table cleaner
            profile_writer: Login profile writer
            pgbench: pgbench runner (creates default if None)
            sleep: Sleep function for retries and the settle period (defaults to time.sleep)
        """
        self.config = config
        self.stack_reader = stack_reader
        self.secrets = secrets
        self.rds = rds
        self.table_cleaner = table_cleaner
        self.profile_writer = profile_writer
        self.pgbench = pgbench or PgbenchRunner()
        self.sleep = sleep or time.sleep

    @property
    def stack_name(self) -> str:
        name = self.config.stack.name
        if not name:
            raise SetupError("Stack name is not set. Set WORKSHOP_STACK_NAME or stack.name in config.")
        return name

    def _retry(self, policy_name: str, label: str, operation: Operation) -> bool:
        policy = self.config.retry.policy_for(policy_name)
        return retry_with_backoff(
            operation,
            policy,
            on_attempt=log_attempts(logger, label),
            sleep=self.sleep,
        )

    def _run_step(
        self,
        report: SetupReport,
        name: str,
        operation: Operation,
        *,
        required: bool,
        policy_name: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> StepResult:
        """Run one retried step and record it

        Raises:
            SetupError: If a required step is exhausted
        """
        logger.info(f"Running step: {name}")
        succeeded = self._retry(policy_name or name, name, operation)
        result = report.add(StepResult(name=name, succeeded=succeeded, required=required, detail=detail))
        if not succeeded:
            if required:
                raise SetupError(f"Required step '{name}' failed")
            logger.warning(f"Step '{name}' failed, continuing with partial setup")
        return result

    def _skip(self, report: SetupReport, name: str, reason: str) -> StepResult:
        logger.info(f"Skipping {name}: {reason}")
        return report.add(StepResult(name=name, succeeded=False, skipped=True, detail=reason))

    def read_stack_outputs(self, report: Optional[SetupReport] = None) -> StackOutputs:
        """Fetch stack outputs and check the required ones are present

        Raises:
            SetupError: If outputs cannot be read or required outputs are missing
        """
        report = report if report is not None else SetupReport()
        stack_name = self.stack_name
        slot: OutputSlot[StackOutputs] = OutputSlot()
        self._run_step(
            report,
            "stack_outputs",
            slot.capture(lambda: self.stack_reader.read(stack_name)),
            required=True,
            detail=stack_name,
        )
        outputs = slot.value
        missing = outputs.missing_required
        if missing:
            raise SetupError(
                f"Stack {stack_name} is missing required outputs: {', '.join(missing)}"
            )
        logger.info(f"Stack outputs fetched for {stack_name}")
        return outputs

    def fetch_credentials(
        self,
        report: SetupReport,
        name: str,
        secret_arn: Optional[str],
        *,
        required: bool,
    ) -> Optional[DatabaseCredentials]:
        """Fetch credentials from ``secret_arn``, or None when unavailable"""
        if not secret_arn:
            if required:
                raise SetupError(f"Secret ARN for {name} is not available")
            self._skip(report, name, "secret ARN not available")
            return None

        slot: OutputSlot[DatabaseCredentials] = OutputSlot()
        result = self._run_step(
            report,
            name,
            slot.capture(lambda: self.secrets.get_database_credentials(secret_arn)),
            required=required,
            policy_name="credentials",
        )
        return slot.value if result.succeeded else None

    def build_environment(self, report: Optional[SetupReport] = None) -> WorkshopEnvironment:
        """Read stack outputs and fetch all database credentials"""
        report = report if report is not None else SetupReport()
        outputs = self.read_stack_outputs(report)
        main = self.fetch_credentials(report, "main_credentials", outputs.main_secret_arn, required=True)
        idr = self.fetch_credentials(report, "idr_credentials", outputs.idr_secret_arn, required=False)
        iops = self.fetch_credentials(report, "iops_credentials", outputs.iops_secret_arn, required=False)
        return WorkshopEnvironment(
            stack_name=self.stack_name,
            region=self.config.stack.region,
            outputs=outputs,
            main=main,
            idr=idr,
            iops=iops,
        )

    def write_profile(self, report: SetupReport, env: WorkshopEnvironment) -> StepResult:
        """Write the login profile. Local writes are not retried."""
        try:
            path = self.profile_writer.write(env)
        except OSError as e:
            report.add(StepResult(name="profile", succeeded=False, required=True, detail=str(e)))
            raise SetupError(f"Failed to write profile {self.profile_writer.path}: {e}") from e
        return report.add(StepResult(name="profile", succeeded=True, required=True, detail=str(path)))

    def seed_pgbench(self, report: SetupReport, credentials: Optional[DatabaseCredentials]) -> StepResult:
        name = "pgbench"
        pgbench_config = self.config.pgbench
        if not pgbench_config.enabled:
            return self._skip(report, name, "disabled")
        if credentials is None:
            return self._skip(report, name, "IDR instance credentials not available")
        return self._run_step(
            report,
            name,
            lambda: self.pgbench.initialize(credentials, pgbench_config.scale),
            required=False,
            detail=credentials.host,
        )

    def ensure_performance_insights(self, report: SetupReport, label: str, instance_id: str) -> StepResult:
        """Enable Performance Insights on ``instance_id`` unless already enabled"""
        name = f"performance_insights:{label}"
        status: OutputSlot[bool] = OutputSlot()
        checked = self._retry(
            "performance_insights",
            f"{name} status",
            status.capture(lambda: self.rds.performance_insights_enabled(instance_id)),
        )
        if not checked:
            logger.warning(f"Failed to check Performance Insights status on {label} ({instance_id})")
            return report.add(StepResult(name=name, succeeded=False, detail="status check failed"))
        if status.value:
            logger.info(f"Performance Insights already enabled on {label}")
            return report.add(StepResult(name=name, succeeded=True, detail="already enabled"))

        retention = self.config.performance_insights.retention_days
        return self._run_step(
            report,
            name,
            lambda: self.rds.enable_performance_insights(instance_id, retention),
            required=False,
            policy_name="performance_insights",
            detail=instance_id,
        )

    def _resolve_cluster_instance(self, endpoint: Optional[str]) -> Optional[str]:
        cluster_id = instance_id_from_endpoint(endpoint)
        if cluster_id is None:
            return None
        member: OutputSlot[Optional[str]] = OutputSlot()
        if not self._retry(
            "performance_insights",
            f"members of {cluster_id}",
            member.capture(lambda: self.rds.cluster_instance(cluster_id)),
        ):
            return None
        return member.value

    def enable_performance_insights(self, report: SetupReport, env: WorkshopEnvironment) -> None:
        if not self.config.performance_insights.enabled:
            self._skip(report, "performance_insights", "disabled")
            return

        targets = [
            ("main", self._resolve_cluster_instance(env.main.host if env.main else env.outputs.main_endpoint)),
            ("idr_cluster", self._resolve_cluster_instance(env.idr.host if env.idr else env.outputs.idr_cluster_endpoint)),
            ("idr_instance", instance_id_from_endpoint(env.iops.host if env.iops else env.outputs.idr_instance_endpoint)),
        ]
        for label, instance_id in targets:
            if instance_id is None:
                self._skip(report, f"performance_insights:{label}", "instance not available")
                continue
            self.ensure_performance_insights(report, label, instance_id)

    def truncate_incident_table(self, report: SetupReport, table_name: Optional[str]) -> StepResult:
        name = "truncate_table"
        cleanup = self.config.cleanup
        if not cleanup.enabled:
            return self._skip(report, name, "disabled")
        if not table_name:
            return self._skip(report, name, "incident table not available")

        if cleanup.settle_seconds > 0:
            logger.info(f"Waiting {cleanup.settle_seconds:g}s for bootstrap writes to settle")
            self.sleep(cleanup.settle_seconds)

        deleted: OutputSlot[int] = OutputSlot()
        result = self._run_step(
            report,
            name,
            deleted.capture(lambda: self.table_cleaner.truncate(table_name)),
            required=False,
            detail=table_name,
        )
        if result.succeeded:
            result.detail = f"{table_name}: {deleted.value} items deleted"
        return result

    def run(self) -> SetupReport:
        """Run the whole setup

        Returns:
            Report of every step

        Raises:
            SetupError: If a required step fails
        """
        report = SetupReport()
        logger.info(f"Setting up workshop stack {self.stack_name} in {self.config.stack.region}")

        env = self.build_environment(report)
        self.write_profile(report, env)
        self.seed_pgbench(report, env.iops)
        self.enable_performance_insights(report, env)
        self.truncate_incident_table(report, env.outputs.incident_table)

        warnings = report.warnings
        if warnings:
            logger.warning(
                f"Setup finished with {len(warnings)} warning(s): "
                + ", ".join(s.name for s in warnings)
            )
        else:
            logger.info("Setup completed successfully")
        return report
