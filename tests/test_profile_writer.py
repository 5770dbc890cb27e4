"""Tests for profile rendering and writing"""

import logging
import shlex

from workshop_setup.domain.config.profile import ProfileConfig
from workshop_setup.domain.models.credentials import DatabaseCredentials
from workshop_setup.domain.models.stack_outputs import StackOutputs
from workshop_setup.infrastructure.profile_writer import (
    BEGIN_MARKER,
    END_MARKER,
    ProfileWriter,
    WorkshopEnvironment,
    build_exports,
    merge_profile_block,
    render_profile_block,
)

MAIN = DatabaseCredentials(
    host="main.cluster-abc.rds.amazonaws.com",
    port=5432,
    username="postgres",
    password="p'w$d",
    dbname="workshop",
)
IDR = DatabaseCredentials(
    host="idr.cluster-abc.rds.amazonaws.com",
    port=5432,
    username="postgres",
    password="idrpw",
    dbname="idr",
)


def _env(**kwargs) -> WorkshopEnvironment:
    outputs = StackOutputs(
        main_secret_arn="arn:main",
        main_endpoint=MAIN.host,
        incident_table="incidents",
        main_kb_id="KB123",
    )
    defaults = dict(stack_name="dat301", region="us-west-2", outputs=outputs, main=MAIN)
    defaults.update(kwargs)
    return WorkshopEnvironment(**defaults)


def _config(tmp_path, **kwargs) -> ProfileConfig:
    defaults = dict(path=tmp_path / ".bashrc", owner=None)
    defaults.update(kwargs)
    return ProfileConfig(**defaults)


class TestBuildExports:
    """Tests for build_exports"""

    def test_main_database_exports(self, tmp_path):
        """Test PG* defaults point at the main database"""
        exports = build_exports(_env(), _config(tmp_path))
        assert exports["PGHOST"] == MAIN.host
        assert exports["PGPASSWORD"] == MAIN.password
        assert exports["DB_PORT"] == "5432"
        assert exports["AWS_DEFAULT_REGION"] == "us-west-2"
        assert exports["DYNAMODB_TABLE"] == exports["INCIDENT_TABLE"] == "incidents"

    def test_missing_databases_yield_none(self, tmp_path):
        """Test exports for unavailable databases are None"""
        exports = build_exports(_env(), _config(tmp_path))
        assert exports["IDR_CLUSTER_ENDPOINT"] is None
        assert exports["IDR_IOPS_ENDPOINT"] is None

    def test_demo_user(self, tmp_path):
        """Test demo credentials are exported only when configured"""
        exports = build_exports(_env(), _config(tmp_path))
        assert exports["DEMO_USERNAME"] == "demo"
        assert "DEMO_PASSWORD" not in exports

        exports = build_exports(_env(), _config(tmp_path, demo_password="Demo!"))
        assert exports["DEMO_PASSWORD"] == "Demo!"


class TestRenderProfileBlock:
    """Tests for render_profile_block"""

    def test_block_is_delimited(self, tmp_path):
        """Test the block starts and ends with the markers"""
        block = render_profile_block(_env(), _config(tmp_path))
        assert block.startswith(BEGIN_MARKER + "\n")
        assert block.endswith(END_MARKER + "\n")

    def test_values_are_shell_quoted(self, tmp_path):
        """Test values with shell metacharacters are quoted"""
        block = render_profile_block(_env(), _config(tmp_path))
        assert f"export PGPASSWORD={shlex.quote(MAIN.password)}" in block
        assert "export AWS_REGION=us-west-2" in block

    def test_psql_functions_only_for_fetched_databases(self, tmp_path):
        """Test helper functions exist only for databases with credentials"""
        block = render_profile_block(_env(idr=IDR), _config(tmp_path))
        assert "function psql_main() {" in block
        assert "function psql_idr_acu() {" in block
        assert "psql_idr_iops" not in block
        assert 'PGDATABASE=idr psql "$@"' in block

    def test_none_exports_are_omitted(self, tmp_path):
        """Test variables without a value are not exported"""
        block = render_profile_block(_env(), _config(tmp_path))
        assert "IDR_CLUSTER_ENDPOINT" not in block
        assert "export MAIN_KB_ID=KB123" in block

    def test_aliases_keep_variables_unexpanded(self, tmp_path):
        """Test alias commands are single-quoted so variables expand at use"""
        block = render_profile_block(_env(), _config(tmp_path))
        assert "alias main-test='/workshop/load-test/run_stress_test.sh -s $MAIN_SECRET_ARN -w CPU'" in block
        assert "alias workshop-env=" in block

    def test_venv_activation(self, tmp_path):
        """Test virtualenv activation is optional"""
        block = render_profile_block(_env(), _config(tmp_path, venv_activate=None))
        assert "source" not in block

        block = render_profile_block(_env(), _config(tmp_path, venv_activate="/opt/venv/bin/activate"))
        assert "source /opt/venv/bin/activate" in block


class TestMergeProfileBlock:
    """Tests for merge_profile_block"""

    def test_append_to_empty(self):
        """Test an empty profile becomes the block"""
        assert merge_profile_block("", "BLOCK\n") == "BLOCK\n"

    def test_append_after_existing_content(self):
        """Test a newline is added before appending"""
        assert merge_profile_block("alias ll='ls -l'", "BLOCK\n") == "alias ll='ls -l'\n\nBLOCK\n"

    def test_replace_existing_block(self):
        """Test an existing block is replaced in place"""
        existing = f"before\n{BEGIN_MARKER}\nold\n{END_MARKER}\nafter\n"
        new_block = f"{BEGIN_MARKER}\nnew\n{END_MARKER}\n"
        assert merge_profile_block(existing, new_block) == f"before\n{new_block}after\n"


class TestProfileWriter:
    """Tests for ProfileWriter"""

    def test_write_creates_profile(self, tmp_path):
        """Test the profile is created with owner-only permissions"""
        writer = ProfileWriter(_config(tmp_path))
        path = writer.write(_env())

        assert path == tmp_path / ".bashrc"
        assert BEGIN_MARKER in path.read_text(encoding="utf-8")
        assert path.stat().st_mode & 0o777 == 0o600

    def test_rewrite_does_not_duplicate(self, tmp_path):
        """Test writing twice keeps one block and surrounding content"""
        profile = tmp_path / ".bashrc"
        profile.write_text("# user settings\n", encoding="utf-8")
        writer = ProfileWriter(_config(tmp_path))

        writer.write(_env())
        writer.write(_env(idr=IDR))

        content = profile.read_text(encoding="utf-8")
        assert content.startswith("# user settings\n")
        assert content.count(BEGIN_MARKER) == 1
        assert "psql_idr_acu" in content

    def test_unknown_owner_is_a_warning(self, tmp_path, caplog):
        """Test a failed ownership change does not fail the write"""
        writer = ProfileWriter(_config(tmp_path, owner="no-such-user-workshop"))
        with caplog.at_level(logging.WARNING):
            path = writer.write(_env())
        assert path.exists()
        assert "Could not change owner" in caplog.text
