"""Tests for configuration loading and engine assembly."""

import os

import pytest
from pydantic import ValidationError

from stepflow.config import (
    AppConfig,
    DatabaseType,
    LogLevel,
    get_config,
    get_testing_config,
    load_config,
    reset_config,
    validate_config,
)
from stepflow.core.exceptions import ConfigurationError
from stepflow.core.execution_engine import ExecutionEngine
from stepflow.factory import create_execution_engine
from stepflow.models.core import ExecutionStatusEnum, WorkflowDefinition, WorkflowNode


class TestAppConfig:
    """Configuration model defaults and validation."""

    def test_defaults(self):
        config = AppConfig()
        assert config.app_name == "stepflow"
        assert config.database_type == DatabaseType.SQLITE
        assert config.is_sqlite
        assert config.passthrough_step_types == ["start", "end", "input", "output"]
        assert config.log_level == LogLevel.INFO
        assert not config.record_history

    def test_unsupported_database_scheme(self):
        with pytest.raises(ValidationError):
            AppConfig(database_url="oracle://db")

    def test_driver_suffix_accepted(self):
        config = AppConfig(database_url="postgresql+psycopg2://user@host/db")
        assert config.database_type == DatabaseType.POSTGRESQL

    def test_passthrough_types_normalized(self):
        config = AppConfig(passthrough_step_types=[" Start", "END", ""])
        assert config.passthrough_step_types == ["start", "end"]

    def test_negative_rotation_rejected(self):
        with pytest.raises(ValidationError):
            AppConfig(log_backup_count=-1)


class TestEnvironmentLoading:
    """STEPFLOW_* environment variables and .env files."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("STEPFLOW_DEBUG", "true")
        monkeypatch.setenv("STEPFLOW_LOG_LEVEL", "debug")
        monkeypatch.setenv("STEPFLOW_PASSTHROUGH_STEP_TYPES", "start,end,note")
        monkeypatch.setenv("STEPFLOW_LOG_MAX_SIZE", "2048")

        config = AppConfig.from_env()
        assert config.debug is True
        assert config.log_level == LogLevel.DEBUG
        assert config.passthrough_step_types == ["start", "end", "note"]
        assert config.log_max_size == 2048

    def test_get_config_is_cached_until_reset(self, monkeypatch):
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv("STEPFLOW_APP_NAME", "renamed")
        assert get_config().app_name == "stepflow"
        reset_config()
        assert get_config().app_name == "renamed"

    def test_load_config_reads_dotenv_file(self, tmp_path):
        env_file = tmp_path / "stepflow.env"
        env_file.write_text("STEPFLOW_APP_NAME=from-dotenv\nSTEPFLOW_RECORD_HISTORY=1\n")

        try:
            config = load_config(str(env_file))
            assert config.app_name == "from-dotenv"
            assert config.record_history is True
            assert get_config() is config
        finally:
            os.environ.pop("STEPFLOW_APP_NAME", None)
            os.environ.pop("STEPFLOW_RECORD_HISTORY", None)


class TestValidateConfig:

    def test_creates_missing_directories(self, tmp_path):
        log_file = tmp_path / "logs" / "stepflow.log"
        db_file = tmp_path / "data" / "runs.db"
        config = AppConfig(log_file=str(log_file), database_url=f"sqlite:///{db_file}")

        validate_config(config)

        assert log_file.parent.is_dir()
        assert db_file.parent.is_dir()

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")
        config = AppConfig(log_file=str(blocker / "sub" / "stepflow.log"))

        with pytest.raises(ConfigurationError):
            validate_config(config)


class TestCreateExecutionEngine:
    """Assembling an engine from configuration."""

    def test_components_without_history(self):
        components = create_execution_engine({"s3": lambda config: {}}, config=get_testing_config())
        assert isinstance(components.engine, ExecutionEngine)
        assert components.history is None
        assert components.registry.has("s3")
        assert components.engine.passthrough_types == {"start", "end", "input", "output"}

    @pytest.mark.asyncio
    async def test_history_enabled(self):
        config = AppConfig(database_url="sqlite:///:memory:", record_history=True)
        components = create_execution_engine({"s3": lambda config: {"bucketName": "b"}}, config=config)
        workflow = WorkflowDefinition(nodes=[WorkflowNode(id="A", type="s3")])

        execution = await components.engine.execute_workflow(workflow)

        assert execution.status == ExecutionStatusEnum.COMPLETED
        assert components.history.get_execution(execution.id).status == ExecutionStatusEnum.COMPLETED
        assert components.validator.validate(workflow).is_valid
