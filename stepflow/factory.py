"""Factory for assembling a configured execution engine."""

from typing import Any, Dict, Optional

from .config import AppConfig, configure_logging, get_config, validate_config
from .core.execution_engine import ExecutionEngine
from .core.graph_validator import GraphValidator
from .core.logging import get_logger
from .core.step_registry import StepRegistry, create_registry
from .storage.database import init_database
from .storage.run_history import RunHistory
from .variables.extractor import VariableExtractor


class EngineComponents:
    """Container for the components of one configured engine."""

    def __init__(self):
        self.config: Optional[AppConfig] = None
        self.registry: Optional[StepRegistry] = None
        self.extractor: Optional[VariableExtractor] = None
        self.history: Optional[RunHistory] = None
        self.validator: Optional[GraphValidator] = None
        self.engine: Optional[ExecutionEngine] = None


def create_execution_engine(
    executors: Optional[Dict[str, Any]] = None,
    config: Optional[AppConfig] = None,
    setup_logs: bool = False
) -> EngineComponents:
    """
    Build an execution engine and its collaborators from configuration.

    Args:
        executors: Step type -> executor mapping to register
        config: Configuration to use; defaults to the global configuration
        setup_logs: Whether to apply the configuration's logging settings

    Returns:
        EngineComponents with every component populated (history only when enabled)
    """
    components = EngineComponents()
    components.config = config or get_config()
    validate_config(components.config)

    if setup_logs:
        configure_logging(components.config)
    logger = get_logger(__name__)

    components.registry = create_registry(executors)
    components.extractor = VariableExtractor()

    if components.config.record_history:
        session_factory = init_database(components.config.database_url, components.config.database_echo)
        components.history = RunHistory(session_factory)
        logger.info(f"Recording run history to {components.config.database_type.value} database")

    components.validator = GraphValidator(
        registry=components.registry,
        passthrough_types=components.config.passthrough_step_types
    )
    components.engine = ExecutionEngine(
        registry=components.registry,
        extractor=components.extractor,
        history=components.history,
        passthrough_types=components.config.passthrough_step_types
    )

    logger.info(f"{components.config.app_name} v{components.config.app_version} engine ready")
    return components
