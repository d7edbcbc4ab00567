"""Step registry mapping step type tags to the executors that run them."""

import inspect
from typing import Any, Callable, Dict, List, Optional, Union

from .exceptions import StepRegistryError, UnsupportedStepTypeError
from .logging import get_logger

logger = get_logger(__name__)


class StepExecutor:
    """Capability that performs the external call behind one step type.

    Subclasses implement ``execute``; it receives the step configuration after
    variable substitution and returns the raw result, or raises on failure.
    Timeouts and cancellation are the executor's own concern.
    """

    description: str = ""

    async def execute(self, config: Dict[str, Any]) -> Any:
        raise NotImplementedError


class CallableStepExecutor(StepExecutor):
    """Adapts a plain or async function into a StepExecutor."""

    def __init__(self, function: Callable[[Dict[str, Any]], Any], description: str = ""):
        self.function = function
        self.description = description

    async def execute(self, config: Dict[str, Any]) -> Any:
        result = self.function(config)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        name = getattr(self.function, "__name__", repr(self.function))
        return f"CallableStepExecutor({name})"


class StepRegistry:
    """Registry of step executors keyed by case-insensitive type tag."""

    def __init__(self):
        self._executors: Dict[str, StepExecutor] = {}

    @staticmethod
    def _normalize(step_type: str) -> str:
        if not step_type or not step_type.strip():
            raise StepRegistryError("Step type cannot be empty")
        return step_type.strip().lower()

    def register(
        self,
        step_type: str,
        executor: Union[StepExecutor, Callable[[Dict[str, Any]], Any]],
        description: str = "",
        replace: bool = False
    ) -> None:
        """Register an executor for a step type.

        Args:
            step_type: Type tag the executor handles
            executor: StepExecutor instance, or a function taking the resolved config
            description: Optional description of the step type
            replace: Allow overwriting an existing registration

        Raises:
            StepRegistryError: If the type is already registered or the executor is invalid
        """
        key = self._normalize(step_type)

        if key in self._executors and not replace:
            raise StepRegistryError(
                f"Step type '{key}' is already registered",
                step_type=key,
                operation="register"
            )

        if isinstance(executor, StepExecutor):
            wrapped = executor
            if description:
                wrapped.description = description
        elif callable(executor):
            try:
                sig = inspect.signature(executor)
                if len(sig.parameters) == 0:
                    raise StepRegistryError(
                        f"Executor for '{key}' must accept the step configuration",
                        step_type=key,
                        operation="register"
                    )
            except (ValueError, TypeError) as e:
                raise StepRegistryError(
                    f"Cannot inspect executor signature for step type '{key}': {e}",
                    step_type=key,
                    operation="register"
                )
            wrapped = CallableStepExecutor(executor, description)
        else:
            raise StepRegistryError(
                f"Executor for '{key}' must be a StepExecutor or a callable",
                step_type=key,
                operation="register"
            )

        self._executors[key] = wrapped
        logger.info(f"Registered executor for step type '{key}'")

    def unregister(self, step_type: str) -> bool:
        """Remove a step type. Returns False if it was not registered."""
        key = self._normalize(step_type)
        removed = self._executors.pop(key, None) is not None
        if removed:
            logger.info(f"Unregistered executor for step type '{key}'")
        return removed

    def get(self, step_type: str) -> StepExecutor:
        """Retrieve the executor for a step type.

        Raises:
            UnsupportedStepTypeError: If no executor is registered for the type
        """
        key = self._normalize(step_type)
        executor = self._executors.get(key)
        if executor is None:
            raise UnsupportedStepTypeError(
                f"Unsupported step type: {step_type}",
                node_type=step_type
            )
        return executor

    def has(self, step_type: str) -> bool:
        """Check if a step type has an executor."""
        if not step_type or not step_type.strip():
            return False
        return step_type.strip().lower() in self._executors

    def list_types(self) -> Dict[str, str]:
        """Registered step types with their descriptions."""
        return {key: executor.description for key, executor in sorted(self._executors.items())}

    def types(self) -> List[str]:
        return sorted(self._executors)

    async def dispatch(self, step_type: str, config: Dict[str, Any]) -> Any:
        """Run the executor registered for step_type against a resolved configuration."""
        executor = self.get(step_type)
        logger.debug(f"Dispatching step type '{step_type}' to {executor!r}")
        return await executor.execute(config)

    def clear(self) -> None:
        self._executors.clear()


def create_registry(executors: Optional[Dict[str, Any]] = None) -> StepRegistry:
    """Build a registry pre-populated from a type -> executor mapping."""
    registry = StepRegistry()
    for step_type, executor in (executors or {}).items():
        registry.register(step_type, executor)
    return registry
