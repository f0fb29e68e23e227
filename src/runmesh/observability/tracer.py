"""Per-run trace collection, reported through the standard logging machinery."""

import logging
import time
import uuid
from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from runmesh.core.schema import Usage

logger = logging.getLogger(__name__)

StepType = Literal["model", "tool", "memory"]


class TraceStep(BaseModel):
    """One traced unit of work."""

    id: str
    type: StepType
    detail: Dict[str, Any] = Field(default_factory=dict)
    timestamp: float


class Trace(BaseModel):
    """Everything recorded for one run."""

    run_id: str
    agent: str
    steps: List[TraceStep] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    tokens_in: Optional[int] = None
    tokens_out: Optional[int] = None
    cost: Optional[float] = None
    duration_ms: float = 0.0


class CostModel(BaseModel):
    """Price per prompt / completion token."""

    prompt: float
    completion: float


def estimate_cost(usage: Usage, cost_model: CostModel) -> float:
    """Price *usage* under *cost_model*; missing counts are treated as zero."""
    prompt_cost = (usage.prompt_tokens or 0) * cost_model.prompt
    completion_cost = (usage.completion_tokens or 0) * cost_model.completion
    return prompt_cost + completion_cost


class Tracer:
    """Collects trace steps and errors for one run and logs each as it happens."""

    def __init__(self, run_id: str, agent: str, cost_model: Optional[CostModel] = None) -> None:
        self.run_id = run_id
        self.agent = agent
        self.cost_model = cost_model
        self._steps: List[TraceStep] = []
        self._errors: List[str] = []
        self._usage = Usage(prompt_tokens=0, completion_tokens=0, total_tokens=0)
        self._start = time.perf_counter()

    def add_step(self, step_type: StepType, detail: Optional[Dict[str, Any]] = None) -> TraceStep:
        step = TraceStep(
            id=uuid.uuid4().hex[:12], type=step_type, detail=detail or {}, timestamp=time.time()
        )
        self._steps.append(step)
        logger.debug("trace_step run=%s agent=%s %s %s", self.run_id, self.agent, step_type, detail)
        return step

    def add_usage(self, usage: Optional[Usage]) -> None:
        """Accumulate token usage reported by a model call."""
        if usage is None:
            return
        self._usage.prompt_tokens = (self._usage.prompt_tokens or 0) + (usage.prompt_tokens or 0)
        self._usage.completion_tokens = (self._usage.completion_tokens or 0) + (
            usage.completion_tokens or 0
        )
        self._usage.total_tokens = (self._usage.total_tokens or 0) + (usage.total_tokens or 0)

    def record_error(self, error: BaseException) -> None:
        self._errors.append(f"{type(error).__name__}: {error}")
        logger.error("trace_error run=%s agent=%s %r", self.run_id, self.agent, error)

    def finalize(self, **metadata: Any) -> Trace:
        """Close the trace; *metadata* overrides computed fields."""
        values: Dict[str, Any] = {
            "run_id": self.run_id,
            "agent": self.agent,
            "steps": list(self._steps),
            "errors": list(self._errors),
            "tokens_in": self._usage.prompt_tokens,
            "tokens_out": self._usage.completion_tokens,
            "duration_ms": (time.perf_counter() - self._start) * 1000,
        }
        if self.cost_model is not None:
            values["cost"] = estimate_cost(self._usage, self.cost_model)
        values.update(metadata)
        trace = Trace(**values)
        logger.info(
            "trace_complete run=%s agent=%s steps=%d errors=%d duration_ms=%.1f",
            trace.run_id,
            trace.agent,
            len(trace.steps),
            len(trace.errors),
            trace.duration_ms,
        )
        return trace
