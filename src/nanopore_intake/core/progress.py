# ============================================================================
# src/nanopore_intake/core/progress.py
# ============================================================================
"""
Progress Reporting

A pure observer of the extraction pipeline. Holds an ordered list of named
steps with weights, and emits a ProgressUpdate to every subscriber on each
transition:

    reporter = ProgressReporter(DEFAULT_PROCESSING_STEPS)
    reporter.on_progress(lambda update: print(format_progress(update.overall_progress)))
    reporter.start()
    reporter.update_step(ProcessingStep.EXTRACTING_TEXT, 50, "Reading pages")
    reporter.complete()

Subscriber exceptions are logged and dropped; they never reach the pipeline.
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_STEP_ESTIMATE_MS = 2000.0


class ProcessingStep(Enum):
    INITIALIZING = "initializing"
    VALIDATING_FILE = "validating_file"
    LOADING_PARSER = "loading_parser"
    EXTRACTING_TEXT = "extracting_text"
    EXTRACTING_METADATA = "extracting_metadata"
    PATTERN_MATCHING = "pattern_matching"
    LLM_PROCESSING = "llm_processing"
    RAG_ENHANCEMENT = "rag_enhancement"
    VALIDATING_DATA = "validating_data"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class StepConfig:
    name: str
    description: str
    estimated_duration_ms: float
    weight: float


STEP_CONFIGS: Dict[ProcessingStep, StepConfig] = {
    ProcessingStep.INITIALIZING: StepConfig("Initializing", "Setting up document processing", 500, 1),
    ProcessingStep.VALIDATING_FILE: StepConfig("Validating File", "Checking file type, size, and format", 300, 1),
    ProcessingStep.LOADING_PARSER: StepConfig("Loading Parser", "Initializing document parsers", 1000, 2),
    ProcessingStep.EXTRACTING_TEXT: StepConfig("Extracting Text", "Reading text content from pages", 3000, 3),
    ProcessingStep.EXTRACTING_METADATA: StepConfig("Extracting Metadata", "Reading document information", 500, 1),
    ProcessingStep.PATTERN_MATCHING: StepConfig("Pattern Matching", "Identifying form fields from patterns and label aliases", 2000, 2),
    ProcessingStep.LLM_PROCESSING: StepConfig("AI Processing", "Analyzing content with the language model", 5000, 3),
    ProcessingStep.RAG_ENHANCEMENT: StepConfig("Alias Mapping", "Mapping form labels onto known fields", 2000, 2),
    ProcessingStep.VALIDATING_DATA: StepConfig("Validating Data", "Checking extracted data quality", 1000, 1),
    ProcessingStep.FINALIZING: StepConfig("Finalizing", "Preparing results", 500, 1),
    ProcessingStep.COMPLETED: StepConfig("Completed", "Processing completed successfully", 0, 0),
    ProcessingStep.ERROR: StepConfig("Error", "Processing encountered an error", 0, 0),
}

DEFAULT_PROCESSING_STEPS: List[ProcessingStep] = [
    ProcessingStep.INITIALIZING,
    ProcessingStep.VALIDATING_FILE,
    ProcessingStep.EXTRACTING_TEXT,
    ProcessingStep.PATTERN_MATCHING,
    ProcessingStep.LLM_PROCESSING,
    ProcessingStep.VALIDATING_DATA,
    ProcessingStep.FINALIZING,
]

PATTERN_ONLY_STEPS: List[ProcessingStep] = [
    ProcessingStep.INITIALIZING,
    ProcessingStep.VALIDATING_FILE,
    ProcessingStep.EXTRACTING_TEXT,
    ProcessingStep.PATTERN_MATCHING,
    ProcessingStep.VALIDATING_DATA,
    ProcessingStep.FINALIZING,
]

# Steps only a document upload goes through
FILE_STEPS = (ProcessingStep.VALIDATING_FILE, ProcessingStep.EXTRACTING_TEXT)


def steps_for(external: bool, from_file: bool = True) -> List[ProcessingStep]:
    """The steps a run will actually report."""
    steps = DEFAULT_PROCESSING_STEPS if external else PATTERN_ONLY_STEPS
    if not from_file:
        return [step for step in steps if step not in FILE_STEPS]
    return list(steps)


@dataclass
class ProgressUpdate:
    step: ProcessingStep
    progress: float                 # 0-100 within the step
    message: str
    details: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: float = 0.0        # since start()
    estimated_time_remaining_ms: float = 0.0
    overall_progress: float = 0.0   # 0-100 across all steps


@dataclass
class ProcessingMetrics:
    total_steps: int
    current_step: int
    overall_progress: float
    elapsed_time_ms: float
    estimated_total_time_ms: float
    average_step_time_ms: float
    steps_completed: List[ProcessingStep]
    current_step_progress: float


ProgressCallback = Callable[[ProgressUpdate], None]


class ProgressReporter:
    """
    Weighted progress and ETA over an ordered list of steps.

    Args:
        steps: Ordered steps for this run
        clock: Monotonic clock in seconds (injectable for tests)
    """

    def __init__(
        self,
        steps: Sequence[ProcessingStep] = DEFAULT_PROCESSING_STEPS,
        clock: Callable[[], float] = time.monotonic,
        callbacks: Optional[Sequence[ProgressCallback]] = None,
    ):
        self.steps: List[ProcessingStep] = list(steps)
        self._clock = clock
        self._step_configs: Dict[ProcessingStep, StepConfig] = dict(STEP_CONFIGS)
        self._callbacks: List[ProgressCallback] = list(callbacks or [])
        self._lock = threading.RLock()
        self._reset_state()

    def _reset_state(self):
        self._start_time: Optional[float] = None
        self._step_start_time: Optional[float] = None
        self._current_step = ProcessingStep.INITIALIZING
        self._current_index = 0
        self._current_step_progress = 0.0
        self._step_durations: Dict[ProcessingStep, float] = {}
        self._completed = False
        self._failed = False

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def on_progress(self, callback: ProgressCallback):
        with self._lock:
            self._callbacks.append(callback)

    def off_progress(self, callback: ProgressCallback):
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self):
        with self._lock:
            self._reset_state()
            now = self._clock()
            self._start_time = now
            self._step_start_time = now
        self._emit(ProcessingStep.INITIALIZING, 0, "Starting document processing...", "Initializing processing pipeline")

    def update_step(
        self,
        step: ProcessingStep,
        progress: float = 0,
        message: Optional[str] = None,
        details: Optional[str] = None,
    ):
        """Report progress within a step; moving to a new step closes the previous one."""
        with self._lock:
            if self._completed or self._failed:
                return
            if self._start_time is None:
                now = self._clock()
                self._start_time = now
                self._step_start_time = now

            if step != self._current_step:
                self._close_current_step()
                self._current_step = step
                self._step_start_time = self._clock()
                if step in self.steps:
                    # Fallback tiers revisit earlier steps; the position never moves back
                    self._current_index = max(self._current_index, self.steps.index(step))

            self._current_step_progress = max(0.0, min(100.0, float(progress)))
            config = self._step_configs[step]

        self._emit(step, self._current_step_progress, message or config.name, details or config.description)

    def complete(self, message: str = "Document processing completed successfully"):
        with self._lock:
            self._close_current_step()
            self._completed = True
            self._current_step = ProcessingStep.COMPLETED
            self._current_step_progress = 100.0
        self._emit(ProcessingStep.COMPLETED, 100, message, "All processing steps completed")

    def error(self, message: str, details: Optional[str] = None):
        with self._lock:
            self._close_current_step()
            self._failed = True
            self._current_step = ProcessingStep.ERROR
        self._emit(ProcessingStep.ERROR, 0, message, details or "Processing encountered an error")

    def reset(self):
        with self._lock:
            self._reset_state()

    def _close_current_step(self):
        if self._step_start_time is not None and self._current_step not in (
            ProcessingStep.COMPLETED, ProcessingStep.ERROR
        ):
            elapsed = (self._clock() - self._step_start_time) * 1000
            self._step_durations[self._current_step] = self._step_durations.get(self._current_step, 0.0) + elapsed
        self._step_start_time = None

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def _overall_progress(self) -> float:
        if self._completed:
            return 100.0

        total_weight = sum(self._step_configs[s].weight for s in self.steps)
        if total_weight <= 0:
            return 0.0

        completed_weight = sum(
            self._step_configs[s].weight for s in self.steps if s in self._step_durations
        )
        current_weight = 0.0
        if self._current_step in self.steps and self._current_step not in self._step_durations:
            current_weight = self._step_configs[self._current_step].weight * self._current_step_progress / 100

        return min(100.0, (completed_weight + current_weight) / total_weight * 100)

    def _estimated_time_remaining(self) -> float:
        if self._start_time is None or self._completed or self._failed:
            return 0.0

        remaining_steps = max(0, len(self.steps) - self._current_index)
        if not self._step_durations:
            return remaining_steps * DEFAULT_STEP_ESTIMATE_MS

        average = sum(self._step_durations.values()) / len(self._step_durations)
        return remaining_steps * average

    def _elapsed_ms(self) -> float:
        if self._start_time is None:
            return 0.0
        return (self._clock() - self._start_time) * 1000

    def _emit(self, step: ProcessingStep, progress: float, message: str, details: str):
        with self._lock:
            update = ProgressUpdate(
                step=step,
                progress=max(0.0, min(100.0, float(progress))),
                message=message,
                details=details,
                duration_ms=self._elapsed_ms(),
                estimated_time_remaining_ms=self._estimated_time_remaining(),
                overall_progress=self._overall_progress(),
            )
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback(update)
            except Exception as e:
                logger.warning(f"Progress callback error: {e}")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_metrics(self) -> ProcessingMetrics:
        with self._lock:
            elapsed = self._elapsed_ms()
            durations = list(self._step_durations.values())
            return ProcessingMetrics(
                total_steps=len(self.steps),
                current_step=self._current_index,
                overall_progress=self._overall_progress(),
                elapsed_time_ms=elapsed,
                estimated_total_time_ms=elapsed + self._estimated_time_remaining(),
                average_step_time_ms=sum(durations) / len(durations) if durations else 0.0,
                steps_completed=list(self._step_durations),
                current_step_progress=self._current_step_progress,
            )

    def get_summary(self) -> Dict[str, object]:
        with self._lock:
            durations = dict(self._step_durations)
            if self._completed:
                status = "completed"
            elif self._failed:
                status = "error"
            else:
                status = "in_progress"
            return {
                "total_duration_ms": self._elapsed_ms(),
                "step_durations": {step.value: ms for step, ms in durations.items()},
                "average_step_time_ms": sum(durations.values()) / len(durations) if durations else 0.0,
                "status": status,
            }

    def get_step_config(self, step: ProcessingStep) -> StepConfig:
        return self._step_configs[step]

    def update_step_config(self, step: ProcessingStep, **changes):
        """Override name, description, estimated_duration_ms or weight for one step."""
        with self._lock:
            self._step_configs[step] = replace(self._step_configs[step], **changes)


def format_duration(milliseconds: float) -> str:
    if milliseconds < 1000:
        return f"{int(milliseconds)}ms"
    elif milliseconds < 60000:
        return f"{milliseconds / 1000:.1f}s"
    minutes = int(milliseconds // 60000)
    seconds = int((milliseconds % 60000) // 1000)
    return f"{minutes}m {seconds}s"


def format_progress(progress: float) -> str:
    return f"{round(progress)}%"
