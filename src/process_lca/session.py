import logging
from typing import Any, Dict, List, Optional, Tuple

from .catalog import get_definition, step_label
from .comparison import compare
from .constants import AMBIENT_C, PROCESS_NAMES, STORAGE_PATH, STORAGE_KEY_PROCESSES
from .evaluator import evaluate_step
from .impact_db import ImpactFactorStore
from .models import ComparisonResult, MaterialUsage, Process, Step, StepResult, WaterUsage
from .storage import KeyValueStore
from .utils.calculations import to_float

logger = logging.getLogger(__name__)


class LCASession:
    """
    Owns the impact factor store and the two processes being compared.

    Every command mutates state, synchronously re-evaluates the affected
    step(s) and persists the processes, so callers always read fresh results.
    """

    def __init__(self, storage: KeyValueStore, ambient_c: float = AMBIENT_C):
        self.storage = storage
        self.ambient_c = to_float(ambient_c)
        self.impact = ImpactFactorStore(storage)
        self.processes: Dict[str, Process] = {name: Process(name) for name in PROCESS_NAMES}
        self.impact.subscribe(self.recompute_all)

    @classmethod
    def open(cls, path: Optional[str] = STORAGE_PATH, ambient_c: float = AMBIENT_C) -> "LCASession":
        """Load the impact database and saved processes from `path` (None = in memory)."""
        session = cls(KeyValueStore(path), ambient_c=ambient_c)
        session.impact.load()
        session.load_processes()
        session.recompute_all()
        return session

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def process(self, name: str) -> Process:
        if name not in self.processes:
            raise KeyError(f"Unknown process '{name}' (expected one of {', '.join(PROCESS_NAMES)})")
        return self.processes[name]

    def find_step(self, step_id: str) -> Tuple[Process, Step]:
        for process in self.processes.values():
            for step in process.steps:
                if step.step_id == step_id:
                    return process, step
        raise KeyError(f"Unknown step '{step_id}'")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, step: Step, process_name: str = "") -> StepResult:
        context = step_label(step)
        if process_name:
            process = self.processes[process_name]
            context = f"Process {process_name} / Step {process.steps.index(step) + 1} {context}"
        return evaluate_step(
            step,
            get_definition(step.process_definition_key),
            self.impact.db,
            ambient_c=self.ambient_c,
            selected_electricity=self.impact.selected_electricity(),
            context=context,
        )

    def recompute_all(self):
        for name, process in self.processes.items():
            for step in process.steps:
                self.evaluate(step, name)

    def compare(self) -> ComparisonResult:
        return compare(self.processes["A"], self.processes["B"])

    def _commit(self, process: Process, step: Step) -> StepResult:
        result = self.evaluate(step, process.name)
        self.save_processes()
        return result

    # ------------------------------------------------------------------
    # Step commands
    # ------------------------------------------------------------------

    def add_step(
        self,
        process_name: str,
        definition_key: str,
        custom_label: str = "",
        params: Optional[Dict[str, Any]] = None,
    ) -> Step:
        process = self.process(process_name)
        step = Step(
            process_definition_key=definition_key,
            custom_label=custom_label,
            param_values=dict(params or {}),
        )
        process.steps.append(step)
        logger.info(f"Added {step_label(step)} to process {process_name}")
        self._commit(process, step)
        return step

    def remove_step(self, step_id: str):
        process, step = self.find_step(step_id)
        process.steps.remove(step)
        logger.info(f"Removed {step_label(step)} from process {process.name}")
        self.save_processes()

    def on_param_changed(self, step_id: str, field: str, value: Any) -> StepResult:
        process, step = self.find_step(step_id)
        step.param_values[field] = value
        return self._commit(process, step)

    def set_custom_label(self, step_id: str, label: str):
        process, step = self.find_step(step_id)
        step.custom_label = str(label or "")
        self.save_processes()

    def set_ambient(self, ambient_c: Any):
        self.ambient_c = to_float(ambient_c)
        self.recompute_all()

    def select_electricity(self, name: str):
        # The store notifies subscribers, which recomputes every step.
        self.impact.select_electricity(name)

    # ------------------------------------------------------------------
    # Material / water usages
    # ------------------------------------------------------------------

    def _usages(self, step: Step, kind: str) -> List:
        if kind == "materials":
            return step.materials
        if kind == "waters":
            return step.waters
        raise ValueError(f"Unknown usage kind '{kind}'")

    def add_usage(self, step_id: str, kind: str, name: str, amount: Any = 0.0) -> StepResult:
        process, step = self.find_step(step_id)
        usage_cls = MaterialUsage if kind == "materials" else WaterUsage
        self._usages(step, kind).append(usage_cls(name=name, amount=to_float(amount)))
        return self._commit(process, step)

    def update_usage(self, step_id: str, kind: str, index: int, name: Optional[str] = None, amount: Any = None) -> StepResult:
        process, step = self.find_step(step_id)
        usage = self._usages(step, kind)[index]
        if name is not None:
            usage.name = name
        if amount is not None:
            usage.amount = to_float(amount)
        return self._commit(process, step)

    def remove_usage(self, step_id: str, kind: str, index: int) -> StepResult:
        process, step = self.find_step(step_id)
        del self._usages(step, kind)[index]
        return self._commit(process, step)

    def add_material(self, step_id: str, name: str, amount: Any = 0.0) -> StepResult:
        return self.add_usage(step_id, "materials", name, amount)

    def add_water(self, step_id: str, name: str, amount: Any = 0.0) -> StepResult:
        return self.add_usage(step_id, "waters", name, amount)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_processes(self):
        self.storage.set(STORAGE_KEY_PROCESSES, {
            name: [step.to_dict() for step in process.steps]
            for name, process in self.processes.items()
        })

    def load_processes(self):
        """Restore saved processes; malformed entries are skipped, never raised."""
        raw = self.storage.get(STORAGE_KEY_PROCESSES)
        self.processes = {name: Process(name) for name in PROCESS_NAMES}
        if not isinstance(raw, dict):
            return
        for name in PROCESS_NAMES:
            entries = raw.get(name)
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                try:
                    self.processes[name].steps.append(Step.from_dict(entry))
                except (AttributeError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping malformed saved step in process {name}: {e}")
        logger.info(
            "Restored processes: "
            + ", ".join(f"{n}={len(p.steps)} steps" for n, p in self.processes.items())
        )
