import uuid
from dataclasses import dataclass, field, asdict
from typing import Callable, Dict, List, Optional, Any

from .constants import INDICATORS
from .utils.calculations import round_display, to_float


@dataclass
class ImpactRecord:
    """
    One source of environmental burden per declared unit:
    per kWh (electricity), per kg (chemicals) or per litre (waters).
    """
    name: str
    GWP: float = 0.0
    ADP: float = 0.0
    WaterUse: float = 0.0
    AP: float = 0.0
    FETP: float = 0.0

    def indicator(self, field_name: str) -> float:
        if field_name not in INDICATORS:
            raise ValueError(f"Unknown indicator '{field_name}'")
        return getattr(self, field_name)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ImpactDatabase:
    electricity: List[ImpactRecord] = field(default_factory=list)
    chemicals: List[ImpactRecord] = field(default_factory=list)
    waters: List[ImpactRecord] = field(default_factory=list)

    def category(self, name: str) -> List[ImpactRecord]:
        if name not in ("electricity", "chemicals", "waters"):
            raise ValueError(f"Unknown impact category '{name}'")
        return getattr(self, name)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "electricity": [r.to_dict() for r in self.electricity],
            "chemicals": [r.to_dict() for r in self.chemicals],
            "waters": [r.to_dict() for r in self.waters],
        }


@dataclass
class ParamSpec:
    """Form field declared by a unit operation."""
    name: str
    label: str
    type: str = "number"
    step: float = 0.1
    placeholder: str = ""
    default_value: Optional[float] = None


@dataclass(frozen=True)
class ProcessDefinition:
    """
    Catalog entry: declared inputs, hidden defaults and the three pure formulas.
    energy_fn / water_fn take the flat parameter map (ambient_c injected);
    emissions_fn additionally receives energy_kwh and an optional grid factor.
    """
    key: str
    label: str
    inputs: List[ParamSpec]
    defaults: Dict[str, float]
    energy_fn: Callable[[Dict[str, Any]], float]
    water_fn: Callable[[Dict[str, Any]], float]
    emissions_fn: Callable[..., float]

    def default_params(self) -> Dict[str, float]:
        params = dict(self.defaults)
        for spec in self.inputs:
            if spec.default_value is not None:
                params[spec.name] = spec.default_value
        return params


@dataclass
class MaterialUsage:
    """Chemical reagent consumed by a step (kg)."""
    name: str
    amount: float = 0.0


@dataclass
class WaterUsage:
    """Water consumed by a step (litres, 1 L == 1 kg)."""
    name: str
    amount: float = 0.0


@dataclass
class StepResult:
    """
    Outputs of one step evaluation. Values are kept unrounded;
    use rounded() for display.
    """
    energy_kwh: float = 0.0
    water_kg: float = 0.0
    emissions_kg: float = 0.0
    emissions_energy_kg: float = 0.0
    emissions_materials_kg: float = 0.0
    emissions_water_kg: float = 0.0
    indicators: Dict[str, float] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def rounded(self) -> Dict[str, float]:
        return {
            "energy_kwh": round_display(self.energy_kwh),
            "water_kg": round_display(self.water_kg),
            "emissions_kg": round_display(self.emissions_kg),
            "emissions_energy_kg": round_display(self.emissions_energy_kg),
            "emissions_materials_kg": round_display(self.emissions_materials_kg),
            "emissions_water_kg": round_display(self.emissions_water_kg),
        }


@dataclass
class Step:
    """
    One instance of a unit operation within a process.
    `computed` is refreshed by the evaluator after every edit.
    """
    process_definition_key: str
    custom_label: str = ""
    param_values: Dict[str, Any] = field(default_factory=dict)
    materials: List[MaterialUsage] = field(default_factory=list)
    waters: List[WaterUsage] = field(default_factory=list)
    computed: StepResult = field(default_factory=StepResult)
    step_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step_id": self.step_id,
            "process_definition_key": self.process_definition_key,
            "custom_label": self.custom_label,
            "param_values": dict(self.param_values),
            "materials": [asdict(m) for m in self.materials],
            "waters": [asdict(w) for w in self.waters],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Step":
        params = data.get("param_values") or {}
        step = cls(
            process_definition_key=str(data.get("process_definition_key") or "custom"),
            custom_label=str(data.get("custom_label") or ""),
            param_values={str(k): v for k, v in params.items()} if isinstance(params, dict) else {},
            materials=[
                MaterialUsage(name=str(m.get("name") or ""), amount=to_float(m.get("amount")))
                for m in (data.get("materials") or []) if isinstance(m, dict)
            ],
            waters=[
                WaterUsage(name=str(w.get("name") or ""), amount=to_float(w.get("amount")))
                for w in (data.get("waters") or []) if isinstance(w, dict)
            ],
        )
        if data.get("step_id"):
            step.step_id = str(data["step_id"])
        return step


@dataclass
class Process:
    name: str
    steps: List[Step] = field(default_factory=list)


@dataclass
class ProcessTotals:
    """Aggregate (or difference) of step outputs for one process."""
    energy: float = 0.0
    water: float = 0.0
    emissions: float = 0.0
    emissions_energy: float = 0.0
    emissions_materials: float = 0.0
    emissions_water: float = 0.0

    def __sub__(self, other: "ProcessTotals") -> "ProcessTotals":
        return ProcessTotals(
            energy=self.energy - other.energy,
            water=self.water - other.water,
            emissions=self.emissions - other.emissions,
            emissions_energy=self.emissions_energy - other.emissions_energy,
            emissions_materials=self.emissions_materials - other.emissions_materials,
            emissions_water=self.emissions_water - other.emissions_water,
        )

    def rounded(self) -> Dict[str, float]:
        return {k: round_display(v) for k, v in asdict(self).items()}


@dataclass
class StepCallout:
    """Pointer to the most impactful step for one metric."""
    process_name: str
    step_index: int
    label: str
    value: float


@dataclass
class ComparisonResult:
    totals_a: ProcessTotals
    totals_b: ProcessTotals
    diff: ProcessTotals
    steps_a: List[Step]
    steps_b: List[Step]
    max_energy: Optional[StepCallout] = None
    max_water: Optional[StepCallout] = None
    max_emissions: Optional[StepCallout] = None
