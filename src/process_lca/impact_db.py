import copy
import logging
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from .constants import (
    IMPACT_CATEGORIES, INDICATORS,
    STORAGE_KEY_IMPACT_DB, STORAGE_KEY_ELECTRICITY,
)
from .models import ImpactDatabase, ImpactRecord
from .storage import KeyValueStore
from .utils.calculations import to_float

logger = logging.getLogger(__name__)

# ============================================================================
# DEFAULT SNAPSHOT
# ============================================================================
# Units: GWP kg CO2e, ADP kg Sb eq, WaterUse m3 world eq, AP mol H+ eq, FETP CTUe
# Electricity per kWh, chemicals per kg, waters per litre.

DEFAULT_IMPACT_DATA: Dict[str, List[Dict[str, Any]]] = {
    "electricity": [
        {"name": "EU-27 grid mix", "GWP": 0.45, "ADP": 2.1e-7, "WaterUse": 0.046, "AP": 2.1e-3, "FETP": 0.63},
        {"name": "France grid mix", "GWP": 0.06, "ADP": 1.2e-7, "WaterUse": 0.071, "AP": 3.5e-4, "FETP": 0.41},
        {"name": "Germany grid mix", "GWP": 0.38, "ADP": 2.6e-7, "WaterUse": 0.039, "AP": 1.6e-3, "FETP": 0.72},
        {"name": "China grid mix", "GWP": 0.58, "ADP": 3.0e-7, "WaterUse": 0.052, "AP": 4.4e-3, "FETP": 0.95},
        {"name": "Solar PV", "GWP": 0.045, "ADP": 1.1e-6, "WaterUse": 0.011, "AP": 2.9e-4, "FETP": 1.10},
        {"name": "Onshore wind", "GWP": 0.012, "ADP": 2.4e-7, "WaterUse": 0.002, "AP": 6.0e-5, "FETP": 0.21},
    ],
    "chemicals": [
        {"name": "Sodium hydroxide (NaOH)", "GWP": 1.20, "ADP": 3.1e-6, "WaterUse": 0.021, "AP": 5.6e-3, "FETP": 2.9},
        {"name": "Sulfuric acid (H2SO4)", "GWP": 0.15, "ADP": 1.9e-6, "WaterUse": 0.004, "AP": 3.4e-3, "FETP": 0.8},
        {"name": "Hydrochloric acid (HCl)", "GWP": 0.75, "ADP": 2.0e-6, "WaterUse": 0.009, "AP": 3.1e-3, "FETP": 1.5},
        {"name": "Ammonia (NH3)", "GWP": 2.40, "ADP": 9.0e-7, "WaterUse": 0.012, "AP": 7.2e-3, "FETP": 1.2},
        {"name": "Ethanol", "GWP": 1.40, "ADP": 5.3e-7, "WaterUse": 0.310, "AP": 9.8e-3, "FETP": 3.6},
        {"name": "Lithium carbonate", "GWP": 4.50, "ADP": 2.2e-5, "WaterUse": 0.470, "AP": 2.6e-2, "FETP": 9.4},
        {"name": "Citric acid", "GWP": 1.60, "ADP": 8.1e-7, "WaterUse": 0.095, "AP": 1.1e-2, "FETP": 2.2},
    ],
    "waters": [
        {"name": "Tap water", "GWP": 3.4e-4, "ADP": 1.0e-9, "WaterUse": 1.0e-3, "AP": 1.9e-6, "FETP": 2.0e-3},
        {"name": "Deionised water", "GWP": 2.0e-3, "ADP": 7.0e-9, "WaterUse": 1.1e-3, "AP": 1.0e-5, "FETP": 8.0e-3},
        {"name": "Ultrapure water", "GWP": 4.5e-3, "ADP": 1.5e-8, "WaterUse": 1.2e-3, "AP": 2.3e-5, "FETP": 1.6e-2},
    ],
}

# Older snapshots stored a single CO2 figure (and a "Water" column) per record.
INDICATOR_ALIASES: Dict[str, Dict[str, List[str]]] = {
    "electricity": {
        "GWP": ["CO2", "co2", "CO2e", "kgCO2e", "co2_per_kwh"],
        "WaterUse": ["Water", "water"],
    },
    "chemicals": {
        "GWP": ["CO2", "co2", "CO2e", "kgCO2e", "co2_per_kg"],
        "WaterUse": ["Water", "water"],
    },
    "waters": {
        "GWP": ["CO2", "co2", "CO2e", "kgCO2e", "co2_per_l"],
        "WaterUse": ["Water", "water"],
    },
}

NAME_ALIASES = ["name", "label"]


def default_database() -> ImpactDatabase:
    """Fresh copy of the compiled-in snapshot."""
    return ImpactDatabase(**{
        category: [ImpactRecord(**rec) for rec in DEFAULT_IMPACT_DATA[category]]
        for category in IMPACT_CATEGORIES
    })


def _record_from_raw(category: str, raw: Any) -> Optional[ImpactRecord]:
    if not isinstance(raw, dict):
        return None
    name = ""
    for key in NAME_ALIASES:
        if raw.get(key) is not None:
            name = str(raw[key]).strip()
            if name:
                break
    if not name:
        return None

    values = {}
    aliases = INDICATOR_ALIASES.get(category, {})
    for indicator in INDICATORS:
        value = raw.get(indicator)
        if value is None:
            for alias in aliases.get(indicator, []):
                if raw.get(alias) is not None:
                    value = raw[alias]
                    break
        values[indicator] = to_float(value)
    return ImpactRecord(name=name, **values)


def normalize_records(category: str, raw_records: Any) -> List[ImpactRecord]:
    """
    Coerce a persisted list into ImpactRecords: indicators become finite floats,
    unnamed records are dropped, later duplicates of a name are ignored.
    """
    if not isinstance(raw_records, list):
        return []
    records: List[ImpactRecord] = []
    seen = set()
    for raw in raw_records:
        record = _record_from_raw(category, raw)
        if record is None or record.name in seen:
            continue
        seen.add(record.name)
        records.append(record)
    return records


def normalize_database(raw: Any) -> ImpactDatabase:
    """
    Normalize a persisted snapshot. A category that yields no records
    falls back to the compiled-in list for that category alone.
    """
    if not isinstance(raw, dict):
        raw = {}
    defaults = default_database()
    db = ImpactDatabase()
    for category in IMPACT_CATEGORIES:
        records = normalize_records(category, raw.get(category))
        if not records:
            records = defaults.category(category)
        setattr(db, category, records)
    return db


def merge_with_defaults(db: ImpactDatabase) -> ImpactDatabase:
    """
    Merge by name: records in `db` take precedence and keep their order,
    any default whose name is missing is appended.
    """
    defaults = default_database()
    merged = ImpactDatabase()
    for category in IMPACT_CATEGORIES:
        records = list(db.category(category))
        present = {r.name for r in records}
        records.extend(r for r in defaults.category(category) if r.name not in present)
        setattr(merged, category, records)
    return merged


# ============================================================================
# STORE
# ============================================================================

class ImpactFactorStore:
    """
    Owns the live ImpactDatabase and the electricity selection preference.
    Every mutation is persisted immediately and listeners are notified so
    dependent views (step results, charts) can refresh.
    """

    def __init__(self, storage: KeyValueStore):
        self.storage = storage
        self.db: ImpactDatabase = default_database()
        self._listeners: List[Callable[[], None]] = []

    # --- listeners ---------------------------------------------------------

    def subscribe(self, callback: Callable[[], None]):
        self._listeners.append(callback)

    def _notify(self):
        for callback in self._listeners:
            callback()

    # --- persistence -------------------------------------------------------

    def load(self) -> ImpactDatabase:
        raw = self.storage.get(STORAGE_KEY_IMPACT_DB)
        if raw is None:
            self.db = default_database()
            return self.db
        try:
            self.db = merge_with_defaults(normalize_database(raw))
        except Exception as e:
            logger.warning(f"Persisted impact database is malformed, using defaults: {e}")
            self.db = default_database()
        return self.db

    def save(self, db: Optional[ImpactDatabase] = None):
        if db is not None:
            self.db = db
        self.storage.set(STORAGE_KEY_IMPACT_DB, self.db.to_dict())
        logger.debug("Impact database saved")
        self._notify()

    def reset(self):
        logger.info("Resetting impact database to defaults")
        self.storage.remove(STORAGE_KEY_IMPACT_DB)
        self.db = default_database()
        self.save()

    # --- mutation ----------------------------------------------------------

    def _records(self, category: str) -> List[ImpactRecord]:
        return self.db.category(category)

    def _check_index(self, records: List[ImpactRecord], index: int):
        if not 0 <= index < len(records):
            raise IndexError(f"Record index {index} out of range (0..{len(records) - 1})")

    def _check_name(self, category: str, records: List[ImpactRecord], name: Any, skip: Optional[int] = None) -> str:
        name = "" if name is None else str(name).strip()
        if not name:
            raise ValueError(f"A {category} record needs a name")
        if any(r.name == name for i, r in enumerate(records) if i != skip):
            raise ValueError(f"A {category} record named '{name}' already exists")
        return name

    def add_record(self, category: str, name: Optional[str] = None) -> int:
        """
        Append a zeroed record and return its index. A blank name gets a
        generated 'New <category> n'; a name already in the category is rejected.
        """
        records = self._records(category)
        if name is None or not str(name).strip():
            existing = {r.name for r in records}
            n = len(records) + 1
            while f"New {category} {n}" in existing:
                n += 1
            name = f"New {category} {n}"
        records.append(ImpactRecord(name=self._check_name(category, records, name)))
        self.save()
        return len(records) - 1

    def edit_record(self, category: str, index: int, field: str, value: Any):
        records = self._records(category)
        self._check_index(records, index)
        record = records[index]
        if field == "name":
            record.name = self._check_name(category, records, value, skip=index)
        elif field in INDICATORS:
            setattr(record, field, to_float(value))
        else:
            raise ValueError(f"Unknown record field '{field}'")
        self.save()

    def delete_record(self, category: str, index: int):
        records = self._records(category)
        self._check_index(records, index)
        removed = records.pop(index)
        logger.info(f"Deleted {category} record '{removed.name}'")
        self.save()

    # --- lookup ------------------------------------------------------------

    def find(self, category: str, name: str) -> Optional[ImpactRecord]:
        return find_record(self._records(category), name)

    # --- electricity selection --------------------------------------------

    def selected_electricity(self) -> Optional[str]:
        """Stored selection, or the first electricity record when it no longer resolves."""
        name = self.storage.get(STORAGE_KEY_ELECTRICITY)
        if isinstance(name, str) and self.find("electricity", name):
            return name
        return self.db.electricity[0].name if self.db.electricity else None

    def select_electricity(self, name: str):
        if not self.find("electricity", name):
            logger.warning(f"Electricity dataset '{name}' not found; selection stored anyway")
        self.storage.set(STORAGE_KEY_ELECTRICITY, name)
        self._notify()

    # --- excel -------------------------------------------------------------

    def export_excel(self, path: str):
        """Write one sheet per category."""
        with pd.ExcelWriter(path) as writer:
            for category in IMPACT_CATEGORIES:
                df = pd.DataFrame(
                    [r.to_dict() for r in self._records(category)],
                    columns=["name", *INDICATORS],
                )
                df.to_excel(writer, sheet_name=category, index=False)
        logger.info(f"Exported impact database to {path}")

    def import_excel(self, path: str) -> ImpactDatabase:
        """
        Load sheets written by export_excel; records are normalized and
        merged over the current database by name.
        """
        sheets = pd.read_excel(path, sheet_name=None)
        merged = copy.deepcopy(self.db)
        for category in IMPACT_CATEGORIES:
            if category not in sheets:
                continue
            df = sheets[category].astype(object)
            df = df.where(pd.notna(df), None)
            incoming = normalize_records(category, df.to_dict(orient="records"))
            records = merged.category(category)
            for record in incoming:
                idx = next((i for i, r in enumerate(records) if r.name == record.name), None)
                if idx is None:
                    records.append(record)
                else:
                    records[idx] = record
            logger.info(f"Imported {len(incoming)} {category} records from {path}")
        self.save(merged)
        return self.db


def find_record(records: List[ImpactRecord], name: str) -> Optional[ImpactRecord]:
    """Exact-name lookup."""
    for record in records:
        if record.name == name:
            return record
    return None
