import logging
import os

from .audit import audit_logger
from .catalog import CATALOG, UnitOperation, step_label
from .constants import IMPACT_CATEGORIES, INDICATORS, STORAGE_PATH
from .logging_conf import setup_logging
from .models import Step
from .reporting import save_excel_report, save_markdown_report
from .session import LCASession
from .utils.input_helpers import (
    prompt_choice, prompt_yes_no, prompt_float, prompt_text, print_header,
    print_step_overview, print_impact_records, print_comparison_overview,
    style_prompt, C_SUCCESS, C_RESET,
)
from .visualization import Visualizer, ExportError

logger = logging.getLogger(__name__)

OPERATION_LABELS = {definition.label: key for key, definition in CATALOG.items()}


def _notice(message: str):
    """Blocking notice: the user has to acknowledge before continuing."""
    logger.error(message)
    input(style_prompt("Press Enter to continue..."))


# ============================================================================
# STEP EDITING
# ============================================================================

def prompt_usages(session: LCASession, step: Step):
    """Attach materials (kg) and waters (L) picked from the impact database."""
    while True:
        action = prompt_choice(
            "Materials / waters",
            ["Add material", "Add water", "Remove material", "Remove water", "Done"],
            default="Done",
        )
        if action == "Done":
            return
        if action.startswith("Add"):
            kind = "materials" if action == "Add material" else "waters"
            category = "chemicals" if kind == "materials" else "waters"
            names = [r.name for r in session.impact.db.category(category)]
            if not names:
                logger.warning(f"No {category} in the impact database.")
                continue
            name = prompt_choice(category.capitalize(), names, default=names[0])
            unit = "kg" if kind == "materials" else "L"
            amount = prompt_float(f"Amount ({unit})", default=0.0)
            session.add_usage(step.step_id, kind, name, amount)
        else:
            kind = "materials" if action == "Remove material" else "waters"
            usages = step.materials if kind == "materials" else step.waters
            if not usages:
                logger.warning(f"No {kind} attached.")
                continue
            options = [f"{i + 1}: {u.name}" for i, u in enumerate(usages)]
            choice = prompt_choice("Remove", options, default=options[-1])
            session.remove_usage(step.step_id, kind, options.index(choice))


def prompt_params(session: LCASession, step: Step):
    definition = CATALOG.get(step.process_definition_key, CATALOG[UnitOperation.CUSTOM.value])
    for spec in definition.inputs:
        current = step.param_values.get(spec.name, spec.default_value)
        hint = f" ({spec.placeholder})" if spec.placeholder else ""
        value = prompt_float(f"  {spec.label}{hint}", default=current)
        if value is not None:
            session.on_param_changed(step.step_id, spec.name, value)


def add_step_interactive(session: LCASession, process_name: str):
    label = prompt_choice("Unit operation", list(OPERATION_LABELS), default="Custom")
    key = OPERATION_LABELS[label]
    custom_label = prompt_text("Step name", default="")
    step = session.add_step(process_name, key, custom_label=custom_label)
    prompt_params(session, step)
    prompt_usages(session, step)
    print_step_overview(step, session.process(process_name).steps.index(step))


def edit_process(session: LCASession, process_name: str):
    while True:
        process = session.process(process_name)
        print_header(f"Process {process_name}")
        for i, step in enumerate(process.steps):
            print_step_overview(step, i)
        if not process.steps:
            print("  (no steps yet)")

        action = prompt_choice("Action", ["Add step", "Edit step", "Remove step", "Back"], default="Back")
        if action == "Back":
            return
        if action == "Add step":
            add_step_interactive(session, process_name)
            continue
        if not process.steps:
            logger.warning("No steps to select.")
            continue
        options = [f"{i + 1}: {step_label(s)}" for i, s in enumerate(process.steps)]
        choice = prompt_choice("Step", options, default=options[-1])
        step = process.steps[options.index(choice)]
        if action == "Remove step":
            session.remove_step(step.step_id)
        else:
            session.set_custom_label(step.step_id, prompt_text("Step name", default=step.custom_label))
            prompt_params(session, step)
            prompt_usages(session, step)


# ============================================================================
# IMPACT DATABASE
# ============================================================================

def edit_impact_database(session: LCASession):
    store = session.impact
    while True:
        print_header("Impact factor database")
        category = prompt_choice("Category", [*IMPACT_CATEGORIES, "Back"], default="Back")
        if category == "Back":
            return
        print_impact_records(category, store.db.category(category))
        action = prompt_choice(
            "Action",
            ["Add record", "Edit record", "Delete record", "Reset all to defaults", "Export Excel", "Import Excel", "Back"],
            default="Back",
        )
        try:
            if action == "Add record":
                index = store.add_record(category, prompt_text("Name"))
                for field in INDICATORS:
                    store.edit_record(category, index, field, prompt_float(f"  {field}", default=0.0))
            elif action in ("Edit record", "Delete record"):
                index = int(prompt_float("Record #", default=0))
                if action == "Delete record":
                    store.delete_record(category, index)
                else:
                    field = prompt_choice("Field", ["name", *INDICATORS], default="GWP")
                    value = prompt_text("New value") if field == "name" else prompt_float("New value", default=0.0)
                    store.edit_record(category, index, field, value)
            elif action == "Reset all to defaults":
                if prompt_yes_no("Discard all edits to the impact database?", default=False):
                    store.reset()
            elif action == "Export Excel":
                store.export_excel(prompt_text("File", default="impact_database.xlsx"))
            elif action == "Import Excel":
                store.import_excel(prompt_text("File", default="impact_database.xlsx"))
        except (IndexError, ValueError, OSError) as e:
            logger.error(f"{action} failed: {e}")


def select_electricity(session: LCASession):
    names = [r.name for r in session.impact.db.electricity]
    if not names:
        logger.warning("No electricity datasets available.")
        return
    current = session.impact.selected_electricity() or names[0]
    session.select_electricity(prompt_choice("Electricity dataset", names, default=current))
    logger.info(f"  -> Using electricity dataset: {session.impact.selected_electricity()}")


# ============================================================================
# COMPARISON / EXPORT
# ============================================================================

def run_comparison(session: LCASession):
    result = session.compare()
    print_comparison_overview(result)
    if not prompt_yes_no("Save charts and reports?", default=False):
        return
    try:
        visualizer = Visualizer()
        paths = visualizer.generate_all_plots(result)
        paths.append(save_excel_report(result, visualizer.get_save_path("comparison.xlsx")))
        paths.append(save_markdown_report(result, visualizer.get_save_path("comparison.md")))
    except (ExportError, OSError) as e:
        _notice(f"Could not save outputs: {e}")
        return
    print(f"{C_SUCCESS}Saved {len(paths)} files to {visualizer.session_dir}{C_RESET}")


def export_document(session: LCASession):
    try:
        path = Visualizer().export_pdf(session.compare())
    except (ExportError, OSError) as e:
        _notice(f"Export failed: {e}")
        return
    print(f"{C_SUCCESS}Exported {path}{C_RESET}")


def main():
    setup_logging(console_level=logging.INFO)
    print_header("Process LCA comparison – Start")

    storage_path = os.environ.get("PROCESS_LCA_STORE") or STORAGE_PATH
    session = LCASession.open(storage_path)
    logger.info(f"Session store: {storage_path}")
    logger.info(f"Electricity dataset: {session.impact.selected_electricity()}")

    if prompt_yes_no("Write a calculation audit log?", default=False):
        logger.info(f"Audit log: {audit_logger.enable()}")
        session.recompute_all()

    actions = [
        "Edit process A", "Edit process B", "Impact database", "Electricity dataset",
        "Ambient temperature", "Compare", "Export PDF", "Quit",
    ]
    while True:
        action = prompt_choice("Main menu", actions, default="Compare")
        if action == "Quit":
            break
        if action == "Edit process A":
            edit_process(session, "A")
        elif action == "Edit process B":
            edit_process(session, "B")
        elif action == "Impact database":
            edit_impact_database(session)
        elif action == "Electricity dataset":
            select_electricity(session)
        elif action == "Ambient temperature":
            session.set_ambient(prompt_float("Ambient temperature (°C)", default=session.ambient_c))
        elif action == "Compare":
            run_comparison(session)
        elif action == "Export PDF":
            export_document(session)

    print_header("Process LCA comparison – Done")


if __name__ == "__main__":
    main()
