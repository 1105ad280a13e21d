"""CLI interface using Typer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from bite.config import Settings, get_logger, setup_logging
from bite.errors import BiteError, InsufficientDataError, ValidationError
from bite.export.formatters import (
    ReportFormatter,
    assessment_as_dict,
    entry_as_dict,
    food_as_dict,
    meal_as_dict,
)
from bite.profiles.body_calc import (
    clamp_goal_to_macro_bounds,
    goal_calories,
    inches_to_cm,
    lbs_to_kg,
    macro_bounds,
    macros,
    mifflin,
    tdee,
)
from bite.tracking.catalog import (
    FoodCatalog,
    entry_for_food,
    entry_for_meal,
    open_catalog,
    summarize_food_log,
)
from bite.tracking.models import Entry, EntryKind, Food, UserConfig
from bite.tracking.phase import PhaseTracker, missed_week_streak
from bite.tracking.store import EntryStore, UserConfigStore, open_entry_store

logger = get_logger(__name__)

app = typer.Typer(
    help="Personal diet tracking: log food and weight, follow diet phases",
    no_args_is_help=True,
)
console = Console()

# Subcommand groups
log_app = typer.Typer(help="Log, list, edit and delete entries")
food_app = typer.Typer(help="Manage the food catalog")
meal_app = typer.Typer(help="Manage meals built from catalog foods")
summary_app = typer.Typer(help="Summaries of the phase, user, daily diet and food log")
update_app = typer.Typer(help="Update stored configuration")
start_app = typer.Typer(help="Start a diet phase")
stop_app = typer.Typer(help="Stop the active diet phase")

app.add_typer(log_app, name="log")
app.add_typer(food_app, name="food")
app.add_typer(meal_app, name="meal")
app.add_typer(summary_app, name="summary")
app.add_typer(update_app, name="update")
app.add_typer(start_app, name="start")
app.add_typer(stop_app, name="stop")


@dataclass
class AppState:
    """Per-invocation state built by the root callback.

    The entry store and food catalog are opened on first use and closed
    when the command's context exits.
    """

    settings: Settings
    users: UserConfigStore
    ctx: typer.Context
    _store: Optional[EntryStore] = field(default=None, repr=False)
    _catalog: Optional[FoodCatalog] = field(default=None, repr=False)

    @property
    def store(self) -> EntryStore:
        if self._store is None:
            storage = self.settings.storage
            self._store = self.ctx.with_resource(
                open_entry_store(storage.backend, storage.database_path, storage.csv_path)
            )
        return self._store

    @property
    def catalog(self) -> FoodCatalog:
        if self._catalog is None:
            self._catalog = self.ctx.with_resource(
                open_catalog(self.settings.storage.database_path)
            )
        return self._catalog

    def load_config(self) -> UserConfig:
        return self.users.load()

    def tracker(self, config: UserConfig) -> PhaseTracker:
        return PhaseTracker(
            config,
            tolerance=self.settings.progress.tolerance,
            maintenance_band=self.settings.progress.maintenance_band,
        )


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict, file=None) -> None:
    """Output JSON response to stdout or file."""
    json_str = json.dumps(response, indent=2)
    if file:
        file.write(json_str)
    else:
        print(json_str)


def fail(command: str, error: BiteError, json_output: bool = False) -> None:
    """Report a failed command and exit with status 1."""
    logger.debug("%s failed: %s", command, error)
    if json_output:
        output_json({"success": False, "command": command, "errors": [str(error)]})
    else:
        console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(code=1) from error


def parse_date_option(value: Optional[str], default: Optional[date] = None) -> date:
    """Parse a YYYY-MM-DD option, falling back to ``default`` or today."""
    if not value:
        return default or date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"'{value}' is not a YYYY-MM-DD date") from None


def to_kg(weight: float, lbs: bool) -> float:
    return lbs_to_kg(weight) if lbs else weight


def to_cm(height: float, inches: bool) -> float:
    return inches_to_cm(height) if inches else height


def get_state(ctx: typer.Context) -> AppState:
    return ctx.obj


# ============================================================================
# Root callback
# ============================================================================


@app.callback()
def main(
    ctx: typer.Context,
    home: Optional[Path] = typer.Option(
        None, "--home", envvar="BITE_HOME", help="Data directory (default: ~/.bite)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Load settings and configure logging.

    The entry store and food catalog open when a command first uses them.
    """
    try:
        settings = Settings.load(home)
        if verbose:
            settings.logging.level = "DEBUG"
        setup_logging(settings.logging)
    except BiteError as e:
        fail("bite", e)

    ctx.obj = AppState(
        settings=settings,
        users=UserConfigStore(settings.storage.user_config_path),
        ctx=ctx,
    )
    logger.debug("Using data directory %s (%s)", settings.home, settings.storage.backend)


# ============================================================================
# Main Commands
# ============================================================================


@app.command()
def init(
    ctx: typer.Context,
    height: float = typer.Option(..., "--height", help="Height in cm"),
    inches: bool = typer.Option(False, "--inches", help="Height is given in inches"),
    age: int = typer.Option(..., "--age", help="Age in years"),
    gender: str = typer.Option(..., "--gender", help="Gender (male/female)"),
    activity: str = typer.Option(
        "moderate",
        "--activity",
        help="Activity level (sedentary/light/moderate/active/very-active)",
    ),
    backend: Optional[str] = typer.Option(
        None, "--backend", help="Entry storage backend (sqlite/csv)"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing user config"),
) -> None:
    """Create the user config (and settings file) in the data directory."""
    state = get_state(ctx)
    try:
        if state.users.exists() and not force:
            raise ValidationError(
                f"User config already exists at {state.users.path}; use --force to overwrite"
            )
        config = UserConfig(
            height=round(to_cm(height, inches), 1),
            age=age,
            gender=gender,
            activity_level=activity,
        )

        settings = state.settings
        settings_file = settings.home / "settings.yaml"
        if backend is not None:
            if backend not in ("sqlite", "csv"):
                raise ValidationError(f"backend must be sqlite or csv, got '{backend}'")
            settings.storage.backend = backend
        if backend is not None or not settings_file.exists():
            settings.save()

        state.users.save(config)
    except BiteError as e:
        fail("init", e)

    console.print(f"[green]Initialized bite in {settings.home}[/green]")
    console.print(f"  Storage: {settings.storage.backend}")


@app.command()
def metrics(
    ctx: typer.Context,
    weight: Optional[float] = typer.Option(
        None, "--weight", "-w", help="Weight in kg (default: latest weigh-in)"
    ),
    lbs: bool = typer.Option(False, "--lbs", help="Weight is given in lbs"),
    fat_fraction: float = typer.Option(
        0.3, "--fat-fraction", help="Share of non-protein calories from fat"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show BMR, TDEE and a suggested macro split."""
    state = get_state(ctx)
    try:
        config = state.load_config()
        if weight is not None:
            weight_kg = to_kg(weight, lbs)
        else:
            latest = state.store.latest_weight()
            if latest is None:
                raise ValidationError("No weight logged; pass --weight or log one first")
            weight_kg = latest.weight

        bmr = mifflin(weight_kg, config.height, config.age, config.gender)
        daily = tdee(bmr, config.activity_level)

        goal = None
        if config.phase is not None and config.phase.is_active:
            goal = clamp_goal_to_macro_bounds(
                goal_calories(daily, config.phase.target_rate), weight_kg
            )
        split = macros(weight_kg, fat_fraction, goal or daily)
        bounds = macro_bounds(weight_kg, goal or daily)
    except BiteError as e:
        fail("metrics", e, json_output)

    if json_output:
        protein, carbs, fat = split
        output_json({
            "success": True,
            "command": "metrics",
            "data": {
                "weight_kg": weight_kg,
                "bmr_kcal": round(bmr, 1),
                "tdee_kcal": round(daily, 1),
                "goal_kcal": round(goal, 1) if goal is not None else None,
                "protein_g": protein,
                "carbs_g": carbs,
                "fat_g": fat,
                "min_macros_g": [round(g, 1) for g in bounds[0]],
                "max_macros_g": [round(g, 1) for g in bounds[1]],
            },
            "human_summary": f"BMR {bmr:.0f} kcal, TDEE {daily:.0f} kcal",
        })
    else:
        ReportFormatter(console).metrics(bmr, daily, split, goal, bounds)


# ============================================================================
# Log Commands
# ============================================================================


@log_app.command("weight")
def log_weight(
    ctx: typer.Context,
    weight: float = typer.Argument(..., help="Weight in kg"),
    lbs: bool = typer.Option(False, "--lbs", help="Weight is given in lbs"),
    date_str: Optional[str] = typer.Option(
        None, "--date", "-d", help="Date (YYYY-MM-DD, default: today)"
    ),
) -> None:
    """Log a weigh-in."""
    state = get_state(ctx)
    try:
        entry = state.store.append(Entry(
            date=parse_date_option(date_str),
            kind=EntryKind.WEIGHT,
            weight=round(to_kg(weight, lbs), 2),
        ))
    except BiteError as e:
        fail("log weight", e)

    console.print(
        f"[green]Logged:[/green] {entry.weight:.1f} kg on {entry.date} (ID: {entry.entry_id})"
    )


def _log_eaten(
    ctx: typer.Context,
    kind: EntryKind,
    key: str,
    calories: Optional[float],
    protein: Optional[float],
    carbs: Optional[float],
    fat: Optional[float],
    servings: Optional[float],
    date_str: Optional[str],
) -> None:
    """Log a food or meal from the catalog, or an ad-hoc one when calories are given."""
    state = get_state(ctx)
    try:
        day = parse_date_option(date_str)
        if calories is not None:
            entry = Entry(
                date=day,
                kind=kind,
                name=key,
                calories=calories,
                protein=protein,
                carbs=carbs,
                fat=fat,
                servings=1.0 if servings is None else servings,
            )
        elif kind == EntryKind.FOOD:
            entry = entry_for_food(state.catalog.find_food(key), day, servings)
        else:
            entry = entry_for_meal(
                state.catalog.find_meal(key), day, 1.0 if servings is None else servings
            )
        entry = state.store.append(entry)
    except BiteError as e:
        fail(f"log {kind.value}", e)

    console.print(
        f"[green]Logged {kind.value}:[/green] {entry.name} "
        f"({entry.total_calories:.0f} kcal) on {entry.date} (ID: {entry.entry_id})"
    )


@log_app.command("food")
def log_food(
    ctx: typer.Context,
    food: str = typer.Argument(
        ..., help="Catalog food id or name (any name when --calories is given)"
    ),
    calories: Optional[float] = typer.Option(
        None, "--calories", "-c", help="Calories per serving; logs without the catalog"
    ),
    protein: Optional[float] = typer.Option(None, "--protein", "-p", help="Protein (g)"),
    carbs: Optional[float] = typer.Option(None, "--carbs", help="Carbs (g)"),
    fat: Optional[float] = typer.Option(None, "--fat", "-f", help="Fat (g)"),
    servings: Optional[float] = typer.Option(
        None, "--servings", "-s", help="Number of servings (default: the food's preference)"
    ),
    date_str: Optional[str] = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD)"),
) -> None:
    """Log a food from the catalog, or any food with --calories."""
    _log_eaten(ctx, EntryKind.FOOD, food, calories, protein, carbs, fat, servings, date_str)


@log_app.command("meal")
def log_meal(
    ctx: typer.Context,
    meal: str = typer.Argument(
        ..., help="Catalog meal id or name (any name when --calories is given)"
    ),
    calories: Optional[float] = typer.Option(
        None, "--calories", "-c", help="Calories per serving; logs without the catalog"
    ),
    protein: Optional[float] = typer.Option(None, "--protein", "-p", help="Protein (g)"),
    carbs: Optional[float] = typer.Option(None, "--carbs", help="Carbs (g)"),
    fat: Optional[float] = typer.Option(None, "--fat", "-f", help="Fat (g)"),
    servings: Optional[float] = typer.Option(
        None, "--servings", "-s", help="Number of servings (default: 1)"
    ),
    date_str: Optional[str] = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD)"),
) -> None:
    """Log a meal from the catalog, or any meal with --calories."""
    _log_eaten(ctx, EntryKind.MEAL, meal, calories, protein, carbs, fat, servings, date_str)


@log_app.command("show")
def log_show(
    ctx: typer.Context,
    kind: Optional[str] = typer.Option(
        None, "--kind", "-k", help="Only entries of this kind (weight/food/meal)"
    ),
    days: Optional[int] = typer.Option(None, "--days", help="Only the last N days"),
    phase_only: bool = typer.Option(
        False, "--phase", help="Only entries in the current phase"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List logged entries. Weight listings include the EMA trend."""
    state = get_state(ctx)
    try:
        entries = state.store.all_entries()
        if phase_only:
            entries = state.tracker(state.load_config()).valid_log(entries)
        if kind:
            try:
                entry_kind = EntryKind(kind.lower())
            except ValueError:
                raise ValidationError(
                    f"kind must be weight, food or meal, got '{kind}'"
                ) from None
            entries = [e for e in entries if e.kind == entry_kind]
        if days is not None:
            cutoff = date.today() - timedelta(days=days)
            entries = [e for e in entries if e.date > cutoff]
    except BiteError as e:
        fail("log show", e, json_output)

    if json_output:
        output_json({
            "success": True,
            "command": "log show",
            "data": {"entries": [entry_as_dict(e) for e in entries]},
            "human_summary": f"{len(entries)} entries",
        })
        return

    formatter = ReportFormatter(console)
    if kind and kind.lower() == EntryKind.WEIGHT.value:
        formatter.weights(entries)
    else:
        formatter.entries(entries)


@log_app.command("update")
def log_update(
    ctx: typer.Context,
    entry_id: int = typer.Argument(..., help="Entry ID"),
    date_str: Optional[str] = typer.Option(None, "--date", "-d", help="New date"),
    weight: Optional[float] = typer.Option(None, "--weight", "-w", help="New weight (kg)"),
    name: Optional[str] = typer.Option(None, "--name", help="New name"),
    calories: Optional[float] = typer.Option(None, "--calories", "-c", help="New calories"),
    protein: Optional[float] = typer.Option(None, "--protein", "-p", help="New protein (g)"),
    carbs: Optional[float] = typer.Option(None, "--carbs", help="New carbs (g)"),
    fat: Optional[float] = typer.Option(None, "--fat", "-f", help="New fat (g)"),
    servings: Optional[float] = typer.Option(None, "--servings", "-s", help="New servings"),
) -> None:
    """Edit fields of an existing entry."""
    state = get_state(ctx)
    changes = {
        "weight": weight,
        "name": name,
        "calories": calories,
        "protein": protein,
        "carbs": carbs,
        "fat": fat,
        "servings": servings,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    try:
        entry = state.store.get(entry_id)
        if date_str:
            changes["date"] = parse_date_option(date_str)
        if not changes:
            raise ValidationError("Nothing to update")
        if entry.kind == EntryKind.WEIGHT and set(changes) - {"weight", "date"}:
            raise ValidationError("Weight entries only have a date and a weight")
        if entry.kind != EntryKind.WEIGHT and "weight" in changes:
            raise ValidationError(f"{entry.kind.value} entries have no weight")
        updated = state.store.update(replace(entry, **changes))
    except BiteError as e:
        fail("log update", e)

    console.print(f"[green]Updated entry {updated.entry_id}[/green]")


@log_app.command("delete")
def log_delete(
    ctx: typer.Context,
    entry_id: int = typer.Argument(..., help="Entry ID"),
) -> None:
    """Delete an entry."""
    state = get_state(ctx)
    try:
        state.store.delete(entry_id)
    except BiteError as e:
        fail("log delete", e)

    console.print(f"[green]Deleted entry {entry_id}[/green]")


# ============================================================================
# Catalog Commands
# ============================================================================


@food_app.command("add")
def food_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Food name"),
    calories: float = typer.Option(..., "--calories", "-c", help="Calories per serving"),
    protein: Optional[float] = typer.Option(None, "--protein", "-p", help="Protein (g)"),
    carbs: Optional[float] = typer.Option(None, "--carbs", help="Carbs (g)"),
    fat: Optional[float] = typer.Option(None, "--fat", "-f", help="Fat (g)"),
    serving_size: float = typer.Option(100.0, "--serving-size", help="Size of one serving"),
    serving_unit: str = typer.Option("g", "--serving-unit", help="Unit of the serving size"),
    servings: float = typer.Option(
        1.0, "--servings", "-s", help="Servings logged when none are given"
    ),
) -> None:
    """Add a food to the catalog."""
    state = get_state(ctx)
    try:
        food = state.catalog.add_food(Food(
            name=name.strip(),
            calories=calories,
            protein=protein,
            carbs=carbs,
            fat=fat,
            serving_size=serving_size,
            serving_unit=serving_unit,
            servings=servings,
        ))
    except BiteError as e:
        fail("food add", e)

    console.print(f"[green]Added food:[/green] {food.name} (ID: {food.food_id})")


@food_app.command("list")
def food_list(
    ctx: typer.Context,
    search: Optional[str] = typer.Option(None, "--search", help="Only names containing this"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List catalog foods."""
    state = get_state(ctx)
    try:
        foods = state.catalog.foods(search)
    except BiteError as e:
        fail("food list", e, json_output)

    if json_output:
        output_json({
            "success": True,
            "command": "food list",
            "data": {"foods": [food_as_dict(f) for f in foods]},
            "human_summary": f"{len(foods)} foods",
        })
    else:
        ReportFormatter(console).foods(foods)


@food_app.command("update")
def food_update(
    ctx: typer.Context,
    food: str = typer.Argument(..., help="Food id or name"),
    name: Optional[str] = typer.Option(None, "--name", help="New name"),
    calories: Optional[float] = typer.Option(None, "--calories", "-c", help="Calories per serving"),
    protein: Optional[float] = typer.Option(None, "--protein", "-p", help="Protein (g)"),
    carbs: Optional[float] = typer.Option(None, "--carbs", help="Carbs (g)"),
    fat: Optional[float] = typer.Option(None, "--fat", "-f", help="Fat (g)"),
    serving_size: Optional[float] = typer.Option(None, "--serving-size", help="Serving size"),
    serving_unit: Optional[str] = typer.Option(None, "--serving-unit", help="Serving unit"),
    servings: Optional[float] = typer.Option(
        None, "--servings", "-s", help="Servings logged when none are given"
    ),
) -> None:
    """Edit a catalog food. Entries already logged keep their values."""
    state = get_state(ctx)
    changes = {
        "name": name.strip() if name is not None else None,
        "calories": calories,
        "protein": protein,
        "carbs": carbs,
        "fat": fat,
        "serving_size": serving_size,
        "serving_unit": serving_unit,
        "servings": servings,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    try:
        if not changes:
            raise ValidationError("Nothing to update")
        existing = state.catalog.find_food(food)
        updated = state.catalog.update_food(replace(existing, **changes))
    except BiteError as e:
        fail("food update", e)

    console.print(f"[green]Updated food {updated.food_id}[/green] ({updated.name})")


@food_app.command("delete")
def food_delete(
    ctx: typer.Context,
    food: str = typer.Argument(..., help="Food id or name"),
) -> None:
    """Delete a catalog food that no meal uses."""
    state = get_state(ctx)
    try:
        existing = state.catalog.find_food(food)
        state.catalog.delete_food(existing.food_id)
    except BiteError as e:
        fail("food delete", e)

    console.print(f"[green]Deleted food {existing.food_id}[/green] ({existing.name})")


@meal_app.command("add")
def meal_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Meal name"),
    foods: Optional[list[str]] = typer.Option(
        None, "--food", help="Food id or name to include (repeatable)"
    ),
) -> None:
    """Create a meal, optionally with some catalog foods."""
    state = get_state(ctx)
    try:
        catalog = state.catalog
        members = [catalog.find_food(key) for key in foods or []]
        meal = catalog.add_meal(name)
        for food in members:
            meal = catalog.add_meal_food(meal.meal_id, food.food_id)
    except BiteError as e:
        fail("meal add", e)

    console.print(
        f"[green]Added meal:[/green] {meal.name} (ID: {meal.meal_id}, "
        f"{len(meal.items)} foods, {meal.calories:.0f} kcal)"
    )


@meal_app.command("add-food")
def meal_add_food(
    ctx: typer.Context,
    meal: str = typer.Argument(..., help="Meal id or name"),
    food: str = typer.Argument(..., help="Food id or name"),
    servings: Optional[float] = typer.Option(
        None, "--servings", "-s", help="Servings in this meal (default: the food's preference)"
    ),
) -> None:
    """Put a food in a meal, or change its servings there."""
    state = get_state(ctx)
    try:
        catalog = state.catalog
        target = catalog.find_meal(meal)
        updated = catalog.add_meal_food(
            target.meal_id, catalog.find_food(food).food_id, servings
        )
    except BiteError as e:
        fail("meal add-food", e)

    console.print(
        f"[green]Updated meal {updated.name}[/green] "
        f"({len(updated.items)} foods, {updated.calories:.0f} kcal)"
    )


@meal_app.command("remove-food")
def meal_remove_food(
    ctx: typer.Context,
    meal: str = typer.Argument(..., help="Meal id or name"),
    food: str = typer.Argument(..., help="Food id or name"),
) -> None:
    """Take a food out of a meal."""
    state = get_state(ctx)
    try:
        catalog = state.catalog
        target = catalog.find_meal(meal)
        updated = catalog.remove_meal_food(target.meal_id, catalog.find_food(food).food_id)
    except BiteError as e:
        fail("meal remove-food", e)

    console.print(
        f"[green]Updated meal {updated.name}[/green] "
        f"({len(updated.items)} foods, {updated.calories:.0f} kcal)"
    )


@meal_app.command("list")
def meal_list(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List meals with their foods and totals."""
    state = get_state(ctx)
    try:
        meals = state.catalog.meals()
    except BiteError as e:
        fail("meal list", e, json_output)

    if json_output:
        output_json({
            "success": True,
            "command": "meal list",
            "data": {"meals": [meal_as_dict(m) for m in meals]},
            "human_summary": f"{len(meals)} meals",
        })
    else:
        ReportFormatter(console).meals(meals)


@meal_app.command("delete")
def meal_delete(
    ctx: typer.Context,
    meal: str = typer.Argument(..., help="Meal id or name"),
) -> None:
    """Delete a meal. Its foods stay in the catalog."""
    state = get_state(ctx)
    try:
        existing = state.catalog.find_meal(meal)
        state.catalog.delete_meal(existing.meal_id)
    except BiteError as e:
        fail("meal delete", e)

    console.print(f"[green]Deleted meal {existing.meal_id}[/green] ({existing.name})")


# ============================================================================
# Summary Commands
# ============================================================================


@summary_app.command("phase")
def summary_phase(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the diet phase with progress against its target rate."""
    state = get_state(ctx)
    try:
        config = state.load_config()
        tracker = state.tracker(config)
        if config.phase is None:
            raise ValidationError("No diet phase yet. Start one with: bite start phase cut")

        status = tracker.check_phase_status()
        active = tracker.valid_log(state.store.all_entries())
        weeks = tracker.weekly_summaries(active)

        assessment = None
        insufficient = None
        try:
            assessment = tracker.check_progress(active)
        except InsufficientDataError as e:
            insufficient = str(e)
    except BiteError as e:
        fail("summary phase", e, json_output)

    phase = config.phase
    if json_output:
        output_json({
            "success": True,
            "command": "summary phase",
            "data": {
                "phase": phase.name.value,
                "status": status.value,
                "start_date": phase.start_date.isoformat(),
                "end_date": phase.end_date.isoformat() if phase.end_date else None,
                "target_rate_kg_per_week": phase.target_rate,
                "goal_weight_kg": phase.goal_weight,
                "overdue": tracker.is_overdue(),
                "entries": len(active),
                "progress": assessment_as_dict(assessment) if assessment else None,
                "missed_week_streak": missed_week_streak(weeks),
                "weeks": [
                    {
                        "week": w.week_number,
                        "start": w.start.isoformat(),
                        "weigh_ins": w.weigh_ins,
                        "change_kg": round(w.change, 2) if w.change is not None else None,
                        "rate_kg_per_week": round(w.rate, 3) if w.rate is not None else None,
                        "met_target": w.met_target,
                    }
                    for w in weeks
                ],
            },
            "human_summary": (
                f"{phase.name.value} ({status.value}): "
                + (assessment.status.value if assessment else "not enough data")
            ),
        })
        return

    ReportFormatter(console).phase(
        phase,
        status,
        assessment,
        weeks=weeks,
        missed_streak=missed_week_streak(weeks),
        overdue=tracker.is_overdue(),
        suggestion=tracker.transition_suggestion(),
        insufficient=insufficient,
    )


@summary_app.command("user")
def summary_user(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the stored user config."""
    state = get_state(ctx)
    try:
        config = state.load_config()
        status = state.tracker(config).check_phase_status()
    except BiteError as e:
        fail("summary user", e, json_output)

    if json_output:
        output_json({
            "success": True,
            "command": "summary user",
            "data": {
                "height_cm": config.height,
                "age": config.age,
                "gender": config.gender.value,
                "activity_level": config.activity_level.value,
                "phase": config.phase.name.value if config.phase else None,
                "phase_status": status.value,
            },
            "human_summary": f"{config.gender.value}, {config.age}y, {config.height}cm",
        })
    else:
        ReportFormatter(console).user(config, status)


@summary_app.command("diet")
def summary_diet(
    ctx: typer.Context,
    date_str: Optional[str] = typer.Option(
        None, "--date", "-d", help="Day to summarize (default: today)"
    ),
    fat_fraction: float = typer.Option(
        0.3, "--fat-fraction", help="Share of non-protein calories from fat"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show one day's food and meals against calorie and macro goals."""
    state = get_state(ctx)
    try:
        config = state.load_config()
        day = parse_date_option(date_str)
        entries = state.store.entries_on(day)

        goal = None
        targets = None
        phase = config.phase
        latest = state.store.latest_weight()
        if phase is not None and phase.is_active and phase.goal_calories is not None:
            goal = phase.goal_calories
        elif latest is not None:
            goal = tdee(
                mifflin(latest.weight, config.height, config.age, config.gender),
                config.activity_level,
            )
        if latest is not None and goal is not None:
            targets = macros(latest.weight, fat_fraction, goal)
    except BiteError as e:
        fail("summary diet", e, json_output)

    eaten = [e for e in entries if e.kind != EntryKind.WEIGHT]
    if json_output:
        output_json({
            "success": True,
            "command": "summary diet",
            "data": {
                "date": day.isoformat(),
                "entries": [entry_as_dict(e) for e in eaten],
                "calories": round(sum(e.total_calories for e in eaten), 1),
                "goal_kcal": round(goal, 1) if goal is not None else None,
            },
            "human_summary": f"{len(eaten)} items on {day.isoformat()}",
        })
    else:
        ReportFormatter(console).diet_day(day, entries, goal, targets)


@summary_app.command("foods")
def summary_foods(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", "-n", help="How many frequent foods to show"),
    phase_only: bool = typer.Option(
        False, "--phase", help="Only foods logged in the current phase"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show how many foods were logged and the most frequent ones."""
    state = get_state(ctx)
    try:
        if limit < 1:
            raise ValidationError(f"--limit must be at least 1, got {limit}")
        entries = state.store.all_entries()
        if phase_only:
            entries = state.tracker(state.load_config()).valid_log(entries)
        summary = summarize_food_log(entries, limit)
    except BiteError as e:
        fail("summary foods", e, json_output)

    if json_output:
        output_json({
            "success": True,
            "command": "summary foods",
            "data": {
                "total": summary.total,
                "frequent": [
                    {"name": name, "count": count} for name, count in summary.frequent
                ],
            },
            "human_summary": f"{summary.total} foods logged",
        })
    else:
        ReportFormatter(console).food_log(summary)


# ============================================================================
# Configuration Commands
# ============================================================================


@update_app.command("user")
def update_user(
    ctx: typer.Context,
    height: Optional[float] = typer.Option(None, "--height", help="Height in cm"),
    inches: bool = typer.Option(False, "--inches", help="Height is given in inches"),
    age: Optional[int] = typer.Option(None, "--age", help="Age in years"),
    gender: Optional[str] = typer.Option(None, "--gender", help="Gender (male/female)"),
    activity: Optional[str] = typer.Option(None, "--activity", help="Activity level"),
) -> None:
    """Update the user's biometrics."""
    state = get_state(ctx)
    try:
        config = state.load_config()
        updated = UserConfig(
            height=config.height if height is None else round(to_cm(height, inches), 1),
            age=config.age if age is None else age,
            gender=config.gender if gender is None else gender,
            activity_level=config.activity_level if activity is None else activity,
            phase=config.phase,
        )
        state.users.save(updated)
    except BiteError as e:
        fail("update user", e)

    console.print("[green]User config updated[/green]")


@start_app.command("phase")
def start_phase(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Phase (cut/maintain/bulk)"),
    date_str: Optional[str] = typer.Option(
        None, "--date", "-d", help="Start date (YYYY-MM-DD, default: today)"
    ),
    rate: Optional[float] = typer.Option(
        None, "--rate", help="Target rate in kg/week (negative for a cut)"
    ),
    weeks: Optional[int] = typer.Option(None, "--weeks", help="Planned duration in weeks"),
    goal_weight: Optional[float] = typer.Option(
        None, "--goal-weight", help="Weight to reach, within 10% of the start weight"
    ),
    lbs: bool = typer.Option(False, "--lbs", help="Goal weight is given in lbs"),
) -> None:
    """Start a new diet phase."""
    state = get_state(ctx)
    try:
        config = state.load_config()
        latest = state.store.latest_weight()
        phase = state.tracker(config).start_phase(
            name,
            start_date=parse_date_option(date_str),
            target_rate=rate,
            planned_weeks=weeks,
            current_weight=latest.weight if latest else None,
            goal_weight=to_kg(goal_weight, lbs) if goal_weight is not None else None,
        )
        state.users.save(config)
    except BiteError as e:
        fail("start phase", e)

    console.print(
        f"[green]Started {phase.name.value} phase[/green] on {phase.start_date} "
        f"({phase.target_rate:+.2f} kg/week for {phase.planned_weeks} weeks)"
    )
    if phase.goal_calories is not None:
        console.print(f"  Goal calories: {phase.goal_calories:.0f} kcal/day")
    if phase.goal_weight is not None:
        console.print(f"  Goal weight: {phase.goal_weight:.1f} kg")


@stop_app.command("phase")
def stop_phase(ctx: typer.Context) -> None:
    """Stop the active diet phase."""
    state = get_state(ctx)
    try:
        config = state.load_config()
        tracker = state.tracker(config)
        phase = tracker.stop_phase()
        state.users.save(config)
    except BiteError as e:
        fail("stop phase", e)

    console.print(f"[green]Stopped {phase.name.value} phase[/green] on {phase.end_date}")
    suggestion = tracker.transition_suggestion()
    if suggestion:
        console.print(f"  {suggestion}")


if __name__ == "__main__":
    app()
