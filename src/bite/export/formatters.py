"""Output formatters for the entry log, metrics and phase summaries."""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bite.profiles.body_calc import cm_to_inches, kg_to_lbs
from bite.tracking.ema import DEFAULT_SMOOTHING, calculate_trend
from bite.tracking.models import (
    DietPhase,
    Entry,
    EntryKind,
    Food,
    FoodLogSummary,
    Meal,
    PhaseStatus,
    ProgressAssessment,
    ProgressStatus,
    UserConfig,
    WeekSummary,
)

STATUS_COLORS = {
    ProgressStatus.ON_TRACK: "green",
    ProgressStatus.TOO_SLOW: "yellow",
    ProgressStatus.TOO_FAST: "yellow",
    ProgressStatus.WRONG_DIRECTION: "red",
}


def create_progress_bar(current: float, target: float, width: int = 30) -> str:
    """Create a text-based progress bar."""
    if target <= 0:
        return "[dim]No target set[/dim]"

    percentage = min(current / target, 1.5)  # Cap at 150% for display
    filled = min(int(percentage * width), width)

    if percentage >= 1.0:
        color = "green" if percentage <= 1.1 else "yellow"
    else:
        color = "blue"

    bar = f"[{color}]{'█' * filled}[/{color}][dim]{'░' * (width - filled)}[/dim]"
    return f"{bar} {percentage * 100:.0f}%"


def format_entry_value(entry: Entry) -> str:
    """One-line description of an entry's payload."""
    if entry.kind == EntryKind.WEIGHT:
        return f"{entry.weight:.1f} kg"

    servings = f" x{entry.servings:g}" if entry.servings != 1 else ""
    parts = [f"{entry.name}{servings}", f"{entry.total_calories:.0f} kcal"]
    macros = [
        f"{label[0].upper()} {entry.total(label):.0f}g"
        for label in ("protein", "carbs", "fat")
        if getattr(entry, label) is not None
    ]
    if macros:
        parts.append(" / ".join(macros))
    return ", ".join(parts)


def entry_as_dict(entry: Entry) -> dict:
    """JSON-friendly view of an entry."""
    data = {
        "id": entry.entry_id,
        "date": entry.date.isoformat(),
        "time": entry.time.strftime("%H:%M:%S"),
        "kind": entry.kind.value,
    }
    if entry.kind == EntryKind.WEIGHT:
        data["weight_kg"] = entry.weight
    else:
        data.update({
            "name": entry.name,
            "calories": entry.calories,
            "protein": entry.protein,
            "carbs": entry.carbs,
            "fat": entry.fat,
            "servings": entry.servings,
            "source_id": entry.source_id,
        })
    return data


def assessment_as_dict(assessment: ProgressAssessment) -> dict:
    """JSON-friendly view of a progress assessment."""
    return {
        "phase": assessment.phase.value,
        "status": assessment.status.value,
        "target_rate_kg_per_week": assessment.target_rate,
        "actual_rate_kg_per_week": round(assessment.actual_rate, 3),
        "tolerance_kg_per_week": round(assessment.tolerance, 3),
        "weigh_ins": assessment.weigh_ins,
        "first_weight_kg": assessment.first_weight,
        "last_weight_kg": assessment.last_weight,
        "total_change_kg": round(assessment.total_change, 2),
        "span_days": assessment.span_days,
        "daily_energy_balance_kcal": round(assessment.daily_energy_balance),
        "calorie_adjustment_kcal": round(assessment.calorie_adjustment),
        "threshold_exceeded": assessment.threshold_exceeded,
        "goal_reached": assessment.goal_reached,
        "recommendation": assessment.recommendation,
    }


def food_as_dict(food: Food) -> dict:
    """JSON-friendly view of a catalog food."""
    return {
        "id": food.food_id,
        "name": food.name,
        "calories": food.calories,
        "protein": food.protein,
        "carbs": food.carbs,
        "fat": food.fat,
        "serving_size": food.serving_size,
        "serving_unit": food.serving_unit,
        "servings": food.servings,
    }


def meal_as_dict(meal: Meal) -> dict:
    """JSON-friendly view of a meal and its foods."""
    return {
        "id": meal.meal_id,
        "name": meal.name,
        "foods": [
            {"id": item.food.food_id, "name": item.food.name, "servings": item.servings}
            for item in meal.items
        ],
        "calories": round(meal.calories, 2),
        "protein": round(meal.total("protein"), 2),
        "carbs": round(meal.total("carbs"), 2),
        "fat": round(meal.total("fat"), 2),
    }


class ReportFormatter:
    """Format tracking data as Rich tables for terminal display."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize the formatter.

        Args:
            console: Rich console for output. If None, creates a new one.
        """
        self.console = console or Console()

    def entries(self, entries: Sequence[Entry], title: str = "Log") -> None:
        """Print entries as a table of id, date, kind and value."""
        if not entries:
            self.console.print("No entries found")
            return

        table = Table(title=title)
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Date", style="cyan")
        table.add_column("Kind")
        table.add_column("Value")

        for entry in entries:
            table.add_row(
                str(entry.entry_id) if entry.entry_id is not None else "-",
                entry.date.isoformat(),
                entry.kind.value,
                format_entry_value(entry),
            )

        self.console.print(table)

    def weights(
        self,
        entries: Sequence[Entry],
        smoothing: float = DEFAULT_SMOOTHING,
        title: str = "Weight History",
    ) -> None:
        """Print weigh-ins with their EMA trend and day-to-day trend delta."""
        weights = [e for e in entries if e.kind == EntryKind.WEIGHT]
        if not weights:
            self.console.print("No weight entries found")
            return

        trends = calculate_trend([(e.date, e.weight) for e in weights], smoothing)

        table = Table(title=title)
        table.add_column("Date", style="cyan")
        table.add_column("Weight", justify="right")
        table.add_column("Trend", justify="right", style="blue")
        table.add_column("", justify="right")

        prev_trend = None
        for entry, trend in zip(weights, trends):
            delta = ""
            if prev_trend is not None:
                delta = f"{trend - prev_trend:+.2f}"
            prev_trend = trend

            table.add_row(
                entry.date.isoformat(),
                f"{entry.weight:.1f}",
                f"{trend:.1f}",
                delta,
            )

        self.console.print(table)

    def metrics(
        self,
        bmr: float,
        tdee: float,
        macros: tuple[float, float, float],
        goal_calories: Optional[float] = None,
        bounds: Optional[tuple[tuple[float, float, float], tuple[float, float, float]]] = None,
    ) -> None:
        """Print BMR, TDEE and the macro split as labelled lines."""
        protein, carbs, fat = macros
        self.console.print(f"[bold]BMR:[/bold] {bmr:.0f} kcal/day")
        self.console.print(f"[bold]TDEE:[/bold] {tdee:.0f} kcal/day")
        if goal_calories is not None:
            self.console.print(f"[bold]Goal:[/bold] {goal_calories:.0f} kcal/day")
        self.console.print(
            f"[bold]Macros:[/bold] protein {protein:.0f}g, carbs {carbs:.0f}g, fat {fat:.0f}g"
        )
        if bounds is not None:
            ranges = ", ".join(
                f"{label} {low:.0f}-{high:.0f}g"
                for label, low, high in zip(("protein", "carbs", "fat"), *bounds)
            )
            self.console.print(f"[bold]Bounds:[/bold] {ranges}")

    def user(self, config: UserConfig, status: PhaseStatus) -> None:
        """Print the user's biometrics and phase."""
        lines = [
            f"Height: {config.height:.1f} cm ({cm_to_inches(config.height):.1f} in)",
            f"Age: {config.age}",
            f"Gender: {config.gender.value}",
            f"Activity: {config.activity_level.value}",
        ]
        phase = config.phase
        if phase is None:
            lines.append("Phase: [dim]none[/dim]")
        else:
            color = "green" if status == PhaseStatus.ACTIVE else "dim"
            lines.append(
                f"Phase: {phase.name.value} [{color}]({status.value})[/{color}] "
                f"since {phase.start_date}"
            )
        self.console.print(Panel("\n".join(lines), title="User"))

    def phase(
        self,
        phase: DietPhase,
        status: PhaseStatus,
        assessment: Optional[ProgressAssessment],
        weeks: Sequence[WeekSummary] = (),
        missed_streak: int = 0,
        overdue: bool = False,
        suggestion: Optional[str] = None,
        insufficient: Optional[str] = None,
    ) -> None:
        """Print the phase header, progress and weekly breakdown."""
        color = "green" if status == PhaseStatus.ACTIVE else "dim"
        header = [
            f"[bold]{phase.name.value.upper()}[/bold] "
            f"[{color}]{status.value}[/{color}]",
            f"Started: {phase.start_date}",
            f"Target: {phase.target_rate:+.2f} kg/week",
        ]
        if phase.end_date:
            header.append(f"Ended: {phase.end_date}")
        elif phase.planned_end:
            header.append(f"Planned end: {phase.planned_end} ({phase.planned_weeks} weeks)")
        if phase.start_weight is not None:
            header.append(
                f"Start weight: {phase.start_weight:.1f} kg "
                f"({kg_to_lbs(phase.start_weight):.1f} lbs)"
            )
        if phase.goal_weight is not None:
            header.append(
                f"Goal weight: {phase.goal_weight:.1f} kg "
                f"({kg_to_lbs(phase.goal_weight):.1f} lbs)"
            )
        if phase.goal_calories is not None:
            header.append(f"Goal calories: {phase.goal_calories:.0f} kcal/day")
        self.console.print(Panel("\n".join(header), title="Diet Phase"))

        if overdue:
            self.console.print(
                "[yellow]This phase has passed its planned end date.[/yellow]"
            )
            if suggestion:
                self.console.print(f"  {suggestion}")

        if assessment is None:
            if insufficient:
                self.console.print(f"[yellow]{insufficient}[/yellow]")
        else:
            status_color = STATUS_COLORS[assessment.status]
            self.console.print(
                f"Progress: [{status_color}]{assessment.status.value}[/{status_color}] "
                f"({assessment.actual_rate:+.2f} kg/week vs "
                f"{assessment.target_rate:+.2f} ± {assessment.tolerance:.2f})"
            )
            self.console.print(
                f"  Change: {assessment.total_change:+.1f} kg over "
                f"{assessment.span_days} days ({assessment.weigh_ins} weigh-ins)"
            )
            self.console.print(
                f"  Implied balance: {assessment.daily_energy_balance:+.0f} kcal/day"
            )
            self.console.print(f"  {assessment.recommendation}")

        if weeks:
            table = Table(title="Weekly Breakdown")
            table.add_column("Week", justify="right")
            table.add_column("From", style="cyan")
            table.add_column("To", style="cyan")
            table.add_column("Weigh-ins", justify="right")
            table.add_column("Change", justify="right")
            table.add_column("kg/week", justify="right")
            table.add_column("Target", justify="center")

            for week in weeks:
                if week.met_target is None:
                    met = "[dim]-[/dim]"
                elif week.met_target:
                    met = "[green]OK[/green]"
                else:
                    met = "[red]![/red]"
                change = f"{week.change:+.2f}" if week.change is not None else "-"
                rate = f"{week.rate:+.2f}" if week.rate is not None else "-"
                table.add_row(
                    str(week.week_number),
                    week.start.isoformat(),
                    week.end.isoformat(),
                    str(week.weigh_ins),
                    change,
                    rate,
                    met,
                )
            self.console.print(table)

        if missed_streak >= 2:
            self.console.print(
                f"[yellow]Target missed {missed_streak} weeks in a row; "
                "consider adjusting your intake.[/yellow]"
            )

    def diet_day(
        self,
        day: date,
        entries: Sequence[Entry],
        goal_calories: Optional[float] = None,
        macro_targets: Optional[tuple[float, float, float]] = None,
    ) -> None:
        """Print one day's food and meal totals with progress bars."""
        eaten = [e for e in entries if e.kind != EntryKind.WEIGHT]
        self.entries(eaten, title=f"Diet Summary {day.isoformat()}")

        calories = sum(e.total_calories for e in eaten)
        totals = [sum(e.total(m) for e in eaten) for m in ("protein", "carbs", "fat")]
        targets = macro_targets or (0.0, 0.0, 0.0)

        self.console.print()
        self.console.print(
            f"  Calories  {calories:7.0f} / {goal_calories or 0:.0f}  "
            f"{create_progress_bar(calories, goal_calories or 0)}"
        )
        for label, total, target in zip(("Protein", "Carbs", "Fat"), totals, targets):
            self.console.print(
                f"  {label:<8}  {total:7.0f} / {target:.0f}g  "
                f"{create_progress_bar(total, target)}"
            )

    def foods(self, foods: Sequence[Food], title: str = "Foods") -> None:
        """Print catalog foods with their nutrition per serving."""
        if not foods:
            self.console.print("No foods in the catalog")
            return

        table = Table(title=title)
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Serving")
        table.add_column("kcal", justify="right")
        table.add_column("P", justify="right")
        table.add_column("C", justify="right")
        table.add_column("F", justify="right")
        table.add_column("Pref", justify="right")

        def grams(value: Optional[float]) -> str:
            return f"{value:.0f}" if value is not None else "-"

        for food in foods:
            table.add_row(
                str(food.food_id),
                food.name,
                f"{food.serving_size:g} {food.serving_unit}",
                f"{food.calories:.0f}",
                grams(food.protein),
                grams(food.carbs),
                grams(food.fat),
                f"x{food.servings:g}",
            )

        self.console.print(table)

    def meals(self, meals: Sequence[Meal]) -> None:
        """Print each meal with its foods and totals."""
        if not meals:
            self.console.print("No meals in the catalog")
            return

        table = Table(title="Meals")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Foods")
        table.add_column("kcal", justify="right")
        table.add_column("P / C / F (g)", justify="right")

        for meal in meals:
            foods = ", ".join(
                f"{item.food.name} x{item.servings:g}" for item in meal.items
            ) or "[dim]empty[/dim]"
            table.add_row(
                str(meal.meal_id),
                meal.name,
                foods,
                f"{meal.calories:.0f}",
                " / ".join(f"{meal.total(m):.0f}" for m in ("protein", "carbs", "fat")),
            )

        self.console.print(table)

    def food_log(self, summary: FoodLogSummary) -> None:
        """Print the number of foods logged and the most frequent ones."""
        self.console.print(f"[bold]Total foods logged:[/bold] {summary.total}")
        if not summary.frequent:
            return

        table = Table(title="Most Frequent Foods")
        table.add_column("Food", style="cyan")
        table.add_column("Times eaten", justify="right")
        for name, count in summary.frequent:
            table.add_row(name, str(count))
        self.console.print(table)
