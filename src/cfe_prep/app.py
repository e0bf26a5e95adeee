"""Interactive CLI application."""
import logging
import time
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from cfe_prep.cases import DIFFICULTIES, case_options, complete_case, completed_case_ids, list_cases
from cfe_prep.config import DEFAULT_DB_PATH, DEFAULT_USER_ID, configure_logging
from cfe_prep.dashboard import get_dashboard, get_readiness_color
from cfe_prep.db import StoreError, init_db
from cfe_prep.exam import build_mock_exams, get_domains, list_mock_exams, load_exam_questions
from cfe_prep.export import default_export_name, export_json, export_progress_csv, reset_progress
from cfe_prep.flashcards import get_cards_for_domain, get_due_cards, record_flashcard_result
from cfe_prep.gamification import check_achievements, list_achievements
from cfe_prep.importer import import_csv, write_template
from cfe_prep.materials import import_material
from cfe_prep.models import CaseStudy
from cfe_prep.progress import get_progress_report
from cfe_prep.quiz import PRACTICE_MODES, answer_question, get_practice_questions, question_options
from cfe_prep.seed import is_seeded, seed_all
from cfe_prep.simulator import ExamSession
from cfe_prep.study import SETTINGS, get_setting, get_settings, log_study_session, set_setting

logger = logging.getLogger(__name__)
console = Console()

EXIT_WORDS = ("q", "menu")
QUALITY_CHOICES = ["1", "2", "3", "4"]


class SessionExitRequested(Exception):
    """User asked to leave the current session and return to the menu."""


def session_prompt(prompt: str, choices: list[str] | None = None, default: str | None = None) -> str:
    kwargs = {}
    if choices:
        kwargs["choices"] = list(choices) + ["q"]
    if default is not None:
        kwargs["default"] = default
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    return int(session_prompt(prompt, choices=choices))


def show_alert(message: str) -> None:
    console.print(Panel(f"[red]{message}[/red]", title="Error", border_style="red"))


def show_welcome():
    console.print(Panel(
        "[bold]Certified Fraud Examiner[/bold]\n[dim]Exam Prep[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("practice", "Practice questions"),
        ("flashcards", "Spaced-repetition review"),
        ("exam", "Timed mock exam"),
        ("case", "Fraud case studies"),
        ("progress", "Accuracy by section and domain"),
        ("dashboard", "Readiness, XP and streak"),
        ("achievements", "Achievement progress"),
        ("import", "Import questions from CSV"),
        ("template", "Write a CSV template"),
        ("material", "Add study material"),
        ("build-exams", "Rebuild mock exams"),
        ("export", "Export progress (JSON/CSV)"),
        ("settings", "Exam date and goals"),
        ("reset", "Delete all progress"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _announce_achievements(db_path: str, user_id: str) -> None:
    for ach in check_achievements(db_path, user_id):
        console.print(f"[magenta]Achievement unlocked: {ach.name}[/magenta] (+{ach.xp_reward} XP)")


def _finish_activity(db_path: str, user_id: str, activity: str, started: float) -> None:
    minutes = int((time.monotonic() - started) // 60)
    log_study_session(db_path, user_id, activity, minutes)
    _announce_achievements(db_path, user_id)


def run_flashcard_session(db_path: str, user_id: str, cards: list) -> int:
    if not cards:
        console.print("[yellow]No flashcards due right now![/yellow]")
        return 0
    console.print(f"\n[bold]Flashcard Review[/bold] ({len(cards)} cards, 'q' to stop)\n")
    reviewed = 0
    for i, card in enumerate(cards, 1):
        console.print(Panel(card["front"], title=f"Card {i}/{len(cards)}", border_style="cyan"))
        session_prompt("[dim]Press Enter to reveal answer[/dim]", default="")
        console.print(Panel(card["back"], border_style="green"))
        quality = session_int_prompt("Rate yourself (1=again, 2=hard, 3=good, 4=easy)", choices=QUALITY_CHOICES)
        state = record_flashcard_result(db_path, user_id, card["id"], quality)
        reviewed += 1
        console.print(f"[dim]Next review in {state['interval_days']} day(s), mastery {state['mastery_level']}/5[/dim]\n")
    return reviewed


def run_quiz_session(db_path: str, user_id: str, questions: list) -> tuple[int, int]:
    if not questions:
        console.print("[yellow]No questions available![/yellow]")
        return 0, 0
    show_explanations = get_setting(db_path, user_id, "show_explanations")
    correct = 0
    answered = 0
    console.print(f"\n[bold]Practice[/bold] ({len(questions)} questions, 'q' to stop)\n")
    for i, q in enumerate(questions, 1):
        console.print(f"[bold]Q{i}.[/bold] {q['question_text']}\n")
        options = question_options(q)
        for letter, text in options.items():
            console.print(f"  [cyan]{letter.lower()})[/cyan] {text}")
        answer = session_prompt("\nYour answer", choices=[l.lower() for l in options])
        result = answer_question(db_path, user_id, q["id"], answer)
        answered += 1
        if result["is_correct"]:
            console.print("[green]Correct![/green]")
            correct += 1
        else:
            console.print(f"[red]Incorrect.[/red] Answer: [green]{result['correct_answer']}[/green]")
        if show_explanations and result["explanation"]:
            console.print(f"[dim]{result['explanation']}[/dim]")
        console.print()
    console.print(f"[bold]Score: {correct}/{answered} ({correct/answered*100:.0f}%)[/bold]\n")
    return correct, answered


def run_case_session(db_path: str, user_id: str, case: CaseStudy) -> dict:
    """Show a case scenario, ask its questions, then grade and explain them."""
    console.print(Panel(case.scenario, title=f"[bold]{case.title}[/bold]", subtitle=f"{case.industry} · {case.difficulty}", border_style="blue"))
    answers = []
    for i, q in enumerate(case.questions, 1):
        console.print(f"\n[bold]Q{i}/{len(case.questions)}.[/bold] {q['question']}")
        options = case_options(q)
        for letter, text in options.items():
            console.print(f"  [cyan]{letter.lower()})[/cyan] {text}")
        answers.append(session_prompt("Your answer", choices=[letter.lower() for letter in options]))

    result = complete_case(db_path, user_id, case.id, answers)
    console.print(f"\n[bold]Score: {result['score']}%[/bold] ({result['correct']}/{result['total']}), +{result['xp_earned']} XP")
    for i, r in enumerate(result["results"], 1):
        mark = "[green]✓[/green]" if r["is_correct"] else f"[red]✗[/red] answer {r['correct_answer']}"
        console.print(f"  Q{i} {mark}  [dim]{r['explanation']}[/dim]")
    if case.learning_points:
        console.print("\n[bold]Key takeaways[/bold]")
        for point in case.learning_points:
            console.print(f"  • {point}")
    return result


def _format_seconds(seconds: int) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


def _ask_exam_question(session: ExamSession, index: int) -> None:
    q = session.questions[index]
    flag = " [yellow](flagged)[/yellow]" if index in session.flags else ""
    console.print(
        f"\n[bold]Q{index + 1}/{len(session.questions)}[/bold]{flag}  "
        f"[dim]{_format_seconds(session.time_remaining())} left[/dim]\n{q['question_text']}\n"
    )
    options = question_options(q)
    for letter, text in options.items():
        console.print(f"  [cyan]{letter.lower()})[/cyan] {text}")
    while True:
        choice = session_prompt(
            "\nAnswer ('f' flag, 's' skip)", choices=[l.lower() for l in options] + ["f", "s"]
        ).lower()
        if choice == "s":
            return
        if choice == "f":
            flagged = session.toggle_flag(index)
            console.print("[yellow]Flagged[/yellow]" if flagged else "[dim]Flag removed[/dim]")
            continue
        try:
            session.answer(index, choice)
            return
        except StoreError:
            show_alert("Your answer could not be saved. Please answer again.")


def run_exam(session: ExamSession) -> dict:
    try:
        for index in range(len(session.questions)):
            if session.is_expired():
                console.print("[red]Time is up![/red]")
                break
            _ask_exam_question(session, index)
        revisit = sorted(session.flags | set(session.unanswered()))
        if revisit and not session.is_expired() and Confirm.ask(f"Review {len(revisit)} flagged/unanswered question(s)?"):
            for index in revisit:
                if session.is_expired():
                    break
                _ask_exam_question(session, index)
    except SessionExitRequested:
        console.print("[dim]Submitting exam...[/dim]")
    result = session.finish()
    color = "green" if result["passed"] else "dark_orange"
    console.print(Panel(
        f"[{color}][bold]{result['score']}%[/bold][/{color}]  "
        f"({result['correct']}/{result['total']} correct, {result['time_spent_minutes']} min)\n"
        f"{'PASSED' if result['passed'] else 'Not passed'} (passing score {session.exam.passing_score}%)  "
        f"+{result['xp_earned']} XP",
        title="Mock Exam Complete",
    ))
    table = Table(title="Domain Breakdown")
    table.add_column("Domain", style="cyan")
    table.add_column("Correct", justify="right")
    table.add_column("Accuracy", justify="right")
    for domain_id, stats in sorted(result["domain_breakdown"].items()):
        table.add_row(domain_id, f"{stats['correct']}/{stats['correct'] + stats['incorrect']}", f"{stats['accuracy']}%")
    console.print(table)
    return result


def _choose_section() -> int | None:
    choice = Prompt.ask("Section (1-4, or 'all')", choices=["1", "2", "3", "4", "all"], default="all")
    return None if choice == "all" else int(choice)


def _choose_domain(db_path: str, section_id: int | None) -> str | None:
    if section_id is None or not Confirm.ask("Focus on one domain?", default=False):
        return None
    domains = get_domains(db_path, section_id)
    for d in domains:
        console.print(f"  [cyan]{d.id}[/cyan]) {d.name}")
    return Prompt.ask("Select domain", choices=[d.id for d in domains])


def cmd_practice(db_path: str, user_id: str):
    console.print("\n[bold]Practice Questions[/bold]")
    mode = Prompt.ask("Mode (all, smart = domains under 70%, weak = 3 weakest)", choices=["all", *PRACTICE_MODES], default="all")
    section_id, domain_id = None, None
    if mode == "all":
        section_id = _choose_section()
        domain_id = _choose_domain(db_path, section_id)
        mode = None
    count = IntPrompt.ask("Number of questions", default=10)
    questions = get_practice_questions(
        db_path, section_id=section_id, domain_id=domain_id, count=count, mode=mode, user_id=user_id,
    )
    started = time.monotonic()
    try:
        run_quiz_session(db_path, user_id, questions)
    except SessionExitRequested:
        console.print("[dim]Back to menu.[/dim]")
    _finish_activity(db_path, user_id, "practice", started)


def cmd_flashcards(db_path: str, user_id: str):
    console.print("\n[bold]Flashcards[/bold]")
    goal = max(get_setting(db_path, user_id, "daily_flashcard_goal"), 1)
    section_id = _choose_section()
    domain_id = _choose_domain(db_path, section_id)
    if domain_id is not None:
        cards = get_cards_for_domain(db_path, domain_id, limit=goal)
    else:
        cards = get_due_cards(db_path, limit=goal, section_id=section_id)
    started = time.monotonic()
    try:
        run_flashcard_session(db_path, user_id, cards)
    except SessionExitRequested:
        console.print("[dim]Back to menu.[/dim]")
    _finish_activity(db_path, user_id, "flashcards", started)


def cmd_exam(db_path: str, user_id: str):
    exams = list_mock_exams(db_path)
    if not exams:
        console.print("[yellow]No mock exams yet. Import more questions, then run 'build-exams'.[/yellow]")
        return
    table = Table(title="Mock Exams")
    table.add_column("#", justify="right")
    table.add_column("Exam", style="cyan")
    table.add_column("Questions", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Pass", justify="right")
    for i, exam in enumerate(exams, 1):
        table.add_row(str(i), exam.title, str(exam.question_count), f"{exam.time_limit_minutes} min", f"{exam.passing_score}%")
    console.print(table)
    choice = IntPrompt.ask("Select exam", choices=[str(i) for i in range(1, len(exams) + 1)])
    exam = exams[choice - 1]
    questions = load_exam_questions(db_path, exam)
    if not questions:
        show_alert(f"No questions found for {exam.title}.")
        return
    started = time.monotonic()
    run_exam(ExamSession(db_path, user_id, exam, questions))
    _finish_activity(db_path, user_id, "mock_exam", started)


def cmd_case(db_path: str, user_id: str):
    difficulty = Prompt.ask("Difficulty", choices=["all", *DIFFICULTIES], default="all")
    cases = list_cases(db_path, None if difficulty == "all" else difficulty)
    if not cases:
        console.print("[yellow]No case studies available.[/yellow]")
        return
    done = completed_case_ids(db_path, user_id)
    table = Table(title="Case Studies")
    table.add_column("#", justify="right")
    table.add_column("Case", style="cyan")
    table.add_column("Fraud type")
    table.add_column("Level")
    table.add_column("Time", justify="right")
    table.add_column("Done", justify="center")
    for i, case in enumerate(cases, 1):
        table.add_row(
            str(i), case.title, case.fraud_type, case.difficulty,
            f"{case.estimated_minutes} min", "✓" if case.id in done else "",
        )
    console.print(table)
    choice = IntPrompt.ask("Select case", choices=[str(i) for i in range(1, len(cases) + 1)])
    started = time.monotonic()
    try:
        run_case_session(db_path, user_id, cases[choice - 1])
    except SessionExitRequested:
        console.print("[dim]Case abandoned, nothing recorded.[/dim]")
    _finish_activity(db_path, user_id, "case", started)


def cmd_progress(db_path: str, user_id: str):
    report = get_progress_report(db_path, user_id)
    if not report["per_domain"]:
        console.print("[yellow]No answers recorded yet. Try 'practice'.[/yellow]")
        return
    table = Table(title="Section Accuracy")
    table.add_column("Section", style="cyan")
    table.add_column("Attempted", justify="right")
    table.add_column("Accuracy", justify="right")
    for section_id, s in report["per_section"].items():
        color = get_readiness_color(s["accuracy"])
        table.add_row(str(section_id), str(s["attempts"]), f"[{color}]{s['accuracy']}%[/{color}]")
    console.print(table)

    table = Table(title="Domain Accuracy")
    table.add_column("Domain", style="cyan")
    table.add_column("Correct", justify="right")
    table.add_column("Incorrect", justify="right")
    table.add_column("Accuracy", justify="right")
    for d in report["per_domain"]:
        table.add_row(f"{d['domain_id']} {d['domain_name']}", str(d["correct"]), str(d["incorrect"]), f"{d['accuracy']}%")
    console.print(table)

    if report["weakest"]:
        console.print("\n[bold]Weakest Domains:[/bold]")
        for d in report["weakest"]:
            console.print(f"  [red]{d['accuracy']}%[/red] {d['domain_name']} ({d['attempts']} attempts)")
    console.print(f"\n  Overall Readiness: [bold]{report['readiness']}%[/bold]")


def cmd_dashboard(db_path: str, user_id: str):
    dash = get_dashboard(db_path, user_id)
    game = dash["gamification"]
    score, color = dash["readiness"], dash["color"]
    bar_filled = int(score / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    header = f"Level {game['level']}  |  {game['xp']} XP  |  Streak {game['streak_days']} day(s) (best {game['longest_streak']})"
    if dash["days_until_exam"] is not None:
        header += f"  |  {dash['days_until_exam']} day(s) to exam"
    console.print(Panel(f"[bold]{header}[/bold]", title="CFE Readiness Dashboard", border_style="blue"))
    console.print(f"\n  Overall Readiness: [bold]{score}%[/bold] {bar} [{color}]{dash['label']}[/{color}]\n")
    console.print(f"  Flashcards due: [bold]{dash['due_flashcards']}[/bold]  |  "
                  f"Questions: [bold]{game['questions_answered']}[/bold] ({game['questions_correct']} correct)  |  "
                  f"Mocks: [bold]{game['mocks_completed']}[/bold] (avg {dash['avg_mock_score']}%)  |  "
                  f"Today: [bold]{dash['minutes_today']}/{dash['daily_goal_minutes']} min[/bold]")
    if dash["weakest"]:
        console.print(f"\n  [yellow]Recommendation: Focus on domain {dash['weakest'][0]['domain_id']}[/yellow]")


def cmd_achievements(db_path: str, user_id: str):
    table = Table(title="Achievements")
    table.add_column("Achievement", style="cyan")
    table.add_column("Description")
    table.add_column("XP", justify="right")
    table.add_column("Progress", justify="right")
    for a in list_achievements(db_path, user_id):
        progress = "[green]Unlocked[/green]" if a["unlocked"] else f"{a['progress']:.0f}%"
        table.add_row(a["name"], a["description"], str(a["xp_reward"]), progress)
    console.print(table)


def cmd_import(db_path: str, user_id: str):
    file_path = Prompt.ask("CSV file path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    result = import_csv(db_path, file_path)
    color = "green" if result.success else "yellow"
    console.print(f"[{color}]Imported {result.imported} question(s), {result.failed} failed.[/{color}]")
    for error in result.errors[:20]:
        console.print(f"  [red]{error}[/red]")
    if len(result.errors) > 20:
        console.print(f"  [dim]... and {len(result.errors) - 20} more[/dim]")
    if result.imported and Confirm.ask("Rebuild mock exams now?", default=True):
        cmd_build_exams(db_path, user_id)


def cmd_template(db_path: str, user_id: str):
    path = Prompt.ask("Save template as", default="cfe_questions_template.csv")
    console.print(f"[green]Template written to {write_template(path)}[/green]")


def cmd_material(db_path: str, user_id: str):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    domain_id = Prompt.ask("Domain id (blank to auto-detect)", default="").strip() or None
    try:
        result = import_material(db_path, file_path, domain_id=domain_id)
    except LookupError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return
    domain_msg = f"domain {result['domain_id']}" if result["domain_id"] else "uncategorized"
    console.print(f"[green]Imported {result['filename']} ({result['length']} chars) → {domain_msg}[/green]")


def cmd_build_exams(db_path: str, user_id: str):
    exams = build_mock_exams(db_path)
    if not exams:
        console.print("[yellow]Not enough questions for any mock exam yet.[/yellow]")
        return
    for exam in exams:
        console.print(f"[green]{exam.title}: {exam.question_count} questions[/green]")


def cmd_export(db_path: str, user_id: str):
    kind = Prompt.ask("Format", choices=["json", "csv"], default="json")
    try:
        content = export_json(db_path, user_id) if kind == "json" else export_progress_csv(db_path, user_id)
    except LookupError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return
    path = Path(Prompt.ask("Save as", default=default_export_name(kind)))
    path.write_text(content, encoding="utf-8")
    console.print(f"[green]Exported to {path}[/green]")


def cmd_settings(db_path: str, user_id: str):
    current = get_settings(db_path, user_id)
    for key, value in current.items():
        console.print(f"  [cyan]{key:<22}[/cyan] {value}")
    key = Prompt.ask("Setting to change (Enter to keep all)", choices=list(SETTINGS) + [""], default="")
    if not key:
        return
    value = Prompt.ask(f"New value for {key}")
    try:
        set_setting(db_path, user_id, key, value)
    except ValueError as e:
        console.print(f"[red]Invalid value: {e}[/red]")
        return
    console.print("[green]Settings saved.[/green]")


def cmd_reset(db_path: str, user_id: str):
    if not Confirm.ask("Are you sure you want to reset all progress? This cannot be undone.", default=False):
        return
    if not Confirm.ask("This permanently deletes all progress, achievements and stats. Continue?", default=False):
        return
    reset_progress(db_path, user_id)
    console.print("[green]Progress reset.[/green]")


COMMANDS = {
    "practice": cmd_practice,
    "flashcards": cmd_flashcards,
    "exam": cmd_exam,
    "case": cmd_case,
    "progress": cmd_progress,
    "dashboard": cmd_dashboard,
    "achievements": cmd_achievements,
    "import": cmd_import,
    "template": cmd_template,
    "material": cmd_material,
    "build-exams": cmd_build_exams,
    "export": cmd_export,
    "settings": cmd_settings,
    "reset": cmd_reset,
}


def main():
    configure_logging()
    db_path = DEFAULT_DB_PATH
    user_id = DEFAULT_USER_ID
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="flashcards").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print(f"[dim]Good luck on your exam! ({date.today().isoformat()})[/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(db_path, user_id)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except StoreError as e:
            show_alert(f"Something went wrong talking to the database: {e}")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
