"""CLI entry-point — play IQ360 levels in the terminal.

Usage:
    python -m src.main
    # or via pyproject entry-point:  iq360
"""

from __future__ import annotations

import asyncio

from dotenv import load_dotenv

from src.errors import SessionError
from src.logging_config import setup_logging
from src.models.state import GameState
from src.session.machine import SessionStateMachine
from src.session.view import build_view_model

BANNER = """
╔══════════════════════════════════════════════════════════════╗
║              IQ360 — Cognitive Engine                       ║
║                                                             ║
║  Each level is a scenario with open-ended questions.        ║
║  There is no single right answer — explain your thinking.   ║
║  Type 'quit' at any prompt to leave; progress is saved.     ║
╚══════════════════════════════════════════════════════════════╝
"""

RULE = "═" * 60


class _Quit(Exception):
    pass


def _ask(prompt: str) -> str:
    try:
        text = input(prompt).strip()
    except (EOFError, KeyboardInterrupt):
        raise _Quit from None
    if text.lower() == "quit":
        raise _Quit
    return text


def _print_profile(view: dict) -> None:
    profile = view["profile"]
    print(f"\nComposite Intelligence Index: {profile['cii']}")
    print(f"Thinking style: {profile['thinkingStyle']}")
    for row in view["domainBreakdown"]:
        score = float(row["score"])
        filled = max(0, min(10, int(score // 10)))
        print(f"  {row['label']:<12} {score:5.1f}  {'█' * filled}{'░' * (10 - filled)}")
    print(
        f"Tier {view['tier']}: {view['tierName']} "
        f"({view['progressPercent']}% synchronization)"
    )


def _print_history(view: dict) -> None:
    if not view["history"]:
        print("\nNo completed levels yet.")
        return
    for entry in view["history"]:
        print(f"\nLevel {entry['levelNumber']}: {entry['title']}  (CII {entry['cii']})")
        print(f"  {entry['feedback']['levelProgressSummary']}")


def _print_coaching(view: dict) -> None:
    coaching = view["coaching"]
    print("\n" + RULE)
    print("COACHING")
    print(RULE)
    for title, key in (
        ("Thinking Insight", "thinkingInsight"),
        ("Life Dynamics", "lifeApplication"),
        ("Business Execution", "businessApplication"),
        ("Strategic Advice", "coachRecommendation"),
        ("Progress", "levelProgressSummary"),
    ):
        print(f"\n{title}:\n  {coaching[key]}")
    print(RULE)


async def _play_level(machine: SessionStateMachine) -> None:
    level = machine.current_level
    print(f"\nLEVEL {machine.level_number}: {level.title}\n")
    print(f'"{level.scenario_introduction}"\n')
    for index, question in enumerate(level.questions, start=1):
        print(f"{index:02d}. [{question.type}] {question.text}")
        machine.record_response(question.id, _ask("> "))
        print()

    while True:
        try:
            await machine.submit_answers()
            return
        except SessionError as e:
            print(f"\n⚠️  {e.message}")
            if _ask("Retry? [Y/n] ").lower().startswith("n"):
                return


async def _loop(machine: SessionStateMachine) -> None:
    while True:
        view = build_view_model(machine)
        state = machine.state

        if state is GameState.LEVEL_ACTIVE:
            await _play_level(machine)
            continue

        if state is GameState.COACHING:
            _print_coaching(view)
            choice = _ask("[n]ext level, [d]ashboard: ").lower()
            if choice.startswith("d"):
                machine.open_dashboard()
            else:
                machine.proceed_to_next()
            continue

        if state is GameState.DASHBOARD:
            _print_profile(view)
            _ask("\nPress Enter to go back. ")
            machine.go_back()
            continue

        if state is GameState.HISTORY:
            _print_history(view)
            _ask("\nPress Enter to go back. ")
            machine.go_back()
            continue

        label = "RESUME" if view["levelNumber"] > 1 else "INITIALIZE"
        choice = _ask(
            f"\n[s] {label} LEVEL {view['levelNumber']}, [d]ashboard, "
            "[h]istory, [r]eset: "
        ).lower()
        if choice.startswith("d"):
            machine.open_dashboard()
        elif choice.startswith("h"):
            machine.open_history()
        elif choice.startswith("r"):
            confirm = _ask("This erases all progress and history. Type 'yes' to confirm: ")
            if confirm.lower() == "yes":
                machine.reset(confirm=True)
                print("Progress erased.")
        else:
            print("\nGenerating level…")
            try:
                await machine.start_level()
            except SessionError as e:
                print(f"\n⚠️  {e.message}")


def main() -> None:
    load_dotenv()
    setup_logging(default_level="WARNING")
    print(BANNER)

    machine = SessionStateMachine()
    if not machine.persistent:
        print("⚠️  Saved progress is unavailable; this session will not be saved.")

    try:
        asyncio.run(_loop(machine))
    except _Quit:
        print("\nSession ended. See you next level.")


if __name__ == "__main__":
    main()
