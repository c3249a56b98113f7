# app/cli.py
import argparse
import logging
import os

from app.config import load_settings
from app.controller import QuizController
from app.errors import QuizError, FetchError, EmptyPool, InvalidName
from app.quiz.session_machine import is_complete
from app.storage.seed import SAMPLE_QUESTIONS
from app.ui_actions import (
    action_import_questions,
    action_progress,
    bootstrap_if_empty,
    leaderboard_frame,
    metric_label,
)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Terminal trivia quiz")
    p.add_argument("--db", help="SQLite file (overrides TRIVIA_DB_PATH)")
    p.add_argument("--mode", choices=["linear", "streak_with_retry"])
    p.add_argument("--selection", choices=["sequential", "random"])
    p.add_argument("--daily", action="store_true", help="today's questions and leaderboard only")
    p.add_argument("--seed", metavar="FILE", help="import questions from a JSON file before starting")
    return p.parse_args(argv)


def print_question(ctrl: QuizController) -> None:
    state = ctrl.state
    q = state.current
    prog = action_progress(ctrl)
    header = f"[{prog['mastered']}/{prog['total']}] streak={prog['streak']}"
    if state.is_retry_mode:
        header += f" (retry: {prog['retry_left']} left)"
    print(f"\n{header}")
    print(q.question)
    for i, choice in enumerate(q.answers, start=1):
        print(f"  {i}. {choice}")


def print_leaderboard(ctrl: QuizController) -> None:
    entries = ctrl.leaderboard()
    print("\n--- LEADERBOARD ---")
    if not entries:
        print("(none)")
        return
    print(leaderboard_frame(entries, metric_label(ctrl.settings)).to_string(index=False))


def resolve_answer(ctrl: QuizController, msg: str) -> str:
    # numbers pick a choice by position
    q = ctrl.state.current
    if msg.isdigit() and 1 <= int(msg) <= len(q.answers):
        return q.answers[int(msg) - 1]
    return msg


def offer_submission(ctrl: QuizController) -> None:
    elig = ctrl.eligibility()
    if not elig.get("can_submit"):
        if elig.get("reason"):
            print(elig["reason"])
        return
    while True:
        name = input("You made the leaderboard! Enter your name (blank to skip): ")
        if not name.strip():
            return
        try:
            ctrl.submit_score(name)
            print("✅ Score uploaded successfully!")
            return
        except InvalidName as e:
            print(f"❌ {e}")
        except QuizError as e:
            print(f"❌ {e}")
            return


def main(argv=None):
    args = parse_args(argv)
    env = dict(os.environ)
    if args.db:
        env["TRIVIA_DB_PATH"] = args.db
    if args.mode:
        env["TRIVIA_MODE"] = args.mode
    if args.selection:
        env["TRIVIA_SELECTION"] = args.selection
    if args.daily:
        env["TRIVIA_DAILY"] = "1"
    settings = load_settings(env)
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    ctrl = QuizController(settings)
    if args.seed:
        n = action_import_questions(ctrl.store, args.seed)
        print(f"✅ Imported {n} questions.")
    elif SAMPLE_QUESTIONS.exists():
        bootstrap_if_empty(ctrl.store, SAMPLE_QUESTIONS)

    try:
        ctrl.load()
    except (FetchError, EmptyPool) as e:
        print(f"❌ {e}")
        return 1

    print("Welcome to Trivia!")
    print("Answer with the number or the text. Commands: /restart /leaderboard /whoami /reset_db, quit")

    while True:
        if is_complete(ctrl.state):
            print("\n🎉 Quiz complete!")
            offer_submission(ctrl)
            print_leaderboard(ctrl)
            again = input("\nPlay again? [y/N] ")
            if again.strip().lower() != "y":
                break
            ctrl.restart()
            continue

        print_question(ctrl)
        msg = input("\nYou: ").strip()
        if msg.lower() in ["exit", "quit"]:
            break
        # ----------------
        # Commands
        # ----------------
        if msg.lower() == "/reset_db":
            confirm = input("⚠️ This will DELETE ALL DATA. Type YES to confirm: ")
            if confirm == "YES":
                ctrl.store.reset_db()
                print("✅ Database cleared.")
                break
            print("❌ Cancelled.")
            continue
        if msg.lower() == "/whoami":
            state = ctrl.state
            print("\n--- WHOAMI ---")
            print(f"user_id: {ctrl.user_id}")
            print(f"mode: {state.mode} ({state.selection})")
            print(f"scope: {ctrl.day.isoformat() if ctrl.day else 'all'}")
            print(f"attempts: {state.attempts} mistakes: {state.mistakes} best_streak: {state.best_streak}")
            continue
        if msg.lower() == "/leaderboard":
            try:
                print_leaderboard(ctrl)
            except FetchError as e:
                print(f"❌ {e}")
            continue
        if msg.lower() == "/restart":
            ctrl.restart()
            print("✅ Restarted.")
            continue

        # ----------------
        # Normal message -> controller
        # ----------------
        try:
            out = ctrl.answer(resolve_answer(ctrl, msg))
        except QuizError as e:
            print(f"❌ {e}")
            continue
        print(out["message"])

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
