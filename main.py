import asyncio
import sys

from constants.messages import Messages
from core.config import settings
from core.logger import setup_logging, logger
from models.exam import ExamStatus
from services.exam_api import ExamApiClient
from services.exam_session import ExamSessionController, SessionEvent
from services.question_renderer import render_text
from services.result_store import InMemoryResultStore, RedisResultStore
from services.results_review import ResultsReview

HELP = "Commands: A-Z answer | n next | p previous | g <number> go to | s submit | q quit"


def print_question(controller: ExamSessionController):
    rendered = controller.render_current()
    if rendered is None:
        return
    print()
    print(f"[{controller.time_remaining_label}] {controller.answered_count}/{controller.question_count}")
    # [n] current, n* answered
    print(" ".join(
        f"[{s.number}]" if s.current else f"{s.number}{'*' if s.answered else ''}"
        for s in controller.question_states()
    ))
    print(render_text(rendered, controller.current_question, controller.lang))


def on_session_event(event: SessionEvent, controller: ExamSessionController):
    lang = controller.lang
    if event is SessionEvent.TIME_WARNING:
        print(f"\n!! {Messages.get('TIME_WARNING', lang)}")
    elif event is SessionEvent.TIME_UP:
        print(f"\n!! {Messages.get('TIME_UP', lang)} (press Enter)")
    elif event is SessionEvent.SUBMIT_FAILED:
        print(f"\n!! {controller.error}")
    elif event is SessionEvent.COMPLETED:
        print(f"\n{Messages.get('SUBMIT_SUCCESS', lang)}")
    elif event is SessionEvent.FAILED:
        print(f"\n!! {controller.error}")


async def ask(prompt: str) -> str:
    line = await asyncio.to_thread(input, prompt)
    return line.strip()


async def handle_command(controller: ExamSessionController, line: str) -> bool:
    """Apply one command. Returns False when the student quits."""
    command = line.lower()
    if command == "q":
        return False
    if command == "n":
        controller.next_question()
    elif command == "p":
        controller.previous_question()
    elif command.startswith("g "):
        try:
            controller.go_to_question(int(command[2:]) - 1)
        except ValueError:
            print(HELP)
    elif command == "s":
        if controller.request_submit() is None:
            return True
        answer = await ask(f"{controller.confirmation_text()} [y/N] ")
        if answer.lower() == "y":
            await controller.confirm_submit()
        else:
            controller.cancel_submit()
    elif len(command) == 1 and command.isalpha():
        controller.select_answer(controller.current_index, ord(command) - ord("a"))
    elif command:
        print(HELP)
    return True


async def print_results(result_store, api, result_id: str, show_all: bool, lang: str):
    review = ResultsReview(result_store, api, lang=lang)
    if await review.load(result_id) is None:
        print(review.error)
        return
    if show_all:
        review.toggle_show_all()

    summary = review.summary
    print()
    print(summary["title"])
    print(f"{summary['score']}/10 ({summary['correct']}) - {summary['time_spent']} - {summary['submitted_at']}")
    print(summary["feedback"])
    for index, rendered in zip(review.visible_indices(), review.render_visible()):
        print()
        print(render_text(rendered, review.questions[index], lang))


async def main():
    # Parse args: main.py <exam_id> [--all] [--no-cache] [--result <result_id>]
    args = sys.argv[1:]
    show_all = "--all" in args
    use_cache = "--no-cache" not in args
    positional = [a for a in args if not a.startswith("--")]
    if not positional:
        print("Usage: python main.py <exam_id> [--all] [--no-cache] [--result <result_id>]")
        return

    setup_logging()
    lang = settings.LANGUAGE

    result_store = RedisResultStore.from_url() if use_cache else InMemoryResultStore()
    try:
        async with ExamApiClient() as api:
            if "--result" in args:
                # Review a finished attempt without taking the exam
                await print_results(result_store, api, positional[-1], show_all, lang)
                return

            controller = ExamSessionController(api, result_store=result_store, lang=lang)
            controller.subscribe(on_session_event)
            try:
                await controller.start_session(int(positional[0]))
                if controller.status is not ExamStatus.IN_PROGRESS:
                    print(controller.error)
                    return

                print(controller.exam.title)
                print(HELP)
                while controller.status is ExamStatus.IN_PROGRESS:
                    print_question(controller)
                    line = await ask("> ")
                    if not await handle_command(controller, line):
                        return

                await controller.join()
                if controller.status is ExamStatus.COMPLETED:
                    await print_results(result_store, api, controller.result_id, show_all, lang)
            finally:
                controller.dispose()
    finally:
        if isinstance(result_store, RedisResultStore):
            await result_store.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit, EOFError):
        logger.info("Exam client stopped.")
