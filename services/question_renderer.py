"""View models for one exam question, in-progress or in review mode.

The renderer has no state. It turns a question, the selected option and the
mode into a ``RenderedQuestion`` that a front end can draw directly; rich
text (markdown, inline HTML, ``$math$`` left for MathJax) is converted to
HTML with markdown-it.
"""
from enum import Enum
from typing import List, Optional

from markdown_it import MarkdownIt
from pydantic import BaseModel, ConfigDict

from constants.messages import Messages
from core.config import settings
from models.exam import Question

_markdown = MarkdownIt("commonmark", {"html": True}).enable("table").enable("strikethrough")


class OptionState(str, Enum):
    NEUTRAL = "neutral"
    SELECTED = "selected"
    CORRECT = "correct"
    INCORRECT = "incorrect"


class Verdict(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"


class RenderedOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    letter: str
    html: str
    has_math: bool
    state: OptionState
    is_selected: bool
    disabled: bool


class RenderedQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int
    label: str
    html: str
    has_math: bool
    image_url: Optional[str] = None
    options: List[RenderedOption]
    review: bool = False
    verdict: Optional[Verdict] = None
    explanation_html: Optional[str] = None


def has_math(text: Optional[str]) -> bool:
    return bool(text) and "$" in text


def render_rich_text(text: Optional[str]) -> str:
    return _markdown.render((text or "").strip())


def render_inline(text: Optional[str]) -> str:
    return _markdown.renderInline((text or "").strip())


def _option_state(index: int, selected_option: Optional[int], correct_index: Optional[int], review: bool) -> OptionState:
    if review:
        if index == correct_index:
            return OptionState.CORRECT
        if index == selected_option:
            return OptionState.INCORRECT
        return OptionState.NEUTRAL
    return OptionState.SELECTED if index == selected_option else OptionState.NEUTRAL


def render_question(
    question: Question,
    number: int,
    selected_option: Optional[int] = None,
    review: bool = False,
    lang: str = None,
) -> RenderedQuestion:
    """Build the view model of ``question`` shown as question ``number`` (1-based).

    Outside review mode the answer key is never read, whatever the question
    object carries.
    """
    lang = lang or settings.LANGUAGE
    correct_index = question.correct_option_index if review else None

    options = [
        RenderedOption(
            index=i,
            letter=chr(ord("A") + i),
            html=render_inline(text),
            has_math=has_math(text),
            state=_option_state(i, selected_option, correct_index, review),
            is_selected=(i == selected_option),
            disabled=review,
        )
        for i, text in enumerate(question.options)
    ]

    verdict = None
    explanation_html = None
    if review:
        if selected_option is not None:
            verdict = Verdict.CORRECT if selected_option == correct_index else Verdict.INCORRECT
        if question.explanation:
            explanation_html = render_rich_text(question.explanation)

    return RenderedQuestion(
        number=number,
        label=Messages.get("QUESTION_LABEL", lang).format(number=number),
        html=render_rich_text(question.text),
        has_math=has_math(question.text),
        image_url=question.image_url,
        options=options,
        review=review,
        verdict=verdict,
        explanation_html=explanation_html,
    )


_STATE_MARKS = {
    OptionState.NEUTRAL: " ",
    OptionState.SELECTED: "*",
    OptionState.CORRECT: "+",
    OptionState.INCORRECT: "x",
}


def render_text(rendered: RenderedQuestion, question: Question, lang: str = None) -> str:
    """Plain text form of a rendered question, for logs and terminals."""
    lang = lang or settings.LANGUAGE
    header = rendered.label
    if rendered.verdict is not None:
        key = "VERDICT_CORRECT" if rendered.verdict is Verdict.CORRECT else "VERDICT_INCORRECT"
        header = f"{header} - {Messages.get(key, lang)}"

    lines = [header, question.text.strip()]
    for option, text in zip(rendered.options, question.options):
        lines.append(f"[{_STATE_MARKS[option.state]}] {option.letter}. {text}")
    if rendered.explanation_html and question.explanation:
        lines.append(f"{Messages.get('EXPLANATION_LABEL', lang)} {question.explanation.strip()}")
    return "\n".join(lines)
