from models.exam import Question
from services.question_renderer import (
    OptionState,
    Verdict,
    has_math,
    render_question,
    render_text,
)


def sample_question():
    return Question(
        id=7,
        text="Solve $x^2 = 4$ for **positive** x",
        image_url="https://cdn.example.com/q7.png",
        options=["$x = 1$", "$x = 2$", "$x = 3$", "$x = 4$"],
        correct_option_index=1,
        explanation="<b>Because</b> 2 * 2 = 4",
    )


def test_in_progress_rendering_ignores_answer_key():
    rendered = render_question(sample_question(), 3, selected_option=0, lang="EN")

    assert rendered.label == "Question 3"
    assert rendered.review is False
    assert rendered.verdict is None
    assert rendered.explanation_html is None
    assert [o.state for o in rendered.options] == [
        OptionState.SELECTED, OptionState.NEUTRAL, OptionState.NEUTRAL, OptionState.NEUTRAL,
    ]
    assert not any(o.disabled for o in rendered.options)


def test_unselected_question_is_all_neutral():
    rendered = render_question(sample_question(), 1)

    assert all(o.state is OptionState.NEUTRAL for o in rendered.options)
    assert all(not o.is_selected for o in rendered.options)


def test_review_marks_correct_and_incorrect():
    rendered = render_question(sample_question(), 1, selected_option=3, review=True)

    states = [o.state for o in rendered.options]
    assert states == [OptionState.NEUTRAL, OptionState.CORRECT, OptionState.NEUTRAL, OptionState.INCORRECT]
    assert rendered.verdict is Verdict.INCORRECT
    assert all(o.disabled for o in rendered.options)
    assert "<b>Because</b>" in rendered.explanation_html


def test_review_correct_answer_verdict():
    rendered = render_question(sample_question(), 1, selected_option=1, review=True)

    assert rendered.verdict is Verdict.CORRECT
    assert rendered.options[1].state is OptionState.CORRECT
    assert rendered.options[1].is_selected


def test_review_unanswered_has_no_verdict():
    rendered = render_question(sample_question(), 1, selected_option=None, review=True)

    assert rendered.verdict is None
    assert rendered.options[1].state is OptionState.CORRECT


def test_rich_text_and_math_flags():
    rendered = render_question(sample_question(), 1)

    assert "<strong>positive</strong>" in rendered.html
    assert rendered.has_math
    assert all(o.has_math for o in rendered.options)
    assert [o.letter for o in rendered.options] == ["A", "B", "C", "D"]
    assert rendered.image_url == "https://cdn.example.com/q7.png"
    assert not has_math("plain text")
    assert not has_math(None)


def test_render_text_review():
    question = sample_question()
    rendered = render_question(question, 2, selected_option=0, review=True, lang="VI")

    text = render_text(rendered, question, lang="VI")

    assert text.splitlines()[0] == "Câu 2 - Sai"
    assert "[+] B. $x = 2$" in text
    assert "[x] A. $x = 1$" in text
    assert "Giải thích:" in text
