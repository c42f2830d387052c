import pytest

from munich_rag.intent import Intent, classify_intent


@pytest.mark.parametrize(
    "text, expected",
    [
        ("cheap dorms near Garching", Intent.DORM),
        ("quiet place with wifi open late", Intent.STUDY_PLACE),
        ("how do I open a bank account", Intent.STUDY_PLACE),
        ("how do I get a bank account", Intent.GENERAL),
        ("Where can I register my address?", Intent.GENERAL),
        ("Studentenwohnheim in Freimann", Intent.DORM),
        ("LIBRARY hours", Intent.STUDY_PLACE),
    ],
)
def test_classify_intent_examples(text, expected):
    assert classify_intent(text) is expected


def test_housing_wins_over_study_terms():
    assert classify_intent("quiet room in a dorm") is Intent.DORM


def test_classify_is_total_and_deterministic():
    assert classify_intent("") is Intent.GENERAL
    assert classify_intent(None) is Intent.GENERAL
    text = "Is the cafe near the apartment open?"
    assert {classify_intent(text) for _ in range(5)} == {Intent.DORM}


def test_intent_values_are_wire_strings():
    assert [i.value for i in Intent] == ["dorm", "study_place", "general"]
