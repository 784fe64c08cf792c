# lulemo/client/questions.py
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SecurityQuestion:
    id: str
    label: str


SECURITY_QUESTIONS = (
    SecurityQuestion("pet", "What was the name of your first pet?"),
    SecurityQuestion("city", "In which city were you born?"),
    SecurityQuestion("mother", "What is your mother's first name?"),
    SecurityQuestion("school", "What was the name of your first school?"),
    SecurityQuestion("food", "What is your favourite food?"),
)


def find_question(question_id: Optional[str]) -> Optional[SecurityQuestion]:
    for question in SECURITY_QUESTIONS:
        if question.id == question_id:
            return question
    return None
