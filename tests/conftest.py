import json
import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient

from llm_quiz_generator import QuizGenerator
from main import app, get_generator


def make_item(question="What is the capital of France?",
              options=("London", "Berlin", "Paris", "Madrid"),
              answer="Paris",
              explanation="Paris is the capital and largest city of France."):
    return {
        "question": question,
        "options": list(options),
        "answer": answer,
        "explanation": explanation,
    }


class FakeProvider:
    name = "fake"

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def generate_raw(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def items():
    return [
        make_item(),
        make_item(
            question="Which planet is known as the Red Planet?",
            options=("Venus", "Mars", "Jupiter", "Saturn"),
            answer="Mars",
            explanation="Iron oxide on its surface gives Mars a reddish look.",
        ),
    ]


@pytest.fixture
def provider(items):
    return FakeProvider(reply=json.dumps(items))


@pytest.fixture
def client(provider):
    app.dependency_overrides[get_generator] = lambda: QuizGenerator(provider)
    yield TestClient(app)
    app.dependency_overrides.clear()
