import pytest


@pytest.fixture(autouse=True)
def audit_file(tmp_path, monkeypatch):
    path = tmp_path / "audit.jsonl"
    monkeypatch.setenv("TASKBOARD_AUDIT_FILE", str(path))
    return path


class FakeGenerator:
    """Stands in for GeminiClient; records prompts and replays a canned reply."""

    def __init__(self, reply="[]", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_generator():
    return FakeGenerator
