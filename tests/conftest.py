"""Shared fixtures."""

import pytest


class FakeEncoding:
    """Whitespace tokenizer standing in for tiktoken's downloaded encodings."""

    def encode(self, text):
        if "<|endoftext|>" in text:
            raise ValueError("Encountered text corresponding to disallowed special token")
        return text.split()


@pytest.fixture(autouse=True)
def fake_encoding(monkeypatch):
    import tiktoken

    encoding = FakeEncoding()
    monkeypatch.setattr(tiktoken, "encoding_for_model", lambda model: encoding)
    return encoding


@pytest.fixture
def project(tmp_path):
    path = tmp_path / "my-project"
    path.mkdir()
    return path
