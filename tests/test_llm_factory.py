from unittest import mock

import pytest
from langchain_ollama import ChatOllama, OllamaEmbeddings
from langchain_openai import ChatOpenAI, OpenAIEmbeddings
from pydantic import SecretStr
from ragbrain.core import llm_factory
from ragbrain.core.llm_factory import get_chat_model, get_embedding_model
from ragbrain.core.settings import LLMProvider


@pytest.fixture(autouse=True)
def _fresh_factories():
    get_chat_model.cache_clear()
    get_embedding_model.cache_clear()
    with mock.patch.object(llm_factory.settings, "openai_api_key", SecretStr("sk-test")):
        yield
    get_chat_model.cache_clear()
    get_embedding_model.cache_clear()


def test_chat_model_openai_explicit():
    model = get_chat_model(LLMProvider.openai, "gpt-4o", 0.5)
    assert isinstance(model, ChatOpenAI)
    assert model.model_name == "gpt-4o"
    assert model.temperature == 0.5


def test_chat_model_ollama_explicit():
    model = get_chat_model(LLMProvider.ollama, "llama3", 0.1)
    assert isinstance(model, ChatOllama)
    assert model.model == "llama3"
    assert model.temperature == 0.1


def test_chat_model_defaults_follow_settings():
    with (
        mock.patch.object(llm_factory.settings, "llm_provider", LLMProvider.ollama),
        mock.patch.object(llm_factory.settings, "ollama_chat_model", "mistral"),
    ):
        model = get_chat_model()
        assert isinstance(model, ChatOllama)
        assert model.model == "mistral"

    get_chat_model.cache_clear()
    with (
        mock.patch.object(llm_factory.settings, "llm_provider", LLMProvider.openai),
        mock.patch.object(llm_factory.settings, "llm_model", "gpt-4.1-mini"),
    ):
        model = get_chat_model()
        assert isinstance(model, ChatOpenAI)
        assert model.model_name == "gpt-4.1-mini"


def test_embedding_models():
    assert isinstance(get_embedding_model(LLMProvider.openai), OpenAIEmbeddings)
    ollama = get_embedding_model(LLMProvider.ollama, "nomic-embed-text")
    assert isinstance(ollama, OllamaEmbeddings)
    assert ollama.model == "nomic-embed-text"


def test_invalid_provider():
    with pytest.raises(ValueError, match="Unsupported provider"):
        get_chat_model("invalid")  # type: ignore[arg-type]
