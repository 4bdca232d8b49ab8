"""
Shared test fixtures.

Provides a scripted provider adapter and a resolver wired to a
temporary usage ledger.
"""

import os
import shutil
import tempfile

import pytest

from doubt_resolver.core.cost_tracker import CostTracker
from doubt_resolver.core.errors import ProviderError
from doubt_resolver.core.orchestrator import DoubtResolver
from doubt_resolver.core.router import ModelRouter, Provider
from doubt_resolver.sdk.providers import ModelResponse, ProviderAdapter
from doubt_resolver.storage.repository import UsageRepository, initialize_schema


class FakeAdapter(ProviderAdapter):
    """Provider adapter that fails for selected models and records calls."""

    def __init__(self, provider, failing_models=(), text="Answer", input_tokens=1000, output_tokens=500):
        self.provider = provider
        self.failing_models = set(failing_models)
        self.text = text
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.calls = []

    def complete(self, model_id, system_prompt, user_content, max_tokens, image=None):
        self.calls.append({
            "model_id": model_id,
            "system_prompt": system_prompt,
            "user_content": user_content,
            "max_tokens": max_tokens,
            "image": image,
        })
        if model_id in self.failing_models:
            raise ProviderError("connection reset", self.provider.value, model_id)
        return ModelResponse(
            text=f"{self.text} from {model_id}",
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens
        )


@pytest.fixture
def db_path():
    """Temporary database with the usage schema."""
    temp_dir = tempfile.mkdtemp()
    path = os.path.join(temp_dir, "test.db")
    initialize_schema(path)
    yield path
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def repository(db_path):
    return UsageRepository(db_path)


@pytest.fixture
def openai_adapter():
    return FakeAdapter(Provider.OPENAI)


@pytest.fixture
def anthropic_adapter():
    return FakeAdapter(Provider.ANTHROPIC)


@pytest.fixture
def resolver(openai_adapter, anthropic_adapter, repository):
    """Resolver with default tier models and scripted adapters."""
    return DoubtResolver(
        adapters={
            Provider.OPENAI: openai_adapter,
            Provider.ANTHROPIC: anthropic_adapter,
        },
        router=ModelRouter(),
        cost_tracker=CostTracker(repository)
    )
